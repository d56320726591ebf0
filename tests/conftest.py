"""
Central pytest configuration for the barber scheduler tests.

This file provides common fixtures, test markers, and setup
for both unit and integration tests.
"""

import os

# Test database configuration (set early so nothing reads a local .env)
TEST_DATABASE_URL = "sqlite://"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("TZ", "UTC")

import pytest  # noqa: E402

from barber_scheduler.core.config import Settings  # noqa: E402
from tests.config.markers import (  # noqa: E402,F401
    pytest_collection_modifyitems,
    pytest_configure,
)
from tests.fixtures.database_fixtures import (  # noqa: E402,F401
    db_engine,
    db_session,
    seeded,
)


@pytest.fixture
def settings() -> Settings:
    """Default settings: UTC, 30-minute slots, standard status set."""
    return Settings(database_url=TEST_DATABASE_URL)

