"""
Unit tests for the log formatters.
"""

import json
import logging

import pytest

from barber_scheduler.core.logging_config import ConsoleFormatter, JSONFormatter


def make_record(context=None):
    record = logging.LogRecord(
        "barber_scheduler.services", logging.INFO, __file__, 10, "Appointment created", (), None
    )
    if context is not None:
        record.context = context
    return record


@pytest.mark.unit
class TestFormatters:
    def test_json_formatter_nests_context(self):
        line = JSONFormatter().format(make_record({"appointment_id": 7}))

        payload = json.loads(line)
        assert payload["message"] == "Appointment created"
        assert payload["level"] == "INFO"
        assert payload["service"] == "barber_scheduler"
        assert payload["context"] == {"appointment_id": 7}

    def test_json_formatter_without_context(self):
        payload = json.loads(JSONFormatter().format(make_record()))

        assert "context" not in payload

    def test_console_formatter_appends_pairs(self):
        line = ConsoleFormatter().format(make_record({"provider_id": 1, "start": "10:00"}))

        assert line.endswith("Appointment created [provider_id=1 start=10:00]")
