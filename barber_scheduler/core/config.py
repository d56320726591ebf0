"""
Centralized configuration module for application-wide settings.

Values come from environment variables (optionally a .env file) and are
bundled in an immutable ``Settings`` object. Services receive a ``Settings``
instance explicitly so tests never depend on the process environment.
"""

import logging
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Only load from .env when DATABASE_URL is not already defined by the environment
if not os.getenv("DATABASE_URL"):
    load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///./barber_scheduler.db"

STATUS_SET_STANDARD = "standard"
STATUS_SET_EXTENDED = "extended"


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid integer for {env_var}: {raw!r}") from None


def _safe_decimal(env_var: str, default: str) -> Decimal:
    """Parse a decimal from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return Decimal(raw)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Invalid decimal for {env_var}: {raw!r}") from None


def _safe_bool(env_var: str, default: str) -> bool:
    return os.getenv(env_var, default).strip().lower() in ("1", "true", "yes")


# ===========================
# Timezone Configuration
# ===========================


def get_app_timezone() -> ZoneInfo:
    """
    Get the application timezone from the TZ environment variable.

    Appointment times are stored as naive wall-clock datetimes in this zone.
    Defaults to UTC when TZ is unset or invalid.
    """
    tz_name = os.getenv("TZ", "UTC")

    try:
        return ZoneInfo(tz_name)
    except Exception as e:
        logger.warning(
            f"Invalid timezone '{tz_name}' specified in TZ environment variable. "
            f"Falling back to UTC. Error: {e}"
        )
        return ZoneInfo("UTC")


# ===========================
# Scheduling Configuration
# ===========================


@dataclass(frozen=True)
class Settings:
    """Scheduling settings loaded from environment or defaults."""

    database_url: str = DEFAULT_DATABASE_URL
    timezone: ZoneInfo = ZoneInfo("UTC")
    slot_step_minutes: int = 30
    service_price_cap: Decimal = Decimal("10000.00")
    status_set: str = STATUS_SET_STANDARD
    low_stock_threshold: int = 5
    log_level: str = "INFO"
    log_json: bool = False
    log_to_file: bool = False

    def __post_init__(self):
        if not 1 <= self.slot_step_minutes <= 240:
            raise ValueError(
                f"SLOT_STEP_MINUTES must be between 1 and 240, got {self.slot_step_minutes}"
            )
        if self.service_price_cap < 0:
            raise ValueError("SERVICE_PRICE_CAP cannot be negative")
        if self.status_set not in (STATUS_SET_STANDARD, STATUS_SET_EXTENDED):
            raise ValueError(
                f"APPOINTMENT_STATUS_SET must be '{STATUS_SET_STANDARD}' or "
                f"'{STATUS_SET_EXTENDED}', got {self.status_set!r}"
            )
        if self.low_stock_threshold < 0:
            raise ValueError("LOW_STOCK_THRESHOLD cannot be negative")


def get_settings() -> Settings:
    """Build a ``Settings`` instance from the current environment."""
    return Settings(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        timezone=get_app_timezone(),
        slot_step_minutes=_safe_int("SLOT_STEP_MINUTES", "30"),
        service_price_cap=_safe_decimal("SERVICE_PRICE_CAP", "10000.00"),
        status_set=os.getenv("APPOINTMENT_STATUS_SET", STATUS_SET_STANDARD)
        .strip()
        .lower(),
        low_stock_threshold=_safe_int("LOW_STOCK_THRESHOLD", "5"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=_safe_bool("LOG_JSON", "false"),
        log_to_file=_safe_bool("LOG_TO_FILE", "false"),
    )


def log_settings(settings: Settings) -> None:
    """Log the active scheduling configuration at startup."""
    logger.info(
        "Scheduling configuration initialized",
        extra={
            "context": {
                "timezone": str(settings.timezone),
                "slot_step_minutes": settings.slot_step_minutes,
                "status_set": settings.status_set,
                "service_price_cap": str(settings.service_price_cap),
            }
        },
    )
