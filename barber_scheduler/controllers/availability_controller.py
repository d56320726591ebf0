"""
Availability controller - slot listing and interval checks per provider.
"""

from datetime import date

from flask import Blueprint, request

from barber_scheduler.core.api_utils import api_response, current_settings
from barber_scheduler.core.exceptions import ValidationError
from barber_scheduler.db.session import SessionLocal
from barber_scheduler.schemas.dtos import parse_datetime
from barber_scheduler.services.appointment_service import AppointmentService

availability_bp = Blueprint("availability", __name__, url_prefix="/api/providers")


def _parse_day(raw) -> date:
    if not raw:
        raise ValidationError("date is required", field="date")
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValidationError(
            f"date must be YYYY-MM-DD, got {raw!r}", field="date"
        ) from None


def _optional_int(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", field=name) from None


@availability_bp.route("/<int:provider_id>/slots", methods=["GET"])
def get_available_slots(provider_id: int):
    """List slots for ``?date=YYYY-MM-DD``.

    Optional ``duration`` (minutes) sets the slot length and ``now`` marks
    earlier slots unavailable.
    """
    day = _parse_day(request.args.get("date"))
    duration = _optional_int("duration")
    raw_now = request.args.get("now")
    now = parse_datetime(raw_now, "now") if raw_now else None

    db = SessionLocal()
    try:
        service = AppointmentService.from_session(db, current_settings())
        slots = service.get_available_slots(
            provider_id, day, duration_minutes=duration, now=now
        )
        return api_response(
            True,
            f"{sum(1 for s in slots if s.available)} of {len(slots)} slot(s) available",
            {"date": day.isoformat(), "slots": [slot.to_dict() for slot in slots]},
        )
    finally:
        db.close()


@availability_bp.route("/<int:provider_id>/availability", methods=["GET"])
def check_availability(provider_id: int):
    """Check ``?start=...&end=...`` (optionally ``exclude_id``)."""
    start = parse_datetime(request.args.get("start"), "start")
    end = parse_datetime(request.args.get("end"), "end")
    exclude_id = _optional_int("exclude_id")

    db = SessionLocal()
    try:
        service = AppointmentService.from_session(db, current_settings())
        available = service.is_provider_available(provider_id, start, end, exclude_id)
        return api_response(
            True,
            "Slot available" if available else "Slot unavailable",
            {"provider_id": provider_id, "available": available},
        )
    finally:
        db.close()
