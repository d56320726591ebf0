"""
Appointment controller - booking, rescheduling and status endpoints.

The controller handles HTTP concerns only; every rule lives in
``AppointmentService`` and surfaces here as a typed error.
"""

import logging
from datetime import datetime

from flask import Blueprint, request

from barber_scheduler.core.api_utils import api_response, current_settings
from barber_scheduler.core.exceptions import ValidationError
from barber_scheduler.db.session import SessionLocal
from barber_scheduler.schemas.dtos import (
    AppointmentCreateRequest,
    AppointmentResponse,
    AppointmentUpdateRequest,
    parse_datetime,
)
from barber_scheduler.services.appointment_service import AppointmentService

logger = logging.getLogger(__name__)

appointment_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")

SYSTEM_CANCEL_REASON = "Deleted via API"


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Request body must be JSON")
    return data


def _now_arg() -> datetime:
    """Reference instant for time-relative queries; defaults to the app's local now."""
    raw = request.args.get("now")
    if raw:
        return parse_datetime(raw, "now")
    return datetime.now(current_settings().timezone)


def _int_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", field=name) from None


def _filters() -> dict:
    return {
        "provider_id": _int_arg("provider_id"),
        "client_id": _int_arg("client_id"),
        "shop_id": _int_arg("shop_id"),
    }


def _serialize(appointment) -> dict:
    return AppointmentResponse.from_domain(appointment).to_dict()


@appointment_bp.route("", methods=["POST"])
def create_appointment():
    """Book an appointment."""
    payload = AppointmentCreateRequest.from_dict(_json_body())
    db = SessionLocal()
    try:
        service = AppointmentService.from_session(db, current_settings())
        appointment = service.create_appointment(payload, now=_now_arg())
        return api_response(True, "Appointment created", _serialize(appointment), 201)
    finally:
        db.close()


@appointment_bp.route("/<int:appointment_id>", methods=["GET"])
def get_appointment(appointment_id: int):
    db = SessionLocal()
    try:
        service = AppointmentService.from_session(db, current_settings())
        appointment = service.get_appointment(appointment_id)
        return api_response(True, "Appointment found", _serialize(appointment))
    finally:
        db.close()


@appointment_bp.route("/<int:appointment_id>", methods=["PUT", "PATCH"])
def update_appointment(appointment_id: int):
    payload = AppointmentUpdateRequest.from_dict(_json_body())
    db = SessionLocal()
    try:
        service = AppointmentService.from_session(db, current_settings())
        appointment = service.update_appointment(appointment_id, payload, now=_now_arg())
        return api_response(True, "Appointment updated", _serialize(appointment))
    finally:
        db.close()


@appointment_bp.route("/<int:appointment_id>/cancel", methods=["POST"])
def cancel_appointment(appointment_id: int):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    db = SessionLocal()
    try:
        service = AppointmentService.from_session(db, current_settings())
        appointment = service.cancel_appointment(appointment_id, data.get("reason"))
        return api_response(True, "Appointment cancelled", _serialize(appointment))
    finally:
        db.close()


@appointment_bp.route("/<int:appointment_id>", methods=["DELETE"])
def delete_appointment(appointment_id: int):
    """Delete means cancel: the row is kept and its products go back to stock."""
    db = SessionLocal()
    try:
        service = AppointmentService.from_session(db, current_settings())
        appointment = service.cancel_appointment(appointment_id, SYSTEM_CANCEL_REASON)
        return api_response(True, "Appointment cancelled", _serialize(appointment))
    finally:
        db.close()


@appointment_bp.route("/<int:appointment_id>/confirm", methods=["POST"])
def confirm_appointment(appointment_id: int):
    db = SessionLocal()
    try:
        service = AppointmentService.from_session(db, current_settings())
        appointment = service.confirm_appointment(appointment_id)
        return api_response(True, "Appointment confirmed", _serialize(appointment))
    finally:
        db.close()


@appointment_bp.route("/<int:appointment_id>/complete", methods=["POST"])
def complete_appointment(appointment_id: int):
    db = SessionLocal()
    try:
        service = AppointmentService.from_session(db, current_settings())
        appointment = service.complete_appointment(appointment_id)
        return api_response(True, "Appointment completed", _serialize(appointment))
    finally:
        db.close()


@appointment_bp.route("/<int:appointment_id>/no-show", methods=["POST"])
def mark_no_show(appointment_id: int):
    db = SessionLocal()
    try:
        service = AppointmentService.from_session(db, current_settings())
        appointment = service.mark_no_show(appointment_id)
        return api_response(True, "Appointment marked as no-show", _serialize(appointment))
    finally:
        db.close()


@appointment_bp.route("/upcoming", methods=["GET"])
def list_upcoming():
    db = SessionLocal()
    try:
        service = AppointmentService.from_session(db, current_settings())
        appointments = service.list_upcoming(_now_arg(), **_filters())
        return api_response(
            True,
            f"{len(appointments)} upcoming appointment(s)",
            [_serialize(a) for a in appointments],
        )
    finally:
        db.close()


@appointment_bp.route("/history", methods=["GET"])
def list_history():
    db = SessionLocal()
    try:
        service = AppointmentService.from_session(db, current_settings())
        appointments = service.list_history(_now_arg(), **_filters())
        return api_response(
            True,
            f"{len(appointments)} past appointment(s)",
            [_serialize(a) for a in appointments],
        )
    finally:
        db.close()
