"""
API utilities for consistent response formatting and error mapping.
"""

import logging
from typing import Any, Optional

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from barber_scheduler.core.config import Settings, get_settings
from barber_scheduler.core.exceptions import SchedulingError

logger = logging.getLogger(__name__)


def api_response(
    success: bool, message: str, data: Optional[Any] = None, status_code: int = 200
) -> tuple:
    """
    Standardized API response format for all endpoints.

    Args:
        success: Whether the operation was successful
        message: Human-readable message about the operation
        data: Optional data payload
        status_code: HTTP status code

    Returns:
        Tuple of (json_response, status_code)
    """
    response = {"success": success, "message": message}

    if data is not None:
        response["data"] = data

    return jsonify(response), status_code


def current_settings() -> Settings:
    """Settings attached to the running app, or the environment's."""
    settings = current_app.config.get("SCHEDULER_SETTINGS")
    return settings if settings is not None else get_settings()


def register_error_handlers(app) -> None:
    """Render typed scheduling errors as JSON with their mapped status."""

    @app.errorhandler(SchedulingError)
    def handle_scheduling_error(error: SchedulingError):
        if error.http_status >= 500:
            logger.error(
                "Request failed with internal error",
                exc_info=error,
                extra={"context": {"error": error.code}},
            )
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return (
            jsonify(
                {
                    "success": False,
                    "error": (error.name or "http_error").lower().replace(" ", "_"),
                    "message": error.description,
                }
            ),
            error.code,
        )

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.error(
            "Unhandled exception",
            exc_info=error,
            extra={"context": {"error_type": type(error).__name__}},
        )
        return (
            jsonify(
                {
                    "success": False,
                    "error": "internal_error",
                    "message": "Internal server error",
                }
            ),
            500,
        )
