"""
Flask application factory.
"""

import logging
from typing import Optional

from flask import Flask, jsonify
from sqlalchemy import text

from barber_scheduler.core.api_utils import register_error_handlers
from barber_scheduler.core.config import Settings, get_settings, log_settings
from barber_scheduler.core.logging_config import setup_logging
from barber_scheduler.db.session import SessionLocal, create_tables
from barber_scheduler.db.session import configure as configure_database

logger = logging.getLogger(__name__)


def _mask_url_password(url: str) -> str:
    """Hide the password part of a database URL before logging it."""
    import re

    return re.sub(r"(://[^:/?#]+):[^@]*@", r"\1:***@", url)


def create_app(settings: Optional[Settings] = None) -> Flask:
    settings = settings or get_settings()

    configure_database(settings.database_url)

    app = Flask(__name__)
    app.config["SCHEDULER_SETTINGS"] = settings
    app.json.sort_keys = False

    setup_logging(
        app,
        log_level=settings.log_level,
        log_to_file=settings.log_to_file,
        use_json_format=settings.log_json,
    )
    logger.info(
        "Starting barber scheduler",
        extra={"context": {"database_url": _mask_url_password(settings.database_url)}},
    )
    log_settings(settings)

    from barber_scheduler.controllers import (
        appointment_bp,
        availability_bp,
        inventory_bp,
    )

    app.register_blueprint(appointment_bp)
    app.register_blueprint(availability_bp)
    app.register_blueprint(inventory_bp)
    register_error_handlers(app)

    @app.route("/health", methods=["GET"])
    def health_check():
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Health check DB error: {e}")
            return jsonify({"status": "error", "message": "Database check failed"}), 500
        finally:
            db.close()
        return jsonify({"status": "ok"}), 200

    create_tables()
    return app
