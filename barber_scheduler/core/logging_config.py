"""
Logging setup for the barber scheduler.

Every module logs through ``logging.getLogger(__name__)`` and attaches
structured fields with ``extra={"context": {...}}``. ``setup_logging``
decides how those records are rendered:

- console lines with the context appended as ``key=value`` pairs
- one JSON object per line (``LOG_JSON=true``), also used for log files
- optional rotating files under ``logs/`` (``LOG_TO_FILE=true``)
- optional SQL statement timing
- one line per HTTP request, tagged with a request id

Usage:
    setup_logging(app, log_level="INFO", use_json_format=True)

    logger = logging.getLogger(__name__)
    logger.info("Appointment created", extra={"context": {"appointment_id": 7}})
"""

import json
import logging
import logging.handlers
import sys
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from flask import Flask, g, has_request_context, request
from sqlalchemy import event
from sqlalchemy.engine import Engine

SERVICE_NAME = "barber_scheduler"
MAX_LOG_BYTES = 5 * 1024 * 1024


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    context = dict(getattr(record, "context", None) or {})
    if has_request_context() and "request_id" in g:
        context.setdefault("request_id", g.request_id)
    return context


class JSONFormatter(logging.Formatter):
    """One JSON document per record; ``context`` is kept as a nested object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = _record_context(record)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Plain text with the structured context appended as key=value pairs."""

    def __init__(self):
        super().__init__(
            "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _record_context(record)
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            line = f"{line} [{pairs}]"
        return line


_sql_timing_installed = False


def _install_sql_timing(slow_query_ms: float) -> None:
    """Time every statement; statements slower than the threshold log at WARNING."""
    global _sql_timing_installed
    if _sql_timing_installed:
        return
    sql_logger = logging.getLogger(f"{SERVICE_NAME}.sql")

    @event.listens_for(Engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("statement_started", []).append(time.perf_counter())

    @event.listens_for(Engine, "after_cursor_execute")
    def _stop_timer(conn, cursor, statement, parameters, context, executemany):
        elapsed_ms = (time.perf_counter() - conn.info["statement_started"].pop()) * 1000
        level = logging.WARNING if elapsed_ms >= slow_query_ms else logging.DEBUG
        sql_logger.log(
            level,
            "SQL statement finished",
            extra={
                "context": {
                    "statement": " ".join(statement.split())[:300],
                    "duration_ms": round(elapsed_ms, 2),
                }
            },
        )

    _sql_timing_installed = True


def _file_handlers(log_dir: Path, level: int) -> List[logging.Handler]:
    log_dir.mkdir(parents=True, exist_ok=True)
    handlers: List[logging.Handler] = []
    for filename, handler_level in (
        (f"{SERVICE_NAME}.log", level),
        ("errors.log", logging.ERROR),
    ):
        handler = logging.handlers.RotatingFileHandler(
            log_dir / filename,
            maxBytes=MAX_LOG_BYTES,
            backupCount=3,
            encoding="utf-8",
        )
        handler.setLevel(handler_level)
        handler.setFormatter(JSONFormatter())
        handlers.append(handler)
    return handlers


def _install_request_logging(app: Flask) -> None:
    request_logger = logging.getLogger(f"{SERVICE_NAME}.http")

    @app.before_request
    def _tag_request():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_response(response):
        started = g.get("request_started")
        if started is not None:
            request_logger.info(
                f"{request.method} {request.path} -> {response.status_code}",
                extra={
                    "context": {
                        "status": response.status_code,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    }
                },
            )
        response.headers["X-Request-ID"] = g.get("request_id", "")
        return response


def setup_logging(
    app: Optional[Flask] = None,
    log_level: Union[int, str] = "INFO",
    enable_sql_echo: bool = False,
    log_to_file: bool = False,
    use_json_format: bool = False,
    log_dir: Optional[Path] = None,
    slow_query_ms: float = 200.0,
) -> None:
    """
    Replace the root handlers with the scheduler's handlers.

    Args:
        app: Flask app; when given, each request is logged with its id
        log_level: Level name or number for the root logger
        enable_sql_echo: Time SQL statements (slow ones are logged at WARNING)
        log_to_file: Also write JSON lines to rotating files in ``log_dir``
        use_json_format: Emit JSON on stdout instead of console text
        log_dir: Directory for log files (defaults to ./logs)
        slow_query_ms: Threshold for the slow-statement warning
    """
    level = (
        log_level
        if isinstance(log_level, int)
        else logging.getLevelName(str(log_level).upper())
    )
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(JSONFormatter() if use_json_format else ConsoleFormatter())
    root.addHandler(stdout_handler)

    if log_to_file:
        target = log_dir or Path.cwd() / "logs"
        try:
            for handler in _file_handlers(target, level):
                root.addHandler(handler)
        except OSError as e:
            root.warning(
                "Log directory unavailable, logging to stdout only",
                extra={"context": {"log_dir": str(target), "error": str(e)}},
            )

    if enable_sql_echo:
        _install_sql_timing(slow_query_ms)

    if app is not None:
        _install_request_logging(app)

    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger(SERVICE_NAME).debug(
        "Logging configured",
        extra={
            "context": {
                "level": logging.getLevelName(level),
                "json": use_json_format,
                "files": log_to_file,
                "sql_timing": enable_sql_echo,
            }
        },
    )


def log_performance(operation: str, duration_ms: float, **fields) -> None:
    """Log how long a scheduling operation took, with extra context fields."""
    logging.getLogger(f"{SERVICE_NAME}.performance").info(
        f"{operation} took {duration_ms:.2f}ms",
        extra={
            "context": {"operation": operation, "duration_ms": round(duration_ms, 2), **fields}
        },
    )
