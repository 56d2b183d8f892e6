"""
Logging configuration for the application.

Every record carries a request id: the X-Request-ID of the HTTP request being
served, or "system" for CLI and background work.
"""
import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict

from flask import Flask, g, request

from .time_utils import utcnow, to_utc_z

request_id_context: ContextVar[str] = ContextVar("request_id", default="system")

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "message", "pathname", "process",
    "processName", "relativeCreated", "thread", "threadName", "exc_info",
    "exc_text", "stack_info", "request_id", "taskName",
}

QUIET_PATHS = {"/health"}


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_context.get()
        return True


class JSONFormatter(logging.Formatter):
    """Structured one-line JSON records."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": to_utc_z(utcnow()),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", request_id_context.get()),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(app: Flask) -> None:
    """Configure root logging from LOG_LEVEL / LOG_FORMAT."""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    if str(app.config.get("LOG_FORMAT", "text")).lower() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Flask's own logger propagates to root instead of using its default handler
    app.logger.handlers.clear()
    app.logger.propagate = True

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def register_request_logging(app: Flask) -> None:
    """Attach request ids and one access-log line per request."""
    access_logger = logging.getLogger("stockroom.access")

    @app.before_request
    def _start_request():
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        g.request_id = request_id
        g.request_started = time.time()
        request_id_context.set(request_id)

    @app.after_request
    def _log_request(response):
        request_id = getattr(g, "request_id", None)
        if request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path not in QUIET_PATHS:
            duration = time.time() - getattr(g, "request_started", time.time())
            status_code = response.status_code
            if status_code >= 500:
                log = access_logger.error
            elif status_code >= 400:
                log = access_logger.warning
            else:
                log = access_logger.info
            log(f"{request.method} {request.path} - {status_code} - {duration:.3f}s")
        return response

    @app.teardown_request
    def _reset_request_id(exc):
        request_id_context.set("system")
