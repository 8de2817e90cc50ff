"""
Structured Logging Module for Triage Assist

JSON-formatted logging with request and analysis ID tracking. Patient text and
credentials are never passed to the logger; callers log sizes, services and
outcomes only.
"""

import logging
import json
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Optional
from contextvars import ContextVar

SERVICE_NAME = "triage-assist"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
analysis_id_var: ContextVar[Optional[str]] = ContextVar("analysis_id", default=None)


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set a new request ID in context. Returns the ID."""
    if request_id is None:
        request_id = str(uuid.uuid4())[:8]
    request_id_var.set(request_id)
    return request_id


def set_analysis_id(analysis_id: Optional[str]) -> None:
    analysis_id_var.set(analysis_id)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, service_name: str = SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id
        analysis_id = analysis_id_var.get()
        if analysis_id:
            log_data["analysis_id"] = analysis_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if getattr(record, "extra_data", None):
            log_data["data"] = record.extra_data

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """Wrapper around logging.Logger that attaches keyword data to records."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(self, level: int, message: str, **kwargs: Any) -> None:
        extra = {"extra_data": kwargs} if kwargs else {}
        self.logger.log(level, message, extra=extra)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, **kwargs)


def setup_logging(
    level: int = logging.INFO,
    service_name: str = SERVICE_NAME,
    use_json: bool = True
) -> None:
    """Set up structured logging for the application.

    Args:
        level: Logging level (default: INFO)
        service_name: Service name for log entries
        use_json: Whether to use JSON formatting (default: True)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if use_json:
        handler.setFormatter(JSONFormatter(service_name))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))

    root_logger.addHandler(handler)

    # httpx logs full URLs at INFO, which would include translation queries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def log_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    error: Optional[str] = None
) -> None:
    """Log an HTTP request with structured data."""
    logger = StructuredLogger("http")

    data = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
    }

    if error:
        data["error"] = error
        logger.error(f"{method} {path} {status_code}", **data)
    else:
        logger.info(f"{method} {path} {status_code}", **data)
