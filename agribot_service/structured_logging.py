"""
Structured Logging Module for AgriBot Service

Every line is a JSON object tagged with the request id and the route kind
("chat", "predict" or "other"), so one request can be followed from the
access log through extraction and both upstream calls. Pipeline failures
are logged through ``log_failure`` with their error kind and upstream status
as first-class fields.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from contextvars import ContextVar
import uuid

from .errors import AgriBotError

SERVICE_NAME = "agribot"

ROUTE_KINDS: Dict[str, str] = {
    "/chat": "chat",
    "/api/predict/chat": "chat",
    "/predict": "predict",
    "/api/predict": "predict",
}

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
route_var: ContextVar[Optional[str]] = ContextVar("route", default=None)


def route_kind(path: str) -> str:
    return ROUTE_KINDS.get(path.rstrip("/") or "/", "other")


def bind_request(path: str, request_id: Optional[str] = None) -> str:
    """Attach request id and route kind to the current context. Returns the id."""
    if not request_id:
        request_id = uuid.uuid4().hex[:8]
    request_id_var.set(request_id)
    route_var.set(route_kind(path))
    return request_id


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": SERVICE_NAME,
        }
        for key, var in (("request_id", request_id_var), ("route", route_var)):
            value = var.get()
            if value:
                entry[key] = value

        fields = getattr(record, "fields", None)
        if fields:
            entry.update(fields)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class StructuredLogger:
    """Logger whose keyword arguments become top-level JSON fields."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(self, level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
        self.logger.log(level, message, exc_info=exc_info, extra={"fields": fields})

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, message, **fields)

    def exception(self, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, message, exc_info=True, **fields)


def setup_logging(level: int = logging.INFO, use_json: bool = True) -> None:
    """Route all logging through a single stderr handler."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if use_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
    root_logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


_access_logger = StructuredLogger("agribot.access")
_failure_logger = StructuredLogger("agribot.failures")


def log_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """Access log line; level follows the status class."""
    if status_code >= 500:
        log = _access_logger.error
    elif status_code >= 400:
        log = _access_logger.warning
    else:
        log = _access_logger.info
    log(
        f"{method} {path} {status_code}",
        status_code=status_code,
        duration_ms=round(duration_ms, 2),
    )


def log_failure(route: str, error: AgriBotError) -> None:
    """Record a pipeline failure that was turned into a safe response."""
    _failure_logger.error(
        f"{route} failed: {error.message}",
        error_kind=type(error).__name__,
        status_code=error.status_code,
        retryable=error.retryable,
        upstream_status=getattr(error, "upstream_status", None),
        reason=getattr(error, "reason", None),
    )
