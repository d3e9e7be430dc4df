"""
Logging setup shared by the API process and the Celery worker.

Records are written to stdout, one JSON object per line by default::

    {"timestamp": "2025-09-13T10:30:00.123Z", "level": "INFO",
     "logger": "services.patient_service", "message": "Patient created",
     "request_id": "3f9a1c2e", "extra": {"patient_id": "..."}}

The request id comes from a ContextVar set by LoggingMiddleware and is
stamped onto every record by RequestIdFilter, so any ``logger.info(...,
extra={...})`` made while serving a request is correlated automatically.
"""
import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def clear_request_id() -> None:
    request_id_var.set(None)


class RequestIdFilter(logging.Filter):
    """Copies the current request id (or "-") onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


# Attributes every LogRecord carries; anything else arrived through extra=
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message", "asctime", "request_id", "taskName",
}


class JSONFormatter(logging.Formatter):
    """Single-line JSON with a UTC millisecond timestamp taken from the record."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{created.microsecond // 1000:03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "-":
            entry["request_id"] = request_id

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str, ensure_ascii=False)


TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(request_id)s | %(name)s | %(message)s"

APP_LOGGERS = ["core", "api", "services", "repositories", "mappers", "tasks"]
THIRD_PARTY_LOGGERS = ["uvicorn", "uvicorn.error", "uvicorn.access", "celery"]


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_third_party: bool = True
) -> None:
    """
    Route all logging through one stdout handler.

    LOG_LEVEL and LOG_FORMAT ("json" or "text") in the environment take
    precedence over the arguments.
    """
    level = os.environ.get("LOG_LEVEL", level).upper()
    json_format = os.environ.get("LOG_FORMAT", "json" if json_format else "text").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(
        JSONFormatter() if json_format
        else logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    names = APP_LOGGERS + (THIRD_PARTY_LOGGERS if include_third_party else [])
    for name in names:
        named = logging.getLogger(name)
        named.handlers = []
        named.propagate = True
        if name in APP_LOGGERS:
            named.setLevel(level)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"level": level, "format": "json" if json_format else "text"}
    )
