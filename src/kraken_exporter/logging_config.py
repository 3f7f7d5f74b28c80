"""Structured logging configuration helpers for the exporter."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict

LOG_LEVEL_ENV_VAR = "LOG_LEVEL"
DEFAULT_LEVEL = os.getenv(LOG_LEVEL_ENV_VAR, "INFO")

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "asctime",
}


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter with ``date``, ``level`` and ``log`` fields.

    ``date`` is the record creation time in local time, ISO 8601 with
    microsecond precision. Values passed through the logging ``extra``
    dictionary are preserved so callers can attach contextual identifiers
    (``event``, ``pair``, ``url``, ``status``) next to the message.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        log_time = datetime.fromtimestamp(record.created).astimezone()
        payload: Dict[str, Any] = {
            "date": log_time.isoformat(timespec="microseconds"),
            "level": record.levelname,
            "log": record.getMessage(),
            "logger": record.name,
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            payload.setdefault(key, value)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(level: int | str | None = None) -> None:
    """Configure root logging with a JSON formatter and stdout handler."""

    resolved = level if level is not None else DEFAULT_LEVEL
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)


def structured_log_extra(
    *,
    event: str | None = None,
    pair: str | None = None,
    request_id: str | None = None,
    **kwargs: Any,
) -> Dict[str, Any]:
    """Build a consistent set of logging extras.

    ``event`` should be a short, stable identifier for the log line. Optional
    identifiers (``pair``, ``request_id``) are omitted when ``None`` so the
    JSON payload only carries what the call site knows. Additional custom
    fields are preserved via ``**kwargs``.
    """

    extra: Dict[str, Any] = {"event": event}

    identifier_fields = {"pair": pair, "request_id": request_id}
    for key, value in identifier_fields.items():
        if value is not None:
            extra[key] = value

    extra.update(kwargs)
    return extra


__all__: list[str] = [
    "JsonFormatter",
    "configure_logging",
    "structured_log_extra",
]
