"""Structured Logging - JSON formatter and setup for store observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Store context (collection, record_id, operation, error_code, ...) and
      cascade outcomes (deleted, failures) surfaced when present
    - Enum extras are logged by value, so Collection.USERS appears as "users"
    - setup_logging replaces the handler it installed before, never stacks a second one

Design Decisions:
    - JSONFormatter on stdlib logging: no extra dependency
    - setup_logging called by build_services(configure_logging=True); library code only creates loggers
"""

import json
import logging
from datetime import datetime, timezone
from enum import Enum

EXTRA_FIELDS = (
    "collection", "record_id", "operation", "error_code",
    "user_id", "event_id", "key", "step",
    "deleted", "failures", "events_adjusted",
)

_HANDLER_NAME = "campusreg"


def _plain(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(_plain(k)): _plain(v) for k, v in value.items()}
    return value


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = _plain(val)
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Configure root logging for campusreg. Returns the installed handler."""
    for existing in list(logging.root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logging.root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
