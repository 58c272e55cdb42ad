"""Structured Logging — JSON records for the `wtlibs` logger hierarchy.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Dataset and pointer context (dataset, fields, ref, scheme) surfaced when present
    - A WTLibsError in exc_info contributes its code, category and retryability
    - setup_logging touches only the `wtlibs` logger, never the root logger

Design Decisions:
    - Logger scoped to the package: embedding applications keep their own root config
    - Calling setup_logging again replaces the handler it installed before (no duplicates)
"""

import logging
import json
from datetime import datetime, timezone

from wtlibs.core.errors import WTLibsError

PACKAGE_LOGGER = "wtlibs"

_CONTEXT_KEYS = (
    "dataset", "fields", "operation", "ref", "scheme", "attempt", "address",
    "error_code",
)


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            error = record.exc_info[1]
            if isinstance(error, WTLibsError):
                log["error_code"] = error.code
                log["error_category"] = error.category.value
                log["retryable"] = error.retryable
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


_installed_handler: logging.Handler | None = None


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Attach a stream handler to the `wtlibs` logger; returns it."""
    global _installed_handler
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _installed_handler is not None:
        package_logger.removeHandler(_installed_handler)

    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    _installed_handler = handler
    return handler
