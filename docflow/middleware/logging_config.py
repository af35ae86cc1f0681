"""
Logging setup for DocFlow.

Two renderings of the same records:
  - JSON lines in production, one object per record with the workflow
    context (document, project, actor, action) lifted from ``extra=``
  - a short colored line in development and testing

LOG_LEVEL (env or config) overrides the default level.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Keys copied from ``extra=`` onto JSON records
CONTEXT_FIELDS = (
    "request_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "project_id",
    "document_id",
    "actor_id",
    "action",
)

# Subset shown inline by the readable formatter
INLINE_FIELDS = ("document_id", "actor_id", "action")

QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "alembic", "urllib3")


def _context(record: logging.LogRecord, keys) -> dict:
    return {k: getattr(record, k) for k in keys if getattr(record, k, None) is not None}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(_context(record, CONTEXT_FIELDS))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """One colored line per record, workflow context appended as key=value."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, "")
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}{stamp} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        tags = " ".join(f"{k}={v}" for k, v in _context(record, INLINE_FIELDS).items())
        if tags:
            line += f" ({tags})"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" [{duration:.0f}ms]"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Attach a single stderr handler to the root logger.

    Production (neither DEBUG nor TESTING) gets JSON at INFO; everything
    else gets the readable format at DEBUG.
    """
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing

    level_name = os.getenv("LOG_LEVEL") or app.config.get("LOG_LEVEL") or ("INFO" if production else "DEBUG")
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if production else ReadableFormatter())
    handler.setLevel(level)

    # Cleared first: create_app runs once per test session and per CLI call
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging ready: level=%s format=%s", level_name, "json" if production else "readable")
