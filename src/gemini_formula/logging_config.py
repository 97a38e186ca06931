"""Logging setup for the Gemini formula service.

Text output for local development, single-line JSON for log aggregators.
Call-site context passed through ``extra={"context": {...}}`` is rendered
by both formatters.
"""

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any

from gemini_formula.config import settings

logger = logging.getLogger("gemini_formula")


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context:
            entry.update(context)
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ContextFormatter(logging.Formatter):
    """Plain-text formatter that appends call-site context when present."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        context = getattr(record, "context", None)
        if context:
            text = f"{text} {json.dumps(context, ensure_ascii=False, default=str)}"
        return text


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure root logging from LOG_LEVEL and LOG_FORMAT.

    Args:
        level: Override the configured log level
        log_format: Override the configured format ("text" or "json")
    """
    log_level = (level or settings.log_level).upper()
    fmt = (log_format or settings.log_format).lower()

    root = logging.getLogger()
    root.setLevel(log_level)

    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            ContextFormatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    root.handlers = [handler]


def log_error(
    error: BaseException,
    context: dict[str, Any] | None = None,
    *,
    level: int = logging.ERROR,
) -> None:
    """Log a caught failure with its stack and call-site context.

    Args:
        error: The caught exception
        context: Call-site metadata (function name, truncated prompt, ...)
        level: Log level, ERROR unless the failure signals an internal bug
    """
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "error": str(error) or type(error).__name__,
        "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
    }
    payload.update(context or {})
    logger.log(level, "%s: %s", type(error).__name__, payload["error"], extra={"context": payload})
