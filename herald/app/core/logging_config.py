"""
Structured logging configuration.

Provides:
    • JSON lines in production, one object per record
    • Coloured console lines everywhere else
    • Delivery context (channel, attempt, notifier index, timings) taken
      from ``extra=`` and rendered by both formatters

Usage:
    from herald.app.core.logging_config import setup_logging

    setup_logging()
    logger = logging.getLogger(__name__)
    logger.warning("Attempt failed", extra={"channel": "bark", "attempt": 2})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from herald.app.core.config import settings

# LogRecord attributes that describe a delivery
DELIVERY_KEYS = (
    "channel", "attempt", "attempts", "notifier_index",
    "duration_ms", "status_code",
)

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def delivery_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Delivery fields attached to ``record`` via ``extra=``."""
    return {key: getattr(record, key) for key in DELIVERY_KEYS if hasattr(record, key)}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, delivery context under ``delivery``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }

        context = delivery_context(record)
        if context:
            entry["delivery"] = context

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str, ensure_ascii=False)


class PrettyFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL [channel#attempt] logger: message`` with ANSI colour."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        context = delivery_context(record)

        tag = ""
        if "channel" in context:
            tag = f" [{context['channel']}"
            if "attempt" in context:
                tag += f"#{context['attempt']}"
            tag += "]"

        line = (
            f"{color}{self.formatTime(record, '%H:%M:%S')} "
            f"{record.levelname:<8}{self.RESET}{tag} {record.name}: {record.getMessage()}"
        )
        if record.exc_info and record.exc_info[1]:
            line += f"\n  {type(record.exc_info[1]).__name__}: {record.exc_info[1]}"
        return line


def setup_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """
    Install a single stdout handler on the root logger.

    ``level`` defaults to ``LOG_LEVEL``; ``json_logs`` defaults to true in
    production.
    """
    if json_logs is None:
        json_logs = settings.is_production
    level_name = (level or settings.LOG_LEVEL).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_logs else PrettyFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
