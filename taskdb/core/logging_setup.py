"""Logging setup driven by ``LOG_LEVEL`` and ``LOG_FORMAT``."""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from taskdb.config import settings

TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_NAME = "taskdb-console"


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Install a single console handler on the root logger."""
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    use_json = (fmt or settings.LOG_FORMAT).lower() == "json"

    root = logging.getLogger()
    root.setLevel(log_level)

    # Re-running setup (tests, reloads) must not stack handlers
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(log_level)
    handler.setFormatter(JsonFormatter() if use_json else logging.Formatter(TEXT_FORMAT, DATE_FORMAT))
    root.addHandler(handler)

    logging.getLogger(__name__).debug("Logging initialized at %s (%s)", level_name, "json" if use_json else "text")
