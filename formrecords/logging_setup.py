from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime

# Structured context copied from ``extra=`` into each JSON line.
CONTEXT_KEYS = ("role", "service", "run_id", "form_id", "response_id", "index", "error_code")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key in CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: int = logging.INFO) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_level_from_env(default: int = logging.INFO) -> int:
    """Level named by LOG_LEVEL (e.g. ``DEBUG``); unknown names keep the default."""
    name = os.getenv("LOG_LEVEL")
    if not name:
        return default
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default
