"""
Unity ERP - Structured Logging

JSON logs in deployed environments, readable text locally. Anything passed via
``extra={...}`` ends up as a top-level key in the JSON record.

Usage:
    from unity_erp.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Stock issued", extra={"order_id": 100, "component_id": 7})
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from unity_erp.core.settings import get_settings

# Attributes every LogRecord carries; everything else came in through `extra`
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime"}

_configured = False


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Plain text with any extra fields appended as key=value pairs."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-8s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {
            k: v for k, v in record.__dict__.items()
            if k not in _RESERVED_ATTRS and not k.startswith("_")
        }
        if extras:
            base += " | " + " ".join(f"{k}={v}" for k, v in extras.items())
        return base


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure the root logger once, from settings unless overridden."""
    global _configured
    settings = get_settings()

    level_name = (level or settings.LOG_LEVEL).upper()
    fmt = (log_format or settings.LOG_FORMAT).lower()
    formatter: logging.Formatter = JSONFormatter() if fmt == "json" else TextFormatter()

    root = logging.getLogger()
    root.setLevel(level_name)

    if _configured:
        for handler in root.handlers:
            handler.setFormatter(formatter)
        return

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if settings.LOG_FILE:
        file_handler = logging.FileHandler(settings.LOG_FILE, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # SQL echo is controlled by the engine, keep the logger quiet
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)
