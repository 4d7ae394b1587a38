"""Structured JSON logging configuration."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from redwing.core.config import AppSettings

# Context attributes copied from ``extra={...}`` into the JSON document.
CONTEXT_FIELDS = (
    "escalation_id",
    "school_id",
    "origin_agent",
    "authority",
    "target",
    "event_type",
    "state",
)


def sanitize_phone(phone: str | None) -> str:
    """Mask the middle digits of a phone number or JID for logs.

    ``"2348012345678"`` becomes ``"234***5678"``; group JIDs keep their suffix.
    """
    if not phone or len(phone) < 7:
        return "***"
    local, sep, domain = phone.partition("@")
    if len(local) < 7:
        return f"***{sep}{domain}"
    return f"{local[:3]}***{local[-4:]}{sep}{domain}"


def truncate_message(message: str, max_length: int = 200) -> str:
    """Truncate message content for logs with a length indicator."""
    if not message:
        return ""
    if len(message) <= max_length:
        return message
    return f"{message[:max_length]}... (truncated, total: {len(message)} chars)"


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(settings: AppSettings | None = None) -> None:
    """Configure root logging once at process start.

    Reads ``log_level`` and ``log_format`` from settings and writes to stderr.
    """
    if settings is None:
        settings = AppSettings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    if settings.log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    root_logger.addHandler(handler)

    # Reduce noise from third-party loggers
    for noisy in ("botocore", "boto3", "urllib3", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
