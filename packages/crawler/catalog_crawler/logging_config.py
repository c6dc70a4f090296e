"""Structured JSON logging configuration.

Every entry carries timestamp, level, logger and message. Retry and crawl
context is attached through ``extra`` on the log call (attempt, region,
proxy_used, outcome, delay_ms, target_url, retailer, ...).

SECURITY: proxy credentials never reach the output. ``user:password@`` in
URLs and ``password=...`` style pairs are redacted from messages and fields.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone

# Patterns that should be redacted from log output
_SENSITIVE_PATTERNS = re.compile(
    r"(api.key|secret|password|passwd|token|credential|authorization)"
    r"[\s]*[=:]\s*\S+",
    re.IGNORECASE,
)
_URL_CREDENTIALS = re.compile(r"//[^@/\s]+@")

_CONTEXT_FIELDS: tuple[str, ...] = (
    "attempt",
    "retry_attempts",
    "region",
    "proxy_used",
    "outcome",
    "error_reason",
    "delay_ms",
    "target_url",
    "retailer",
    "country",
    "page",
    "products_count",
    "failed_count",
    "duration_ms",
)


class JsonFormatter(logging.Formatter):
    """Formats log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self._sanitize(record.getMessage()),
        }

        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is None:
                continue
            entry[name] = self._sanitize(value) if isinstance(value, str) else value

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self._sanitize(self.formatException(record.exc_info))

        return json.dumps(entry, default=str)

    @staticmethod
    def _sanitize(text: str) -> str:
        """Remove credentials from log text."""
        text = _URL_CREDENTIALS.sub("//***@", text)
        return _SENSITIVE_PATTERNS.sub("[REDACTED]", text)


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger with JSON formatting."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    # httpx logs every request at INFO, including the proxied URL
    logging.getLogger("httpx").setLevel(logging.WARNING)
