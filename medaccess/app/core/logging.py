# medaccess/app/core/logging.py
"""
Logging setup for the API process.

Tokens and passwords must never reach log output, so a filter
redacts bearer tokens, JWTs and password fragments on every record.
"""
import logging
import re
from typing import List, Pattern

from medaccess.app.core.config import Settings

_REDACTED = "[REDACTED]"

_SENSITIVE_PATTERNS: List[Pattern[str]] = [
    re.compile(r"(?i)bearer\s+[A-Za-z0-9\-_\.]+"),
    # Compact JWS: header.payload.signature
    re.compile(r"eyJ[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+"),
    re.compile(r"(?i)(password|passphrase)\s*[=:]\s*\S+"),
]

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def redact(message: str) -> str:
    for pattern in _SENSITIVE_PATTERNS:
        message = pattern.sub(_REDACTED, message)
    return message


class RedactingFilter(logging.Filter):
    """Replaces secrets in the rendered message with [REDACTED]."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def setup_logging(settings: Settings) -> None:
    """Configure the root logger once at process start."""
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=LOG_FORMAT)
    root = logging.getLogger()
    for handler in root.handlers:
        if not any(isinstance(f, RedactingFilter) for f in handler.filters):
            handler.addFilter(RedactingFilter())
