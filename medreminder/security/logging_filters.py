"""Logging filters that scrub sensitive content."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization: Bearer\s+[\w\.-]+|X-Owner-ID:\s*[\w-]+|owner_id\"\s*:\s*\"[^\"]+\")",
    re.IGNORECASE,
)


class SensitiveFilter(logging.Filter):
    """Replace owner identifiers and credentials in log messages with a redaction marker."""

    def filter(
        self, record: logging.LogRecord
    ) -> bool:  # pragma: no cover - logging side effect
        if isinstance(record.msg, str):
            record.msg = _SENSITIVE_PATTERN.sub("**REDACTED**", record.msg)
        return True


__all__ = ["SensitiveFilter"]
