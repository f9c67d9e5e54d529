"""Logging filters that scrub credentials and bank details from log output."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization: Bearer\s+[\w\.-]+"
    r"|access_token\"\s*:\s*\"[^\"]+\""
    r"|password\"\s*:\s*\"[^\"]+\""
    r"|account_number\"\s*:\s*\"[^\"]+\""
    r"|sort_code\"\s*:\s*\"[^\"]+\")",
    re.IGNORECASE,
)

REDACTED = "**REDACTED**"


def redact(message: str) -> str:
    return _SENSITIVE_PATTERN.sub(REDACTED, message)


class SensitiveFilter(logging.Filter):
    """Replace sensitive tokens in log messages with a redaction marker."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        return True


__all__ = ["REDACTED", "SensitiveFilter", "redact"]
