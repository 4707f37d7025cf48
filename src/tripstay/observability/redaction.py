"""Redaction helpers for safe logging.

Guest and room names are free text typed by users; only ids, dates and
counts are allowed into logs verbatim.
"""

import re
from typing import Any

_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_HEX_ID = re.compile(r"^[0-9a-f]{32}$")

# Keys whose values are always free text
_FREE_TEXT_KEYS = frozenset({"name", "person_name", "room_name", "trip_name", "description"})

_REDACTED = "[REDACTED]"


def redact_string(value: str) -> str:
    """Redact PII patterns from a string. ISO dates and hex ids pass through."""
    if _ISO_DATE.match(value) or _HEX_ID.match(value):
        return value
    result = _EMAIL_PATTERN.sub(_REDACTED, value)
    result = _PHONE_PATTERN.sub(_REDACTED, result)
    return result


def redact_value(value: Any) -> str:
    """Redact any value for safe logging. Returns string representation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        # Structure only, never values
        return f"dict(keys={sorted(value.keys())})"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {
        k: _REDACTED if k in _FREE_TEXT_KEYS and v is not None else redact_value(v)
        for k, v in kwargs.items()
    }
