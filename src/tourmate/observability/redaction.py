"""Redaction helpers for log context.

Guest profile data (e-mail, national ID, free-text observations) must never
reach the logs verbatim. Route anything that came from a caller through
``safe_log_context`` before logging it.
"""

import re
from typing import Any

_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")

_REDACTED = "[REDACTED]"

# Keys whose values are personal data regardless of their shape
SENSITIVE_KEYS = frozenset(
    {
        "email",
        "full_name",
        "national_id",
        "nationalID",
        "observations",
    }
)


def redact_string(value: str) -> str:
    """Mask e-mail addresses and phone-like digit runs inside a string."""
    result = _EMAIL_PATTERN.sub(_REDACTED, value)
    return _PHONE_PATTERN.sub(_REDACTED, result)


def redact_value(value: Any) -> str:
    """Return a log-safe string rendering of ``value``."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return f"dict(keys={sorted(value.keys())})"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build an ``extra_fields`` dict with every value redacted.

    Keys listed in SENSITIVE_KEYS are masked entirely.
    """
    return {
        key: _REDACTED if key in SENSITIVE_KEYS else redact_value(value)
        for key, value in kwargs.items()
    }
