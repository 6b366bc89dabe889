"""Time helpers: UTC timestamps and calendar days."""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Return today's calendar day in UTC."""
    return utc_now().date()
