"""UTC date/time utilities."""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Return the current UTC calendar date.

    Birth and expiration dates are compared against this value, never
    against the server's local date.
    """
    return utc_now().date()
