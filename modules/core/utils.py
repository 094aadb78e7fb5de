"""
Core Utilities.

Shared utility functions used across the client.
All modules should import utilities from this module.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def epoch_now() -> int:
    """
    Return the current time as whole seconds since the Unix epoch.

    Query filters and fold ranges are expressed in epoch seconds, so this
    is the single place "now" is read when building a query.
    """
    return int(utc_now().timestamp())


def to_epoch(value: datetime) -> int:
    """Convert a datetime to whole epoch seconds, treating naive values as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())
