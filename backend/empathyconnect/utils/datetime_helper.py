"""Utility functions for datetime operations."""

from datetime import datetime, timedelta, UTC, timezone


def utc_now():
    """Return the current UTC datetime in a timezone-aware format."""
    return datetime.now(UTC)


def make_aware(dt):
    """Convert a naive datetime to UTC-aware datetime.

    Some backends (SQLite) hand timestamps back without tzinfo even when they
    were stored as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def utc_day_bounds(moment):
    """Return the start of the UTC day containing ``moment`` and of the next day."""
    moment = make_aware(moment).astimezone(timezone.utc)
    start = datetime(moment.year, moment.month, moment.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)
