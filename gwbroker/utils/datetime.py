"""Datetime helpers.

Provides UTC timestamp helpers without using deprecated ``datetime.utcnow()``.
"""

from __future__ import annotations

from datetime import UTC, datetime

# Wire format of whitelist dates and the gateway clock (ISO 8601, no zone)
WIRE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def utcnow() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Naive values are taken to be UTC already; some database drivers hand
    back stored timestamps without their zone.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def format_wire(value: datetime) -> str:
    """Format a timestamp for API output (UTC, zone suffix omitted)."""
    return as_utc(value).strftime(WIRE_FORMAT)
