"""
Timestamp utilities for persisted upgrade state.

All timestamps written to the state file are timezone-aware UTC datetimes
rendered as ISO-8601 strings, so a value survives a save/load round-trip
byte-for-byte and the state checksum stays stable.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return the current wall-clock time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def advance_timestamp(previous: Optional[datetime]) -> datetime:
    """
    Get a timestamp strictly later than a previous one.

    Wall-clock reads can repeat (coarse clocks) or go backwards (NTP
    adjustments). Stage history ordering relies on strictly increasing
    update times, so the result is bumped one microsecond past `previous`
    when the clock has not moved on.

    Args:
        previous: Last recorded timestamp, if any

    Returns:
        UTC datetime greater than `previous`
    """
    now = utc_now()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def format_timestamp(ts: Optional[datetime]) -> Optional[str]:
    """Render a timestamp for the state file (None stays None)."""
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a timestamp read from the state file.

    Args:
        value: ISO-8601 string, or None/empty for an absent timestamp

    Returns:
        Timezone-aware UTC datetime, or None

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")

    # fromisoformat() only learned the "Z" suffix in 3.11
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)
