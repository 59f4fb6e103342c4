"""
UTC clock helpers.

Every timestamp in the core is timezone-aware UTC. SQLite drops tzinfo on
the way back, so values read from storage pass through `as_utc`.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def timestamp() -> str:
    """ISO-8601 UTC timestamp for JSON `details` payloads."""
    return utcnow().isoformat()
