"""UTC helpers. Stored and compared datetimes are always timezone-aware UTC."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Coerce dt to aware UTC; naive values are taken as UTC.

    Applied wherever expiry or revocation times cross the persistence
    boundary, since SQLite returns naive datetimes for timezone-aware columns.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def is_past(dt: datetime, now: datetime | None = None) -> bool:
    """True if dt is at or before now (expiry boundary is exclusive)."""
    return ensure_utc(dt) <= (ensure_utc(now) or utc_now())
