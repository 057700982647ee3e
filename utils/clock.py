"""Timezone helpers. SQLite hands back naive datetimes even for timezone=True columns."""
from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes from the database as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def start_of_day(value: datetime | None = None) -> datetime:
    value = as_utc(value) or utcnow()
    return value.replace(hour=0, minute=0, second=0, microsecond=0)
