"""Timezone helpers.

The Cassandra driver hands back naive datetimes that are really UTC.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc_aware(value: datetime | None) -> datetime | None:
    """Attach UTC to a naive datetime read from the store."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def epoch_seconds(value: datetime) -> int:
    return int(ensure_utc_aware(value).timestamp())


def iso_or_none(value: datetime | None) -> str | None:
    aware = ensure_utc_aware(value)
    return aware.isoformat() if aware else None
