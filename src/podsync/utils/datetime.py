"""Timezone-aware datetime helpers.

All timestamps in podsync are aware UTC datetimes. Naive datetimes only show
up at the edges (config dates, RSS dates without zone) and are normalized here.
"""

from datetime import date, datetime, timezone


def now_utc() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_config_date(value: str) -> datetime:
    """Parse a ``YYYY-MM-DD`` config value to midnight UTC.

    Raises:
        ValueError: If the value is not a valid date
    """
    parsed = date.fromisoformat(value.strip())
    return datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)


def to_unix(value: datetime) -> int:
    """Whole seconds since the epoch."""
    return int(ensure_utc(value).timestamp())
