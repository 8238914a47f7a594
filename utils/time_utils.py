from __future__ import annotations

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo


DEFAULT_TIMEZONE_NAME = "Europe/Berlin"
BERLIN_TIMEZONE = ZoneInfo(DEFAULT_TIMEZONE_NAME)


def berlin_now() -> datetime:
    return datetime.now(BERLIN_TIMEZONE)


def berlin_now_utc() -> datetime:
    return berlin_now().astimezone(UTC)


def berlin_today() -> date:
    return berlin_now().date()


def as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_berlin(value: datetime) -> datetime:
    return as_utc(value).astimezone(BERLIN_TIMEZONE)


def calendar_day(value: date | datetime) -> date:
    """Berlin calendar day of ``value``. Naive datetimes are read as UTC."""
    if isinstance(value, datetime):
        return to_berlin(value).date()
    return value
