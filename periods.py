from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(dt_timezone.utc).replace(tzinfo=None)


def local_today(timezone: Optional[str] = None) -> date:
    return datetime.now(ZoneInfo(timezone or get_settings().timezone)).date()


def week_bounds(today: date) -> Period:
    # weekday() is 0 for Monday, so a Sunday rolls back six days
    start = today - timedelta(days=today.weekday())
    return Period("week", start, start + timedelta(days=6))


def current_week(
    *, today: Optional[date] = None, timezone: Optional[str] = None
) -> Period:
    return week_bounds(today or local_today(timezone))


def week_window(
    period: Period, *, timezone: Optional[str] = None
) -> tuple[datetime, datetime]:
    """Half-open range covering every local day of the period.

    Bounds are local midnights in `timezone` converted to naive UTC, the form
    transaction timestamps are stored in.
    """
    zone = ZoneInfo(timezone or get_settings().timezone)
    start = datetime.combine(period.start, time.min, tzinfo=zone)
    end = datetime.combine(period.end + timedelta(days=1), time.min, tzinfo=zone)
    return as_naive_utc(start), as_naive_utc(end)
