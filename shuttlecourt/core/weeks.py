"""Week bucketing for signups.

Every signup belongs to a Monday–Sunday week. New signups always go to the
week after the current one, so every call made during the same calendar week
returns the same range. Comparisons work on calendar days in the club's
timezone, so sub-second differences between stored and computed boundaries
never split a week in two.
"""

from __future__ import annotations

import datetime
from typing import Optional
from zoneinfo import ZoneInfo

DAYS_IN_WEEK = 7


def club_timezone(name: str) -> datetime.tzinfo:
    """Return the tzinfo for a configured IANA timezone name."""
    return ZoneInfo(name)


def localize(
    value: datetime.datetime, tz: Optional[datetime.tzinfo]
) -> datetime.datetime:
    """Express an aware datetime in `tz`. Naive values are assumed to be local."""
    if tz is None:
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def _start_of_day(value: datetime.datetime) -> datetime.datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(value: datetime.datetime) -> datetime.datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999999)


def week_range_for(
    day: datetime.datetime,
) -> tuple[datetime.datetime, datetime.datetime]:
    """Return the Monday 00:00 to Sunday end-of-day range containing `day`."""
    monday = _start_of_day(day) - datetime.timedelta(days=day.weekday())
    sunday = _end_of_day(monday + datetime.timedelta(days=DAYS_IN_WEEK - 1))
    return monday, sunday


def next_week_range(
    now: Optional[datetime.datetime] = None,
    tz: Optional[datetime.tzinfo] = None,
) -> tuple[datetime.datetime, datetime.datetime]:
    """Return the canonical range new signups are filed under."""
    if now is None:
        now = datetime.datetime.now(tz or datetime.timezone.utc)
    now = localize(now, tz)
    this_monday, _ = week_range_for(now)
    return week_range_for(this_monday + datetime.timedelta(days=DAYS_IN_WEEK))


def same_week(
    start_a: datetime.datetime,
    end_a: datetime.datetime,
    start_b: datetime.datetime,
    end_b: datetime.datetime,
    tz: Optional[datetime.tzinfo] = None,
) -> bool:
    """Check that two ranges share both boundary days."""
    return (
        localize(start_a, tz).date() == localize(start_b, tz).date()
        and localize(end_a, tz).date() == localize(end_b, tz).date()
    )


def week_key(
    start: datetime.datetime,
    end: datetime.datetime,
    tz: Optional[datetime.tzinfo] = None,
) -> str:
    """Build the id used as the one-record-per-week index."""
    start_str = localize(start, tz).date().isoformat()
    end_str = localize(end, tz).date().isoformat()
    return f"week_{start_str}_to_{end_str}"


def format_range(
    start: datetime.datetime,
    end: datetime.datetime,
    tz: Optional[datetime.tzinfo] = None,
) -> str:
    """Format a range for display, e.g. ``03/11/2025 - 09/11/2025``."""
    return (
        f"{localize(start, tz).strftime('%d/%m/%Y')} - "
        f"{localize(end, tz).strftime('%d/%m/%Y')}"
    )


def week_info(
    start: datetime.datetime,
    end: datetime.datetime,
    tz: Optional[datetime.tzinfo] = None,
) -> dict[str, str]:
    """The `weekInfo` block attached to registration summaries."""
    local_start = localize(start, tz)
    iso_year, iso_week, _ = local_start.isocalendar()
    return {
        "weekKey": week_key(start, end, tz),
        "range": format_range(start, end, tz),
        "week": str(iso_week),
        "year": str(iso_year),
    }
