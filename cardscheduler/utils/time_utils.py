"""
Time utility functions.

All timestamps are stored as naive UTC datetimes. Calendar days ("today",
"tomorrow") are computed in the scheduler timezone and converted back.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from cardscheduler.core.config import settings


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(now: datetime, tz_name: Optional[str] = None) -> datetime:
    """
    Return local midnight of the day containing `now`, as naive UTC.

    Args:
        now: Naive UTC datetime
        tz_name: IANA timezone name (defaults to the configured scheduler timezone)

    Returns:
        Naive UTC datetime of the local start of day
    """
    tz = ZoneInfo(tz_name or settings.scheduler_timezone)
    local_now = now.replace(tzinfo=timezone.utc).astimezone(tz)
    local_midnight = datetime(local_now.year, local_now.month, local_now.day, tzinfo=tz)
    return local_midnight.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_day_offset(now: datetime, days: int, tz_name: Optional[str] = None) -> datetime:
    """
    Return local midnight `days` calendar days after the day containing `now`, as naive UTC.

    Calendar arithmetic happens in local time so DST changes never shift the
    result off midnight.
    """
    tz = ZoneInfo(tz_name or settings.scheduler_timezone)
    local_now = now.replace(tzinfo=timezone.utc).astimezone(tz)
    target_day = local_now.date() + timedelta(days=days)
    local_midnight = datetime(target_day.year, target_day.month, target_day.day, tzinfo=tz)
    return local_midnight.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_next_day(now: datetime, tz_name: Optional[str] = None) -> datetime:
    """Local midnight of the day after `now`, as naive UTC."""
    return start_of_day_offset(now, 1, tz_name)


def local_date(moment: datetime, tz_name: Optional[str] = None) -> date:
    """Calendar date of a naive UTC datetime in the scheduler timezone."""
    tz = ZoneInfo(tz_name or settings.scheduler_timezone)
    return moment.replace(tzinfo=timezone.utc).astimezone(tz).date()


def calendar_days_between(earlier: datetime, later: datetime, tz_name: Optional[str] = None) -> int:
    """Number of local calendar days from `earlier` to `later` (negative if reversed)."""
    return (local_date(later, tz_name) - local_date(earlier, tz_name)).days
