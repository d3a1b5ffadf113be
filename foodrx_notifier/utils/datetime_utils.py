from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from foodrx_notifier.config.settings import settings


def utc_now() -> datetime:
    """
    Get current UTC datetime as a timezone-aware datetime.

    Returns:
        datetime: Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime object to UTC timezone-aware datetime.

    Args:
        dt: Datetime object to convert

    Returns:
        datetime: UTC timezone-aware datetime
    """
    if dt.tzinfo is None:
        # Assume naive datetime is in UTC
        return dt.replace(tzinfo=timezone.utc)
    else:
        # Convert to UTC
        return dt.astimezone(timezone.utc)


@lru_cache
def notification_zone() -> ZoneInfo:
    """The zone whose calendar days bound 'today' for dedupe and resets."""
    return ZoneInfo(settings.NOTIFICATION_TIMEZONE)


def local_date(dt: datetime, zone: ZoneInfo) -> date:
    """Calendar date of an instant as seen in the given zone."""
    return to_utc(dt).astimezone(zone).date()


def start_of_local_day(dt: datetime, zone: ZoneInfo) -> datetime:
    """
    Midnight of the local calendar day containing dt, returned as aware UTC.

    Examples (zone America/New_York, EDT = UTC-4):
    - 2025-06-23 03:30 UTC -> 2025-06-22 04:00 UTC (still the 22nd locally)
    - 2025-06-23 14:00 UTC -> 2025-06-23 04:00 UTC
    """
    day = local_date(dt, zone)
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)


def start_of_next_local_day(dt: datetime, zone: ZoneInfo) -> datetime:
    day = local_date(dt, zone) + timedelta(days=1)
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)


def end_of_local_day(day: date, zone: ZoneInfo) -> datetime:
    """23:59:59.999 local on the given day, as aware UTC."""
    return datetime.combine(
        day, time(23, 59, 59, 999000), tzinfo=zone
    ).astimezone(timezone.utc)
