# easyagenda/utils/timeutils.py
"""Wall-clock helpers; bookings are stored in the company's local time"""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_timezone(tz_name: str) -> bool:
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def local_now(tz_name: str) -> datetime:
    """Current naive wall-clock time in the given timezone"""
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)


def to_wall_clock(value: datetime, tz_name: str) -> datetime:
    """
    Naive wall-clock time of `value` in the given timezone.
    Aware datetimes are converted first; naive ones are taken as already local.
    """
    if value.tzinfo is not None:
        value = value.astimezone(ZoneInfo(tz_name))
    return value.replace(tzinfo=None)
