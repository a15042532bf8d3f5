"""
Interval arithmetic over open windows.

All windows are half-open [start, end) intervals of naive datetimes in the
company's wall-clock time, with whole-minute precision.
"""
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from easyagenda.core.errors import InvalidRuleError
from easyagenda.schemas.availability import DayAvailability, TimeWindow


def _is_whole_minute(value: Optional[time]) -> bool:
    return value is None or (value.second == 0 and value.microsecond == 0)


def validate_day_availability(day: DayAvailability, label: str = "day") -> None:
    """
    Reject malformed day definitions.

    Raises:
        InvalidRuleError: start >= end, missing hours on an active day, a
            half-defined break, or a break outside the day window.
    """
    if day.active and (day.start_time is None or day.end_time is None):
        raise InvalidRuleError(f"{label}: an active day needs start_time and end_time")

    for value in (day.start_time, day.end_time, day.break_start, day.break_end):
        if not _is_whole_minute(value):
            raise InvalidRuleError(f"{label}: times must be whole minutes")

    if day.start_time is not None and day.end_time is not None:
        if day.start_time >= day.end_time:
            raise InvalidRuleError(
                f"{label}: start_time {day.start_time:%H:%M} must be before end_time {day.end_time:%H:%M}"
            )

    if not day.has_break:
        return

    if day.break_start is None or day.break_end is None:
        raise InvalidRuleError(f"{label}: break_start and break_end must be set together")
    if day.break_start >= day.break_end:
        raise InvalidRuleError(f"{label}: break_start must be before break_end")
    if day.start_time is None or day.end_time is None:
        raise InvalidRuleError(f"{label}: a break needs the day's start_time and end_time")
    if day.break_start < day.start_time or day.break_end > day.end_time:
        raise InvalidRuleError(
            f"{label}: break {day.break_start:%H:%M}-{day.break_end:%H:%M} is outside "
            f"{day.start_time:%H:%M}-{day.end_time:%H:%M}"
        )


def day_windows(target_date: date, day: DayAvailability) -> List[TimeWindow]:
    """
    Open windows of a single day, split around the break.

    Inactive days yield no windows. Malformed days raise instead of being
    dropped, so bad data written around the rule store still surfaces.
    """
    if not day.active:
        return []

    validate_day_availability(day, label=target_date.isoformat())

    start = datetime.combine(target_date, day.start_time)
    end = datetime.combine(target_date, day.end_time)

    if not day.has_break:
        return [TimeWindow(start=start, end=end)]

    break_start = datetime.combine(target_date, day.break_start)
    break_end = datetime.combine(target_date, day.break_end)
    return subtract_interval([TimeWindow(start=start, end=end)], break_start, break_end)


def subtract_interval(windows: Iterable[TimeWindow], start: datetime, end: datetime) -> List[TimeWindow]:
    """
    Remove [start, end) from every window.

    Each window yields 0, 1 or 2 pieces:
        no overlap -> unchanged
        fully covered -> removed
        covers the head or the tail -> trimmed
        strictly inside -> split in two
    """
    result = []
    for window in windows:
        if end <= window.start or start >= window.end:
            result.append(window)
            continue

        if start > window.start:
            result.append(TimeWindow(start=window.start, end=start))
        if end < window.end:
            result.append(TimeWindow(start=end, end=window.end))

    return result


def merge_windows(windows: Iterable[TimeWindow]) -> List[TimeWindow]:
    """Join overlapping or adjacent windows, sorted by start"""
    ordered = sorted(windows, key=lambda w: w.start)
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = TimeWindow(start=last.start, end=current.end)
        else:
            merged.append(current)

    return merged


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open overlap test; touching intervals do not overlap"""
    return start_a < end_b and start_b < end_a


def weekly_occurrences(
        start: datetime,
        end: datetime,
        range_start: datetime,
        range_end: datetime,
        repeats_weekly: bool = True,
) -> List[TimeWindow]:
    """Occurrences of [start, end), repeated every 7 days when asked, that overlap the range"""
    if not repeats_weekly:
        return [TimeWindow(start=start, end=end)] if overlaps(start, end, range_start, range_end) else []

    week = timedelta(days=7)
    duration = end - start

    skip = (range_start - end) // week + 1 if end <= range_start else 0
    occurrence_start = start + skip * week

    occurrences = []
    while occurrence_start < range_end:
        occurrence_end = occurrence_start + duration
        if occurrence_end > range_start:
            occurrences.append(TimeWindow(start=occurrence_start, end=occurrence_end))
        occurrence_start += week

    return occurrences
