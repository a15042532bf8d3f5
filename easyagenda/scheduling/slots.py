"""
Slot Generation

Expands open windows into discrete candidate slots.
"""
from datetime import timedelta
from typing import Iterable, List
from uuid import UUID

from easyagenda.schemas.availability import TimeWindow
from easyagenda.schemas.booking import Slot


def generate_slots(
        windows: Iterable[TimeWindow],
        professional_id: UUID,
        service_id: UUID,
        duration_minutes: int,
        interval_minutes: int = 0,
) -> List[Slot]:
    """
    Slide a duration-long slot across each window.

    Each window starts its own sequence at the window start and advances by
    duration + interval; a slot is emitted only when it ends within the
    window, so no slot crosses a break or the day boundary.

    Returns:
        Slots ordered by start. A list, so it can be iterated again.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    if interval_minutes < 0:
        raise ValueError("interval_minutes must not be negative")

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=duration_minutes + interval_minutes)

    slots = []
    for window in sorted(windows, key=lambda w: w.start):
        current_start = window.start

        while current_start + duration <= window.end:
            slots.append(Slot(
                professional_id=professional_id,
                service_id=service_id,
                start=current_start,
                end=current_start + duration,
            ))
            current_start += step

    return slots
