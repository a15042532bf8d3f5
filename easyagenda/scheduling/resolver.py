"""
Availability Resolver

Resolves the effective day definition of a (professional, service) pair for
each date by walking an explicit precedence chain:

    1. date override (narrowest scope wins)
    2. service weekly schedule, when the service uses specific availability
    3. professional weekly schedule, when the service uses general/inherited
       availability and the professional keeps an own schedule
    4. company default weekly schedule

Pure: works on an AvailabilityContext snapshot, never touches the database.
"""
from datetime import date, timedelta
from enum import IntEnum
from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from easyagenda.schemas.availability import DayAvailability, TimeWindow
from easyagenda.schemas.catalog import AvailabilityType
from easyagenda.scheduling.windows import day_windows

CLOSED = DayAvailability(active=False)


class OverrideScope(IntEnum):
    COMPANY = 0
    PROFESSIONAL = 1
    SERVICE = 2
    PROFESSIONAL_SERVICE = 3


class DateOverride(BaseModel):
    model_config = ConfigDict(frozen=True)

    on_date: date
    scope: OverrideScope
    is_available: bool
    day: Optional[DayAvailability] = None


class AvailabilityContext(BaseModel):
    """Snapshot of every rule layer relevant to one professional and service"""
    model_config = ConfigDict(frozen=True)

    availability_type: AvailabilityType = AvailabilityType.GENERAL
    company_rules: Dict[int, DayAvailability] = Field(default_factory=dict)
    professional_rules: Optional[Dict[int, DayAvailability]] = None
    service_rules: Optional[Dict[int, DayAvailability]] = None
    overrides: List[DateOverride] = Field(default_factory=list)


class AvailabilityResolver:
    """Turns an AvailabilityContext into open windows per date"""

    def __init__(self, context: AvailabilityContext):
        self.context = context
        self._overrides: Dict[date, DateOverride] = {}
        for override in context.overrides:
            current = self._overrides.get(override.on_date)
            if current is None or override.scope > current.scope:
                self._overrides[override.on_date] = override

    def weekly_layer(self) -> Dict[int, DayAvailability]:
        """The recurring schedule that applies when no override exists"""
        ctx = self.context

        if ctx.availability_type == AvailabilityType.SPECIFIC and ctx.service_rules:
            return ctx.service_rules

        if ctx.availability_type in (AvailabilityType.GENERAL, AvailabilityType.INHERITED) and ctx.professional_rules:
            return ctx.professional_rules

        return ctx.company_rules

    def effective_day(self, target_date: date) -> DayAvailability:
        override = self._overrides.get(target_date)
        if override is not None:
            if not override.is_available or override.day is None:
                return CLOSED
            return override.day

        # A weekday missing from the winning schedule is a closed day
        return self.weekly_layer().get(target_date.weekday(), CLOSED)

    def windows_for(self, target_date: date) -> List[TimeWindow]:
        return day_windows(target_date, self.effective_day(target_date))

    def iter_windows(self, date_from: date, date_to: date) -> Iterator[Tuple[date, List[TimeWindow]]]:
        """Lazily yield (date, windows) for every date in [date_from, date_to]"""
        current = date_from
        while current <= date_to:
            yield current, self.windows_for(current)
            current += timedelta(days=1)
