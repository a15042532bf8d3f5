# easyagenda/schemas/availability.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict
import datetime as dt
from datetime import datetime, time
from uuid import UUID
from enum import Enum


class RuleOwnerType(str, Enum):
    COMPANY = "company"
    PROFESSIONAL = "professional"
    SERVICE = "service"


class DayAvailability(BaseModel):
    """Open hours of one day, with an optional break"""
    model_config = ConfigDict(frozen=True)

    active: bool = Field(True, description="False closes the whole day")
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    break_start: Optional[time] = None
    break_end: Optional[time] = None

    @property
    def has_break(self) -> bool:
        return self.break_start is not None or self.break_end is not None


class TimeWindow(BaseModel):
    """Half-open [start, end) interval in company wall-clock time"""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end


class RuleSetUpdate(BaseModel):
    """Weekly schedule keyed by weekday, 0=Monday ... 6=Sunday"""
    days: Dict[int, DayAvailability] = Field(default_factory=dict)


class OverrideCreate(BaseModel):
    """Date-specific exception: a full-day block or replacement hours"""
    company_id: UUID
    professional_id: Optional[UUID] = None
    service_id: Optional[UUID] = None
    date: dt.date
    is_available: bool = Field(False, description="False blocks the whole day")
    day: Optional[DayAvailability] = Field(None, description="Replacement hours when available")
    reason: Optional[str] = None


class AgendaBlockCreate(BaseModel):
    """Partial block of the agenda, company-wide or for one professional"""
    company_id: UUID
    professional_id: Optional[UUID] = None
    start_datetime: datetime
    end_datetime: datetime
    repeats_weekly: bool = False
    reason: Optional[str] = None
    cancel_conflicts: bool = Field(False, description="Cancel bookings the block overlaps")
