# easyagenda/models/availability.py
from sqlalchemy import Column, String, Integer, Boolean, Time, Date, DateTime, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.sql import func
import uuid

from easyagenda.models.base import Base


class AvailabilityRule(Base):
    """One weekday of a weekly schedule owned by a company, professional or service"""
    __tablename__ = "availability_rules"
    __table_args__ = (
        UniqueConstraint("owner_type", "owner_id", "day_of_week", name="uq_availability_rule_owner_day"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    owner_type = Column(String(20), nullable=False)  # company, professional, service
    owner_id = Column(Uuid, nullable=False, index=True)

    day_of_week = Column(Integer, nullable=False)  # 0=Monday, 6=Sunday
    is_active = Column(Boolean, nullable=False, default=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    break_start = Column(Time, nullable=True)
    break_end = Column(Time, nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class AvailabilityOverride(Base):
    """Specific date overrides (holidays, time-off, special hours)"""
    __tablename__ = "availability_overrides"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    # Narrowest scope wins: professional+service, service, professional, company
    professional_id = Column(Uuid, ForeignKey("professionals.id", ondelete="CASCADE"), nullable=True)
    service_id = Column(Uuid, ForeignKey("services.id", ondelete="CASCADE"), nullable=True)

    date = Column(Date, nullable=False, index=True)
    is_available = Column(Boolean, nullable=False)  # False = day off
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    break_start = Column(Time, nullable=True)
    break_end = Column(Time, nullable=True)
    reason = Column(String, nullable=True)  # "Holiday", "Vacation", etc.

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "professional_id": str(self.professional_id) if self.professional_id else None,
            "service_id": str(self.service_id) if self.service_id else None,
            "date": self.date.isoformat(),
            "is_available": self.is_available,
            "start_time": self.start_time.strftime("%H:%M") if self.start_time else None,
            "end_time": self.end_time.strftime("%H:%M") if self.end_time else None,
            "break_start": self.break_start.strftime("%H:%M") if self.break_start else None,
            "break_end": self.break_end.strftime("%H:%M") if self.break_end else None,
            "reason": self.reason,
        }


class AgendaBlock(Base):
    """Partial block of the agenda (meeting, maintenance), optionally weekly"""
    __tablename__ = "agenda_blocks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    professional_id = Column(Uuid, ForeignKey("professionals.id", ondelete="CASCADE"), nullable=True)  # None = whole company

    start_datetime = Column(DateTime, nullable=False)
    end_datetime = Column(DateTime, nullable=False)
    repeats_weekly = Column(Boolean, nullable=False, default=False)
    reason = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "professional_id": str(self.professional_id) if self.professional_id else None,
            "start_datetime": self.start_datetime.isoformat(),
            "end_datetime": self.end_datetime.isoformat(),
            "repeats_weekly": self.repeats_weekly,
            "reason": self.reason,
            "is_active": self.is_active,
        }
