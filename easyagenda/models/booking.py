# ===== easyagenda/models/booking.py =====
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from easyagenda.models.base import Base
from easyagenda.schemas.booking import BookingStatus


class Booking(Base):
    """
    Ledger row of a reserved slot. Rows are never deleted; they only move to a
    terminal status (cancelled, completed, no_show).
    """
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_professional_window", "professional_id", "start_datetime", "end_datetime"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # References
    company_id = Column(Uuid, ForeignKey("companies.id"), nullable=False, index=True)
    service_id = Column(Uuid, ForeignKey("services.id"), nullable=False)
    professional_id = Column(Uuid, ForeignKey("professionals.id"), nullable=False)
    client_id = Column(String(100), nullable=False, index=True)

    # Slot, company wall-clock time
    start_datetime = Column(DateTime, nullable=False)
    end_datetime = Column(DateTime, nullable=False)

    # Status tracking
    status = Column(String(30), nullable=False, default=BookingStatus.PENDING_APPROVAL.value)
    payment_reference = Column(String(200), nullable=True)

    # Reminders & notifications
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(20), nullable=True)  # client, professional, company, system
    cancellation_reason = Column(Text, nullable=True)

    company = relationship("Company")
    service = relationship("Service")
    professional = relationship("Professional")

    def __repr__(self):
        return f"<Booking(id={self.id}, status={self.status}, start={self.start_datetime})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "service_id": str(self.service_id),
            "professional_id": str(self.professional_id),
            "client_id": self.client_id,
            "start": self.start_datetime.isoformat(),
            "end": self.end_datetime.isoformat(),
            "status": self.status,
            "payment_reference": self.payment_reference,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "confirmed_at": self.confirmed_at.isoformat() if self.confirmed_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "cancelled_by": self.cancelled_by,
            "cancellation_reason": self.cancellation_reason,
        }
