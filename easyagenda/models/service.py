# easyagenda/models/service.py
"""
Service Model - bookable offerings of a company
Each service belongs to one company and lists the professionals who perform it.
"""
from sqlalchemy import Column, String, Numeric, Integer, ForeignKey, Boolean, DateTime, Text, Table, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from easyagenda.models.base import Base
from easyagenda.schemas.catalog import AvailabilityType, ConfirmationType


service_professionals = Table(
    "service_professionals",
    Base.metadata,
    Column("service_id", Uuid, ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
    Column("professional_id", Uuid, ForeignKey("professionals.id", ondelete="CASCADE"), primary_key=True),
)


class Service(Base):
    """
    Booking policy of a service: duration and spacing of slots, concurrency
    limits, confirmation mode and which availability layer applies.
    """
    __tablename__ = "services"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Core service details
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=True)

    # Slot shape
    duration_minutes = Column(Integer, nullable=False)
    interval_between_slots_minutes = Column(Integer, nullable=False, default=0)

    # Capacity
    simultaneous_bookings_per_slot = Column(Integer, nullable=False, default=1)
    simultaneous_bookings_per_user = Column(Integer, nullable=False, default=1)
    block_24_hours = Column(Boolean, nullable=False, default=False)

    # Lifecycle policy
    confirmation_type = Column(String(20), nullable=False, default=ConfirmationType.AUTOMATIC.value)
    availability_type = Column(String(20), nullable=False, default=AvailabilityType.GENERAL.value)

    # Booking fee gates pending_payment
    booking_fee_enabled = Column(Boolean, nullable=False, default=False)
    booking_fee_amount = Column(Numeric(10, 2), nullable=True)

    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    # Relationships
    company = relationship("Company", back_populates="services")
    professionals = relationship(
        "Professional", secondary=service_professionals, back_populates="services"
    )

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, company_id={self.company_id})>"

    def offered_by(self, professional_id) -> bool:
        return any(p.id == professional_id for p in self.professionals)

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "name": self.name,
            "description": self.description,
            "price": float(self.price) if self.price is not None else None,
            "duration_minutes": self.duration_minutes,
            "interval_between_slots_minutes": self.interval_between_slots_minutes,
            "simultaneous_bookings_per_slot": self.simultaneous_bookings_per_slot,
            "simultaneous_bookings_per_user": self.simultaneous_bookings_per_user,
            "block_24_hours": self.block_24_hours,
            "confirmation_type": self.confirmation_type,
            "availability_type": self.availability_type,
            "booking_fee_enabled": self.booking_fee_enabled,
            "booking_fee_amount": float(self.booking_fee_amount) if self.booking_fee_amount is not None else None,
            "professional_ids": [str(p.id) for p in self.professionals],
            "is_active": self.is_active,
        }
