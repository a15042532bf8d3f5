# easyagenda/schemas/booking.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from enum import Enum


class BookingStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PENDING_APPROVAL = "pending_approval"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class ActorRole(str, Enum):
    CLIENT = "client"
    PROFESSIONAL = "professional"
    COMPANY = "company"
    SYSTEM = "system"


class Actor(BaseModel):
    """Who is asking for a booking transition"""
    model_config = ConfigDict(frozen=True)

    role: ActorRole
    id: Optional[str] = Field(None, description="client id, professional id or company id")

    @classmethod
    def system(cls) -> "Actor":
        return cls(role=ActorRole.SYSTEM)


class Slot(BaseModel):
    """Bookable (professional, service, start, end) tuple"""
    model_config = ConfigDict(frozen=True)

    professional_id: UUID
    service_id: UUID
    start: datetime
    end: datetime
    capacity_remaining: Optional[int] = None


class ReserveRequest(BaseModel):
    """Client request to reserve a slot"""
    professional_id: UUID
    service_id: UUID
    client_id: str = Field(..., min_length=1, max_length=100)
    start: datetime = Field(..., description="Slot start in company wall-clock time, or with a UTC offset")
    end: Optional[datetime] = Field(None, description="Optional, must match the service duration")


class TransitionRequest(BaseModel):
    """Actor performing confirm / reject / cancel / complete / no-show"""
    actor: Actor
    reason: Optional[str] = None


class PaymentConfirmedRequest(BaseModel):
    payment_reference: Optional[str] = None
