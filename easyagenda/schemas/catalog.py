# easyagenda/schemas/catalog.py
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID
from enum import Enum


class ConfirmationType(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class AvailabilityType(str, Enum):
    GENERAL = "general"  # professional schedule, else company default
    SPECIFIC = "specific"  # service's own weekly schedule
    INHERITED = "inherited"  # same chain as general, kept for the product's wording


class CompanyCreate(BaseModel):
    """Request model for creating a company"""
    name: str = Field(..., min_length=1, max_length=200)
    timezone: Optional[str] = Field(None, description="IANA timezone, defaults to DEFAULT_TIMEZONE")
    notification_channels: Optional[List[str]] = Field(None, description="email and/or whatsapp")
    notification_webhook_url: Optional[str] = Field(None, max_length=500)
    notification_webhook_secret: Optional[str] = Field(None, max_length=200)


class ProfessionalCreate(BaseModel):
    """Request model for creating a professional"""
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None


class ServiceCreate(BaseModel):
    """Request model for creating a service"""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    professional_ids: List[UUID] = Field(default_factory=list)
    duration_minutes: int = Field(..., description="Duration in minutes")
    interval_between_slots_minutes: int = Field(0, description="Gap between consecutive slots")
    simultaneous_bookings_per_slot: int = Field(1)
    simultaneous_bookings_per_user: int = Field(1)
    block_24_hours: bool = Field(False)
    confirmation_type: ConfirmationType = Field(ConfirmationType.AUTOMATIC)
    availability_type: AvailabilityType = Field(AvailabilityType.GENERAL)
    booking_fee_enabled: bool = Field(False)
    booking_fee_amount: Optional[float] = Field(None, ge=0)
    is_active: bool = Field(True)
