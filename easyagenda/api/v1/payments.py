# ============================================================================
# easyagenda/api/v1/payments.py
# Callbacks from the payment subsystem
# ============================================================================
from fastapi import APIRouter, Depends, Path
from typing import Optional
from uuid import UUID

from easyagenda.api.dependencies import get_booking_service
from easyagenda.schemas.booking import PaymentConfirmedRequest
from easyagenda.services.booking.booking_service import BookingService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/{booking_id}/confirmed")
def payment_confirmed(
        data: Optional[PaymentConfirmedRequest] = None,
        booking_id: UUID = Path(..., description="The booking ID"),
        booking_service: BookingService = Depends(get_booking_service)
):
    """Booking fee paid; repeated callbacks are ignored"""
    reference = data.payment_reference if data else None
    return booking_service.payment_confirmed(booking_id, reference).to_dict()


@router.post("/{booking_id}/failed")
def payment_failed(
        booking_id: UUID = Path(..., description="The booking ID"),
        booking_service: BookingService = Depends(get_booking_service)
):
    return booking_service.payment_failed(booking_id).to_dict()
