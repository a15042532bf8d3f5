# ============================================================================
# easyagenda/api/v1/bookings.py
# Reservation and booking lifecycle
# Handlers are plain def: reserve may wait on the booking lock, so it runs
# in the threadpool and never holds up the event loop
# ============================================================================
from fastapi import APIRouter, Depends, Path, Query, status
from typing import Optional
from uuid import UUID

from easyagenda.api.dependencies import get_booking_service
from easyagenda.schemas.booking import BookingStatus, ReserveRequest, TransitionRequest
from easyagenda.services.booking.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", status_code=status.HTTP_201_CREATED)
def reserve(data: ReserveRequest, booking_service: BookingService = Depends(get_booking_service)):
    """
    Reserve a slot.
    Returns 409 slot_unavailable when the slot was taken meanwhile; query
    /slots again and retry.
    """
    booking = booking_service.reserve(
        professional_id=data.professional_id,
        service_id=data.service_id,
        client_id=data.client_id,
        slot_start=data.start,
        slot_end=data.end,
    )
    return booking.to_dict()


@router.get("")
def list_bookings(
        professional_id: Optional[UUID] = Query(None, description="Filter by professional"),
        client_id: Optional[str] = Query(None, description="Filter by client"),
        status: Optional[BookingStatus] = Query(None, description="Filter by status"),
        booking_service: BookingService = Depends(get_booking_service)
):
    if professional_id is None and client_id is None:
        raise ValueError("professional_id or client_id is required")

    bookings = booking_service.list_bookings(professional_id=professional_id, client_id=client_id, status=status)
    return {"bookings": [b.to_dict() for b in bookings], "count": len(bookings)}


@router.get("/{booking_id}")
def get_booking(
        booking_id: UUID = Path(..., description="The booking ID"),
        booking_service: BookingService = Depends(get_booking_service)
):
    return booking_service.get_booking(booking_id).to_dict()


@router.post("/{booking_id}/confirm")
def confirm_booking(
        data: TransitionRequest,
        booking_id: UUID = Path(..., description="The booking ID"),
        booking_service: BookingService = Depends(get_booking_service)
):
    """Approve a booking waiting for manual confirmation"""
    return booking_service.confirm(booking_id, data.actor).to_dict()


@router.post("/{booking_id}/reject")
def reject_booking(
        data: TransitionRequest,
        booking_id: UUID = Path(..., description="The booking ID"),
        booking_service: BookingService = Depends(get_booking_service)
):
    return booking_service.reject(booking_id, data.actor, data.reason).to_dict()


@router.post("/{booking_id}/cancel")
def cancel_booking(
        data: TransitionRequest,
        booking_id: UUID = Path(..., description="The booking ID"),
        booking_service: BookingService = Depends(get_booking_service)
):
    """Cancel a booking; cancelling it again returns the same cancelled booking"""
    return booking_service.cancel(booking_id, data.actor, data.reason).to_dict()


@router.post("/{booking_id}/complete")
def complete_booking(
        data: TransitionRequest,
        booking_id: UUID = Path(..., description="The booking ID"),
        booking_service: BookingService = Depends(get_booking_service)
):
    return booking_service.complete(booking_id, data.actor).to_dict()


@router.post("/{booking_id}/no-show")
def mark_no_show(
        data: TransitionRequest,
        booking_id: UUID = Path(..., description="The booking ID"),
        booking_service: BookingService = Depends(get_booking_service)
):
    return booking_service.mark_no_show(booking_id, data.actor).to_dict()
