# ============================================================================
# easyagenda/api/v1/slots.py
# Open slot lookup for the booking UI
# ============================================================================
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID

from easyagenda.api.dependencies import get_clock
from easyagenda.config.database import get_db
from easyagenda.services.availability.availability_service import SlotQueryService
from easyagenda.services.booking.booking_service import Clock
from easyagenda.services.catalog.catalog_service import CatalogService

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("")
def get_open_slots(
        professional_id: UUID = Query(..., description="Professional performing the service"),
        service_id: UUID = Query(..., description="Service to book"),
        date_from: date = Query(..., description="First date, company local time"),
        date_to: Optional[date] = Query(None, description="Last date (inclusive); defaults to date_from"),
        client_id: Optional[str] = Query(None, description="Apply this client's simultaneous booking limit"),
        db: Session = Depends(get_db),
        clock: Clock = Depends(get_clock)
):
    """Bookable slots, in company wall-clock time"""
    professional = CatalogService.get_professional(db, professional_id)

    slots = SlotQueryService.get_open_slots(
        db=db,
        professional_id=professional_id,
        service_id=service_id,
        date_from=date_from,
        date_to=date_to or date_from,
        client_id=client_id,
        now=clock(professional.company.timezone),
    )

    return {
        "slots": [slot.model_dump(mode="json") for slot in slots],
        "count": len(slots),
        "timezone": professional.company.timezone,
    }
