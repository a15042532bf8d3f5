# ============================================================================
# easyagenda/api/v1/availability.py
# Weekly schedules, date overrides and agenda blocks
# ============================================================================
from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.orm import Session
from typing import Dict
from uuid import UUID

from easyagenda.api.dependencies import get_booking_service
from easyagenda.config.database import get_db
from easyagenda.schemas.availability import AgendaBlockCreate, DayAvailability, OverrideCreate, RuleSetUpdate
from easyagenda.services.availability.rule_store import AvailabilityRuleService
from easyagenda.services.booking.booking_service import BookingService

router = APIRouter(prefix="/availability", tags=["availability"])


def _rule_set_response(days: Dict[int, DayAvailability]) -> dict:
    return {"days": {str(weekday): day.model_dump(mode="json") for weekday, day in days.items()}}


@router.put("/companies/{company_id}/rules")
def set_company_rules(
        data: RuleSetUpdate,
        company_id: UUID = Path(..., description="The company ID"),
        db: Session = Depends(get_db)
):
    """Replace the company default weekly schedule (0=Monday ... 6=Sunday)"""
    return _rule_set_response(AvailabilityRuleService.set_company_rules(db, company_id, data.days))


@router.put("/professionals/{professional_id}/rules")
def set_professional_rules(
        data: RuleSetUpdate,
        professional_id: UUID = Path(..., description="The professional ID"),
        db: Session = Depends(get_db)
):
    return _rule_set_response(AvailabilityRuleService.set_professional_rules(db, professional_id, data.days))


@router.delete("/professionals/{professional_id}/rules")
def inherit_company_rules(
        professional_id: UUID = Path(..., description="The professional ID"),
        db: Session = Depends(get_db)
):
    """Drop the professional's own schedule; the company default applies again"""
    return AvailabilityRuleService.inherit_company_rules(db, professional_id).to_dict()


@router.put("/services/{service_id}/rules")
def set_service_rules(
        data: RuleSetUpdate,
        service_id: UUID = Path(..., description="The service ID"),
        db: Session = Depends(get_db)
):
    """Give the service a specific schedule; switches it to specific availability"""
    return _rule_set_response(AvailabilityRuleService.set_service_rules(db, service_id, data.days))


@router.post("/overrides", status_code=status.HTTP_201_CREATED)
def add_override(data: OverrideCreate, db: Session = Depends(get_db)):
    return AvailabilityRuleService.add_override(db, data).to_dict()


@router.delete("/overrides/{override_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_override(
        override_id: UUID = Path(..., description="The override ID"),
        db: Session = Depends(get_db)
):
    AvailabilityRuleService.remove_override(db, override_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/blocks", status_code=status.HTTP_201_CREATED)
def add_agenda_block(
        data: AgendaBlockCreate,
        booking_service: BookingService = Depends(get_booking_service)
):
    """
    Block part of the agenda.
    With cancel_conflicts the overlapping bookings are cancelled and notified.
    """
    result = booking_service.add_agenda_block(data)
    return {
        "block": result["block"].to_dict(),
        "cancelled": [b.to_dict() for b in result["cancelled"]],
    }


@router.post("/blocks/conflicts")
def preview_block_conflicts(data: AgendaBlockCreate, db: Session = Depends(get_db)):
    """Bookings a block would hit, without creating it"""
    AvailabilityRuleService.validate_block(data)
    conflicts = AvailabilityRuleService.find_block_conflicts(
        db,
        data.company_id,
        data.professional_id,
        data.start_datetime,
        data.end_datetime,
        data.repeats_weekly,
    )
    return {"conflicts": [b.to_dict() for b in conflicts], "count": len(conflicts)}


@router.delete("/blocks/{block_id}")
def deactivate_agenda_block(
        block_id: UUID = Path(..., description="The agenda block ID"),
        db: Session = Depends(get_db)
):
    return AvailabilityRuleService.deactivate_agenda_block(db, block_id).to_dict()
