# ===== easyagenda/services/availability/availability_service.py =====
from typing import List, Optional
from datetime import date, datetime, time, timedelta
from uuid import UUID
from sqlalchemy.orm import Session
import logging

from easyagenda.config.settings import get_settings
from easyagenda.models.company import Professional
from easyagenda.models.service import Service
from easyagenda.schemas.booking import Slot
from easyagenda.scheduling.capacity import CapacityPolicy, filter_open_slots
from easyagenda.scheduling.resolver import AvailabilityResolver
from easyagenda.scheduling.slots import generate_slots
from easyagenda.services.availability.rule_store import AvailabilityRuleService
from easyagenda.services.booking.ledger import SqlBookingLedger, to_ledger_entries
from easyagenda.services.catalog.catalog_service import CatalogService
from easyagenda.utils.timeutils import local_now

logger = logging.getLogger(__name__)


class SlotQueryService:
    """Open slots of a professional for a service, read without locking"""

    @staticmethod
    def get_open_slots(
            db: Session,
            professional_id: UUID,
            service_id: UUID,
            date_from: date,
            date_to: date,
            client_id: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> List[Slot]:
        """
        Resolve availability, expand it into slots and drop whatever the
        ledger, the concurrency limits, the lockout or agenda blocks rule out.

        Args:
            date_from, date_to: inclusive range of company-local dates
            client_id: also apply the per-client limit for this client
            now: naive company wall-clock time; defaults to the current time
                in the company's timezone

        Returns:
            Open slots ordered by start. Empty when the service or the
            professional is inactive or the professional does not offer it.
        """
        SlotQueryService.validate_range(date_from, date_to)

        professional = CatalogService.get_professional(db, professional_id)
        service = CatalogService.get_service(db, service_id)

        if not SlotQueryService.is_bookable(professional, service):
            logger.info(f"Service {service_id} is not bookable with professional {professional_id}")
            return []

        if now is None:
            now = local_now(professional.company.timezone)

        context = AvailabilityRuleService.load_context(db, professional, service, date_from, date_to)
        resolver = AvailabilityResolver(context)

        candidates = []
        for _, windows in resolver.iter_windows(date_from, date_to):
            candidates.extend(generate_slots(
                windows,
                professional_id=professional.id,
                service_id=service.id,
                duration_minutes=service.duration_minutes,
                interval_minutes=service.interval_between_slots_minutes,
            ))

        if not candidates:
            return []

        range_start = datetime.combine(date_from, time.min)
        range_end = datetime.combine(date_to + timedelta(days=1), time.min)

        ledger = to_ledger_entries(SqlBookingLedger(db).overlapping(professional.id, range_start, range_end))
        blocks = AvailabilityRuleService.block_windows(
            db, professional.company_id, professional.id, range_start, range_end
        )

        open_slots = filter_open_slots(
            candidates,
            ledger=ledger,
            policy=SlotQueryService.capacity_policy(service),
            now=now,
            client_id=client_id,
            blocks=blocks,
        )

        logger.debug(f"{len(open_slots)} of {len(candidates)} candidate slots open for service {service_id}")
        return open_slots

    @staticmethod
    def validate_range(date_from: date, date_to: date) -> None:
        if date_to < date_from:
            raise ValueError("date_to must not be before date_from")

        max_days = get_settings().MAX_SLOT_QUERY_DAYS
        if (date_to - date_from).days + 1 > max_days:
            raise ValueError(f"date range is limited to {max_days} days")

    @staticmethod
    def is_bookable(professional: Professional, service: Service) -> bool:
        return (
            bool(service.is_active)
            and bool(professional.is_active)
            and professional.company_id == service.company_id
            and service.offered_by(professional.id)
        )

    @staticmethod
    def capacity_policy(service: Service) -> CapacityPolicy:
        return CapacityPolicy(
            simultaneous_bookings_per_slot=service.simultaneous_bookings_per_slot,
            simultaneous_bookings_per_user=service.simultaneous_bookings_per_user,
            block_24_hours=bool(service.block_24_hours),
            lockout_hours=get_settings().BLOCK_24H_WINDOW_HOURS,
        )
