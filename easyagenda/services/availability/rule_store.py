# ===== easyagenda/services/availability/rule_store.py =====
"""
Availability Rule Store

Writes and reads the layered availability definitions: weekly schedules of a
company, professional or service, date overrides and agenda blocks. Every
write is validated here, so the resolver never sees malformed rules.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from easyagenda.config.database import commit_or_raise
from easyagenda.core.errors import InvalidRuleError, NotFoundError
from easyagenda.models.availability import AgendaBlock, AvailabilityOverride, AvailabilityRule
from easyagenda.models.booking import Booking
from easyagenda.models.company import Professional
from easyagenda.models.service import Service
from easyagenda.schemas.availability import (
    AgendaBlockCreate,
    DayAvailability,
    OverrideCreate,
    RuleOwnerType,
    TimeWindow,
)
from easyagenda.schemas.catalog import AvailabilityType
from easyagenda.scheduling.resolver import AvailabilityContext, DateOverride, OverrideScope
from easyagenda.scheduling.state_machine import TERMINAL_STATUSES
from easyagenda.scheduling.windows import merge_windows, validate_day_availability, weekly_occurrences
from easyagenda.services.catalog.catalog_service import CatalogService

logger = logging.getLogger(__name__)

WEEKDAYS = range(7)
WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class AvailabilityRuleService:
    """Handles availability rule writes and snapshot loading"""

    # ------------------------------------------------------------------
    # Weekly schedules
    # ------------------------------------------------------------------

    @staticmethod
    def validate_rule_set(rules: Dict[int, DayAvailability]) -> None:
        for weekday, day in rules.items():
            if weekday not in WEEKDAYS:
                raise InvalidRuleError(f"weekday must be between 0 (Monday) and 6 (Sunday), got {weekday}")
            validate_day_availability(day, label=WEEKDAY_NAMES[weekday])

    @staticmethod
    def set_company_rules(db: Session, company_id: UUID, rules: Dict[int, DayAvailability]) -> Dict[int, DayAvailability]:
        """Replace the company default weekly schedule"""
        CatalogService.get_company(db, company_id)
        AvailabilityRuleService._replace_rules(db, company_id, RuleOwnerType.COMPANY, company_id, rules)
        commit_or_raise(db, "company availability")

        logger.info(f"Saved company default availability for {company_id} ({len(rules)} days)")
        return AvailabilityRuleService.get_rule_set(db, RuleOwnerType.COMPANY, company_id)

    @staticmethod
    def set_professional_rules(db: Session, professional_id: UUID, rules: Dict[int, DayAvailability]) -> Dict[int, DayAvailability]:
        """Give the professional an own weekly schedule, replacing the company default for them"""
        if not rules:
            raise InvalidRuleError("an own schedule needs at least one day; inherit the company schedule instead")

        professional = CatalogService.get_professional(db, professional_id)
        AvailabilityRuleService._replace_rules(
            db, professional.company_id, RuleOwnerType.PROFESSIONAL, professional_id, rules
        )
        professional.inherits_company_availability = False
        commit_or_raise(db, "professional availability")

        logger.info(f"Saved own availability for professional {professional_id}")
        return AvailabilityRuleService.get_rule_set(db, RuleOwnerType.PROFESSIONAL, professional_id)

    @staticmethod
    def inherit_company_rules(db: Session, professional_id: UUID) -> Professional:
        """Drop the professional's own schedule and fall back to the company default"""
        professional = CatalogService.get_professional(db, professional_id)
        AvailabilityRuleService._delete_rules(db, RuleOwnerType.PROFESSIONAL, professional_id)
        professional.inherits_company_availability = True
        commit_or_raise(db, "professional availability")

        logger.info(f"Professional {professional_id} now inherits company availability")
        return professional

    @staticmethod
    def set_service_rules(db: Session, service_id: UUID, rules: Dict[int, DayAvailability]) -> Dict[int, DayAvailability]:
        """Give the service a specific weekly schedule and switch it to specific availability"""
        if not rules:
            raise InvalidRuleError("a specific schedule needs at least one day")

        service = CatalogService.get_service(db, service_id)
        AvailabilityRuleService._replace_rules(db, service.company_id, RuleOwnerType.SERVICE, service_id, rules)
        service.availability_type = AvailabilityType.SPECIFIC.value
        commit_or_raise(db, "service availability")

        logger.info(f"Saved specific availability for service {service_id}")
        return AvailabilityRuleService.get_rule_set(db, RuleOwnerType.SERVICE, service_id)

    @staticmethod
    def get_rule_set(db: Session, owner_type: RuleOwnerType, owner_id: UUID) -> Dict[int, DayAvailability]:
        rows = db.query(AvailabilityRule).filter(
            AvailabilityRule.owner_type == RuleOwnerType(owner_type).value,
            AvailabilityRule.owner_id == owner_id
        ).order_by(AvailabilityRule.day_of_week).all()

        return {row.day_of_week: AvailabilityRuleService._row_to_day(row) for row in rows}

    @staticmethod
    def _replace_rules(
            db: Session,
            company_id: UUID,
            owner_type: RuleOwnerType,
            owner_id: UUID,
            rules: Dict[int, DayAvailability]
    ) -> None:
        AvailabilityRuleService.validate_rule_set(rules)
        AvailabilityRuleService._delete_rules(db, owner_type, owner_id)
        # Deletes must reach the database before the unique (owner, weekday) rows come back
        db.flush()

        for weekday, day in sorted(rules.items()):
            db.add(AvailabilityRule(
                company_id=company_id,
                owner_type=owner_type.value,
                owner_id=owner_id,
                day_of_week=weekday,
                is_active=day.active,
                start_time=day.start_time,
                end_time=day.end_time,
                break_start=day.break_start,
                break_end=day.break_end,
            ))

    @staticmethod
    def _delete_rules(db: Session, owner_type: RuleOwnerType, owner_id: UUID) -> None:
        db.query(AvailabilityRule).filter(
            AvailabilityRule.owner_type == owner_type.value,
            AvailabilityRule.owner_id == owner_id
        ).delete(synchronize_session=False)

    @staticmethod
    def _row_to_day(row) -> DayAvailability:
        return DayAvailability(
            active=row.is_active,
            start_time=row.start_time,
            end_time=row.end_time,
            break_start=row.break_start,
            break_end=row.break_end,
        )

    # ------------------------------------------------------------------
    # Date overrides
    # ------------------------------------------------------------------

    @staticmethod
    def add_override(db: Session, data: OverrideCreate) -> AvailabilityOverride:
        """
        Store a date exception. An existing override with the same scope and
        date is replaced.
        """
        CatalogService.get_company(db, data.company_id)
        AvailabilityRuleService._check_scope(db, data.company_id, data.professional_id, data.service_id)

        day = data.day
        if data.is_available:
            if day is None or not day.active:
                raise InvalidRuleError("an available override needs the replacement hours")
            validate_day_availability(day, label=data.date.isoformat())

        db.query(AvailabilityOverride).filter(
            AvailabilityOverride.company_id == data.company_id,
            AvailabilityOverride.professional_id.is_(None) if data.professional_id is None
            else AvailabilityOverride.professional_id == data.professional_id,
            AvailabilityOverride.service_id.is_(None) if data.service_id is None
            else AvailabilityOverride.service_id == data.service_id,
            AvailabilityOverride.date == data.date,
        ).delete(synchronize_session=False)

        override = AvailabilityOverride(
            company_id=data.company_id,
            professional_id=data.professional_id,
            service_id=data.service_id,
            date=data.date,
            is_available=data.is_available,
            start_time=day.start_time if data.is_available else None,
            end_time=day.end_time if data.is_available else None,
            break_start=day.break_start if data.is_available else None,
            break_end=day.break_end if data.is_available else None,
            reason=data.reason,
        )
        db.add(override)
        commit_or_raise(db, "availability override")
        db.refresh(override)

        logger.info(
            f"Saved override {override.id} on {data.date} "
            f"({'special hours' if data.is_available else 'day off'})"
        )
        return override

    @staticmethod
    def remove_override(db: Session, override_id: UUID) -> None:
        override = db.get(AvailabilityOverride, override_id)
        if not override:
            raise NotFoundError(f"override {override_id} not found")

        db.delete(override)
        commit_or_raise(db, "availability override removal")

    @staticmethod
    def _check_scope(db: Session, company_id: UUID, professional_id: Optional[UUID], service_id: Optional[UUID]) -> None:
        if professional_id is not None:
            professional = CatalogService.get_professional(db, professional_id)
            if professional.company_id != company_id:
                raise InvalidRuleError(f"professional {professional_id} does not belong to company {company_id}")
        if service_id is not None:
            service = CatalogService.get_service(db, service_id)
            if service.company_id != company_id:
                raise InvalidRuleError(f"service {service_id} does not belong to company {company_id}")

    # ------------------------------------------------------------------
    # Agenda blocks
    # ------------------------------------------------------------------

    @staticmethod
    def validate_block(data: AgendaBlockCreate) -> None:
        if data.start_datetime >= data.end_datetime:
            raise InvalidRuleError("block start must be before block end")
        if data.repeats_weekly and data.end_datetime - data.start_datetime >= timedelta(days=7):
            raise InvalidRuleError("a weekly block must be shorter than a week")

    @staticmethod
    def add_agenda_block(db: Session, data: AgendaBlockCreate) -> AgendaBlock:
        CatalogService.get_company(db, data.company_id)
        AvailabilityRuleService._check_scope(db, data.company_id, data.professional_id, None)
        AvailabilityRuleService.validate_block(data)

        block = AgendaBlock(
            company_id=data.company_id,
            professional_id=data.professional_id,
            start_datetime=data.start_datetime,
            end_datetime=data.end_datetime,
            repeats_weekly=data.repeats_weekly,
            reason=data.reason,
            is_active=True,
        )
        db.add(block)
        commit_or_raise(db, "agenda block")
        db.refresh(block)

        logger.info(f"Created agenda block {block.id} ({data.reason or 'no reason'})")
        return block

    @staticmethod
    def deactivate_agenda_block(db: Session, block_id: UUID) -> AgendaBlock:
        block = AvailabilityRuleService.get_agenda_block(db, block_id)
        block.is_active = False
        commit_or_raise(db, "agenda block")
        return block

    @staticmethod
    def get_agenda_block(db: Session, block_id: UUID) -> AgendaBlock:
        block = db.get(AgendaBlock, block_id)
        if not block:
            raise NotFoundError(f"agenda block {block_id} not found")
        return block

    @staticmethod
    def find_block_conflicts(
            db: Session,
            company_id: UUID,
            professional_id: Optional[UUID],
            start: datetime,
            end: datetime,
            repeats_weekly: bool = False
    ) -> List[Booking]:
        """Non-terminal bookings that a block over [start, end) would overlap"""
        query = db.query(Booking).filter(
            Booking.company_id == company_id,
            Booking.status.notin_([s.value for s in TERMINAL_STATUSES]),
            Booking.end_datetime > start,
        )
        if professional_id is not None:
            query = query.filter(Booking.professional_id == professional_id)
        if not repeats_weekly:
            query = query.filter(Booking.start_datetime < end)

        conflicts = []
        for booking in query.order_by(Booking.start_datetime).all():
            if weekly_occurrences(start, end, booking.start_datetime, booking.end_datetime, repeats_weekly):
                conflicts.append(booking)

        return conflicts

    @staticmethod
    def block_windows(
            db: Session,
            company_id: UUID,
            professional_id: UUID,
            range_start: datetime,
            range_end: datetime
    ) -> List[TimeWindow]:
        """Active block occurrences (company-wide and the professional's) inside the range"""
        blocks = db.query(AgendaBlock).filter(
            AgendaBlock.company_id == company_id,
            AgendaBlock.is_active.is_(True),
            or_(AgendaBlock.professional_id.is_(None), AgendaBlock.professional_id == professional_id),
            AgendaBlock.start_datetime < range_end,
        ).all()

        windows = []
        for block in blocks:
            windows.extend(weekly_occurrences(
                block.start_datetime, block.end_datetime, range_start, range_end, block.repeats_weekly
            ))

        return merge_windows(windows)

    # ------------------------------------------------------------------
    # Snapshot for the resolver
    # ------------------------------------------------------------------

    @staticmethod
    def load_context(
            db: Session,
            professional: Professional,
            service: Service,
            date_from: date,
            date_to: date
    ) -> AvailabilityContext:
        """Collect every rule layer the resolver needs for the date range"""
        company_rules = AvailabilityRuleService.get_rule_set(db, RuleOwnerType.COMPANY, professional.company_id)

        professional_rules = None
        if not professional.inherits_company_availability:
            professional_rules = AvailabilityRuleService.get_rule_set(
                db, RuleOwnerType.PROFESSIONAL, professional.id
            ) or None

        service_rules = None
        if service.availability_type == AvailabilityType.SPECIFIC.value:
            service_rules = AvailabilityRuleService.get_rule_set(db, RuleOwnerType.SERVICE, service.id) or None

        rows = db.query(AvailabilityOverride).filter(
            AvailabilityOverride.company_id == professional.company_id,
            AvailabilityOverride.date >= date_from,
            AvailabilityOverride.date <= date_to,
            or_(AvailabilityOverride.professional_id.is_(None), AvailabilityOverride.professional_id == professional.id),
            or_(AvailabilityOverride.service_id.is_(None), AvailabilityOverride.service_id == service.id),
        ).all()

        return AvailabilityContext(
            availability_type=AvailabilityType(service.availability_type),
            company_rules=company_rules,
            professional_rules=professional_rules,
            service_rules=service_rules,
            overrides=[AvailabilityRuleService._override_to_snapshot(row) for row in rows],
        )

    @staticmethod
    def _override_to_snapshot(row: AvailabilityOverride) -> DateOverride:
        if row.professional_id and row.service_id:
            scope = OverrideScope.PROFESSIONAL_SERVICE
        elif row.service_id:
            scope = OverrideScope.SERVICE
        elif row.professional_id:
            scope = OverrideScope.PROFESSIONAL
        else:
            scope = OverrideScope.COMPANY

        day = None
        if row.is_available:
            day = DayAvailability(
                active=True,
                start_time=row.start_time,
                end_time=row.end_time,
                break_start=row.break_start,
                break_end=row.break_end,
            )

        return DateOverride(on_date=row.date, scope=scope, is_available=row.is_available, day=day)
