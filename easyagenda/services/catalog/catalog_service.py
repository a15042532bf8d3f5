# ============================================================================
# easyagenda/services/catalog/catalog_service.py
# ============================================================================
"""Tenant catalog writes: companies, professionals and services"""
import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from easyagenda.config.settings import get_settings
from easyagenda.config.database import commit_or_raise
from easyagenda.core.errors import InvalidRuleError, NotFoundError
from easyagenda.models.company import Company, Professional
from easyagenda.models.service import Service
from easyagenda.schemas.catalog import CompanyCreate, ProfessionalCreate, ServiceCreate
from easyagenda.schemas.notifications import NotificationChannel
from easyagenda.utils.timeutils import is_valid_timezone

logger = logging.getLogger(__name__)


class CatalogService:
    """Handles company, professional and service records"""

    @staticmethod
    def get_company(db: Session, company_id: UUID) -> Company:
        company = db.get(Company, company_id)
        if not company:
            raise NotFoundError(f"company {company_id} not found")
        return company

    @staticmethod
    def get_professional(db: Session, professional_id: UUID) -> Professional:
        professional = db.get(Professional, professional_id)
        if not professional:
            raise NotFoundError(f"professional {professional_id} not found")
        return professional

    @staticmethod
    def get_service(db: Session, service_id: UUID) -> Service:
        service = db.get(Service, service_id)
        if not service:
            raise NotFoundError(f"service {service_id} not found")
        return service

    @staticmethod
    def create_company(db: Session, data: CompanyCreate) -> Company:
        settings = get_settings()
        tz_name = data.timezone or settings.DEFAULT_TIMEZONE
        if not is_valid_timezone(tz_name):
            raise InvalidRuleError(f"unknown timezone: {tz_name}")

        channels = data.notification_channels
        if channels is None:
            channels = list(settings.DEFAULT_NOTIFICATION_CHANNELS)
        CatalogService._validate_channels(channels)

        company = Company(
            name=data.name,
            timezone=tz_name,
            notification_channels=channels,
            notification_webhook_url=data.notification_webhook_url,
            notification_webhook_secret=data.notification_webhook_secret,
            is_active=True,
        )
        db.add(company)
        commit_or_raise(db, "company")
        db.refresh(company)

        logger.info(f"Created company {company.id}: {company.name}")
        return company

    @staticmethod
    def create_professional(db: Session, company_id: UUID, data: ProfessionalCreate) -> Professional:
        CatalogService.get_company(db, company_id)

        professional = Professional(
            company_id=company_id,
            name=data.name,
            email=data.email,
            phone=data.phone,
            inherits_company_availability=True,
            is_active=True,
        )
        db.add(professional)
        commit_or_raise(db, "professional")
        db.refresh(professional)

        logger.info(f"Created professional {professional.id} for company {company_id}")
        return professional

    @staticmethod
    def create_service(db: Session, company_id: UUID, data: ServiceCreate) -> Service:
        CatalogService.get_company(db, company_id)
        CatalogService.validate_service_policy(data)

        professionals = CatalogService._company_professionals(db, company_id, data.professional_ids)

        service = Service(
            company_id=company_id,
            name=data.name,
            description=data.description,
            price=Decimal(str(data.price)) if data.price is not None else None,
            duration_minutes=data.duration_minutes,
            interval_between_slots_minutes=data.interval_between_slots_minutes,
            simultaneous_bookings_per_slot=data.simultaneous_bookings_per_slot,
            simultaneous_bookings_per_user=data.simultaneous_bookings_per_user,
            block_24_hours=data.block_24_hours,
            confirmation_type=data.confirmation_type.value,
            availability_type=data.availability_type.value,
            booking_fee_enabled=data.booking_fee_enabled,
            booking_fee_amount=Decimal(str(data.booking_fee_amount)) if data.booking_fee_amount is not None else None,
            is_active=data.is_active,
        )
        service.professionals = professionals

        db.add(service)
        commit_or_raise(db, "service")
        db.refresh(service)

        logger.info(f"Created service {service.id}: {service.name}")
        return service

    @staticmethod
    def validate_service_policy(data: ServiceCreate) -> None:
        """Numeric and fee constraints of a service, checked at write time"""
        if data.duration_minutes <= 0:
            raise InvalidRuleError("duration_minutes must be greater than 0")
        if data.interval_between_slots_minutes < 0:
            raise InvalidRuleError("interval_between_slots_minutes must be 0 or more")
        if data.simultaneous_bookings_per_slot < 1:
            raise InvalidRuleError("simultaneous_bookings_per_slot must be at least 1")
        if data.simultaneous_bookings_per_user < 1:
            raise InvalidRuleError("simultaneous_bookings_per_user must be at least 1")
        if data.booking_fee_enabled and not data.booking_fee_amount:
            raise InvalidRuleError("booking_fee_amount is required when the booking fee is enabled")

    @staticmethod
    def _company_professionals(db: Session, company_id: UUID, professional_ids: List[UUID]) -> List[Professional]:
        if not professional_ids:
            return []

        professionals = db.query(Professional).filter(
            Professional.id.in_(professional_ids),
            Professional.company_id == company_id
        ).all()

        found = {p.id for p in professionals}
        missing = [str(pid) for pid in professional_ids if pid not in found]
        if missing:
            raise InvalidRuleError(f"professionals not in company {company_id}: {', '.join(missing)}")

        return professionals

    @staticmethod
    def _validate_channels(channels: Optional[List[str]]) -> None:
        valid = {c.value for c in NotificationChannel}
        unknown = [c for c in channels or [] if c not in valid]
        if unknown:
            raise InvalidRuleError(f"unknown notification channels: {', '.join(unknown)}")
