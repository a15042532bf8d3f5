# ============================================================================
# easyagenda/api/v1/catalog.py
# Companies, professionals, services and notification templates
# ============================================================================
from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session
from uuid import UUID

from easyagenda.config.database import get_db
from easyagenda.schemas.catalog import CompanyCreate, ProfessionalCreate, ServiceCreate
from easyagenda.schemas.notifications import NotificationTemplateUpsert
from easyagenda.services.catalog.catalog_service import CatalogService
from easyagenda.services.notification.template_service import NotificationTemplateService

router = APIRouter(prefix="/companies", tags=["catalog"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_company(data: CompanyCreate, db: Session = Depends(get_db)):
    """Register a company (tenant)"""
    return CatalogService.create_company(db, data).to_dict()


@router.get("/{company_id}")
def get_company(
        company_id: UUID = Path(..., description="The company ID"),
        db: Session = Depends(get_db)
):
    return CatalogService.get_company(db, company_id).to_dict()


@router.post("/{company_id}/professionals", status_code=status.HTTP_201_CREATED)
def create_professional(
        data: ProfessionalCreate,
        company_id: UUID = Path(..., description="The company ID"),
        db: Session = Depends(get_db)
):
    return CatalogService.create_professional(db, company_id, data).to_dict()


@router.post("/{company_id}/services", status_code=status.HTTP_201_CREATED)
def create_service(
        data: ServiceCreate,
        company_id: UUID = Path(..., description="The company ID"),
        db: Session = Depends(get_db)
):
    """
    Create a bookable service.
    Invalid durations, limits or fee settings are rejected with 422.
    """
    return CatalogService.create_service(db, company_id, data).to_dict()


@router.put("/{company_id}/notification-templates")
def upsert_notification_template(
        data: NotificationTemplateUpsert,
        company_id: UUID = Path(..., description="The company ID"),
        db: Session = Depends(get_db)
):
    """
    Set the company's wording for one event, recipient and channel.
    is_active=false switches that notification off.
    """
    return NotificationTemplateService.upsert_template(db, company_id, data).to_dict()


@router.get("/{company_id}/notification-templates")
def list_notification_templates(
        company_id: UUID = Path(..., description="The company ID"),
        db: Session = Depends(get_db)
):
    templates = NotificationTemplateService.list_templates(db, company_id)
    return {"templates": [t.to_dict() for t in templates], "total": len(templates)}


@router.delete("/{company_id}/notification-templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification_template(
        company_id: UUID = Path(..., description="The company ID"),
        template_id: UUID = Path(..., description="The template ID"),
        db: Session = Depends(get_db)
):
    NotificationTemplateService.delete_template(db, company_id, template_id)
