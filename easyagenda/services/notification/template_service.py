# easyagenda/services/notification/template_service.py
"""
Company notification templates

A company may word each (event, recipient, channel) notification itself or
switch it off with an inactive template. Targets without a template keep the
default recipients and the generated wording.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from easyagenda.config.database import commit_or_raise
from easyagenda.core.errors import NotFoundError
from easyagenda.models.notification_template import NotificationTemplate
from easyagenda.schemas.notifications import (
    NotificationChannel,
    NotificationEvent,
    NotificationRecipient,
    NotificationTemplateUpsert,
)
from easyagenda.services.catalog.catalog_service import CatalogService

logger = logging.getLogger(__name__)

Target = Tuple[NotificationRecipient, NotificationChannel]

PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class NotificationTemplateService:

    @staticmethod
    def upsert_template(db: Session, company_id: UUID, data: NotificationTemplateUpsert) -> NotificationTemplate:
        """Create or replace the company's template for one event, recipient and channel"""
        CatalogService.get_company(db, company_id)

        template = db.query(NotificationTemplate).filter(
            NotificationTemplate.company_id == company_id,
            NotificationTemplate.event == data.event.value,
            NotificationTemplate.recipient == data.recipient.value,
            NotificationTemplate.channel == data.channel.value,
        ).first()

        if template is None:
            template = NotificationTemplate(
                company_id=company_id,
                event=data.event.value,
                recipient=data.recipient.value,
                channel=data.channel.value,
            )
            db.add(template)

        template.message = data.message
        template.is_active = data.is_active
        commit_or_raise(db, "notification template")

        logger.info(
            f"Company {company_id} template {data.event.value}/{data.recipient.value}/{data.channel.value} "
            f"{'active' if data.is_active else 'inactive'}"
        )
        return template

    @staticmethod
    def list_templates(db: Session, company_id: UUID) -> List[NotificationTemplate]:
        CatalogService.get_company(db, company_id)
        return db.query(NotificationTemplate).filter(
            NotificationTemplate.company_id == company_id
        ).order_by(
            NotificationTemplate.event,
            NotificationTemplate.recipient,
            NotificationTemplate.channel,
        ).all()

    @staticmethod
    def delete_template(db: Session, company_id: UUID, template_id: UUID) -> None:
        """Drop a template; the default wording applies again"""
        template = db.get(NotificationTemplate, template_id)
        if not template or template.company_id != company_id:
            raise NotFoundError(f"notification template {template_id} not found")

        db.delete(template)
        commit_or_raise(db, "notification template removal")

    @staticmethod
    def templates_for(db: Session, company_id: UUID, event: NotificationEvent) -> List[NotificationTemplate]:
        return db.query(NotificationTemplate).filter(
            NotificationTemplate.company_id == company_id,
            NotificationTemplate.event == event.value,
        ).populate_existing().all()

    @staticmethod
    def resolve_targets(
            event_templates: Iterable[NotificationTemplate],
            default_recipients: Sequence[NotificationRecipient],
            channels: Sequence[str]
    ) -> List[Tuple[NotificationRecipient, NotificationChannel, Optional[str]]]:
        """
        Who gets the event, on which channel, and with which company wording.

        Default targets (recipients x company channels) are kept unless the
        company switched them off; active templates outside the defaults are
        added after them.
        """
        templates: Dict[Target, NotificationTemplate] = {
            (NotificationRecipient(t.recipient), NotificationChannel(t.channel)): t
            for t in event_templates
        }

        targets = []
        seen = set()
        for recipient in default_recipients:
            for channel in channels:
                target = (recipient, NotificationChannel(channel))
                seen.add(target)
                template = templates.get(target)
                if template is None:
                    targets.append((*target, None))
                elif template.is_active:
                    targets.append((*target, template.message))

        extra = sorted(
            (target for target, t in templates.items() if t.is_active and target not in seen),
            key=lambda target: (target[0].value, target[1].value),
        )
        targets.extend((*target, templates[target].message) for target in extra)
        return targets

    @staticmethod
    def render(template: str, values: Dict[str, str]) -> str:
        """Fill {{placeholders}}; unknown ones are left in place"""
        return PLACEHOLDER.sub(lambda m: str(values.get(m.group(1), m.group(0))), template)
