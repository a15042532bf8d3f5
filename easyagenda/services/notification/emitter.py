# ===== easyagenda/services/notification/emitter.py =====
"""
Notification event emitter

Publishes one payload per recipient and company channel after a booking
transition has been committed. Company templates can switch a target off,
add one, or carry the company's own wording. Dispatch is fire-and-forget: a
failing dispatcher is logged and never reaches the booking flow.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import object_session

from easyagenda.config.settings import get_settings
from easyagenda.models.booking import Booking
from easyagenda.schemas.notifications import (
    NotificationEvent,
    NotificationPayload,
    NotificationRecipient,
)
from easyagenda.services.notification.template_service import NotificationTemplateService

logger = logging.getLogger(__name__)

BOTH = (NotificationRecipient.CLIENT, NotificationRecipient.PROFESSIONAL)
CLIENT_ONLY = (NotificationRecipient.CLIENT,)

# Who hears about each event unless the company templates say otherwise
EVENT_RECIPIENTS: Dict[NotificationEvent, Tuple[NotificationRecipient, ...]] = {
    NotificationEvent.BOOKING_CREATED: BOTH,
    NotificationEvent.BOOKING_APPROVED: BOTH,
    NotificationEvent.BOOKING_REJECTED: CLIENT_ONLY,
    NotificationEvent.BOOKING_CANCELLED: BOTH,
    NotificationEvent.BOOKING_CANCELLED_BY_BLOCK: BOTH,
    NotificationEvent.BOOKING_COMPLETED: CLIENT_ONLY,
    NotificationEvent.BOOKING_NO_SHOW: BOTH,
    NotificationEvent.PAYMENT_CONFIRMED: BOTH,
    NotificationEvent.PAYMENT_FAILED: CLIENT_ONLY,
    NotificationEvent.BOOKING_REMINDER: BOTH,
}


class NotificationDispatcher(ABC):
    """Hands payloads to the external wording and delivery pipeline"""

    @abstractmethod
    def dispatch(self, payload: NotificationPayload) -> None:
        ...


class CeleryNotificationDispatcher(NotificationDispatcher):
    """Queues delivery on the notifications Celery queue"""

    def dispatch(self, payload: NotificationPayload) -> None:
        from easyagenda.tasks.notification_tasks import deliver_notification

        deliver_notification.delay(payload.model_dump(mode="json"))


class NotificationEmitter:

    def __init__(self, dispatcher: Optional[NotificationDispatcher] = None):
        self.dispatcher = dispatcher or CeleryNotificationDispatcher()

    def emit(
            self,
            booking: Booking,
            event: NotificationEvent,
            reason: Optional[str] = None
    ) -> List[NotificationPayload]:
        """
        Publish the event for every recipient and channel of the booking's company.

        Returns:
            The payloads that reached the dispatcher.
        """
        try:
            payloads = self.build_payloads(booking, event, reason)
        except Exception as e:
            logger.warning(f"Could not build {event.value} notifications for booking {booking.id}: {e}")
            return []

        dispatched = []
        for payload in payloads:
            try:
                self.dispatcher.dispatch(payload)
                dispatched.append(payload)
            except Exception as e:
                logger.warning(
                    f"Dispatch of {event.value} to {payload.recipient.value} via {payload.channel.value} "
                    f"failed for booking {booking.id}: {e}"
                )

        logger.info(f"Emitted {event.value} for booking {booking.id} ({len(dispatched)}/{len(payloads)} dispatched)")
        return dispatched

    def build_payloads(
            self,
            booking: Booking,
            event: NotificationEvent,
            reason: Optional[str] = None
    ) -> List[NotificationPayload]:
        company = booking.company
        channels = company.notification_channels or get_settings().DEFAULT_NOTIFICATION_CHANNELS
        context = self.build_context(booking)

        db = object_session(booking)
        event_templates = NotificationTemplateService.templates_for(db, company.id, event) if db else []
        targets = NotificationTemplateService.resolve_targets(event_templates, EVENT_RECIPIENTS[event], channels)

        return [
            NotificationPayload(
                event=event,
                booking_id=booking.id,
                recipient=recipient,
                channel=channel,
                company_id=booking.company_id,
                status=booking.status,
                context=context,
                reason=reason,
                template=template,
            )
            for recipient, channel, template in targets
        ]

    @staticmethod
    def build_context(booking: Booking) -> Dict[str, str]:
        """Fields the message generator may use for wording"""
        return {
            "company_name": booking.company.name,
            "service_name": booking.service.name,
            "professional_name": booking.professional.name,
            "client_id": booking.client_id,
            "date": booking.start_datetime.strftime("%d/%m/%Y"),
            "time": booking.start_datetime.strftime("%H:%M"),
            "start": booking.start_datetime.isoformat(),
            "end": booking.end_datetime.isoformat(),
        }
