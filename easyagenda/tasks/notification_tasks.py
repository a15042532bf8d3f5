# ===== easyagenda/tasks/notification_tasks.py =====
from typing import Any, Dict
import logging

from easyagenda.config.celery_config import celery_app
from easyagenda.config.database import get_session_factory
from easyagenda.schemas.notifications import NotificationPayload
from easyagenda.services.notification.delivery_service import NotificationDeliveryService

logger = logging.getLogger(__name__)


class NotificationDeliveryFailed(Exception):
    pass


@celery_app.task(bind=True, max_retries=3)
def deliver_notification(self, payload: Dict[str, Any]):
    """
    Word and deliver one booking notification

    Args:
        payload: NotificationPayload as JSON-compatible dict
    """
    notification = NotificationPayload.model_validate(payload)
    logger.info(
        f"Delivering {notification.event.value} for booking {notification.booking_id} "
        f"to {notification.recipient.value} via {notification.channel.value}"
    )

    db = get_session_factory()()
    service = NotificationDeliveryService(db)
    try:
        log = service.deliver(notification)
    finally:
        service.close()
        db.close()

    if log.status == "failed":
        # Retry with exponential backoff: 1min, 2min, 4min
        raise self.retry(
            exc=NotificationDeliveryFailed(log.error_message),
            countdown=60 * (2 ** self.request.retries)
        )

    return {"status": log.status, "booking_id": str(notification.booking_id), "log_id": str(log.id)}
