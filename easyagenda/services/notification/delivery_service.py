# easyagenda/services/notification/delivery_service.py
import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from easyagenda.config.database import commit_or_raise
from easyagenda.config.settings import get_settings
from easyagenda.models.company import Company
from easyagenda.models.notification_log import NotificationLog
from easyagenda.schemas.notifications import NotificationPayload
from easyagenda.services.notification.message_generator import NotificationMessageGenerator

logger = logging.getLogger(__name__)


class NotificationDeliveryService:
    """
    Words a notification and posts it to the company's delivery webhook.

    The webhook owner (an email or WhatsApp gateway) does the final send.
    Every attempt lands in notification_logs; nothing here ever touches the
    booking itself.
    """

    def __init__(
            self,
            db: Session,
            generator: Optional[NotificationMessageGenerator] = None,
            http_client: Optional[httpx.Client] = None
    ):
        self.db = db
        self.generator = generator or NotificationMessageGenerator()
        self.http_client = http_client or httpx.Client(
            timeout=get_settings().NOTIFICATION_WEBHOOK_TIMEOUT_SECONDS,
            follow_redirects=True
        )

    def deliver(self, payload: NotificationPayload) -> NotificationLog:
        """
        Generate the message and send it.

        Returns:
            The NotificationLog row, status "sent", "failed" or "skipped".
        """
        log = NotificationLog(
            booking_id=payload.booking_id,
            company_id=payload.company_id,
            event=payload.event.value,
            recipient=payload.recipient.value,
            channel=payload.channel.value,
            status="pending",
        )

        company = self.db.get(Company, payload.company_id)
        if not company or not company.notification_webhook_url:
            log.status = "skipped"
            log.error_message = "no delivery webhook configured"
            return self._save(log)

        log.message = self.generator.generate(payload)

        body = payload.model_dump(mode="json")
        body["message"] = log.message
        payload_json = json.dumps(body)

        headers = {
            "Content-Type": "application/json",
            "X-Notification-Event": payload.event.value,
            "X-Notification-Channel": payload.channel.value,
            "User-Agent": "EasyAgenda-Notifications/1.0",
        }
        if company.notification_webhook_secret:
            headers["X-Webhook-Signature"] = self.sign_payload(payload_json, company.notification_webhook_secret)

        try:
            response = self.http_client.post(
                company.notification_webhook_url,
                content=payload_json,
                headers=headers
            )
            log.response_status_code = response.status_code

            if 200 <= response.status_code < 300:
                log.status = "sent"
                log.delivered_at = datetime.now(timezone.utc)
            else:
                log.status = "failed"
                log.error_message = f"HTTP {response.status_code}: {response.text[:500]}"

        except httpx.TimeoutException:
            log.status = "failed"
            log.error_message = "Request timeout"
        except httpx.HTTPError as e:
            log.status = "failed"
            log.error_message = str(e)[:500]

        if log.status == "failed":
            logger.warning(
                f"Notification {payload.event.value} for booking {payload.booking_id} failed: {log.error_message}"
            )
        else:
            logger.info(f"Delivered {payload.event.value} to {payload.recipient.value} via {payload.channel.value}")

        return self._save(log)

    def _save(self, log: NotificationLog) -> NotificationLog:
        self.db.add(log)
        commit_or_raise(self.db, "notification log")
        return log

    @staticmethod
    def sign_payload(payload_json: str, secret: str) -> str:
        """HMAC-SHA256 signature the receiver verifies"""
        signature = hmac.new(
            secret.encode(),
            payload_json.encode(),
            hashlib.sha256
        ).hexdigest()

        return f"sha256={signature}"

    @staticmethod
    def verify_signature(payload_json: str, signature: str, secret: str) -> bool:
        expected_signature = NotificationDeliveryService.sign_payload(payload_json, secret)
        return hmac.compare_digest(signature, expected_signature)

    def close(self):
        self.http_client.close()
