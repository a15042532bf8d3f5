# easyagenda/models/notification_log.py
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
import uuid

from easyagenda.models.base import Base


class NotificationLog(Base):
    """Delivery log of booking notifications, written out of band by the worker"""
    __tablename__ = "notification_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id = Column(Uuid, ForeignKey("bookings.id"), nullable=False, index=True)
    company_id = Column(Uuid, ForeignKey("companies.id"), nullable=False, index=True)

    event = Column(String(50), nullable=False)
    recipient = Column(String(20), nullable=False)  # cliente, profissional
    channel = Column(String(20), nullable=False)  # email, whatsapp

    message = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending")  # sent, failed, skipped
    error_message = Column(Text, nullable=True)
    response_status_code = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "id": str(self.id),
            "booking_id": str(self.booking_id),
            "event": self.event,
            "recipient": self.recipient,
            "channel": self.channel,
            "message": self.message,
            "status": self.status,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
        }
