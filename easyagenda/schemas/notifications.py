# easyagenda/schemas/notifications.py
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from uuid import UUID
from enum import Enum


class NotificationEvent(str, Enum):
    BOOKING_CREATED = "agendamento_criado"
    BOOKING_APPROVED = "agendamento_aprovado"
    BOOKING_REJECTED = "agendamento_recusado"
    BOOKING_CANCELLED = "agendamento_cancelado"
    BOOKING_CANCELLED_BY_BLOCK = "agendamento_cancelado_bloqueio"
    BOOKING_COMPLETED = "agendamento_concluido"
    BOOKING_NO_SHOW = "agendamento_nao_compareceu"
    PAYMENT_CONFIRMED = "pagamento_confirmado"
    PAYMENT_FAILED = "pagamento_falhou"
    BOOKING_REMINDER = "lembrete_agendamento"


class NotificationRecipient(str, Enum):
    CLIENT = "cliente"
    PROFESSIONAL = "profissional"


class NotificationChannel(str, Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"


class NotificationPayload(BaseModel):
    """Structured lifecycle event handed to the external dispatcher"""
    event: NotificationEvent = Field(..., description="Lifecycle event")
    booking_id: UUID = Field(..., description="Booking the event refers to")
    recipient: NotificationRecipient = Field(..., description="Who should be told")
    channel: NotificationChannel = Field(..., description="Delivery channel")
    company_id: UUID = Field(..., description="Tenant")
    status: str = Field(..., description="Booking status after the transition")
    context: Dict[str, Any] = Field(default_factory=dict, description="Contextual fields for wording")
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    reason: Optional[str] = Field(None, description="Cancellation or rejection reason")
    template: Optional[str] = Field(None, description="Company wording for this event, recipient and channel")


class NotificationTemplateUpsert(BaseModel):
    """Company wording for one event, recipient and channel"""
    event: NotificationEvent
    recipient: NotificationRecipient
    channel: NotificationChannel
    message: str = Field(..., min_length=10, description="Text with {{placeholders}}")
    is_active: bool = Field(True, description="False switches this notification off")
