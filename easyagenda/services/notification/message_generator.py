# easyagenda/services/notification/message_generator.py
"""Wording of notification messages: company templates first, then OpenAI"""
import logging
from typing import Optional

from openai import OpenAI

from easyagenda.config.settings import get_settings
from easyagenda.schemas.notifications import NotificationEvent, NotificationPayload, NotificationRecipient
from easyagenda.services.notification.template_service import NotificationTemplateService

logger = logging.getLogger(__name__)

CONFIRMATION_EVENTS = {
    NotificationEvent.BOOKING_CREATED,
    NotificationEvent.BOOKING_APPROVED,
    NotificationEvent.PAYMENT_CONFIRMED,
}

SYSTEM_PROMPT = """You are an assistant specializing in personalized notification messages for appointments.

Based on the notification type, user name, appointment details, company name and communication channel, create a concise and engaging notification message.

Make the message fit the channel (email or WhatsApp) and the context of the appointment.
The message should be friendly and professional, written in the language of the examples the company uses, Brazilian Portuguese by default.

Generate ONLY the message. Do not include a subject or title.

Examples:

Confirmation:
"Hi [User Name], your appointment with [Company Name] on [Date] at [Time] for [Service] has been confirmed."

Reminder:
"[User Name], friendly reminder of your upcoming appointment with [Company Name] on [Date] at [Time]."

Update:
"[User Name], there's an update regarding your appointment with [Company Name]. [Details of the update]."
"""

# Used when no model is configured or the call fails
FALLBACK_TEMPLATES = {
    "confirmation": "Olá {user_name}, seu agendamento de {service_name} com {company_name} em {date} às {time} está {status}.",
    "reminder": "{user_name}, lembrete do seu agendamento com {company_name} em {date} às {time}.",
    "update": "{user_name}, há uma atualização no seu agendamento com {company_name} em {date} às {time}: {update}.",
}


def notification_type(event: NotificationEvent) -> str:
    if event == NotificationEvent.BOOKING_REMINDER:
        return "reminder"
    if event in CONFIRMATION_EVENTS:
        return "confirmation"
    return "update"


class NotificationMessageGenerator:
    """Turns a structured notification payload into message text"""

    def __init__(self, client: Optional[OpenAI] = None):
        self.settings = get_settings()
        self.client = client
        if self.client is None and self.settings.OPENAI_API_KEY:
            self.client = OpenAI(api_key=self.settings.OPENAI_API_KEY)
        self.model = self.settings.OPENAI_MODEL

    def generate(self, payload: NotificationPayload) -> str:
        kind = notification_type(payload.event)
        fields = self._fields(payload)

        # Company wording wins over generated text
        if payload.template:
            return self.render_template(payload)

        if self.client is None:
            return self.fallback(kind, fields)

        details = (
            f"Service: {fields['service_name']}. Professional: {fields['professional_name']}. "
            f"Date: {fields['date']}. Time: {fields['time']}. Status: {fields['status']}."
        )
        if kind == "update":
            details += f" Update: {fields['update']}."

        user_prompt = (
            f"Notification type: {kind}\n"
            f"User name: {fields['user_name']}\n"
            f"Appointment details: {details}\n"
            f"Company name: {fields['company_name']}\n"
            f"Channel: {payload.channel.value}"
        )

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=0.7,
                max_tokens=self.settings.OPENAI_MAX_TOKENS,
            )
            message = (response.choices[0].message.content or "").strip()
        except Exception as e:
            logger.error(f"Message generation failed for booking {payload.booking_id}: {e}")
            return self.fallback(kind, fields)

        return message or self.fallback(kind, fields)

    @staticmethod
    def render_template(payload: NotificationPayload) -> str:
        """Fill the company template's {{placeholders}} from the payload"""
        ctx = payload.context
        values = {
            "cliente_nome": ctx.get("client_name") or ctx.get("client_id", ""),
            "profissional_nome": ctx.get("professional_name", ""),
            "empresa_nome": ctx.get("company_name", ""),
            "servico": ctx.get("service_name", ""),
            "data_hora": f"{ctx.get('date', '')} {ctx.get('time', '')}".strip(),
            "status": payload.status,
        }
        return NotificationTemplateService.render(payload.template, values)

    @staticmethod
    def fallback(kind: str, fields: dict) -> str:
        return FALLBACK_TEMPLATES[kind].format(**fields)

    @staticmethod
    def _fields(payload: NotificationPayload) -> dict:
        ctx = payload.context
        if payload.recipient == NotificationRecipient.PROFESSIONAL:
            user_name = ctx.get("professional_name", "")
        else:
            user_name = ctx.get("client_name") or ctx.get("client_id", "")

        update = payload.event.value.replace("_", " ")
        if payload.reason:
            update = f"{update} ({payload.reason})"

        return {
            "user_name": user_name,
            "company_name": ctx.get("company_name", ""),
            "service_name": ctx.get("service_name", ""),
            "professional_name": ctx.get("professional_name", ""),
            "date": ctx.get("date", ""),
            "time": ctx.get("time", ""),
            "status": payload.status,
            "update": update,
        }
