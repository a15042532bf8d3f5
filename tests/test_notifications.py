import json
from types import SimpleNamespace
from uuid import uuid4

import httpx
import pytest

from easyagenda.core.errors import NotFoundError
from easyagenda.models.notification_log import NotificationLog
from easyagenda.schemas.notifications import (
    NotificationChannel,
    NotificationEvent,
    NotificationRecipient,
    NotificationTemplateUpsert,
)
from easyagenda.services.notification.delivery_service import NotificationDeliveryService
from easyagenda.services.notification.emitter import NotificationEmitter
from easyagenda.services.notification.template_service import NotificationTemplateService
from easyagenda.services.notification.message_generator import (
    NotificationMessageGenerator,
    notification_type,
)
from tests.conftest import MONDAY, RecordingDispatcher, at


class FakeCompletions:

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(content=None, error=None):
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(content, error)))


@pytest.fixture
def booking(booking_service, professional, service):
    return booking_service.reserve(professional.id, service.id, "maria", at(MONDAY, 10))


@pytest.fixture
def client_payload(booking, dispatcher):
    return next(p for p in dispatcher.payloads if p.recipient == NotificationRecipient.CLIENT)


@pytest.fixture
def webhook_company(db, company):
    company.notification_webhook_url = "https://hooks.example.com/agenda"
    company.notification_webhook_secret = "s3cret"
    db.commit()
    return company


def delivery_service(db, handler, generator=None):
    return NotificationDeliveryService(
        db,
        generator=generator or NotificationMessageGenerator(client=fake_openai("Olá Maria!")),
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestEmitter:

    def test_one_payload_per_recipient_and_channel(self, db, company, booking):
        company.notification_channels = ["email", "whatsapp"]
        db.commit()
        dispatcher = RecordingDispatcher()

        payloads = NotificationEmitter(dispatcher).emit(booking, NotificationEvent.BOOKING_CANCELLED, "imprevisto")

        assert len(payloads) == 4
        assert {(p.recipient, p.channel) for p in payloads} == {
            (NotificationRecipient.CLIENT, NotificationChannel.EMAIL),
            (NotificationRecipient.CLIENT, NotificationChannel.WHATSAPP),
            (NotificationRecipient.PROFESSIONAL, NotificationChannel.EMAIL),
            (NotificationRecipient.PROFESSIONAL, NotificationChannel.WHATSAPP),
        }
        assert all(p.reason == "imprevisto" for p in payloads)

    def test_rejection_goes_to_client_only(self, booking):
        payloads = NotificationEmitter(RecordingDispatcher()).emit(booking, NotificationEvent.BOOKING_REJECTED)
        assert [p.recipient for p in payloads] == [NotificationRecipient.CLIENT]

    def test_context_carries_wording_fields(self, client_payload, booking):
        assert client_payload.context["company_name"] == "Clínica Bem Estar"
        assert client_payload.context["professional_name"] == "Ana Souza"
        assert client_payload.context["service_name"] == "Consulta"
        assert client_payload.context["date"] == "07/01/2030"
        assert client_payload.context["time"] == "10:00"
        assert client_payload.booking_id == booking.id
        assert client_payload.status == "confirmed"

    def test_dispatch_failure_is_swallowed(self, booking):
        payloads = NotificationEmitter(RecordingDispatcher(fail=True)).emit(
            booking, NotificationEvent.BOOKING_REMINDER
        )
        assert payloads == []


class TestMessageGenerator:

    def test_notification_types(self):
        assert notification_type(NotificationEvent.BOOKING_CREATED) == "confirmation"
        assert notification_type(NotificationEvent.BOOKING_REMINDER) == "reminder"
        assert notification_type(NotificationEvent.BOOKING_CANCELLED) == "update"

    def test_uses_model_reply(self, client_payload):
        client = fake_openai("  Olá maria, seu horário está confirmado.  ")
        message = NotificationMessageGenerator(client=client).generate(client_payload)

        assert message == "Olá maria, seu horário está confirmado."
        call = client.chat.completions.calls[0]
        assert "Notification type: confirmation" in call["messages"][1]["content"]
        assert "Company name: Clínica Bem Estar" in call["messages"][1]["content"]

    def test_falls_back_to_template_when_model_fails(self, client_payload):
        client = fake_openai(error=RuntimeError("rate limited"))
        message = NotificationMessageGenerator(client=client).generate(client_payload)

        assert message == (
            "Olá maria, seu agendamento de Consulta com Clínica Bem Estar em 07/01/2030 às 10:00 está confirmed."
        )

    def test_empty_reply_falls_back(self, client_payload):
        message = NotificationMessageGenerator(client=fake_openai("")).generate(client_payload)
        assert message.startswith("Olá maria")

    def test_update_mentions_reason(self, booking):
        payload = NotificationEmitter(RecordingDispatcher()).build_payloads(
            booking, NotificationEvent.BOOKING_CANCELLED, "imprevisto"
        )[0]
        message = NotificationMessageGenerator(client=fake_openai(error=RuntimeError())).generate(payload)
        assert "imprevisto" in message


class TestDelivery:

    def test_posts_signed_message(self, db, webhook_company, client_payload):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"ok": True})

        log = delivery_service(db, handler).deliver(client_payload)

        assert log.status == "sent"
        assert log.message == "Olá Maria!"
        assert log.response_status_code == 200
        assert log.delivered_at is not None

        request = requests[0]
        body = request.content.decode()
        assert json.loads(body)["message"] == "Olá Maria!"
        assert json.loads(body)["event"] == "agendamento_criado"
        assert request.headers["X-Notification-Event"] == "agendamento_criado"
        assert NotificationDeliveryService.verify_signature(body, request.headers["X-Webhook-Signature"], "s3cret")
        assert not NotificationDeliveryService.verify_signature(body, request.headers["X-Webhook-Signature"], "other")

    def test_http_error_is_logged_as_failed(self, db, webhook_company, client_payload):
        log = delivery_service(db, lambda request: httpx.Response(500, text="boom")).deliver(client_payload)

        assert log.status == "failed"
        assert log.error_message == "HTTP 500: boom"
        assert db.query(NotificationLog).filter(NotificationLog.status == "failed").count() == 1

    def test_connection_error_is_logged_as_failed(self, db, webhook_company, client_payload):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        log = delivery_service(db, handler).deliver(client_payload)

        assert log.status == "failed"
        assert "connection refused" in log.error_message

    def test_company_without_webhook_is_skipped(self, db, client_payload):
        def handler(request):
            raise AssertionError("nothing should be posted")

        log = delivery_service(db, handler).deliver(client_payload)

        assert log.status == "skipped"
        assert log.message is None


def set_template(db, company, event, recipient, message="Olá {{cliente_nome}}, até {{data_hora}}!", is_active=True):
    return NotificationTemplateService.upsert_template(db, company.id, NotificationTemplateUpsert(
        event=event,
        recipient=recipient,
        channel=NotificationChannel.EMAIL,
        message=message,
        is_active=is_active,
    ))


class TestNotificationTemplates:

    def test_inactive_template_switches_target_off(self, db, company, booking):
        set_template(db, company, NotificationEvent.BOOKING_CANCELLED, NotificationRecipient.PROFESSIONAL,
                     is_active=False)

        payloads = NotificationEmitter(RecordingDispatcher()).emit(booking, NotificationEvent.BOOKING_CANCELLED)

        assert [(p.recipient, p.channel) for p in payloads] == [
            (NotificationRecipient.CLIENT, NotificationChannel.EMAIL),
        ]

    def test_active_template_adds_target_outside_defaults(self, db, company, booking):
        set_template(db, company, NotificationEvent.BOOKING_REJECTED, NotificationRecipient.PROFESSIONAL,
                     message="{{cliente_nome}} foi recusado para {{servico}}.")

        payloads = NotificationEmitter(RecordingDispatcher()).emit(booking, NotificationEvent.BOOKING_REJECTED)

        assert [p.recipient for p in payloads] == [
            NotificationRecipient.CLIENT,
            NotificationRecipient.PROFESSIONAL,
        ]
        assert payloads[0].template is None
        assert payloads[1].template == "{{cliente_nome}} foi recusado para {{servico}}."

    def test_template_wording_is_rendered_without_model(self, db, company, booking):
        set_template(db, company, NotificationEvent.BOOKING_CANCELLED, NotificationRecipient.CLIENT,
                     message="Olá {{cliente_nome}}, {{servico}} com {{profissional_nome}} em {{data_hora}} "
                             "foi {{status}}. {{assinatura}}")
        payload = NotificationEmitter(RecordingDispatcher()).build_payloads(
            booking, NotificationEvent.BOOKING_CANCELLED
        )[0]
        client = fake_openai("should not be used")

        message = NotificationMessageGenerator(client=client).generate(payload)

        assert message == "Olá maria, Consulta com Ana Souza em 07/01/2030 10:00 foi confirmed. {{assinatura}}"
        assert client.chat.completions.calls == []

    def test_upsert_replaces_existing_template(self, db, company):
        first = set_template(db, company, NotificationEvent.BOOKING_CREATED, NotificationRecipient.CLIENT)
        second = set_template(db, company, NotificationEvent.BOOKING_CREATED, NotificationRecipient.CLIENT,
                              message="Agendamento recebido, {{cliente_nome}}.", is_active=False)

        assert second.id == first.id
        templates = NotificationTemplateService.list_templates(db, company.id)
        assert len(templates) == 1
        assert templates[0].message == "Agendamento recebido, {{cliente_nome}}."
        assert templates[0].is_active is False

    def test_delete_restores_default_targets(self, db, company, booking):
        template = set_template(db, company, NotificationEvent.BOOKING_CANCELLED, NotificationRecipient.CLIENT,
                                is_active=False)
        NotificationTemplateService.delete_template(db, company.id, template.id)

        payloads = NotificationEmitter(RecordingDispatcher()).emit(booking, NotificationEvent.BOOKING_CANCELLED)

        assert len(payloads) == 2
        assert all(p.template is None for p in payloads)

    def test_delete_from_other_company_is_not_found(self, db, company):
        template = set_template(db, company, NotificationEvent.BOOKING_CREATED, NotificationRecipient.CLIENT)

        with pytest.raises(NotFoundError):
            NotificationTemplateService.delete_template(db, uuid4(), template.id)
