from datetime import datetime

import pytest

from easyagenda.models.notification_log import NotificationLog
from easyagenda.schemas.notifications import NotificationEvent
from easyagenda.services.booking.booking_service import BookingService
from easyagenda.tasks import booking_tasks, notification_tasks
from tests.conftest import MONDAY, TUESDAY, at


@pytest.fixture
def task_env(monkeypatch, session_factory, lock_provider, emitter, clock):
    """Point the tasks at the test database and keep notifications off the broker"""
    monkeypatch.setattr(booking_tasks, "get_session_factory", lambda: session_factory)
    monkeypatch.setattr(notification_tasks, "get_session_factory", lambda: session_factory)
    monkeypatch.setattr(
        booking_tasks,
        "BookingService",
        lambda db: BookingService(db, lock_provider=lock_provider, emitter=emitter, clock=clock),
    )


def test_sweep_no_shows(task_env, booking_service, professional, service, clock, dispatcher):
    booking_service.reserve(professional.id, service.id, "maria", at(MONDAY, 10))

    assert booking_tasks.sweep_no_shows() == {"status": "success", "marked": 0}

    clock.now = at(TUESDAY, 12)
    assert booking_tasks.sweep_no_shows() == {"status": "success", "marked": 1}
    assert NotificationEvent.BOOKING_NO_SHOW in dispatcher.events()


def test_send_booking_reminders(task_env, booking_service, professional, service, clock):
    booking_service.reserve(professional.id, service.id, "maria", at(MONDAY, 10))
    clock.now = datetime(2030, 1, 6, 18, 0)

    assert booking_tasks.send_booking_reminders() == {"status": "success", "sent": 1}
    assert booking_tasks.send_booking_reminders() == {"status": "success", "sent": 0}


def test_deliver_notification_without_webhook(task_env, db, booking_service, professional, service, dispatcher):
    booking = booking_service.reserve(professional.id, service.id, "maria", at(MONDAY, 10))
    payload = dispatcher.payloads[0].model_dump(mode="json")

    result = notification_tasks.deliver_notification(payload)

    assert result["status"] == "skipped"
    assert result["booking_id"] == str(booking.id)
    log = db.query(NotificationLog).one()
    assert log.event == "agendamento_criado"
    assert log.recipient == "cliente"
