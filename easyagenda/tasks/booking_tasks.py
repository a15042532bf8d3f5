# ===== easyagenda/tasks/booking_tasks.py =====
import logging

from easyagenda.config.celery_config import celery_app
from easyagenda.config.database import get_session_factory
from easyagenda.services.booking.booking_service import BookingService

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def sweep_no_shows(self):
    """Mark confirmed bookings whose slot ended past the grace period as no_show"""
    db = get_session_factory()()
    try:
        marked = BookingService(db).mark_overdue_no_shows()
        return {"status": "success", "marked": len(marked)}

    except Exception as exc:
        logger.error(f"No-show sweep failed: {exc}")
        raise self.retry(exc=exc, countdown=60)

    finally:
        db.close()


@celery_app.task(bind=True, max_retries=3)
def send_booking_reminders(self):
    """Emit lembrete_agendamento once for confirmed bookings starting soon"""
    db = get_session_factory()()
    try:
        sent = BookingService(db).send_reminders()
        return {"status": "success", "sent": sent}

    except Exception as exc:
        logger.error(f"Reminder sweep failed: {exc}")
        raise self.retry(exc=exc, countdown=60)

    finally:
        db.close()
