# ============================================================================
# FILE: easyagenda/api/dependencies.py
# Service wiring for the HTTP layer
# ============================================================================
from fastapi import Depends
from sqlalchemy.orm import Session

from easyagenda.config.database import get_db
from easyagenda.services.booking.booking_service import BookingService, Clock
from easyagenda.services.booking.locks import LockProvider, get_lock_provider
from easyagenda.services.notification.emitter import NotificationEmitter
from easyagenda.utils.timeutils import local_now


def get_clock() -> Clock:
    """Company wall-clock source; tests override it with a fixed instant"""
    return local_now


def get_booking_lock_provider() -> LockProvider:
    return get_lock_provider()


def get_notification_emitter() -> NotificationEmitter:
    return NotificationEmitter()


def get_booking_service(
        db: Session = Depends(get_db),
        lock_provider: LockProvider = Depends(get_booking_lock_provider),
        emitter: NotificationEmitter = Depends(get_notification_emitter),
        clock: Clock = Depends(get_clock)
) -> BookingService:
    return BookingService(db, lock_provider=lock_provider, emitter=emitter, clock=clock)
