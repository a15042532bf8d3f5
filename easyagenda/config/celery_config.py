"""Celery application factory and beat schedule"""
from celery import Celery
from celery.schedules import crontab

from easyagenda.config.settings import get_settings


def create_celery_app() -> Celery:
    """Create and configure the Celery application"""
    settings = get_settings()

    app = Celery(
        "easyagenda",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=[
            "easyagenda.tasks.notification_tasks",
            "easyagenda.tasks.booking_tasks",
        ],
    )

    app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        task_routes={
            "easyagenda.tasks.notification_tasks.*": {"queue": "notifications"},
            "easyagenda.tasks.booking_tasks.*": {"queue": "default"},
        },
        beat_schedule={
            "sweep-no-shows": {
                "task": "easyagenda.tasks.booking_tasks.sweep_no_shows",
                "schedule": crontab(minute="*/15"),
            },
            "send-booking-reminders": {
                "task": "easyagenda.tasks.booking_tasks.send_booking_reminders",
                "schedule": crontab(minute="*/15"),
            },
        },
    )

    return app


celery_app = create_celery_app()
