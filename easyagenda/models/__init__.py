# easyagenda/models/__init__.py
from .base import Base
from .company import Company, Professional
from .service import Service, service_professionals
from .availability import AvailabilityRule, AvailabilityOverride, AgendaBlock
from .booking import Booking
from .notification_log import NotificationLog
from .notification_template import NotificationTemplate

__all__ = [
    "Base",
    "Company",
    "Professional",
    "Service",
    "service_professionals",
    "AvailabilityRule",
    "AvailabilityOverride",
    "AgendaBlock",
    "Booking",
    "NotificationLog",
    "NotificationTemplate",
]
