# ===== easyagenda/services/payment/payment_service.py =====
"""Booking fee policy; payment processing itself happens elsewhere"""
from decimal import Decimal

from easyagenda.models.service import Service


def requires_payment(service: Service) -> bool:
    """True when a reservation must wait in pending_payment for the booking fee"""
    if not service.booking_fee_enabled:
        return False
    return Decimal(str(service.booking_fee_amount or 0)) > 0
