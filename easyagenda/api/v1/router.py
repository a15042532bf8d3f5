"""
API v1 router setup
Organized into: catalog, availability administration, slot lookup,
bookings and payment callbacks
"""
from fastapi import APIRouter

from easyagenda.api.v1 import availability, bookings, catalog, payments, slots

api_v1_router = APIRouter()

# ============================================================================
# ADMINISTRATION (companies, services, schedules)
# ============================================================================
api_v1_router.include_router(catalog.router, tags=["Catalog"])
api_v1_router.include_router(availability.router, tags=["Availability"])

# ============================================================================
# CLIENT BOOKING FLOW
# ============================================================================
api_v1_router.include_router(slots.router, tags=["Slots"])
api_v1_router.include_router(bookings.router, tags=["Bookings"])

# ============================================================================
# PAYMENT SUBSYSTEM CALLBACKS
# ============================================================================
api_v1_router.include_router(payments.router, tags=["Payments"])
