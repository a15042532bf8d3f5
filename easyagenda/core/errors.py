# easyagenda/core/errors.py
"""Booking engine error taxonomy and their HTTP translation"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BookingEngineError(Exception):
    """Base class for every error raised by the booking engine"""

    code = "booking_engine_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRuleError(BookingEngineError):
    """Malformed availability or service configuration, rejected at write time"""

    code = "invalid_rule"
    status_code = 422


class SlotUnavailableError(BookingEngineError):
    """The requested slot is no longer open; the caller must re-query availability"""

    code = "slot_unavailable"
    status_code = 409

    def __init__(self, slot_start: Optional[datetime], reason: str = "slot is no longer available"):
        when = slot_start.isoformat() if slot_start else "requested slot"
        super().__init__(f"{when}: {reason}")
        self.slot_start = slot_start
        self.reason = reason


class PersistenceError(BookingEngineError):
    """Ledger write failed; nothing was committed"""

    code = "persistence_error"
    status_code = 503


class InvalidTransitionError(BookingEngineError):
    """Booking status change not allowed from the current status"""

    code = "invalid_transition"
    status_code = 409


class NotFoundError(BookingEngineError):
    code = "not_found"
    status_code = 404


class PermissionDeniedError(BookingEngineError):
    code = "permission_denied"
    status_code = 403


async def booking_engine_error_handler(request: Request, exc: BookingEngineError) -> JSONResponse:
    """Render engine errors as JSON bodies with a stable error code"""
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    if isinstance(exc, PersistenceError):
        logger.error(f"Persistence failure [{correlation_id}]: {exc.message}")
    elif isinstance(exc, SlotUnavailableError):
        # Contention is an expected outcome, not a failure
        logger.info(f"Slot unavailable [{correlation_id}]: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": "invalid_request", "detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingEngineError, booking_engine_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
