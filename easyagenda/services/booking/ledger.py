# ===== easyagenda/services/booking/ledger.py =====
"""
Booking ledger

The booking engine talks to storage only through BookingLedger, so the
atomic reserve can be backed by real transactions and row locks.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from easyagenda.config.database import commit_or_raise
from easyagenda.core.errors import NotFoundError
from easyagenda.models.booking import Booking
from easyagenda.models.company import Professional
from easyagenda.scheduling.capacity import LedgerEntry
from easyagenda.scheduling.state_machine import CAPACITY_HOLDING_STATUSES

logger = logging.getLogger(__name__)


class BookingLedger(ABC):
    """Storage contract of the booking state machine"""

    @abstractmethod
    def lock_professional(self, professional_id: UUID) -> None:
        """Serialize ledger writes of one professional until commit or rollback"""

    @abstractmethod
    def overlapping(self, professional_id: UUID, start: datetime, end: datetime) -> List[Booking]:
        """Capacity-holding bookings of the professional overlapping [start, end)"""

    @abstractmethod
    def get(self, booking_id: UUID, for_update: bool = False) -> Booking:
        ...

    @abstractmethod
    def add(self, booking: Booking) -> Booking:
        ...

    @abstractmethod
    def find(
            self,
            professional_id: Optional[UUID] = None,
            client_id: Optional[str] = None,
            status: Optional[str] = None
    ) -> List[Booking]:
        ...

    @abstractmethod
    def commit(self, what: str = "booking") -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...


class SqlBookingLedger(BookingLedger):
    """Ledger on a SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    def lock_professional(self, professional_id: UUID) -> None:
        # SELECT ... FOR UPDATE; SQLite ignores it and relies on the booking lock
        self.db.query(Professional.id).filter(
            Professional.id == professional_id
        ).with_for_update().first()

    def overlapping(self, professional_id: UUID, start: datetime, end: datetime) -> List[Booking]:
        return self.db.query(Booking).filter(
            Booking.professional_id == professional_id,
            Booking.status.in_([s.value for s in CAPACITY_HOLDING_STATUSES]),
            Booking.start_datetime < end,
            Booking.end_datetime > start,
        ).order_by(Booking.start_datetime).populate_existing().all()

    def get(self, booking_id: UUID, for_update: bool = False) -> Booking:
        query = self.db.query(Booking).filter(Booking.id == booking_id).populate_existing()
        if for_update:
            query = query.with_for_update()

        booking = query.first()
        if not booking:
            raise NotFoundError(f"booking {booking_id} not found")
        return booking

    def add(self, booking: Booking) -> Booking:
        self.db.add(booking)
        return booking

    def find(
            self,
            professional_id: Optional[UUID] = None,
            client_id: Optional[str] = None,
            status: Optional[str] = None
    ) -> List[Booking]:
        query = self.db.query(Booking)
        if professional_id is not None:
            query = query.filter(Booking.professional_id == professional_id)
        if client_id is not None:
            query = query.filter(Booking.client_id == client_id)
        if status is not None:
            query = query.filter(Booking.status == status)

        return query.order_by(Booking.start_datetime).all()

    def commit(self, what: str = "booking") -> None:
        commit_or_raise(self.db, what)

    def rollback(self) -> None:
        self.db.rollback()


def to_ledger_entries(bookings: Iterable[Booking]) -> List[LedgerEntry]:
    """Project booking rows onto what the capacity checker reads"""
    return [
        LedgerEntry(start=b.start_datetime, end=b.end_datetime, client_id=b.client_id)
        for b in bookings
    ]
