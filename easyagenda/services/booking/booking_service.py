# ============================================================================
# easyagenda/services/booking/booking_service.py
# ============================================================================
"""
Booking state machine driver

Reserve is the only blocking operation: it runs under the professional/day
lock, re-checks the slot against a fresh ledger read and commits before the
lock is released. Every committed transition is then handed to the
notification emitter.
"""
import logging
from datetime import datetime, time, timedelta
from typing import Callable, Dict, FrozenSet, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from easyagenda.config.settings import get_settings
from easyagenda.core.errors import (
    InvalidTransitionError,
    PermissionDeniedError,
    SlotUnavailableError,
)
from easyagenda.models.availability import AgendaBlock
from easyagenda.models.booking import Booking
from easyagenda.models.company import Company
from easyagenda.schemas.availability import AgendaBlockCreate
from easyagenda.schemas.booking import Actor, ActorRole, BookingStatus
from easyagenda.schemas.catalog import ConfirmationType
from easyagenda.schemas.notifications import NotificationEvent
from easyagenda.scheduling.capacity import rejection_reason
from easyagenda.scheduling.resolver import AvailabilityResolver
from easyagenda.scheduling.slots import generate_slots
from easyagenda.scheduling.state_machine import check_transition, initial_status, status_after_payment
from easyagenda.services.availability.availability_service import SlotQueryService
from easyagenda.services.availability.rule_store import AvailabilityRuleService
from easyagenda.services.booking.ledger import BookingLedger, SqlBookingLedger, to_ledger_entries
from easyagenda.services.booking.locks import LockNotAcquired, LockProvider, booking_lock_key, get_lock_provider
from easyagenda.services.catalog.catalog_service import CatalogService
from easyagenda.services.notification.emitter import NotificationEmitter
from easyagenda.services.payment.payment_service import requires_payment
from easyagenda.utils.timeutils import local_now, to_wall_clock, utc_now

logger = logging.getLogger(__name__)

# Company wall-clock "now" for a timezone name
Clock = Callable[[str], datetime]

STAFF = frozenset({ActorRole.PROFESSIONAL, ActorRole.COMPANY})
STAFF_OR_SYSTEM = STAFF | {ActorRole.SYSTEM}
ANYONE = STAFF_OR_SYSTEM | {ActorRole.CLIENT}


class BookingService:
    """Owns every booking status change"""

    def __init__(
            self,
            db: Session,
            ledger: Optional[BookingLedger] = None,
            lock_provider: Optional[LockProvider] = None,
            emitter: Optional[NotificationEmitter] = None,
            clock: Optional[Clock] = None
    ):
        self.db = db
        self.ledger = ledger or SqlBookingLedger(db)
        self.lock_provider = lock_provider or get_lock_provider()
        self.emitter = emitter or NotificationEmitter()
        self.clock = clock or local_now
        self.settings = get_settings()

    # ------------------------------------------------------------------
    # Reserve
    # ------------------------------------------------------------------

    def reserve(
            self,
            professional_id: UUID,
            service_id: UUID,
            client_id: str,
            slot_start: datetime,
            slot_end: Optional[datetime] = None
    ) -> Booking:
        """
        Atomically check and reserve a slot.

        A start or end carrying a UTC offset is converted to the company's
        wall-clock time; naive values are taken as company time.

        Raises:
            SlotUnavailableError: the slot is not offered, is full, blocked,
                inside the lockout, or the lock could not be taken in time.
            PersistenceError: the ledger write failed; nothing was stored.
        """
        professional = CatalogService.get_professional(self.db, professional_id)
        service = CatalogService.get_service(self.db, service_id)

        if not SlotQueryService.is_bookable(professional, service):
            raise SlotUnavailableError(slot_start, "service is not bookable with this professional")

        tz_name = professional.company.timezone
        slot_start = to_wall_clock(slot_start, tz_name).replace(second=0, microsecond=0)
        expected_end = slot_start + timedelta(minutes=service.duration_minutes)
        if slot_end is not None and to_wall_clock(slot_end, tz_name) != expected_end:
            raise ValueError(f"slot end must be {expected_end.isoformat()} for a {service.duration_minutes} minute service")

        key = booking_lock_key(professional.id, slot_start.date())
        try:
            with self.lock_provider.hold(key, self.settings.BOOKING_LOCK_WAIT_SECONDS):
                booking = self._reserve_locked(professional, service, client_id, slot_start)
        except LockNotAcquired:
            logger.info(f"Timed out waiting for {key}")
            raise SlotUnavailableError(slot_start, "too many concurrent reservations, try again")

        logger.info(f"Reserved booking {booking.id} ({booking.status}) at {slot_start} for client {client_id}")
        self.emitter.emit(booking, NotificationEvent.BOOKING_CREATED)
        return booking

    def _reserve_locked(self, professional, service, client_id: str, slot_start: datetime) -> Booking:
        day = slot_start.date()
        now = self.clock(professional.company.timezone)

        try:
            self.ledger.lock_professional(professional.id)

            context = AvailabilityRuleService.load_context(self.db, professional, service, day, day)
            candidates = generate_slots(
                AvailabilityResolver(context).windows_for(day),
                professional_id=professional.id,
                service_id=service.id,
                duration_minutes=service.duration_minutes,
                interval_minutes=service.interval_between_slots_minutes,
            )
            slot = next((c for c in candidates if c.start == slot_start), None)
            if slot is None:
                raise SlotUnavailableError(slot_start, "not an offered slot for this service")

            day_start = datetime.combine(day, time.min)
            day_end = day_start + timedelta(days=1)
            ledger = to_ledger_entries(self.ledger.overlapping(professional.id, day_start, day_end))
            blocks = AvailabilityRuleService.block_windows(
                self.db, professional.company_id, professional.id, day_start, day_end
            )

            reason = rejection_reason(
                slot, ledger, SlotQueryService.capacity_policy(service), now, client_id, blocks
            )
            if reason is not None:
                raise SlotUnavailableError(slot_start, reason)

        except SlotUnavailableError:
            self.ledger.rollback()
            raise

        status = initial_status(requires_payment(service), ConfirmationType(service.confirmation_type))
        booking = Booking(
            company_id=professional.company_id,
            service_id=service.id,
            professional_id=professional.id,
            client_id=client_id,
            start_datetime=slot.start,
            end_datetime=slot.end,
            status=status.value,
            confirmed_at=utc_now() if status == BookingStatus.CONFIRMED else None,
        )
        self.ledger.add(booking)
        self.ledger.commit("booking reservation")
        return booking

    # ------------------------------------------------------------------
    # Payment callbacks
    # ------------------------------------------------------------------

    def payment_confirmed(self, booking_id: UUID, payment_reference: Optional[str] = None) -> Booking:
        booking = self.ledger.get(booking_id, for_update=True)

        if booking.status != BookingStatus.PENDING_PAYMENT.value:
            # Repeated or late callback
            logger.info(f"Ignoring payment confirmation for booking {booking_id} in status {booking.status}")
            self.ledger.rollback()
            return booking

        target = status_after_payment(ConfirmationType(booking.service.confirmation_type))
        now = self.clock(booking.company.timezone)
        check_transition(booking.status, target, booking.end_datetime, now)

        booking.status = target.value
        booking.payment_reference = payment_reference
        if target == BookingStatus.CONFIRMED:
            booking.confirmed_at = utc_now()
        self.ledger.commit("payment confirmation")

        logger.info(f"Payment confirmed for booking {booking_id}, now {booking.status}")
        self.emitter.emit(booking, NotificationEvent.PAYMENT_CONFIRMED)
        return booking

    def payment_failed(self, booking_id: UUID) -> Booking:
        booking = self.ledger.get(booking_id, for_update=True)

        if booking.status == BookingStatus.CANCELLED.value:
            self.ledger.rollback()
            return booking
        if booking.status != BookingStatus.PENDING_PAYMENT.value:
            self.ledger.rollback()
            raise InvalidTransitionError(f"booking {booking_id} is not awaiting payment ({booking.status})")

        return self._apply(
            booking,
            BookingStatus.CANCELLED,
            Actor.system(),
            NotificationEvent.PAYMENT_FAILED,
            reason="payment failed",
        )

    # ------------------------------------------------------------------
    # Actor transitions
    # ------------------------------------------------------------------

    def confirm(self, booking_id: UUID, actor: Actor) -> Booking:
        """Manual approval of a pending_approval booking"""
        booking = self._load_for(booking_id, actor, STAFF)
        if booking.status != BookingStatus.PENDING_APPROVAL.value:
            self.ledger.rollback()
            raise InvalidTransitionError(f"only bookings pending approval can be confirmed ({booking.status})")

        return self._apply(booking, BookingStatus.CONFIRMED, actor, NotificationEvent.BOOKING_APPROVED)

    def reject(self, booking_id: UUID, actor: Actor, reason: Optional[str] = None) -> Booking:
        booking = self._load_for(booking_id, actor, STAFF)
        if booking.status != BookingStatus.PENDING_APPROVAL.value:
            self.ledger.rollback()
            raise InvalidTransitionError(f"only bookings pending approval can be rejected ({booking.status})")

        return self._apply(booking, BookingStatus.CANCELLED, actor, NotificationEvent.BOOKING_REJECTED, reason)

    def cancel(self, booking_id: UUID, actor: Actor, reason: Optional[str] = None) -> Booking:
        """Cancel from any non-terminal status; cancelling twice returns the booking unchanged"""
        booking = self._load_for(booking_id, actor, ANYONE)
        return self._apply(booking, BookingStatus.CANCELLED, actor, NotificationEvent.BOOKING_CANCELLED, reason)

    def complete(self, booking_id: UUID, actor: Actor) -> Booking:
        booking = self._load_for(booking_id, actor, STAFF_OR_SYSTEM)
        return self._apply(booking, BookingStatus.COMPLETED, actor, NotificationEvent.BOOKING_COMPLETED)

    def mark_no_show(self, booking_id: UUID, actor: Actor) -> Booking:
        booking = self._load_for(booking_id, actor, STAFF_OR_SYSTEM)
        return self._apply(booking, BookingStatus.NO_SHOW, actor, NotificationEvent.BOOKING_NO_SHOW)

    def _load_for(self, booking_id: UUID, actor: Actor, allowed: FrozenSet[ActorRole]) -> Booking:
        booking = self.ledger.get(booking_id, for_update=True)
        try:
            self.check_actor(booking, actor, allowed)
        except PermissionDeniedError:
            self.ledger.rollback()
            raise
        return booking

    @staticmethod
    def check_actor(booking: Booking, actor: Actor, allowed: FrozenSet[ActorRole]) -> None:
        """A client acts on its own bookings, a professional on its own, a company on its tenant's"""
        if actor.role not in allowed:
            raise PermissionDeniedError(f"{actor.role.value} may not perform this action")

        owner = {
            ActorRole.CLIENT: booking.client_id,
            ActorRole.PROFESSIONAL: str(booking.professional_id),
            ActorRole.COMPANY: str(booking.company_id),
        }.get(actor.role)

        if owner is not None and actor.id != owner:
            raise PermissionDeniedError(f"{actor.role.value} {actor.id} does not own booking {booking.id}")

    def _apply(
            self,
            booking: Booking,
            target: BookingStatus,
            actor: Actor,
            event: NotificationEvent,
            reason: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> Booking:
        if now is None:
            now = self.clock(booking.company.timezone)
        try:
            changed = check_transition(booking.status, target, booking.end_datetime, now)
        except InvalidTransitionError:
            self.ledger.rollback()
            raise

        if not changed:
            self.ledger.rollback()
            return booking

        previous = booking.status
        booking.status = target.value
        stamp = utc_now()
        if target == BookingStatus.CONFIRMED:
            booking.confirmed_at = stamp
        elif target == BookingStatus.COMPLETED:
            booking.completed_at = stamp
        elif target == BookingStatus.CANCELLED:
            booking.cancelled_at = stamp
            booking.cancelled_by = actor.role.value
            booking.cancellation_reason = reason
        self.ledger.commit(f"booking {target.value}")

        logger.info(f"Booking {booking.id}: {previous} -> {booking.status} by {actor.role.value}")
        self.emitter.emit(booking, event, reason)
        return booking

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: UUID) -> Booking:
        return self.ledger.get(booking_id)

    def list_bookings(
            self,
            professional_id: Optional[UUID] = None,
            client_id: Optional[str] = None,
            status: Optional[BookingStatus] = None
    ) -> List[Booking]:
        return self.ledger.find(
            professional_id=professional_id,
            client_id=client_id,
            status=BookingStatus(status).value if status else None,
        )

    # ------------------------------------------------------------------
    # Agenda blocks
    # ------------------------------------------------------------------

    def add_agenda_block(self, data: AgendaBlockCreate) -> Dict:
        """Store the block and, when asked, cancel the bookings it hits"""
        block = AvailabilityRuleService.add_agenda_block(self.db, data)

        cancelled = []
        if data.cancel_conflicts:
            cancelled = self.cancel_conflicts_with_block(block)

        return {"block": block, "cancelled": cancelled}

    def cancel_conflicts_with_block(self, block: AgendaBlock) -> List[Booking]:
        conflicts = AvailabilityRuleService.find_block_conflicts(
            self.db,
            block.company_id,
            block.professional_id,
            block.start_datetime,
            block.end_datetime,
            block.repeats_weekly,
        )

        reason = block.reason or "agenda blocked"
        cancelled = []
        for conflict in conflicts:
            booking = self.ledger.get(conflict.id, for_update=True)
            cancelled.append(self._apply(
                booking,
                BookingStatus.CANCELLED,
                Actor(role=ActorRole.COMPANY, id=str(block.company_id)),
                NotificationEvent.BOOKING_CANCELLED_BY_BLOCK,
                reason,
            ))

        if cancelled:
            logger.info(f"Agenda block {block.id} cancelled {len(cancelled)} bookings")
        return cancelled

    # ------------------------------------------------------------------
    # Periodic sweeps
    # ------------------------------------------------------------------

    def _company_now(self, company: Company, now: Optional[datetime]) -> datetime:
        return now if now is not None else self.clock(company.timezone)

    def _active_companies(self) -> List[Company]:
        return self.db.query(Company).filter(Company.is_active.is_(True)).all()

    def mark_overdue_no_shows(self, now: Optional[datetime] = None) -> List[Booking]:
        """Confirmed bookings whose slot ended more than the grace period ago become no_show"""
        grace = timedelta(minutes=self.settings.NO_SHOW_GRACE_MINUTES)
        marked = []

        for company in self._active_companies():
            company_now = self._company_now(company, now)
            cutoff = company_now - grace
            overdue = self.db.query(Booking).filter(
                Booking.company_id == company.id,
                Booking.status == BookingStatus.CONFIRMED.value,
                Booking.end_datetime <= cutoff,
            ).all()

            for booking in overdue:
                locked = self.ledger.get(booking.id, for_update=True)
                if locked.status != BookingStatus.CONFIRMED.value:
                    self.ledger.rollback()
                    continue
                marked.append(self._apply(
                    locked, BookingStatus.NO_SHOW, Actor.system(), NotificationEvent.BOOKING_NO_SHOW, now=company_now
                ))

        if marked:
            logger.info(f"Marked {len(marked)} overdue bookings as no_show")
        return marked

    def due_reminders(self, now: Optional[datetime] = None) -> List[Booking]:
        """Confirmed bookings starting within the reminder lead time that were not reminded yet"""
        lead = timedelta(hours=self.settings.REMINDER_LEAD_HOURS)
        due = []

        for company in self._active_companies():
            company_now = self._company_now(company, now)
            due.extend(self.db.query(Booking).filter(
                Booking.company_id == company.id,
                Booking.status == BookingStatus.CONFIRMED.value,
                Booking.reminder_sent_at.is_(None),
                Booking.start_datetime > company_now,
                Booking.start_datetime <= company_now + lead,
            ).order_by(Booking.start_datetime).all())

        return due

    def send_reminders(self, now: Optional[datetime] = None) -> int:
        sent = 0
        for due in self.due_reminders(now):
            # Overlapping sweeps: only the first one to lock the row sends
            booking = self.ledger.get(due.id, for_update=True)
            if booking.reminder_sent_at is not None or booking.status != BookingStatus.CONFIRMED.value:
                self.ledger.rollback()
                continue

            booking.reminder_sent_at = utc_now()
            self.ledger.commit("booking reminder")
            self.emitter.emit(booking, NotificationEvent.BOOKING_REMINDER)
            sent += 1

        if sent:
            logger.info(f"Sent {sent} booking reminders")
        return sent

