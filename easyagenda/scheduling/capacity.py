"""
Capacity & Conflict Checking

Filters candidate slots against the booking ledger, the concurrency limits
of the service, the 24-hour lockout and agenda blocks. Pure function of its
inputs plus the "now" it is given.
"""
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from easyagenda.schemas.availability import TimeWindow
from easyagenda.schemas.booking import Slot
from easyagenda.scheduling.windows import overlaps


class LedgerEntry(BaseModel):
    """A capacity-holding booking of the professional"""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    client_id: str


class CapacityPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    simultaneous_bookings_per_slot: int = 1
    simultaneous_bookings_per_user: int = 1
    block_24_hours: bool = False
    lockout_hours: int = 24


class SlotRejection:
    PAST = "slot has already started"
    LOCKOUT = "slot starts within the booking lockout window"
    BLOCKED = "slot overlaps an agenda block"
    FULL = "slot has no remaining capacity"
    CLIENT_LIMIT = "client reached the simultaneous booking limit"


def rejection_reason(
        slot: Slot,
        ledger: Sequence[LedgerEntry],
        policy: CapacityPolicy,
        now: datetime,
        client_id: Optional[str] = None,
        blocks: Sequence[TimeWindow] = (),
) -> Optional[str]:
    """Why the slot cannot be booked, or None when it is open"""
    if slot.start <= now:
        return SlotRejection.PAST

    if policy.block_24_hours and slot.start < now + timedelta(hours=policy.lockout_hours):
        return SlotRejection.LOCKOUT

    if any(block.overlaps(slot.start, slot.end) for block in blocks):
        return SlotRejection.BLOCKED

    overlapping = [entry for entry in ledger if overlaps(entry.start, entry.end, slot.start, slot.end)]
    if len(overlapping) >= policy.simultaneous_bookings_per_slot:
        return SlotRejection.FULL

    if client_id is not None:
        own = sum(1 for entry in overlapping if entry.client_id == client_id)
        if own >= policy.simultaneous_bookings_per_user:
            return SlotRejection.CLIENT_LIMIT

    return None


def remaining_capacity(slot: Slot, ledger: Sequence[LedgerEntry], policy: CapacityPolicy) -> int:
    used = sum(1 for entry in ledger if overlaps(entry.start, entry.end, slot.start, slot.end))
    return max(0, policy.simultaneous_bookings_per_slot - used)


def filter_open_slots(
        candidates: Iterable[Slot],
        ledger: Sequence[LedgerEntry],
        policy: CapacityPolicy,
        now: datetime,
        client_id: Optional[str] = None,
        blocks: Sequence[TimeWindow] = (),
) -> List[Slot]:
    """
    Keep only the slots that can still be reserved.

    Returns:
        Open slots in candidate order, annotated with capacity_remaining.
    """
    open_slots = []
    for slot in candidates:
        if rejection_reason(slot, ledger, policy, now, client_id, blocks) is not None:
            continue
        open_slots.append(
            slot.model_copy(update={"capacity_remaining": remaining_capacity(slot, ledger, policy)})
        )

    return open_slots
