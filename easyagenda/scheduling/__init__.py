"""Pure availability and booking engine: no database, no network"""
from .windows import day_windows, merge_windows, subtract_interval, validate_day_availability, weekly_occurrences
from .resolver import AvailabilityContext, AvailabilityResolver, DateOverride, OverrideScope
from .slots import generate_slots
from .capacity import CapacityPolicy, LedgerEntry, filter_open_slots, rejection_reason

__all__ = [
    "day_windows",
    "merge_windows",
    "subtract_interval",
    "validate_day_availability",
    "weekly_occurrences",
    "AvailabilityContext",
    "AvailabilityResolver",
    "DateOverride",
    "OverrideScope",
    "generate_slots",
    "CapacityPolicy",
    "LedgerEntry",
    "filter_open_slots",
    "rejection_reason",
]
