"""
Availability calculation algorithms.

This package computes which meeting slots an organizer can offer a visitor,
from the organizer's weekly hours and date overrides, the busy events of
their connected calendars, and a booking policy.

Key components:
- AvailabilityCalculator: Exact slot lists, month maps and calendar grids
- ConflictDetector: Buffered overlap checks against busy events
- normalize_events: Projects mixed busy events into one timezone
"""

from .calculate import AvailabilityCalculator
from .conflict_detector import ConflictDetector, date_has_slots_with_events
from .events import normalize_events
from .schedule import (
    AvailabilityOverride,
    BookingPolicy,
    Break,
    CalendarDay,
    OverrideType,
    ProfileSchedule,
    SelectionResult,
    WeeklyAvailabilityRule,
)

__all__ = [
    "AvailabilityCalculator",
    "AvailabilityOverride",
    "BookingPolicy",
    "Break",
    "CalendarDay",
    "ConflictDetector",
    "OverrideType",
    "ProfileSchedule",
    "SelectionResult",
    "WeeklyAvailabilityRule",
    "date_has_slots_with_events",
    "normalize_events",
]
