"""
Availability calculator.

Combines business hours, event normalization, slot generation and conflict
detection to answer three questions: which slots are bookable on a date,
which dates of a month have any bookable slot, and how a month grid should
be rendered.
"""

import calendar
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional

from django.utils import timezone as django_timezone
from django.utils.translation import gettext as _

from .business_hours import (
    TimezoneLike,
    get_timezone,
    is_business_day,
    owner_timezone_for,
    to_utc,
    windows_in_timezone,
)
from .conflict_detector import ConflictDetector, beyond_booking_window, date_has_slots_with_events
from .events import normalize_events
from .schedule import BookingPolicy, CalendarDay, ProfileSchedule, SelectionResult
from .time_slots import labels_for, parse_duration, slot_starts

logger = logging.getLogger(__name__)

CALENDAR_GRID_DAYS = 42


class AvailabilityCalculator:
    """
    Entry point of the availability engine.

    Every method is pure: inputs are passed per call and nothing is cached.
    ``now`` defaults to ``django.utils.timezone.now()``.
    """

    @staticmethod
    def available_slots(
        target_date: date,
        duration_minutes: Any,
        viewer_timezone: TimezoneLike,
        organizer_timezone: TimezoneLike,
        events: Optional[Iterable[Mapping[str, Any]]],
        policy: Optional[BookingPolicy] = None,
        schedule: Optional[ProfileSchedule] = None,
        now: Optional[datetime] = None,
    ) -> List[str]:
        """
        Get the bookable slots of a date, as seen by the viewer.

        The organizer's windows for the viewer's date (and up to two dates
        either side of it) are projected into the viewer's timezone, split into
        slots, and filtered against busy events and the booking policy.

        Args:
            target_date: Civil date in the viewer's timezone
            duration_minutes: Meeting length, as accepted by ``parse_duration``
            viewer_timezone: Viewer timezone
            organizer_timezone: Organizer timezone; None uses the schedule's
                timezone, or the DEFAULT_TIMEZONE setting without a schedule
            events: Busy events in any supported shape
            policy: Booking policy; defaults from settings
            schedule: Organizer schedule snapshot
            now: Current instant

        Returns:
            Unique slot labels in chronological order
        """
        policy = (policy or BookingPolicy()).with_duration(parse_duration(duration_minutes))
        organizer_zone = owner_timezone_for(organizer_timezone, schedule)
        viewer_zone = get_timezone(viewer_timezone)
        now = now or django_timezone.now()

        if beyond_booking_window(target_date, policy, viewer_zone, now):
            return []

        windows = windows_in_timezone(target_date, schedule, organizer_zone, viewer_zone)
        if not windows:
            logger.info(f"No business hours on {target_date}")
            return []

        detector = ConflictDetector(
            normalize_events(events, organizer_zone, viewer_zone), policy.buffer_minutes
        )

        candidates = []
        for window in windows:
            candidates.extend(
                slot_starts(
                    window.start, window.end, policy.duration_minutes, target_date, window.breaks
                )
            )

        available = detector.available_starts(
            candidates, policy.duration_minutes, earliest=to_utc(now) + policy.min_advance
        )
        available.sort(key=to_utc)
        return labels_for(available)

    @staticmethod
    def month_availability(
        year: int,
        month: int,
        viewer_timezone: TimezoneLike,
        organizer_timezone: TimezoneLike,
        events: Optional[Iterable[Mapping[str, Any]]],
        policy: Optional[BookingPolicy] = None,
        schedule: Optional[ProfileSchedule] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, bool]:
        """
        Get a date -> available map for every date of a month.

        Past dates and dates beyond the advance-booking window are False;
        the rest are decided by ``date_has_slots_with_events``.

        Returns:
            Dict keyed by ISO date strings
        """
        policy = policy or BookingPolicy()
        organizer_zone = owner_timezone_for(organizer_timezone, schedule)
        viewer_zone = get_timezone(viewer_timezone)
        now = now or django_timezone.now()
        today = to_utc(now).astimezone(viewer_zone).date()

        # Normalize once; the probe passes aware datetimes through
        normalized = normalize_events(events, organizer_zone, viewer_zone)

        availability = {}
        for day in range(1, calendar.monthrange(year, month)[1] + 1):
            current = date(year, month, day)
            if current < today or beyond_booking_window(current, policy, viewer_zone, now):
                availability[current.isoformat()] = False
                continue

            availability[current.isoformat()] = date_has_slots_with_events(
                current,
                organizer_zone,
                viewer_zone,
                normalized,
                policy,
                schedule=schedule,
                now=now,
            )

        return availability

    @staticmethod
    def get_calendar_days(
        viewer_timezone: TimezoneLike,
        year: int,
        month: int,
        policy: Optional[BookingPolicy] = None,
        schedule: Optional[ProfileSchedule] = None,
        now: Optional[datetime] = None,
    ) -> List[CalendarDay]:
        """
        Build the 6-week grid used to render a month.

        The grid starts on the Sunday on or before the 1st and always holds
        42 days. A day is available when it is a business day, not in the
        past and within the advance-booking window.
        """
        policy = policy or BookingPolicy()
        viewer_zone = get_timezone(viewer_timezone)
        now = now or django_timezone.now()
        today = to_utc(now).astimezone(viewer_zone).date()

        first = date(year, month, 1)
        # isoweekday: Sunday is 7
        grid_start = first - timedelta(days=first.isoweekday() % 7)

        days = []
        for offset in range(CALENDAR_GRID_DAYS):
            current = grid_start + timedelta(days=offset)
            past = current < today
            available = (
                not past
                and not beyond_booking_window(current, policy, viewer_zone, now)
                and is_business_day(current, schedule)
            )
            days.append(
                CalendarDay(
                    date=current.isoformat(),
                    day=current.day,
                    available=available,
                    past=past,
                    today=current == today,
                    current_month=current.month == month,
                )
            )
        return days

    @staticmethod
    def time_slot_available(selected_date: Any, selected_time: Any, slots: Any) -> bool:
        """
        Shape check for a selection; real availability is checked when the
        booking is submitted.
        """
        return (
            isinstance(selected_date, (str, date))
            and isinstance(selected_time, (str, time))
            and isinstance(slots, list)
        )

    @classmethod
    def validate_time_selection(
        cls, selected_date: Any, selected_time: Any, slots: Any
    ) -> SelectionResult:
        """
        Validate that a visitor picked both a date and a time.

        Returns:
            SelectionResult; never raises
        """
        if selected_date is None or selected_date == "":
            return SelectionResult.failure(_("Please select a date"))

        if selected_time is None or selected_time == "":
            return SelectionResult.failure(_("Please select a time"))

        if not isinstance(slots, list):
            return SelectionResult.failure(_("Please select a date and time"))

        if not cls.time_slot_available(selected_date, selected_time, slots):
            return SelectionResult.failure(_("Selected time is no longer available"))

        return SelectionResult.success()
