"""
Buffered conflict detection and the day-level availability probe.

A candidate slot ``[s, e)`` conflicts with a busy event ``[es, ee)`` when
the event, padded by the buffer on both sides, overlaps it:

    (es - buffer) < e and (ee + buffer) > s

Inequalities are strict, so a slot touching a padded event does not
conflict.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from django.utils import timezone as django_timezone

from .business_hours import (
    ProjectedWindow,
    TimezoneLike,
    get_timezone,
    owner_timezone_for,
    safe_local_datetime,
    to_utc,
    windows_in_timezone,
)
from .events import event_date_span, normalize_events
from .schedule import BookingPolicy, ProfileSchedule
from .time_slots import parse_slot

logger = logging.getLogger(__name__)

# Events whose civil span in the viewer timezone misses [date - 2, date + 2]
# cannot reach the viewer date, even padded by a buffer under 24 hours
PREFILTER_DAYS = 2


def _instant(value: Union[datetime, time]) -> Union[datetime, time]:
    if isinstance(value, datetime) and value.tzinfo is not None:
        return to_utc(value)
    return value


class TimeRange:
    """Represents a half-open time range ``[start, end)``."""

    def __init__(self, start: Union[datetime, time], end: Union[datetime, time]):
        """
        Initialize a time range.

        Args:
            start: Start time of the range
            end: End time of the range
        """
        self.start = start
        self.end = end

    def __str__(self) -> str:
        if isinstance(self.start, datetime):
            return f"{self.start.isoformat()} - {self.end.isoformat()}"
        return f"{self.start.strftime('%H:%M')} - {self.end.strftime('%H:%M')}"

    def __repr__(self) -> str:
        return f"TimeRange({self})"

    def overlaps(self, other: "TimeRange") -> bool:
        """
        Check if this time range overlaps with another.

        Ranges that only touch do not overlap.
        """
        return _instant(self.start) < _instant(other.end) and _instant(other.start) < _instant(
            self.end
        )

    def contains(self, point: Union[datetime, time]) -> bool:
        return _instant(self.start) <= _instant(point) < _instant(self.end)

    def contains_range(self, other: "TimeRange") -> bool:
        return _instant(self.start) <= _instant(other.start) and _instant(
            self.end
        ) >= _instant(other.end)

    def buffered(self, minutes: int) -> "TimeRange":
        """
        Return the range padded by ``minutes`` on both sides, in UTC.

        Only valid for datetime ranges.
        """
        padding = timedelta(minutes=minutes)
        return TimeRange(_instant(self.start) - padding, _instant(self.end) + padding)

    @staticmethod
    def from_event(event: Mapping[str, Any]) -> "TimeRange":
        """
        Create a TimeRange from a normalized busy event.

        Args:
            event: Mapping with aware "start" and "end" datetimes
        """
        return TimeRange(event["start"], event["end"])


def has_conflict(
    slot_start: datetime,
    slot_end: datetime,
    event_start: datetime,
    event_end: datetime,
    buffer_minutes: int = 0,
) -> bool:
    """
    Check whether a slot conflicts with a single buffered event.

    Args:
        slot_start: Slot start (aware)
        slot_end: Slot end (aware)
        event_start: Event start (aware)
        event_end: Event end (aware)
        buffer_minutes: Padding applied on both sides of the event

    Returns:
        True if the slot overlaps the padded event
    """
    padded = TimeRange(event_start, event_end).buffered(buffer_minutes)
    return TimeRange(slot_start, slot_end).overlaps(padded)


def has_conflict_with_events(
    slot_start: datetime,
    slot_end: datetime,
    events: Iterable[Mapping[str, Any]],
    buffer_minutes: int = 0,
) -> bool:
    return ConflictDetector(events, buffer_minutes).conflicts(slot_start, slot_end)


class ConflictDetector:
    """
    Checks candidate slots against a fixed set of normalized busy events.

    The events are padded and converted to UTC once, so checking many slots
    against the same calendar does not repeat that work.
    """

    def __init__(self, events: Iterable[Mapping[str, Any]], buffer_minutes: int = 0):
        """
        Initialize the conflict detector.

        Args:
            events: Normalized busy events (aware "start"/"end")
            buffer_minutes: Padding applied on both sides of every event
        """
        self.buffer_minutes = buffer_minutes
        self.events = list(events)
        self.busy = [TimeRange.from_event(event).buffered(buffer_minutes) for event in self.events]

    def conflicts(self, slot_start: datetime, slot_end: datetime) -> bool:
        slot = TimeRange(slot_start, slot_end)
        return any(slot.overlaps(busy) for busy in self.busy)

    def conflicting_events(self, slot_start: datetime, slot_end: datetime) -> List[Mapping[str, Any]]:
        """
        Get the events a slot conflicts with.

        Returns:
            The original event mappings, in input order
        """
        slot = TimeRange(slot_start, slot_end)
        return [event for event, busy in zip(self.events, self.busy) if slot.overlaps(busy)]

    def available_starts(
        self,
        starts: Iterable[datetime],
        duration_minutes: int,
        earliest: Optional[datetime] = None,
    ) -> List[datetime]:
        """
        Filter slot start instants down to the bookable ones.

        Args:
            starts: Aware slot starts
            duration_minutes: Meeting length
            earliest: Instants before this are not bookable

        Returns:
            The starts that begin at or after ``earliest`` and do not conflict
        """
        duration = timedelta(minutes=duration_minutes)
        earliest = to_utc(earliest) if earliest is not None else None

        available = []
        for start in starts:
            start_utc = to_utc(start)
            if earliest is not None and start_utc < earliest:
                continue
            if self.conflicts(start_utc, start_utc + duration):
                continue
            available.append(start)
        return available


def _today(now: datetime, zone) -> date:
    return to_utc(now).astimezone(zone).date()


def beyond_booking_window(
    target_date: date, policy: BookingPolicy, zone, now: datetime
) -> bool:
    if policy.max_advance_booking_days is None:
        return False
    return (target_date - _today(now, zone)).days > policy.max_advance_booking_days


def filter_available_slots(
    labels: Iterable[str],
    events: Iterable[Mapping[str, Any]],
    duration_minutes: int,
    timezone: TimezoneLike,
    target_date: date,
    policy: BookingPolicy,
    now: Optional[datetime] = None,
) -> List[str]:
    """
    Drop slot labels that are not bookable.

    A label is dropped when it overlaps a buffered event or starts before
    ``now + min_advance_hours``. Every label is dropped when the date lies
    beyond the advance-booking window.

    Args:
        labels: Slot labels on ``target_date``, local to ``timezone``
        events: Normalized busy events
        duration_minutes: Meeting length
        timezone: Timezone of the labels
        target_date: Civil date of the labels
        policy: Booking policy
        now: Current instant; defaults to ``django.utils.timezone.now()``

    Returns:
        The bookable labels, in input order
    """
    zone = get_timezone(timezone)
    now = now or django_timezone.now()

    if beyond_booking_window(target_date, policy, zone, now):
        return []

    detector = ConflictDetector(events, policy.buffer_minutes)
    earliest = to_utc(now) + policy.min_advance
    duration = timedelta(minutes=duration_minutes)

    available = []
    for label in labels:
        start = to_utc(safe_local_datetime(target_date, parse_slot(label), zone))
        if start < earliest:
            continue
        if detector.conflicts(start, start + duration):
            continue
        available.append(label)
    return available


def prefilter_events(
    events: Iterable[Mapping[str, Any]], target_date: date, timezone: TimezoneLike
) -> List[Mapping[str, Any]]:
    """
    Keep the normalized events whose civil span in ``timezone`` touches
    ``[target_date - 2, target_date + 2]``.
    """
    zone = get_timezone(timezone)
    first = target_date - timedelta(days=PREFILTER_DAYS)
    last = target_date + timedelta(days=PREFILTER_DAYS)

    kept = []
    for event in events:
        span_start, span_end = event_date_span(event, zone)
        if span_start <= last and span_end >= first:
            kept.append(event)
    return kept


def _window_has_gap(
    window: ProjectedWindow,
    busy: Sequence[TimeRange],
    earliest: datetime,
    duration: timedelta,
) -> bool:
    window_end = to_utc(window.end)
    cursor = max(to_utc(window.start), earliest)

    for padded in busy:
        if padded.end <= cursor:
            continue
        if padded.start >= window_end:
            break
        if min(padded.start, window_end) - cursor >= duration:
            return True
        cursor = max(cursor, padded.end)

    return window_end - cursor >= duration


def date_has_slots_with_events(
    target_date: date,
    organizer_timezone: TimezoneLike,
    viewer_timezone: TimezoneLike,
    events: Iterable[Mapping[str, Any]],
    policy: BookingPolicy,
    schedule: Optional[ProfileSchedule] = None,
    now: Optional[datetime] = None,
) -> bool:
    """
    Quickly decide whether a viewer's date has at least one bookable slot.

    Busy events are padded by the buffer and walked in time order with a
    cursor that starts at the later of the window start and the earliest
    bookable instant. A gap before the first event or after the last one
    therefore needs ``duration + buffer`` of free time, a gap between two
    events ``duration + 2 * buffer``, and a window without events only has
    to hold one meeting.

    Breaks and slot-start alignment are ignored, so the answer may be True
    when the exact slot list is empty, but never False when it is not.

    Args:
        target_date: Civil date in the viewer's timezone
        organizer_timezone: Organizer timezone (anchors all-day events); None
            uses the schedule's timezone
        viewer_timezone: Viewer timezone
        events: Busy events in any supported shape
        policy: Booking policy
        schedule: Organizer schedule snapshot
        now: Current instant; defaults to ``django.utils.timezone.now()``

    Returns:
        True if some gap can hold a meeting
    """
    organizer_zone = owner_timezone_for(organizer_timezone, schedule)
    viewer_zone = get_timezone(viewer_timezone)
    now = now or django_timezone.now()
    earliest = to_utc(now) + policy.min_advance

    if target_date < earliest.astimezone(viewer_zone).date():
        return False

    if beyond_booking_window(target_date, policy, viewer_zone, now):
        return False

    windows = windows_in_timezone(target_date, schedule, organizer_zone, viewer_zone)
    if not windows:
        return False

    normalized = normalize_events(events, organizer_zone, viewer_zone)
    relevant = prefilter_events(normalized, target_date, viewer_zone)
    logger.debug(f"{len(relevant)} of {len(normalized)} busy events near {target_date}")

    busy = sorted(
        (TimeRange.from_event(event).buffered(policy.buffer_minutes) for event in relevant),
        key=lambda padded: padded.start,
    )

    return any(_window_has_gap(window, busy, earliest, policy.duration) for window in windows)
