"""
Time slot generation and slot label handling.

Slots are exposed as 12-hour labels such as "9:00 AM". Generation works on
aware datetimes and steps in absolute time, so a window crossing a DST
transition still yields evenly spaced meetings.
"""

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from django.utils.translation import gettext_lazy as _

from utils.exceptions import InvalidTimeFormatError, ValidationError

from .business_hours import end_of_day, safe_local_datetime, start_of_day, to_utc
from .schedule import Break

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 30

DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*(?:min)?\s*$", re.IGNORECASE)
TWELVE_HOUR_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})\s+(AM|PM)$", re.IGNORECASE)
TWENTY_FOUR_HOUR_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

# (label, first hour, hour after last), checked in order; anything else is Night
PERIODS = (
    ("Morning", 5, 12),
    ("Afternoon", 12, 17),
    ("Evening", 17, 21),
)
PERIOD_ORDER = ("Night", "Morning", "Afternoon", "Evening")

BreakLike = Union[Break, Tuple[time, time], Tuple[datetime, datetime]]


def format_slot(value: Union[datetime, time]) -> str:
    """
    Format a datetime or time as a slot label.

    Examples: 00:00 -> "12:00 AM", 09:05 -> "9:05 AM", 13:30 -> "1:30 PM"
    """
    hour = value.hour % 12 or 12
    period = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {period}"


def parse_time_string(value: Any) -> Optional[time]:
    """
    Parse "2:30 PM", "14:30" or "14:30:00" into a time.

    Returns:
        time, or None if the value is not a recognised time string
    """
    if not isinstance(value, str):
        return None

    value = value.strip()

    match = TWELVE_HOUR_PATTERN.match(value)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if not 1 <= hour <= 12 or minute > 59:
            return None
        hour = hour % 12
        if match.group(3).upper() == "PM":
            hour += 12
        return time(hour, minute)

    match = TWENTY_FOUR_HOUR_PATTERN.match(value)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        second = int(match.group(3) or 0)
        if hour > 23 or minute > 59 or second > 59:
            return None
        return time(hour, minute, second)

    return None


def parse_slot(label: str) -> time:
    """
    Parse a slot label back into its time of day.

    Raises:
        InvalidTimeFormatError: if the label cannot be parsed
    """
    parsed = parse_time_string(label)
    if parsed is None:
        raise InvalidTimeFormatError(detail={"slot": label})
    return parsed


def parse_duration(value: Any) -> int:
    """
    Parse a meeting duration in minutes.

    Accepts positive integers and strings like "30" or "45min" (case
    insensitive, surrounding whitespace ignored). Anything else yields the
    default of 30 minutes.
    """
    if isinstance(value, bool):
        return DEFAULT_DURATION_MINUTES

    if isinstance(value, int):
        return value if value > 0 else DEFAULT_DURATION_MINUTES

    if isinstance(value, str):
        match = DURATION_PATTERN.match(value)
        if match:
            minutes = int(match.group(1))
            if minutes > 0:
                return minutes

    logger.debug(f"Unparseable duration {value!r}, using {DEFAULT_DURATION_MINUTES} minutes")
    return DEFAULT_DURATION_MINUTES


def clip_to_date(
    window_start: datetime, window_end: datetime, selected_date: date
) -> Optional[Tuple[datetime, datetime]]:
    """
    Clip a window to the civil date of ``selected_date`` in the window's
    timezone, ending at 23:59:59.

    Returns:
        (start, end) in UTC, or None if the window does not touch the date
    """
    zone = window_start.tzinfo
    start_date = window_start.date()
    end_date = window_end.astimezone(zone).date()

    if start_date > selected_date or end_date < selected_date:
        return None

    start = to_utc(window_start)
    end = to_utc(window_end)

    if start_date < selected_date:
        start = to_utc(start_of_day(selected_date, zone))
    if end_date > selected_date:
        end = to_utc(end_of_day(selected_date, zone))
    else:
        end = min(end, to_utc(end_of_day(selected_date, zone)))

    if start >= end:
        return None
    return start, end


def _break_interval(item: BreakLike, selected_date: date, zone) -> Tuple[datetime, datetime]:
    if isinstance(item, Break):
        start, end = item.as_tuple()
    else:
        start, end = item

    if isinstance(start, datetime):
        return to_utc(start), to_utc(end)

    return (
        to_utc(safe_local_datetime(selected_date, start, zone)),
        to_utc(safe_local_datetime(selected_date, end, zone)),
    )


def slot_starts(
    window_start: datetime,
    window_end: datetime,
    duration_minutes: int,
    selected_date: date,
    breaks: Iterable[BreakLike] = (),
) -> List[datetime]:
    """
    Generate slot start instants inside a window.

    Slots step by ``duration_minutes`` from the (clipped) window start and
    must end by the window end. Any overlap with a break excludes a slot.

    Args:
        window_start: Aware window start; its tzinfo defines the civil date
        window_end: Aware window end
        duration_minutes: Meeting length
        selected_date: Civil date the slots must fall on
        breaks: Break entities or ``(start, end)`` pairs, either times of
            day on ``selected_date`` or aware datetimes

    Returns:
        Aware datetimes in the window's timezone, in chronological order
    """
    if duration_minutes <= 0:
        raise ValidationError(
            _("Duration must be a positive number of minutes"),
            detail={"duration_minutes": duration_minutes},
        )

    clipped = clip_to_date(window_start, window_end, selected_date)
    if clipped is None:
        return []

    zone = window_start.tzinfo
    start, end = clipped
    duration = timedelta(minutes=duration_minutes)
    break_intervals = [_break_interval(item, selected_date, zone) for item in breaks]

    slot_count = int((end - start).total_seconds()) // 60 // duration_minutes

    starts = []
    for index in range(slot_count):
        slot_start = start + index * duration
        slot_end = slot_start + duration
        if any(
            slot_start < break_end and slot_end > break_start
            for break_start, break_end in break_intervals
        ):
            continue
        starts.append(slot_start.astimezone(zone))

    return starts


def labels_for(starts: Iterable[datetime]) -> List[str]:
    """Format instants as labels, keeping the first of any repeated label."""
    labels = []
    seen = set()
    for value in starts:
        label = format_slot(value)
        if label not in seen:
            seen.add(label)
            labels.append(label)
    return labels


def generate_slots(
    window_start: datetime, window_end: datetime, duration_minutes: int, selected_date: date
) -> List[str]:
    return generate_slots_with_breaks(window_start, window_end, duration_minutes, selected_date, ())


def generate_slots_with_breaks(
    window_start: datetime,
    window_end: datetime,
    duration_minutes: int,
    selected_date: date,
    breaks: Iterable[BreakLike],
) -> List[str]:
    """
    Generate slot labels inside a window, excluding slots that overlap a break.

    Returns:
        List of labels like "9:00 AM"
    """
    return labels_for(
        slot_starts(window_start, window_end, duration_minutes, selected_date, breaks)
    )


def sort_slots(labels: Iterable[str]) -> List[str]:
    """
    Sort slot labels chronologically and drop duplicates.

    Raises:
        InvalidTimeFormatError: if a label cannot be parsed
    """
    return sorted(set(labels), key=parse_slot)


def group_slots_by_period(labels: Sequence[str]) -> Dict[str, List[str]]:
    """
    Group slot labels into Night, Morning, Afternoon and Evening.

    Morning is 05:00-12:00, Afternoon 12:00-17:00, Evening 17:00-21:00 and
    everything else is Night. Labels keep their input order within a
    group; unparseable labels are skipped.
    """
    grouped: Dict[str, List[str]] = {period: [] for period in PERIOD_ORDER}

    for label in labels:
        parsed = parse_time_string(label)
        if parsed is None:
            logger.debug(f"Skipping unparseable slot label {label!r}")
            continue

        period = "Night"
        for name, first_hour, end_hour in PERIODS:
            if first_hour <= parsed.hour < end_hour:
                period = name
                break
        grouped[period].append(label)

    return grouped
