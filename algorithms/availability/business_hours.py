"""
Business hours resolution and timezone-safe local time construction.

All instants handed out by this module are aware datetimes. Arithmetic and
comparisons on them must go through UTC (see ``to_utc``): Python compares
and subtracts datetimes sharing a tzinfo by wall clock, which is wrong
across DST transitions.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone as dt_timezone, tzinfo
from typing import List, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .conf import fallback_business_days, fallback_window, get_setting
from .schedule import Break, OverrideType, ProfileSchedule

logger = logging.getLogger(__name__)

UTC = dt_timezone.utc

END_OF_DAY = time(23, 59, 59)

# UTC-12 to UTC+14: an organizer date can land up to two dates away
OWNER_DATE_REACH = 2

TimezoneLike = Union[str, tzinfo, None]


@dataclass(frozen=True)
class BusinessWindow:
    """Open hours of one calendar date, local to the organizer."""

    start_time: time
    end_time: time
    breaks: Tuple[Break, ...] = ()


@dataclass(frozen=True)
class ProjectedWindow:
    """
    A business window projected into the viewer's timezone.

    ``start``/``end`` are clipped to the viewer's civil date. ``breaks`` are
    aware ``(start, end)`` pairs in the viewer's timezone.
    """

    owner_date: date
    start: datetime
    end: datetime
    breaks: Tuple[Tuple[datetime, datetime], ...] = ()


def get_timezone(name: TimezoneLike) -> tzinfo:
    """
    Get a tzinfo for an IANA timezone name, falling back to UTC if invalid.

    Args:
        name: Timezone name such as "Europe/Kyiv", or a tzinfo instance

    Returns:
        tzinfo for the timezone
    """
    if isinstance(name, tzinfo):
        return name

    if name:
        try:
            return ZoneInfo(str(name).strip())
        except (ZoneInfoNotFoundError, ValueError, OSError):
            pass

    logger.warning(f"Invalid timezone '{name}', falling back to UTC")
    return UTC


def owner_timezone_for(
    owner_timezone: TimezoneLike, schedule: Optional[ProfileSchedule] = None
) -> tzinfo:
    """
    Resolve the organizer's timezone.

    An explicit timezone wins. Without one the schedule's own timezone is
    used, and without a schedule the ``DEFAULT_TIMEZONE`` setting.
    """
    if owner_timezone is None:
        owner_timezone = (
            schedule.timezone if schedule is not None else get_setting("DEFAULT_TIMEZONE")
        )
    return get_timezone(owner_timezone)


def to_utc(value: datetime) -> datetime:
    return value.astimezone(UTC)


def safe_local_datetime(target_date: date, target_time: time, timezone: TimezoneLike) -> datetime:
    """
    Build an aware datetime for a wall-clock time in a timezone.

    A time inside a spring-forward gap is moved forward by the size of the
    gap (01:30 in a zone jumping 01:00 -> 02:00 becomes 02:30). A time that
    occurs twice during a fall-back transition resolves to the earlier
    occurrence.

    Args:
        target_date: Civil date
        target_time: Wall-clock time
        timezone: Timezone name or tzinfo; invalid names fall back to UTC

    Returns:
        Aware datetime in the requested timezone
    """
    zone = get_timezone(timezone)
    local = datetime.combine(target_date, target_time.replace(tzinfo=None)).replace(
        tzinfo=zone, fold=0
    )
    # fold=0 applies the pre-transition offset; the UTC round trip turns that
    # into a real wall time
    return local.astimezone(UTC).astimezone(zone)


def start_of_day(target_date: date, timezone: TimezoneLike) -> datetime:
    return safe_local_datetime(target_date, time.min, timezone)


def end_of_day(target_date: date, timezone: TimezoneLike) -> datetime:
    return safe_local_datetime(target_date, END_OF_DAY, timezone)


def resolve_window(
    target_date: date, schedule: Optional[ProfileSchedule] = None
) -> Optional[BusinessWindow]:
    """
    Resolve the open hours of a date.

    Precedence: a date override, then the weekly rule for the weekday. A
    configured schedule without a rule for the weekday is closed. An
    unconfigured schedule uses the fallback window on fallback business
    days.

    Args:
        target_date: Date in the organizer's calendar
        schedule: Organizer schedule snapshot

    Returns:
        BusinessWindow, or None when the date is closed
    """
    schedule = schedule if schedule is not None else ProfileSchedule()
    weekday = target_date.isoweekday()
    rule = schedule.rule_for(weekday)
    override = schedule.override_for(target_date)

    if override is not None:
        if override.override_type == OverrideType.UNAVAILABLE:
            logger.info(f"{target_date} closed by override")
            return None

        if override.has_own_hours:
            return BusinessWindow(override.start_time, override.end_time, override.breaks)

        # Available override without hours of its own
        if rule is not None and rule.is_available:
            return BusinessWindow(rule.start_time, rule.end_time, override.breaks or rule.breaks)

        start, end = fallback_window()
        return BusinessWindow(start, end, override.breaks)

    if rule is not None:
        if not rule.is_available:
            return None
        return BusinessWindow(rule.start_time, rule.end_time, rule.breaks)

    if schedule.is_configured:
        return None

    if weekday in fallback_business_days():
        start, end = fallback_window()
        return BusinessWindow(start, end)

    return None


def is_business_day(target_date: date, schedule: Optional[ProfileSchedule] = None) -> bool:
    return resolve_window(target_date, schedule) is not None


def windows_in_timezone(
    target_date: date,
    schedule: Optional[ProfileSchedule],
    owner_timezone: TimezoneLike,
    viewer_timezone: TimezoneLike,
) -> List[ProjectedWindow]:
    """
    Get the business windows that fall on a viewer's civil date.

    Offsets run from UTC-12 to UTC+14, 26 hours apart, so any organizer
    date from two days before to two days after ``target_date`` can bleed
    into the viewer's date (a UTC+14 Saturday starts on a UTC-11 Thursday
    evening). All five are resolved, projected into the viewer's timezone
    and clipped to ``[00:00, 23:59:59]`` of ``target_date``.

    Args:
        target_date: Civil date in the viewer's timezone
        schedule: Organizer schedule snapshot
        owner_timezone: Organizer timezone; None uses the schedule's
        viewer_timezone: Viewer timezone

    Returns:
        List of ProjectedWindow ordered by start
    """
    owner_zone = owner_timezone_for(owner_timezone, schedule)
    viewer_zone = get_timezone(viewer_timezone)

    day_start = to_utc(start_of_day(target_date, viewer_zone))
    day_end = to_utc(end_of_day(target_date, viewer_zone))

    windows = []
    for offset in range(-OWNER_DATE_REACH, OWNER_DATE_REACH + 1):
        owner_date = target_date + timedelta(days=offset)
        window = resolve_window(owner_date, schedule)
        if window is None:
            continue

        start = to_utc(safe_local_datetime(owner_date, window.start_time, owner_zone))
        end = to_utc(safe_local_datetime(owner_date, window.end_time, owner_zone))

        clipped_start = max(start, day_start)
        clipped_end = min(end, day_end)
        if clipped_start >= clipped_end:
            continue

        breaks = tuple(
            (
                safe_local_datetime(owner_date, item.start_time, owner_zone).astimezone(viewer_zone),
                safe_local_datetime(owner_date, item.end_time, owner_zone).astimezone(viewer_zone),
            )
            for item in window.breaks
        )

        windows.append(
            ProjectedWindow(
                owner_date=owner_date,
                start=clipped_start.astimezone(viewer_zone),
                end=clipped_end.astimezone(viewer_zone),
                breaks=breaks,
            )
        )

    windows.sort(key=lambda item: to_utc(item.start))
    return windows
