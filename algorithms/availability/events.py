"""
Busy event normalization.

Calendar providers hand over busy intervals in mixed shapes: aware or naive
datetimes, bare dates for all-day events, or ISO-8601 strings of either.
``normalize_events`` turns them into aware datetimes in one timezone.
"""

import logging
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from utils.converters import to_date_or_datetime

from .business_hours import TimezoneLike, get_timezone, safe_local_datetime, to_utc

logger = logging.getLogger(__name__)


def _boundary(event: Mapping[str, Any], key: str) -> Any:
    # Some providers send "start_time"/"end_time"
    value = event.get(key)
    if value is None:
        value = event.get(f"{key}_time")
    return value


def _to_instant(value: Any, reference_zone) -> Optional[datetime]:
    parsed = to_date_or_datetime(value)
    if parsed is None:
        return None

    if isinstance(parsed, datetime):
        if parsed.tzinfo is not None and parsed.utcoffset() is not None:
            return parsed
        # Naive datetimes are wall-clock times in the reference timezone
        return safe_local_datetime(parsed.date(), parsed.time(), reference_zone)

    # All-day boundary: local midnight in the reference timezone
    return safe_local_datetime(parsed, time.min, reference_zone)


def normalize_events(
    events: Optional[Iterable[Mapping[str, Any]]],
    reference_timezone: TimezoneLike,
    target_timezone: TimezoneLike = None,
) -> List[Dict[str, Any]]:
    """
    Project busy events into a single timezone.

    All-day events (date boundaries) are anchored at midnight in the
    reference timezone, so an organizer's all-day Monday covers exactly
    their Monday wherever it is viewed from. The end date is exclusive.

    Args:
        events: Mappings with "start" and "end" keys ("start_time" and
            "end_time" are accepted too)
        reference_timezone: Organizer timezone, used for dates and naive values
        target_timezone: Timezone of the output; defaults to the reference

    Returns:
        New mappings with aware "start"/"end" in the target timezone. Other
        keys are copied unchanged. Malformed entries are dropped.
    """
    reference_zone = get_timezone(reference_timezone)
    target_zone = reference_zone if target_timezone is None else get_timezone(target_timezone)

    normalized = []
    for event in events or ():
        if not isinstance(event, Mapping):
            logger.debug(f"Dropping busy event that is not a mapping: {event!r}")
            continue

        start = _to_instant(_boundary(event, "start"), reference_zone)
        end = _to_instant(_boundary(event, "end"), reference_zone)

        if start is None or end is None:
            logger.debug(f"Dropping busy event without usable start/end: {event!r}")
            continue

        if to_utc(end) < to_utc(start):
            logger.debug(f"Dropping busy event ending before it starts: {event!r}")
            continue

        item = dict(event)
        item["start"] = start.astimezone(target_zone)
        item["end"] = end.astimezone(target_zone)
        normalized.append(item)

    return normalized


def event_date_span(event: Mapping[str, Any], timezone: TimezoneLike) -> Tuple[date, date]:
    """
    Civil dates touched by a normalized event in a timezone.

    Returns:
        (first date, last date); an end at exactly midnight still counts
        the following date
    """
    zone = get_timezone(timezone)
    return event["start"].astimezone(zone).date(), event["end"].astimezone(zone).date()
