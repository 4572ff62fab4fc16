"""
Data type conversion utilities for Slotwise.

This module provides functions for converting loosely-typed input (values
read from settings, profile configuration mappings or calendar payloads)
into the date and time types the availability engine works with.
"""

import datetime
from typing import Any, Optional

from django.utils.dateparse import parse_date, parse_datetime, parse_time


def to_boolean(value: Any) -> bool:
    """
    Convert various input types to boolean.

    Args:
        value: Input value (string, int, bool, etc.)

    Returns:
        Boolean representation of the value
    """
    if isinstance(value, bool):
        return value

    if isinstance(value, (int, float)):
        return bool(value)

    if isinstance(value, str):
        value = value.lower().strip()
        if value in ("true", "t", "yes", "y", "1", "on"):
            return True
        if value in ("false", "f", "no", "n", "0", "off"):
            return False

    return bool(value)


def to_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """
    Convert a value to integer.

    Args:
        value: Input value
        default: Default value if conversion fails

    Returns:
        Integer or default if conversion fails
    """
    if value is None or isinstance(value, bool):
        return default

    try:
        if isinstance(value, str):
            value = value.strip()
        return int(value)
    except (ValueError, TypeError):
        return default


def to_date(value: Any) -> Optional[datetime.date]:
    """
    Convert a value to date.

    Args:
        value: Input value (string, date object, etc.)

    Returns:
        Date object or None if conversion fails
    """
    if value is None:
        return None

    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime.datetime):
        return value.date()

    if isinstance(value, datetime.date):
        return value

    if isinstance(value, str):
        try:
            parsed = parse_date(value.strip())
            if parsed:
                return parsed

            parsed = parse_datetime(value.strip())
            if parsed:
                return parsed.date()
        except ValueError:
            pass

    return None


def to_datetime(value: Any) -> Optional[datetime.datetime]:
    """
    Convert a value to datetime.

    Args:
        value: Input value (string or datetime object)

    Returns:
        Datetime object (aware if the input carried an offset) or None
    """
    if value is None:
        return None

    if isinstance(value, datetime.datetime):
        return value

    if isinstance(value, str):
        try:
            return parse_datetime(value.strip())
        except ValueError:
            pass

    return None


def to_date_or_datetime(value: Any) -> Optional[datetime.date]:
    """
    Convert a calendar value to either a datetime (zoned or naive instant) or
    a bare date (all-day boundary).

    Args:
        value: datetime, date or ISO-8601 string

    Returns:
        datetime, date, or None if the value cannot be interpreted
    """
    if value is None:
        return None

    if isinstance(value, (datetime.datetime, datetime.date)):
        return value

    if isinstance(value, str):
        # Date-only strings first: parse_datetime would read them as midnight
        try:
            parsed = parse_date(value.strip())
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
        return to_datetime(value)

    return None


def to_time(value: Any) -> Optional[datetime.time]:
    """
    Convert a value to time.

    Args:
        value: Input value (string like "09:00", time object, etc.)

    Returns:
        Time object or None if conversion fails
    """
    if value is None:
        return None

    if isinstance(value, datetime.datetime):
        return value.time()

    if isinstance(value, datetime.time):
        return value

    if isinstance(value, str):
        try:
            parsed = parse_time(value.strip())
            if parsed:
                return parsed
        except ValueError:
            pass

    return None
