"""
Settings for the availability engine.

Values are read lazily from ``settings.AVAILABILITY`` so that tests can use
``override_settings``. Any key left out of the setting falls back to the
defaults below.
"""

from datetime import time
from typing import Any, Tuple

from django.conf import settings

from utils.converters import to_int, to_time
from utils.exceptions import ConfigurationError

DEFAULTS = {
    # Organizer timezone used when a profile does not carry one
    "DEFAULT_TIMEZONE": "Europe/Kyiv",
    "DURATION_MINUTES": 30,
    "BUFFER_MINUTES": 15,
    "MIN_ADVANCE_HOURS": 3,
    "MAX_ADVANCE_BOOKING_DAYS": 90,
    # Business window used when no weekly schedule is configured
    "FALLBACK_START": "11:00",
    "FALLBACK_END": "19:30",
    # ISO weekdays, 1=Monday..7=Sunday
    "FALLBACK_BUSINESS_DAYS": [1, 2, 3, 4, 5],
}

INTEGER_SETTINGS = (
    "DURATION_MINUTES",
    "BUFFER_MINUTES",
    "MIN_ADVANCE_HOURS",
    "MAX_ADVANCE_BOOKING_DAYS",
)


def get_setting(name: str) -> Any:
    """
    Return a single availability setting, falling back to its default.

    Raises:
        ConfigurationError: if the name is unknown or an integer setting
            holds a non-integer value
    """
    if name not in DEFAULTS:
        raise ConfigurationError(f"Unknown availability setting: {name}")

    overrides = getattr(settings, "AVAILABILITY", None) or {}
    value = overrides.get(name, DEFAULTS[name])

    if name in INTEGER_SETTINGS:
        converted = to_int(value)
        if converted is None or converted < 0:
            raise ConfigurationError(
                f"AVAILABILITY['{name}'] must be a non-negative integer",
                detail=value,
            )
        return converted

    return value


def fallback_window() -> Tuple[time, time]:
    """Business window used for days without any configured schedule."""
    start = to_time(get_setting("FALLBACK_START"))
    end = to_time(get_setting("FALLBACK_END"))

    if start is None or end is None or start >= end:
        raise ConfigurationError(
            "AVAILABILITY FALLBACK_START/FALLBACK_END must be valid times "
            "with start before end",
            detail=(get_setting("FALLBACK_START"), get_setting("FALLBACK_END")),
        )
    return start, end


def fallback_business_days() -> Tuple[int, ...]:
    days = get_setting("FALLBACK_BUSINESS_DAYS")
    try:
        parsed = tuple(int(day) for day in days)
    except (TypeError, ValueError):
        raise ConfigurationError(
            "AVAILABILITY FALLBACK_BUSINESS_DAYS must be a list of weekdays",
            detail=days,
        )
    if any(day < 1 or day > 7 for day in parsed):
        raise ConfigurationError(
            "AVAILABILITY FALLBACK_BUSINESS_DAYS must use 1=Monday..7=Sunday",
            detail=days,
        )
    return parsed
