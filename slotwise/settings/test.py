"""
Test settings for Slotwise project.

These settings override the base settings for test environments.
"""

from .base import *

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Make tests faster by avoiding real translations
USE_I18N = False

# Pin engine settings so tests do not depend on the environment
AVAILABILITY = {
    "DEFAULT_TIMEZONE": "Europe/Kyiv",
    "DURATION_MINUTES": 30,
    "BUFFER_MINUTES": 15,
    "MIN_ADVANCE_HOURS": 3,
    "MAX_ADVANCE_BOOKING_DAYS": 90,
    "FALLBACK_START": "11:00",
    "FALLBACK_END": "19:30",
    "FALLBACK_BUSINESS_DAYS": [1, 2, 3, 4, 5],
}

# Keep loggers enabled (assertLogs) but quiet
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "null": {
            "class": "logging.NullHandler",
        },
    },
    "loggers": {
        "": {
            "handlers": ["null"],
            "level": "CRITICAL",
        },
    },
}
