# slotwise/settings/base.py
"""
Slotwise shared Django settings (development, test).

Environment-specific values **must** come from the environment (.env or real env
vars). Do not hard-code credentials or hostnames in this file.
"""

from __future__ import annotations

import os
from pathlib import Path

from decouple import config  # Use python-decouple for env vars
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Paths & dotenv
# ---------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent.parent

load_dotenv(BASE_DIR / ".env")  # Load .env if exists

# ---------------------------------------------------------------------------
# Core toggles
# ---------------------------------------------------------------------------
SECRET_KEY = config("SECRET_KEY", default="django-insecure-fallback-key-change-me-in-env")
DEBUG = config("DEBUG", default=False, cast=bool)
ALLOWED_HOSTS = config(
    "ALLOWED_HOSTS", default="127.0.0.1,localhost", cast=lambda v: [s.strip() for s in v.split(",")]
)

# ---------------------------------------------------------------------------
# Applications: the engine is pure computation, no models or URLs
# ---------------------------------------------------------------------------
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "utils",
    "algorithms",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# ---------------------------------------------------------------------------
# Internationalisation
# ---------------------------------------------------------------------------
LANGUAGE_CODE = "en"
TIME_ZONE = config("TIME_ZONE", default="UTC")
USE_I18N = True
USE_TZ = True

# ---------------------------------------------------------------------------
# Default PK
# ---------------------------------------------------------------------------
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ---------------------------------------------------------------------------
# Availability engine
# ---------------------------------------------------------------------------
AVAILABILITY = {
    "DEFAULT_TIMEZONE": config("AVAILABILITY_DEFAULT_TIMEZONE", default="Europe/Kyiv"),
    "DURATION_MINUTES": config("AVAILABILITY_DURATION_MINUTES", default=30, cast=int),
    "BUFFER_MINUTES": config("AVAILABILITY_BUFFER_MINUTES", default=15, cast=int),
    "MIN_ADVANCE_HOURS": config("AVAILABILITY_MIN_ADVANCE_HOURS", default=3, cast=int),
    "MAX_ADVANCE_BOOKING_DAYS": config(
        "AVAILABILITY_MAX_ADVANCE_BOOKING_DAYS", default=90, cast=int
    ),
    # Used when an organizer has not configured a weekly schedule
    "FALLBACK_START": config("AVAILABILITY_FALLBACK_START", default="11:00"),
    "FALLBACK_END": config("AVAILABILITY_FALLBACK_END", default="19:30"),
    "FALLBACK_BUSINESS_DAYS": config(
        "AVAILABILITY_FALLBACK_BUSINESS_DAYS",
        default="1,2,3,4,5",
        cast=lambda v: [int(s) for s in v.split(",") if s.strip()],
    ),
}

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_DIR = Path(os.environ.get("LOG_DIR", BASE_DIR / "logs"))
LOG_DIR.mkdir(exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {process:d} {thread:d} {message}",
            "style": "{",
        },
        "simple": {"format": "{levelname} {message}", "style": "{"},
    },
    "filters": {
        "require_debug_true": {"()": "django.utils.log.RequireDebugTrue"},
    },
    "handlers": {
        "console": {
            "level": "DEBUG" if DEBUG else "INFO",
            "filters": ["require_debug_true"],
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
        "file": {
            "level": "INFO",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": LOG_DIR / "slotwise.log",
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "formatter": "verbose",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console", "file"],
            "level": "INFO",
            "propagate": True,
        },
        "algorithms": {
            "handlers": ["console", "file"],
            "level": config("AVAILABILITY_LOG_LEVEL", default="INFO"),
            "propagate": False,
        },
    },
}
