"""
Development settings for Slotwise project.

These settings override the base settings for local development environments.
"""

from .base import *

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = config("SECRET_KEY", default="django-insecure-development-key-not-for-production")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = config("DEBUG", default=True, cast=bool)

ALLOWED_HOSTS = ["*"]

# Show per-event drops while developing
LOGGING["handlers"]["console"]["level"] = "DEBUG"
LOGGING["loggers"]["algorithms"]["level"] = "DEBUG"
