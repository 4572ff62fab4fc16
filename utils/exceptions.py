"""
Custom exceptions for the Slotwise availability engine.

Malformed input *data* (busy events, timezone names, duration strings) is
handled gracefully by the engine and never reaches these classes. They are
raised for malformed *caller usage*: entities built with inconsistent values,
slot labels that cannot be parsed, or broken engine settings.
"""

from typing import Any

from django.utils.translation import gettext_lazy as _


class SlotwiseError(Exception):
    """
    Base exception for all Slotwise custom exceptions.

    Attributes:
        message: Error message
        detail: Additional error details
    """

    def __init__(self, message: str = None, detail: Any = None):
        self.message = message if message else _("An error occurred")
        self.detail = detail
        super().__init__(self.message)

    def __str__(self):
        return str(self.message)


class ValidationError(SlotwiseError):
    """
    Exception for schedule and policy validation errors.
    """

    def __init__(self, message: str = None, detail: Any = None):
        message = message if message else _("Validation error")
        super().__init__(message, detail)


class InvalidTimeFormatError(ValidationError):
    """
    Exception for time strings that do not match "h:mm AM/PM" or "HH:MM".
    """

    def __init__(self, message: str = None, detail: Any = None):
        message = message if message else _("Invalid time format")
        super().__init__(message, detail)


class ConfigurationError(SlotwiseError):
    """
    Exception for invalid AVAILABILITY settings.
    """

    def __init__(self, message: str = None, detail: Any = None):
        message = message if message else _("System configuration error")
        super().__init__(message, detail)
