"""
Value types consumed and produced by the availability engine.

Profile configuration arrives from the persistence layer as loosely-typed
mappings. Each entity below is built from such a mapping once, at the
boundary, with ``from_dict``; the engine only ever sees these immutable
snapshots.
"""

from dataclasses import asdict, dataclass, field, replace
from datetime import date, time, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from django.utils.translation import gettext_lazy as _

from utils.converters import to_boolean, to_date, to_int, to_time
from utils.exceptions import ValidationError

from .conf import get_setting


class OverrideType(str, Enum):
    """Kinds of one-off date overrides."""

    UNAVAILABLE = "unavailable"
    AVAILABLE = "available"
    CUSTOM_HOURS = "custom_hours"


def _require_time(value: Any, field_name: str) -> Optional[time]:
    if value is None:
        return None
    parsed = to_time(value)
    if parsed is None:
        raise ValidationError(_("Invalid time value"), detail={field_name: value})
    return parsed


def _breaks_from(values: Optional[Iterable[Any]]) -> Tuple["Break", ...]:
    if not values:
        return ()
    breaks = []
    for value in values:
        if isinstance(value, Break):
            breaks.append(value)
        elif isinstance(value, Mapping):
            breaks.append(Break.from_dict(value))
        else:
            start, end = value
            breaks.append(Break(_require_time(start, "start_time"), _require_time(end, "end_time")))
    return tuple(breaks)


@dataclass(frozen=True)
class Break:
    """A pause inside a working window, in the organizer's local time."""

    start_time: time
    end_time: time
    label: Optional[str] = None

    def __post_init__(self):
        if self.start_time is None or self.end_time is None:
            raise ValidationError(_("Break requires start and end time"))
        if self.start_time >= self.end_time:
            raise ValidationError(
                _("End time must be after start time"),
                detail={"start_time": self.start_time, "end_time": self.end_time},
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Break":
        return cls(
            start_time=_require_time(data.get("start_time"), "start_time"),
            end_time=_require_time(data.get("end_time"), "end_time"),
            label=data.get("label") or None,
        )

    def as_tuple(self) -> Tuple[time, time]:
        return self.start_time, self.end_time


@dataclass(frozen=True)
class WeeklyAvailabilityRule:
    """
    Recurring availability for one day of the week.

    Attributes:
        day_of_week: ISO weekday, 1=Monday..7=Sunday
        is_available: Whether the organizer accepts bookings on that day
        start_time: Start of the working window (local to the profile)
        end_time: End of the working window (local to the profile)
        breaks: Pauses inside the working window
    """

    day_of_week: int
    is_available: bool = False
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    breaks: Tuple[Break, ...] = ()

    def __post_init__(self):
        if not isinstance(self.day_of_week, int) or not 1 <= self.day_of_week <= 7:
            raise ValidationError(
                _("Day of week must be between 1 (Monday) and 7 (Sunday)"),
                detail={"day_of_week": self.day_of_week},
            )
        if self.is_available:
            if self.start_time is None or self.end_time is None:
                raise ValidationError(
                    _("Available days require start and end time"),
                    detail={"day_of_week": self.day_of_week},
                )
            if self.start_time >= self.end_time:
                raise ValidationError(
                    _("End time must be after start time"),
                    detail={"day_of_week": self.day_of_week},
                )
        object.__setattr__(self, "breaks", tuple(self.breaks))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WeeklyAvailabilityRule":
        is_available = to_boolean(data.get("is_available", False))
        return cls(
            day_of_week=to_int(data.get("day_of_week")),
            is_available=is_available,
            start_time=_require_time(data.get("start_time"), "start_time"),
            end_time=_require_time(data.get("end_time"), "end_time"),
            breaks=_breaks_from(data.get("breaks")) if is_available else (),
        )


@dataclass(frozen=True)
class AvailabilityOverride:
    """
    One-off override for a single calendar date.

    ``CUSTOM_HOURS`` requires both times. ``AVAILABLE`` may carry its own
    window; without one the day falls back to its regular hours.
    ``UNAVAILABLE`` closes the day and ignores any times.
    """

    date: date
    override_type: OverrideType
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    breaks: Tuple[Break, ...] = ()

    def __post_init__(self):
        try:
            override_type = OverrideType(self.override_type)
        except ValueError:
            raise ValidationError(
                _("Unknown override type"), detail={"override_type": self.override_type}
            )
        object.__setattr__(self, "override_type", override_type)
        object.__setattr__(self, "breaks", tuple(self.breaks))

        if not isinstance(self.date, date):
            raise ValidationError(_("Override requires a date"), detail={"date": self.date})

        has_start = self.start_time is not None
        has_end = self.end_time is not None

        if override_type == OverrideType.CUSTOM_HOURS and not (has_start and has_end):
            raise ValidationError(
                _("Custom hours require start and end time"), detail={"date": self.date}
            )
        if override_type == OverrideType.AVAILABLE and has_start != has_end:
            raise ValidationError(
                _("Provide both start and end time or neither"), detail={"date": self.date}
            )
        if override_type != OverrideType.UNAVAILABLE and has_start and has_end:
            if self.start_time >= self.end_time:
                raise ValidationError(
                    _("End time must be after start time"), detail={"date": self.date}
                )

    @property
    def has_own_hours(self) -> bool:
        return (
            self.override_type != OverrideType.UNAVAILABLE
            and self.start_time is not None
            and self.end_time is not None
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AvailabilityOverride":
        return cls(
            date=to_date(data.get("date")),
            override_type=data.get("override_type"),
            start_time=_require_time(data.get("start_time"), "start_time"),
            end_time=_require_time(data.get("end_time"), "end_time"),
            breaks=_breaks_from(data.get("breaks")),
        )


@dataclass(frozen=True)
class BookingPolicy:
    """
    Booking rules applied on top of the organizer's working hours.

    Every field defaults to the matching ``AVAILABILITY`` setting, read when
    the policy is built. ``max_advance_booking_days=None`` means there is no
    upper limit.
    """

    duration_minutes: int = field(default_factory=lambda: get_setting("DURATION_MINUTES"))
    buffer_minutes: int = field(default_factory=lambda: get_setting("BUFFER_MINUTES"))
    min_advance_hours: int = field(default_factory=lambda: get_setting("MIN_ADVANCE_HOURS"))
    max_advance_booking_days: Optional[int] = field(
        default_factory=lambda: get_setting("MAX_ADVANCE_BOOKING_DAYS")
    )

    def __post_init__(self):
        if not isinstance(self.duration_minutes, int) or self.duration_minutes <= 0:
            raise ValidationError(
                _("Duration must be a positive number of minutes"),
                detail={"duration_minutes": self.duration_minutes},
            )
        for name in ("buffer_minutes", "min_advance_hours"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValidationError(_("Value must not be negative"), detail={name: value})
        if self.max_advance_booking_days is not None and (
            not isinstance(self.max_advance_booking_days, int)
            or self.max_advance_booking_days < 0
        ):
            raise ValidationError(
                _("Value must not be negative"),
                detail={"max_advance_booking_days": self.max_advance_booking_days},
            )

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes)

    @property
    def min_advance(self) -> timedelta:
        return timedelta(hours=self.min_advance_hours)

    def with_duration(self, duration_minutes: int) -> "BookingPolicy":
        return replace(self, duration_minutes=duration_minutes)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "BookingPolicy":
        """
        Build a policy from a profile settings mapping.

        Accepts ``advance_booking_days`` as an alias of
        ``max_advance_booking_days``. Missing keys use the defaults.
        """
        data = data or {}
        kwargs: Dict[str, Any] = {}

        for name in ("duration_minutes", "buffer_minutes", "min_advance_hours"):
            if data.get(name) is not None:
                kwargs[name] = to_int(data[name], data[name])

        for name in ("max_advance_booking_days", "advance_booking_days"):
            if name in data:
                value = data[name]
                kwargs["max_advance_booking_days"] = (
                    None if value is None else to_int(value, value)
                )
                break

        return cls(**kwargs)


@dataclass(frozen=True)
class ProfileSchedule:
    """
    Snapshot of an organizer's availability configuration.

    A schedule without weekly rules is "not configured": the engine then
    uses the fallback business window on fallback business days.
    """

    timezone: str = field(default_factory=lambda: get_setting("DEFAULT_TIMEZONE"))
    weekly_rules: Tuple[WeeklyAvailabilityRule, ...] = ()
    overrides: Tuple[AvailabilityOverride, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "weekly_rules", tuple(self.weekly_rules))
        object.__setattr__(self, "overrides", tuple(self.overrides))

        days = [rule.day_of_week for rule in self.weekly_rules]
        if len(days) != len(set(days)):
            raise ValidationError(_("Duplicate weekly rule for the same day"), detail=days)

        dates = [override.date for override in self.overrides]
        if len(dates) != len(set(dates)):
            raise ValidationError(_("Duplicate override for the same date"), detail=dates)

    @property
    def is_configured(self) -> bool:
        return bool(self.weekly_rules)

    def rule_for(self, day_of_week: int) -> Optional[WeeklyAvailabilityRule]:
        for rule in self.weekly_rules:
            if rule.day_of_week == day_of_week:
                return rule
        return None

    def override_for(self, target_date: date) -> Optional[AvailabilityOverride]:
        for override in self.overrides:
            if override.date == target_date:
                return override
        return None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ProfileSchedule":
        data = data or {}
        kwargs: Dict[str, Any] = {
            "weekly_rules": tuple(
                WeeklyAvailabilityRule.from_dict(rule) for rule in data.get("weekly_rules") or ()
            ),
            "overrides": tuple(
                AvailabilityOverride.from_dict(override)
                for override in data.get("overrides") or ()
            ),
        }
        if data.get("timezone"):
            kwargs["timezone"] = data["timezone"]
        return cls(**kwargs)


@dataclass(frozen=True)
class CalendarDay:
    """One cell of the 6-week month grid."""

    date: str
    day: int
    available: bool
    past: bool
    today: bool
    current_month: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SelectionResult:
    """Outcome of validating a visitor's date/time selection."""

    ok: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls) -> "SelectionResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str) -> "SelectionResult":
        return cls(ok=False, error=error)
