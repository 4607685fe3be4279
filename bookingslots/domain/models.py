"""
Domain models for business hours, appointments and slot availability.

Times are normalized once, at this boundary, to a canonical ``HH:MM:SS``
representation; everything downstream compares normalized strings or
``datetime.time`` values only.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pendulum
from pendulum import Date

from .exceptions import InvalidConfig


def parse_time(value: Any) -> time:
    """
    Parse a loosely formatted time of day.

    Accepts ``time`` objects and strings like ``"9:00"``, ``"09:00"`` or
    ``"09:00:00"``. Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        return value.time().replace(microsecond=0)
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    if not isinstance(value, str):
        raise ValueError(f"Invalid time value: {value!r}")

    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(part.strip().isdigit() for part in parts):
        raise ValueError(f"Invalid time value: {value!r}")

    numbers = [int(part) for part in parts]
    if len(numbers) == 2:
        numbers.append(0)

    hour, minute, second = numbers
    try:
        return time(hour=hour, minute=minute, second=second)
    except ValueError as exc:
        raise ValueError(f"Invalid time value: {value!r}") from exc


def normalize_time(value: Any) -> str:
    """Return the canonical ``HH:MM:SS`` form of a time value."""
    return parse_time(value).strftime("%H:%M:%S")


def parse_date(value: Any) -> Date:
    """
    Parse an ISO calendar date (or date/datetime object) to a pendulum Date.

    Raises ValueError if the value is not a valid date.
    """
    if isinstance(value, date):
        return pendulum.date(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date value: {value!r}")

    parsed = pendulum.parse(value.strip(), exact=True)
    if isinstance(parsed, date):
        return pendulum.date(parsed.year, parsed.month, parsed.day)

    raise ValueError(f"Invalid date value: {value!r}")


def seconds_since_midnight(value: time) -> int:
    return value.hour * 3600 + value.minute * 60 + value.second


def time_from_seconds(seconds: int) -> time:
    return time(hour=seconds // 3600, minute=seconds % 3600 // 60, second=seconds % 60)


class Weekday(str, Enum):
    """Days of the week, named the way business hours are configured."""

    SUNDAY = "sunday"
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        """Weekday of a calendar date (``date.weekday()`` counts from Monday)."""
        return _WEEKDAYS_FROM_MONDAY[day.weekday()]

    @classmethod
    def parse(cls, value: Any) -> "Weekday":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise InvalidConfig(f"Unknown weekday: {value!r}") from exc


_WEEKDAYS_FROM_MONDAY = (
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
    Weekday.SATURDAY,
    Weekday.SUNDAY,
)


@dataclass(frozen=True)
class TimeWindow:
    """
    An open/close pair within a single day.

    Invariant: close must be after open.
    """
    open: time
    close: time

    def __post_init__(self):
        object.__setattr__(self, "open", parse_time(self.open))
        object.__setattr__(self, "close", parse_time(self.close))
        if self.close <= self.open:
            raise InvalidConfig(
                f"Window close time {self.close:%H:%M} must be after open time {self.open:%H:%M}"
            )

    def duration_minutes(self) -> int:
        return (seconds_since_midnight(self.close) - seconds_since_midnight(self.open)) // 60

    def overlaps(self, other: "TimeWindow") -> bool:
        """Adjacent windows (one closes when the other opens) do not overlap."""
        return self.open < other.close and self.close > other.open

    def slot_starts(self, slot_duration: int) -> List[time]:
        """
        Start times of every slot that fits entirely inside the window.

        Example (60 minute slots):
        Window: 09:00 - 12:00
        Result: [09:00, 10:00, 11:00]
        """
        starts: List[time] = []
        step = slot_duration * 60
        current = seconds_since_midnight(self.open)
        close = seconds_since_midnight(self.close)

        while current + step <= close:
            starts.append(time_from_seconds(current))
            current += step

        return starts

    def __str__(self) -> str:
        return f"{self.open:%H:%M} - {self.close:%H:%M}"


def _validate_windows(windows: Sequence[TimeWindow], label: str) -> Tuple[TimeWindow, ...]:
    """Sort windows by open time and reject overlaps."""
    ordered = tuple(sorted(windows, key=lambda w: w.open))
    for previous, current in zip(ordered, ordered[1:]):
        if previous.overlaps(current):
            raise InvalidConfig(f"Overlapping windows on {label}: {previous} and {current}")
    return ordered


@dataclass(frozen=True)
class DateOverride:
    """
    Replaces the recurring weekly windows on one date.

    An override without windows closes the day entirely. Recurring overrides
    match the same month and day in every year.
    """
    date: Date
    windows: Tuple[TimeWindow, ...] = ()
    notes: str = ""
    recurring: bool = False

    def __post_init__(self):
        object.__setattr__(self, "date", parse_date(self.date))
        object.__setattr__(
            self,
            "windows",
            _validate_windows(tuple(self.windows), self.date.isoformat()),
        )

    @property
    def closed(self) -> bool:
        return not self.windows

    def applies_to(self, day: date) -> bool:
        if self.recurring:
            return (self.date.month, self.date.day) == (day.month, day.day)
        return self.date == day


@dataclass(frozen=True)
class ResolvedDay:
    """The windows in force on a specific date."""
    windows: Tuple[TimeWindow, ...]
    is_override: bool = False
    notes: str = ""


@dataclass(frozen=True)
class BusinessHoursConfig:
    """
    Recurring weekly business hours plus date-specific overrides.

    Invariants are checked on construction, so a config that exists is
    always valid:
    - slot_duration > 0 and buffer_time >= 0
    - every window closes after it opens
    - windows within a day do not overlap
    """
    slot_duration: int
    buffer_time: int = 0
    business_hours: Mapping[Weekday, Tuple[TimeWindow, ...]] = field(default_factory=dict)
    overrides: Tuple[DateOverride, ...] = ()

    def __post_init__(self):
        if not isinstance(self.slot_duration, int) or self.slot_duration <= 0:
            raise InvalidConfig(f"slot_duration must be a positive integer, got {self.slot_duration!r}")
        if not isinstance(self.buffer_time, int) or self.buffer_time < 0:
            raise InvalidConfig(f"buffer_time must be a non-negative integer, got {self.buffer_time!r}")

        hours: Dict[Weekday, Tuple[TimeWindow, ...]] = {}
        for day_name, windows in self.business_hours.items():
            weekday = Weekday.parse(day_name)
            if weekday in hours:
                raise InvalidConfig(f"Duplicate business hours for {weekday.value}")
            hours[weekday] = _validate_windows(tuple(windows), weekday.value)
        object.__setattr__(self, "business_hours", hours)

        overrides = tuple(self.overrides)
        seen: set = set()
        for override in overrides:
            key = (override.date.month, override.date.day) if override.recurring else override.date
            if key in seen:
                raise InvalidConfig(f"Duplicate override for {override.date.isoformat()}")
            seen.add(key)
        object.__setattr__(self, "overrides", overrides)

    def windows_for_weekday(self, weekday: Weekday) -> Tuple[TimeWindow, ...]:
        return self.business_hours.get(weekday, ())

    def find_override(self, day: date) -> Optional[DateOverride]:
        """Exact-date overrides take precedence over recurring ones."""
        for override in self.overrides:
            if not override.recurring and override.applies_to(day):
                return override
        for override in self.overrides:
            if override.recurring and override.applies_to(day):
                return override
        return None

    def resolve(self, day: date) -> ResolvedDay:
        """Resolve the windows for a date, applying any override."""
        override = self.find_override(day)
        if override is not None:
            return ResolvedDay(windows=override.windows, is_override=True, notes=override.notes)
        return ResolvedDay(windows=self.windows_for_weekday(Weekday.from_date(day)))


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no-show"

    @property
    def counts_against_capacity(self) -> bool:
        return self is not AppointmentStatus.CANCELLED


@dataclass(frozen=True)
class Appointment:
    """
    A booked appointment as stored by the booking store.

    ``time`` is always held in normalized ``HH:MM:SS`` form.
    """
    date: Date
    time: str
    status: AppointmentStatus = AppointmentStatus.PENDING
    id: Optional[str] = None
    agent_id: Optional[str] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    property_id: Optional[str] = None
    notes: Optional[str] = None
    duration_minutes: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "date", parse_date(self.date))
        object.__setattr__(self, "time", normalize_time(self.time))
        object.__setattr__(self, "status", AppointmentStatus(self.status))

    @property
    def is_active(self) -> bool:
        return self.status.counts_against_capacity

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Appointment":
        """
        Build an appointment from an ``appointments`` table row.

        Raises:
            KeyError: If the date or time column is missing
            ValueError: If a value cannot be parsed
        """
        return cls(
            date=record["appointment_date"],
            time=record["appointment_time"],
            status=record.get("status") or AppointmentStatus.PENDING,
            id=record.get("id"),
            agent_id=record.get("agent_id"),
            client_name=record.get("client_name"),
            client_email=record.get("client_email"),
            client_phone=record.get("client_phone"),
            property_id=record.get("property_id"),
            notes=record.get("notes"),
            duration_minutes=record.get("duration_minutes"),
        )

    def to_record(self) -> Dict[str, Any]:
        """Serialize to an ``appointments`` table row, omitting unset columns."""
        record: Dict[str, Any] = {
            "appointment_date": self.date.isoformat(),
            "appointment_time": self.time,
            "status": self.status.value,
        }
        optional = {
            "id": self.id,
            "agent_id": self.agent_id,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "client_phone": self.client_phone,
            "property_id": self.property_id,
            "notes": self.notes,
            "duration_minutes": self.duration_minutes,
        }
        record.update({key: value for key, value in optional.items() if value is not None})
        return record


@dataclass(frozen=True)
class SlotAvailability:
    """One bookable slot and how full it is."""
    time: str
    capacity: int
    booked: int

    @property
    def available(self) -> bool:
        return self.booked < self.capacity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "capacity": self.capacity,
            "booked": self.booked,
            "available": self.available,
        }


@dataclass(frozen=True)
class SlotMetadata:
    notes: str = ""
    special_hours: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"notes": self.notes, "specialHours": self.special_hours}


@dataclass(frozen=True)
class AvailableSlot:
    """
    Availability for a single date.

    ``metadata`` is only set when the date used an override.
    """
    date: Date
    day_of_week: Weekday
    slots: Tuple[SlotAvailability, ...] = ()
    metadata: Optional[SlotMetadata] = None

    @property
    def available_count(self) -> int:
        return sum(1 for slot in self.slots if slot.available)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape served by the availability endpoint."""
        payload: Dict[str, Any] = {
            "date": self.date.isoformat(),
            "dayOfWeek": self.day_of_week.value,
            "slots": [slot.to_dict() for slot in self.slots],
        }
        if self.metadata is not None:
            payload["metadata"] = self.metadata.to_dict()
        return payload


class BookingReason(str, Enum):
    OK = "ok"
    CLOSED = "closed"
    NOT_A_SLOT = "not_a_slot"
    FULL = "full"
    BUFFER_CONFLICT = "buffer_conflict"


@dataclass(frozen=True)
class BookingDecision:
    """Outcome of checking whether a new appointment may be placed."""
    date: Date
    time: str
    reason: BookingReason
    capacity: int = 0
    booked: int = 0
    conflicts: Tuple[str, ...] = ()

    @property
    def allowed(self) -> bool:
        return self.reason is BookingReason.OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "time": self.time,
            "allowed": self.allowed,
            "reason": self.reason.value,
            "capacity": self.capacity,
            "booked": self.booked,
            "remaining": max(0, self.capacity - self.booked),
            "conflicts": list(self.conflicts),
        }


@dataclass(frozen=True)
class BookingRequest:
    """Client details submitted by the booking form."""
    date: Date
    time: str
    client_name: str
    client_email: str
    client_phone: Optional[str] = None
    property_id: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "date", parse_date(self.date))
        object.__setattr__(self, "time", normalize_time(self.time))
        object.__setattr__(self, "client_email", self.client_email.strip().lower())
        if not self.client_name.strip():
            raise ValueError("client_name must not be empty")
        if "@" not in self.client_email:
            raise ValueError(f"Invalid client email: {self.client_email!r}")
