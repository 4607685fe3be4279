"""
Core business logic for calculating appointment availability.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

from collections import Counter
from typing import Iterable, List, Sequence, Tuple

from pendulum import Date

from .exceptions import InvalidConfig, InvalidRange
from .models import (
    Appointment,
    AvailableSlot,
    BusinessHoursConfig,
    ResolvedDay,
    SlotAvailability,
    SlotMetadata,
    Weekday,
    parse_date,
)

DEFAULT_CAPACITY = 1
DEFAULT_LOOKAHEAD_DAYS = 14
DEFAULT_MAX_SPAN_DAYS = 366


class AvailabilityCalculator:
    """
    Calculates bookable slots per date from business hours and bookings.

    Algorithm:
    1. Walk every calendar date from start to end, inclusive
    2. Resolve the day's windows (a date override wins over the weekday)
    3. Step through each window in slot_duration increments
    4. Count non-cancelled appointments at each slot's exact time
    5. Return one AvailableSlot per date, dates and slots ascending

    Buffer time is not applied here: listed slots are independent and only
    report their own counts. BookingGuard enforces buffers when booking.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
        max_span_days: int = DEFAULT_MAX_SPAN_DAYS,
    ):
        if capacity < 1:
            raise InvalidConfig(f"capacity must be at least 1, got {capacity}")
        if lookahead_days < 1:
            raise InvalidConfig(f"lookahead_days must be at least 1, got {lookahead_days}")
        if max_span_days < lookahead_days:
            raise InvalidConfig(
                f"max_span_days ({max_span_days}) must not be shorter than "
                f"lookahead_days ({lookahead_days})"
            )
        self.capacity = capacity
        self.lookahead_days = lookahead_days
        self.max_span_days = max_span_days

    def compute_availability(
        self,
        start_date,
        end_date,
        business_hours: BusinessHoursConfig,
        appointments: Iterable[Appointment],
    ) -> List[AvailableSlot]:
        """
        Compute slot availability for every date in the range.

        Args:
            start_date: First date (ISO string or date)
            end_date: Last date, inclusive. None means a look-ahead window of
                ``lookahead_days`` dates starting at start_date
            business_hours: Fully resolved business-hours configuration
            appointments: Appointments in the range, any status

        Returns:
            List of AvailableSlot, one per date, ascending

        Raises:
            InvalidRange: If a bound is not a date, end is before start or
                the range is longer than max_span_days
        """
        start, end = self.resolve_range(start_date, end_date)
        booked = self._count_booked(appointments)

        return [
            self._build_day(day, business_hours, booked)
            for day in iter_dates(start, end)
        ]

    def resolve_range(self, start_date, end_date=None) -> Tuple[Date, Date]:
        """Parse the range bounds, applying the look-ahead default."""
        start = _parse_bound(start_date, "start")

        if end_date is None:
            return start, start.add(days=self.lookahead_days - 1)

        end = _parse_bound(end_date, "end")
        if end < start:
            raise InvalidRange(
                f"End date {end.isoformat()} is before start date {start.isoformat()}"
            )

        span = end.toordinal() - start.toordinal() + 1
        if span > self.max_span_days:
            raise InvalidRange(
                f"Range {start.isoformat()} to {end.isoformat()} covers {span} days, "
                f"more than the maximum of {self.max_span_days}"
            )
        return start, end

    def _build_day(
        self,
        day: Date,
        business_hours: BusinessHoursConfig,
        booked: Counter,
    ) -> AvailableSlot:
        resolved = business_hours.resolve(day)
        slot_times = generate_slot_times(resolved, business_hours.slot_duration)

        slots = tuple(
            SlotAvailability(
                time=slot_time,
                capacity=self.capacity,
                booked=booked.get((day, slot_time), 0),
            )
            for slot_time in slot_times
        )

        metadata = None
        if resolved.is_override:
            metadata = SlotMetadata(notes=resolved.notes, special_hours=True)

        return AvailableSlot(
            date=day,
            day_of_week=Weekday.from_date(day),
            slots=slots,
            metadata=metadata,
        )

    @staticmethod
    def _count_booked(appointments: Iterable[Appointment]) -> Counter:
        """Count active appointments per (date, normalized time)."""
        return Counter(
            (appointment.date, appointment.time)
            for appointment in appointments
            if appointment.is_active
        )


def generate_slot_times(resolved: ResolvedDay, slot_duration: int) -> List[str]:
    """
    Normalized start times of every slot in the resolved windows, ascending.

    A window shorter than slot_duration produces no slots.
    """
    times = {
        start.strftime("%H:%M:%S")
        for window in resolved.windows
        for start in window.slot_starts(slot_duration)
    }
    return sorted(times)


def iter_dates(start: Date, end: Date) -> Iterable[Date]:
    current = start
    while current <= end:
        yield current
        current = current.add(days=1)


def compute_availability(
    start_date,
    end_date,
    business_hours: BusinessHoursConfig,
    appointments: Sequence[Appointment],
    capacity: int = DEFAULT_CAPACITY,
) -> List[AvailableSlot]:
    """Shortcut for a one-off calculation with a default calculator."""
    calculator = AvailabilityCalculator(capacity=capacity)
    return calculator.compute_availability(start_date, end_date, business_hours, appointments)


def _parse_bound(value, label: str) -> Date:
    if value is None:
        raise InvalidRange(f"A {label} date is required")
    try:
        return parse_date(value)
    except ValueError as exc:
        raise InvalidRange(f"Invalid {label} date: {value!r}") from exc
