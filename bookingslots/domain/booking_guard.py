"""
Booking-time checks for placing a new appointment.

Availability listings report each slot independently; buffer time is only
enforced here, when an appointment is actually about to be recorded.
"""

from typing import Iterable, List, Tuple

from .availability_calculator import DEFAULT_CAPACITY, generate_slot_times
from .exceptions import InvalidConfig
from .models import (
    Appointment,
    BookingDecision,
    BookingReason,
    BusinessHoursConfig,
    normalize_time,
    parse_date,
    parse_time,
    seconds_since_midnight,
)


class BookingGuard:
    """
    Decides whether an appointment may be booked at a date and time.

    Checks run in order and the first failure wins:
    1. The date has no open windows -> closed
    2. The time is not an offered slot start -> not_a_slot
    3. The slot already holds ``capacity`` active bookings -> full
    4. Another active booking's buffered interval overlaps -> buffer_conflict

    A booking occupies ``[time, time + slot_duration + buffer_time)``.
    Bookings at exactly the candidate time are covered by the capacity check.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise InvalidConfig(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity

    def check(
        self,
        day,
        time,
        business_hours: BusinessHoursConfig,
        appointments: Iterable[Appointment],
    ) -> BookingDecision:
        day = parse_date(day)
        slot_time = normalize_time(time)

        resolved = business_hours.resolve(day)
        if not resolved.windows:
            return BookingDecision(date=day, time=slot_time, reason=BookingReason.CLOSED)

        if slot_time not in generate_slot_times(resolved, business_hours.slot_duration):
            return BookingDecision(
                date=day,
                time=slot_time,
                reason=BookingReason.NOT_A_SLOT,
                capacity=self.capacity,
            )

        same_day = [
            appointment for appointment in appointments
            if appointment.is_active and appointment.date == day
        ]
        booked = sum(1 for appointment in same_day if appointment.time == slot_time)

        if booked >= self.capacity:
            return BookingDecision(
                date=day,
                time=slot_time,
                reason=BookingReason.FULL,
                capacity=self.capacity,
                booked=booked,
            )

        conflicts = self.find_buffer_conflicts(slot_time, business_hours, same_day)
        reason = BookingReason.BUFFER_CONFLICT if conflicts else BookingReason.OK

        return BookingDecision(
            date=day,
            time=slot_time,
            reason=reason,
            capacity=self.capacity,
            booked=booked,
            conflicts=conflicts,
        )

    @staticmethod
    def find_buffer_conflicts(
        slot_time: str,
        business_hours: BusinessHoursConfig,
        same_day: Iterable[Appointment],
    ) -> Tuple[str, ...]:
        """
        Times of same-day bookings whose buffered interval overlaps the candidate.

        Example (60 minute slots, 15 minute buffer):
        Booked: 09:00 occupies 09:00 - 10:15
        Candidate 10:00 occupies 10:00 - 11:15 -> conflict with 09:00
        """
        block = (business_hours.slot_duration + business_hours.buffer_time) * 60
        start = seconds_since_midnight(parse_time(slot_time))
        end = start + block

        conflicts: List[str] = []
        for appointment in same_day:
            if appointment.time == slot_time:
                continue
            other_start = seconds_since_midnight(parse_time(appointment.time))
            other_end = other_start + block
            if start < other_end and end > other_start:
                conflicts.append(appointment.time)

        return tuple(sorted(set(conflicts)))
