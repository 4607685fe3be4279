"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability_calculator import AvailabilityCalculator, compute_availability
from .booking_guard import BookingGuard
from .exceptions import (
    BookingSlotsError,
    InvalidConfig,
    InvalidRange,
    SlotUnavailable,
    StoreUnavailable,
)
from .models import (
    Appointment,
    AppointmentStatus,
    AvailableSlot,
    BookingDecision,
    BookingReason,
    BookingRequest,
    BusinessHoursConfig,
    DateOverride,
    ResolvedDay,
    SlotAvailability,
    SlotMetadata,
    TimeWindow,
    Weekday,
    normalize_time,
)

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AvailabilityCalculator",
    "AvailableSlot",
    "BookingDecision",
    "BookingGuard",
    "BookingReason",
    "BookingRequest",
    "BookingSlotsError",
    "BusinessHoursConfig",
    "DateOverride",
    "InvalidConfig",
    "InvalidRange",
    "ResolvedDay",
    "SlotAvailability",
    "SlotMetadata",
    "SlotUnavailable",
    "StoreUnavailable",
    "TimeWindow",
    "Weekday",
    "compute_availability",
    "normalize_time",
]
