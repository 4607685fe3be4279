"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability_service import (
    AppointmentStoreProtocol,
    AvailabilityService,
    ScheduleProviderProtocol,
)

__all__ = ["AppointmentStoreProtocol", "AvailabilityService", "ScheduleProviderProtocol"]
