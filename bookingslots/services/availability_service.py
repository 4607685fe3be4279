"""
Application services for listing availability and booking appointments.

The service coordinates reading bookings through an appointment store adapter
and resolving business hours through a schedule provider, and delegates the
actual calculations to the domain-level ``AvailabilityCalculator`` and
``BookingGuard``. Both collaborators are plain protocols so tests and the CLI
can plug in the mock store.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Protocol

from ..domain.availability_calculator import AvailabilityCalculator
from ..domain.booking_guard import BookingGuard
from ..domain.exceptions import SlotUnavailable
from ..domain.models import (
    Appointment,
    AppointmentStatus,
    AvailableSlot,
    BookingDecision,
    BookingRequest,
    BusinessHoursConfig,
    parse_date,
)

logger = logging.getLogger(__name__)


class AppointmentStoreProtocol(Protocol):
    """Protocol describing the appointment store behaviour needed by the service."""

    def fetch_appointments(
        self,
        agent_id: str,
        start_date: date,
        end_date: date,
    ) -> List[Appointment]:
        """Return appointments of any status in the date window."""

    def create_appointment(self, agent_id: str, appointment: Appointment) -> Appointment:
        """Record a new appointment and return it as stored."""


class ScheduleProviderProtocol(Protocol):
    """Protocol describing how business hours are looked up per agent."""

    def get_business_hours(self, agent_id: str) -> BusinessHoursConfig:
        """Return the agent's fully resolved business hours."""


class AvailabilityService:
    """
    Orchestrates appointment retrieval, schedule lookup and calculation.

    Store failures (``StoreUnavailable``) are propagated unchanged.
    """

    def __init__(
        self,
        store: AppointmentStoreProtocol,
        schedule_provider: ScheduleProviderProtocol,
        calculator: Optional[AvailabilityCalculator] = None,
        booking_guard: Optional[BookingGuard] = None,
    ) -> None:
        self._store = store
        self._schedule_provider = schedule_provider
        self._calculator = calculator or AvailabilityCalculator()
        self._booking_guard = booking_guard or BookingGuard(capacity=self._calculator.capacity)

    def get_availability(
        self,
        agent_id: str,
        start_date,
        end_date=None,
    ) -> List[AvailableSlot]:
        """
        List slot availability per date for an agent.

        The range is validated before the store is queried, so a reversed
        range never reaches the backend.
        """
        start, end = self._calculator.resolve_range(start_date, end_date)
        business_hours = self._schedule_provider.get_business_hours(agent_id)
        appointments = self._store.fetch_appointments(agent_id, start, end)

        logger.debug(
            "Computing availability for %s from %s to %s with %d appointment(s)",
            agent_id, start, end, len(appointments),
        )
        return self._calculator.compute_availability(start, end, business_hours, appointments)

    def check_slot(self, agent_id: str, day, time) -> BookingDecision:
        """Check whether a booking could be placed right now."""
        day = parse_date(day)
        business_hours = self._schedule_provider.get_business_hours(agent_id)
        appointments = self._store.fetch_appointments(agent_id, day, day)
        return self._booking_guard.check(day, time, business_hours, appointments)

    def book_appointment(self, agent_id: str, request: BookingRequest) -> Appointment:
        """
        Record a pending appointment if the slot can take it.

        Raises:
            SlotUnavailable: If the guard refuses the booking
            StoreUnavailable: If the store cannot be read or written
        """
        decision = self.check_slot(agent_id, request.date, request.time)
        if not decision.allowed:
            logger.info(
                "Refused booking for %s at %s %s: %s",
                agent_id, decision.date, decision.time, decision.reason.value,
            )
            raise SlotUnavailable(decision)

        business_hours = self._schedule_provider.get_business_hours(agent_id)
        appointment = Appointment(
            date=request.date,
            time=request.time,
            status=AppointmentStatus.PENDING,
            agent_id=agent_id,
            client_name=request.client_name,
            client_email=request.client_email,
            client_phone=request.client_phone,
            property_id=request.property_id,
            notes=request.notes,
            duration_minutes=business_hours.slot_duration,
        )
        return self._store.create_appointment(agent_id, appointment)
