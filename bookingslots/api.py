"""Appointments router - FastAPI endpoints for the booking form"""

import logging
from typing import Optional

import pendulum
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .config import DEFAULT_AGENT_ID
from .domain.exceptions import BookingSlotsError
from .services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])


def get_availability_service(request: Request) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return request.app.state.availability_service


def get_default_agent_id(request: Request) -> str:
    return request.app.state.default_agent_id


def get_timezone(request: Request) -> str:
    return request.app.state.timezone


def _error(message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": message, **extra})


@router.get("/available")
def list_available_slots(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    agent_id: Optional[str] = Query(None),
    service: AvailabilityService = Depends(get_availability_service),
    default_agent_id: str = Depends(get_default_agent_id),
    timezone: str = Depends(get_timezone),
):
    """
    Slot availability per date.

    ``start`` defaults to today in the agency timezone and a missing ``end``
    uses the look-ahead window. Every failure, validation errors included,
    is reported as ``500 {"error": ...}``.
    """
    start = start or pendulum.today(timezone).to_date_string()
    agent_id = agent_id or default_agent_id

    try:
        slots = service.get_availability(agent_id, start, end or None)
    except BookingSlotsError as exc:
        logger.error("Availability request failed for %s: %s", agent_id, exc)
        return _error(str(exc))
    except Exception as exc:
        logger.exception("Unexpected error while computing availability")
        return _error("Internal server error", message=str(exc))

    return [slot.to_dict() for slot in slots]


@router.get("/check-slot")
def check_slot(
    date: Optional[str] = Query(None),
    time: Optional[str] = Query(None),
    agent_id: Optional[str] = Query(None),
    service: AvailabilityService = Depends(get_availability_service),
    default_agent_id: str = Depends(get_default_agent_id),
):
    """Whether an appointment could be booked at ``date`` ``time``"""
    if not date or not time:
        return JSONResponse(status_code=400, content={"error": "date and time are required"})

    try:
        decision = service.check_slot(agent_id or default_agent_id, date, time)
    except (BookingSlotsError, ValueError) as exc:
        logger.error("Slot check failed for %s %s: %s", date, time, exc)
        return _error(str(exc))

    return decision.to_dict()


def create_app(
    service: AvailabilityService,
    default_agent_id: str = DEFAULT_AGENT_ID,
    timezone: str = "America/Mexico_City",
) -> FastAPI:
    """Build the API application around an availability service."""
    app = FastAPI(title="bookingslots")
    app.state.availability_service = service
    app.state.default_agent_id = default_agent_id
    app.state.timezone = timezone
    app.include_router(router)
    return app
