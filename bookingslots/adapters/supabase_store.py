"""
Appointment store backed by the Supabase (PostgREST) REST API.
"""

import logging
from datetime import date
from typing import Any, Dict, List

import requests

from ..domain.exceptions import StoreUnavailable
from ..domain.models import Appointment

logger = logging.getLogger(__name__)


class SupabaseAppointmentStore:
    """
    Client for the ``appointments`` table exposed through PostgREST.

    Uses ``GET /rest/v1/appointments`` with column filters to read a date
    window and ``POST /rest/v1/appointments`` to record a booking.
    """

    TABLE = "appointments"

    def __init__(self, base_url: str, api_key: str, timeout: int = 30, session=None):
        """
        Initialize the store client.

        Args:
            base_url: Project URL, e.g. https://xyz.supabase.co
            api_key: Service or anon key sent as ``apikey`` and bearer token
            timeout: Request timeout in seconds
            session: Optional requests.Session (a new one is created otherwise)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    @property
    def table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.TABLE}"

    def fetch_appointments(
        self,
        agent_id: str,
        start_date: date,
        end_date: date,
    ) -> List[Appointment]:
        """
        Get all appointments of an agent between two dates (inclusive).

        Returns appointments of every status; cancelled ones are filtered by
        the calculator, not here.

        Raises:
            StoreUnavailable: If the API call fails
        """
        params = [
            ("select", "*"),
            ("agent_id", f"eq.{agent_id}"),
            ("appointment_date", f"gte.{start_date.isoformat()}"),
            ("appointment_date", f"lte.{end_date.isoformat()}"),
            ("order", "appointment_date.asc,appointment_time.asc"),
        ]
        logger.debug(
            "Fetching appointments for %s from %s to %s", agent_id, start_date, end_date
        )

        try:
            response = self.session.get(
                self.table_url,
                headers=self.headers,
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
            rows = response.json()
        except requests.exceptions.RequestException as e:
            raise StoreUnavailable(f"Failed to fetch appointments from Supabase: {e}") from e
        except ValueError as e:
            raise StoreUnavailable(f"Supabase returned invalid JSON: {e}") from e

        if not isinstance(rows, list):
            raise StoreUnavailable("Supabase returned an unexpected payload for appointments")

        return self._parse_rows(rows)

    def create_appointment(self, agent_id: str, appointment: Appointment) -> Appointment:
        """
        Insert an appointment and return the stored row.

        Raises:
            StoreUnavailable: If the API call fails
        """
        record = appointment.to_record()
        record["agent_id"] = agent_id
        headers = dict(self.headers, Prefer="return=representation")

        try:
            response = self.session.post(
                self.table_url,
                headers=headers,
                json=record,
                timeout=self.timeout,
            )
            response.raise_for_status()
            rows = response.json()
        except requests.exceptions.RequestException as e:
            raise StoreUnavailable(f"Failed to create appointment in Supabase: {e}") from e
        except ValueError as e:
            raise StoreUnavailable(f"Supabase returned invalid JSON: {e}") from e

        if not rows:
            raise StoreUnavailable("Supabase did not return the created appointment")

        created = rows[0] if isinstance(rows, list) else rows
        try:
            stored = Appointment.from_record(created)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StoreUnavailable(f"Supabase returned an unparseable appointment: {e}") from e

        logger.info(
            "Created appointment %s for %s at %s %s",
            stored.id, agent_id, record["appointment_date"], record["appointment_time"],
        )
        return stored

    def _parse_rows(self, rows: List[Dict[str, Any]]) -> List[Appointment]:
        """
        Parse table rows into our domain model.

        Row format:
        {
            "id": "...",
            "agent_id": "...",
            "appointment_date": "2024-01-15",
            "appointment_time": "10:00:00",
            "status": "confirmed",
            ...
        }
        """
        appointments: List[Appointment] = []

        for row in rows:
            try:
                appointments.append(Appointment.from_record(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unparseable appointment row %s: %s", row.get("id"), e)
                continue

        return appointments

    def test_connection(self) -> bool:
        """
        Check that the table is reachable with the configured key.

        Raises:
            StoreUnavailable: If the connection test fails
        """
        try:
            response = self.session.get(
                self.table_url,
                headers=self.headers,
                params={"select": "id", "limit": "1"},
                timeout=10,
            )
            response.raise_for_status()
            return True
        except requests.exceptions.RequestException as e:
            raise StoreUnavailable(f"Connection test failed: {e}") from e
