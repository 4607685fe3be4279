"""
Mock appointment store for working without a Supabase project.
"""

import json
import logging
import uuid
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..domain.exceptions import StoreUnavailable
from ..domain.models import Appointment

logger = logging.getLogger(__name__)


class MockAppointmentStore:
    """
    Store that serves appointments from a JSON file.

    The file holds a list of rows shaped like the ``appointments`` table.
    Appointments created through the store are kept in memory only.
    """

    def __init__(self, data_file: Optional[Path] = None, rows: Optional[List[Dict[str, Any]]] = None):
        """
        Initialize the mock store.

        Args:
            data_file: JSON file with appointment rows
            rows: Rows to use directly instead of reading a file
        """
        self.data_file = data_file
        self.rows: List[Dict[str, Any]] = list(rows) if rows is not None else self._load_rows()

    def _load_rows(self) -> List[Dict[str, Any]]:
        """Load rows from the JSON file, empty if there is none."""
        if self.data_file is None or not self.data_file.exists():
            return []

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                rows = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreUnavailable(f"Could not read mock appointments from {self.data_file}: {exc}") from exc

        if not isinstance(rows, list):
            raise StoreUnavailable(f"Mock appointment file {self.data_file} must contain a list")
        return rows

    def fetch_appointments(self, agent_id: str, start_date: date, end_date: date) -> List[Appointment]:
        appointments: List[Appointment] = []

        for row in self.rows:
            if row.get("agent_id") != agent_id:
                continue

            try:
                appointment = Appointment.from_record(row)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping invalid mock appointment %s: %s", row.get("id"), exc)
                continue

            if start_date <= appointment.date <= end_date:
                appointments.append(appointment)

        return sorted(appointments, key=lambda a: (a.date, a.time))

    def create_appointment(self, agent_id: str, appointment: Appointment) -> Appointment:
        record = appointment.to_record()
        record["agent_id"] = agent_id
        record.setdefault("id", str(uuid.uuid4()))
        self.rows.append(record)
        return Appointment.from_record(record)
