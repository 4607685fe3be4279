"""
Tests for the appointment store adapters and the configured schedule provider.
"""

import json

import pendulum
import pytest
import requests

from bookingslots.adapters.configured_schedule import ConfiguredScheduleProvider
from bookingslots.adapters.mock_store import MockAppointmentStore
from bookingslots.adapters.supabase_store import SupabaseAppointmentStore
from bookingslots.config import AppConfig
from bookingslots.domain.exceptions import StoreUnavailable
from bookingslots.domain.models import Appointment, AppointmentStatus


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        return self._payload


class FakeSession:
    """Records requests and replays a canned response."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def _handle(self, method, url, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        return self._handle("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._handle("POST", url, **kwargs)


ROWS = [
    {
        "id": "1",
        "agent_id": "agent-1",
        "appointment_date": "2024-01-15",
        "appointment_time": "10:00:00",
        "status": "confirmed",
    },
    {
        "id": "2",
        "agent_id": "agent-1",
        "appointment_date": "2024-01-15",
        "appointment_time": "11:00",
        "status": "cancelled",
    },
]


class TestSupabaseAppointmentStore:
    """Tests for SupabaseAppointmentStore."""

    def test_fetch_sends_filtered_query(self):
        """Test the PostgREST query and auth headers."""
        session = FakeSession(FakeResponse(ROWS))
        store = SupabaseAppointmentStore("https://demo.supabase.co/", "secret", session=session)

        appointments = store.fetch_appointments(
            "agent-1", pendulum.date(2024, 1, 15), pendulum.date(2024, 1, 21)
        )

        request = session.requests[0]
        assert request["url"] == "https://demo.supabase.co/rest/v1/appointments"
        assert ("agent_id", "eq.agent-1") in request["params"]
        assert ("appointment_date", "gte.2024-01-15") in request["params"]
        assert ("appointment_date", "lte.2024-01-21") in request["params"]
        assert request["headers"]["apikey"] == "secret"
        assert request["headers"]["Authorization"] == "Bearer secret"
        assert request["timeout"] == 30

        assert [a.time for a in appointments] == ["10:00:00", "11:00:00"]
        assert appointments[1].status is AppointmentStatus.CANCELLED

    def test_unparseable_rows_are_skipped(self):
        """Test that one bad row does not sink the whole response."""
        rows = ROWS + [{"id": "3", "appointment_date": "2024-01-15"}]
        store = SupabaseAppointmentStore(
            "https://demo.supabase.co", "secret", session=FakeSession(FakeResponse(rows))
        )

        appointments = store.fetch_appointments(
            "agent-1", pendulum.date(2024, 1, 15), pendulum.date(2024, 1, 15)
        )

        assert len(appointments) == 2

    def test_http_error_raises_store_unavailable(self):
        """Test that a failing backend surfaces as StoreUnavailable."""
        store = SupabaseAppointmentStore(
            "https://demo.supabase.co", "secret", session=FakeSession(FakeResponse({}, 503))
        )

        with pytest.raises(StoreUnavailable, match="503"):
            store.fetch_appointments("agent-1", pendulum.date(2024, 1, 15), pendulum.date(2024, 1, 15))

    def test_connection_error_raises_store_unavailable(self):
        """Test that transport failures surface as StoreUnavailable."""
        session = FakeSession(error=requests.exceptions.ConnectionError("refused"))
        store = SupabaseAppointmentStore("https://demo.supabase.co", "secret", session=session)

        with pytest.raises(StoreUnavailable, match="refused"):
            store.fetch_appointments("agent-1", pendulum.date(2024, 1, 15), pendulum.date(2024, 1, 15))

    def test_create_appointment_posts_row(self):
        """Test inserting an appointment."""
        created = dict(ROWS[0], id="new-id", status="pending")
        session = FakeSession(FakeResponse([created], 201))
        store = SupabaseAppointmentStore("https://demo.supabase.co", "secret", session=session)

        result = store.create_appointment(
            "agent-1", Appointment(date="2024-01-15", time="10:00", client_name="Ana")
        )

        request = session.requests[0]
        assert request["method"] == "POST"
        assert request["headers"]["Prefer"] == "return=representation"
        assert request["json"]["agent_id"] == "agent-1"
        assert request["json"]["appointment_time"] == "10:00:00"
        assert result.id == "new-id"

    def test_create_without_returned_row_raises(self):
        """Test that an empty insert response is an error."""
        store = SupabaseAppointmentStore(
            "https://demo.supabase.co", "secret", session=FakeSession(FakeResponse([], 201))
        )

        with pytest.raises(StoreUnavailable):
            store.create_appointment("agent-1", Appointment(date="2024-01-15", time="10:00"))

    def test_create_with_malformed_returned_row_raises(self):
        """Test that a created row missing its columns is a store error."""
        store = SupabaseAppointmentStore(
            "https://demo.supabase.co",
            "secret",
            session=FakeSession(FakeResponse([{"id": "new-id", "appointment_date": "2024-01-15"}], 201)),
        )

        with pytest.raises(StoreUnavailable, match="unparseable"):
            store.create_appointment("agent-1", Appointment(date="2024-01-15", time="10:00"))


class TestMockAppointmentStore:
    """Tests for MockAppointmentStore."""

    def test_reads_json_file_and_filters(self, tmp_path):
        """Test filtering by agent and date range."""
        rows = ROWS + [
            dict(ROWS[0], id="3", agent_id="agent-2"),
            dict(ROWS[0], id="4", appointment_date="2024-02-01"),
        ]
        data_file = tmp_path / "appointments.json"
        data_file.write_text(json.dumps(rows), encoding="utf-8")
        store = MockAppointmentStore(data_file=data_file)

        appointments = store.fetch_appointments(
            "agent-1", pendulum.date(2024, 1, 15), pendulum.date(2024, 1, 31)
        )

        assert [a.id for a in appointments] == ["1", "2"]

    def test_missing_file_means_no_appointments(self, tmp_path):
        """Test that a missing file is treated as empty."""
        store = MockAppointmentStore(data_file=tmp_path / "nope.json")

        assert store.fetch_appointments(
            "agent-1", pendulum.date(2024, 1, 1), pendulum.date(2024, 12, 31)
        ) == []

    def test_broken_file_raises_store_unavailable(self, tmp_path):
        """Test that an unreadable file surfaces as StoreUnavailable."""
        data_file = tmp_path / "appointments.json"
        data_file.write_text("{not json", encoding="utf-8")

        with pytest.raises(StoreUnavailable):
            MockAppointmentStore(data_file=data_file)

    def test_created_appointments_are_visible(self):
        """Test that inserts are returned by later fetches."""
        store = MockAppointmentStore(rows=[])

        created = store.create_appointment(
            "agent-1", Appointment(date="2024-01-15", time="9:00")
        )
        fetched = store.fetch_appointments(
            "agent-1", pendulum.date(2024, 1, 15), pendulum.date(2024, 1, 15)
        )

        assert created.id is not None
        assert fetched == [created]


class TestConfiguredScheduleProvider:
    """Tests for ConfiguredScheduleProvider."""

    def test_resolve_uses_agent_schedule_and_holidays(self):
        """Test resolving a date through the config."""
        config = AppConfig(
            schedule={
                "slot_duration": 60,
                "business_hours": {"monday": [{"open": "09:00", "close": "12:00"}]},
            },
            agents={"agent-2": {"slot_duration": 30}},
            holidays=[{"date": "2024-01-01", "name": "Año Nuevo", "recurring": True}],
        )
        provider = ConfiguredScheduleProvider(config)

        monday = provider.resolve("agent-1", pendulum.date(2024, 1, 15))
        new_year = provider.resolve("agent-1", pendulum.date(2029, 1, 1))

        assert len(monday.windows) == 1 and not monday.is_override
        assert new_year.is_override and new_year.notes == "Año Nuevo"
        assert provider.get_business_hours("agent-2").slot_duration == 30
        assert provider.get_business_hours("agent-1") is provider.get_business_hours("agent-1")
