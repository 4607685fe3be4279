"""
Tests for the command-line interface.
"""

import json

from typer.testing import CliRunner

from bookingslots.cli.app import app

runner = CliRunner()

CONFIG_YAML = """
mock_data_file: appointments.json
schedule:
  slot_duration: 60
  buffer_time: 15
  business_hours:
    monday: [{open: "09:00", close: "12:00"}]
holidays:
  - {date: 2024-01-22, name: Cierre por inventario, type: blocked}
"""

ROWS = [
    {
        "id": "1",
        "agent_id": "00000000-0000-0000-0000-000000000001",
        "appointment_date": "2024-01-15",
        "appointment_time": "09:00:00",
        "status": "confirmed",
    }
]


def _config(tmp_path):
    (tmp_path / "appointments.json").write_text(json.dumps(ROWS), encoding="utf-8")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(CONFIG_YAML, encoding="utf-8")
    return str(config_path)


def test_available_json(tmp_path):
    """The --json output matches the API payload."""
    result = runner.invoke(
        app,
        ["available", "--start", "2024-01-15", "--end", "2024-01-22", "--json", "-c", _config(tmp_path)],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert len(payload) == 8
    assert payload[0]["slots"][0] == {
        "time": "09:00:00", "capacity": 1, "booked": 1, "available": False,
    }
    assert payload[-1]["slots"] == []
    assert payload[-1]["metadata"] == {"notes": "Cierre por inventario", "specialHours": True}


def test_available_table(tmp_path):
    """The table output lists the open slot count."""
    result = runner.invoke(
        app,
        ["available", "--start", "2024-01-15", "--end", "2024-01-15", "-c", _config(tmp_path)],
    )

    assert result.exit_code == 0, result.output
    assert "2 open slot(s) in 1 day(s)" in result.output


def test_available_reversed_range_fails(tmp_path):
    """A reversed range exits with an error."""
    result = runner.invoke(
        app,
        ["available", "--start", "2024-01-16", "--end", "2024-01-15", "-c", _config(tmp_path)],
    )

    assert result.exit_code == 1
    assert "before start date" in result.output


def test_check_reports_buffer_conflict(tmp_path):
    """check exits with 2 when the slot cannot be booked."""
    result = runner.invoke(app, ["check", "2024-01-15", "10:00", "-c", _config(tmp_path)])

    assert result.exit_code == 2
    assert "buffer_conflict" in result.output


def test_book_appointment(tmp_path):
    """book records a pending appointment."""
    result = runner.invoke(
        app,
        [
            "book", "2024-01-15", "11:00",
            "--name", "Ana López", "--email", "ana@example.com",
            "-c", _config(tmp_path),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Appointment booked" in result.output
    assert "pending" in result.output


def test_book_full_slot_fails(tmp_path):
    """book exits with 2 when the slot is taken."""
    result = runner.invoke(
        app,
        [
            "book", "2024-01-15", "09:00",
            "--name", "Ana", "--email", "ana@example.com",
            "-c", _config(tmp_path),
        ],
    )

    assert result.exit_code == 2
    assert "full" in result.output


def test_schedule_lists_weekdays(tmp_path):
    """schedule shows the weekly hours and overrides."""
    result = runner.invoke(app, ["schedule", "-c", _config(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "09:00 - 12:00" in result.output
    assert "Cierre por inventario" in result.output


def test_missing_config_fails(tmp_path):
    """A missing config file exits with an error."""
    result = runner.invoke(app, ["schedule", "-c", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_serve_runs_api_app(tmp_path, monkeypatch):
    """serve hands the appointments API app to uvicorn."""
    calls = []
    monkeypatch.setattr(
        "bookingslots.cli.app.uvicorn.run",
        lambda api, host, port: calls.append((api, host, port)),
    )

    result = runner.invoke(app, ["serve", "--port", "9000", "-c", _config(tmp_path)])

    assert result.exit_code == 0, result.output
    api, host, port = calls[0]
    assert (host, port) == ("127.0.0.1", 9000)
    paths = {route.path for route in api.routes}
    assert {"/api/appointments/available", "/api/appointments/check-slot"} <= paths
