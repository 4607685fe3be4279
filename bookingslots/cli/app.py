"""
Main CLI application using Typer.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Annotated

import pendulum
import typer
import uvicorn
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.configured_schedule import ConfiguredScheduleProvider
from ..adapters.mock_store import MockAppointmentStore
from ..adapters.supabase_store import SupabaseAppointmentStore
from ..api import create_app
from ..config import AppConfig, get_default_config_path
from ..domain.availability_calculator import AvailabilityCalculator
from ..domain.booking_guard import BookingGuard
from ..domain.exceptions import BookingSlotsError, SlotUnavailable
from ..domain.models import AvailableSlot, BookingRequest, Weekday
from ..services.availability_service import AvailabilityService

app = typer.Typer(
    name="bookingslots",
    help="List and book appointment slots for the agency calendar",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
AgentOption = Annotated[
    Optional[str],
    typer.Option("--agent", "-a", help="Agent id. Defaults to the configured default agent."),
]
MockOption = Annotated[
    bool,
    typer.Option("--mock", help="Use the mock appointment file instead of Supabase."),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    bookingslots - appointment availability for the booking form and CRM.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def _build_store(config: AppConfig, mock: bool):
    """Supabase store when configured, the JSON mock store otherwise."""
    if mock or config.supabase is None:
        return MockAppointmentStore(data_file=config.mock_data_file)

    return SupabaseAppointmentStore(
        base_url=config.supabase.url,
        api_key=config.supabase.api_key,
        timeout=config.supabase.timeout,
    )


def _build_service(config: AppConfig, mock: bool) -> AvailabilityService:
    calculator = AvailabilityCalculator(
        capacity=config.defaults.capacity,
        lookahead_days=config.defaults.lookahead_days,
        max_span_days=config.defaults.max_range_days,
    )
    return AvailabilityService(
        store=_build_store(config, mock),
        schedule_provider=ConfiguredScheduleProvider(config),
        calculator=calculator,
        booking_guard=BookingGuard(capacity=config.defaults.capacity),
    )


def _fail(message) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


def _render_day(day: AvailableSlot) -> None:
    title = f"{day.day_of_week.value.capitalize()}, {day.date.isoformat()}"
    if day.metadata is not None:
        notes = day.metadata.notes or "special hours"
        title += f" [magenta]({notes})[/magenta]"

    if not day.slots:
        console.print(f"[bold]{title}[/bold]  [dim]closed[/dim]")
        return

    table = Table(title=title, title_justify="left", show_header=True, header_style="bold cyan")
    table.add_column("Time", style="bold")
    table.add_column("Booked", justify="right")
    table.add_column("Capacity", justify="right")
    table.add_column("Status")

    for slot in day.slots:
        status = "[green]available[/green]" if slot.available else "[red]full[/red]"
        table.add_row(slot.time[:5], str(slot.booked), str(slot.capacity), status)

    console.print(table)


@app.command()
def available(
    start: Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD). Defaults to today.")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (YYYY-MM-DD). Defaults to the look-ahead window.")] = None,
    agent: AgentOption = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print the API JSON payload.")] = False,
):
    """
    List slot availability per date.

    Examples:

        bookingslots available
        bookingslots available --start 2024-01-15 --end 2024-01-19
        bookingslots available --json --mock
    """
    try:
        config = _load_config(config_file)
        service = _build_service(config, mock)
    except (FileNotFoundError, BookingSlotsError) as e:
        _fail(e)

    try:
        days = service.get_availability(
            agent or config.defaults.agent_id,
            start or pendulum.today(config.timezone).to_date_string(),
            end,
        )
    except BookingSlotsError as e:
        _fail(e)

    if as_json:
        typer.echo(json.dumps([day.to_dict() for day in days], ensure_ascii=False))
        return

    console.print()
    for day in days:
        _render_day(day)
    open_slots = sum(day.available_count for day in days)
    console.print(f"\n[bold green]✓ {open_slots} open slot(s) in {len(days)} day(s)[/bold green]\n")


@app.command()
def check(
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Time (HH:MM)")],
    agent: AgentOption = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Check whether an appointment could be booked at DATE TIME.
    """
    try:
        config = _load_config(config_file)
        service = _build_service(config, mock)
        decision = service.check_slot(agent or config.defaults.agent_id, date, time)
    except (FileNotFoundError, BookingSlotsError, ValueError) as e:
        _fail(e)

    details = (
        f"[bold]Booked:[/bold] {decision.booked} / {decision.capacity}\n"
        f"[bold]Reason:[/bold] {decision.reason.value}"
    )
    if decision.conflicts:
        details += f"\n[bold]Conflicts:[/bold] {', '.join(decision.conflicts)}"

    if decision.allowed:
        console.print(Panel.fit(details, title=f"[green]✓ {date} {decision.time} is bookable[/green]"))
    else:
        console.print(Panel.fit(details, title=f"[red]✗ {date} {decision.time} is not bookable[/red]"))
        raise typer.Exit(2)


@app.command()
def book(
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Time (HH:MM)")],
    name: Annotated[str, typer.Option("--name", help="Client name")],
    email: Annotated[str, typer.Option("--email", help="Client email")],
    phone: Annotated[Optional[str], typer.Option("--phone", help="Client phone")] = None,
    property_id: Annotated[Optional[str], typer.Option("--property", help="Related property id")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Notes for the agent")] = None,
    agent: AgentOption = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Book a pending appointment at DATE TIME.
    """
    try:
        config = _load_config(config_file)
        service = _build_service(config, mock)
        request = BookingRequest(
            date=date,
            time=time,
            client_name=name,
            client_email=email,
            client_phone=phone,
            property_id=property_id,
            notes=notes,
        )
        appointment = service.book_appointment(agent or config.defaults.agent_id, request)
    except SlotUnavailable as e:
        console.print(f"[bold red]✗ Slot unavailable:[/bold red] {e.decision.reason.value}")
        raise typer.Exit(2)
    except (FileNotFoundError, BookingSlotsError, ValueError) as e:
        _fail(e)

    console.print(Panel.fit(
        f"[bold]Client:[/bold] {appointment.client_name} <{appointment.client_email}>\n"
        f"[bold]When:[/bold] {appointment.date.isoformat()} {appointment.time[:5]}\n"
        f"[bold]Status:[/bold] {appointment.status.value}",
        title="[green]✓ Appointment booked[/green]"
    ))


@app.command()
def schedule(
    agent: AgentOption = None,
    config_file: ConfigOption = None,
):
    """
    Show the configured business hours and overrides.
    """
    try:
        config = _load_config(config_file)
        business_hours = config.business_hours_for(agent or config.defaults.agent_id)
    except (FileNotFoundError, BookingSlotsError) as e:
        _fail(e)

    table = Table(
        title=f"Business hours ({business_hours.slot_duration} min slots, "
              f"{business_hours.buffer_time} min buffer)",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Day", style="bold yellow")
    table.add_column("Windows")

    for weekday in Weekday:
        windows: List[str] = [str(w) for w in business_hours.windows_for_weekday(weekday)]
        table.add_row(weekday.value, ", ".join(windows) or "[dim]closed[/dim]")

    console.print()
    console.print(table)

    if business_hours.overrides:
        overrides = Table(title="Overrides", show_header=True, header_style="bold cyan")
        overrides.add_column("Date", style="bold yellow")
        overrides.add_column("Windows")
        overrides.add_column("Notes", style="dim")
        for override in sorted(business_hours.overrides, key=lambda o: o.date):
            label = override.date.isoformat()
            if override.recurring:
                label = f"{override.date.format('MM-DD')} (yearly)"
            windows = ", ".join(str(w) for w in override.windows) or "[red]closed[/red]"
            overrides.add_row(label, windows, override.notes)
        console.print(overrides)
    console.print()


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Port to listen on.")] = 8000,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Serve /api/appointments/available and /api/appointments/check-slot.
    """
    try:
        config = _load_config(config_file)
        service = _build_service(config, mock)
    except (FileNotFoundError, BookingSlotsError) as e:
        _fail(e)

    api = create_app(service, default_agent_id=config.defaults.agent_id, timezone=config.timezone)
    console.print(f"[bold cyan]Serving appointments API on http://{host}:{port}[/bold cyan]")
    uvicorn.run(api, host=host, port=port)


@app.command()
def test_connection(
    config_file: ConfigOption = None,
):
    """
    Test the connection to the Supabase appointments table.
    """
    try:
        config = _load_config(config_file)
        if config.supabase is None:
            _fail("No supabase section in the config file.")

        store = _build_store(config, mock=False)
        store.test_connection()
    except (FileNotFoundError, BookingSlotsError) as e:
        _fail(e)

    console.print(Panel.fit(
        f"[bold green]✓ Connected![/bold green]\n\n[bold]URL:[/bold] {config.supabase.url}",
        title="✓ Connection test"
    ))


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]bookingslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
