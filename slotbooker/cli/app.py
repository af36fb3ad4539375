"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import List, Optional, Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import CredentialError, InputFormatError
from ..domain.models import AvailabilityMode, BookingRequest, Committed, Conflict
from ..domain.timezone_converter import TimeZoneConverter
from ..services.booking_service import BookingService
from ..adapters.client_handle import CalendarClientHandle, build_google_client
from ..adapters.google_authenticator import delete_refresh_token, store_refresh_token
from ..adapters.in_memory_calendar import InMemoryCalendar

app = typer.Typer(
    name="slotbooker",
    help="Check appointment availability and book slots in Google Calendar",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
MockOption = Annotated[bool, typer.Option("--mock", help="Use an in-memory calendar instead of Google.")]
MockDataOption = Annotated[
    Optional[Path],
    typer.Option("--mock-data", help="JSON list of seed events for --mock."),
]
TimezoneOption = Annotated[
    Optional[str],
    typer.Option("--tz", help="IANA timezone. Defaults to the configured one."),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Slot booking against a single Google Calendar.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    try:
        return AppConfig.load_from_yaml(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


_client_handle: Optional[CalendarClientHandle] = None


def _google_calendar(config: AppConfig):
    """
    Return the process-wide Google client, building it on first use.
    """
    global _client_handle
    if _client_handle is None:
        _client_handle = CalendarClientHandle(lambda: build_google_client(config))
    return _client_handle.get()


def _build_service(config: AppConfig, mock: bool, mock_data: Optional[Path]) -> BookingService:
    """
    Wire the booking service to either the in-memory or the Google calendar.
    """
    if mock:
        console.print("[yellow]⚠  MOCK MODE: using an in-memory calendar[/yellow]\n")
        calendar = InMemoryCalendar.from_json(mock_data) if mock_data else InMemoryCalendar()
    else:
        calendar = _google_calendar(config)

    return BookingService(
        calendar=calendar,
        catalog=config.schedule.catalog(),
        duration_minutes=config.duration_minutes,
        default_mode=config.availability_mode,
        creator_tag=config.creator_tag,
        business_name=config.business_name,
        notify_email=config.notify_email,
    )


@app.command()
def slots(config_file: ConfigOption = None):
    """
    Show the configured candidate slots.
    """
    config = _load_config(config_file)
    schedule = config.schedule

    console.print(
        f"\n[bold cyan]{len(schedule.catalog())} slot(s)[/bold cyan] "
        f"from {schedule.first_slot} to {schedule.last_slot}, "
        f"every {schedule.step_minutes} min, {schedule.duration_minutes} min each\n"
    )
    console.print("  " + "  ".join(config.candidate_slots()) + "\n")


@app.command()
def availability(
    date: Annotated[str, typer.Argument(help="Day to check (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    tz: TimezoneOption = None,
    mode: Annotated[
        Optional[AvailabilityMode],
        typer.Option("--mode", help="Availability policy. Defaults to the configured one."),
    ] = None,
    slot: Annotated[
        Optional[List[str]],
        typer.Option("--slot", "-s", help="Candidate slot (HH:mm). Repeatable. Defaults to the catalogue."),
    ] = None,
    mock: MockOption = False,
    mock_data: MockDataOption = None,
):
    """
    Show which slots of a day are still free.

    Examples:

        slotbooker availability 2024-06-02

        slotbooker availability 2024-06-02 --mode any-event -s 10:00 -s 10:30

        slotbooker availability 2024-06-02 --mock --mock-data events.json
    """
    config = _load_config(config_file)
    timezone = tz or config.timezone

    try:
        service = _build_service(config, mock, mock_data)
    except CredentialError as e:
        console.print(f"[bold red]Credential error:[/bold red] {e}")
        raise typer.Exit(1)

    report = service.check_availability(
        date=date,
        timezone=timezone,
        candidate_slots=slot,
        mode=mode,
    )

    if not report.ok:
        console.print(f"[bold red]{report.error}:[/bold red] {report.detail}")
        raise typer.Exit(1)

    table = Table(
        title=f"{date} ({timezone}, {report.mode.value})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Slot", style="bold")
    table.add_column("Status")

    for hhmm, free in report.availability.items():
        table.add_row(hhmm, "[green]free[/green]" if free else "[red]taken[/red]")

    console.print()
    console.print(table)
    console.print()


@app.command()
def book(
    date: Annotated[str, typer.Argument(help="Day (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Slot start (HH:mm)")],
    first_name: Annotated[str, typer.Option("--first-name", prompt=True)],
    last_name: Annotated[str, typer.Option("--last-name", prompt=True)],
    email: Annotated[str, typer.Option("--email", prompt=True)],
    phone: Annotated[str, typer.Option("--phone")] = "",
    address: Annotated[str, typer.Option("--address")] = "",
    note: Annotated[str, typer.Option("--note")] = "",
    config_file: ConfigOption = None,
    tz: TimezoneOption = None,
    mock: MockOption = False,
    mock_data: MockDataOption = None,
):
    """
    Book a slot after re-checking that it is still free.
    """
    config = _load_config(config_file)

    request = BookingRequest(
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=phone,
        address=address,
        note=note,
        date=date,
        time=time,
        timezone=tz or config.timezone,
    )

    try:
        service = _build_service(config, mock, mock_data)
    except CredentialError as e:
        console.print(f"[bold red]Credential error:[/bold red] {e}")
        raise typer.Exit(1)

    outcome = service.book(request)

    if isinstance(outcome, Committed):
        console.print(Panel.fit(
            f"[bold green]✓ Booked {outcome.slot_key}[/bold green]\n\n"
            f"[bold]Event:[/bold] {outcome.event_id}\n"
            f"[bold]Link:[/bold] {outcome.link or 'N/A'}",
            title="✓ Booking"
        ))
        return

    if isinstance(outcome, Conflict):
        console.print(f"[yellow]{outcome.reason}:[/yellow] {outcome.message}")
        raise typer.Exit(2)

    console.print(f"[bold red]{outcome.error}:[/bold red] {outcome.detail}")
    raise typer.Exit(1)


@app.command()
def convert(
    date: Annotated[str, typer.Argument(help="Day (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Wall-clock time (HH:mm)")],
    config_file: ConfigOption = None,
    tz: TimezoneOption = None,
):
    """
    Show the UTC instant of a local wall time and the UTC window of its day.
    """
    timezone = tz or _load_config(config_file).timezone
    converter = TimeZoneConverter()

    try:
        instant = converter.local_to_utc(date, time, timezone)
        day_start, day_end = converter.day_bounds(date, timezone)
    except InputFormatError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"\n[bold]{date} {time}[/bold] in {timezone}")
    console.print(f"  UTC instant: {instant.to_iso8601_string()}")
    console.print(f"  Day window:  {day_start.to_iso8601_string()} - {day_end.to_iso8601_string()}\n")


@app.command()
def test_auth(config_file: ConfigOption = None):
    """
    Test Google Calendar authentication by refreshing an access token.
    """
    config = _load_config(config_file)

    try:
        client = _google_calendar(config)
        client.credentials.get_access_token(force_refresh=True)
    except CredentialError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}\n")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold green]✓ Authentication successful![/bold green]\n\n"
        f"[bold]Calendar:[/bold] {config.calendar_id}",
        title="✓ Connection test"
    ))


@app.command()
def store_token(
    refresh_token: Annotated[str, typer.Option("--refresh-token", prompt=True, hide_input=True)],
    config_file: ConfigOption = None,
):
    """
    Save the Google refresh token in the system keyring.
    """
    config = _load_config(config_file)
    if config.google is None:
        console.print("[bold red]Error:[/bold red] No 'google' section in the configuration")
        raise typer.Exit(1)

    try:
        store_refresh_token(config.google.client_id, refresh_token)
    except CredentialError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    console.print("\n[green]✓ Refresh token stored in keyring.[/green]\n")


@app.command()
def clear_token(config_file: ConfigOption = None):
    """
    Remove the stored Google refresh token from the system keyring.
    """
    config = _load_config(config_file)
    if config.google is None:
        console.print("[bold red]Error:[/bold red] No 'google' section in the configuration")
        raise typer.Exit(1)

    delete_refresh_token(config.google.client_id)
    console.print("\n[green]✓ Refresh token removed.[/green]\n")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbooker[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
