"""
Main CLI application using Typer.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Annotated

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..config import MIN_MEETING_MINUTES, AppConfig, get_default_config_path
from ..domain.availability import AvailabilityFinder
from ..domain.exceptions import SyllacalError
from ..domain.models import CandidateSlot, MeetingRequest, SearchWindow, TimeWindowPreference
from ..domain.syllabus import load_syllabus_events
from ..adapters.google_authenticator import GoogleAuthenticator
from ..adapters.google_calendar_client import GoogleCalendarClient
from ..adapters.mock_calendar_client import MockCalendarClient
from ..services.meeting_scheduler import MeetingSchedulerService
from ..services.syllabus_sync import SyllabusSyncService

app = typer.Typer(
    name="syllacal",
    help="Sync syllabus events to Google Calendar and find shared meeting slots",
    add_completion=False
)

console = Console()
err_console = Console(stderr=True)

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use bundled mock calendar data and skip authentication.")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]


def _load_config(config_file: Optional[Path], verbose: bool = False) -> AppConfig:
    """Load configuration and set up logging."""
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)

    logging.basicConfig(
        level="DEBUG" if verbose else config.log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=False)],
        force=True,
    )
    return config


def _build_calendar_client(config: AppConfig, mock: bool):
    """Create the mock client or an authenticated Google client."""
    if mock:
        err_console.print("[yellow]MOCK MODE: using bundled calendar data[/yellow]")
        return MockCalendarClient(config=config)

    authenticator = GoogleAuthenticator(
        client_id=config.google.client_id,
        client_secret=config.google.client_secret,
    )
    authenticator.get_credentials()
    if authenticator.insecure_storage_warning:
        err_console.print(f"[yellow]{authenticator.insecure_storage_warning}[/yellow]")

    return GoogleCalendarClient(authenticator=authenticator)


def _parse_date(value: str, tz: str, label: str):
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz)
    except ValueError as e:
        raise ValueError(f"Could not parse {label} '{value}': {e}") from e


def _determine_window(
    *,
    tz: str,
    days: int,
    next_week: bool,
    start_option: Optional[str],
    end_option: Optional[str],
    now: Optional[pendulum.DateTime] = None,
) -> SearchWindow:
    """
    Resolve the search window from the shortcut flag or explicit dates.
    Without options the window runs from the next full hour for ``days`` days.
    """
    now = now or pendulum.now(tz)

    if next_week:
        if start_option or end_option:
            raise ValueError("--next-week cannot be combined with --start or --end.")
        next_monday = now.next(pendulum.MONDAY).start_of("day")
        return SearchWindow(start=next_monday, end=next_monday.add(days=4).end_of("day"))

    if start_option:
        start_date = _parse_date(start_option, tz, "start date").start_of("day")
    else:
        start_date = now.start_of("hour")
        if start_date < now:
            start_date = start_date.add(hours=1)

    if end_option:
        end_date = _parse_date(end_option, tz, "end date").end_of("day")
    else:
        end_date = start_date.add(days=days)

    if end_date <= start_date:
        raise ValueError("The end of the search window must be after its start.")

    return SearchWindow(start=start_date, end=end_date)


def _build_request(
    config: AppConfig,
    *,
    title: str,
    duration: Optional[int],
    window: Optional[str],
    description: str = "",
    message: str = "",
    notify: bool = True,
) -> MeetingRequest:
    duration_minutes = duration if duration is not None else config.defaults.duration_minutes
    if duration_minutes < MIN_MEETING_MINUTES:
        raise ValueError(f"Meeting duration must be at least {MIN_MEETING_MINUTES} minutes")

    preference = TimeWindowPreference.parse(window) if window else config.defaults.time_window

    return MeetingRequest(
        title=title,
        duration_minutes=duration_minutes,
        preference=preference,
        description=description,
        invitation_message=message,
        send_notifications=notify,
    )


def _print_slots(slots: List[CandidateSlot]) -> None:
    table = Table(title="Proposed Slots", show_header=True, header_style="bold cyan")
    table.add_column("#", style="bold yellow")
    table.add_column("Slot")

    for index, slot in enumerate(slots, 1):
        table.add_row(str(index), slot.format_display())

    console.print(table)


@app.command()
def find(
    attendee: Annotated[str, typer.Argument(help="Attendee email or configured colleague name.")],
    config_file: ConfigOption = None,
    organizer: Annotated[Optional[str], typer.Option("--organizer", help="Organizer calendar. Defaults to your primary calendar.")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Meeting duration in minutes")] = None,
    window: Annotated[Optional[str], typer.Option("--window", "-w", help="Time window: morning, afternoon, evening or any")] = None,
    days: Annotated[Optional[int], typer.Option("--days", help="Search this many days ahead")] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (YYYY-MM-DD)")] = None,
    next_week: Annotated[bool, typer.Option("--next-week", help="Search next Monday to Friday.")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print slots as JSON.")] = False,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Propose up to three meeting slots on different weekdays.

    Examples:

        syllacal find alex@example.com

        syllacal find alex --duration 60 --window afternoon

        syllacal find alex --start 2026-10-19 --end 2026-10-23 --mock
    """
    try:
        config = _load_config(config_file, verbose)
        tz = config.timezone

        attendee_email = config.resolve_participant(attendee)
        organizer_email = config.resolve_participant(organizer) if organizer else None
        request = _build_request(config, title="Meeting", duration=duration, window=window)
        search_window = _determine_window(
            tz=tz,
            days=days or config.defaults.search_days,
            next_week=next_week,
            start_option=start,
            end_option=end,
        )

        client = _build_calendar_client(config, mock)
        service = MeetingSchedulerService(calendar_client=client, finder=AvailabilityFinder(timezone=tz))

        slots = service.find_slots(
            attendee=attendee_email,
            request=request,
            window=search_window,
            organizer=organizer_email,
        )

        if as_json:
            console.print_json(json.dumps([slot.to_dict() for slot in slots]))
            return

        console.print(f"[bold cyan]Attendee:[/bold cyan] {attendee_email}")
        console.print(f"[bold cyan]Window:[/bold cyan] {search_window}")
        console.print(
            f"[bold cyan]Duration:[/bold cyan] {request.duration_minutes} min, "
            f"{request.preference.value}\n"
        )

        if not slots:
            console.print(
                "[yellow]No availability in range.[/yellow]\n"
                "Try a wider search window or a shorter meeting."
            )
            return

        _print_slots(slots)

    except (FileNotFoundError, ValueError, SyllacalError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def book(
    attendee: Annotated[str, typer.Argument(help="Attendee email or configured colleague name.")],
    slot: Annotated[int, typer.Option("--slot", "-s", help="Number of the proposed slot to book (1-3).")],
    title: Annotated[str, typer.Option("--title", "-t", help="Meeting title")],
    config_file: ConfigOption = None,
    organizer: Annotated[Optional[str], typer.Option("--organizer", help="Organizer calendar. Defaults to your primary calendar.")] = None,
    message: Annotated[str, typer.Option("--message", "-m", help="Invitation message for the attendee.")] = "",
    description: Annotated[str, typer.Option("--description", help="Meeting notes, used when no message is given.")] = "",
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Meeting duration in minutes")] = None,
    window: Annotated[Optional[str], typer.Option("--window", "-w", help="Time window: morning, afternoon, evening or any")] = None,
    days: Annotated[Optional[int], typer.Option("--days", help="Search this many days ahead")] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (YYYY-MM-DD)")] = None,
    next_week: Annotated[bool, typer.Option("--next-week", help="Search next Monday to Friday.")] = False,
    notify: Annotated[bool, typer.Option("--notify/--no-notify", help="Email the invitation to the attendee.")] = True,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Book one of the proposed slots and invite the attendee.

    Run with the same search options as `find` to book the slot it listed.
    """
    try:
        config = _load_config(config_file, verbose)
        tz = config.timezone

        attendee_email = config.resolve_participant(attendee)
        organizer_email = config.resolve_participant(organizer) if organizer else None
        request = _build_request(
            config,
            title=title,
            duration=duration,
            window=window,
            description=description,
            message=message,
            notify=notify,
        )
        search_window = _determine_window(
            tz=tz,
            days=days or config.defaults.search_days,
            next_week=next_week,
            start_option=start,
            end_option=end,
        )

        client = _build_calendar_client(config, mock)
        service = MeetingSchedulerService(calendar_client=client, finder=AvailabilityFinder(timezone=tz))

        slots = service.find_slots(
            attendee=attendee_email,
            request=request,
            window=search_window,
            organizer=organizer_email,
        )
        if not 1 <= slot <= len(slots):
            raise ValueError(f"Slot {slot} is not available; {len(slots)} slot(s) were proposed.")

        chosen = slots[slot - 1]
        event_id = service.book_meeting(attendee=attendee_email, slot=chosen, request=request)

        console.print(Panel.fit(
            f"[bold green]Meeting booked![/bold green]\n\n"
            f"[bold]Title:[/bold] {request.title}\n"
            f"[bold]When:[/bold] {chosen.format_display()}\n"
            f"[bold]Attendee:[/bold] {attendee_email}\n"
            f"[bold]Event ID:[/bold] {event_id}",
            title="Booking"
        ))

    except (FileNotFoundError, ValueError, SyllacalError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def sync(
    syllabus_file: Annotated[Path, typer.Argument(help="JSON file with extracted syllabus events.")],
    config_file: ConfigOption = None,
    calendar_id: Annotated[str, typer.Option("--calendar", help="Target calendar ID")] = "primary",
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Write confirmed syllabus events into the calendar.
    """
    try:
        config = _load_config(config_file, verbose)
        events = load_syllabus_events(syllabus_file)

        if not events:
            console.print("[yellow]No events in the syllabus file.[/yellow]")
            return

        client = _build_calendar_client(config, mock)
        service = SyllabusSyncService(calendar_client=client, timezone=config.timezone)
        result = service.sync(events, calendar_id=calendar_id)

        console.print(f"[green]Synced {len(result.synced)} of {len(events)} event(s).[/green]")

        if not result.success:
            console.print(
                f"[bold red]Error:[/bold red] stopped at event '{result.failed_event_id}': {escape(result.error or '')}"
            )
            raise typer.Exit(1)

    except (FileNotFoundError, ValueError, SyllacalError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def stress(
    config_file: ConfigOption = None,
    days: Annotated[Optional[int], typer.Option("--days", help="Number of days to analyse (1-365)")] = None,
    mark: Annotated[bool, typer.Option("--mark", help="Add a reminder event to each high-stress day.")] = False,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Flag overloaded days in the upcoming period.
    """
    try:
        config = _load_config(config_file, verbose)
        client = _build_calendar_client(config, mock)

        service = SyllabusSyncService(
            calendar_client=client,
            timezone=config.timezone,
            high_stress_day_threshold=config.stress.high_stress_day_threshold,
            high_stress_average=config.stress.high_stress_average,
        )
        report = service.analyze(
            now=pendulum.now(config.timezone),
            total_days=days or config.stress.total_days,
            create_markers=mark,
        )

        console.print(
            f"Average events per day over {report.total_days} day(s): "
            f"[bold]{report.average_events_per_day:.2f}[/bold]"
        )
        if report.is_high_stress_period:
            console.print("[bold red]This is a high-stress period.[/bold red]")

        if not report.high_stress_days:
            console.print("[green]No high-stress days.[/green]")
            return

        table = Table(title="High-Stress Days", show_header=True, header_style="bold cyan")
        table.add_column("Date", style="bold yellow")
        table.add_column("Events")
        table.add_column("Marker", style="dim")
        for day in report.high_stress_days:
            table.add_row(day.date, str(day.event_count), day.calendar_event_id or "")
        console.print(table)

    except (FileNotFoundError, ValueError, SyllacalError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def list_colleagues(config_file: ConfigOption = None):
    """
    List all configured colleagues.
    """
    try:
        config = _load_config(config_file)

        if not config.colleagues:
            console.print("[yellow]No colleagues defined in the config file.[/yellow]")
            return

        table = Table(
            title="Configured Colleagues",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Name (Alias)", style="bold yellow")
        table.add_column("Email", style="dim")

        for colleague in config.colleagues:
            table.add_row(colleague.name, colleague.email)

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def test_auth(
    config_file: ConfigOption = None,
    force: Annotated[bool, typer.Option("--force", help="Force re-authentication")] = False,
):
    """
    Test Google Calendar authentication.
    """
    try:
        config = _load_config(config_file)

        authenticator = GoogleAuthenticator(
            client_id=config.google.client_id,
            client_secret=config.google.client_secret,
        )
        authenticator.get_credentials(force_refresh=force)

        client = GoogleCalendarClient(authenticator=authenticator)
        calendar = client.test_connection()

        console.print(Panel.fit(
            f"[bold green]Authentication successful![/bold green]\n\n"
            f"[bold]Calendar:[/bold] {calendar.get('summary', 'N/A')}\n"
            f"[bold]Account:[/bold] {calendar.get('id', 'N/A')}\n"
            f"[bold]Time zone:[/bold] {calendar.get('timeZone', 'N/A')}\n"
            f"[bold]Token storage:[/bold] {authenticator.cache_backend}",
            title="Connection Test"
        ))

    except (FileNotFoundError, ValueError, SyllacalError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}\n")
        raise typer.Exit(1)


@app.command()
def clear_cache(config_file: ConfigOption = None):
    """
    Clear the stored Google tokens.
    """
    try:
        config = _load_config(config_file)

        authenticator = GoogleAuthenticator(
            client_id=config.google.client_id,
            client_secret=config.google.client_secret,
        )
        authenticator.clear_cache()
        console.print("\n[green]Token cache cleared.[/green]")
        console.print("You will need to sign in again next time.\n")

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]syllacal[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
