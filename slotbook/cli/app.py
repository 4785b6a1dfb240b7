"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.booking_store import InMemoryBookingStore
from ..adapters.json_directory import JsonBusinessDirectory
from ..config import AppConfig, load_config
from ..domain.availability import is_bookable_date
from ..domain.exceptions import SchedulingError
from ..domain.slot_generator import SlotGenerator
from ..domain.timeutils import format_local_date
from ..services.booking_service import BookingService

app = typer.Typer(
    name="slotbook",
    help="List bookable appointment slots and book them",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
DataOption = Annotated[Optional[Path], typer.Option("--data", help="JSON data file with businesses and appointments")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _build(config_file: Optional[Path], data_file: Optional[Path]):
    """Load config and wire directory, store and service together."""
    config = load_config(config_file)
    directory = JsonBusinessDirectory(data_file or config.data_file)
    store = InMemoryBookingStore(directory.appointments, timezone=config.timezone)
    generator = SlotGenerator(
        step_minutes=config.step_minutes,
        timezone=config.timezone,
        fallback_windows=[config.fallback_window.to_window()],
    )
    return config, directory, BookingService(directory, store, generator)


def _parse_day(config: AppConfig, value: Optional[str]):
    tz = config.timezone or pendulum.local_timezone()
    if not value:
        return pendulum.today(tz).date()
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        console.print(f"[red]Could not parse date '{value}': {e}[/red]")
        raise typer.Exit(1)


def _parse_now(config: AppConfig, value: Optional[str]):
    if not value:
        return None
    tz = config.timezone or pendulum.local_timezone()
    try:
        return pendulum.parse(value, tz=tz)
    except ValueError as e:
        console.print(f"[red]Could not parse time '{value}': {e}[/red]")
        raise typer.Exit(1)


@app.command()
def businesses(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    List all known businesses.
    """
    _configure_logging(verbose)
    try:
        _, directory, _ = _build(config_file, data_file)

        table = Table(title="Businesses", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="bold yellow")
        table.add_column("Name")
        table.add_column("Phone", style="dim")
        table.add_column("Availability", style="dim")

        for business in asyncio.run(directory.list_businesses()):
            configured = "custom" if business.availability else "default hours"
            table.add_row(business.id, business.name, business.phone, configured)

        console.print()
        console.print(table)
        console.print()

    except (SchedulingError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def services(
    business_id: Annotated[str, typer.Argument(help="Business ID")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Show the service catalog of a business.
    """
    _configure_logging(verbose)
    try:
        _, directory, _ = _build(config_file, data_file)
        business = asyncio.run(directory.get_business(business_id))
        if business is None:
            console.print(f"[bold red]Error:[/bold red] Unknown business: '{business_id}'")
            raise typer.Exit(1)

        table = Table(title=business.name, show_header=True, header_style="bold cyan")
        table.add_column("Service", style="bold yellow")
        table.add_column("Price", justify="right")
        table.add_column("Duration", justify="right", style="dim")

        for service in business.services:
            table.add_row(service.name, service.display_price(), f"{service.duration_minutes} min")

        console.print()
        console.print(table)
        console.print()

    except (SchedulingError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def slots(
    business_id: Annotated[str, typer.Argument(help="Business ID")],
    service_name: Annotated[str, typer.Argument(help="Service name as listed by 'services'")],
    day: Annotated[Optional[str], typer.Option("--date", "-d", help="Date (YYYY-MM-DD). Defaults to today.")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Override the current time (YYYY-MM-DD HH:mm)")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Show bookable start times for a service on a date.

    Examples:

        slotbook slots fade-factory Haircut --date 2026-10-20

        slotbook slots fade-factory "Haircut & Beard" --now "2026-10-20 14:32"
    """
    _configure_logging(verbose)
    try:
        config, directory, service = _build(config_file, data_file)
        target = _parse_day(config, day)
        current = _parse_now(config, now)

        business = asyncio.run(directory.get_business(business_id))
        if business is not None and not is_bookable_date(business.availability, target):
            console.print(f"[yellow]⚠ {business.name} is closed on {format_local_date(target)}.[/yellow]")
            return

        found = asyncio.run(
            service.available_slots(
                business_id=business_id,
                service_name=service_name,
                day=target,
                now=current,
            )
        )

        console.print()
        if not found:
            console.print(
                f"[yellow]⚠ No open slots on {format_local_date(target)}.[/yellow]\n"
                "Try another date or a shorter service."
            )
        else:
            console.print(
                f"[bold green]✓ {len(found)} slot(s) for {service_name} on {format_local_date(target)}:[/bold green]\n"
            )
            console.print("  " + "  ".join(found))
        console.print()

    except (SchedulingError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def book(
    business_id: Annotated[str, typer.Argument(help="Business ID")],
    service_name: Annotated[str, typer.Argument(help="Service name")],
    time: Annotated[str, typer.Argument(help="Start time, e.g. '9:45 AM' or '14:30'")],
    day: Annotated[Optional[str], typer.Option("--date", "-d", help="Date (YYYY-MM-DD). Defaults to today.")] = None,
    customer: Annotated[Optional[str], typer.Option("--customer", help="Customer account ID")] = None,
    guest_name: Annotated[Optional[str], typer.Option("--guest-name", help="Walk-in guest name")] = None,
    guest_phone: Annotated[Optional[str], typer.Option("--guest-phone", help="Walk-in guest phone")] = None,
    guest_email: Annotated[Optional[str], typer.Option("--guest-email", help="Walk-in guest email")] = None,
    note: Annotated[Optional[str], typer.Option("--note", help="Note for the business")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Override the current time (YYYY-MM-DD HH:mm)")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Book an appointment (a dry run against the loaded data).
    """
    _configure_logging(verbose)
    try:
        config, _, service = _build(config_file, data_file)
        target = _parse_day(config, day)

        appointment = asyncio.run(
            service.book(
                business_id=business_id,
                service_name=service_name,
                day=target,
                time=time,
                now=_parse_now(config, now),
                customer_id=customer,
                guest_name=guest_name,
                guest_phone=guest_phone,
                guest_email=guest_email,
                note=note,
            )
        )

        console.print(
            f"\n[green]✓ Booked {appointment.service} on {appointment.date} at {appointment.time} "
            f"({appointment.duration_minutes} min).[/green]"
        )
        console.print(f"  Appointment ID: [dim]{appointment.id}[/dim]\n")

    except (SchedulingError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def cancel(
    appointment_id: Annotated[str, typer.Argument(help="Appointment ID")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Cancel an appointment (a dry run against the loaded data).
    """
    _configure_logging(verbose)
    try:
        _, _, service = _build(config_file, data_file)
        appointment = asyncio.run(service.cancel(appointment_id=appointment_id))

        console.print(
            f"\n[green]✓ Cancelled {appointment.service} on {appointment.date} at {appointment.time}.[/green]\n"
        )

    except (SchedulingError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def appointments(
    business_id: Annotated[Optional[str], typer.Option("--business", "-b", help="List a business's appointments")] = None,
    customer: Annotated[Optional[str], typer.Option("--customer", help="List a customer's appointments")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Override the current time (YYYY-MM-DD HH:mm)")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Show upcoming and past appointments of a business or a customer.
    """
    _configure_logging(verbose)
    if bool(business_id) == bool(customer):
        console.print("[bold red]Error:[/bold red] Pass exactly one of --business or --customer")
        raise typer.Exit(1)

    try:
        config, _, service = _build(config_file, data_file)
        current = _parse_now(config, now)

        if business_id:
            schedule = asyncio.run(service.business_appointments(business_id=business_id, now=current))
        else:
            schedule = asyncio.run(service.customer_appointments(customer_id=customer, now=current))

        console.print()
        for title, items in (("Upcoming", schedule.upcoming), ("Past", schedule.past)):
            table = Table(title=title, show_header=True, header_style="bold cyan")
            table.add_column("ID", style="dim")
            table.add_column("Date", style="bold yellow")
            table.add_column("Time")
            table.add_column("Service")
            table.add_column("Client", style="dim")

            for appointment in items:
                client = appointment.customer_id or appointment.guest_name or ""
                table.add_row(appointment.id, appointment.date, appointment.time, appointment.service, client)

            console.print(table)
        console.print()

    except (SchedulingError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
