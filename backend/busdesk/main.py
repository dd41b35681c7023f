"""
Bus operator console.

Command-line entry point driving the route, schedule and booking workflows
against the booking API, rendered with rich.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from .api.client import BookingApiClient
from .api.config import ApiConfig
from .models.enums import FormKind, ScheduleStatus, Severity, SubmitOutcome
from .models.forms import FieldErrors
from .services.dashboard import DashboardAggregator
from .services.presenter import Presenter
from .services.view_coordinator import ViewCoordinator
from .utils.config import get_config
from .utils.timefmt import format_number

app = typer.Typer(help="Bus route, schedule and seat booking console")
console = Console()

logger = logging.getLogger(__name__)

_SEVERITY_STYLES = {
    Severity.SUCCESS: ("green", "✓"),
    Severity.INFO: ("cyan", "ℹ"),
    Severity.WARNING: ("yellow", "⚠"),
    Severity.ERROR: ("red", "❌"),
}

_STATUS_STYLES = {
    ScheduleStatus.DEPARTED: "dim",
    ScheduleStatus.BOARDING: "bold red",
    ScheduleStatus.TODAY: "yellow",
    ScheduleStatus.UPCOMING: "green",
}


class RichPresenter(Presenter):
    """Presenter printing to the terminal; confirmations via rich prompts."""

    def __init__(self, assume_yes: bool = False):
        self.assume_yes = assume_yes

    async def confirm(self, title: str, body: str, confirm_label: str) -> bool:
        console.print(Panel(f"[bold]{body}[/bold]", title=f"[yellow]{title}[/yellow]", box=box.ROUNDED))
        if self.assume_yes:
            console.print(f"[dim]{confirm_label} (--yes)[/dim]")
            return True
        return await asyncio.to_thread(Confirm.ask, confirm_label, default=False)

    async def notify(self, severity: Severity, title: str, message: str) -> None:
        color, icon = _SEVERITY_STYLES[severity]
        console.print(f"{icon} [bold {color}]{title}[/bold {color}] {message}")

    def scroll_into_view(self, target: FormKind, field: Optional[str] = None) -> None:
        if field:
            console.print(f"[dim]→ {target.value}.{field}[/dim]")


def _setup_logging() -> None:
    config = get_config()
    logging.basicConfig(
        level=logging.DEBUG if config.debug else getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _run(work: Callable[[ViewCoordinator], Awaitable[SubmitOutcome]], bus_id: Optional[int] = None,
         assume_yes: bool = False) -> None:
    """Run one workflow against a freshly loaded view and exit non-zero unless it succeeded."""
    _setup_logging()

    async def runner() -> SubmitOutcome:
        async with BookingApiClient(ApiConfig.from_console_config(get_config())) as api:
            view = ViewCoordinator(api, RichPresenter(assume_yes=assume_yes), bus_id)
            try:
                if bus_id is not None:
                    await view.load()
                return await work(view)
            finally:
                view.close()

    outcome = asyncio.run(runner())
    if outcome is not SubmitOutcome.SUCCESS:
        raise typer.Exit(code=1)


def _print_errors(errors: FieldErrors) -> None:
    for field, message in errors.items():
        console.print(f"   [red]{field}[/red]: {message}")


def _print_routes(view: ViewCoordinator) -> None:
    table = Table(title="🚌 Routes", box=box.ROUNDED)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Route", style="bold")
    table.add_column("Distance (km)", justify="right")
    table.add_column("Base fare", justify="right")
    table.add_column("Duration (min)", justify="right")
    table.add_column("Departs")
    table.add_column("Active")
    for route in view.routes.routes:
        table.add_row(
            str(route.id),
            route.label,
            format_number(route.distance),
            format_number(route.base_fare),
            str(route.estimated_duration),
            route.departure_time or "-",
            "[green]yes[/green]" if route.active else "[dim]no[/dim]",
        )
    console.print(table)


@app.command()
def bus(bus_id: int = typer.Argument(..., help="Bus ID")):
    """Show a bus and its routes."""

    async def work(view: ViewCoordinator) -> SubmitOutcome:
        if view.bus is None:
            return SubmitOutcome.FAILED
        console.print(Panel.fit(
            f"[bold cyan]{view.bus.display_name}[/bold cyan]\n"
            f"Type: {view.bus.bus_type or '-'} | Seats: {view.bus.total_seats or len(view.bus.seats)}",
            box=box.DOUBLE,
        ))
        _print_routes(view)
        return SubmitOutcome.SUCCESS

    _run(work, bus_id)


@app.command()
def schedules(
    bus_id: int = typer.Argument(..., help="Bus ID"),
    route_id: int = typer.Argument(..., help="Route ID"),
):
    """List the schedules of one route."""

    async def work(view: ViewCoordinator) -> SubmitOutcome:
        route = view.routes.find_route(route_id)
        if route is None:
            console.print(f"[red]❌ Route {route_id} not found on bus {bus_id}[/red]")
            return SubmitOutcome.INVALID

        items = await view.schedules.list_schedules_for_route(route_id)
        table = Table(title=f"🕒 Schedules: {route.label}", box=box.ROUNDED)
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Departure")
        table.add_column("Arrival")
        table.add_column("Price", justify="right")
        table.add_column("Seats", justify="right")
        table.add_column("Status")
        for schedule in items:
            status = schedule.status()
            style = _STATUS_STYLES[status]
            table.add_row(
                str(schedule.id),
                schedule.departure_time.strftime("%Y-%m-%d %H:%M"),
                schedule.arrival_time.strftime("%Y-%m-%d %H:%M"),
                format_number(schedule.price),
                "-" if schedule.available_seats is None else str(schedule.available_seats),
                f"[{style}]{status.value}[/{style}]",
            )
        console.print(table)
        return SubmitOutcome.SUCCESS

    _run(work, bus_id)


@app.command("add-route")
def add_route(
    bus_id: int = typer.Argument(..., help="Bus ID"),
    source: str = typer.Option(..., "--source", help="Origin"),
    destination: str = typer.Option(..., "--destination", help="Destination"),
    distance: str = typer.Option(..., "--distance", help="Distance in km"),
    base_fare: str = typer.Option(..., "--base-fare", help="Base fare"),
    duration: str = typer.Option(..., "--duration", help="Estimated duration in minutes"),
    custom_fare: str = typer.Option("", "--custom-fare", help="Optional custom fare"),
    departure_time: str = typer.Option("", "--departure-time", help="Optional daily departure (HH:MM)"),
):
    """Create a route on a bus."""

    async def work(view: ViewCoordinator) -> SubmitOutcome:
        manager = view.routes
        manager.start_create()
        for field, value in (
            ("source", source), ("destination", destination), ("distance", distance),
            ("base_fare", base_fare), ("estimated_duration", duration),
            ("custom_fare", custom_fare), ("departure_time", departure_time),
        ):
            manager.update_field(field, value)

        outcome = await manager.submit()
        if outcome is SubmitOutcome.INVALID:
            _print_errors(manager.errors)
        else:
            _print_routes(view)
        return outcome

    _run(work, bus_id)


@app.command("add-schedule")
def add_schedule(
    bus_id: int = typer.Argument(..., help="Bus ID"),
    route_id: int = typer.Argument(..., help="Route ID"),
    departure: str = typer.Option(..., "--departure", help="Departure (YYYY-MM-DDTHH:MM)"),
    arrival: Optional[str] = typer.Option(None, "--arrival", help="Arrival; derived from the route when omitted"),
    price: Optional[str] = typer.Option(None, "--price", help="Price; the route's base fare when omitted"),
):
    """Create a schedule on a route."""

    async def work(view: ViewCoordinator) -> SubmitOutcome:
        manager = view.schedules
        manager.start_create(route_id)
        manager.update_field("departure_time", departure)
        if arrival is not None:
            manager.update_field("arrival_time", arrival)
        if price is not None:
            manager.update_field("price", price)

        console.print(f"[dim]Arrival: {manager.form.arrival_time or '-'} | Price: {manager.form.price or '-'}[/dim]")
        outcome = await manager.submit()
        if outcome is SubmitOutcome.INVALID:
            _print_errors(manager.errors)
        return outcome

    _run(work, bus_id)


@app.command("delete-route")
def delete_route(
    bus_id: int = typer.Argument(..., help="Bus ID"),
    route_id: int = typer.Argument(..., help="Route ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Confirm without prompting"),
):
    """Delete a route after confirmation."""

    async def work(view: ViewCoordinator) -> SubmitOutcome:
        route = view.routes.find_route(route_id)
        if route is None:
            console.print(f"[red]❌ Route {route_id} not found on bus {bus_id}[/red]")
            return SubmitOutcome.INVALID
        return await view.routes.delete_route(route)

    _run(work, bus_id, assume_yes=yes)


@app.command()
def generate(
    bus_id: int = typer.Argument(..., help="Bus ID"),
    start_date: str = typer.Option(..., "--start-date", help="First day (YYYY-MM-DD)"),
    days: str = typer.Option("1", "--days", help="Number of days"),
):
    """Generate schedules for every route of a bus."""

    async def work(view: ViewCoordinator) -> SubmitOutcome:
        outcome = await view.schedules.generate_schedules(bus_id, start_date, days)
        if outcome is SubmitOutcome.INVALID:
            _print_errors(view.schedules.generate_errors)
        return outcome

    _run(work, bus_id)


@app.command()
def book(
    bus_id: int = typer.Argument(..., help="Bus ID"),
    route_id: int = typer.Argument(..., help="Route ID"),
    schedule_id: int = typer.Argument(..., help="Schedule ID"),
    seats: List[str] = typer.Option(..., "--seat", "-s", help="Seat label or number (repeatable)"),
    cid: str = typer.Option(..., "--cid", help="Citizen ID"),
    mobile_no: str = typer.Option(..., "--mobile", help="Mobile number"),
    email: str = typer.Option(..., "--email", help="Email address"),
):
    """Book one or more seats on a schedule."""

    async def work(view: ViewCoordinator) -> SubmitOutcome:
        items = await view.schedules.list_schedules_for_route(route_id)
        schedule = next((item for item in items if item.id == schedule_id), None)
        if schedule is None:
            console.print(f"[red]❌ Schedule {schedule_id} not found on route {route_id}[/red]")
            return SubmitOutcome.INVALID

        workflow = view.booking
        inventory = await workflow.open_booking(schedule)
        for wanted in seats:
            seat = next((s for s in inventory if wanted in (s.label, str(s.seat_number))), None)
            if seat is None:
                console.print(f"[yellow]⚠ Seat {wanted} does not exist on this bus[/yellow]")
            elif seat.id in workflow.selected:
                # Repeated seat, by label or by number
                continue
            elif not workflow.toggle_seat(seat):
                console.print(f"[yellow]⚠ Seat {wanted} is already booked[/yellow]")

        workflow.update_field("cid", cid)
        workflow.update_field("mobile_no", mobile_no)
        workflow.update_field("email", email)

        outcome = await workflow.submit_booking()
        if outcome is SubmitOutcome.INVALID:
            _print_errors(workflow.errors)
        return outcome

    _run(work, bus_id)


@app.command()
def dashboard(user_id: Optional[str] = typer.Option(None, "--user-id", help="Restrict bus bookings to one user")):
    """Show booking totals across services."""

    async def work(view: ViewCoordinator) -> SubmitOutcome:
        stats = await DashboardAggregator(view.api).collect(user_id)

        table = Table(title="📊 Dashboard", box=box.ROUNDED, show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right", style="bold")
        table.add_row("Total bookings", str(stats.total_bookings))
        table.add_row("Revenue", f"{stats.revenue:,.2f}")
        table.add_row("Active services", str(stats.active_services))
        table.add_row("Buses", str(stats.total_buses))
        table.add_row("Hotels", str(stats.total_hotels))
        console.print(table)

        if stats.failed_sources:
            console.print(f"[yellow]⚠ Unavailable: {', '.join(stats.failed_sources)}[/yellow]")
        return SubmitOutcome.SUCCESS

    _run(work)


if __name__ == "__main__":
    app()
