"""
KDS CLI.

Terminal station display plus a few operator commands.
"""

import asyncio
import sys

import typer
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from sqlalchemy.exc import SQLAlchemyError

from kds_shared.config.constants import DisplayStation, STATION_NAMES, TicketItemStatus
from kds_shared.config.settings import settings
from kds_shared.utils.ticket_display import ticket_status_color, ticket_status_label
from .backoff import PollBackoff
from .client import TicketFeedClient, TransientFeedFailure
from .feed import StationFeed

app = typer.Typer(
    name="kds",
    help="Kitchen Display System CLI",
    add_completion=False,
)
console = Console()

# Display colour tokens -> rich styles
_RICH_STYLES = {
    "blue": "bold blue",
    "yellow": "bold yellow",
    "green": "bold green",
    "orange": "bold dark_orange",
    "gray": "dim",
}


def _status_text(status: str | None) -> Text:
    style = _RICH_STYLES.get(ticket_status_color(status), "dim")
    return Text(ticket_status_label(status), style=style)


def render_feed(feed: StationFeed) -> Group:
    """Lanes of one station as a rich renderable."""
    lanes = feed.lanes()
    columns = [("New", lanes.new), ("In progress", lanes.in_progress), ("Cancelled", lanes.cancelled)]
    if feed.completed_visible:
        columns.append(("Done", lanes.completed))

    table = Table(title=f"{STATION_NAMES[feed.station]} display", expand=True)
    for title, tickets in columns:
        table.add_column(f"{title} ({len(tickets)})")

    cells = []
    for _, tickets in columns:
        cell = Text()
        for ticket in tickets:
            header = f"#{ticket.order_number}"
            if ticket.table_number is not None:
                header += f" T{ticket.table_number}"
            if ticket.priority:
                header += f" P{ticket.priority}"
            cell.append(header + " ", style="bold")
            cell.append_text(_status_text(ticket.status))
            if ticket.sibling_ticket_status:
                cell.append("  other: ")
                cell.append_text(_status_text(ticket.sibling_ticket_status))
            cell.append("\n")
            for item in ticket.items:
                cell.append(f"  {item.quantity}x {item.menu_title}", style="dim" if item.status == TicketItemStatus.DONE else "")
                if item.instructions:
                    cell.append(f" ({item.instructions})", style="italic")
                cell.append("\n")
        cells.append(cell)
    table.add_row(*cells)

    parts = []
    if not feed.connection_ok:
        parts.append(
            Panel(
                Text(
                    f"STALE / reconnecting ({feed.consecutive_errors} failed polls, "
                    f"retry in {feed.next_delay():.0f}s)",
                    style="bold white",
                ),
                style="on red",
            )
        )
    parts.append(table)
    return Group(*parts)


@app.command()
def watch(
    station: str = typer.Option(DisplayStation.KITCHEN, "--station", "-s", help="KITCHEN or BAR"),
    show_done: bool = typer.Option(False, "--show-done", help="Show the completed lane"),
    token: str = typer.Option("", "--token", envvar="KDS_TOKEN", help="Bearer token"),
    base_url: str = typer.Option(settings.kds_api_base_url, "--url", help="API base URL"),
    once: bool = typer.Option(False, "--once", help="Poll once, print and exit"),
):
    """Run a station display in the terminal."""
    station = station.upper()
    if station not in DisplayStation.ALL:
        console.print(f"[red]Unknown station: {station}[/red]")
        raise typer.Exit(1)

    async def _watch():
        async with TicketFeedClient(base_url=base_url, token=token or None) as client:
            feed = StationFeed(client, station, completed_visible=show_done, backoff=PollBackoff.from_settings())
            feed.on_new_tickets(lambda tickets: console.bell())

            if once:
                await feed.poll_once()
                console.print(render_feed(feed))
                if not feed.loaded:
                    console.print(f"[red]✗ {feed.last_error}[/red]")
                    raise typer.Exit(1)
                return

            with Live(render_feed(feed), console=console, refresh_per_second=2) as live:
                while True:
                    await feed.poll_once()
                    live.update(render_feed(feed))
                    await asyncio.sleep(feed.next_delay())

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")


@app.command()
def dots(
    order_id: int = typer.Argument(..., help="Order id"),
    token: str = typer.Option("", "--token", envvar="KDS_TOKEN", help="Bearer token"),
    base_url: str = typer.Option(settings.kds_api_base_url, "--url", help="API base URL"),
):
    """Show the station dots of an order."""

    async def _dots():
        async with TicketFeedClient(base_url=base_url, token=token or None) as client:
            return await client.fetch_order_dots(order_id)

    try:
        result = asyncio.run(_dots())
    except TransientFeedFailure as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    if not result.dots:
        console.print(f"[yellow]Order {order_id} has no station tickets[/yellow]")
        return

    table = Table(title=f"Order {order_id}")
    table.add_column("Station", style="cyan")
    table.add_column("Status")
    for dot in result.dots:
        table.add_row(STATION_NAMES.get(dot.station, dot.station), _status_text(dot.status))
    console.print(table)


@app.command()
def health(
    base_url: str = typer.Option(settings.kds_api_base_url, "--url", help="API base URL"),
):
    """Check API health."""

    async def _health():
        async with TicketFeedClient(base_url=base_url) as client:
            return await client.health()

    try:
        data = asyncio.run(_health())
    except TransientFeedFailure as e:
        console.print(f"[red]✗ API unreachable: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Service Health")
    table.add_column("Service", style="cyan")
    table.add_column("Status", style="green")
    table.add_row("REST API", f"✓ {data.get('status', 'unknown')}")
    console.print(table)


@app.command()
def seed():
    """Create tables and seed the demo menu."""
    from kds_shared.infrastructure.db import engine, get_db_context
    from kds_api.models import Base
    from kds_api.seed import seed as seed_menu

    console.print("[blue]Seeding database[/blue]")
    try:
        Base.metadata.create_all(bind=engine)
        with get_db_context() as db:
            created = seed_menu(db)
    except SQLAlchemyError as e:
        console.print(f"[red]✗ Seeding failed: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓ {created} menu items created[/green]")


@app.command()
def version():
    """Show version information."""
    from kds_api.main import __version__

    table = Table(title="KDS Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")
    table.add_row("API", __version__)
    table.add_row("Python", sys.version.split()[0])
    console.print(table)


if __name__ == "__main__":
    app()
