"""
Output formatters for CLI.
"""

import json

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from usbtrail.core.models import DeviceSession

__all__ = ["render_sessions", "render_table", "render_json", "render_compact"]


TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def render_sessions(
    sessions: list[DeviceSession],
    output_format: str,
    console: Console,
) -> None:
    """
    Render sessions in the specified format.

    Args:
        sessions: Sessions to render
        output_format: One of "table", "json", "compact"
        console: Rich Console for output
    """
    match output_format:
        case "table":
            render_table(sessions, console)
        case "json":
            render_json(sessions, console)
        case "compact":
            render_compact(sessions, console)
        case _:
            render_table(sessions, console)


def _serial_markup(session: DeviceSession) -> str:
    serial = escape(session.serial_number)
    if session.trusted:
        return f"[green]{serial}[/green]"
    return serial


def render_table(sessions: list[DeviceSession], console: Console) -> None:
    """Render sessions as a Rich table; trusted serials are green."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Connected", style="dim", width=19)
    table.add_column("Disconnected", style="dim", width=19)
    table.add_column("Host")
    table.add_column("VID:PID", style="cyan")
    table.add_column("Product", overflow="fold")
    table.add_column("Manufacturer", overflow="fold")
    table.add_column("Serial", overflow="fold")
    table.add_column("Port")
    table.add_column("Storage", justify="center")

    for session in sessions:
        table.add_row(
            session.connected_at.strftime(TIME_FORMAT),
            session.disconnected_at.strftime(TIME_FORMAT),
            escape(session.host),
            f"{session.vendor_id}:{session.product_id}",
            escape(session.product_name),
            escape(session.manufacturer_name),
            _serial_markup(session),
            session.connection_port,
            "yes" if session.is_mass_storage else "",
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(sessions)} sessions[/dim]")


def render_json(sessions: list[DeviceSession], console: Console) -> None:
    """Render sessions as JSON."""
    output = [session.to_dict() for session in sessions]
    json_str = json.dumps(output, indent=2, default=str)
    console.print(json_str, highlight=False, markup=False, soft_wrap=True)


def render_compact(sessions: list[DeviceSession], console: Console) -> None:
    """Render sessions in compact single-line format."""
    for session in sessions:
        connected = session.connected_at.strftime(TIME_FORMAT)
        disconnected = session.disconnected_at.strftime("%H:%M:%S")
        storage = " [yellow]storage[/yellow]" if session.is_mass_storage else ""
        console.print(
            f"[dim]{connected} - {disconnected}[/dim] "
            f"[cyan]{session.vendor_id}:{session.product_id}[/cyan] "
            f"{escape(session.manufacturer_name)} {escape(session.product_name)} "
            f"serial={_serial_markup(session)} port={session.connection_port}{storage}",
            highlight=False,
        )
