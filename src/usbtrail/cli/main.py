"""
Main CLI entry point for usbtrail.

Commands delegate to the implementations in usbtrail.cli.commands, which
wire the infrastructure adapters into the application use cases.
"""

import click
from rich.console import Console

from usbtrail import __version__

console = Console()
error_console = Console(stderr=True)


@click.group()
@click.version_option(version=__version__, prog_name="usbtrail")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.pass_context
def cli(ctx: click.Context, quiet: bool) -> None:
    """
    usbtrail - USB device history from kernel logs

    Reconstructs when USB devices were plugged in and removed, which
    vendor and product they were, and whether their serial is trusted.

    Examples:

    \b
        usbtrail events
        usbtrail events -m -s desc -n 20 /var/log
        usbtrail events -c -W /etc/udev/rules.d/99-usb.rules -u
        usbtrail events --streaming -o json /srv/archive/logs
        usbtrail cache clear
        usbtrail update --usbids ~/.local/share/usbtrail/usb.ids
    """
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["console"] = console
    ctx.obj["error_console"] = error_console


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path())
@click.option(
    "--masstorage", "-m", "mass_storage", is_flag=True,
    help="Show only mass storage devices"
)
@click.option(
    "--untrusted", "-u", is_flag=True,
    help="Show only devices whose serial is not whitelisted"
)
@click.option(
    "--check", "-c", "check_whitelist", is_flag=True,
    help="Check device serials against the whitelist"
)
@click.option(
    "--whitelist", "-W", "whitelist_path", type=click.Path(),
    help="udev rules file holding trusted serials"
)
@click.option(
    "--usbids", "-U", "usbids_path", type=click.Path(),
    help="usb.ids database (default: first one found in the standard locations)"
)
@click.option(
    "--number", "-n", type=click.IntRange(min=0), default=0,
    help="Number of sessions to show (default: all)"
)
@click.option(
    "--sort", "-s", "sort_order",
    type=click.Choice(["asc", "desc"], case_sensitive=False),
    default="asc",
    help="Sort by connection time (default: asc)"
)
@click.option(
    "--workers", "-w", type=click.IntRange(min=0), default=0,
    help="Parser worker threads (default: one per CPU)"
)
@click.option(
    "--streaming", is_flag=True,
    help="Use the bounded-memory streaming parser for very large log sets"
)
@click.option(
    "--require-events", is_flag=True,
    help="Exit with an error when the logs hold no USB events"
)
@click.option(
    "--output", "-o", "output_format",
    type=click.Choice(["table", "json", "compact"]),
    default="table",
    help="Output format (default: table)"
)
@click.pass_context
def events(
    ctx: click.Context,
    paths: tuple[str, ...],
    mass_storage: bool,
    untrusted: bool,
    check_whitelist: bool,
    whitelist_path: str | None,
    usbids_path: str | None,
    number: int,
    sort_order: str,
    workers: int,
    streaming: bool,
    require_events: bool,
    output_format: str,
) -> None:
    """
    Show USB device sessions found in kernel logs.

    PATHS are log directories or files (default: /var/log/). Directories
    are searched for syslog, messages, kern and daemon logs, including
    gzip-rotated ones.

    Examples:

    \b
        usbtrail events
        usbtrail events --masstorage --sort desc --number 10
        usbtrail events -c -u -W ./trusted.rules /mnt/evidence/var/log
        usbtrail events -U ./usb.ids -o json
    """
    from usbtrail.cli.commands import events_command

    exit_code = events_command(
        paths=paths or ("/var/log/",),
        mass_storage=mass_storage,
        untrusted=untrusted,
        check_whitelist=check_whitelist,
        whitelist_path=whitelist_path,
        usbids_path=usbids_path,
        number=number,
        sort_order=sort_order,
        workers=workers,
        streaming=streaming,
        require_events=require_events,
        output_format=output_format,
        quiet=ctx.obj.get("quiet", False),
        console=ctx.obj["console"],
        error_console=ctx.obj["error_console"],
    )
    ctx.exit(exit_code)


@cli.group()
def cache() -> None:
    """
    Manage the usb.ids cache.

    Parsed usb.ids databases are cached next to the source file with a
    '.cache' extension. The cache is rebuilt automatically when the source
    changes; clear it to force a re-parse.
    """


@cache.command("clear")
@click.option(
    "--usbids", "usbids_path", type=click.Path(),
    default="/var/lib/usbutils/usb.ids",
    help="usb.ids file whose cache is removed (default: /var/lib/usbutils/usb.ids)"
)
@click.pass_context
def cache_clear(ctx: click.Context, usbids_path: str) -> None:
    """
    Remove the cached usb.ids database.

    Examples:

    \b
        usbtrail cache clear
        usbtrail cache clear --usbids ~/.local/share/usb.ids
    """
    from usbtrail.cli.commands import cache_clear_command

    exit_code = cache_clear_command(
        usbids_path=usbids_path,
        quiet=ctx.obj.get("quiet", False),
        console=ctx.obj["console"],
        error_console=ctx.obj["error_console"],
    )
    ctx.exit(exit_code)


@cli.command()
@click.option(
    "--usbids", "--path", "usbids_path", type=click.Path(),
    default="/var/lib/usbutils/usb.ids",
    help="Where to install usb.ids (default: /var/lib/usbutils/usb.ids)"
)
@click.option(
    "--url", default=None,
    help="Download location (default: http://www.linux-usb.org/usb.ids)"
)
@click.pass_context
def update(ctx: click.Context, usbids_path: str, url: str | None) -> None:
    """
    Download the latest usb.ids database.

    The download replaces the target only once it parses as a usb.ids
    database, and the cache of the old file is removed. A target that is
    not writable falls back to ~/.local/share/usbtrail/usb.ids.

    Examples:

    \b
        sudo usbtrail update
        usbtrail update --usbids ~/usb.ids
        usbtrail events --usbids ~/usb.ids
    """
    from usbtrail.cli.commands import update_command

    exit_code = update_command(
        usbids_path=usbids_path,
        url=url,
        quiet=ctx.obj.get("quiet", False),
        console=ctx.obj["console"],
        error_console=ctx.obj["error_console"],
    )
    ctx.exit(exit_code)


if __name__ == "__main__":
    cli()
