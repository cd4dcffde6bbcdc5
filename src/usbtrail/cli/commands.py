"""
CLI commands using the application layer use cases.

This module provides the CLI command implementations that wire up
the infrastructure adapters to the application use cases.
"""

from pathlib import Path

from rich.console import Console
from rich.progress import BarColumn, DownloadColumn, Progress, TextColumn, TransferSpeedColumn

from usbtrail.application.collect_sessions import CollectSessionsUseCase
from usbtrail.core.config import CollectOptions
from usbtrail.core.exceptions import (
    ConfigurationError,
    DiscoveryError,
    DownloadError,
    IdentifierDatabaseError,
    NoEventsError,
    OperationCancelled,
    WhitelistError,
)
from usbtrail.infrastructure import (
    DEFAULT_USB_IDS_PATHS,
    DEFAULT_WHITELIST_PATH,
    IdentifierResolver,
    Whitelist,
    discover_log_files,
)
from usbtrail.infrastructure.identifiers import (
    SnapshotCache,
    USBIdsUpdater,
    fallback_target,
    is_writable,
)
from usbtrail.cli.output import render_sessions

__all__ = ["events_command", "cache_clear_command", "update_command"]


# Conventional exit status after SIGINT
EXIT_CANCELLED = 130


def collect_log_files(paths: tuple[str, ...], error_console: Console) -> list[Path]:
    """
    Discover log files below every path, keeping first-seen order.

    A path without candidates is reported and skipped.
    """
    files: list[Path] = []
    seen: set[Path] = set()

    for path in paths:
        try:
            found = discover_log_files(path)
        except DiscoveryError as e:
            error_console.print(f"[red]Error:[/red] {e.message}")
            continue
        for file_path in found:
            if file_path not in seen:
                seen.add(file_path)
                files.append(file_path)

    return files


def load_whitelist(
    whitelist_path: str | None,
    quiet: bool,
    error_console: Console,
) -> Whitelist:
    """
    Load the explicit whitelist, falling back to the system udev rules.

    With neither available an empty whitelist is returned, so every
    device is reported as untrusted.
    """
    candidates = [whitelist_path] if whitelist_path else []
    candidates.append(DEFAULT_WHITELIST_PATH)

    for candidate in candidates:
        if candidate != whitelist_path and not Path(candidate).exists():
            continue
        try:
            whitelist = Whitelist.from_file(candidate)
        except WhitelistError as e:
            error_console.print(f"[red]Error loading whitelist {candidate}:[/red] {e.message}")
            continue
        if not quiet:
            error_console.print(
                f"[green]Loaded {len(whitelist)} whitelist entries from {candidate}[/green]"
            )
        return whitelist

    error_console.print(
        "[yellow]Warning:[/yellow] no whitelist loaded, but whitelist checking is enabled"
    )
    return Whitelist()


def load_resolver(
    usbids_path: str | None,
    quiet: bool,
    error_console: Console,
) -> IdentifierResolver | None:
    """
    Load usb.ids from the given path, then from the standard locations.

    Returns None when no database could be loaded; sessions then keep
    the names found in the log.
    """
    resolver = IdentifierResolver()

    if usbids_path:
        try:
            resolver.load(usbids_path)
        except (OSError, IdentifierDatabaseError) as e:
            error_console.print(
                f"[yellow]Cannot load usb.ids from {usbids_path}:[/yellow] {e}; "
                "trying the standard locations"
            )
        else:
            _report_resolver(resolver, quiet, error_console)
            return resolver

    try:
        resolver.load_first(DEFAULT_USB_IDS_PATHS)
    except IdentifierDatabaseError as e:
        error_console.print(f"[yellow]Warning:[/yellow] {e.message}; vendor names left as logged")
        return None

    _report_resolver(resolver, quiet, error_console)
    return resolver


def _report_resolver(resolver: IdentifierResolver, quiet: bool, error_console: Console) -> None:
    if quiet:
        return
    origin = "cache" if resolver.from_cache else "source"
    version = f" version {resolver.version}" if resolver.version else ""
    error_console.print(
        f"[dim]Using usb.ids{version} from {resolver.source_path} ({origin})[/dim]"
    )


def events_command(
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
    quiet: bool,
    console: Console,
    error_console: Console,
) -> int:
    """
    Execute the events command.

    Returns:
        Exit code (0 = success, 1 = error, 130 = cancelled)
    """
    try:
        options = CollectOptions(
            workers=workers,
            streaming=streaming,
            mass_storage_only=mass_storage,
            check_whitelist=check_whitelist,
            untrusted_only=untrusted,
            sort_order=sort_order,
            limit=number,
            require_events=require_events,
        )
    except ConfigurationError as e:
        error_console.print(f"[red]Invalid option:[/red] {e.message}")
        return 1

    files = collect_log_files(paths, error_console)
    if not files:
        error_console.print("[red]Error:[/red] No log files to analyze")
        return 1

    if not quiet:
        error_console.print(f"[dim]Analyzing {len(files)} log files[/dim]")

    whitelist = None
    if check_whitelist:
        whitelist = load_whitelist(whitelist_path, quiet, error_console)
        if untrusted and not quiet:
            error_console.print("[green]Showing only untrusted devices[/green]")

    resolver = load_resolver(usbids_path, quiet, error_console)

    def on_progress(files_done: int, events_found: int) -> None:
        error_console.print(
            f"[dim]Progress: {files_done}/{len(files)} files, {events_found:,} events[/dim]"
        )

    use_case = CollectSessionsUseCase(
        options,
        resolver=resolver,
        whitelist=whitelist,
        progress_callback=None if quiet else on_progress,
    )

    try:
        sessions = use_case.execute(files)
    except (KeyboardInterrupt, OperationCancelled):
        use_case.cancel_event.set()
        error_console.print("[yellow]Cancelled.[/yellow]")
        return EXIT_CANCELLED
    except NoEventsError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        return 1
    except ConfigurationError as e:
        error_console.print(f"[red]Invalid option:[/red] {e.message}")
        return 1

    if sessions:
        render_sessions(sessions, output_format, console)
    elif not quiet:
        console.print("[yellow]No matching USB devices found.[/yellow]")

    return 0


def cache_clear_command(
    usbids_path: str,
    quiet: bool,
    console: Console,
    error_console: Console,
) -> int:
    """
    Execute the cache clear command.

    Returns:
        Exit code
    """
    cache = SnapshotCache(Path(usbids_path).expanduser())

    try:
        removed = cache.clear()
    except OSError as e:
        error_console.print(f"[red]Failed to clear cache {cache.path}:[/red] {e}")
        return 1

    if quiet:
        return 0

    if removed:
        console.print(f"[green]Cache cleared:[/green] {cache.path}")
        console.print("[dim]Next load will parse the source and rebuild the cache[/dim]")
    else:
        console.print(f"[dim]No cache found at {cache.path}[/dim]")
    return 0


def update_command(
    usbids_path: str,
    url: str | None,
    quiet: bool,
    console: Console,
    error_console: Console,
) -> int:
    """
    Execute the update command.

    Downloads usb.ids to ``usbids_path``, or to the per-user location when
    that path is not writable, and drops the stale cache.

    Returns:
        Exit code (0 = success, 1 = error, 130 = cancelled)
    """
    target = Path(usbids_path).expanduser()
    if not is_writable(target):
        alternative = fallback_target()
        error_console.print(
            f"[yellow]Warning:[/yellow] {target} is not writable, using {alternative}"
        )
        target = alternative

    updater = USBIdsUpdater(url) if url else USBIdsUpdater()
    if not quiet:
        error_console.print(f"[dim]Downloading {updater.url}[/dim]")

    try:
        if quiet:
            database = updater.update(target)
        else:
            with Progress(
                TextColumn("[bold]usb.ids[/bold]"),
                BarColumn(),
                DownloadColumn(),
                TransferSpeedColumn(),
                console=error_console,
                transient=True,
            ) as progress:
                task = progress.add_task("download", total=None)

                def on_chunk(written: int, total: int | None) -> None:
                    progress.update(task, completed=written, total=total)

                database = updater.update(target, progress_callback=on_chunk)
    except KeyboardInterrupt:
        error_console.print("[yellow]Cancelled.[/yellow]")
        return EXIT_CANCELLED
    except DownloadError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        return 1

    if quiet:
        return 0

    version = database.version or "unknown"
    console.print(f"[green]usb.ids updated:[/green] {target}")
    console.print(
        f"[dim]Version {version}, {len(database):,} vendors, "
        f"{updater.bytes_written:,} bytes[/dim]"
    )
    console.print(f"[dim]Use it with: usbtrail events --usbids {target}[/dim]")
    return 0
