"""CLI commands using Typer."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Annotated, Callable, TypeVar

if TYPE_CHECKING:
    from store_app_installer.catalog import PackageDescriptor
    from store_app_installer.context import AppContext
    from store_app_installer.types import InstallAttempt

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from store_app_installer import __version__
from store_app_installer.catalog import CATALOG, UnknownPackageError, lookup, package_keys
from store_app_installer.context import create_context
from store_app_installer.report import export_csv, summarize
from store_app_installer.transcript import configure_logging
from store_app_installer.tui import TUI

T = TypeVar("T")

# Exit codes outside the report's 0/1/2
EXIT_USAGE = 64
EXIT_CANCELLED = 130

app = typer.Typer(
    name="store-app-installer",
    help="Install or repair built-in Windows Store apps",
    no_args_is_help=True,
)

config_app = typer.Typer(help="Configuration commands")
app.add_typer(config_app, name="config")

console = Console()
tui = TUI(console)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"store-app-installer v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Install or repair built-in Windows Store apps."""
    pass


# ============================================================================
# Helpers
# ============================================================================


def _load_context(
    all_users: bool | None = None,
    timeout: float | None = None,
    interval: float | None = None,
) -> AppContext:
    """Create the production context, turning config errors into EXIT_USAGE."""
    try:
        return create_context(all_users=all_users, timeout=timeout, interval=interval)
    except ValueError as e:
        tui.show_error(str(e))
        raise typer.Exit(EXIT_USAGE) from e


def _setup_logging(ctx: AppContext, verbose: bool) -> None:
    """Configure console logging and, when verbose, the transcript."""
    path = configure_logging(verbose=verbose, directory=ctx.settings.resolved_output_dir())
    if path is not None:
        tui.show_info(f"Transcript: {path}")


def _resolve_keys(keys: list[str] | None) -> list[PackageDescriptor]:
    """Resolve package keys to descriptors; unknown keys are fatal.

    Raises:
        typer.Exit: With EXIT_USAGE if any key is unknown.
    """
    if not keys:
        return list(CATALOG.values())
    try:
        # Notepad and notepad name the same package
        return list(dict.fromkeys(lookup(key) for key in keys))
    except UnknownPackageError as e:
        tui.show_error(str(e))
        raise typer.Exit(EXIT_USAGE) from e


def _run_cancellable(work: Callable[[threading.Event], T], description: str) -> tuple[T, bool]:
    """Run blocking work in a worker thread so Ctrl-C can cancel it.

    Args:
        work: Callable receiving the cancel token.
        description: Spinner text.

    Returns:
        Tuple of (result, cancelled).
    """
    cancel = threading.Event()
    outcome: dict[str, object] = {}

    def target() -> None:
        try:
            outcome["value"] = work(cancel)
        except BaseException as e:  # re-raised in the calling thread
            outcome["error"] = e

    worker = threading.Thread(target=target, name="store-app-installer", daemon=True)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(description, total=None)
        worker.start()
        try:
            while worker.is_alive():
                worker.join(0.2)
        except KeyboardInterrupt:
            cancel.set()
            progress.console.print("[yellow]Cancelling...[/yellow]")
            worker.join()

    if "error" in outcome:
        raise outcome["error"]  # type: ignore[misc]
    return outcome["value"], cancel.is_set()  # type: ignore[return-value]


# ============================================================================
# Install Commands
# ============================================================================


@app.command()
def install(
    package: Annotated[str, typer.Argument(help=f"Package to install ({', '.join(package_keys())})")],
    all_users: Annotated[
        bool | None,
        typer.Option("--all-users/--current-user", help="Provision for all users (default from config)"),
    ] = None,
    timeout: Annotated[
        float | None, typer.Option("--timeout", "-t", min=0, help="Seconds to wait for the install")
    ] = None,
    interval: Annotated[
        float | None, typer.Option("--interval", "-i", min=0.01, help="Seconds between polls")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output and transcript")] = False,
    _context=None,
) -> None:
    """Install or repair a single package."""
    descriptor = _resolve_keys([package])[0]
    ctx = _context or _load_context(all_users, timeout, interval)
    _setup_logging(ctx, verbose)

    attempt, cancelled = _run_cancellable(
        lambda cancel: ctx.installer.install_package(descriptor, timeout=timeout, cancel=cancel),
        f"Installing {descriptor.display_name}...",
    )
    tui.show_attempt(attempt)

    report = summarize([attempt])
    if cancelled:
        raise typer.Exit(EXIT_CANCELLED)
    raise typer.Exit(report.exit_code)


@app.command()
def repair(
    packages: Annotated[
        list[str] | None, typer.Argument(help="Packages to repair (all if not specified)")
    ] = None,
    timeout: Annotated[
        float | None, typer.Option("--timeout", "-t", min=0, help="Seconds to wait per package")
    ] = None,
    export: Annotated[bool, typer.Option("--export/--no-export", help="Write the CSV report")] = True,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output and transcript")] = False,
    _context=None,
) -> None:
    """Repair every package that is missing or incomplete on disk."""
    descriptors = _resolve_keys(packages)
    ctx = _context or _load_context(timeout=timeout)
    _setup_logging(ctx, verbose)

    baseline = ctx.installer.check_all(descriptors)
    tui.show_validation(baseline)

    attempts, cancelled = _run_cancellable(
        lambda cancel: ctx.installer.repair_all(
            descriptors,
            timeout=timeout,
            cancel=cancel,
            on_attempt=_announce,
            baseline=baseline,
        ),
        "Repairing packages...",
    )

    report = summarize(attempts)
    tui.show_report(report)

    if export:
        path = export_csv(report, ctx.settings.resolved_output_dir(), filesystem=ctx.filesystem)
        tui.show_info(f"Report: {path}")

    if cancelled:
        raise typer.Exit(EXIT_CANCELLED)
    raise typer.Exit(report.exit_code)


def _announce(attempt: InstallAttempt) -> None:
    tui.show_attempt(attempt)


@app.command()
def status(
    packages: Annotated[
        list[str] | None, typer.Argument(help="Packages to check (all if not specified)")
    ] = None,
    _context=None,
) -> None:
    """Show the on-disk status of packages."""
    descriptors = _resolve_keys(packages)
    ctx = _context or _load_context()
    results = ctx.installer.check_all(descriptors)
    tui.show_validation(results)
    if not all(result.is_complete for result in results.values()):
        raise typer.Exit(1)


@app.command("list")
def list_packages() -> None:
    """List the packages this tool knows about."""
    tui.show_catalog(list(CATALOG.values()))


# ============================================================================
# Config Commands
# ============================================================================


@config_app.command("show")
def config_show(
    _context=None,
) -> None:
    """Show current configuration."""
    ctx = _context or _load_context()
    tui.show_settings(ctx.settings, ctx.config.config_file)


@config_app.command("set")
def config_set(
    key: Annotated[str, typer.Argument(help="Configuration key (e.g. pollInterval)")],
    value: Annotated[str, typer.Argument(help="Configuration value")],
    _context=None,
) -> None:
    """Set a configuration value."""
    ctx = _context or _load_context()
    try:
        ctx.config.set_value(key, value)
    except ValueError as e:
        tui.show_error(str(e))
        raise typer.Exit(1) from e
    tui.show_success(f"Set {key} to {value}")


if __name__ == "__main__":
    app()
