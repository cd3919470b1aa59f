"""Rich console output for the CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from store_app_installer.types import AttemptOutcome, ValidationResult, ValidationStatus

if TYPE_CHECKING:
    from pathlib import Path

    from store_app_installer.catalog import PackageDescriptor
    from store_app_installer.config import Settings
    from store_app_installer.report import Report
    from store_app_installer.types import InstallAttempt

_STATUS_STYLES = {
    ValidationStatus.COMPLETE: "green",
    ValidationStatus.INCOMPLETE: "yellow",
    ValidationStatus.NOT_FOUND: "red",
    ValidationStatus.ERROR: "red",
}

_OUTCOME_STYLES = {
    AttemptOutcome.SUCCESS: "green",
    AttemptOutcome.SKIPPED: "dim",
    AttemptOutcome.TIMEOUT: "yellow",
    AttemptOutcome.CANCELLED: "yellow",
    AttemptOutcome.ERROR: "red",
    AttemptOutcome.PENDING: "dim",
}


def _status_text(status: ValidationStatus | None) -> str:
    if status is None:
        return "-"
    return f"[{_STATUS_STYLES[status]}]{status.value}[/{_STATUS_STYLES[status]}]"


def _outcome_text(outcome: AttemptOutcome) -> str:
    style = _OUTCOME_STYLES[outcome]
    return f"[{style}]{outcome.value}[/{style}]"


class TUI:
    """Text User Interface for store-app-installer (non-interactive mode)."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize TUI."""
        self.console = console or Console()

    def show_success(self, message: str) -> None:
        """Display success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def show_error(self, message: str) -> None:
        """Display error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def show_warning(self, message: str) -> None:
        """Display warning message."""
        self.console.print(f"[yellow]![/yellow] {message}")

    def show_info(self, message: str) -> None:
        """Display info message."""
        self.console.print(f"[blue]i[/blue] {message}")

    def show_catalog(self, descriptors: list[PackageDescriptor]) -> None:
        """Display the package catalog."""
        table = Table(title="Packages")
        table.add_column("Key", style="cyan")
        table.add_column("Name")
        table.add_column("Store ID")
        table.add_column("Package")
        table.add_column("Executables", style="dim")

        for descriptor in descriptors:
            table.add_row(
                descriptor.key,
                descriptor.display_name,
                descriptor.install_id,
                descriptor.package_name,
                ", ".join(sorted(descriptor.expected_executables)),
            )

        self.console.print(table)

    def show_validation(self, results: Mapping[str, ValidationResult]) -> None:
        """Display on-disk validation results.

        Args:
            results: Validation results keyed by package key.
        """
        table = Table(title="Package Status")
        table.add_column("Key", style="cyan")
        table.add_column("Status")
        table.add_column("Details")

        for key, result in results.items():
            details = str(result.executable_path) if result.executable_path else result.detail or ""
            table.add_row(key, _status_text(result.status), escape(details))

        self.console.print(table)

    def show_attempt(self, attempt: InstallAttempt) -> None:
        """Display a one-line result for a finished attempt."""
        mode = attempt.mode.value if attempt.mode else "none"
        line = (
            f"{attempt.descriptor.display_name}: {_outcome_text(attempt.outcome)} "
            f"(mode: {mode}, {_status_text(attempt.initial_status)} "
            f"-> {_status_text(attempt.final_status)})"
        )
        if attempt.outcome in (AttemptOutcome.SUCCESS, AttemptOutcome.SKIPPED):
            self.show_success(line)
        elif attempt.outcome is AttemptOutcome.ERROR:
            self.show_error(f"{line}: {escape(attempt.detail or '')}")
        else:
            self.show_warning(f"{line}: {escape(attempt.detail or '')}")

    def show_report(self, report: Report) -> None:
        """Display the run report and overall status."""
        table = Table(title="Repair Summary")
        table.add_column("Key", style="cyan")
        table.add_column("Name")
        table.add_column("Initial")
        table.add_column("Final")
        table.add_column("Repaired")
        table.add_column("Outcome")

        for row in report.rows:
            table.add_row(
                row.key,
                row.display_name,
                _status_text(row.initial_status),
                _status_text(row.final_status),
                "yes" if row.repaired else "no",
                _outcome_text(row.outcome),
            )

        self.console.print(table)

        for failure in report.failures:
            self.show_error(f"{failure.key}: {failure.outcome.value}: {escape(failure.detail)}")

        counts = ", ".join(
            f"{outcome.value}: {count}" for outcome, count in report.counts.items() if count
        )
        summary = (
            f"{report.complete_count}/{len(report.rows)} complete, "
            f"{report.repaired_count} repaired ({counts or 'nothing to do'})"
        )
        if report.exit_code == 0:
            self.show_success(f"{report.status.value}: {summary}")
        else:
            self.show_warning(f"{report.status.value}: {summary} (exit {report.exit_code})")

    def show_settings(self, settings: Settings, config_file: Path) -> None:
        """Display current configuration."""
        self.console.print("\n[bold]Configuration[/bold]")
        self.console.print(f"  Config file: {config_file}")
        for name, info in type(settings).model_fields.items():
            label = info.alias or name
            self.console.print(f"  {label}: {getattr(settings, name)}")
