"""Aggregation of install attempts into a report and exit code."""

from __future__ import annotations

import csv
import io
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Sequence

from store_app_installer.filesystem import RealFileSystem
from store_app_installer.protocols import FileSystem
from store_app_installer.types import AttemptOutcome, InstallAttempt, ValidationStatus

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["Key", "DisplayName", "InitialStatus", "FinalStatus", "Repaired", "RepairSuccess"]
CSV_PREFIX = "StoreAppRepair"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

_FAILED_OUTCOMES = (AttemptOutcome.ERROR, AttemptOutcome.TIMEOUT, AttemptOutcome.CANCELLED)


class ReportStatus(str, Enum):
    """Overall result of a run.

    ALL_COMPLETE and NOTHING_TO_REPAIR both exit 0 but stay distinct so
    callers can tell "repaired everything" from "nothing needed repair".
    """

    ALL_COMPLETE = "AllComplete"
    NOTHING_TO_REPAIR = "NothingToRepair"
    PARTIAL = "Partial"
    NO_IMPROVEMENT = "NoImprovement"

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self]


_EXIT_CODES = {
    ReportStatus.ALL_COMPLETE: 0,
    ReportStatus.NOTHING_TO_REPAIR: 0,
    ReportStatus.PARTIAL: 1,
    ReportStatus.NO_IMPROVEMENT: 2,
}


@dataclass(frozen=True)
class ReportRow:
    """One package line of the report and CSV export."""

    key: str
    display_name: str
    initial_status: ValidationStatus | None
    final_status: ValidationStatus | None
    repaired: bool
    repair_success: bool
    outcome: AttemptOutcome
    detail: str | None = None

    def as_csv(self) -> list[str]:
        return [
            self.key,
            self.display_name,
            self.initial_status.value if self.initial_status else "",
            self.final_status.value if self.final_status else "",
            str(self.repaired),
            str(self.repair_success),
        ]


@dataclass(frozen=True)
class Failure:
    """A package that errored, timed out or was cancelled."""

    key: str
    outcome: AttemptOutcome
    detail: str


@dataclass(frozen=True)
class Report:
    """Summary of a run, from which the process exit code is derived."""

    rows: list[ReportRow]
    status: ReportStatus
    counts: dict[AttemptOutcome, int] = field(default_factory=dict)
    failures: list[Failure] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return self.status.exit_code

    @property
    def complete_count(self) -> int:
        return sum(1 for row in self.rows if row.final_status is ValidationStatus.COMPLETE)

    @property
    def repaired_count(self) -> int:
        return sum(1 for row in self.rows if row.repaired and row.repair_success)


def _row(attempt: InstallAttempt) -> ReportRow:
    return ReportRow(
        key=attempt.key,
        display_name=attempt.descriptor.display_name,
        initial_status=attempt.initial_status,
        final_status=attempt.final_status,
        repaired=attempt.attempted,
        repair_success=attempt.attempted and attempt.improved,
        outcome=attempt.outcome,
        detail=attempt.detail,
    )


def classify(attempts: Sequence[InstallAttempt]) -> ReportStatus:
    """Overall status for a set of finished attempts.

    - every package ends Complete: ALL_COMPLETE, or NOTHING_TO_REPAIR when
      no install was attempted
    - at least one package went from not Complete to Complete: PARTIAL
    - otherwise: NO_IMPROVEMENT
    """
    if all(a.final_status is ValidationStatus.COMPLETE for a in attempts):
        if any(a.attempted for a in attempts):
            return ReportStatus.ALL_COMPLETE
        return ReportStatus.NOTHING_TO_REPAIR
    if any(a.improved for a in attempts):
        return ReportStatus.PARTIAL
    return ReportStatus.NO_IMPROVEMENT


def summarize(attempts: Sequence[InstallAttempt]) -> Report:
    """Aggregate finished attempts into a Report.

    Args:
        attempts: Finished attempts, one per package.

    Returns:
        Report with rows, per-outcome counts, failures and overall status.

    Raises:
        ValueError: If an attempt is still pending.
    """
    pending = [a.key for a in attempts if not a.is_finished]
    if pending:
        raise ValueError(f"Attempts still pending: {', '.join(pending)}")

    counts = Counter(a.outcome for a in attempts)
    failures = [
        Failure(key=a.key, outcome=a.outcome, detail=a.detail or a.outcome.value)
        for a in attempts
        if a.outcome in _FAILED_OUTCOMES
    ]
    status = classify(attempts)
    logger.debug("Report status %s for %d package(s)", status.value, len(attempts))
    return Report(
        rows=[_row(a) for a in attempts],
        status=status,
        counts=dict(counts),
        failures=failures,
    )


def render_csv(report: Report) -> str:
    """Render report rows as CSV text with a header line."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for row in report.rows:
        writer.writerow(row.as_csv())
    return buffer.getvalue()


def export_csv(
    report: Report,
    directory: Path,
    now: datetime | None = None,
    filesystem: FileSystem | None = None,
) -> Path:
    """Write the report to a timestamped CSV file.

    Args:
        report: Report to export.
        directory: Output directory (created if missing).
        now: Timestamp for the file name. Defaults to the current time.
        filesystem: Filesystem abstraction.

    Returns:
        Path of the written file.
    """
    fs = filesystem or RealFileSystem()
    stamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    path = directory / f"{CSV_PREFIX}_{stamp}.csv"
    fs.mkdir(directory, parents=True, exist_ok=True)
    fs.write_text(path, render_csv(report))
    logger.info("Exported report to %s", path)
    return path
