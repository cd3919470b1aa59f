"""Shared data types for store app installer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from store_app_installer.catalog import PackageDescriptor

__all__ = [
    "AttemptOutcome",
    "CollaboratorUnavailable",
    "InstallAttempt",
    "InstallInvocationError",
    "InstallMode",
    "InstalledPackage",
    "PollOutcome",
    "ValidationResult",
    "ValidationStatus",
]


class InstallInvocationError(Exception):
    """The Store installer rejected an install or repair request."""

    pass


class CollaboratorUnavailable(Exception):
    """A package inventory, registry or filesystem query failed."""

    pass


class InstallMode(str, Enum):
    """How the install request is issued."""

    FRESH_INSTALL = "FreshInstall"
    REPAIR = "Repair"


class ValidationStatus(str, Enum):
    """On-disk state of a package."""

    COMPLETE = "Complete"
    INCOMPLETE = "Incomplete"
    NOT_FOUND = "NotFound"
    ERROR = "Error"


class AttemptOutcome(str, Enum):
    """Terminal state of an install attempt (PENDING until finished)."""

    PENDING = "Pending"
    SUCCESS = "Success"
    TIMEOUT = "Timeout"
    CANCELLED = "Cancelled"
    ERROR = "Error"
    SKIPPED = "Skipped"


class PollOutcome(str, Enum):
    """Result of waiting for a package to show up."""

    SUCCESS = "Success"
    TIMEOUT = "Timeout"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class InstalledPackage:
    """A package as reported by the package inventory.

    Attributes:
        name: AppX identity name, e.g. Microsoft.WindowsNotepad.
        full_name: Full package name including version and architecture.
        version: Package version string.
        install_location: Folder the package is deployed to, if known.
    """

    name: str
    full_name: str = ""
    version: str = ""
    install_location: Path | None = None


@dataclass
class ValidationResult:
    """Point-in-time on-disk check of a package.

    Attributes:
        status: Classification of the package folder.
        executable_path: Path of the expected executable (COMPLETE only).
        detail: Error message (ERROR only) or extra context.
    """

    status: ValidationStatus
    executable_path: Path | None = None
    detail: str | None = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.status is ValidationStatus.COMPLETE and self.executable_path is None:
            raise ValueError("status=Complete requires executable_path")
        if self.status is not ValidationStatus.COMPLETE and self.executable_path is not None:
            raise ValueError("executable_path is only set when status=Complete")

    @property
    def is_complete(self) -> bool:
        return self.status is ValidationStatus.COMPLETE


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class InstallAttempt:
    """One install or repair of one package.

    ``mode`` is decided once before the install call, and ``outcome`` moves
    from PENDING to a terminal value exactly once.
    """

    descriptor: PackageDescriptor
    start_time: datetime = field(default_factory=_now)
    end_time: datetime | None = None
    detail: str | None = None
    initial_status: ValidationStatus | None = None
    final_status: ValidationStatus | None = None
    executable_path: Path | None = None
    _mode: InstallMode | None = field(default=None, repr=False)
    _outcome: AttemptOutcome = field(default=AttemptOutcome.PENDING, repr=False)

    @property
    def key(self) -> str:
        return self.descriptor.key

    @property
    def mode(self) -> InstallMode | None:
        return self._mode

    @mode.setter
    def mode(self, value: InstallMode) -> None:
        if self._mode is not None:
            raise ValueError(f"mode already decided for {self.key}: {self._mode.value}")
        self._mode = value

    @property
    def outcome(self) -> AttemptOutcome:
        return self._outcome

    @property
    def is_finished(self) -> bool:
        return self._outcome is not AttemptOutcome.PENDING

    @property
    def attempted(self) -> bool:
        """True once an install or repair request was decided on."""
        return self._mode is not None

    @property
    def improved(self) -> bool:
        """True if the package was not complete before and is complete now."""
        return (
            self.initial_status is not ValidationStatus.COMPLETE
            and self.final_status is ValidationStatus.COMPLETE
        )

    def finish(self, outcome: AttemptOutcome, detail: str | None = None) -> None:
        """Record the terminal outcome.

        Args:
            outcome: Terminal outcome (anything but PENDING).
            detail: Error or timeout description.

        Raises:
            ValueError: If the attempt already finished or outcome is PENDING.
        """
        if outcome is AttemptOutcome.PENDING:
            raise ValueError("cannot finish an attempt with outcome=Pending")
        if self.is_finished:
            raise ValueError(
                f"attempt for {self.key} already finished with {self._outcome.value}"
            )
        self._outcome = outcome
        if detail is not None:
            self.detail = detail
        self.end_time = _now()

    @property
    def duration(self) -> float | None:
        """Elapsed seconds, or None while pending."""
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()
