"""Waiting for installs to land, and checking what is on disk.

The Store installer gives no completion signal, so the poller repeatedly
asks a read side (the provisioned package registry, or the package
inventory for per-user installs) whether the package has appeared.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from store_app_installer.catalog import PackageDescriptor
from store_app_installer.protocols import FileSystem, PackageInventory, ProvisioningRegistry
from store_app_installer.types import PollOutcome, ValidationResult, ValidationStatus

logger = logging.getLogger(__name__)

Probe = Callable[[PackageDescriptor], bool]


@dataclass(frozen=True)
class PollPolicy:
    """How often and for how long to poll.

    Attributes:
        interval: Seconds between the first polls.
        timeout: Total seconds to wait before giving up.
        backoff: Multiplier applied to the interval after each poll
            (1.0 keeps it fixed).
        max_interval: Upper bound for the interval when backing off.
    """

    interval: float = 1.0
    timeout: float = 300.0
    backoff: float = 1.0
    max_interval: float = 10.0

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.interval <= 0:
            raise ValueError("interval must be positive")
        if self.timeout < 0:
            raise ValueError("timeout cannot be negative")
        if self.backoff < 1.0:
            raise ValueError("backoff must be >= 1.0")
        if self.max_interval < self.interval:
            raise ValueError("max_interval must be >= interval")

    def next_interval(self, current: float) -> float:
        """Interval to use after a poll that waited ``current`` seconds."""
        return min(current * self.backoff, self.max_interval)


class StatePoller:
    """Blocks until a package shows up, the timeout elapses, or cancellation.

    Follows Separate Use from Creation: the constructor takes the probe to
    poll. Use ``for_registry()`` or ``for_inventory()`` in production code.
    """

    def __init__(
        self,
        probe: Probe,
        policy: PollPolicy | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        """Initialize the poller.

        Args:
            probe: Returns True once the package is observed.
            policy: Interval, timeout and backoff settings.
            clock: Monotonic time source (injectable for tests).
            sleep: Blocking sleep (injectable for tests). When omitted, waits
                on the cancel token so cancellation interrupts the wait.
        """
        self.probe = probe
        self.policy = policy or PollPolicy()
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def for_registry(
        cls, registry: ProvisioningRegistry, policy: PollPolicy | None = None
    ) -> StatePoller:
        """Poll the provisioned package registry for ``provisioned_name``."""
        return cls(lambda d: registry.is_provisioned(d.provisioned_name), policy)

    @classmethod
    def for_inventory(
        cls, inventory: PackageInventory, policy: PollPolicy | None = None
    ) -> StatePoller:
        """Poll the package inventory for ``package_name``."""
        return cls(lambda d: inventory.find_package(d.package_name) is not None, policy)

    def _wait(self, seconds: float, cancel: threading.Event | None) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        elif cancel is not None:
            cancel.wait(seconds)
        else:
            time.sleep(seconds)

    def await_installed(
        self,
        descriptor: PackageDescriptor,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> PollOutcome:
        """Poll until the package is observed.

        One final check runs after the deadline so a package that appears
        during the last wait is not reported as a timeout.

        Args:
            descriptor: Package to wait for.
            timeout: Overrides the policy timeout.
            cancel: Set to abort the wait early.

        Returns:
            SUCCESS, TIMEOUT or CANCELLED.

        Raises:
            CollaboratorUnavailable: If the probe's query fails.
        """
        budget = self.policy.timeout if timeout is None else timeout
        deadline = self._clock() + budget
        interval = self.policy.interval
        polls = 0

        while True:
            if cancel is not None and cancel.is_set():
                logger.info("Polling for %s cancelled after %d polls", descriptor.key, polls)
                return PollOutcome.CANCELLED
            polls += 1
            if self.probe(descriptor):
                logger.info("%s observed after %d polls", descriptor.key, polls)
                return PollOutcome.SUCCESS
            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            self._wait(min(interval, remaining), cancel)
            interval = self.policy.next_interval(interval)
            if deadline - self._clock() <= 0:
                # deadline reached during the wait; probed once below
                break

        if cancel is not None and cancel.is_set():
            return PollOutcome.CANCELLED
        if self.probe(descriptor):
            logger.info("%s observed on final check", descriptor.key)
            return PollOutcome.SUCCESS
        logger.warning("Timed out after %.1fs waiting for %s", budget, descriptor.key)
        return PollOutcome.TIMEOUT


def find_package_dirs(
    descriptor: PackageDescriptor, install_root: Path, filesystem: FileSystem
) -> list[Path]:
    """List package folders under the install root, newest name first.

    Package folders are named ``<package_name>_<version>_<arch>__<publisher>``.
    """
    prefix = f"{descriptor.package_name}_".casefold()
    matches = [
        child
        for child in filesystem.iterdir(install_root)
        if child.name.casefold().startswith(prefix) and filesystem.is_dir(child)
    ]
    return sorted(matches, key=lambda p: p.name, reverse=True)


def check_on_disk(
    descriptor: PackageDescriptor, install_root: Path, filesystem: FileSystem
) -> ValidationResult:
    """Classify the on-disk state of a package.

    - no package folder: NOT_FOUND
    - folder present, no expected executable: INCOMPLETE
    - expected executable found: COMPLETE with its path

    Args:
        descriptor: Package to check.
        install_root: Folder holding deployed packages.
        filesystem: Filesystem abstraction.

    Returns:
        ValidationResult for the package. Enumeration failures give ERROR.
    """
    try:
        if not filesystem.exists(install_root):
            return ValidationResult(ValidationStatus.NOT_FOUND, detail=f"{install_root} missing")

        folders = find_package_dirs(descriptor, install_root, filesystem)
        if not folders:
            return ValidationResult(ValidationStatus.NOT_FOUND)

        wanted = {name.casefold() for name in descriptor.expected_executables}
        for folder in folders:
            for path in filesystem.rglob_files(folder):
                if path.name.casefold() in wanted:
                    logger.debug("%s: found %s", descriptor.key, path)
                    return ValidationResult(ValidationStatus.COMPLETE, executable_path=path)
    except OSError as e:
        logger.warning("On-disk check failed for %s: %s", descriptor.key, e)
        return ValidationResult(ValidationStatus.ERROR, detail=str(e))

    return ValidationResult(
        ValidationStatus.INCOMPLETE,
        detail=f"{len(folders)} folder(s) without {', '.join(sorted(descriptor.expected_executables))}",
    )
