"""Install and repair operations for Store applications."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Mapping, Sequence

from store_app_installer.catalog import PackageDescriptor
from store_app_installer.filesystem import RealFileSystem
from store_app_installer.poller import StatePoller, check_on_disk
from store_app_installer.protocols import FileSystem, PackageInventory, StoreInstaller
from store_app_installer.types import (
    AttemptOutcome,
    CollaboratorUnavailable,
    InstallAttempt,
    InstallInvocationError,
    InstallMode,
    PollOutcome,
    ValidationResult,
)
from store_app_installer.windows import DEFAULT_INSTALL_ROOT

logger = logging.getLogger(__name__)

_POLL_TO_OUTCOME = {
    PollOutcome.SUCCESS: AttemptOutcome.SUCCESS,
    PollOutcome.TIMEOUT: AttemptOutcome.TIMEOUT,
    PollOutcome.CANCELLED: AttemptOutcome.CANCELLED,
}


class Installer:
    """Decides install vs repair, issues the request, and confirms the result.

    Follows Separate Use from Creation: constructor requires all dependencies.
    Use factory method `create()` for production instantiation with defaults.
    """

    def __init__(
        self,
        inventory: PackageInventory,
        store: StoreInstaller,
        poller: StatePoller,
        filesystem: FileSystem,
        install_root: Path,
        all_users: bool = True,
        settle_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize installer with required dependencies.

        Args:
            inventory: Installed package queries.
            store: Store install/repair requests.
            poller: Waits for the package to appear after a request.
            filesystem: Filesystem abstraction for on-disk checks.
            install_root: Folder holding deployed packages.
            all_users: Install for every user account on the machine.
            settle_delay: Seconds to let platform state settle between steps.
            sleep: Blocking sleep used for the settle delay.
        """
        self.inventory = inventory
        self.store = store
        self.poller = poller
        self.fs = filesystem
        self.install_root = install_root
        self.all_users = all_users
        self.settle_delay = settle_delay
        self._sleep = sleep

    @classmethod
    def create(
        cls,
        inventory: PackageInventory,
        store: StoreInstaller,
        poller: StatePoller,
        filesystem: FileSystem | None = None,
        install_root: Path | None = None,
        all_users: bool = True,
        settle_delay: float = 2.0,
    ) -> Installer:
        """Factory method for production instantiation.

        Returns:
            Configured Installer instance.
        """
        return cls(
            inventory=inventory,
            store=store,
            poller=poller,
            filesystem=filesystem or RealFileSystem(),
            install_root=install_root or DEFAULT_INSTALL_ROOT,
            all_users=all_users,
            settle_delay=settle_delay,
        )

    def check(self, descriptor: PackageDescriptor) -> ValidationResult:
        """Validate one package on disk."""
        return check_on_disk(descriptor, self.install_root, self.fs)

    def check_all(self, descriptors: Sequence[PackageDescriptor]) -> dict[str, ValidationResult]:
        """Validate several packages on disk, keyed by package key."""
        return {descriptor.key: self.check(descriptor) for descriptor in descriptors}

    def choose_mode(self, descriptor: PackageDescriptor) -> InstallMode:
        """Repair if the package is already installed, otherwise fresh install.

        Raises:
            CollaboratorUnavailable: If the inventory query fails.
        """
        existing = self.inventory.find_package(descriptor.package_name)
        if existing is not None:
            logger.debug("%s present as %s", descriptor.key, existing.full_name or existing.name)
            return InstallMode.REPAIR
        return InstallMode.FRESH_INSTALL

    def invoke(self, descriptor: PackageDescriptor) -> InstallMode:
        """Issue a single install or repair request.

        Returns as soon as the Store accepts the request; it does not wait for
        the install to finish.

        Args:
            descriptor: Package to install.

        Returns:
            The mode the request was issued with.

        Raises:
            InstallInvocationError: If the Store rejects the request.
            CollaboratorUnavailable: If the inventory query fails.
        """
        mode = self.choose_mode(descriptor)
        self._request(descriptor, mode)
        return mode

    def _request(self, descriptor: PackageDescriptor, mode: InstallMode) -> None:
        logger.info(
            "Requesting %s of %s (%s, all users: %s)",
            mode.value,
            descriptor.display_name,
            descriptor.install_id,
            self.all_users,
        )
        self.store.start_install(
            descriptor.install_id,
            repair=mode is InstallMode.REPAIR,
            all_users=self.all_users,
        )

    def _settle(self) -> None:
        if self.settle_delay > 0:
            self._sleep(self.settle_delay)

    def install_package(
        self,
        descriptor: PackageDescriptor,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        initial: ValidationResult | None = None,
    ) -> InstallAttempt:
        """Install or repair a package and confirm the result.

        Per-package failures are recorded on the attempt instead of raised.

        Args:
            descriptor: Package to install.
            timeout: Overrides the poll policy timeout.
            cancel: Set to abort polling early.
            initial: Baseline on-disk check, if already taken.

        Returns:
            The finished InstallAttempt.
        """
        attempt = InstallAttempt(descriptor=descriptor)
        attempt.initial_status = (initial or self.check(descriptor)).status

        try:
            attempt.mode = self.choose_mode(descriptor)
            self._request(descriptor, attempt.mode)
            poll = self.poller.await_installed(descriptor, timeout=timeout, cancel=cancel)
        except InstallInvocationError as e:
            logger.error("Install request for %s rejected: %s", descriptor.key, e)
            attempt.finish(AttemptOutcome.ERROR, f"Install request rejected: {e}")
        except CollaboratorUnavailable as e:
            logger.error("Query failed for %s: %s", descriptor.key, e)
            attempt.finish(AttemptOutcome.ERROR, str(e))
        except Exception as e:
            logger.exception("Install failed for %s", descriptor.key)
            attempt.finish(AttemptOutcome.ERROR, f"Unexpected error: {e}")
        else:
            detail = None
            if poll is PollOutcome.TIMEOUT:
                budget = self.poller.policy.timeout if timeout is None else timeout
                detail = f"Not observed within {budget:g}s"
            elif poll is PollOutcome.CANCELLED:
                detail = "Cancelled while waiting for install"
            attempt.finish(_POLL_TO_OUTCOME[poll], detail)

        if attempt.outcome is not AttemptOutcome.CANCELLED:
            self._settle()
        final = self.check(descriptor)
        attempt.final_status = final.status
        attempt.executable_path = final.executable_path
        logger.info(
            "%s: %s (%s -> %s)",
            descriptor.key,
            attempt.outcome.value,
            attempt.initial_status.value,
            final.status.value,
        )
        return attempt

    def repair_all(
        self,
        descriptors: Sequence[PackageDescriptor],
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        on_attempt: Callable[[InstallAttempt], None] | None = None,
        baseline: Mapping[str, ValidationResult] | None = None,
    ) -> list[InstallAttempt]:
        """Repair every package that is not complete on disk, one at a time.

        Complete packages are recorded as SKIPPED. A failure for one package
        never stops the batch; cancellation marks the rest CANCELLED.

        Args:
            descriptors: Packages to check and repair.
            timeout: Overrides the poll policy timeout.
            cancel: Set to abort the batch.
            on_attempt: Called with each finished attempt.
            baseline: On-disk checks already taken, keyed by package key.

        Returns:
            One finished InstallAttempt per descriptor, in order.
        """
        if baseline is None:
            baseline = self.check_all(descriptors)
        attempts: list[InstallAttempt] = []
        needs_settle = False

        for descriptor in descriptors:
            initial = baseline[descriptor.key]
            if cancel is not None and cancel.is_set():
                attempt = InstallAttempt(descriptor=descriptor, initial_status=initial.status)
                attempt.final_status = initial.status
                attempt.finish(AttemptOutcome.CANCELLED, "Batch cancelled")
            elif initial.is_complete:
                attempt = InstallAttempt(descriptor=descriptor, initial_status=initial.status)
                attempt.final_status = initial.status
                attempt.executable_path = initial.executable_path
                attempt.finish(AttemptOutcome.SKIPPED, "Already complete")
                logger.info("%s already complete, skipping", descriptor.key)
            else:
                if needs_settle:
                    self._settle()
                attempt = self.install_package(
                    descriptor, timeout=timeout, cancel=cancel, initial=initial
                )
                needs_settle = True

            attempts.append(attempt)
            if on_attempt is not None:
                on_attempt(attempt)

        return attempts

