"""Application context for dependency injection.

This module separates object creation from object use, enabling testability
and reducing coupling in CLI commands. Dependencies are typed using
Protocols, so test doubles can be injected without inheritance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from store_app_installer.config import ConfigManager, Settings
from store_app_installer.install import Installer
from store_app_installer.protocols import (
    FileSystem,
    PackageInventory,
    ProvisioningRegistry,
    StoreInstaller,
)


def _default_filesystem() -> FileSystem:
    """Create the default filesystem implementation."""
    from store_app_installer.filesystem import RealFileSystem
    return RealFileSystem()


@dataclass
class AppContext:
    """Container for application dependencies.

    Provides a single injection point for all services used by CLI commands.
    """

    settings: Settings
    config: ConfigManager
    inventory: PackageInventory
    registry: ProvisioningRegistry
    store: StoreInstaller
    installer: Installer
    filesystem: FileSystem = field(default_factory=_default_filesystem)


def create_context(
    config_dir: Path | None = None,
    all_users: bool | None = None,
    timeout: float | None = None,
    interval: float | None = None,
) -> AppContext:
    """Factory for application dependencies.

    Creates all services with proper wiring. Use this in production code.
    For tests, construct AppContext directly with test doubles.

    Args:
        config_dir: Override configuration directory (for testing).
        all_users: Override the allUsers setting for this run.
        timeout: Override the poll timeout for this run.
        interval: Override the poll interval for this run.

    Returns:
        Configured AppContext with all dependencies.
    """
    from store_app_installer.filesystem import RealFileSystem
    from store_app_installer.poller import StatePoller
    from store_app_installer.powershell import PowerShell
    from store_app_installer.windows import (
        AppxInventory,
        AppxProvisioningRegistry,
        StoreAppInstaller,
    )

    config = ConfigManager.create(config_dir) if config_dir else ConfigManager.create_default()
    settings = config.load()
    if all_users is not None:
        settings = settings.model_copy(update={"all_users": all_users})

    shell = PowerShell()
    filesystem = RealFileSystem()
    inventory = AppxInventory(shell, all_users=settings.all_users)
    registry = AppxProvisioningRegistry(shell)
    store = StoreAppInstaller(shell)

    policy = settings.poll_policy(timeout=timeout, interval=interval)
    # Provisioning is only visible in the registry for all-users installs
    if settings.all_users:
        poller = StatePoller.for_registry(registry, policy)
    else:
        poller = StatePoller.for_inventory(inventory, policy)

    installer = Installer.create(
        inventory=inventory,
        store=store,
        poller=poller,
        filesystem=filesystem,
        install_root=settings.install_root,
        all_users=settings.all_users,
        settle_delay=settings.settle_delay,
    )

    return AppContext(
        settings=settings,
        config=config,
        inventory=inventory,
        registry=registry,
        store=store,
        installer=installer,
        filesystem=filesystem,
    )
