"""Protocol definitions for the platform collaborators.

Everything the tool learns about the host goes through one of these
interfaces:

- PackageInventory: which packages are installed (Get-AppxPackage)
- ProvisioningRegistry: which packages are provisioned for all users
- StoreInstaller: the asynchronous Store install/repair request
- FileSystem: enumeration of the package installation root

Production implementations live in ``windows`` and ``filesystem``; tests
substitute fakes that satisfy these protocols structurally.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Protocol, runtime_checkable

from store_app_installer.types import InstalledPackage


@runtime_checkable
class PackageInventory(Protocol):
    """Protocol for installed package queries."""

    def find_package(self, package_name: str) -> InstalledPackage | None:
        """Look up an installed package by identity name.

        Args:
            package_name: AppX identity name.

        Returns:
            The installed package, or None if it is not installed.

        Raises:
            CollaboratorUnavailable: If the query itself fails.
        """
        ...


@runtime_checkable
class ProvisioningRegistry(Protocol):
    """Protocol for provisioned package queries."""

    def list_provisioned(self) -> list[str]:
        """List display names of all provisioned packages.

        Raises:
            CollaboratorUnavailable: If the query itself fails.
        """
        ...

    def is_provisioned(self, name_fragment: str) -> bool:
        """Check whether any provisioned package name contains a fragment.

        Args:
            name_fragment: Substring to match, case-insensitively.

        Returns:
            True if a matching package is provisioned.

        Raises:
            CollaboratorUnavailable: If the query itself fails.
        """
        ...


@runtime_checkable
class StoreInstaller(Protocol):
    """Protocol for the Store install/repair operation."""

    def start_install(self, install_id: str, repair: bool, all_users: bool) -> None:
        """Request an install or repair.

        Returns once the request is accepted; installation continues in
        the background.

        Args:
            install_id: Store product ID.
            repair: Reinstall an existing package instead of a fresh install.
            all_users: Install for every user account on the machine.

        Raises:
            InstallInvocationError: If the request is rejected.
        """
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Protocol for filesystem operations.

    Abstracts filesystem access to enable testing without real I/O.
    """

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        ...

    def is_dir(self, path: Path) -> bool:
        """Check if a path is a directory."""
        ...

    def iterdir(self, path: Path) -> list[Path]:
        """List the direct children of a directory.

        Raises:
            OSError: If the directory cannot be read.
        """
        ...

    def rglob_files(self, path: Path) -> Iterator[Path]:
        """Yield every file below a directory, recursively.

        Raises:
            OSError: If the directory cannot be read.
        """
        ...

    def mkdir(self, path: Path, parents: bool = False, exist_ok: bool = False) -> None:
        """Create a directory."""
        ...

    def write_text(self, path: Path, content: str) -> None:
        """Write text content to a file."""
        ...
