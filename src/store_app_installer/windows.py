"""Windows implementations of the platform collaborators.

Each class satisfies one protocol from ``protocols`` by running PowerShell:

- AppxInventory: Get-AppxPackage
- AppxProvisioningRegistry: Get-AppxProvisionedPackage -Online
- StoreAppInstaller: AppInstallManager.StartProductInstallAsync (WinRT)
"""

from __future__ import annotations

import logging
from pathlib import Path

from store_app_installer.powershell import PowerShell, PowerShellError, as_list, quote
from store_app_installer.types import (
    CollaboratorUnavailable,
    InstallInvocationError,
    InstalledPackage,
)

logger = logging.getLogger(__name__)

# Folder the Store deploys packages into
DEFAULT_INSTALL_ROOT = Path(r"C:\Program Files\WindowsApps")

# Client ID reported to the Store with each install request
CLIENT_ID = "store-app-installer"

_INSTALL_SCRIPT = r"""
$ErrorActionPreference = 'Stop'
Add-Type -AssemblyName System.Runtime.WindowsRuntime
$null = [Windows.ApplicationModel.Store.Preview.InstallControl.AppInstallManager, Windows.ApplicationModel.Store.Preview, ContentType = WindowsRuntime]
$null = [Windows.ApplicationModel.Store.Preview.InstallControl.AppInstallOptions, Windows.ApplicationModel.Store.Preview, ContentType = WindowsRuntime]
$asTask = [System.WindowsRuntimeSystemExtensions].GetMethods() | Where-Object {
    $_.Name -eq 'AsTask' -and $_.GetParameters().Count -eq 1 -and
    $_.GetParameters()[0].ParameterType.Name -eq 'IAsyncOperation`1'
} | Select-Object -First 1
$manager = New-Object Windows.ApplicationModel.Store.Preview.InstallControl.AppInstallManager
$options = New-Object Windows.ApplicationModel.Store.Preview.InstallControl.AppInstallOptions
$options.Repair = ${repair}
$options.InstallForAllUsers = ${all_users}
$operation = $manager.StartProductInstallAsync(${product_id}, '', ${client_id}, '', $options)
$resultType = [System.Collections.Generic.IReadOnlyList[Windows.ApplicationModel.Store.Preview.InstallControl.AppInstallItem]]
$task = $asTask.MakeGenericMethod($resultType).Invoke($null, @($operation))
$items = $task.GetAwaiter().GetResult()
ConvertTo-Json -Compress -InputObject @($items | ForEach-Object { $_.ProductId })
"""


def _ps_bool(value: bool) -> str:
    return "$true" if value else "$false"


def _version_key(version: object) -> tuple[int, ...]:
    parts = []
    for part in str(version or "").split("."):
        parts.append(int(part) if part.isdigit() else 0)
    return tuple(parts)


class AppxInventory:
    """Package inventory backed by Get-AppxPackage."""

    def __init__(self, shell: PowerShell | None = None, all_users: bool = True) -> None:
        self.shell = shell or PowerShell()
        self.all_users = all_users

    def build_script(self, package_name: str) -> str:
        scope = " -AllUsers" if self.all_users else ""
        return (
            f"Get-AppxPackage{scope} -Name {quote(package_name)} -ErrorAction Stop | "
            "Select-Object Name, PackageFullName, "
            "@{n='Version';e={[string]$_.Version}}, InstallLocation | "
            "ConvertTo-Json -Compress"
        )

    def find_package(self, package_name: str) -> InstalledPackage | None:
        """Look up an installed package by identity name."""
        try:
            data = self.shell.run_json(self.build_script(package_name))
        except PowerShellError as e:
            raise CollaboratorUnavailable(f"Package inventory query failed: {e}") from e

        entries = [entry for entry in as_list(data) if isinstance(entry, dict)]
        if not entries:
            return None
        # Several entries appear when more than one version is staged
        entry = max(entries, key=lambda e: _version_key(e.get("Version")))
        location = entry.get("InstallLocation")
        return InstalledPackage(
            name=entry.get("Name") or package_name,
            full_name=entry.get("PackageFullName") or "",
            version=str(entry.get("Version") or ""),
            install_location=Path(location) if location else None,
        )


class AppxProvisioningRegistry:
    """Provisioned package registry backed by Get-AppxProvisionedPackage."""

    SCRIPT = (
        "Get-AppxProvisionedPackage -Online -ErrorAction Stop | "
        "Select-Object -ExpandProperty DisplayName | ConvertTo-Json -Compress"
    )

    def __init__(self, shell: PowerShell | None = None) -> None:
        self.shell = shell or PowerShell()

    def list_provisioned(self) -> list[str]:
        """List display names of all provisioned packages."""
        try:
            data = self.shell.run_json(self.SCRIPT)
        except PowerShellError as e:
            raise CollaboratorUnavailable(f"Provisioned package query failed: {e}") from e
        return [str(name) for name in as_list(data) if name]

    def is_provisioned(self, name_fragment: str) -> bool:
        """Check whether any provisioned package name contains a fragment."""
        fragment = name_fragment.casefold()
        return any(fragment in name.casefold() for name in self.list_provisioned())


class StoreAppInstaller:
    """Install requests through the Store AppInstallManager API."""

    def __init__(self, shell: PowerShell | None = None) -> None:
        self.shell = shell or PowerShell()

    def build_script(self, install_id: str, repair: bool, all_users: bool) -> str:
        return (
            _INSTALL_SCRIPT.replace("${repair}", _ps_bool(repair))
            .replace("${all_users}", _ps_bool(all_users))
            .replace("${product_id}", quote(install_id))
            .replace("${client_id}", quote(CLIENT_ID))
        )

    def start_install(self, install_id: str, repair: bool, all_users: bool) -> None:
        """Request an install or repair and return once it is accepted."""
        try:
            data = self.shell.run_json(self.build_script(install_id, repair, all_users))
        except PowerShellError as e:
            raise InstallInvocationError(str(e)) from e

        accepted = as_list(data)
        if not accepted:
            raise InstallInvocationError(f"Store did not accept an install request for {install_id}")
        logger.debug("Store accepted %s: %s", install_id, accepted)
