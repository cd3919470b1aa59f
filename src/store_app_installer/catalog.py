"""Catalog of the Store applications this tool can install or repair."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

__all__ = ["CATALOG", "PackageDescriptor", "UnknownPackageError", "lookup", "package_keys"]


class UnknownPackageError(Exception):
    """Requested package key is not in the catalog."""

    def __init__(self, key: str) -> None:
        self.key = key
        self.choices = package_keys()
        super().__init__(f"Unknown package '{key}'. Valid packages: {', '.join(self.choices)}")


@dataclass(frozen=True)
class PackageDescriptor:
    """Static metadata for one Store application.

    Attributes:
        key: Short identifier used on the command line.
        install_id: Store product ID passed to the installer.
        display_name: Human-readable label.
        package_name: AppX identity name; prefix of the on-disk package folder.
        provisioned_name: Substring matched against provisioned package names.
        expected_executables: File names present once installation completes.
    """

    key: str
    install_id: str
    display_name: str
    package_name: str
    provisioned_name: str
    expected_executables: frozenset[str]

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not self.key or not self.install_id or not self.display_name:
            raise ValueError("key, install_id and display_name cannot be empty")
        if not self.expected_executables:
            raise ValueError(f"{self.key}: expected_executables cannot be empty")


_DESCRIPTORS = (
    PackageDescriptor(
        key="ScreenSketch",
        install_id="9MZ95KL8MR0L",
        display_name="Snipping Tool",
        package_name="Microsoft.ScreenSketch",
        provisioned_name="Microsoft.ScreenSketch",
        expected_executables=frozenset({"SnippingTool.exe", "ScreenSketch.exe"}),
    ),
    PackageDescriptor(
        key="Photos",
        install_id="9WZDNCRFJBH4",
        display_name="Microsoft Photos",
        package_name="Microsoft.Windows.Photos",
        provisioned_name="Microsoft.Windows.Photos",
        expected_executables=frozenset({"Photos.exe", "Microsoft.Photos.exe"}),
    ),
    PackageDescriptor(
        key="Calculator",
        install_id="9WZDNCRFHVN5",
        display_name="Windows Calculator",
        package_name="Microsoft.WindowsCalculator",
        provisioned_name="Microsoft.WindowsCalculator",
        expected_executables=frozenset({"CalculatorApp.exe", "Calculator.exe"}),
    ),
    PackageDescriptor(
        key="Notepad",
        install_id="9MSMLRH6LZF3",
        display_name="Windows Notepad",
        package_name="Microsoft.WindowsNotepad",
        provisioned_name="Microsoft.WindowsNotepad",
        expected_executables=frozenset({"Notepad.exe"}),
    ),
)

CATALOG: Mapping[str, PackageDescriptor] = MappingProxyType(
    {descriptor.key: descriptor for descriptor in _DESCRIPTORS}
)


def package_keys() -> list[str]:
    """Return catalog keys in catalog order."""
    return list(CATALOG)


def lookup(key: str) -> PackageDescriptor:
    """Resolve a package key to its descriptor.

    Matching is exact first, then case-insensitive, so ``notepad`` resolves
    to ``Notepad``.

    Args:
        key: One of the catalog keys.

    Returns:
        The matching PackageDescriptor.

    Raises:
        UnknownPackageError: If the key is not in the catalog.
    """
    descriptor = CATALOG.get(key)
    if descriptor is not None:
        return descriptor
    folded = key.casefold()
    for candidate in CATALOG.values():
        if candidate.key.casefold() == folded:
            return candidate
    raise UnknownPackageError(key)
