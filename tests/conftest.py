"""Shared test fixtures."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Iterable
from unittest.mock import MagicMock

import pytest

from store_app_installer.catalog import CATALOG, PackageDescriptor
from store_app_installer.config import ConfigManager, Settings
from store_app_installer.filesystem import RealFileSystem
from store_app_installer.install import Installer
from store_app_installer.poller import PollPolicy, StatePoller
from store_app_installer.types import (
    CollaboratorUnavailable,
    InstalledPackage,
    InstallInvocationError,
)


# ============================================================================
# Fake Collaborators
# ============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeInventory:
    """Package inventory holding a set of installed package names."""

    def __init__(self, installed: Iterable[str] = (), fail: bool = False) -> None:
        self.installed = set(installed)
        self.fail = fail
        self.queries: list[str] = []

    def find_package(self, package_name: str) -> InstalledPackage | None:
        self.queries.append(package_name)
        if self.fail:
            raise CollaboratorUnavailable("inventory offline")
        if package_name in self.installed:
            return InstalledPackage(name=package_name, full_name=f"{package_name}_1.0.0.0_x64__8wekyb3d8bbwe")
        return None


class FakeRegistry:
    """Provisioned registry that starts matching after a number of polls."""

    def __init__(
        self,
        names: Iterable[str] = (),
        appear_after: int | None = None,
        appearing: str = "",
        fail: bool = False,
    ) -> None:
        self.names = list(names)
        self.appear_after = appear_after
        self.appearing = appearing
        self.fail = fail
        self.polls = 0

    def list_provisioned(self) -> list[str]:
        self.polls += 1
        if self.fail:
            raise CollaboratorUnavailable("registry offline")
        if self.appear_after is not None and self.polls >= self.appear_after:
            return [*self.names, self.appearing]
        return list(self.names)

    def is_provisioned(self, name_fragment: str) -> bool:
        fragment = name_fragment.casefold()
        return any(fragment in name.casefold() for name in self.list_provisioned())


class FakeStore:
    """Store installer recording requests; optionally rejects or deploys."""

    def __init__(self, reject: str | None = None, on_install=None) -> None:
        self.reject = reject
        self.on_install = on_install
        self.requests: list[tuple[str, bool, bool]] = []

    def start_install(self, install_id: str, repair: bool, all_users: bool) -> None:
        self.requests.append((install_id, repair, all_users))
        if self.reject is not None:
            raise InstallInvocationError(self.reject)
        if self.on_install is not None:
            self.on_install(install_id)


def failing_powershell_run(raw_stderr: bytes, returncode: int = 1):
    """subprocess.run stand-in that decodes raw stderr the way run() asks it to."""

    def run(cmd, **kwargs) -> subprocess.CompletedProcess:
        stderr = raw_stderr.decode(kwargs.get("encoding") or "utf-8", kwargs.get("errors") or "strict")
        return subprocess.CompletedProcess(args=cmd, returncode=returncode, stdout="", stderr=stderr)

    return run


def make_package_dir(
    root: Path, descriptor: PackageDescriptor, with_executable: bool = True, version: str = "11.2409.1.0"
) -> Path:
    """Create a deployed package folder under ``root``."""
    folder = root / f"{descriptor.package_name}_{version}_x64__8wekyb3d8bbwe"
    (folder / "Assets").mkdir(parents=True, exist_ok=True)
    (folder / "AppxManifest.xml").write_text("<Package/>")
    if with_executable:
        exe = sorted(descriptor.expected_executables)[0]
        (folder / "App").mkdir(exist_ok=True)
        (folder / "App" / exe).write_bytes(b"MZ")
    return folder


def deploy_by_install_id(root: Path):
    """on_install hook that deploys the package matching a Store ID."""
    by_id = {d.install_id: d for d in CATALOG.values()}

    def deploy(install_id: str) -> None:
        make_package_dir(root, by_id[install_id])

    return deploy


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def temp_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Override home directory for testing."""
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    return tmp_path


@pytest.fixture
def install_root(tmp_path: Path) -> Path:
    """Empty package installation root."""
    root = tmp_path / "WindowsApps"
    root.mkdir()
    return root


@pytest.fixture
def notepad() -> PackageDescriptor:
    return CATALOG["Notepad"]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fast_policy() -> PollPolicy:
    """One second interval, ten second timeout."""
    return PollPolicy(interval=1.0, timeout=10.0)


@pytest.fixture
def make_installer(install_root: Path, clock: FakeClock, fast_policy: PollPolicy):
    """Build an Installer wired to fakes and the fake clock."""

    def build(
        inventory: FakeInventory | None = None,
        registry: FakeRegistry | None = None,
        store: FakeStore | None = None,
    ) -> Installer:
        registry = registry or FakeRegistry()
        poller = StatePoller(
            lambda d: registry.is_provisioned(d.provisioned_name),
            fast_policy,
            clock=clock,
            sleep=clock.sleep,
        )
        return Installer(
            inventory=inventory or FakeInventory(),
            store=store or FakeStore(),
            poller=poller,
            filesystem=RealFileSystem(),
            install_root=install_root,
            settle_delay=2.0,
            sleep=clock.sleep,
        )

    return build


@pytest.fixture
def settings(tmp_path: Path, install_root: Path) -> Settings:
    """Settings pointing at temporary directories."""
    return Settings(install_root=install_root, output_dir=tmp_path / "out", settle_delay=0)


@pytest.fixture
def config_manager(tmp_path: Path) -> ConfigManager:
    return ConfigManager.create(tmp_path / "config")


@pytest.fixture
def mock_filesystem() -> MagicMock:
    """Create a mock FileSystem for testing.

    The mock tracks all filesystem operations without touching real files.
    """
    fs = MagicMock()
    fs.exists.return_value = True
    fs.is_dir.return_value = True
    fs.iterdir.return_value = []
    fs.rglob_files.return_value = iter([])
    return fs
