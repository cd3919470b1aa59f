"""Tests for application context."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from store_app_installer.catalog import CATALOG
from store_app_installer.config import ConfigManager, Settings
from store_app_installer.context import AppContext, create_context
from store_app_installer.filesystem import RealFileSystem
from store_app_installer.install import Installer
from store_app_installer.windows import (
    AppxInventory,
    AppxProvisioningRegistry,
    StoreAppInstaller,
)


class TestAppContext:
    """Tests for AppContext dataclass."""

    def test_create_with_mocks(self) -> None:
        """Test creating AppContext with mock dependencies."""
        # Arrange
        settings = Settings()
        config = MagicMock()
        inventory = MagicMock()
        registry = MagicMock()
        store = MagicMock()
        installer = MagicMock()

        # Act
        ctx = AppContext(
            settings=settings,
            config=config,
            inventory=inventory,
            registry=registry,
            store=store,
            installer=installer,
        )

        # Assert
        assert ctx.settings is settings
        assert ctx.inventory is inventory
        assert ctx.registry is registry
        assert ctx.store is store
        assert ctx.installer is installer
        assert isinstance(ctx.filesystem, RealFileSystem)

    def test_custom_filesystem(self, mock_filesystem: MagicMock) -> None:
        ctx = AppContext(
            settings=Settings(),
            config=MagicMock(),
            inventory=MagicMock(),
            registry=MagicMock(),
            store=MagicMock(),
            installer=MagicMock(),
            filesystem=mock_filesystem,
        )

        assert ctx.filesystem is mock_filesystem


class TestCreateContext:
    """Tests for create_context factory function."""

    def test_wires_windows_collaborators(self, tmp_path: Path) -> None:
        ctx = create_context(config_dir=tmp_path)

        assert isinstance(ctx.config, ConfigManager)
        assert ctx.config.config_dir == tmp_path
        assert isinstance(ctx.inventory, AppxInventory)
        assert isinstance(ctx.registry, AppxProvisioningRegistry)
        assert isinstance(ctx.store, StoreAppInstaller)
        assert isinstance(ctx.installer, Installer)
        assert ctx.installer.store is ctx.store
        assert ctx.installer.inventory is ctx.inventory

    def test_loads_saved_settings(self, tmp_path: Path) -> None:
        # Arrange
        (tmp_path / "config.json").write_text(
            json.dumps({"timeout": 45, "settleDelay": 0, "installRoot": str(tmp_path / "apps")})
        )

        # Act
        ctx = create_context(config_dir=tmp_path)

        # Assert
        assert ctx.settings.timeout == 45
        assert ctx.installer.settle_delay == 0
        assert ctx.installer.install_root == tmp_path / "apps"
        assert ctx.installer.poller.policy.timeout == 45

    def test_overrides_reach_poll_policy(self, tmp_path: Path) -> None:
        ctx = create_context(config_dir=tmp_path, timeout=12, interval=3)

        assert ctx.installer.poller.policy.timeout == 12
        assert ctx.installer.poller.policy.interval == 3

    def test_all_users_polls_registry(self, tmp_path: Path) -> None:
        ctx = create_context(config_dir=tmp_path, all_users=True)

        with patch.object(AppxProvisioningRegistry, "is_provisioned", return_value=True) as probe:
            assert ctx.installer.poller.probe(CATALOG["Notepad"]) is True

        probe.assert_called_once_with("Microsoft.WindowsNotepad")
        assert ctx.installer.all_users is True

    def test_current_user_polls_inventory(self, tmp_path: Path) -> None:
        ctx = create_context(config_dir=tmp_path, all_users=False)

        with patch.object(AppxInventory, "find_package", return_value=None) as probe:
            assert ctx.installer.poller.probe(CATALOG["Notepad"]) is False

        probe.assert_called_once_with("Microsoft.WindowsNotepad")
        assert ctx.settings.all_users is False
        assert ctx.installer.all_users is False
        assert ctx.inventory.all_users is False

    def test_invalid_config_raises(self, tmp_path: Path) -> None:
        (tmp_path / "config.json").write_text("{not json")

        with pytest.raises(ValueError, match="Invalid configuration"):
            create_context(config_dir=tmp_path)
