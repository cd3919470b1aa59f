"""Configuration management."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from store_app_installer.poller import PollPolicy
from store_app_installer.windows import DEFAULT_INSTALL_ROOT

# Default configuration location
CONFIG_DIR = Path.home() / ".store-app-installer"


class Settings(BaseModel):
    """Tunable settings, stored as camelCase JSON."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    poll_interval: float = Field(default=1.0, gt=0, alias="pollInterval")
    timeout: float = Field(default=300.0, ge=0)
    backoff: float = Field(default=1.0, ge=1.0)
    max_interval: float = Field(default=10.0, gt=0, alias="maxInterval")
    settle_delay: float = Field(default=2.0, ge=0, alias="settleDelay")
    all_users: bool = Field(default=True, alias="allUsers")
    install_root: Path = Field(default=DEFAULT_INSTALL_ROOT, alias="installRoot")
    output_dir: Path | None = Field(default=None, alias="outputDir")

    @field_validator("output_dir", mode="before")
    @classmethod
    def _empty_output_dir(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def poll_policy(self, timeout: float | None = None, interval: float | None = None) -> PollPolicy:
        """Build the poll policy, with optional per-run overrides."""
        poll_interval = interval if interval is not None else self.poll_interval
        return PollPolicy(
            interval=poll_interval,
            timeout=timeout if timeout is not None else self.timeout,
            backoff=self.backoff,
            max_interval=max(self.max_interval, poll_interval),
        )

    def resolved_output_dir(self) -> Path:
        """Directory for CSV exports and transcripts."""
        return self.output_dir or Path(tempfile.gettempdir())


def _field_for_key(key: str) -> str:
    """Map a CLI key (camelCase alias, snake_case or kebab-case) to a field name."""
    normalized = key.replace("-", "_")
    for name, info in Settings.model_fields.items():
        if normalized == name or key == info.alias:
            return name
    raise ValueError(f"Unknown configuration key: {key}")


class ConfigManager:
    """Loads and saves settings."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize the config manager.

        Args:
            config_dir: Directory for config.json. Defaults to
                ~/.store-app-installer.

        Note:
            Prefer using factory methods `create()` or `create_default()` for construction.
        """
        self.config_dir = config_dir or CONFIG_DIR
        self.config_file = self.config_dir / "config.json"

    @classmethod
    def create(cls, config_dir: Path) -> ConfigManager:
        """Create a config manager with a custom directory."""
        return cls(config_dir=config_dir)

    @classmethod
    def create_default(cls) -> ConfigManager:
        """Create a config manager using ~/.store-app-installer."""
        return cls()

    def load(self) -> Settings:
        """Load settings from disk, falling back to defaults.

        Raises:
            ValueError: If the file is not valid JSON or fails validation.
        """
        if not self.config_file.exists():
            return Settings()
        try:
            data = json.loads(self.config_file.read_text())
            return Settings.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ValueError(f"Invalid configuration in {self.config_file}: {e}") from e

    def save(self, settings: Settings) -> None:
        """Save settings to disk."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        data = settings.model_dump(mode="json", by_alias=True, exclude_none=True)
        self.config_file.write_text(json.dumps(data, indent=2))

    def set_value(self, key: str, raw: str) -> Settings:
        """Validate and persist a single setting.

        Args:
            key: Setting name (e.g. pollInterval or poll-interval).
            raw: Value as typed on the command line.

        Returns:
            The updated settings.

        Raises:
            ValueError: If the key is unknown or the value is invalid.
        """
        name = _field_for_key(key)
        settings = self.load()
        data = settings.model_dump(by_alias=False)
        data[name] = raw
        try:
            updated = Settings.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid value for {key}: {raw}") from e
        self.save(updated)
        return updated
