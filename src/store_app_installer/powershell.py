"""PowerShell execution for platform queries and install requests."""

from __future__ import annotations

import json
import logging
import subprocess
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "powershell.exe"


class PowerShellError(Exception):
    """A PowerShell command failed or produced unreadable output."""

    pass


def quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"


def as_list(data: Any) -> list[Any]:
    """Normalise ConvertTo-Json output, which collapses single-item arrays."""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    return [data]


class PowerShell:
    """Runs inline PowerShell scripts and returns their output."""

    def __init__(self, executable: str = DEFAULT_EXECUTABLE, timeout: float | None = 120.0) -> None:
        """Initialize the runner.

        Args:
            executable: PowerShell binary (powershell.exe or pwsh).
            timeout: Seconds before a single command is abandoned.
        """
        self.executable = executable
        self.timeout = timeout

    def build_command(self, script: str) -> list[str]:
        """Assemble the argument vector for a script."""
        return [
            self.executable,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy",
            "Bypass",
            "-Command",
            script,
        ]

    def run(self, script: str) -> str:
        """Run a script and return its stripped stdout.

        Raises:
            PowerShellError: If PowerShell cannot be started, times out or
                exits non-zero.
        """
        cmd = self.build_command(script)
        logger.debug("Running PowerShell: %s", script)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise PowerShellError(f"{self.executable} not found") from e
        except subprocess.TimeoutExpired as e:
            raise PowerShellError(f"PowerShell timed out after {self.timeout}s") from e
        except OSError as e:
            raise PowerShellError(f"Could not run {self.executable}: {e}") from e

        if result.returncode != 0:
            message = (result.stderr or result.stdout or "").strip()
            raise PowerShellError(message or f"PowerShell exited with code {result.returncode}")
        if result.stderr and result.stderr.strip():
            logger.debug("PowerShell stderr: %s", result.stderr.strip())
        return (result.stdout or "").strip()

    def run_json(self, script: str) -> Any:
        """Run a script that ends in ConvertTo-Json and parse its output.

        Returns:
            Parsed JSON, or None when the script printed nothing.

        Raises:
            PowerShellError: If the command fails or the output is not JSON.
        """
        stdout = self.run(script)
        if not stdout:
            return None
        try:
            return json.loads(stdout)
        except json.JSONDecodeError as e:
            raise PowerShellError(f"PowerShell returned invalid JSON: {stdout[:200]}") from e
