"""Filesystem abstraction for testability.

The RealFileSystem implementation wraps standard library operations and
satisfies the FileSystem protocol structurally.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator


class RealFileSystem:
    """Production filesystem implementation."""

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        """Check if a path is a directory."""
        return path.is_dir()

    def iterdir(self, path: Path) -> list[Path]:
        """List the direct children of a directory."""
        return list(path.iterdir())

    def rglob_files(self, path: Path) -> Iterator[Path]:
        """Yield every file below a directory, recursively."""
        for candidate in path.rglob("*"):
            if candidate.is_file():
                yield candidate

    def mkdir(self, path: Path, parents: bool = False, exist_ok: bool = False) -> None:
        """Create a directory."""
        path.mkdir(parents=parents, exist_ok=exist_ok)

    def write_text(self, path: Path, content: str) -> None:
        """Write text content to a file."""
        path.write_text(content, encoding="utf-8")
