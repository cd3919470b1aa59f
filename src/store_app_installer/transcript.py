"""Logging setup: Rich console output plus an optional transcript file."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

TRANSCRIPT_PREFIX = "StoreAppInstaller"
TRANSCRIPT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_PACKAGE_LOGGER = "store_app_installer"


def transcript_path(directory: Path, now: datetime | None = None) -> Path:
    """Timestamped transcript file name inside ``directory``."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return directory / f"{TRANSCRIPT_PREFIX}_{stamp}.log"


def configure_logging(
    verbose: bool = False,
    directory: Path | None = None,
    console: Console | None = None,
    now: datetime | None = None,
) -> Path | None:
    """Configure package logging.

    Console output goes through Rich at WARNING, or INFO when verbose. A
    verbose run with an output directory also writes a DEBUG transcript.

    Args:
        verbose: Enable INFO console output and the transcript file.
        directory: Where the transcript is written.
        console: Console for the Rich handler.
        now: Timestamp for the transcript name.

    Returns:
        Path of the transcript file, or None when no transcript is written.
    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    rich_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    logger.addHandler(rich_handler)

    if not verbose or directory is None:
        return None

    directory.mkdir(parents=True, exist_ok=True)
    path = transcript_path(directory, now)
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(TRANSCRIPT_FORMAT))
    logger.addHandler(file_handler)
    logger.debug("Transcript started: %s", path)
    return path
