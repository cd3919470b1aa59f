"""Allow ``python -m store_app_installer``."""

from store_app_installer.cli import app

app()
