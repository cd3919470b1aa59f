"""Install or repair built-in Windows Store apps and confirm the result."""

__version__ = "0.1.0"

# Export protocol interfaces for type hints and dependency injection
from store_app_installer.protocols import (
    FileSystem,
    PackageInventory,
    ProvisioningRegistry,
    StoreInstaller,
)

__all__ = [
    "__version__",
    "FileSystem",
    "PackageInventory",
    "ProvisioningRegistry",
    "StoreInstaller",
]
