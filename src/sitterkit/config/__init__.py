"""Config module exports."""

from sitterkit.config.loader import SitterkitSettings, load_config
from sitterkit.config.models import (
    InstallConfig,
    LoggingConfig,
    RegistryConfig,
    SitterkitConfig,
    StorageConfig,
)

__all__ = [
    "load_config",
    "SitterkitConfig",
    "SitterkitSettings",
    "StorageConfig",
    "RegistryConfig",
    "InstallConfig",
    "LoggingConfig",
]
