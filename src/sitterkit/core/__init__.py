"""Core module exports."""

from sitterkit.core.errors import (
    ConfigError,
    ErrorCode,
    GrammarLoadError,
    InstallError,
    InternalError,
    PackageError,
    RegistryError,
    SitterkitError,
)
from sitterkit.core.events import EventBus
from sitterkit.core.logging import configure_logging, current_operation, operation

__all__ = [
    # Errors
    "ConfigError",
    "ErrorCode",
    "GrammarLoadError",
    "InstallError",
    "InternalError",
    "PackageError",
    "RegistryError",
    "SitterkitError",
    # Events
    "EventBus",
    # Logging
    "configure_logging",
    "current_operation",
    "operation",
]
