"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (SITTERKIT__SECTION__KEY)
3. Global YAML (~/.config/sitterkit/config.yaml)
4. Built-in defaults (this file)

Environment Variable Format:
    SITTERKIT__<SECTION>__<KEY>=<VALUE>

Examples:
    SITTERKIT__LOGGING__LEVEL=DEBUG
    SITTERKIT__STORAGE__ROOT=/srv/grammars
    SITTERKIT__REGISTRY__BASE_URL=https://cdn.jsdelivr.net/npm/
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from sitterkit.config.constants import (
    CONFIG_FILENAME,
    DEFAULT_DOWNLOAD_TIMEOUT_SEC,
    DEFAULT_REGISTRY_URL,
    DEFAULT_WANTED_PATTERNS,
    LIBRARY_CACHE_DIRNAME,
    MODULE_EXTENSION,
    TREE_SITTER_DIRNAME,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        SITTERKIT__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every manifest entry and download.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class StorageConfig(BaseModel):
    """Where installed grammars live.

    Env vars:
        SITTERKIT__STORAGE__ROOT: Data directory; grammars go under <root>/tree-sitter
    """

    root: Path = Field(
        default_factory=lambda: Path("~/.local/share/sitterkit").expanduser(),
        description="Data storage root. Grammars are stored in <root>/tree-sitter/.",
    )

    @field_validator("root")
    @classmethod
    def expand_root(cls, v: Path) -> Path:
        return v.expanduser()

    @property
    def tree_sitter_path(self) -> Path:
        return self.root / TREE_SITTER_DIRNAME

    @property
    def config_path(self) -> Path:
        return self.tree_sitter_path / CONFIG_FILENAME

    @property
    def library_cache_path(self) -> Path:
        return self.root / LIBRARY_CACHE_DIRNAME


class RegistryConfig(BaseModel):
    """Remote package registry.

    Env vars:
        SITTERKIT__REGISTRY__BASE_URL: CDN base (unpkg-compatible ?meta listing)
        SITTERKIT__REGISTRY__STRICT_PREFIX: Fail when a manifest path lacks the prefix
    """

    base_url: str = Field(
        default=DEFAULT_REGISTRY_URL,
        description="Registry base URL. Must serve '<pkg>@<version>?meta' listings.",
    )
    default_version: str = Field(default="latest")
    strict_prefix: bool = Field(
        default=True,
        description="Raise when a manifest entry does not start with the manifest prefix. "
        "When False the entry is matched without its leading slash and a warning is logged.",
    )
    download_timeout_sec: float = Field(
        default=DEFAULT_DOWNLOAD_TIMEOUT_SEC,
        description="Per-file download timeout. A timeout aborts and rolls back the install.",
    )
    request_timeout_sec: float = Field(default=30.0)

    @field_validator("base_url")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        return v if v.endswith("/") else v + "/"

    @field_validator("download_timeout_sec", "request_timeout_sec")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v


class InstallConfig(BaseModel):
    """Which files of a registry package get materialized on disk."""

    wanted_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_WANTED_PATTERNS),
        description="Exact names, single-level globs, or directory prefixes ending in '/'.",
    )
    module_extension: str = Field(default=MODULE_EXTENSION)


class SitterkitConfig(BaseModel):
    """Root configuration model (for type hints)."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    install: InstallConfig = Field(default_factory=InstallConfig)
