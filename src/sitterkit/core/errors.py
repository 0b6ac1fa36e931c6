"""Sitterkit error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Registry
- 4xxx: Install
- 5xxx: Store / package
- 6xxx: Grammar load
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Registry (3xxx)
    MANIFEST_BAD_STATUS = 3001
    MANIFEST_BAD_BODY = 3002
    MANIFEST_PREFIX_MISMATCH = 3003

    # Install (4xxx)
    PATTERN_MALFORMED = 4001
    DOWNLOAD_TIMEOUT = 4002
    DOWNLOAD_EMPTY = 4003
    DOWNLOAD_FAILED = 4004

    # Store / package (5xxx)
    PACKAGE_CONFIG_MISSING = 5001
    STORE_IO_ERROR = 5002

    # Grammar load (6xxx)
    GRAMMAR_NO_MODULE = 6001
    GRAMMAR_LOADER_FAILED = 6002
    GRAMMAR_UNAVAILABLE = 6003
    ENGINE_NOT_READY = 6004

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class SitterkitError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'DOWNLOAD_TIMEOUT')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(SitterkitError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class RegistryError(SitterkitError):
    """Manifest fetch failures against the remote registry."""

    @classmethod
    def bad_status(cls, url: str, status: int) -> "RegistryError":
        return cls(
            code=ErrorCode.MANIFEST_BAD_STATUS,
            message=f"Failed to fetch manifest from {url} (status {status})",
            retryable=status >= 500,
            details={"url": url, "status": status},
        )

    @classmethod
    def bad_body(cls, url: str, reason: str) -> "RegistryError":
        return cls(
            code=ErrorCode.MANIFEST_BAD_BODY,
            message=f"Unexpected manifest body from {url}: {reason}",
            details={"url": url, "reason": reason},
        )

    @classmethod
    def prefix_mismatch(cls, prefix: str, path: str) -> "RegistryError":
        return cls(
            code=ErrorCode.MANIFEST_PREFIX_MISMATCH,
            message=f"Manifest entry {path!r} does not start with prefix {prefix!r}",
            details={"prefix": prefix, "path": path},
        )


class InstallError(SitterkitError):
    """Errors raised while materializing a grammar package."""

    @classmethod
    def malformed_pattern(cls, pattern: str, reason: str) -> "InstallError":
        return cls(
            code=ErrorCode.PATTERN_MALFORMED,
            message=f"Malformed pattern {pattern!r}: {reason}",
            details={"pattern": pattern, "reason": reason},
        )

    @classmethod
    def download_timeout(cls, url: str, timeout: float) -> "InstallError":
        return cls(
            code=ErrorCode.DOWNLOAD_TIMEOUT,
            message=f"Download timeout after {timeout:g}s: {url}",
            retryable=True,
            details={"url": url, "timeout": timeout},
        )

    @classmethod
    def download_empty(cls, url: str) -> "InstallError":
        return cls(
            code=ErrorCode.DOWNLOAD_EMPTY,
            message=f"Empty content from {url}",
            details={"url": url},
        )

    @classmethod
    def download_failed(cls, url: str, reason: str) -> "InstallError":
        return cls(
            code=ErrorCode.DOWNLOAD_FAILED,
            message=f"Failed to download {url}: {reason}",
            details={"url": url, "reason": reason},
        )


class PackageError(SitterkitError):
    """Errors from the on-disk grammar package store."""

    @classmethod
    def config_missing(cls, name: str, path: str) -> "PackageError":
        return cls(
            code=ErrorCode.PACKAGE_CONFIG_MISSING,
            message=f"Grammar package '{name}' has no tree-sitter.json",
            details={"name": name, "path": path},
        )

    @classmethod
    def store_io(cls, path: str, reason: str) -> "PackageError":
        return cls(
            code=ErrorCode.STORE_IO_ERROR,
            message=f"Filesystem error at {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class GrammarLoadError(SitterkitError):
    """Errors loading a compiled grammar or building a parser for it."""

    @classmethod
    def no_module(cls, name: str) -> "GrammarLoadError":
        return cls(
            code=ErrorCode.GRAMMAR_NO_MODULE,
            message=f"No grammar module available for language '{name}'",
            details={"name": name},
        )

    @classmethod
    def loader_failed(cls, name: str, reason: str) -> "GrammarLoadError":
        return cls(
            code=ErrorCode.GRAMMAR_LOADER_FAILED,
            message=f"Failed to load grammar for language '{name}': {reason}",
            details={"name": name, "reason": reason},
        )

    @classmethod
    def unavailable(cls, name: str) -> "GrammarLoadError":
        return cls(
            code=ErrorCode.GRAMMAR_UNAVAILABLE,
            message=f"Cannot create parser: language '{name}' is not available",
            details={"name": name},
        )

    @classmethod
    def engine_not_ready(cls) -> "GrammarLoadError":
        return cls(
            code=ErrorCode.ENGINE_NOT_READY,
            message="Parsing engine has not been bootstrapped",
        )


class InternalError(SitterkitError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
