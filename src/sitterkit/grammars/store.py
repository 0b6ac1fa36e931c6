"""Filesystem-backed store of installed grammar packages.

Layout::

    <root>/tree-sitter/
      config.json
      <grammar-id>/
        tree-sitter.json
        tree-sitter-<id>.so          (.dylib on macOS, .dll on Windows)
        queries/highlights.scm
"""

from __future__ import annotations

import asyncio
import json
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from sitterkit.config.constants import (
    CONFIG_FILENAME,
    MODULE_EXTENSION,
    PACKAGE_CONFIG_FILENAME,
    QUERIES_DIRNAME,
)
from sitterkit.core.errors import ConfigError, PackageError
from sitterkit.grammars.language import LanguageHandle

if TYPE_CHECKING:
    from sitterkit.grammars.engine import GrammarEngine

log = structlog.get_logger()


class GrammarStore:
    """One directory per grammar identifier under ``root``."""

    def __init__(self, root: Path, *, module_extension: str = MODULE_EXTENSION) -> None:
        self._root = root
        self._module_extension = module_extension

    @property
    def root(self) -> Path:
        return self._root

    @property
    def config_path(self) -> Path:
        return self._root / CONFIG_FILENAME

    def package_path(self, identifier: str) -> Path:
        if not identifier or "/" in identifier or "\\" in identifier or identifier in (".", ".."):
            raise ValueError(f"Invalid grammar identifier: {identifier!r}")
        return self._root / identifier

    # ------------------------------------------------------------------
    # Presence
    # ------------------------------------------------------------------

    def exists(self, identifier: str) -> bool:
        """True if a package directory exists (installed or being installed)."""
        return self.package_path(identifier).is_dir()

    def is_available(self, identifier: str) -> bool:
        """True if the package directory exists and carries its config document."""
        path = self.package_path(identifier)
        return path.is_dir() and (path / PACKAGE_CONFIG_FILENAME).is_file()

    def list_languages(self) -> list[str]:
        """Identifiers of every package directory. Empty if the root is missing."""
        if not self._root.is_dir():
            return []
        try:
            return sorted(p.name for p in self._root.iterdir() if p.is_dir())
        except OSError as e:
            raise PackageError.store_io(str(self._root), str(e)) from e

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def ensure_root(self) -> bool:
        """Create the storage root and an empty config document if missing.

        Returns True if anything was created.
        """
        created = False
        try:
            if not self._root.is_dir():
                self._root.mkdir(parents=True, exist_ok=True)
                created = True
            if not self.config_path.exists():
                self.config_path.write_text("{}")
                created = True
        except OSError as e:
            raise PackageError.store_io(str(self._root), str(e)) from e
        return created

    def create_package_dir(self, identifier: str) -> Path:
        path = self.package_path(identifier)
        try:
            path.mkdir(parents=True)
        except OSError as e:
            raise PackageError.store_io(str(path), str(e)) from e
        return path

    def delete(self, identifier: str) -> bool:
        """Remove a package directory. Returns False if it was absent."""
        path = self.package_path(identifier)
        if not path.exists():
            return False
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise PackageError.store_io(str(path), str(e)) from e
        return True

    def purge(self) -> bool:
        """Remove the whole storage root, every package and the config document."""
        if not self._root.exists():
            return False
        try:
            shutil.rmtree(self._root)
        except OSError as e:
            raise PackageError.store_io(str(self._root), str(e)) from e
        return True

    # ------------------------------------------------------------------
    # Process-wide config document
    # ------------------------------------------------------------------

    def read_config(self) -> dict[str, Any]:
        """Load ``config.json``. A missing document is an empty config."""
        if not self.config_path.exists():
            return {}
        try:
            data = json.loads(self.config_path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            raise ConfigError.parse_error(str(self.config_path), str(e)) from e
        except OSError as e:
            raise PackageError.store_io(str(self.config_path), str(e)) from e
        if not isinstance(data, dict):
            raise ConfigError.parse_error(str(self.config_path), "top level must be an object")
        return data

    def write_config(self, config: dict[str, Any]) -> None:
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(json.dumps(config, indent=2), encoding="utf-8")
        except OSError as e:
            raise PackageError.store_io(str(self.config_path), str(e)) from e

    # ------------------------------------------------------------------
    # Reading packages
    # ------------------------------------------------------------------

    async def read_package(self, identifier: str, engine: GrammarEngine) -> LanguageHandle | None:
        """Build a LanguageHandle from the package on disk, or None if not installed.

        Raises:
            PackageError: If the package has no config document or a module is unreadable.
            ConfigError: If the config document is not valid JSON.
        """
        path = self.package_path(identifier)
        if not path.is_dir():
            return None

        config_file = path / PACKAGE_CONFIG_FILENAME
        if not config_file.is_file():
            raise PackageError.config_missing(identifier, str(path))

        module_files = sorted(
            p for p in path.iterdir() if p.is_file() and p.suffix == self._module_extension
        )

        config_text, *module_contents = await asyncio.gather(
            _read_text(config_file),
            *(_read_bytes(p) for p in module_files),
        )
        try:
            config = json.loads(config_text or "{}")
        except json.JSONDecodeError as e:
            raise ConfigError.parse_error(str(config_file), str(e)) from e

        modules = {p.name: content for p, content in zip(module_files, module_contents)}
        queries = await self._read_queries(path / QUERIES_DIRNAME)

        log.debug(
            "package_read",
            language=identifier,
            modules=sorted(modules),
            queries=len(queries),
        )
        return LanguageHandle(
            identifier,
            config,
            modules,
            queries,
            engine,
            module_extension=self._module_extension,
        )

    async def _read_queries(self, queries_dir: Path) -> dict[str, str]:
        """Best-effort scan of the queries directory. Failures yield an empty mapping."""
        if not queries_dir.is_dir():
            return {}
        try:
            files = sorted(p for p in queries_dir.rglob("*") if p.is_file())
            contents = await asyncio.gather(*(_read_text(p) for p in files))
        except (OSError, PackageError) as e:
            log.warning("queries_scan_failed", path=str(queries_dir), error=str(e))
            return {}
        return {
            p.relative_to(queries_dir).as_posix(): content for p, content in zip(files, contents)
        }


async def _read_text(path: Path) -> str:
    try:
        return await asyncio.to_thread(path.read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PackageError.store_io(str(path), str(e)) from e


async def _read_bytes(path: Path) -> bytes:
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise PackageError.store_io(str(path), str(e)) from e
