"""All-or-nothing installation of grammar packages from the registry.

An install creates the package directory, fetches the manifest once and
downloads every file selected by the wanted patterns. Any failure deletes
the package directory before the error propagates, so a package directory
on disk always means a completed install.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import httpx
import structlog

from sitterkit.config.constants import (
    DEFAULT_DOWNLOAD_TIMEOUT_SEC,
    DEFAULT_WANTED_PATTERNS,
    MODULE_EXTENSION,
)
from sitterkit.core.errors import PackageError
from sitterkit.grammars.download import download_file
from sitterkit.grammars.patterns import SEPARATOR, is_directory_pattern, matches, validate_pattern
from sitterkit.grammars.registry import Manifest, ManifestEntry, RegistryClient
from sitterkit.grammars.store import GrammarStore

log = structlog.get_logger()


@dataclass(frozen=True)
class WantedItem:
    """A pattern to select from the manifest and the folder to put matches in."""

    pattern: str
    destination: Path


def default_wanted_items(
    destination: Path, patterns: Iterable[str] = DEFAULT_WANTED_PATTERNS
) -> list[WantedItem]:
    return [WantedItem(pattern=p, destination=destination) for p in patterns]


def filter_entries(
    manifest: Manifest, pattern: str, *, strict_prefix: bool = True
) -> list[ManifestEntry]:
    """Manifest entries whose prefix-stripped path matches *pattern*."""
    validate_pattern(pattern)
    return [
        entry
        for entry in manifest.files
        if matches(manifest.relative_path(entry, strict=strict_prefix), pattern)
    ]


class Installer:
    """Materializes registry packages into a :class:`GrammarStore`.

    Install and uninstall of the same identifier are serialized through a
    per-identifier lock; different identifiers proceed independently.
    """

    def __init__(
        self,
        store: GrammarStore,
        registry: RegistryClient,
        client: httpx.AsyncClient,
        *,
        wanted_patterns: Iterable[str] = DEFAULT_WANTED_PATTERNS,
        version: str = "latest",
        strict_prefix: bool = True,
        download_timeout: float = DEFAULT_DOWNLOAD_TIMEOUT_SEC,
        module_extension: str = MODULE_EXTENSION,
    ) -> None:
        self._store = store
        self._registry = registry
        self._client = client
        self._wanted_patterns = tuple(wanted_patterns)
        self._version = version
        self._strict_prefix = strict_prefix
        self._download_timeout = download_timeout
        self._module_extension = module_extension
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock_for(self, identifier: str) -> asyncio.Lock:
        return self._locks[identifier]

    async def install(
        self, identifier: str, wanted_items: list[WantedItem] | None = None
    ) -> bool:
        """Install *identifier*. Returns False if it is already installed.

        Raises:
            RegistryError: Manifest could not be fetched or parsed.
            InstallError: Bad pattern, or a file failed to download.
            PackageError: Directory could not be created or written, or the
                installed package has no config document.
        """
        async with self.lock_for(identifier):
            if self._store.exists(identifier):
                log.info("install_skipped", language=identifier, reason="already installed")
                return False

            package_path = self._store.package_path(identifier)
            items = (
                wanted_items
                if wanted_items is not None
                else default_wanted_items(package_path, self._wanted_patterns)
            )

            log.info("install_started", language=identifier, items=len(items))
            try:
                self._store.create_package_dir(identifier)
                count = await self._download(identifier, items)
                if not self._store.is_available(identifier):
                    raise PackageError.config_missing(identifier, str(package_path))
            except BaseException as e:
                log.error("install_failed", language=identifier, error=str(e))
                if package_path.exists():
                    await asyncio.to_thread(self._store.delete, identifier)
                raise

            log.info("install_complete", language=identifier, files=count)
            return True

    async def uninstall(self, identifier: str) -> bool:
        """Delete an installed package. Returns False if it was not installed."""
        async with self.lock_for(identifier):
            if not self._store.exists(identifier):
                return False
            deleted = await asyncio.to_thread(self._store.delete, identifier)
            log.info("uninstall_complete", language=identifier)
            return deleted

    async def _download(self, identifier: str, items: list[WantedItem]) -> int:
        manifest = await self._registry.fetch_manifest(identifier, self._version)
        # Pin every file URL to the resolved version, even if "latest" moves mid-install
        base_version = manifest.version
        count = 0

        for item in items:
            dest = item.destination
            validate_pattern(item.pattern)

            if is_directory_pattern(item.pattern):
                dest = dest / item.pattern.rstrip(SEPARATOR)
                try:
                    dest.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise PackageError.store_io(str(dest), str(e)) from e

            matching = filter_entries(manifest, item.pattern, strict_prefix=self._strict_prefix)
            log.debug(
                "pattern_matched",
                language=identifier,
                pattern=item.pattern,
                files=[e.path for e in matching],
            )

            for entry in matching:
                url = self._registry.build_url(identifier, entry.path, base_version)
                await download_file(
                    self._client,
                    url,
                    dest,
                    timeout=self._download_timeout,
                    module_extension=self._module_extension,
                )
                count += 1

        return count
