"""Remote registry client for npm-style grammar packages.

The registry is any unpkg-compatible CDN. A package listing is requested
with ``GET <base>/tree-sitter-<id>@<version>?meta`` and individual files
are fetched from ``<base>/tree-sitter-<id>@<version>/<path>``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from sitterkit.config.constants import MODULE_PREFIX
from sitterkit.core.errors import RegistryError

log = structlog.get_logger()


@dataclass(frozen=True)
class ManifestEntry:
    """One file listed by the registry (path still carries the manifest prefix)."""

    path: str


@dataclass(frozen=True)
class Manifest:
    """Snapshot of every file in one resolved package version."""

    files: tuple[ManifestEntry, ...]
    prefix: str
    version: str

    def relative_path(self, entry: ManifestEntry, *, strict: bool = True) -> str:
        """Strip the shared prefix from *entry*.

        When the entry does not carry the prefix, raise in strict mode,
        otherwise return it without its leading slash.
        """
        if entry.path.startswith(self.prefix):
            return entry.path[len(self.prefix) :]
        if strict:
            raise RegistryError.prefix_mismatch(self.prefix, entry.path)
        log.warning("manifest_prefix_mismatch", prefix=self.prefix, path=entry.path)
        return entry.path.lstrip("/")


def package_name(identifier: str) -> str:
    return f"{MODULE_PREFIX}{identifier}"


def _flatten_files(nodes: list[Any]) -> list[ManifestEntry]:
    """Flatten unpkg listings, which nest directories as ``{"type": "directory", "files": [...]}``."""
    entries: list[ManifestEntry] = []
    for node in nodes:
        if not isinstance(node, dict) or "path" not in node:
            raise ValueError(f"manifest entry without path: {node!r}")
        if node.get("type") == "directory":
            entries.extend(_flatten_files(node.get("files") or []))
        else:
            entries.append(ManifestEntry(path=str(node["path"])))
    return entries


class RegistryClient:
    """Request/response client for package manifests. Does not retry."""

    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"

    @property
    def base_url(self) -> str:
        return self._base_url

    def build_url(self, identifier: str, path: str = "", version: str = "latest") -> str:
        """Join base, ``tree-sitter-<id>@<version>`` and an optional file path."""
        url = f"{self._base_url}{package_name(identifier)}@{version}"
        path = path.lstrip("/")
        return f"{url}/{path}" if path else url

    async def fetch_manifest(self, identifier: str, version: str = "latest") -> Manifest:
        """Fetch and validate the file listing for one package version."""
        url = f"{self.build_url(identifier, version=version)}?meta"
        log.debug("manifest_fetch", url=url)

        try:
            response = await self._client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise RegistryError.bad_body(url, f"request failed: {e}") from e

        if response.status_code != 200:
            raise RegistryError.bad_status(url, response.status_code)

        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RegistryError.bad_body(url, f"invalid JSON: {e}") from e

        if not isinstance(body, dict) or not isinstance(body.get("files"), list):
            raise RegistryError.bad_body(url, "missing 'files' array")

        try:
            files = _flatten_files(body["files"])
        except ValueError as e:
            raise RegistryError.bad_body(url, str(e)) from e

        manifest = Manifest(
            files=tuple(files),
            prefix=str(body.get("prefix") or "/"),
            version=str(body.get("version") or version),
        )
        log.debug(
            "manifest_fetched",
            package=package_name(identifier),
            version=manifest.version,
            files=len(manifest.files),
        )
        return manifest
