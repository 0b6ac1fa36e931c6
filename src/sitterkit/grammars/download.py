"""Single-file download with extension-driven read mode and a hard timeout."""

from __future__ import annotations

import asyncio
import json
from enum import Enum
from pathlib import Path, PurePosixPath
from urllib.parse import urlsplit

import httpx
import structlog

from sitterkit.config.constants import DEFAULT_DOWNLOAD_TIMEOUT_SEC, MODULE_EXTENSION
from sitterkit.core.errors import InstallError, PackageError

log = structlog.get_logger()


class ReadMode(str, Enum):
    """How a downloaded payload is decoded before it is written."""

    JSON = "json"
    BINARY = "binary"
    TEXT = "text"


def read_mode_for(filename: str, module_extension: str = MODULE_EXTENSION) -> ReadMode:
    ext = PurePosixPath(filename).suffix.lower()
    if ext == ".json":
        return ReadMode.JSON
    if ext == module_extension:
        return ReadMode.BINARY
    return ReadMode.TEXT


def url_basename(url: str) -> str:
    return PurePosixPath(urlsplit(url).path).name


async def _read(client: httpx.AsyncClient, url: str, mode: ReadMode) -> bytes | str | None:
    response = await client.get(url, follow_redirects=True)
    if response.status_code != 200:
        raise InstallError.download_failed(url, f"status {response.status_code}")

    if mode is ReadMode.BINARY:
        return response.content
    if mode is ReadMode.JSON:
        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InstallError.download_failed(url, f"invalid JSON: {e}") from e
        if data is None:
            return None
        return json.dumps(data, indent=2)
    return response.text


async def download_file(
    client: httpx.AsyncClient,
    url: str,
    folder: Path,
    *,
    timeout: float = DEFAULT_DOWNLOAD_TIMEOUT_SEC,
    module_extension: str = MODULE_EXTENSION,
) -> Path:
    """Download *url* into *folder* under its base name.

    Remote subdirectories are not recreated: the destination folder is
    fully decided by the caller.

    Raises:
        InstallError: On timeout, non-200 status, transport failure, or empty payload.
        PackageError: If the file cannot be written.
    """
    filename = url_basename(url)
    mode = read_mode_for(filename, module_extension)

    try:
        async with asyncio.timeout(timeout):
            content = await _read(client, url, mode)
    except TimeoutError as e:
        log.error("download_timeout", url=url, timeout=timeout)
        raise InstallError.download_timeout(url, timeout) from e
    except httpx.HTTPError as e:
        log.error("download_failed", url=url, error=str(e))
        raise InstallError.download_failed(url, str(e)) from e

    # A zero-byte grammar module is never valid
    if content is None or (mode is ReadMode.BINARY and not content):
        raise InstallError.download_empty(url)

    path = folder / filename
    try:
        if isinstance(content, bytes):
            await asyncio.to_thread(path.write_bytes, content)
        else:
            await asyncio.to_thread(path.write_text, content, encoding="utf-8")
    except OSError as e:
        raise PackageError.store_io(str(path), str(e)) from e

    log.debug("file_downloaded", url=url, path=str(path), mode=mode.value)
    return path
