"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides a fake parsing engine and a fake npm CDN registry.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from sitterkit.config.constants import MODULE_EXTENSION  # noqa: E402
from sitterkit.config.models import SitterkitConfig  # noqa: E402

REGISTRY_URL = "https://registry.test/"

JSON_PACKAGE: dict[str, bytes | str] = {
    "tree-sitter.json": json.dumps({"grammars": [{"name": "json", "scope": "source.json"}]}),
    f"tree-sitter-json{MODULE_EXTENSION}": b"\x7fELF-json",
    "queries/highlights.scm": "(string) @string\n",
    "package.json": json.dumps({"name": "tree-sitter-json"}),
    "src/parser.c": "/* generated */",
    "bindings/node/index.js": "module.exports = {};",
}


# ---------------------------------------------------------------------------
# Fake parsing engine
# ---------------------------------------------------------------------------


@dataclass
class FakeGrammar:
    name: str
    module: bytes


@dataclass
class FakeTree:
    source: bytes
    grammar: FakeGrammar

    @property
    def root_node(self) -> str:
        return f"(document {self.grammar.name})"


@dataclass
class FakeParser:
    language: FakeGrammar
    parsed: list[bytes] = field(default_factory=list)

    def parse(self, source: bytes) -> FakeTree:
        self.parsed.append(source)
        return FakeTree(source, self.language)


class FakeEngine:
    """Stand-in for TreeSitterEngine that records every load."""

    def __init__(self, *, fail_bootstrap: bool = False, reject: set[str] | None = None) -> None:
        self._ready = False
        self.fail_bootstrap = fail_bootstrap
        self.reject = reject or set()
        self.bootstrap_calls = 0
        self.loads: list[tuple[str, bytes]] = []
        self.parsers: list[FakeParser] = []

    @property
    def ready(self) -> bool:
        return self._ready

    async def bootstrap(self) -> None:
        self.bootstrap_calls += 1
        await asyncio.sleep(0)
        if self.fail_bootstrap:
            raise RuntimeError("engine bootstrap failed")
        self._ready = True

    def load_language(self, name: str, module: bytes) -> FakeGrammar:
        if name in self.reject:
            raise RuntimeError(f"bad module for {name}")
        self.loads.append((name, module))
        return FakeGrammar(name, module)

    def create_parser(self, language: FakeGrammar) -> FakeParser:
        parser = FakeParser(language)
        self.parsers.append(parser)
        return parser


# ---------------------------------------------------------------------------
# Fake npm CDN (unpkg-compatible)
# ---------------------------------------------------------------------------


@dataclass
class FakeRegistry:
    """Serves ``?meta`` listings and file bytes for in-memory packages."""

    packages: dict[str, dict[str, bytes | str]] = field(default_factory=dict)
    version: str = "0.24.8"
    prefix: str = "/"
    fail_nth_download: int | None = None
    fail_status: int = 500
    empty_paths: set[str] = field(default_factory=set)
    slow_paths: set[str] = field(default_factory=set)
    slow_seconds: float = 1.0
    requests: list[str] = field(default_factory=list)
    downloads: int = 0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = unquote(request.url.path).lstrip("/")
        self.requests.append(unquote(str(request.url)))
        package, _, rel = path.partition("/")
        name, _, version = package.rpartition("@")
        identifier = name.removeprefix("tree-sitter-")

        files = self.packages.get(identifier)
        if files is None:
            return httpx.Response(404, text="Not found")

        if "meta" in request.url.params:
            return httpx.Response(
                200,
                json={
                    "package": name,
                    "version": self.version,
                    "prefix": self.prefix,
                    "files": [{"path": "/" + p, "type": "file"} for p in files],
                },
            )

        assert version == self.version, "file downloads must use the resolved version"
        self.downloads += 1
        if self.fail_nth_download is not None and self.downloads == self.fail_nth_download:
            return httpx.Response(self.fail_status, text="boom")
        if rel in self.slow_paths:
            await asyncio.sleep(self.slow_seconds)
        if rel not in files:
            return httpx.Response(404, text="Not found")
        if rel in self.empty_paths:
            return httpx.Response(200, content=b"")

        content = files[rel]
        return httpx.Response(
            200, content=content if isinstance(content, bytes) else content.encode()
        )


@pytest.fixture
def fake_registry() -> FakeRegistry:
    return FakeRegistry(packages={"json": dict(JSON_PACKAGE)})


@pytest_asyncio.fixture
async def http_client(fake_registry: FakeRegistry) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_registry.handler)) as client:
        yield client


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def failing_engine() -> FakeEngine:
    return FakeEngine(fail_bootstrap=True)


@pytest.fixture
def settings(tmp_path: Path) -> SitterkitConfig:
    return SitterkitConfig(
        storage={"root": tmp_path / "data"},
        registry={"base_url": REGISTRY_URL, "download_timeout_sec": 0.5},
    )


@pytest.fixture
def grammar_root(settings: SitterkitConfig) -> Path:
    return settings.storage.tree_sitter_path


def write_package(
    root: Path,
    identifier: str,
    modules: dict[str, bytes],
    *,
    config: dict[str, Any] | None = None,
    queries: dict[str, str] | None = None,
) -> Path:
    """Lay out an installed package directly on disk."""
    path = root / identifier
    path.mkdir(parents=True)
    if config is not None:
        (path / "tree-sitter.json").write_text(json.dumps(config))
    for filename, content in modules.items():
        (path / filename).write_bytes(content)
    if queries:
        (path / "queries").mkdir()
        for filename, text in queries.items():
            (path / "queries" / filename).write_text(text)
    return path


@pytest.fixture
def make_package(grammar_root: Path) -> Any:
    """Factory fixture: ``make_package("json", {"tree-sitter-json.so": b"..."}, config={})``."""

    def _make(identifier: str, modules: dict[str, bytes], **kwargs: Any) -> Path:
        return write_package(grammar_root, identifier, modules, **kwargs)

    return _make
