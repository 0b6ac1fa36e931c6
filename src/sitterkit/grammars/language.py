"""In-memory model of one installed grammar package.

A package can ship several compiled modules: the primary grammar (the
module named after the package) plus dialect extensions such as
``tree-sitter-tsx.so`` next to ``tree-sitter-typescript.so``. The
handle for the package is a *container*; every non-primary module
becomes a nested *extension* handle that shares the container's config
and queries. Extensions never nest further.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from sitterkit.config.constants import MODULE_EXTENSION, MODULE_PREFIX
from sitterkit.core.errors import GrammarLoadError, SitterkitError

if TYPE_CHECKING:
    from sitterkit.grammars.engine import GrammarEngine

log = structlog.get_logger()


@dataclass(frozen=True)
class ContainerModules:
    """Package-level handle: optional primary module plus named extensions."""

    primary: bytes | None
    primary_filename: str | None
    extensions: dict[str, LanguageHandle] = field(default_factory=dict)


@dataclass(frozen=True)
class ExtensionModule:
    """Leaf handle holding exactly one module."""

    module: bytes


Modules = ContainerModules | ExtensionModule


def name_from_filename(filename: str, extension: str = MODULE_EXTENSION) -> str:
    """``tree-sitter-foo-bar.so`` -> ``foo-bar``."""
    stem = filename[: -len(extension)] if filename.endswith(extension) else filename
    return stem[len(MODULE_PREFIX) :] if stem.startswith(MODULE_PREFIX) else stem


def _as_bytes(content: bytes | bytearray | memoryview) -> bytes:
    return content if isinstance(content, bytes) else bytes(content)


class LanguageHandle:
    """One grammar and its lazily loaded compiled form."""

    def __init__(
        self,
        name: str,
        config: dict[str, Any],
        modules: Mapping[str, bytes] | bytes,
        queries: dict[str, str] | None,
        engine: GrammarEngine,
        *,
        is_extension: bool = False,
        module_extension: str = MODULE_EXTENSION,
    ) -> None:
        self._name = name
        self._config = config
        self._queries = queries if queries is not None else {}
        self._engine = engine
        self._grammar: Any = None
        self._load_lock = asyncio.Lock()

        if is_extension:
            if not isinstance(modules, bytes | bytearray | memoryview):
                raise TypeError("an extension handle takes exactly one module")
            self._modules: Modules = ExtensionModule(_as_bytes(modules))
        else:
            if not isinstance(modules, Mapping):
                raise TypeError("a container handle takes a filename -> module mapping")
            self._modules = self._resolve_modules(modules, module_extension)

    def _resolve_modules(self, modules: Mapping[str, bytes], extension: str) -> ContainerModules:
        primary_file = next(
            (f for f in modules if name_from_filename(f, extension) == self._name), None
        )

        extensions: dict[str, LanguageHandle] = {}
        for filename, content in modules.items():
            if filename == primary_file:
                continue
            ext_name = name_from_filename(filename, extension)
            extensions[ext_name] = LanguageHandle(
                ext_name,
                self._config,
                _as_bytes(content),
                self._queries,
                self._engine,
                is_extension=True,
            )

        if primary_file is None and modules:
            log.warning(
                "primary_module_not_found",
                language=self._name,
                modules=sorted(modules),
            )

        return ContainerModules(
            primary=_as_bytes(modules[primary_file]) if primary_file else None,
            primary_filename=primary_file,
            extensions=extensions,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> dict[str, Any]:
        return self._config

    @property
    def queries(self) -> dict[str, str]:
        return self._queries

    @property
    def modules(self) -> Modules:
        return self._modules

    @property
    def module(self) -> bytes | None:
        """The module this handle loads: the primary module or the extension's own."""
        if isinstance(self._modules, ExtensionModule):
            return self._modules.module
        return self._modules.primary

    @property
    def extensions(self) -> dict[str, LanguageHandle] | None:
        """Nested extension handles; ``None`` when this handle is itself an extension."""
        if isinstance(self._modules, ExtensionModule):
            return None
        return self._modules.extensions

    @property
    def is_extension(self) -> bool:
        return isinstance(self._modules, ExtensionModule)

    @property
    def grammar(self) -> Any:
        return self._grammar

    @property
    def is_loaded(self) -> bool:
        return self._grammar is not None

    def get_extension(self, name: str) -> LanguageHandle | None:
        extensions = self.extensions
        return extensions.get(name) if extensions else None

    def get_query(self, query_name: str) -> str | None:
        """Return the ``<query_name>.scm`` document, or None."""
        return self._queries.get(f"{query_name}.scm")

    # ------------------------------------------------------------------
    # Grammar lifecycle
    # ------------------------------------------------------------------

    async def load_grammar(self) -> Any:
        """Compile the module once and cache the result.

        Raises:
            GrammarLoadError: If no module is available or the engine rejects it.
        """
        if self._grammar is not None:
            return self._grammar

        async with self._load_lock:
            if self._grammar is not None:
                return self._grammar

            module = self.module
            if not module:
                raise GrammarLoadError.no_module(self._name)

            try:
                grammar = await asyncio.to_thread(self._engine.load_language, self._name, module)
            except SitterkitError:
                raise
            except Exception as e:
                log.error("grammar_load_failed", language=self._name, error=str(e))
                raise GrammarLoadError.loader_failed(self._name, str(e)) from e

            self._grammar = grammar
            log.debug("grammar_loaded", language=self._name, extension=self.is_extension)
            return grammar

    def unload_grammar(self) -> bool:
        """Drop the compiled grammar to free memory. Always succeeds."""
        self._grammar = None
        return True

    def __repr__(self) -> str:
        kind = "extension" if self.is_extension else "container"
        return f"LanguageHandle(name={self._name!r}, kind={kind}, loaded={self.is_loaded})"
