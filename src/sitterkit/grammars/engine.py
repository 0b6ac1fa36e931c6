"""Adapter over the py-tree-sitter runtime.

The engine is the only place that touches ``tree_sitter`` directly. Grammar
modules are native shared libraries exporting ``tree_sitter_<name>()``.
The loader writes each module to a content-addressed file in a cache
directory (``dlopen`` needs a path), opens it with ctypes, and wraps the
returned ``TSLanguage *`` in the capsule ``tree_sitter.Language`` accepts.

Tests substitute any object implementing :class:`GrammarEngine`.
"""

from __future__ import annotations

import asyncio
import ctypes
import hashlib
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import structlog

from sitterkit.config.constants import LANGUAGE_SYMBOL_PREFIX, MODULE_EXTENSION
from sitterkit.core.errors import GrammarLoadError

log = structlog.get_logger()

# py-tree-sitter only accepts capsules carrying this name
_CAPSULE_NAME = b"tree_sitter.Language"

_capsule_new = ctypes.PYFUNCTYPE(
    ctypes.py_object, ctypes.c_void_p, ctypes.c_char_p, ctypes.c_void_p
)(("PyCapsule_New", ctypes.pythonapi))


@runtime_checkable
class GrammarEngine(Protocol):
    """What the service needs from a parsing runtime."""

    @property
    def ready(self) -> bool: ...

    async def bootstrap(self) -> None: ...

    def load_language(self, name: str, module: bytes) -> Any: ...

    def create_parser(self, language: Any) -> Any: ...


def symbol_name(name: str) -> str:
    """Exported language factory, e.g. ``c-sharp`` -> ``tree_sitter_c_sharp``."""
    return LANGUAGE_SYMBOL_PREFIX + name.replace("-", "_")


class TreeSitterEngine:
    """py-tree-sitter runtime loading grammars from native shared libraries."""

    def __init__(
        self, cache_dir: Path | None = None, *, module_extension: str = MODULE_EXTENSION
    ) -> None:
        self._cache_dir = cache_dir or Path(tempfile.gettempdir()) / "sitterkit-lib-cache"
        self._module_extension = module_extension
        self._ready = False
        # Open library handles; ctypes unloads a library once its CDLL is collected
        self._libraries: dict[Path, ctypes.CDLL] = {}

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    async def bootstrap(self) -> None:
        if self._ready:
            return
        import tree_sitter  # noqa: F401

        await asyncio.to_thread(self._cache_dir.mkdir, parents=True, exist_ok=True)
        self._ready = True
        log.debug("engine_bootstrapped", runtime="tree-sitter", cache_dir=str(self._cache_dir))

    def load_language(self, name: str, module: bytes) -> Any:
        """Open *module* and build a ``tree_sitter.Language`` from its factory symbol.

        Raises:
            GrammarLoadError: If the engine is not bootstrapped, the library
                cannot be opened, or it does not export ``tree_sitter_<name>``.
        """
        if not self._ready:
            raise GrammarLoadError.engine_not_ready()
        import tree_sitter

        path = self._materialize(name, module)
        library = self._libraries.get(path)
        if library is None:
            try:
                library = ctypes.CDLL(str(path))
            except OSError as e:
                raise GrammarLoadError.loader_failed(name, f"cannot open library: {e}") from e
            self._libraries[path] = library

        symbol = symbol_name(name)
        factory = getattr(library, symbol, None)
        if factory is None:
            raise GrammarLoadError.loader_failed(name, f"library does not export {symbol}")
        factory.restype = ctypes.c_void_p
        factory.argtypes = ()
        pointer = factory()
        if not pointer:
            raise GrammarLoadError.loader_failed(name, f"{symbol}() returned NULL")

        return tree_sitter.Language(_capsule_new(pointer, _CAPSULE_NAME, None))

    def create_parser(self, language: Any) -> Any:
        import tree_sitter

        return tree_sitter.Parser(language)

    def _materialize(self, name: str, module: bytes) -> Path:
        digest = hashlib.sha256(module).hexdigest()[:16]
        path = self._cache_dir / f"{name}-{digest}{self._module_extension}"
        if not path.exists():
            tmp = path.with_name(path.name + ".tmp")
            try:
                tmp.write_bytes(module)
                tmp.replace(path)
            except OSError as e:
                raise GrammarLoadError.loader_failed(name, f"cannot write {path}: {e}") from e
        return path
