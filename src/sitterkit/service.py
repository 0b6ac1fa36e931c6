"""GrammarService: the process-wide entry point for grammars and parsers.

Every public operation waits for a one-time initialization (engine
bootstrap plus loading the config document). The service memoizes
language handles and one live parser per language, and reports lifecycle
changes on :attr:`GrammarService.events`.

Usage::

    async with GrammarService(config) as service:
        if not await service.is_language_available("json"):
            await service.install_language("json")
        tree = await service.parse("json", '{"a": 1}')
"""

from __future__ import annotations

import asyncio
import copy
from collections import defaultdict
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from sitterkit.config.models import SitterkitConfig
from sitterkit.core.errors import GrammarLoadError, InternalError, SitterkitError
from sitterkit.core.events import (
    ERROR,
    INITIALIZED,
    LANGUAGE_INSTALLED,
    LANGUAGE_UNINSTALLED,
    EventBus,
)
from sitterkit.core.logging import operation
from sitterkit.grammars.engine import TreeSitterEngine
from sitterkit.grammars.installer import Installer
from sitterkit.grammars.registry import RegistryClient
from sitterkit.grammars.store import GrammarStore

if TYPE_CHECKING:
    from sitterkit.grammars.engine import GrammarEngine
    from sitterkit.grammars.language import LanguageHandle

log = structlog.get_logger()


class InitState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"
    FAILED = "failed"


class GrammarService:
    """Grammar cache and lifecycle facade.

    Construct one per process (or per test) and close it when done. If an
    event loop is running at construction time, initialization starts
    immediately; otherwise it starts on the first awaited call.
    """

    def __init__(
        self,
        config: SitterkitConfig | None = None,
        *,
        engine: GrammarEngine | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = config or SitterkitConfig()
        self._engine: GrammarEngine = engine or TreeSitterEngine(
            self._settings.storage.library_cache_path,
            module_extension=self._settings.install.module_extension,
        )
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=self._settings.registry.request_timeout_sec
        )

        self.store = GrammarStore(
            self._settings.storage.tree_sitter_path,
            module_extension=self._settings.install.module_extension,
        )
        self.registry = RegistryClient(self._client, self._settings.registry.base_url)
        self.installer = Installer(
            self.store,
            self.registry,
            self._client,
            wanted_patterns=self._settings.install.wanted_patterns,
            version=self._settings.registry.default_version,
            strict_prefix=self._settings.registry.strict_prefix,
            download_timeout=self._settings.registry.download_timeout_sec,
            module_extension=self._settings.install.module_extension,
        )
        self.events = EventBus()

        self._state = InitState.UNINITIALIZED
        self._init_task: asyncio.Task[bool] | None = None
        self._config: dict[str, Any] = {}
        self._languages: dict[str, LanguageHandle] = {}
        self._parsers: dict[str, Any] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._parser_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            self._start_init()

    async def __aenter__(self) -> GrammarService:
        await self.wait_for_init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    @property
    def state(self) -> InitState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is InitState.INITIALIZED

    @property
    def engine(self) -> GrammarEngine:
        return self._engine

    def _start_init(self) -> asyncio.Task[bool]:
        if self._init_task is None:
            self._state = InitState.INITIALIZING
            self._init_task = asyncio.ensure_future(self._initialize())
        return self._init_task

    async def wait_for_init(self) -> bool:
        """Await the single shared initialization. Returns its success flag."""
        return await asyncio.shield(self._start_init())

    async def _initialize(self) -> bool:
        try:
            await self._engine.bootstrap()
            self._config = await asyncio.to_thread(self.store.read_config)
        except Exception as e:
            log.error("init_failed", error=str(e))
            self._state = InitState.FAILED
            error = (
                e
                if isinstance(e, SitterkitError)
                else InternalError.unexpected(str(e), exception=type(e).__name__)
            )
            self.events.emit(ERROR, error)
            return False

        self._state = InitState.INITIALIZED
        log.debug("initialized", root=str(self.store.root))
        self.events.emit(INITIALIZED)
        return True

    # ------------------------------------------------------------------
    # Config document
    # ------------------------------------------------------------------

    @property
    def settings(self) -> SitterkitConfig:
        return self._settings

    @property
    def config(self) -> dict[str, Any]:
        """Copy of the process-wide config document."""
        return copy.deepcopy(self._config)

    async def update_config(self, **values: Any) -> dict[str, Any]:
        await self.wait_for_init()
        self._config.update(values)
        return self.config

    async def save_config(self) -> bool:
        """Persist the config document. Failures are logged and reported as False."""
        await self.wait_for_init()
        try:
            await asyncio.to_thread(self.store.write_config, self._config)
        except SitterkitError as e:
            log.error("config_save_failed", error=str(e))
            return False
        return True

    # ------------------------------------------------------------------
    # Languages and parsers
    # ------------------------------------------------------------------

    async def get_language(
        self, lang: str, *, force_reload: bool = False
    ) -> LanguageHandle | None:
        """Return the cached handle for *lang*, reading it from disk on a miss.

        Returns None if the language is not installed or could not be read;
        read failures are logged and emitted on the error channel and are
        not cached, so the next call retries.
        """
        await self.wait_for_init()
        if not lang:
            raise ValueError("Language identifier is required")

        try:
            return await self._read_language(lang, force_reload=force_reload)
        except (SitterkitError, ValueError) as e:
            log.error("language_read_failed", language=lang, error=str(e))
            self.events.emit(ERROR, e)
            return None

    async def _read_language(self, lang: str, *, force_reload: bool) -> LanguageHandle | None:
        if not force_reload and lang in self._languages:
            return self._languages[lang]

        async with self._locks[lang]:
            if not force_reload and lang in self._languages:
                return self._languages[lang]

            language = await self.store.read_package(lang, self._engine)
            if language is None:
                self._languages.pop(lang, None)
                return None

            self._languages[lang] = language
            return language

    async def create_parser(self, lang: str) -> Any:
        """Build a fresh parser bound to *lang*'s grammar, loading it if needed.

        Failures are emitted on the error channel before being raised.

        Raises:
            GrammarLoadError: If the language is missing or its grammar fails to load.
            PackageError: If the installed package cannot be read.
        """
        await self.wait_for_init()
        try:
            return await self._create_parser(lang)
        except Exception as e:
            log.error("create_parser_failed", language=lang, error=str(e))
            self.events.emit(ERROR, e)
            raise

    async def _create_parser(self, lang: str) -> Any:
        if not lang:
            raise ValueError("Language identifier is required")
        language = await self._read_language(lang, force_reload=False)
        if language is None:
            raise GrammarLoadError.unavailable(lang)

        grammar = await language.load_grammar()
        try:
            return self._engine.create_parser(grammar)
        except Exception as e:
            raise GrammarLoadError.loader_failed(lang, str(e)) from e

    async def parse(self, lang: str, code: str | bytes, *, force_reload: bool = False) -> Any:
        """Parse *code* with the cached parser for *lang*. Returns the syntax tree.

        Any failure, including building the parser, is emitted once on the
        error channel and re-raised.
        """
        await self.wait_for_init()
        source = code.encode("utf-8") if isinstance(code, str) else code

        try:
            parser = self._parsers.get(lang)
            if force_reload or parser is None:
                async with self._parser_locks[lang]:
                    parser = self._parsers.get(lang)
                    if force_reload or parser is None:
                        parser = await self._create_parser(lang)
                        self._parsers[lang] = parser
            return parser.parse(source)
        except Exception as e:
            log.error("parse_failed", language=lang, error=str(e))
            self.events.emit(ERROR, e)
            raise

    # ------------------------------------------------------------------
    # Store pass-through
    # ------------------------------------------------------------------

    async def get_available_languages(self) -> list[str]:
        await self.wait_for_init()
        try:
            return await asyncio.to_thread(self.store.list_languages)
        except SitterkitError as e:
            log.error("list_languages_failed", error=str(e))
            self.events.emit(ERROR, e)
            raise

    async def is_language_available(self, lang: str) -> bool:
        await self.wait_for_init()
        try:
            return await asyncio.to_thread(self.store.is_available, lang)
        except ValueError:
            return False

    async def install_language(self, lang: str) -> bool:
        """Install *lang* from the registry. Returns False if already installed."""
        await self.wait_for_init()
        with operation("install"):
            try:
                installed = await self.installer.install(lang)
            except Exception as e:
                self.events.emit(ERROR, e)
                raise

        if installed:
            self.events.emit(LANGUAGE_INSTALLED, lang)
        return installed

    async def uninstall_language(self, lang: str) -> bool:
        """Remove *lang* from disk and from both caches."""
        await self.wait_for_init()
        self._evict(lang)
        with operation("uninstall"):
            try:
                removed = await self.installer.uninstall(lang)
            except Exception as e:
                log.error("uninstall_failed", language=lang, error=str(e))
                self.events.emit(ERROR, e)
                raise

        if removed:
            self.events.emit(LANGUAGE_UNINSTALLED, lang)
        return removed

    # ------------------------------------------------------------------
    # Cache control
    # ------------------------------------------------------------------

    def _evict(self, lang: str) -> None:
        language = self._languages.pop(lang, None)
        if language is not None:
            language.unload_grammar()
        self._parsers.pop(lang, None)

    def clear(self) -> None:
        """Drop every cached handle and parser. Disk is untouched."""
        for language in self._languages.values():
            language.unload_grammar()
        self._languages.clear()
        self._parsers.clear()

    async def close(self) -> None:
        self.clear()
        if self._init_task is not None and not self._init_task.done():
            await asyncio.wait([self._init_task])
        if self._owns_client:
            await self._client.aclose()
