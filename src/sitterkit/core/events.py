"""Lifecycle event channel.

A plain subscriber list keyed by event name. Listeners may be sync
callables or coroutine functions; coroutine results are scheduled on the
running loop so ``emit`` never blocks the emitter.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

log = structlog.get_logger()

# Event names emitted by GrammarService
INITIALIZED = "initialized"
ERROR = "error"
LANGUAGE_INSTALLED = "language-installed"
LANGUAGE_UNINSTALLED = "language-uninstalled"

Listener = Callable[..., Any]


@dataclass
class EventBus:
    """Explicit observer list for service lifecycle events."""

    _listeners: dict[str, list[Listener]] = field(
        default_factory=lambda: defaultdict(list), init=False, repr=False
    )
    _pending: set[asyncio.Task[Any]] = field(default_factory=set, init=False, repr=False)

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """Subscribe *listener* to *event*. Returns an unsubscribe callable."""
        self._listeners[event].append(listener)
        return lambda: self.off(event, listener)

    def once(self, event: str, listener: Listener) -> Callable[[], None]:
        """Subscribe *listener* for a single delivery."""

        def _wrapper(*args: Any) -> Any:
            self.off(event, _wrapper)
            return listener(*args)

        return self.on(event, _wrapper)

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """Deliver *event* to every subscriber. Returns True if anyone listened.

        A failing listener, sync or async, is logged and does not stop
        delivery to the rest.
        """
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._pending.add(task)
                    task.add_done_callback(functools.partial(self._task_done, event))
            except Exception as e:
                log.warning("event_listener_failed", event_name=event, error=str(e))
        return bool(listeners)

    def _task_done(self, event: str, task: asyncio.Future[Any]) -> None:
        self._pending.discard(task)  # type: ignore[arg-type]
        if task.cancelled():
            return
        if (error := task.exception()) is not None:
            log.warning("event_listener_failed", event_name=event, error=str(error))

    def clear(self) -> None:
        self._listeners.clear()
