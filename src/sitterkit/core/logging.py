"""Structured logging for grammar operations.

Every log line emitted inside an :func:`operation` block (an install, an
uninstall) carries the same ``op_id`` plus the operation kind, so a
multi-file install can be followed through the log.
Outputs are configured from :class:`~sitterkit.config.models.LoggingConfig`;
each output picks its own level and console or JSON rendering.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from sitterkit.config.models import LoggingConfig, LogOutputConfig

_op_id: ContextVar[str | None] = ContextVar("sitterkit_op_id", default=None)
_op_kind: ContextVar[str | None] = ContextVar("sitterkit_op_kind", default=None)

# Third-party loggers that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def current_operation() -> tuple[str, str] | None:
    """``(op_id, kind)`` of the innermost active operation, if any."""
    op_id, kind = _op_id.get(), _op_kind.get()
    if op_id is None or kind is None:
        return None
    return op_id, kind


@contextmanager
def operation(kind: str, op_id: str | None = None) -> Iterator[str]:
    """Tag log lines emitted inside the block with one operation id."""
    oid = op_id or uuid4().hex[:12]
    id_token = _op_id.set(oid)
    kind_token = _op_kind.set(kind)
    try:
        yield oid
    finally:
        _op_kind.reset(kind_token)
        _op_id.reset(id_token)


def _add_operation(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if (current := current_operation()) is not None:
        event_dict.setdefault("op_id", current[0])
        event_dict.setdefault("op", current[1])
    return event_dict


def _level(name: str | None, default: int = logging.INFO) -> int:
    if not name:
        return default
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else default


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Route structlog through stdlib handlers, one per configured output.

    Without *config* a single stderr output is set up from *level* and
    *json_format*. Safe to call repeatedly; previous handlers are replaced.
    """
    from sitterkit.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )

    root_level = _level(config.level)
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
        _add_operation,  # type: ignore[list-item]
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(root_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    for output in config.outputs:
        handler = _create_handler(output.destination)
        handler.setLevel(_level(output.level, root_level))
        handler.setFormatter(_formatter(output, pre_chain))
        root.addHandler(handler)


def _formatter(
    output: LogOutputConfig, pre_chain: list[structlog.types.Processor]
) -> logging.Formatter:
    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        colors = output.destination in ("stderr", "stdout") and sys.stderr.isatty()
        renderer = structlog.dev.ConsoleRenderer(colors=colors, pad_event_to=0)
    return structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)


def _create_handler(destination: str) -> logging.Handler:
    """Stream handler for stderr/stdout, append-mode file handler otherwise."""
    if destination in ("stderr", "stdout"):
        return logging.StreamHandler(getattr(sys, destination))
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")
