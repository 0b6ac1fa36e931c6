"""CLI utilities."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click

from sitterkit.config.models import SitterkitConfig
from sitterkit.core.errors import SitterkitError
from sitterkit.service import GrammarService

T = TypeVar("T")


def get_config(ctx: click.Context) -> SitterkitConfig:
    config: SitterkitConfig = ctx.obj["config"]
    return config


def run_with_service(ctx: click.Context, fn: Callable[[GrammarService], Awaitable[T]]) -> T:
    """Run *fn* against a fresh service and close it afterwards.

    ``ctx.obj`` may carry ``engine`` and ``client`` overrides (used by tests).
    SitterkitError is reported as a ClickException.
    """

    async def _run() -> T:
        service = GrammarService(
            get_config(ctx),
            engine=ctx.obj.get("engine"),
            client=ctx.obj.get("client"),
        )
        try:
            if not await service.wait_for_init():
                raise click.ClickException("Failed to initialize the parsing engine")
            return await fn(service)
        finally:
            await service.close()

    try:
        return asyncio.run(_run())
    except SitterkitError as e:
        raise click.ClickException(str(e)) from e


def describe_language(language: Any) -> dict[str, Any]:
    """Summary of a LanguageHandle for display."""
    modules = language.modules
    return {
        "name": language.name,
        "primary_module": getattr(modules, "primary_filename", None),
        "extensions": sorted(language.extensions or {}),
        "queries": sorted(language.queries),
        "scope": _first_grammar_field(language.config, "scope"),
        "file_types": _first_grammar_field(language.config, "file-types") or [],
    }


def _first_grammar_field(config: dict[str, Any], key: str) -> Any:
    grammars = config.get("grammars")
    if isinstance(grammars, list) and grammars and isinstance(grammars[0], dict):
        return grammars[0].get(key)
    return config.get(key)
