"""skit list / install / uninstall / info / parse commands."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console

from sitterkit.cli.utils import describe_language, run_with_service
from sitterkit.core.events import ERROR
from sitterkit.service import GrammarService


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_command(ctx: click.Context, as_json: bool) -> None:
    """List locally installed grammars."""

    async def _list(service: GrammarService) -> list[str]:
        return await service.get_available_languages()

    languages = run_with_service(ctx, _list)
    if as_json:
        click.echo(json.dumps(languages))
        return
    if not languages:
        click.echo("No grammars installed. Run 'skit install <language>'.")
        return
    for lang in languages:
        click.echo(lang)


@click.command()
@click.argument("languages", nargs=-1, required=True)
@click.pass_context
def install_command(ctx: click.Context, languages: tuple[str, ...]) -> None:
    """Install grammars from the registry (e.g. skit install json python)."""
    console = Console(stderr=True)

    async def _install(service: GrammarService) -> dict[str, bool]:
        results: dict[str, bool] = {}
        for lang in languages:
            with console.status(f"Installing {lang}..."):
                results[lang] = await service.install_language(lang)
        return results

    results = run_with_service(ctx, _install)
    for lang, installed in results.items():
        if installed:
            console.print(f"  [green]✓[/green] Installed {lang}")
        else:
            console.print(f"  [yellow]•[/yellow] {lang} is already installed")


@click.command()
@click.argument("languages", nargs=-1, required=True)
@click.pass_context
def uninstall_command(ctx: click.Context, languages: tuple[str, ...]) -> None:
    """Remove installed grammars."""
    console = Console(stderr=True)

    async def _uninstall(service: GrammarService) -> dict[str, bool]:
        return {lang: await service.uninstall_language(lang) for lang in languages}

    results = run_with_service(ctx, _uninstall)
    for lang, removed in results.items():
        if removed:
            console.print(f"  [green]✓[/green] Removed {lang}")
        else:
            console.print(f"  [yellow]•[/yellow] {lang} is not installed")


@click.command()
@click.argument("language")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def info_command(ctx: click.Context, language: str, as_json: bool) -> None:
    """Show the modules, extensions and queries of an installed grammar."""

    async def _info(service: GrammarService) -> dict[str, object] | None:
        failures: list[Exception] = []
        unsubscribe = service.events.on(ERROR, failures.append)
        try:
            handle = await service.get_language(language)
        finally:
            unsubscribe()
        if handle is None and failures:
            raise click.ClickException(
                f"Language '{language}' is installed but could not be read: {failures[-1]}"
            )
        return describe_language(handle) if handle is not None else None

    info = run_with_service(ctx, _info)
    if info is None:
        raise click.ClickException(f"Language '{language}' is not installed")

    if as_json:
        click.echo(json.dumps(info, indent=2))
        return
    click.echo(f"Language:   {info['name']}")
    click.echo(f"Module:     {info['primary_module'] or '(none)'}")
    click.echo(f"Extensions: {', '.join(info['extensions']) or '(none)'}")  # type: ignore[arg-type]
    click.echo(f"Queries:    {', '.join(info['queries']) or '(none)'}")  # type: ignore[arg-type]
    if info["scope"]:
        click.echo(f"Scope:      {info['scope']}")


@click.command()
@click.argument("language")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def parse_command(ctx: click.Context, language: str, file: Path) -> None:
    """Parse FILE with LANGUAGE and print the syntax tree as an S-expression."""
    source = file.read_bytes()

    async def _parse(service: GrammarService) -> str:
        tree = await service.parse(language, source)
        return str(tree.root_node)

    click.echo(run_with_service(ctx, _parse))
