"""skit init / purge commands - create or remove the grammar storage directory."""

from __future__ import annotations

import click
import questionary
from rich.console import Console

from sitterkit.cli.utils import get_config
from sitterkit.grammars.store import GrammarStore


def _store(ctx: click.Context) -> GrammarStore:
    config = get_config(ctx)
    return GrammarStore(
        config.storage.tree_sitter_path,
        module_extension=config.install.module_extension,
    )


@click.command()
@click.pass_context
def init_command(ctx: click.Context) -> None:
    """Create the grammar storage directory and an empty config.json."""
    store = _store(ctx)
    if store.ensure_root():
        click.echo(f"Initialized grammar storage at {store.root}")
    else:
        click.echo(f"Grammar storage already initialized at {store.root}")


def purge_storage(store: GrammarStore, *, yes: bool = False) -> bool:
    """Remove every installed grammar and the config document.

    Returns True if storage was removed, False if cancelled or nothing to remove.
    """
    console = Console(stderr=True)

    if not store.root.exists():
        console.print("[yellow]Nothing to purge[/yellow] - no grammar storage found")
        return False

    languages = store.list_languages()
    console.print(
        f"\n[bold]{len(languages)} installed grammar package(s) will be deleted:[/bold] "
        f"{store.root}\n"
    )

    if not yes:
        answer = questionary.select(
            f"Remove installed tree-sitter packages ({len(languages)})?",
            choices=[
                questionary.Choice("No, keep them", value=False),
                questionary.Choice("Yes, delete everything", value=True),
            ],
            style=questionary.Style(
                [
                    ("question", "bold"),
                    ("highlighted", "fg:red bold"),
                    ("selected", "fg:red"),
                ]
            ),
        ).ask()

        if not answer:
            console.print("[dim]Cancelled[/dim]")
            return False

    store.purge()
    console.print(f"  [green]✓[/green] Removed {store.root}")
    return True


@click.command()
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def purge_command(ctx: click.Context, yes: bool) -> None:
    """Delete all installed grammars and the grammar storage directory."""
    purge_storage(_store(ctx), yes=yes)
