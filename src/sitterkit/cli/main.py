"""sitterkit CLI - skit command."""

from pathlib import Path

import click

from sitterkit import __version__
from sitterkit.cli.languages import (
    info_command,
    install_command,
    list_command,
    parse_command,
    uninstall_command,
)
from sitterkit.cli.storage import init_command, purge_command
from sitterkit.config.loader import load_config
from sitterkit.core.errors import ConfigError
from sitterkit.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="skit")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Storage root (overrides SITTERKIT__STORAGE__ROOT)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file to use instead of ~/.config/sitterkit/config.yaml",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, root: Path | None, config_path: Path | None) -> None:
    """sitterkit - install and serve tree-sitter grammars."""
    ctx.ensure_object(dict)
    overrides = {"storage": {"root": root}} if root is not None else {}
    config = ctx.obj.get("config")
    if config is None:
        try:
            config = load_config(config_path, **overrides)
        except ConfigError as e:
            raise click.ClickException(str(e)) from e
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose
    if verbose:
        configure_logging(level="DEBUG")
    else:
        configure_logging(config=config.logging)


cli.add_command(init_command, name="init")
cli.add_command(list_command, name="list")
cli.add_command(install_command, name="install")
cli.add_command(uninstall_command, name="uninstall")
cli.add_command(info_command, name="info")
cli.add_command(parse_command, name="parse")
cli.add_command(purge_command, name="purge")


if __name__ == "__main__":
    cli()
