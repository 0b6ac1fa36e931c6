from sitterkit.cli.main import cli

cli()
