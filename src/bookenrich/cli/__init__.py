# ABOUTME: CLI package for bookenrich, built on Click.
# ABOUTME: Defines the root command group and registers subcommands.

import click

from bookenrich.cli.commands import covers_cmd, enrich_cmd, series_cmd


@click.group()
@click.version_option(package_name="bookenrich")
def cli() -> None:
    """bookenrich - multi-source book metadata enrichment."""


cli.add_command(enrich_cmd.enrich)
cli.add_command(series_cmd.series)
cli.add_command(covers_cmd.covers)
