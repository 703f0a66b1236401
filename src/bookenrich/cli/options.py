# ABOUTME: Shared Click options for bookenrich CLI commands.
# ABOUTME: Provides --config, --json and -v plus the settings loader they feed.

from pathlib import Path

import click

from bookenrich.config import ConfigError, EnrichmentSettings, load_settings
from bookenrich.logging_setup import setup_logging

CONFIG_ENVVAR = "BOOKENRICH_CONFIG"

config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    envvar=CONFIG_ENVVAR,
    default=None,
    help=f"TOML settings file with a [bookenrich] table (env: {CONFIG_ENVVAR}).",
)

json_option = click.option(
    "--json",
    "as_json",
    is_flag=True,
    default=False,
    help="Print machine-readable JSON instead of a table.",
)

verbose_option = click.option(
    "-v",
    "--verbose",
    count=True,
    help="Show progress logs (-v) or debug logs (-vv).",
)


def prepare(config_path: Path | None, verbose: int) -> EnrichmentSettings:
    """Configure logging and load settings, turning config errors into CLI errors."""
    setup_logging(verbose)
    try:
        return load_settings(config_path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
