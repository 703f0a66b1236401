# ABOUTME: The `bookenrich series` command for listing the volumes of a series.
# ABOUTME: Prints discovered volumes ordered by volume number.

import asyncio
import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from bookenrich.cli.options import config_option, json_option, prepare, verbose_option
from bookenrich.config import EnrichmentSettings
from bookenrich.core.series_discovery import DEFAULT_MAX_VOLUMES, discover_series_volumes
from bookenrich.metadata.types import CandidateRecord


def _run_discovery(
    name: str, language: str | None, max_volumes: int, settings: EnrichmentSettings
) -> list[CandidateRecord]:
    return asyncio.run(
        discover_series_volumes(
            name, language=language, max_volumes=max_volumes, settings=settings
        )
    )


@click.command()
@click.argument("name")
@click.option("--language", default=None, help="Two-letter language code to restrict results.")
@click.option(
    "--max-volumes",
    type=click.IntRange(min=1),
    default=DEFAULT_MAX_VOLUMES,
    show_default=True,
    help="Maximum number of volumes to list.",
)
@json_option
@config_option
@verbose_option
def series(
    name: str,
    language: str | None,
    max_volumes: int,
    as_json: bool,
    config_path: Path | None,
    verbose: int,
) -> None:
    """List the volumes of the series NAME."""
    settings = prepare(config_path, verbose)
    volumes = _run_discovery(name, language, max_volumes, settings)

    if as_json:
        click.echo(json.dumps([v.to_dict() for v in volumes], indent=2, ensure_ascii=False))
        return

    console = Console()
    if not volumes:
        console.print(f"[yellow]No volumes found for {name!r}.[/yellow]")
        return

    table = Table(title=name)
    table.add_column("#", justify="right", width=4)
    table.add_column("Title", style="bold")
    table.add_column("Authors")
    table.add_column("ISBN")
    table.add_column("Year", width=5)
    table.add_column("Source", style="dim")

    for volume in volumes:
        table.add_row(
            str(volume.series_number) if volume.series_number is not None else "?",
            volume.title,
            ", ".join(volume.authors) or "[dim]unknown[/dim]",
            volume.isbn or "[dim]none[/dim]",
            str(volume.published_year or ""),
            volume.source_provider.label,
        )

    console.print(table)
    console.print(f"\n[dim]{len(volumes)} volume(s)[/dim]")
