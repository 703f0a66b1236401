# ABOUTME: The `bookenrich covers` command for inspecting ISBN-derived cover candidates.
# ABOUTME: Lists ranked Amazon and OpenLibrary cover URLs and can validate them to pick one.

import asyncio
import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from bookenrich.cli.options import config_option, json_option, prepare, verbose_option
from bookenrich.config import EnrichmentSettings
from bookenrich.metadata.cover_selector import rank_covers, select_best_cover
from bookenrich.metadata.covers import isbn_cover_candidates
from bookenrich.metadata.http import EnrichHttpClient
from bookenrich.metadata.isbn import (
    InvalidIsbnError,
    isbn10_to_isbn13,
    isbn13_to_isbn10,
    validate_isbn,
)
from bookenrich.metadata.types import CoverCandidate


async def _select(candidates: list[CoverCandidate], settings: EnrichmentSettings) -> str | None:
    async with EnrichHttpClient(
        timeout=settings.cover_timeout,
        user_agent=settings.user_agent,
        max_concurrent_requests=settings.max_concurrent_requests,
    ) as client:
        return await select_best_cover(candidates, client, settings=settings)


def _select_cover(candidates: list[CoverCandidate], settings: EnrichmentSettings) -> str | None:
    """Validate candidates over the network and return the chosen URL."""
    return asyncio.run(_select(candidates, settings))


@click.command()
@click.argument("isbn")
@click.option(
    "--select/--no-select",
    default=False,
    help="Validate candidates over HTTP and report the selected cover.",
)
@json_option
@config_option
@verbose_option
def covers(
    isbn: str,
    select: bool,
    as_json: bool,
    config_path: Path | None,
    verbose: int,
) -> None:
    """List the heuristic cover candidates for ISBN, best first."""
    try:
        cleaned = validate_isbn(isbn)
    except InvalidIsbnError as exc:
        raise click.BadParameter(str(exc), param_hint="'ISBN'") from exc
    settings = prepare(config_path, verbose)

    if len(cleaned) == 13:
        isbn10, isbn13 = isbn13_to_isbn10(cleaned), cleaned
    else:
        isbn10, isbn13 = cleaned, isbn10_to_isbn13(cleaned)
    candidates = rank_covers(isbn_cover_candidates(isbn10, isbn13))
    selected = _select_cover(candidates, settings) if select and candidates else None

    if as_json:
        payload = {
            "candidates": [
                {
                    "url": c.url,
                    "source": c.source,
                    "size_class": c.size_class.value,
                    "priority": c.priority,
                }
                for c in candidates
            ],
            "selected": selected,
        }
        click.echo(json.dumps(payload, indent=2))
        return

    console = Console()
    if not candidates:
        console.print("[yellow]No heuristic covers for this identifier.[/yellow]")
        return

    table = Table(title=f"Cover candidates for {cleaned}")
    table.add_column("Priority", justify="right", width=8)
    table.add_column("Source")
    table.add_column("Size")
    table.add_column("URL", overflow="fold")
    for candidate in candidates:
        marker = " [green]*[/green]" if candidate.url == selected else ""
        table.add_row(
            str(candidate.priority),
            candidate.source,
            candidate.size_class.value,
            candidate.url + marker,
        )
    console.print(table)
    if select:
        console.print(f"\nSelected: {selected or '[dim]none[/dim]'}")
