# ABOUTME: The `bookenrich enrich` command for looking up and merging book metadata.
# ABOUTME: Shows the merged record alongside each provider's contribution.

import asyncio
import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from bookenrich.cli.options import config_option, json_option, prepare, verbose_option
from bookenrich.config import EnrichmentSettings
from bookenrich.core.enrichment import EnrichmentResult, enrich as enrich_book
from bookenrich.metadata.isbn import InvalidIsbnError, clean_isbn
from bookenrich.metadata.types import BookRecord, Provider, SourceFields

_PROVIDER_COLUMNS = (Provider.GOOGLE_BOOKS, Provider.OPEN_LIBRARY, Provider.IMSLP)

_FIELDS = (
    ("Title", "title"),
    ("Authors", "authors"),
    ("Publisher", "publisher"),
    ("Year", "published_year"),
    ("Pages", "page_count"),
    ("Series", "series"),
    ("Volume", "series_number"),
    ("Rating", "rating"),
    ("Genres", "genres"),
    ("Tags", "tags"),
    ("Description", "description"),
)

_DESCRIPTION_PREVIEW = 120


def _run_enrichment(book: BookRecord, settings: EnrichmentSettings) -> EnrichmentResult:
    """Run the enrichment pipeline with a fresh HTTP client."""
    return asyncio.run(enrich_book(book, settings=settings))


def _build_book(isbn: str | None, title: str | None, authors: tuple[str, ...]) -> BookRecord:
    book = BookRecord(title=title, authors=list(authors))
    if isbn:
        cleaned = clean_isbn(isbn)
        if len(cleaned) == 10:
            book.isbn10 = cleaned
        else:
            book.isbn13 = cleaned
    return book


def _display(value: object) -> str:
    if value is None or value == () or value == []:
        return "[dim]-[/dim]"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    text = str(value)
    if len(text) > _DESCRIPTION_PREVIEW:
        return text[:_DESCRIPTION_PREVIEW].rstrip() + "..."
    return text


def _source_value(fields: SourceFields | None, attr: str) -> str:
    if fields is None:
        return "[dim]-[/dim]"
    return _display(getattr(fields, attr))


def _render(console: Console, result: EnrichmentResult) -> None:
    merged = result.merged
    table = Table(title=merged.title or "Enriched record")
    table.add_column("Field", style="bold")
    table.add_column("Merged")
    for provider in _PROVIDER_COLUMNS:
        table.add_column(provider.label, style="dim")

    for label, attr in _FIELDS:
        row = [label, _display(getattr(merged, attr))]
        row += [_source_value(result.sources.for_provider(p), attr) for p in _PROVIDER_COLUMNS]
        table.add_row(*row)
    console.print(table)

    console.print(f"ISBN-13: {merged.isbn13 or '-'}   ISBN-10: {merged.isbn10 or '-'}")
    console.print(f"Cover: {merged.cover_url or '[dim]none[/dim]'}")
    for label, url in merged.external_urls.items():
        console.print(f"  [dim]{label}:[/dim] {url}")
    if result.matched:
        names = ", ".join(p.label for p in result.matched)
        console.print(f"\n[green]Matched:[/green] {names}")
    else:
        console.print("\n[yellow]No provider matched this book.[/yellow]")


@click.command()
@click.option("--isbn", default=None, help="ISBN-10 or ISBN-13 of the book.")
@click.option("--title", default=None, help="Title of the book.")
@click.option("--author", "authors", multiple=True, help="Author name (repeatable).")
@json_option
@config_option
@verbose_option
def enrich(
    isbn: str | None,
    title: str | None,
    authors: tuple[str, ...],
    as_json: bool,
    config_path: Path | None,
    verbose: int,
) -> None:
    """Look up a book on every provider and show the merged metadata."""
    if not isbn and not title:
        raise click.UsageError("Give at least one of --isbn or --title.")
    settings = prepare(config_path, verbose)

    book = _build_book(isbn, title, authors)
    try:
        result = _run_enrichment(book, settings)
    except InvalidIsbnError as exc:
        raise click.BadParameter(str(exc), param_hint="'--isbn'") from exc

    if as_json:
        payload = {
            "merged": result.merged.to_dict(),
            "sources": result.sources.to_dict(),
            "matched": [p.value for p in result.matched],
        }
        click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    _render(Console(), result)
