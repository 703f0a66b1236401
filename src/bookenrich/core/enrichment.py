# ABOUTME: Enrichment orchestrator: fans a partial book record out to every provider concurrently.
# ABOUTME: Matches each provider's results, merges them by precedence, and selects the final cover.

import asyncio
import copy
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from bookenrich.config import EnrichmentSettings
from bookenrich.metadata.cover_selector import select_best_cover
from bookenrich.metadata.googlebooks import GoogleBooksProvider
from bookenrich.metadata.http import EnrichHttpClient, HttpClient
from bookenrich.metadata.imslp import IMSLPProvider
from bookenrich.metadata.imslp_parser import detect_music_publisher
from bookenrich.metadata.isbn import is_ismn, isbn_variants, validate_isbn
from bookenrich.metadata.matcher import find_match, match_by_isbn
from bookenrich.metadata.merge import (
    build_sources,
    is_complete,
    merge_records,
    origin_providers,
)
from bookenrich.metadata.openlibrary import OpenLibraryProvider
from bookenrich.metadata.provider import MetadataProvider
from bookenrich.metadata.query import title_variants
from bookenrich.metadata.types import BookRecord, CandidateRecord, MetadataSources, Provider

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentResult:
    """The merged record plus per-source provenance for one enrichment call."""

    merged: BookRecord
    sources: MetadataSources
    matched: tuple[Provider, ...] = ()


def build_providers(
    http: HttpClient, settings: EnrichmentSettings | None = None
) -> list[MetadataProvider]:
    """The standard provider set, in default fill-precedence order."""
    return [
        GoogleBooksProvider(http, settings),
        OpenLibraryProvider(http, settings),
        IMSLPProvider(http, settings),
    ]


def is_music_score(book: BookRecord) -> bool:
    """ISMN-numbered records and records filed under music are scores."""
    if is_ismn(book.isbn13):
        return True
    return any("music" in genre.lower() for genre in book.genres)


def _input_isbns(book: BookRecord) -> list[str]:
    """Validated ISBNs to look up, ISBN-13 first, skipping derivable duplicates.

    Raises:
        InvalidIsbnError: If either ISBN on the record is malformed.
    """
    isbns: list[str] = []
    for raw in (book.isbn13, book.isbn10):
        if not raw:
            continue
        cleaned = validate_isbn(raw)
        if not any(cleaned in isbn_variants(seen) for seen in isbns):
            isbns.append(cleaned)
    return isbns


class Enricher:
    """Enriches book records from a set of metadata providers.

    Providers are queried concurrently and every query is allowed to settle;
    a provider that fails or finds nothing simply contributes nothing.
    """

    def __init__(
        self,
        providers: Sequence[MetadataProvider],
        http: HttpClient,
        settings: EnrichmentSettings | None = None,
    ) -> None:
        self._providers = list(providers)
        self._http = http
        self._settings = settings or EnrichmentSettings()

    async def enrich(self, book: BookRecord) -> EnrichmentResult:
        """Enrich a partial record. The caller's instance is never mutated.

        Raises:
            InvalidIsbnError: If the record carries a malformed ISBN. This
                is checked before any network call.
        """
        isbns = _input_isbns(book)
        active, skipped = self._plan(book)

        results = await asyncio.gather(
            *(self._query(provider, book, isbns) for provider in active),
            return_exceptions=True,
        )

        matches: dict[Provider, CandidateRecord] = {}
        for provider, result in zip(active, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(
                    "%s enrichment failed: %s", provider.provider.label, result, exc_info=result
                )
                continue
            if result is not None:
                logger.info("%s matched %r", provider.provider.label, result.title)
                matches[provider.provider] = result

        sources = build_sources(book, matches, skipped)
        if not matches:
            logger.info("No provider matched %r; returning the record unchanged", book.title)
            return EnrichmentResult(merged=copy.deepcopy(book), sources=sources)

        merged = merge_records(book, matches, self._settings)
        if not merged.publisher and is_ismn(merged.isbn13):
            publisher = detect_music_publisher(merged.isbn13)
            if publisher is not None:
                logger.info("Detected music publisher %s from ISMN", publisher.name)
                merged.publisher = publisher.name

        best_cover = await select_best_cover(
            merged.available_covers, self._http, settings=self._settings
        )
        if best_cover:
            merged.cover_url = best_cover

        matched = tuple(p for p in self._settings.fill_precedence if p in matches)
        matched += tuple(p for p in matches if p not in matched)
        return EnrichmentResult(merged=merged, sources=sources, matched=matched)

    def _plan(self, book: BookRecord) -> tuple[list[MetadataProvider], set[Provider]]:
        """Split providers into those to query and those to skip.

        Runs before any query is launched: a provider is skipped when the
        record came from it and is already complete, and IMSLP is skipped
        for anything that is not a music score.
        """
        complete = is_complete(book, self._settings)
        origins = origin_providers(book) if complete else set()
        scores_only = self._settings.imslp_scores_only and not is_music_score(book)

        active: list[MetadataProvider] = []
        skipped: set[Provider] = set()
        for provider in self._providers:
            if provider.provider in origins:
                logger.info("Skipping %s: record is already complete", provider.provider.label)
                skipped.add(provider.provider)
            elif provider.provider is Provider.IMSLP and scores_only:
                logger.debug("Skipping IMSLP for a non-score record")
            else:
                active.append(provider)
        return active, skipped

    async def _query(
        self, provider: MetadataProvider, book: BookRecord, isbns: list[str]
    ) -> CandidateRecord | None:
        """Find the provider's record for a book: ISBN lookup first, then text search."""
        for isbn in isbns:
            records = await provider.search_by_isbn(isbn)
            matched = match_by_isbn(book, records)
            if matched is not None:
                return matched

        if not book.title:
            return None
        author = book.authors[0] if book.authors else None
        extra_titles = title_variants(book.title)[1:]
        for query in provider.title_queries(book.title, author):
            records = await provider.search_by_text(query, self._settings.search_limit)
            matched = find_match(book, records, extra_titles=extra_titles)
            if matched is not None:
                return matched
        return None


async def enrich(
    book: BookRecord,
    *,
    providers: Sequence[MetadataProvider] | None = None,
    http: HttpClient | None = None,
    settings: EnrichmentSettings | None = None,
) -> EnrichmentResult:
    """Enrich a record with the standard providers and a fresh HTTP client.

    Pass http and/or providers to reuse a client or substitute fakes.
    """
    settings = settings or EnrichmentSettings()
    if http is not None:
        providers = providers if providers is not None else build_providers(http, settings)
        return await Enricher(providers, http, settings).enrich(book)

    async with EnrichHttpClient(
        timeout=settings.search_timeout,
        min_request_interval=settings.min_request_interval,
        max_retries=settings.max_retries,
        user_agent=settings.user_agent,
        max_concurrent_requests=settings.max_concurrent_requests,
    ) as client:
        providers = providers if providers is not None else build_providers(client, settings)
        return await Enricher(providers, client, settings).enrich(book)
