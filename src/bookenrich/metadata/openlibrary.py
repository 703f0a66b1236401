# ABOUTME: Open Library metadata provider implementation.
# ABOUTME: Searches openlibrary.org by ISBN or free text and enriches hits from the works endpoint.

import asyncio
import logging
from typing import Any

from bookenrich.config import EnrichmentSettings
from bookenrich.metadata.http import HttpClient, MetadataFetchError
from bookenrich.metadata.isbn import isbn_variants, validate_isbn
from bookenrich.metadata.openlibrary_parser import (
    OL_BASE_URL,
    matches_language,
    parse_book,
    rank_documents,
    work_key,
)
from bookenrich.metadata.query import main_title
from bookenrich.metadata.types import CandidateRecord, Provider

logger = logging.getLogger(__name__)

# The search API returns editions of all languages; over-fetch so re-ranking
# and language filtering still leave enough documents.
_SEARCH_OVERFETCH = 5
_MAX_SEARCH_LIMIT = 100


class OpenLibraryProvider:
    """Metadata provider backed by the Open Library API.

    ISBN lookups hit the edition endpoint and then resolve the work and the
    authors concurrently. Text search re-ranks documents by title relevance
    before fetching works for the top ones.
    """

    def __init__(
        self, http_client: HttpClient, settings: EnrichmentSettings | None = None
    ) -> None:
        self._http = http_client
        self._settings = settings or EnrichmentSettings()

    @property
    def name(self) -> str:
        return "openlibrary"

    @property
    def provider(self) -> Provider:
        return Provider.OPEN_LIBRARY

    async def search_by_isbn(self, isbn: str) -> list[CandidateRecord]:
        """Look up an edition by ISBN, falling back to the other ISBN form on 404.

        Raises:
            InvalidIsbnError: If the ISBN is malformed.
        """
        cleaned = validate_isbn(isbn)
        edition = None
        for variant in isbn_variants(cleaned):
            try:
                edition = await self._http.get(
                    f"{OL_BASE_URL}/isbn/{variant}.json", timeout=self._settings.isbn_timeout
                )
                break
            except MetadataFetchError as exc:
                if exc.is_not_found:
                    logger.debug("OpenLibrary has no edition for ISBN %s", variant)
                    continue
                logger.warning("OpenLibrary ISBN lookup failed for %s: %s", variant, exc)
                return []
        if not edition:
            return []

        work, authors = await asyncio.gather(
            self._fetch_work(work_key(edition), timeout=self._settings.isbn_timeout),
            self._resolve_authors(edition.get("authors") or []),
        )
        record = parse_book(edition, work, authors=authors)
        if record is None:
            return []
        logger.info("OpenLibrary found %r for ISBN %s", record.title, cleaned)
        return [record]

    async def search_by_text(
        self, query: str, limit: int = 10, *, language: str | None = None
    ) -> list[CandidateRecord]:
        """Search by free text, returning records ranked by title relevance.

        When a language is given, results in other languages are dropped and
        documents in that language get a ranking boost.
        """
        if not query or not query.strip():
            return []
        params = {"q": query, "limit": str(min(limit * _SEARCH_OVERFETCH, _MAX_SEARCH_LIMIT))}
        try:
            data = await self._http.get(
                f"{OL_BASE_URL}/search.json", params=params, timeout=self._settings.search_timeout
            )
        except MetadataFetchError as exc:
            logger.warning("OpenLibrary search failed for %r: %s", query, exc)
            return []

        docs = rank_documents(data.get("docs") or [], query, language)
        if language:
            docs = [doc for doc in docs if self._doc_in_language(doc, language)]
        docs = docs[:limit]

        works = await asyncio.gather(
            *(self._fetch_work(work_key(doc), timeout=self._settings.detail_timeout) for doc in docs)
        )
        records = []
        for doc, work in zip(docs, works):
            record = parse_book(doc, work)
            if record is not None:
                records.append(record)
        return records

    def title_queries(self, title: str, author: str | None = None) -> list[str]:
        """Text queries for enrichment fallback, most specific first."""
        main = main_title(title)
        queries = [f"{main} {author}"] if author else []
        queries.extend([title, main])
        return list(dict.fromkeys(queries))

    @staticmethod
    def _doc_in_language(doc: dict[str, Any], language: str) -> bool:
        record = parse_book(doc)
        return record is not None and matches_language(record, doc, language)

    async def _fetch_work(self, key: str | None, *, timeout: float) -> dict[str, Any] | None:
        """Fetch a works record; None when there is no key or the call fails."""
        if not key:
            return None
        try:
            return await self._http.get(f"{OL_BASE_URL}{key}.json", timeout=timeout)
        except MetadataFetchError as exc:
            logger.debug("OpenLibrary work %s unavailable: %s", key, exc)
            return None

    async def _resolve_authors(self, entries: list[dict[str, Any]]) -> list[str]:
        """Resolve edition author references to names, keeping order."""

        async def resolve(entry: dict[str, Any]) -> str | None:
            if not isinstance(entry, dict):
                return None
            key = entry.get("key")
            if not key:
                return entry.get("name")
            try:
                data = await self._http.get(
                    f"{OL_BASE_URL}{key}.json", timeout=self._settings.detail_timeout
                )
            except MetadataFetchError as exc:
                logger.debug("OpenLibrary author %s unavailable: %s", key, exc)
                return entry.get("name")
            return data.get("name") or entry.get("name")

        names = await asyncio.gather(*(resolve(entry) for entry in entries))
        return [name for name in names if name]
