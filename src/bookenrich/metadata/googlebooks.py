# ABOUTME: Google Books metadata provider implementation.
# ABOUTME: Looks up volumes by ISBN or free text and fetches full volume details for each hit.

import asyncio
import logging
from typing import Any

from bookenrich.config import EnrichmentSettings
from bookenrich.metadata.http import HttpClient, MetadataFetchError
from bookenrich.metadata.googlebooks_parser import parse_volume
from bookenrich.metadata.isbn import isbn_variants, validate_isbn
from bookenrich.metadata.query import main_title
from bookenrich.metadata.types import CandidateRecord, Provider

logger = logging.getLogger(__name__)

_VOLUMES_URL = "https://www.googleapis.com/books/v1/volumes"
# Google caps maxResults at 40.
_MAX_RESULTS = 40


class GoogleBooksProvider:
    """Metadata provider backed by the Google Books Volumes API.

    Search results carry truncated descriptions, so every hit is re-fetched
    as a full volume; a failed detail call falls back to the search item.
    """

    def __init__(
        self, http_client: HttpClient, settings: EnrichmentSettings | None = None
    ) -> None:
        self._http = http_client
        self._settings = settings or EnrichmentSettings()

    @property
    def name(self) -> str:
        return "googlebooks"

    @property
    def provider(self) -> Provider:
        return Provider.GOOGLE_BOOKS

    async def search_by_isbn(self, isbn: str) -> list[CandidateRecord]:
        """Look up a volume by ISBN, trying the given form then the derived one.

        Raises:
            InvalidIsbnError: If the ISBN is malformed.
        """
        cleaned = validate_isbn(isbn)
        timeout = self._settings.isbn_timeout
        for variant in isbn_variants(cleaned):
            params = self._params({"q": f"isbn:{variant}", "maxResults": "1", "projection": "full"})
            try:
                data = await self._http.get(_VOLUMES_URL, params=params, timeout=timeout)
            except MetadataFetchError as exc:
                logger.warning("Google Books ISBN lookup failed for %s: %s", variant, exc)
                continue

            items = data.get("items") or []
            if not items:
                continue
            volume = await self._fetch_volume(items[0], timeout=timeout)
            record = parse_volume(volume)
            if record is not None:
                logger.info("Google Books found %r for ISBN %s", record.title, variant)
                return [record]
        return []

    async def search_by_text(
        self, query: str, limit: int = 10, *, language: str | None = None
    ) -> list[CandidateRecord]:
        """Search volumes by free text, most relevant first.

        Full details for the top results are fetched concurrently. When a
        language is given, records in another language are dropped; records
        with no language are kept.
        """
        if not query or not query.strip():
            return []
        params = self._params(
            {
                "q": query,
                "maxResults": str(min(limit * 2, _MAX_RESULTS)),
                "orderBy": "relevance",
                "projection": "full",
            }
        )
        if language:
            params["langRestrict"] = language
        try:
            data = await self._http.get(
                _VOLUMES_URL, params=params, timeout=self._settings.search_timeout
            )
        except MetadataFetchError as exc:
            logger.warning("Google Books search failed for %r: %s", query, exc)
            return []

        items = (data.get("items") or [])[:limit]
        volumes = await asyncio.gather(
            *(self._fetch_volume(item, timeout=self._settings.detail_timeout) for item in items)
        )

        records = []
        for volume in volumes:
            record = parse_volume(volume)
            if record is None:
                continue
            if language and record.language and record.language != language:
                continue
            records.append(record)
        return records

    def title_queries(self, title: str, author: str | None = None) -> list[str]:
        """Text queries for enrichment fallback, most specific first."""
        main = main_title(title)
        queries = []
        if author:
            queries.append(f'intitle:"{main}" inauthor:"{author}"')
            queries.append(f"{main} {author}")
        queries.append(f'intitle:"{title}"')
        queries.append(main)
        return list(dict.fromkeys(queries))

    async def _fetch_volume(self, item: dict[str, Any], *, timeout: float) -> dict[str, Any]:
        """Fetch the full volume for a search item, or return the item on failure."""
        volume_id = item.get("id")
        if not volume_id:
            return item
        try:
            volume = await self._http.get(
                f"{_VOLUMES_URL}/{volume_id}",
                params=self._params({"projection": "full"}),
                timeout=timeout,
            )
        except MetadataFetchError as exc:
            logger.debug("Google Books volume %s unavailable, using search item: %s", volume_id, exc)
            return item
        return volume if volume.get("volumeInfo") else item

    def _params(self, params: dict[str, str]) -> dict[str, str]:
        if self._settings.google_api_key:
            params["key"] = self._settings.google_api_key
        return params
