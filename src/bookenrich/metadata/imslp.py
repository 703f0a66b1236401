# ABOUTME: IMSLP (Petrucci Music Library) metadata provider for music scores.
# ABOUTME: Finds a work page via MediaWiki search and resolves its best-edition score PDF.

import asyncio
import logging
from typing import Any

from bookenrich.config import EnrichmentSettings
from bookenrich.metadata.http import HttpClient, MetadataFetchError
from bookenrich.metadata.imslp_parser import (
    IMSLP_API_URL,
    build_record,
    parse_download_url,
    parse_page_html,
    parse_score_files,
    search_query,
    work_results,
)
from bookenrich.metadata.isbn import validate_isbn
from bookenrich.metadata.query import main_title
from bookenrich.metadata.types import CandidateRecord, Provider

logger = logging.getLogger(__name__)

# Each work costs two follow-up requests, so keep text search narrow.
_MAX_WORKS = 3


class IMSLPProvider:
    """Metadata provider backed by the IMSLP MediaWiki API.

    IMSLP indexes works, not published editions, so it has no ISBN lookup
    and contributes mainly composer names and score links.
    """

    def __init__(
        self, http_client: HttpClient, settings: EnrichmentSettings | None = None
    ) -> None:
        self._http = http_client
        self._settings = settings or EnrichmentSettings()

    @property
    def name(self) -> str:
        return "imslp"

    @property
    def provider(self) -> Provider:
        return Provider.IMSLP

    async def search_by_isbn(self, isbn: str) -> list[CandidateRecord]:
        """IMSLP has no ISBN index: validate the input and return nothing.

        Raises:
            InvalidIsbnError: If the ISBN is malformed.
        """
        validate_isbn(isbn)
        return []

    async def search_by_text(
        self, query: str, limit: int = 10, *, language: str | None = None
    ) -> list[CandidateRecord]:
        """Search IMSLP work pages; language is ignored since scores are not translated."""
        if not query or not query.strip():
            return []
        params = {
            "action": "query",
            "list": "search",
            "srsearch": query,
            "srnamespace": "0",
            "srlimit": "10",
            "format": "json",
        }
        try:
            data = await self._http.get(
                IMSLP_API_URL, params=params, timeout=self._settings.search_timeout
            )
        except MetadataFetchError as exc:
            logger.warning("IMSLP search failed for %r: %s", query, exc)
            return []

        results = work_results(data)[: min(limit, _MAX_WORKS)]
        if not results:
            logger.info("IMSLP has no results for %r", query)
            return []
        return list(await asyncio.gather(*(self._work_record(r) for r in results)))

    def title_queries(self, title: str, author: str | None = None) -> list[str]:
        queries = [search_query(title, author), search_query(main_title(title))]
        return [q for q in dict.fromkeys(queries) if q]

    async def _work_record(self, result: dict[str, Any]) -> CandidateRecord:
        """Build a record for a work page, attaching its best score when found."""
        page_title = result["title"]
        try:
            page = await self._http.get(
                IMSLP_API_URL,
                params={"action": "parse", "page": page_title, "prop": "text", "format": "json"},
                timeout=self._settings.detail_timeout,
            )
        except MetadataFetchError as exc:
            logger.debug("IMSLP page %r unavailable: %s", page_title, exc)
            return build_record(page_title)

        files = parse_score_files(parse_page_html(page))
        if not files:
            return build_record(page_title)
        best = files[0]

        try:
            info = await self._http.get(
                IMSLP_API_URL,
                params={
                    "action": "query",
                    "titles": f"File:{best.filename}",
                    "prop": "imageinfo",
                    "iiprop": "url",
                    "format": "json",
                },
                timeout=self._settings.detail_timeout,
            )
        except MetadataFetchError as exc:
            logger.debug("IMSLP file %s unavailable: %s", best.filename, exc)
            return build_record(page_title, best)

        logger.info(
            "IMSLP best score for %r: %s (Henle: %s, Urtext: %s)",
            page_title,
            best.filename,
            best.is_henle,
            best.is_urtext,
        )
        return build_record(page_title, best, parse_download_url(info))
