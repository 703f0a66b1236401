# ABOUTME: Scriptable MetadataProvider stand-in for orchestrator and discovery tests.
# ABOUTME: Serves fixed records per ISBN or per query and records every call it receives.

import asyncio
from collections.abc import Sequence

from bookenrich.metadata.isbn import validate_isbn
from bookenrich.metadata.types import CandidateRecord, Provider


class StubProvider:
    """Provider returning canned records.

    by_isbn maps cleaned ISBNs to records. by_text maps queries to records;
    the "*" key answers any query. A non-None error is raised from every
    search after the call is recorded. delay makes every search sleep first,
    so tests can control which provider finishes last.
    """

    def __init__(
        self,
        provider: Provider,
        *,
        by_isbn: dict[str, Sequence[CandidateRecord]] | None = None,
        by_text: dict[str, Sequence[CandidateRecord]] | None = None,
        error: BaseException | None = None,
        delay: float = 0.0,
    ) -> None:
        self._provider = provider
        self._by_isbn = by_isbn or {}
        self._by_text = by_text or {}
        self._error = error
        self._delay = delay
        self.isbn_calls: list[str] = []
        self.text_calls: list[tuple[str, int, str | None]] = []

    @property
    def name(self) -> str:
        return self._provider.value

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def called(self) -> bool:
        return bool(self.isbn_calls or self.text_calls)

    async def search_by_isbn(self, isbn: str) -> list[CandidateRecord]:
        cleaned = validate_isbn(isbn)
        self.isbn_calls.append(cleaned)
        await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return list(self._by_isbn.get(cleaned, []))

    async def search_by_text(
        self, query: str, limit: int = 10, *, language: str | None = None
    ) -> list[CandidateRecord]:
        self.text_calls.append((query, limit, language))
        await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        records = self._by_text.get(query, self._by_text.get("*", []))
        return list(records)[:limit]

    def title_queries(self, title: str, author: str | None = None) -> list[str]:
        return [f"{title} {author}", title] if author else [title]
