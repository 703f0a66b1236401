# ABOUTME: MetadataProvider protocol defining the contract for metadata sources.
# ABOUTME: Google Books, OpenLibrary and IMSLP adapters all implement this.

from typing import Protocol, runtime_checkable

from bookenrich.metadata.types import CandidateRecord, Provider


@runtime_checkable
class MetadataProvider(Protocol):
    """Protocol for metadata lookup services.

    Implementations must provide ISBN-based and free-text search returning
    normalized CandidateRecord lists. Network failures are absorbed and
    reported as an empty list; only malformed input raises.
    """

    @property
    def name(self) -> str: ...

    @property
    def provider(self) -> Provider: ...

    async def search_by_isbn(self, isbn: str) -> list[CandidateRecord]: ...

    async def search_by_text(
        self, query: str, limit: int = 10, *, language: str | None = None
    ) -> list[CandidateRecord]: ...

    def title_queries(self, title: str, author: str | None = None) -> list[str]: ...
