# ABOUTME: Shared pytest fixtures for bookenrich tests.
# ABOUTME: Provides settings, partial book records, and candidate record builders.

import pytest

from bookenrich.config import EnrichmentSettings
from bookenrich.metadata.types import BookRecord, CandidateRecord, Provider


@pytest.fixture
def settings() -> EnrichmentSettings:
    """Default settings."""
    return EnrichmentSettings()


@pytest.fixture
def rose_book() -> BookRecord:
    """A partial record as a user would type it: title, author and ISBN."""
    return BookRecord(
        title="The Name of the Rose",
        authors=["Umberto Eco"],
        isbn13="9780156001311",
    )


@pytest.fixture
def make_candidate():
    """Factory for CandidateRecord instances with sensible defaults."""

    def _make(
        title: str = "The Name of the Rose",
        provider: Provider = Provider.GOOGLE_BOOKS,
        **fields,
    ) -> CandidateRecord:
        return CandidateRecord(title=title, source_provider=provider, **fields)

    return _make
