# ABOUTME: Core metadata data structures shared by adapters, matcher, merge, and orchestrator.
# ABOUTME: CandidateRecord is a provider's normalized result; BookRecord is the caller's record.

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class Provider(str, Enum):
    """External metadata providers known to the enrichment engine."""

    GOOGLE_BOOKS = "googlebooks"
    OPEN_LIBRARY = "openlibrary"
    IMSLP = "imslp"

    @property
    def label(self) -> str:
        """Human-readable provider name for logs and tables."""
        return _PROVIDER_LABELS[self]


_PROVIDER_LABELS = {
    Provider.GOOGLE_BOOKS: "Google Books",
    Provider.OPEN_LIBRARY: "OpenLibrary",
    Provider.IMSLP: "IMSLP",
}


class SizeClass(str, Enum):
    """Coarse size bucket of a cover image, shared across providers."""

    THUMBNAIL = "thumbnail"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    ORIGINAL = "original"


class CoverType(str, Enum):
    FRONT = "front"
    BACK = "back"


@dataclass(frozen=True)
class CoverCandidate:
    """One possible cover image URL with its provenance and ranking priority.

    Priority only orders candidates within a single enrichment call; it is
    never persisted.
    """

    url: str
    source: str
    size_class: SizeClass = SizeClass.MEDIUM
    priority: int = 0
    cover_type: CoverType = CoverType.FRONT


@dataclass(frozen=True)
class CandidateRecord:
    """A book as returned by one provider, normalized to a common shape.

    Records are immutable: adapters derive adjusted copies with
    dataclasses.replace instead of mutating them.
    """

    title: str
    source_provider: Provider
    subtitle: str | None = None
    authors: tuple[str, ...] = ()
    isbn10: str | None = None
    isbn13: str | None = None
    publisher: str | None = None
    published_year: int | None = None
    language: str | None = None
    series: str | None = None
    series_number: int | None = None
    genres: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    description: str | None = None
    page_count: int | None = None
    rating: float | None = None
    cover_candidates: tuple[CoverCandidate, ...] = ()
    external_urls: dict[str, str] = field(default_factory=dict)
    source_id: str | None = None

    @property
    def isbn(self) -> str | None:
        """Preferred ISBN for display and dedup: ISBN-13 first."""
        return self.isbn13 or self.isbn10

    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass
class BookRecord:
    """The caller's book record: partial on the way in, merged on the way out.

    Mirrors the fields the external Book model persists. Every field is
    optional so ISBN-only or title-only lookups are possible.
    """

    title: str | None = None
    subtitle: str | None = None
    authors: list[str] = field(default_factory=list)
    isbn10: str | None = None
    isbn13: str | None = None
    publisher: str | None = None
    published_year: int | None = None
    language: str | None = None
    series: str | None = None
    series_number: int | None = None
    genres: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    description: str | None = None
    page_count: int | None = None
    rating: float | None = None
    cover_url: str | None = None
    available_covers: list[CoverCandidate] = field(default_factory=list)
    external_urls: dict[str, str] = field(default_factory=dict)

    @property
    def isbn(self) -> str | None:
        return self.isbn13 or self.isbn10

    @property
    def author(self) -> str:
        """Convenience property: joined author string for display."""
        return ", ".join(self.authors) if self.authors else ""

    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass(frozen=True)
class SourceFields:
    """Field values contributed by a single source, kept for provenance."""

    title: str | None = None
    authors: tuple[str, ...] = ()
    description: str | None = None
    series: str | None = None
    series_number: int | None = None
    genres: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    publisher: str | None = None
    published_year: int | None = None
    page_count: int | None = None
    rating: float | None = None

    @classmethod
    def from_record(cls, record: "CandidateRecord | BookRecord") -> "SourceFields":
        return cls(
            title=record.title,
            authors=tuple(record.authors),
            description=record.description,
            series=record.series,
            series_number=record.series_number,
            genres=tuple(record.genres),
            tags=tuple(record.tags),
            publisher=record.publisher,
            published_year=record.published_year,
            page_count=record.page_count,
            rating=record.rating,
        )


@dataclass
class MetadataSources:
    """Per-source provenance for one enrichment call.

    Holds the caller's original values plus one slot per known provider, so a
    UI can let the user pick which provider's value to keep. A slot is None
    when that provider contributed nothing.
    """

    original: SourceFields
    google_books: SourceFields | None = None
    open_library: SourceFields | None = None
    imslp: SourceFields | None = None

    def for_provider(self, provider: Provider) -> SourceFields | None:
        return getattr(self, _SLOT_NAMES[provider])

    def set(self, provider: Provider, fields: SourceFields | None) -> None:
        setattr(self, _SLOT_NAMES[provider], fields)

    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))


_SLOT_NAMES = {
    Provider.GOOGLE_BOOKS: "google_books",
    Provider.OPEN_LIBRARY: "open_library",
    Provider.IMSLP: "imslp",
}


def _jsonable(value: Any) -> Any:
    """Convert asdict() output into plain JSON types (enums, tuples)."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value
