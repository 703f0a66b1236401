# ABOUTME: Field-level precedence merge of matched provider records into the caller's record.
# ABOUTME: Also decides record completeness and builds the per-source MetadataSources annotation.

import copy
import logging
from collections.abc import Collection, Mapping

from bookenrich.config import EnrichmentSettings
from bookenrich.metadata.covers import collect_cover_candidates, dedupe_covers
from bookenrich.metadata.isbn import isbn10_to_isbn13, isbn13_to_isbn10
from bookenrich.metadata.series import extract_series_from_title
from bookenrich.metadata.text import dedupe
from bookenrich.metadata.types import (
    BookRecord,
    CandidateRecord,
    CoverCandidate,
    MetadataSources,
    Provider,
    SourceFields,
)

logger = logging.getLogger(__name__)

# External URL label prefixes identifying where a record came from.
_LABEL_PREFIXES: tuple[tuple[str, Provider], ...] = (
    ("google_books", Provider.GOOGLE_BOOKS),
    ("googlebooks", Provider.GOOGLE_BOOKS),
    ("openlibrary", Provider.OPEN_LIBRARY),
    ("imslp", Provider.IMSLP),
)

_FILL_FIELDS = ("subtitle", "publisher", "published_year", "page_count", "language")


def provider_for_label(label: str) -> Provider | None:
    lowered = label.lower()
    for prefix, provider in _LABEL_PREFIXES:
        if lowered.startswith(prefix):
            return provider
    return None


def origin_providers(book: BookRecord) -> set[Provider]:
    """Providers the record already carries data from, per its URL labels."""
    providers = {provider_for_label(label) for label in book.external_urls}
    providers.discard(None)
    return providers  # type: ignore[return-value]


def is_complete(book: BookRecord, settings: EnrichmentSettings) -> bool:
    """Whether a record already has the fields a provider lookup would add."""
    return (
        bool(book.description)
        and len(book.description) > settings.complete_description_length
        and bool(book.authors)
        and bool(book.publisher)
        and bool(book.page_count)
    )


def build_sources(
    original: BookRecord,
    matches: Mapping[Provider, CandidateRecord],
    skipped: Collection[Provider] = (),
) -> MetadataSources:
    """Snapshot each source's field values before anything is merged.

    A provider skipped because the record already came from it gets the
    record's own values in its slot.
    """
    original_fields = SourceFields.from_record(original)
    sources = MetadataSources(original=original_fields)
    for provider in skipped:
        sources.set(provider, original_fields)
    for provider, record in matches.items():
        sources.set(provider, SourceFields.from_record(record))
    return sources


def _in_order(
    matches: Mapping[Provider, CandidateRecord], precedence: tuple[Provider, ...]
) -> list[CandidateRecord]:
    ordered = [matches[p] for p in precedence if p in matches]
    ordered += [record for p, record in matches.items() if p not in precedence]
    return ordered


def _longest_description(
    original: str | None, candidates: list[CandidateRecord]
) -> str | None:
    """Longest description wins; ties keep the earlier source, original first."""
    best = original
    for record in candidates:
        if record.description and len(record.description) > len(best or ""):
            best = record.description
    return best


def merge_records(
    original: BookRecord,
    matches: Mapping[Provider, CandidateRecord],
    settings: EnrichmentSettings | None = None,
) -> BookRecord:
    """Merge matched provider records into a copy of the caller's record.

    Single-value fields follow a fixed provider precedence, so the result
    does not depend on which provider answered first. Covers are unioned
    into available_covers. A record without a cover_url gets the default
    collected cover, unvalidated; the enrichment flow replaces it with a
    validated pick.
    """
    settings = settings or EnrichmentSettings()
    merged = copy.deepcopy(original)
    fill_order = _in_order(matches, settings.fill_precedence)

    if not merged.title:
        merged.title = next((r.title for r in fill_order if r.title), None)

    merged.description = _longest_description(original.description, fill_order)

    if not merged.authors:
        merged.authors = list(next((r.authors for r in fill_order if r.authors), ()))

    for field_name in _FILL_FIELDS:
        if getattr(merged, field_name) is None:
            value = next(
                (getattr(r, field_name) for r in fill_order if getattr(r, field_name) is not None),
                None,
            )
            setattr(merged, field_name, value)

    if not merged.isbn10 and not merged.isbn13:
        donor = next((r for r in fill_order if r.isbn), None)
        if donor is not None:
            merged.isbn10, merged.isbn13 = donor.isbn10, donor.isbn13
    if merged.isbn13 and not merged.isbn10:
        merged.isbn10 = isbn13_to_isbn10(merged.isbn13)
    elif merged.isbn10 and not merged.isbn13:
        merged.isbn13 = isbn10_to_isbn13(merged.isbn10)

    merged.genres = list(dedupe([*original.genres, *(g for r in fill_order for g in r.genres)]))
    merged.tags = list(dedupe([*original.tags, *(t for r in fill_order for t in r.tags)]))

    for label, url in (item for r in fill_order for item in r.external_urls.items()):
        merged.external_urls.setdefault(label, url)

    series_order = _in_order(matches, settings.series_precedence)
    merged.series = next((r.series for r in series_order if r.series), original.series)
    merged.series_number = next(
        (r.series_number for r in series_order if r.series_number is not None),
        original.series_number,
    )
    if not merged.series:
        parsed = extract_series_from_title(merged.title)
        if parsed is not None:
            logger.info(
                "Parsed series %r #%d from title %r", parsed.series, parsed.series_number, merged.title
            )
            merged.series = parsed.series
            if merged.series_number is None:
                merged.series_number = parsed.series_number

    rating_order = _in_order(matches, settings.rating_precedence)
    merged.rating = next((r.rating for r in rating_order if r.rating is not None), original.rating)

    merged.available_covers = merge_covers(original, fill_order)
    if not merged.cover_url:
        default = default_cover(original, fill_order)
        merged.cover_url = default.url if default is not None else None
    return merged


def merge_covers(original: BookRecord, records: list[CandidateRecord]) -> list[CoverCandidate]:
    """Union the caller's covers with every matched record's collected covers."""
    covers = list(collect_cover_candidates(original).candidates)
    for record in records:
        covers.extend(collect_cover_candidates(record).candidates)
    return dedupe_covers(covers)


def default_cover(original: BookRecord, records: list[CandidateRecord]) -> CoverCandidate | None:
    """The first matched record's default cover, else the caller's own."""
    for record in records:
        default = collect_cover_candidates(record).default
        if default is not None:
            return default
    return collect_cover_candidates(original).default
