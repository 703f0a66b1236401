# ABOUTME: Parsing functions for Google Books Volumes API JSON responses.
# ABOUTME: Converts volume resources into CandidateRecord instances with cover candidates.

import logging
from typing import Any

from bookenrich.metadata.covers import google_image_link_covers, google_volume_id_covers
from bookenrich.metadata.isbn import split_isbns
from bookenrich.metadata.text import (
    clean_categories,
    clean_description,
    extract_year,
    remove_surrounding_quotes,
    to_iso639_1,
)
from bookenrich.metadata.types import CandidateRecord, Provider

logger = logging.getLogger(__name__)

# volumeInfo link field -> external URL label
_LINK_LABELS = (
    ("canonicalVolumeLink", "google_books"),
    ("infoLink", "google_books_info"),
    ("previewLink", "google_books_preview"),
)


def parse_industry_identifiers(identifiers: list[dict[str, Any]]) -> tuple[str | None, str | None]:
    """Return (isbn10, isbn13) from a volume's industryIdentifiers list.

    A missing form is derived from the other. Non-ISBN identifiers such as
    "OTHER" (e.g. "UOM:39015...") are ignored.
    """
    by_type = {
        entry.get("type"): entry.get("identifier", "")
        for entry in identifiers
        if isinstance(entry, dict)
    }
    return split_isbns([by_type.get("ISBN_10", ""), by_type.get("ISBN_13", "")])


def _series_number(volume_info: dict[str, Any]) -> int | None:
    display = (volume_info.get("seriesInfo") or {}).get("bookDisplayNumber")
    if isinstance(display, str) and display.strip().isdigit():
        return int(display.strip())
    return None


def parse_volume(item: dict[str, Any]) -> CandidateRecord | None:
    """Parse one volume resource (search item or full volume) into a record.

    Returns None for volumes without a title, which Google occasionally
    returns for placeholder entries.
    """
    volume_info = item.get("volumeInfo") or {}
    title = volume_info.get("title")
    if not title:
        return None

    volume_id = item.get("id")
    isbn10, isbn13 = parse_industry_identifiers(volume_info.get("industryIdentifiers") or [])

    covers = google_image_link_covers(volume_info.get("imageLinks"))
    if not covers:
        covers = google_volume_id_covers(volume_id)

    genres = clean_categories(volume_info.get("categories") or [])
    if genres:
        logger.debug("Google Books genres for %r: %s", title, ", ".join(genres))

    external_urls = {
        label: volume_info[key] for key, label in _LINK_LABELS if volume_info.get(key)
    }

    rating = volume_info.get("averageRating")
    page_count = volume_info.get("pageCount")

    return CandidateRecord(
        title=title,
        source_provider=Provider.GOOGLE_BOOKS,
        subtitle=remove_surrounding_quotes(volume_info.get("subtitle")),
        authors=tuple(volume_info.get("authors") or ()),
        isbn10=isbn10,
        isbn13=isbn13,
        publisher=remove_surrounding_quotes(volume_info.get("publisher")),
        published_year=extract_year(volume_info.get("publishedDate")),
        language=to_iso639_1(volume_info.get("language")),
        series_number=_series_number(volume_info),
        genres=genres,
        description=clean_description(volume_info.get("description")),
        page_count=page_count if isinstance(page_count, int) and page_count > 0 else None,
        rating=float(rating) if isinstance(rating, (int, float)) else None,
        cover_candidates=tuple(covers),
        external_urls=external_urls,
        source_id=volume_id,
    )
