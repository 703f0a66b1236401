# ABOUTME: Parsing functions for Open Library API JSON responses.
# ABOUTME: Converts edition, search-doc and work data into CandidateRecord instances.

import re
from collections.abc import Sequence
from typing import Any

from bookenrich.metadata.covers import openlibrary_cover_id_covers
from bookenrich.metadata.isbn import split_isbns
from bookenrich.metadata.text import (
    clean_description,
    dedupe,
    extract_year,
    remove_surrounding_quotes,
    to_iso639_1,
)
from bookenrich.metadata.types import CandidateRecord, CoverCandidate, CoverType, Provider

OL_BASE_URL = "https://openlibrary.org"

_MAX_GENRES = 15
_MAX_TAGS_PER_FIELD = 5
_TAG_FIELDS = ("subject_places", "subject_times", "subject_people")

# Relevance score weights for re-ranking search documents.
EXACT_TITLE_SCORE = 100
PREFIX_TITLE_SCORE = 50
CONTAINS_TITLE_SCORE = 30
ALL_WORDS_SCORE = 20
PER_WORD_SCORE = 5
PREFERRED_LANGUAGE_SCORE = 10
HAS_COVER_SCORE = 5

# Edition series strings look like "Thorgal ; 21" or "Discworld, #3".
_SERIES_FIELD_RE = re.compile(
    r"^(?P<series>.+?)\s*[;,(]\s*(?:no\.?|vol\.?|volume|tome|#)?\s*0*(?P<number>\d+)\)?\s*$",
    re.IGNORECASE,
)

_LANGUAGE_ALIASES: dict[str, set[str]] = {
    "en": {"en", "eng"},
    "fr": {"fr", "fre", "fra"},
    "de": {"de", "ger", "deu"},
    "es": {"es", "spa"},
    "it": {"it", "ita"},
    "pt": {"pt", "por"},
}


def description_text(value: Any) -> str | None:
    """Extract text from an Open Library description-like field.

    Handles the OL quirk where text can be a plain string, a
    {"type": ..., "value": "actual text"} dict, or a list of either.
    """
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("value")
    return value if isinstance(value, str) and value.strip() else None


def _names(values: Any, limit: int | None = None) -> list[str]:
    """Subject-like lists hold either strings or {"name": ...} dicts."""
    if not isinstance(values, list):
        return []
    names = []
    for value in values[:limit]:
        if isinstance(value, dict):
            value = value.get("name")
        if isinstance(value, str) and value.strip():
            names.append(value.strip())
    return names


def _first(values: Any) -> Any:
    if isinstance(values, list):
        return values[0] if values else None
    return values


def parse_series_field(value: Any) -> tuple[str | None, int | None]:
    """Split an OL series value into (name, number).

    "Thorgal ; 21" gives ("Thorgal", 21); a bare "Discworld" gives
    ("Discworld", None).
    """
    raw = _first(value)
    if not isinstance(raw, str) or not raw.strip():
        return None, None
    raw = raw.strip()
    match = _SERIES_FIELD_RE.match(raw)
    if match:
        return match.group("series").strip(), int(match.group("number"))
    return raw, None


def language_codes(language: str) -> set[str]:
    """All the codes ("fr", "fre", "fra") that denote one language."""
    code = language.lower()
    for aliases in _LANGUAGE_ALIASES.values():
        if code in aliases:
            return aliases
    return {code}


def _doc_languages(doc: dict[str, Any]) -> list[str]:
    languages = doc.get("language") or doc.get("languages") or []
    codes = []
    for entry in languages if isinstance(languages, list) else [languages]:
        if isinstance(entry, dict):
            entry = entry.get("key", "")
        if isinstance(entry, str) and entry:
            codes.append(entry.rsplit("/", 1)[-1].lower())
    return codes


def work_key(doc: dict[str, Any]) -> str | None:
    """The /works/ key a search doc or edition belongs to, if known."""
    keys = doc.get("work_key")
    if isinstance(keys, list) and keys:
        key = keys[0]
        return key if key.startswith("/works/") else f"/works/{key}"
    works = doc.get("works")
    if isinstance(works, list) and works and isinstance(works[0], dict):
        return works[0].get("key")
    key = doc.get("key")
    if isinstance(key, str) and key.startswith("/works/"):
        return key
    return None


def _authors(doc: dict[str, Any], work: dict[str, Any] | None) -> list[str]:
    if work:
        from_work = [
            entry["author"]["name"]
            for entry in work.get("authors") or []
            if isinstance(entry, dict)
            and isinstance(entry.get("author"), dict)
            and entry["author"].get("name")
        ]
        if from_work:
            return from_work
    if doc.get("author_name"):
        return [name for name in doc["author_name"] if isinstance(name, str)]
    return _names(doc.get("authors"))


def _covers(doc: dict[str, Any], work: dict[str, Any] | None) -> list[CoverCandidate]:
    """Cover-id covers: the first id of a list is the front, the rest backs."""
    covers: list[CoverCandidate] = []
    seen: set[int] = set()
    cover_i = doc.get("cover_i")
    if isinstance(cover_i, int) and cover_i > 0:
        covers.extend(openlibrary_cover_id_covers(cover_i))
        seen.add(cover_i)
    for source in (doc, work or {}):
        for cover_id in source.get("covers") or []:
            # OL uses -1 for "cover removed".
            if not isinstance(cover_id, int) or cover_id <= 0 or cover_id in seen:
                continue
            seen.add(cover_id)
            cover_type = CoverType.FRONT if not covers else CoverType.BACK
            covers.extend(openlibrary_cover_id_covers(cover_id, cover_type))
    return covers


def _published_year(doc: dict[str, Any], work: dict[str, Any] | None) -> int | None:
    candidates = [
        (work or {}).get("first_publish_date"),
        doc.get("first_publish_year"),
        doc.get("publish_date"),
        _first(doc.get("publish_year")),
    ]
    for value in candidates:
        if isinstance(value, (str, int)):
            year = extract_year(value)
            if year:
                return year
    return None


def _tags(doc: dict[str, Any], work: dict[str, Any] | None) -> tuple[str, ...]:
    tags: list[str] = []
    for field_name in _TAG_FIELDS:
        values = (work or {}).get(field_name) or doc.get(field_name)
        tags.extend(_names(values, _MAX_TAGS_PER_FIELD))
    return dedupe(tags)


def parse_book(
    doc: dict[str, Any],
    work: dict[str, Any] | None = None,
    *,
    authors: Sequence[str] = (),
) -> CandidateRecord | None:
    """Parse an edition or search doc, plus its optional work, into a record.

    Series, description, subjects and covers are often richer at the work
    level, so the work fills what the edition lacks. Explicitly resolved
    author names (from the authors endpoint) override everything else.
    Returns None when no title can be found.
    """
    title = doc.get("title") or doc.get("title_suggest") or (work or {}).get("title")
    if not title:
        return None

    isbns = [
        value
        for key in ("isbn", "isbn_13", "isbn_10")
        for value in doc.get(key) or []
        if isinstance(value, str)
    ]
    isbn10, isbn13 = split_isbns(isbns)

    description = clean_description(description_text((work or {}).get("description")))
    if description is None:
        description = clean_description(description_text(doc.get("description")))
    if description is None:
        description = description_text(doc.get("first_sentence"))

    series, series_number = parse_series_field((work or {}).get("series") or doc.get("series"))

    subjects = _names((work or {}).get("subjects"), _MAX_GENRES) or _names(
        doc.get("subject") or doc.get("subjects"), _MAX_GENRES
    )

    languages = _doc_languages(doc) or _doc_languages(work or {})

    page_count = doc.get("number_of_pages") or doc.get("number_of_pages_median")
    rating = doc.get("ratings_average")

    external_urls: dict[str, str] = {}
    if doc.get("key"):
        external_urls["openlibrary"] = f"{OL_BASE_URL}{doc['key']}"
    key_of_work = (work or {}).get("key") or work_key(doc)
    if key_of_work:
        external_urls["openlibrary_work"] = f"{OL_BASE_URL}{key_of_work}"

    return CandidateRecord(
        title=title,
        source_provider=Provider.OPEN_LIBRARY,
        subtitle=remove_surrounding_quotes(doc.get("subtitle")),
        authors=tuple(authors) if authors else tuple(_authors(doc, work)),
        isbn10=isbn10,
        isbn13=isbn13,
        publisher=remove_surrounding_quotes(_first(doc.get("publisher") or doc.get("publishers"))),
        published_year=_published_year(doc, work),
        language=to_iso639_1(languages[0]) if languages else None,
        series=series,
        series_number=series_number,
        genres=dedupe(subjects),
        tags=_tags(doc, work),
        description=description,
        page_count=page_count if isinstance(page_count, int) and page_count > 0 else None,
        rating=float(rating) if isinstance(rating, (int, float)) else None,
        cover_candidates=tuple(_covers(doc, work)),
        external_urls=external_urls,
        source_id=key_of_work or doc.get("key"),
    )


def relevance_score(doc: dict[str, Any], query: str, preferred_languages: set[str]) -> int:
    """Score how well a search doc's title answers a query.

    Only the best title tier counts (exact, prefix, containment, all
    words, then per matching word); language and cover presence add on top.
    """
    doc_title = (doc.get("title") or doc.get("title_suggest") or "").lower().strip()
    wanted = query.lower().strip()
    words = wanted.split()

    score = 0
    if doc_title == wanted:
        score += EXACT_TITLE_SCORE
    elif doc_title.startswith(wanted):
        score += PREFIX_TITLE_SCORE
    elif wanted in doc_title:
        score += CONTAINS_TITLE_SCORE
    elif words and all(word in doc_title for word in words):
        score += ALL_WORDS_SCORE
    elif words:
        score += PER_WORD_SCORE * sum(1 for word in words if word in doc_title)

    if preferred_languages & set(_doc_languages(doc)):
        score += PREFERRED_LANGUAGE_SCORE
    if doc.get("cover_i"):
        score += HAS_COVER_SCORE
    return score


def rank_documents(
    docs: list[dict[str, Any]], query: str, language: str | None = None
) -> list[dict[str, Any]]:
    """Re-rank search docs by relevance score; ties keep API order."""
    preferred = language_codes(language) if language else set()
    scored = [(relevance_score(doc, query, preferred), index, doc) for index, doc in enumerate(docs)]
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [doc for _, _, doc in scored]


def matches_language(record: CandidateRecord, doc: dict[str, Any], language: str) -> bool:
    """Whether a record (or any of its doc's edition languages) is in a language."""
    allowed = language_codes(language)
    codes = set(_doc_languages(doc))
    if record.language:
        codes.add(record.language)
    return bool(codes & allowed)
