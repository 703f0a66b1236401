# ABOUTME: Text cleanup and normalization shared by the provider parsers and the matcher.
# ABOUTME: Handles HTML descriptions, quote stripping, category cleanup, titles, years, languages.

import re
import unicodedata
from collections.abc import Iterable

from bs4 import BeautifulSoup

# Opening quote -> closing quote.
_QUOTE_PAIRS = {
    '"': '"',
    "'": "'",
    "\u201c": "\u201d",
    "\u2018": "\u2019",
    "\u201e": "\u201c",
    "\u00ab": "\u00bb",
}

_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_P_CLOSE_RE = re.compile(r"</p\s*>", re.IGNORECASE)
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
_NON_WORD_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_YEAR_RE = re.compile(r"\d{4}")

# Categories too broad to be worth keeping when anything more specific exists.
GENERIC_CATEGORIES = frozenset({"fiction", "nonfiction", "non-fiction", "general"})

_LANGUAGE_CODES = {
    "eng": "en",
    "fre": "fr",
    "fra": "fr",
    "spa": "es",
    "ger": "de",
    "deu": "de",
    "ita": "it",
    "por": "pt",
    "rus": "ru",
    "jpn": "ja",
    "kor": "ko",
    "chi": "zh",
    "zho": "zh",
    "dut": "nl",
    "nld": "nl",
}


def remove_surrounding_quotes(text: str | None) -> str | None:
    """Strip one pair of quotes if, and only if, they delimit the whole string.

    '"Dune"' becomes 'Dune', but '"Dune" and "Emma"' is left alone because
    the closing quote also appears inside.
    """
    if not text:
        return text
    stripped = text.strip()
    if len(stripped) < 2:
        return text
    closer = _QUOTE_PAIRS.get(stripped[0])
    if closer is None or stripped[-1] != closer:
        return text
    inner = stripped[1:-1]
    if closer in inner or stripped[0] in inner:
        return text
    return inner.strip()


def clean_description(description: str | None) -> str | None:
    """Convert an HTML-ish provider description to plain text.

    Line breaks and paragraph ends survive as newlines, all other markup is
    dropped and entities are decoded.
    """
    if not description or not isinstance(description, str):
        return None
    text = _BR_RE.sub("\n", description)
    text = _P_CLOSE_RE.sub("\n\n", text)
    text = BeautifulSoup(text, "html.parser").get_text()
    text = text.replace("\xa0", " ")
    text = _EXCESS_NEWLINES_RE.sub("\n\n", text).strip()
    return remove_surrounding_quotes(text) or None


def _most_specific_segment(category: str) -> tuple[str, bool] | None:
    """Return (segment, is_generic) for the best segment of "A / B / C"."""
    segments = [seg.strip() for seg in category.split("/") if seg.strip()]
    if not segments:
        return None
    for segment in reversed(segments):
        if segment.lower() not in GENERIC_CATEGORIES:
            return segment, False
    return segments[0], True


def clean_categories(categories: Iterable[str]) -> tuple[str, ...]:
    """Reduce provider categories to specific, de-duplicated genres.

    "Fiction / Dystopian" becomes "Dystopian". Generic entries such as
    "Fiction" are dropped when at least one specific category remains.
    """
    specific: list[str] = []
    generic: list[str] = []
    for category in categories:
        if not isinstance(category, str):
            continue
        picked = _most_specific_segment(category)
        if picked is None:
            continue
        segment, is_generic = picked
        bucket = generic if is_generic else specific
        if segment not in bucket:
            bucket.append(segment)
    return tuple(specific) if specific else tuple(generic)


def dedupe(values: Iterable[str | None]) -> tuple[str, ...]:
    """Order-preserving, case-sensitive dedupe that drops blank entries."""
    seen: list[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        value = value.strip()
        if value and value not in seen:
            seen.append(value)
    return tuple(seen)


def normalize_title(title: str | None) -> str:
    """Normalize a title for comparison.

    Lowercases, strips diacritics (NFD decomposition), removes punctuation,
    collapses whitespace. Idempotent.
    """
    if not title:
        return ""
    text = unicodedata.normalize("NFD", title.lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _NON_WORD_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_year(value: str | int | None) -> int | None:
    """Pull a four-digit year out of a provider date string."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = _YEAR_RE.search(value)
    return int(match.group()) if match else None


def to_iso639_1(code: str | None) -> str | None:
    """Map the 3-letter codes providers use to ISO 639-1 where known."""
    if not code:
        return None
    code = code.rsplit("/", 1)[-1].lower()
    return _LANGUAGE_CODES.get(code, code)
