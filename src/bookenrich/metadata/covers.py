# ABOUTME: Cover candidate collection: provider-embedded covers plus ISBN-keyed URL heuristics.
# ABOUTME: Every candidate gets a priority from a shared size scale plus a per-source bonus.

import re
from collections.abc import Iterable
from dataclasses import dataclass

from bookenrich.metadata.isbn import clean_isbn, is_isbn10, is_ismn, isbn13_to_isbn10
from bookenrich.metadata.types import BookRecord, CandidateRecord, CoverCandidate, CoverType, SizeClass

# Shared size scale, identical for every provider.
SIZE_PRIORITY: dict[SizeClass, int] = {
    SizeClass.THUMBNAIL: 1,
    SizeClass.SMALL: 2,
    SizeClass.MEDIUM: 3,
    SizeClass.LARGE: 4,
    SizeClass.ORIGINAL: 5,
}

# Source bonuses on top of the size scale. Amazon's ISBN-10 covers have the
# broadest localized coverage, so they outrank other sources at equal size.
AMAZON_BONUS = 2
AMAZON_US_BONUS = 1
OPENLIBRARY_BONUS = 0
OPENLIBRARY_SECONDARY_ISBN_BONUS = -1
GOOGLE_ZOOM3_BONUS = 1
GOOGLE_ZOOM0_BONUS = 1
GOOGLE_SIZED_BONUS = 2
GOOGLE_VOLUME_ID_BONUS = 0

AMAZON_SOURCE = "Amazon"
AMAZON_US_SOURCE = "Amazon-US"
OPENLIBRARY_SOURCE = "OpenLibrary"
OPENLIBRARY_ISBN_SOURCE = "OpenLibrary-ISBN"
GOOGLE_SOURCE = "Google Books"
GOOGLE_VOLUME_ID_SOURCE = "Google Books (Volume ID)"
IMSLP_SOURCE = "IMSLP"

_AMAZON_EU_BASE = "https://images-eu.ssl-images-amazon.com/images/P"
_AMAZON_US_BASE = "https://images-na.ssl-images-amazon.com/images/P"
_AMAZON_SUFFIXES = (
    ("._SCLZZZZZZZ_.jpg", SizeClass.LARGE),
    ("._SL500_.jpg", SizeClass.MEDIUM),
    ("._SL160_.jpg", SizeClass.SMALL),
)

_OL_COVERS_BASE = "https://covers.openlibrary.org/b"
_OL_SUFFIXES = (
    ("-L", SizeClass.LARGE),
    ("-M", SizeClass.MEDIUM),
    ("-S", SizeClass.SMALL),
)

_GOOGLE_CONTENT_URL = "https://books.google.com/books/content"
_GOOGLE_IMAGE_LINK_SIZES = (
    ("large", SizeClass.LARGE),
    ("medium", SizeClass.MEDIUM),
    ("small", SizeClass.SMALL),
    ("thumbnail", SizeClass.THUMBNAIL),
)

_ZOOM_RE = re.compile(r"zoom=\d+")
_SIZE_PARAM_RE = re.compile(r"[&?](?:w|h|zoom)=\d+")
_WIDTH_RE = re.compile(r"[&?]w=(\d+)")
_HEIGHT_RE = re.compile(r"[&?]h=(\d+)")
_OL_ID_ORIGINAL_RE = re.compile(r"/b/id/\d+\.jpg$")


def size_priority(size_class: SizeClass, bonus: int = 0) -> int:
    return SIZE_PRIORITY[size_class] + bonus


def https(url: str) -> str:
    return "https://" + url[len("http://"):] if url.startswith("http://") else url


@dataclass(frozen=True)
class CoverCollection:
    """All cover candidates for a record plus the default pick.

    The default is the best provider-embedded cover, or the best heuristic
    one when the provider reported no cover at all.
    """

    candidates: tuple[CoverCandidate, ...]
    default: CoverCandidate | None


def amazon_covers(isbn10: str | None) -> list[CoverCandidate]:
    """Amazon covers keyed by ISBN-10: EU in three sizes plus the US large image."""
    if not isbn10 or not is_isbn10(isbn10):
        return []
    covers = [
        CoverCandidate(
            url=f"{_AMAZON_EU_BASE}/{isbn10}.01{suffix}",
            source=AMAZON_SOURCE,
            size_class=size_class,
            priority=size_priority(size_class, AMAZON_BONUS),
        )
        for suffix, size_class in _AMAZON_SUFFIXES
    ]
    covers.append(
        CoverCandidate(
            url=f"{_AMAZON_US_BASE}/{isbn10}.01._SCLZZZZZZZ_.jpg",
            source=AMAZON_US_SOURCE,
            size_class=SizeClass.LARGE,
            priority=size_priority(SizeClass.LARGE, AMAZON_US_BONUS),
        )
    )
    return covers


def openlibrary_isbn_covers(isbn: str | None, bonus: int = OPENLIBRARY_BONUS) -> list[CoverCandidate]:
    if not isbn:
        return []
    return [
        CoverCandidate(
            url=f"{_OL_COVERS_BASE}/isbn/{isbn}{suffix}.jpg",
            source=OPENLIBRARY_ISBN_SOURCE,
            size_class=size_class,
            priority=size_priority(size_class, bonus),
        )
        for suffix, size_class in _OL_SUFFIXES
    ]


def openlibrary_cover_id_covers(
    cover_id: int | str | None, cover_type: CoverType = CoverType.FRONT
) -> list[CoverCandidate]:
    """OpenLibrary covers by numeric cover id, including the original upload."""
    if not cover_id:
        return []
    covers = [
        CoverCandidate(
            url=f"{_OL_COVERS_BASE}/id/{cover_id}{suffix}.jpg",
            source=OPENLIBRARY_SOURCE,
            size_class=size_class,
            priority=size_priority(size_class, OPENLIBRARY_BONUS),
            cover_type=cover_type,
        )
        for suffix, size_class in _OL_SUFFIXES
    ]
    covers.append(
        CoverCandidate(
            url=f"{_OL_COVERS_BASE}/id/{cover_id}.jpg",
            source=OPENLIBRARY_SOURCE,
            size_class=SizeClass.ORIGINAL,
            priority=size_priority(SizeClass.ORIGINAL, OPENLIBRARY_BONUS),
            cover_type=cover_type,
        )
    )
    return covers


def enhanced_google_covers(base_url: str | None) -> list[CoverCandidate]:
    """Higher-resolution variants of a Google Books image link.

    Google serves larger renditions of the same image when the zoom level
    is lowered or explicit dimensions are requested.
    """
    if not base_url:
        return []
    url = https(base_url)
    covers: list[CoverCandidate] = []

    if "zoom=" in url:
        for zoom, size_class, bonus in (
            ("zoom=0", SizeClass.ORIGINAL, GOOGLE_ZOOM0_BONUS),
            ("zoom=3", SizeClass.LARGE, GOOGLE_ZOOM3_BONUS),
        ):
            variant = _ZOOM_RE.sub(zoom, url, count=1)
            if variant != url:
                covers.append(
                    CoverCandidate(
                        url=variant,
                        source=GOOGLE_SOURCE,
                        size_class=size_class,
                        priority=size_priority(size_class, bonus),
                    )
                )

    if "books.google." in url or "googleapis.com" in url:
        stripped = _SIZE_PARAM_RE.sub("", url)
        if "?" not in stripped and "&" in stripped:
            stripped = stripped.replace("&", "?", 1)
        separator = "&" if "?" in stripped else "?"
        covers.append(
            CoverCandidate(
                url=f"{stripped}{separator}w=800&h=1200&zoom=0",
                source=GOOGLE_SOURCE,
                size_class=SizeClass.ORIGINAL,
                priority=size_priority(SizeClass.ORIGINAL, GOOGLE_SIZED_BONUS),
            )
        )
    return covers


def google_image_link_covers(image_links: dict[str, str] | None) -> list[CoverCandidate]:
    """Covers from a Google Books volume's imageLinks, plus enhanced variants."""
    if not image_links:
        return []
    covers: list[CoverCandidate] = []
    for key, size_class in _GOOGLE_IMAGE_LINK_SIZES:
        url = image_links.get(key)
        if url:
            covers.append(
                CoverCandidate(
                    url=https(url),
                    source=GOOGLE_SOURCE,
                    size_class=size_class,
                    priority=size_priority(size_class),
                )
            )
    if covers:
        covers.extend(enhanced_google_covers(covers[0].url))
    return covers


def google_volume_id_covers(volume_id: str | None) -> list[CoverCandidate]:
    """Constructed cover URLs for a Google volume that reported no image links."""
    if not volume_id:
        return []
    return [
        CoverCandidate(
            url=f"{_GOOGLE_CONTENT_URL}?id={volume_id}&printsec=frontcover&img=1&zoom={zoom}",
            source=GOOGLE_VOLUME_ID_SOURCE,
            size_class=size_class,
            priority=size_priority(size_class, GOOGLE_VOLUME_ID_BONUS),
        )
        for zoom, size_class in ((1, SizeClass.MEDIUM), (0, SizeClass.SMALL))
    ]


def isbn_cover_candidates(isbn10: str | None, isbn13: str | None) -> list[CoverCandidate]:
    """Heuristic ISBN-keyed covers from Amazon and OpenLibrary.

    ISMNs (music scores) get nothing: neither service indexes them. The
    ISBN-10 is derived from a 978 ISBN-13 when not given. OpenLibrary URLs
    for the ISBN-10 rank one point below the ISBN-13 ones.
    """
    isbn10 = clean_isbn(isbn10) if isbn10 else None
    isbn13 = clean_isbn(isbn13) if isbn13 else None
    if is_ismn(isbn13):
        return []
    if not isbn10:
        isbn10 = isbn13_to_isbn10(isbn13)

    covers = amazon_covers(isbn10)
    covers.extend(openlibrary_isbn_covers(isbn13))
    if isbn10 and isbn10 != isbn13:
        covers.extend(openlibrary_isbn_covers(isbn10, OPENLIBRARY_SECONDARY_ISBN_BONUS))
    return covers


def dedupe_covers(candidates: Iterable[CoverCandidate]) -> list[CoverCandidate]:
    """Deduplicate by exact URL, keeping the highest-priority copy.

    First-seen order is preserved for the surviving URLs.
    """
    best: dict[str, CoverCandidate] = {}
    for candidate in candidates:
        current = best.get(candidate.url)
        if current is None or candidate.priority > current.priority:
            best[candidate.url] = candidate
    return list(best.values())


def _best(candidates: Iterable[CoverCandidate]) -> CoverCandidate | None:
    ranked = sorted(
        candidates, key=lambda c: (c.cover_type != CoverType.FRONT, -c.priority)
    )
    return ranked[0] if ranked else None


def collect_cover_candidates(record: CandidateRecord | BookRecord) -> CoverCollection:
    """Union a record's embedded covers with its ISBN-keyed heuristic covers."""
    if isinstance(record, CandidateRecord):
        embedded = list(record.cover_candidates)
    else:
        embedded = list(record.available_covers)
        if record.cover_url and all(c.url != record.cover_url for c in embedded):
            embedded.append(cover_from_url(record.cover_url))

    heuristic = isbn_cover_candidates(record.isbn10, record.isbn13)
    candidates = dedupe_covers(embedded + heuristic)
    by_url = {c.url: c for c in candidates}

    default = _best(by_url[c.url] for c in embedded)
    if default is None:
        default = _best(heuristic)
        default = by_url[default.url] if default else None
    return CoverCollection(candidates=tuple(candidates), default=default)


def estimate_cover_priority(url: str | None) -> int:
    """Guess a priority for a bare cover URL from its host and size markers."""
    if not url:
        return 0
    if "ssl-images-amazon.com" in url:
        for suffix, size_class in _AMAZON_SUFFIXES:
            if suffix in url:
                bonus = AMAZON_US_BONUS if "images-na." in url else AMAZON_BONUS
                return size_priority(size_class, bonus)
        return size_priority(SizeClass.MEDIUM, AMAZON_BONUS)

    if "covers.openlibrary.org" in url:
        if _OL_ID_ORIGINAL_RE.search(url):
            return size_priority(SizeClass.ORIGINAL)
        for suffix, size_class in _OL_SUFFIXES:
            if f"{suffix}.jpg" in url:
                return size_priority(size_class)
        return size_priority(SizeClass.SMALL)

    if "books.google." in url or "googleapis.com" in url:
        width = _WIDTH_RE.search(url)
        height = _HEIGHT_RE.search(url)
        if width and height:
            area = int(width.group(1)) * int(height.group(1))
            if area > 500_000:
                return size_priority(SizeClass.ORIGINAL, GOOGLE_SIZED_BONUS)
            if area > 200_000:
                return size_priority(SizeClass.LARGE)
            return size_priority(SizeClass.MEDIUM)
        if "zoom=0" in url:
            return size_priority(SizeClass.ORIGINAL, GOOGLE_ZOOM0_BONUS)
        return size_priority(SizeClass.MEDIUM)

    return size_priority(SizeClass.SMALL)


def source_for_url(url: str) -> str:
    if "ssl-images-amazon.com" in url:
        return AMAZON_US_SOURCE if "images-na." in url else AMAZON_SOURCE
    if "covers.openlibrary.org/b/isbn/" in url:
        return OPENLIBRARY_ISBN_SOURCE
    if "covers.openlibrary.org" in url:
        return OPENLIBRARY_SOURCE
    if "books.google." in url or "googleapis.com" in url:
        return GOOGLE_SOURCE
    if "imslp.org" in url:
        return IMSLP_SOURCE
    return "Original"


def cover_from_url(url: str, cover_type: CoverType = CoverType.FRONT) -> CoverCandidate:
    """Wrap a caller-supplied cover URL as a candidate with an estimated priority."""
    return CoverCandidate(
        url=url,
        source=source_for_url(url),
        priority=estimate_cover_priority(url),
        cover_type=cover_type,
    )
