# ABOUTME: Decides which provider result, if any, describes the same work as a reference record.
# ABOUTME: ISBN equality first, then normalized title equality, word overlap, and containment.

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from bookenrich.metadata.isbn import canonical_isbn13
from bookenrich.metadata.text import normalize_title
from bookenrich.metadata.types import CandidateRecord

logger = logging.getLogger(__name__)

# Words this short ("le", "of", "a") carry no signal for overlap matching.
_MIN_OVERLAP_WORD_LENGTH = 3


class MatchReference(Protocol):
    """Anything with a title and ISBNs: a BookRecord or a CandidateRecord."""

    @property
    def title(self) -> str | None: ...

    @property
    def isbn10(self) -> str | None: ...

    @property
    def isbn13(self) -> str | None: ...


def _overlap_words(normalized: str) -> list[str]:
    return [word for word in normalized.split() if len(word) >= _MIN_OVERLAP_WORD_LENGTH]


def titles_equal(reference: str, candidate: str) -> bool:
    return bool(reference) and reference == candidate


def words_overlap(reference: str, candidate: str) -> bool:
    """Every significant reference word appears within some candidate word.

    Both arguments must already be normalized. "A word appears within" is
    substring containment in either direction, so "royaume" and "royaumes"
    match each other.
    """
    reference_words = _overlap_words(reference)
    if not reference_words:
        return False
    candidate_words = candidate.split()
    return all(
        any(word in other or other in word for other in candidate_words)
        for word in reference_words
    )


def titles_contain(reference: str, candidate: str) -> bool:
    if not reference or not candidate:
        return False
    return reference in candidate or candidate in reference


def titles_match(reference: str | None, candidate: str | None) -> bool:
    """Whether two raw titles match under any of the title tiers."""
    ref = normalize_title(reference)
    cand = normalize_title(candidate)
    return (
        titles_equal(ref, cand) or words_overlap(ref, cand) or titles_contain(ref, cand)
    )


def _isbn_keys(record: MatchReference) -> set[str]:
    keys = {canonical_isbn13(record.isbn13), canonical_isbn13(record.isbn10)}
    keys.discard(None)
    return keys  # type: ignore[return-value]


def match_by_isbn(
    reference: MatchReference, candidates: Sequence[CandidateRecord]
) -> CandidateRecord | None:
    """Return the first candidate sharing the reference's ISBN.

    The reference's ISBN-13 is preferred over its ISBN-10; both sides are
    compared in ISBN-13 form so a 10 on one side matches a 13 on the other.
    """
    reference_isbn = canonical_isbn13(reference.isbn13) or canonical_isbn13(reference.isbn10)
    if reference_isbn is None:
        return None
    for candidate in candidates:
        if reference_isbn in _isbn_keys(candidate):
            return candidate
    return None


_TitleTier = tuple[str, Callable[[str, str], bool]]

_TITLE_TIERS: tuple[_TitleTier, ...] = (
    ("title", titles_equal),
    ("word overlap", words_overlap),
    ("containment", titles_contain),
)


def find_match(
    reference: MatchReference,
    candidates: Sequence[CandidateRecord],
    *,
    extra_titles: Sequence[str] = (),
) -> CandidateRecord | None:
    """Find the candidate describing the same work as the reference.

    Tiers are tried in order across all candidates; within a tier the
    earliest candidate wins, since providers return results by relevance.
    extra_titles are alternative spellings of the reference title (e.g. a
    de-mangled form) tried after the title itself within each tier.
    """
    if not candidates:
        return None

    matched = match_by_isbn(reference, candidates)
    if matched is not None:
        logger.debug("Matched %r by ISBN", matched.title)
        return matched

    reference_titles = [normalize_title(reference.title)]
    reference_titles += [normalize_title(t) for t in extra_titles]
    reference_titles = [t for i, t in enumerate(reference_titles) if t and t not in reference_titles[:i]]
    if not reference_titles:
        return None

    normalized_candidates = [(c, normalize_title(c.title)) for c in candidates]
    for tier_name, predicate in _TITLE_TIERS:
        for candidate, candidate_title in normalized_candidates:
            if any(predicate(ref, candidate_title) for ref in reference_titles):
                logger.debug("Matched %r by %s", candidate.title, tier_name)
                return candidate
    return None
