# ABOUTME: Unit tests for the Matcher: ISBN equality and the title tiers.
# ABOUTME: Verifies tier precedence across candidates and earliest-wins within a tier.

from bookenrich.metadata.matcher import (
    find_match,
    match_by_isbn,
    titles_match,
    words_overlap,
)
from bookenrich.metadata.types import BookRecord, Provider


class TestTitlePredicates:
    """Tests for the title comparison helpers."""

    def test_titles_match_ignores_case_and_accents(self) -> None:
        assert titles_match("Le Nom de la Rose", "le nom de la rosé")

    def test_titles_match_rejects_unrelated(self) -> None:
        assert not titles_match("Dune", "Emma")

    def test_titles_match_handles_none(self) -> None:
        assert not titles_match(None, "Dune")

    def test_word_overlap_ignores_short_words(self) -> None:
        assert words_overlap("royaumes de feu", "les royaumes du feu tome 2")

    def test_word_overlap_matches_plural_forms(self) -> None:
        assert words_overlap("royaume", "les royaumes de feu")

    def test_word_overlap_needs_a_significant_word(self) -> None:
        assert not words_overlap("le de", "le de la")


class TestMatchByIsbn:
    """Tests for ISBN equality matching."""

    def test_isbn10_reference_matches_isbn13_candidate(self, make_candidate) -> None:
        reference = BookRecord(title="Whatever", isbn10="0-15-600131-4")
        candidate = make_candidate(isbn13="9780156001311")
        assert match_by_isbn(reference, [candidate]) is candidate

    def test_no_isbn_on_reference(self, make_candidate) -> None:
        assert match_by_isbn(BookRecord(title="Dune"), [make_candidate(isbn13="9780156001311")]) is None


class TestFindMatch:
    """Tests for the tiered matcher."""

    def test_isbn_beats_earlier_title_match(self, make_candidate, rose_book) -> None:
        """A later ISBN-equal candidate wins over an earlier exact-title one."""
        same_title = make_candidate(isbn13="9780151446476")
        same_isbn = make_candidate(title="Il nome della rosa", isbn13="9780156001311")
        assert find_match(rose_book, [same_title, same_isbn]) is same_isbn

    def test_exact_title_beats_earlier_partial_match(self, make_candidate) -> None:
        reference = BookRecord(title="The Name of the Rose")
        partial = make_candidate(title="The Name of the Rose: including Postscript")
        exact = make_candidate(title="THE NAME OF THE ROSE")
        assert find_match(reference, [partial, exact]) is exact

    def test_earliest_candidate_wins_within_tier(self, make_candidate) -> None:
        reference = BookRecord(title="Dune")
        first = make_candidate(title="Dune", provider=Provider.OPEN_LIBRARY)
        second = make_candidate(title="Dune")
        assert find_match(reference, [first, second]) is first

    def test_word_overlap_tier(self, make_candidate) -> None:
        reference = BookRecord(title="Royaumes de Feu")
        candidate = make_candidate(title="Les Royaumes de Feu - Tome 2")
        assert find_match(reference, [candidate]) is candidate

    def test_containment_tier(self, make_candidate) -> None:
        reference = BookRecord(title="It")
        candidate = make_candidate(title="It Ends with Us")
        assert find_match(reference, [candidate]) is candidate

    def test_extra_titles_are_tried(self, make_candidate) -> None:
        reference = BookRecord(title="Dune: Messiah")
        candidate = make_candidate(title="Dune")
        assert find_match(reference, [candidate], extra_titles=["Dune"]) is candidate

    def test_no_match(self, make_candidate) -> None:
        reference = BookRecord(title="The Name of the Rose")
        assert find_match(reference, [make_candidate(title="Foucault's Pendulum")]) is None

    def test_no_candidates(self, rose_book) -> None:
        assert find_match(rose_book, []) is None

    def test_reference_without_title_or_isbn(self, make_candidate) -> None:
        assert find_match(BookRecord(), [make_candidate()]) is None
