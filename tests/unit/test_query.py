# ABOUTME: Unit tests for search-query normalization of mangled titles.
# ABOUTME: Covers mangling detection, CamelCase and wordninja splitting, and title variants.

from bookenrich.metadata.query import (
    main_title,
    needs_normalization,
    split_concatenated,
    title_variants,
)


class TestNeedsNormalization:
    """Tests for mangled-title detection."""

    def test_normal_titles_are_left_alone(self) -> None:
        assert not needs_normalization("The Name of the Rose")
        assert not needs_normalization("Dune")
        assert not needs_normalization("1984")

    def test_camel_case(self) -> None:
        assert needs_normalization("SteveBerry-TheTemplarLegacy")

    def test_underscores(self) -> None:
        assert needs_normalization("the_name_of_the_rose")

    def test_long_spaceless_run(self) -> None:
        assert needs_normalization("thenameoftherose")


class TestSplitConcatenated:
    """Tests for splitting mangled titles into words."""

    def test_camel_case_and_digits(self) -> None:
        assert split_concatenated("LesRoyaumesDeFeu_Tome2") == "Les Royaumes De Feu Tome 2"

    def test_underscores_become_spaces(self) -> None:
        assert split_concatenated("the_name_of_the_rose") == "the name of the rose"

    def test_lowercase_run_split_into_words(self) -> None:
        words = split_concatenated("thenameoftherose").split()
        assert "name" in words
        assert "rose" in words

    def test_clean_title_unchanged(self) -> None:
        assert split_concatenated("The Name of the Rose") == "The Name of the Rose"


class TestTitleVariants:
    """Tests for main-title extraction and title variants."""

    def test_main_title_before_dash(self) -> None:
        assert main_title("Thorgal - Tome 21 - La Couronne d'Ogotaï") == "Thorgal"

    def test_main_title_before_colon(self) -> None:
        assert main_title("Dune: Messiah") == "Dune"

    def test_hyphenated_word_is_not_a_separator(self) -> None:
        assert main_title("Spider-Man") == "Spider-Man"

    def test_variants_most_literal_first(self) -> None:
        assert title_variants("Dune: Messiah") == ["Dune: Messiah", "Dune"]

    def test_variants_include_demangled_form(self) -> None:
        assert title_variants("LesRoyaumesDeFeu") == ["LesRoyaumesDeFeu", "Les Royaumes De Feu"]

    def test_plain_title_has_one_variant(self) -> None:
        assert title_variants("The Name of the Rose") == ["The Name of the Rose"]

    def test_empty(self) -> None:
        assert title_variants(None) == []
        assert title_variants("  ") == []
