# ABOUTME: Search-query normalization for mangled titles (CamelCase, concatenated words).
# ABOUTME: Turns titles like "LesRoyaumesDeFeu_Tome2" into queries providers can answer.

import re

import wordninja

# Minimum length for a spaceless segment to be considered "concatenated".
# Shorter strings (e.g. "Dune", "1984") are left alone.
_MIN_CONCAT_LENGTH = 12

_CAMEL_CASE_RE = re.compile(r"[a-z][A-Z]")
_CAMEL_LOWER_UPPER_RE = re.compile(r"([a-z\d])([A-Z])")
_CAMEL_UPPER_SEQUENCE_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_LETTER_DIGIT_RE = re.compile(r"([a-zA-Z])(\d)")
_DIGIT_LETTER_RE = re.compile(r"(\d)([a-zA-Z])")
_SEPARATOR_RE = re.compile(r"[_.+]")
_SPLIT_MARK = "\x00"

# Leading segment of "Main Title - Subtitle" / "Main Title: Subtitle".
_MAIN_TITLE_RE = re.compile(r"\s+[-–—]\s+|\s*:\s")


def needs_normalization(text: str) -> bool:
    """Whether a title looks mangled rather than human-typed.

    True for underscore- or dot-joined words, CamelCase joins, or a long
    run of letters with no spaces.
    """
    text = text.strip()
    if not text:
        return False
    if "_" in text or (" " not in text and "." in text):
        return True
    if _CAMEL_CASE_RE.search(text):
        return True
    return any(len(word) >= _MIN_CONCAT_LENGTH and word.isalpha() for word in text.split())


def _split_camel_case(text: str) -> list[str]:
    """Split "HTMLParser2" style tokens on case and digit boundaries."""
    result = _CAMEL_LOWER_UPPER_RE.sub(rf"\1{_SPLIT_MARK}\2", text)
    result = _CAMEL_UPPER_SEQUENCE_RE.sub(rf"\1{_SPLIT_MARK}\2", result)
    result = _LETTER_DIGIT_RE.sub(rf"\1{_SPLIT_MARK}\2", result)
    result = _DIGIT_LETTER_RE.sub(rf"\1{_SPLIT_MARK}\2", result)
    parts = [p for p in result.split(_SPLIT_MARK) if p]
    return parts if parts else [text]


def split_concatenated(text: str) -> str:
    """Split a mangled title into space-separated words.

    Structural separators are replaced first, CamelCase boundaries split
    next, and anything still long and all-lowercase goes through wordninja.
    Titles that do not look mangled are returned unchanged.
    """
    if not needs_normalization(text):
        return text

    words: list[str] = []
    for segment in _SEPARATOR_RE.sub(" ", text).split():
        for part in _split_camel_case(segment):
            if part.islower() and len(part) >= _MIN_CONCAT_LENGTH:
                words.extend(wordninja.split(part) or [part])
            else:
                words.append(part)
    return " ".join(words)


def main_title(title: str) -> str:
    """Return the title before the first dash or colon separator."""
    head = _MAIN_TITLE_RE.split(title, maxsplit=1)[0].strip()
    return head or title.strip()


def title_variants(title: str | None) -> list[str]:
    """Titles worth matching a provider result against, most literal first.

    Includes the title itself, its de-mangled form, and its main title
    (text before " - " or ": ").
    """
    if not title or not title.strip():
        return []
    variants = [title.strip()]
    for candidate in (split_concatenated(title), main_title(title)):
        candidate = candidate.strip()
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants
