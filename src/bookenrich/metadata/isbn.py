# ABOUTME: ISBN cleaning, validation, and ISBN-10 / ISBN-13 cross-derivation.
# ABOUTME: Also recognizes ISMNs (music scores), which live in the 979-0 ISBN-13 range.

import re

_ISBN_STRIP_RE = re.compile(r"[\s-]")
_ISBN10_RE = re.compile(r"^\d{9}[\dX]$")
_ISBN13_RE = re.compile(r"^\d{13}$")

ISMN_PREFIX = "9790"


class InvalidIsbnError(ValueError):
    """Raised when a malformed ISBN is passed to an ISBN-specific lookup."""


def clean_isbn(isbn: str) -> str:
    """Strip hyphens and whitespace and upper-case a trailing x."""
    return _ISBN_STRIP_RE.sub("", isbn).upper()


def is_isbn10(isbn: str) -> bool:
    return bool(_ISBN10_RE.match(isbn))


def is_isbn13(isbn: str) -> bool:
    return bool(_ISBN13_RE.match(isbn))


def validate_isbn(isbn: str) -> str:
    """Return the cleaned ISBN, or raise InvalidIsbnError if it is malformed.

    Only the shape (10 chars with optional X check, or 13 digits) is checked;
    check digits are not verified because providers routinely store ISBNs
    with bad check digits and still index them.
    """
    if not isbn or not isbn.strip():
        raise InvalidIsbnError("ISBN must not be empty")
    cleaned = clean_isbn(isbn)
    if not (is_isbn10(cleaned) or is_isbn13(cleaned)):
        raise InvalidIsbnError(f"Invalid ISBN format: {isbn!r}")
    return cleaned


def isbn10_check_digit(payload: str) -> str:
    """Compute the ISBN-10 check character for a 9-digit payload."""
    total = sum(int(digit) * (10 - i) for i, digit in enumerate(payload))
    check = (11 - total % 11) % 11
    return "X" if check == 10 else str(check)


def isbn13_check_digit(payload: str) -> str:
    """Compute the EAN-13 check digit for a 12-digit payload."""
    total = sum(int(digit) * (1 if i % 2 == 0 else 3) for i, digit in enumerate(payload))
    return str((10 - total % 10) % 10)


def isbn13_to_isbn10(isbn13: str | None) -> str | None:
    """Derive the ISBN-10 form of a 978-prefixed ISBN-13.

    979-prefixed ISBNs have no ISBN-10 equivalent; returns None for those and
    for anything that is not a 13-digit string.
    """
    if not isbn13:
        return None
    cleaned = clean_isbn(isbn13)
    if not is_isbn13(cleaned) or not cleaned.startswith("978"):
        return None
    payload = cleaned[3:12]
    return payload + isbn10_check_digit(payload)


def isbn10_to_isbn13(isbn10: str | None) -> str | None:
    """Derive the 978-prefixed ISBN-13 form of an ISBN-10."""
    if not isbn10:
        return None
    cleaned = clean_isbn(isbn10)
    if not is_isbn10(cleaned):
        return None
    payload = "978" + cleaned[:9]
    return payload + isbn13_check_digit(payload)


def isbn_variants(isbn: str) -> list[str]:
    """Return the cleaned ISBN followed by its derived other form, if any."""
    cleaned = clean_isbn(isbn)
    variants = [cleaned]
    derived = isbn13_to_isbn10(cleaned) if len(cleaned) == 13 else isbn10_to_isbn13(cleaned)
    if derived and derived not in variants:
        variants.append(derived)
    return variants


def canonical_isbn13(isbn: str | None) -> str | None:
    """Map an ISBN of either form to its ISBN-13 for equality checks."""
    if not isbn:
        return None
    cleaned = clean_isbn(isbn)
    if is_isbn13(cleaned):
        return cleaned
    if is_isbn10(cleaned):
        return isbn10_to_isbn13(cleaned)
    return None


def split_isbns(isbns: list[str]) -> tuple[str | None, str | None]:
    """Pick the first ISBN-10 and ISBN-13 from a mixed list and fill the gaps.

    Returns (isbn10, isbn13). A missing form is derived from the other when
    possible.
    """
    isbn10 = None
    isbn13 = None
    for raw in isbns:
        if not raw:
            continue
        cleaned = clean_isbn(raw)
        if isbn10 is None and is_isbn10(cleaned):
            isbn10 = cleaned
        elif isbn13 is None and is_isbn13(cleaned):
            isbn13 = cleaned
    if isbn10 is None:
        isbn10 = isbn13_to_isbn10(isbn13)
    if isbn13 is None:
        isbn13 = isbn10_to_isbn13(isbn10)
    return isbn10, isbn13


def is_ismn(isbn: str | None) -> bool:
    """Whether an identifier is an ISMN (music score) in ISBN-13 form."""
    if not isbn:
        return False
    return clean_isbn(isbn).startswith(ISMN_PREFIX)
