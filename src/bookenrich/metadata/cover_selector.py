# ABOUTME: Picks the single best cover URL from a set of candidates without over-fetching.
# ABOUTME: Walks candidates by rank, HEAD-validating each until one looks like a real image.

import logging
from collections.abc import Sequence
from enum import Enum

from bookenrich.config import EnrichmentSettings
from bookenrich.metadata.http import HttpClient, MetadataFetchError
from bookenrich.metadata.types import CoverCandidate, CoverType

logger = logging.getLogger(__name__)

_OPENLIBRARY_ISBN_COVER = "covers.openlibrary.org/b/isbn/"


class Validation(Enum):
    VALID = "valid"
    INVALID = "invalid"
    INCONCLUSIVE = "inconclusive"


def rank_covers(candidates: Sequence[CoverCandidate]) -> list[CoverCandidate]:
    """Front covers before back covers, each by priority descending.

    The sort is stable, so equal-priority candidates keep collection order.
    """
    return sorted(
        candidates, key=lambda c: (c.cover_type != CoverType.FRONT, -c.priority)
    )


def is_trusted(candidate: CoverCandidate, settings: EnrichmentSettings) -> bool:
    return (
        candidate.source in settings.trusted_cover_sources
        and candidate.priority >= settings.cover_trust_threshold
    )


def validation_url(url: str) -> str:
    """OpenLibrary ISBN covers return a placeholder unless told not to."""
    if _OPENLIBRARY_ISBN_COVER not in url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}default=false"


async def validate_cover(
    url: str, http: HttpClient, settings: EnrichmentSettings
) -> Validation:
    """Classify a cover URL with a HEAD request.

    404 and other client errors, placeholder-sized bodies and non-image
    content types are invalid. Transport failures and server errors are
    inconclusive, since they say nothing about the image itself.
    """
    try:
        result = await http.head(validation_url(url), timeout=settings.cover_timeout)
    except MetadataFetchError as exc:
        logger.warning("Cover validation inconclusive for %s: %s", url, exc)
        return Validation.INCONCLUSIVE

    if result.status_code >= 500:
        logger.warning("Cover validation inconclusive for %s: HTTP %d", url, result.status_code)
        return Validation.INCONCLUSIVE
    if result.status_code != 200:
        logger.info("Cover not found at %s (HTTP %d)", url, result.status_code)
        return Validation.INVALID
    if not result.content_type.lower().startswith("image/"):
        logger.info("Cover at %s is not an image (%s)", url, result.content_type or "no type")
        return Validation.INVALID
    # A zero or missing length means the server did not say; give it the benefit of the doubt.
    if result.content_length and result.content_length < settings.min_cover_bytes:
        logger.info("Cover at %s looks like a placeholder (%d bytes)", url, result.content_length)
        return Validation.INVALID
    return Validation.VALID


async def select_best_cover(
    candidates: Sequence[CoverCandidate],
    http: HttpClient,
    *,
    max_validation_attempts: int | None = None,
    settings: EnrichmentSettings | None = None,
) -> str | None:
    """Return the best cover URL, or None only when there are no candidates.

    Trusted candidates are returned without a request and do not count as
    an attempt. After max_validation_attempts failed validations the
    top-ranked candidate is returned unconditionally.
    """
    if not candidates:
        return None
    settings = settings or EnrichmentSettings()
    if max_validation_attempts is None:
        max_validation_attempts = settings.max_cover_validation_attempts

    ranked = rank_covers(candidates)
    attempts = 0
    for candidate in ranked:
        if attempts >= max_validation_attempts:
            logger.info(
                "Reached %d cover validation attempts, using %s",
                max_validation_attempts,
                ranked[0].url,
            )
            return ranked[0].url

        if is_trusted(candidate, settings):
            logger.debug("Using trusted cover from %s: %s", candidate.source, candidate.url)
            return candidate.url

        outcome = await validate_cover(candidate.url, http, settings)
        attempts += 1
        if outcome is Validation.VALID:
            logger.info("Found valid cover: %s", candidate.url)
            return candidate.url
        if outcome is Validation.INCONCLUSIVE:
            logger.info("Using cover with inconclusive validation: %s", candidate.url)
            return candidate.url

    logger.warning("All covers failed validation, using %s", ranked[0].url)
    return ranked[0].url
