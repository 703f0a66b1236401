# ABOUTME: Series volume discovery: finds, deduplicates and orders the volumes of a named series.
# ABOUTME: Runs several query phrasings per provider concurrently and filters results by series name.

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import replace

from bookenrich.config import EnrichmentSettings
from bookenrich.core.enrichment import build_providers
from bookenrich.metadata.http import EnrichHttpClient
from bookenrich.metadata.isbn import canonical_isbn13
from bookenrich.metadata.matcher import words_overlap
from bookenrich.metadata.provider import MetadataProvider
from bookenrich.metadata.series import extract_series_from_title, extract_volume_number
from bookenrich.metadata.text import normalize_title
from bookenrich.metadata.types import CandidateRecord, Provider

logger = logging.getLogger(__name__)

DEFAULT_MAX_VOLUMES = 100

# No single phrasing surfaces every volume, so each provider gets several.
_QUERY_VARIANTS: dict[Provider, tuple[str, ...]] = {
    Provider.GOOGLE_BOOKS: ('"{name}"', "{name} tome", "{name}", 'intitle:"{name}"', "{name} volume"),
    Provider.OPEN_LIBRARY: ("{name}", "{name} tome", "{name} volume"),
}

# Per-query result limits, as a function of max_volumes.
_QUERY_LIMITS: dict[Provider, Callable[[int], int]] = {
    Provider.GOOGLE_BOOKS: lambda max_volumes: min(max_volumes * 2, 40),
    Provider.OPEN_LIBRARY: lambda max_volumes: max(max_volumes, 40),
}


def _record_series(record: CandidateRecord) -> str | None:
    if record.series:
        return record.series
    parsed = extract_series_from_title(record.title)
    return parsed.series if parsed else None


def _words_bounded(shorter: str, longer: str) -> bool:
    """Every word of the shorter name starts or ends some word of the longer one."""
    longer_words = longer.split()
    return all(
        any(other.startswith(word) or other.endswith(word) for other in longer_words)
        for word in shorter.split()
    )


def belongs_to_series(record: CandidateRecord, series_name: str) -> bool:
    """Whether a search result is a volume of the named series.

    The record's own series field is used when present, otherwise a series
    parsed from its title. Names must be equal after normalization, or
    overlap word-wise with every word of the shorter name sitting on a word
    boundary of the longer one, which rejects coincidental substrings.
    """
    candidate = normalize_title(_record_series(record))
    target = normalize_title(series_name)
    if not candidate or not target:
        return False
    if candidate == target:
        return True
    shorter, longer = sorted((candidate, target), key=len)
    return words_overlap(shorter, longer) and _words_bounded(shorter, longer)


def volume_number(record: CandidateRecord) -> int | None:
    """The record's volume number: its own, then a title marker, then the full parser."""
    if record.series_number is not None:
        return record.series_number
    number = extract_volume_number(record.title)
    if number is not None:
        return number
    parsed = extract_series_from_title(record.title)
    return parsed.series_number if parsed else None


def order_volumes(volumes: Sequence[CandidateRecord]) -> list[CandidateRecord]:
    """Numbered volumes ascending, then unnumbered ones by title."""
    numbered = sorted((v for v in volumes if v.series_number is not None), key=lambda v: v.series_number)
    unnumbered = sorted(
        (v for v in volumes if v.series_number is None), key=lambda v: v.title.casefold()
    )
    return numbered + unnumbered


def _record_key(record: CandidateRecord) -> tuple[Provider, str]:
    """Identity of a search result, used to drop repeats across query variants."""
    return record.source_provider, record.source_id or normalize_title(record.title)


class _VolumeCollector:
    """Accumulates accepted volumes, deduplicating by number, else by ISBN.

    A record with neither is only kept once per provider id, or per title
    when the provider gave no id, since every query variant can return it.
    """

    def __init__(self, series_name: str) -> None:
        self.series_name = series_name
        self.volumes: list[CandidateRecord] = []
        self._numbers: set[int] = set()
        self._isbns: set[str] = set()
        self._seen: set[tuple[Provider, str]] = set()

    def add(self, record: CandidateRecord) -> bool:
        if not belongs_to_series(record, self.series_name):
            return False
        isbn = canonical_isbn13(record.isbn13) or canonical_isbn13(record.isbn10)
        if isbn is not None and isbn in self._isbns:
            return False
        number = volume_number(record)
        if number is not None:
            if number in self._numbers:
                return False
            self._numbers.add(number)
        if isbn is not None:
            self._isbns.add(isbn)
        if number is None and isbn is None:
            key = _record_key(record)
            if key in self._seen:
                return False
            self._seen.add(key)
        self.volumes.append(replace(record, series=self.series_name, series_number=number))
        return True


class SeriesDiscoverer:
    """Discovers the volumes of a series across providers."""

    def __init__(self, providers: Sequence[MetadataProvider]) -> None:
        self._providers = [p for p in providers if p.provider in _QUERY_VARIANTS]

    async def discover(
        self,
        series_name: str,
        *,
        language: str | None = None,
        max_volumes: int = DEFAULT_MAX_VOLUMES,
    ) -> list[CandidateRecord]:
        """Return the series' volumes, ordered by volume number.

        Every query variant runs concurrently; results are then processed in
        a fixed provider and variant order so deduplication is deterministic.
        A failed query contributes nothing.
        """
        name = series_name.strip()
        if not name:
            return []
        logger.info("Searching for volumes of %r", name)

        jobs: list[tuple[MetadataProvider, str]] = [
            (provider, variant.format(name=name))
            for provider in self._providers
            for variant in _QUERY_VARIANTS[provider.provider]
        ]
        results = await asyncio.gather(
            *(
                provider.search_by_text(
                    query, _QUERY_LIMITS[provider.provider](max_volumes), language=language
                )
                for provider, query in jobs
            ),
            return_exceptions=True,
        )

        collector = _VolumeCollector(name)
        for (provider, query), result in zip(jobs, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning("%s query %r failed: %s", provider.provider.label, query, result)
                continue
            accepted = sum(collector.add(record) for record in result)
            logger.debug("%s query %r added %d volume(s)", provider.provider.label, query, accepted)

        volumes = order_volumes(collector.volumes)[:max_volumes]
        logger.info("Found %d volume(s) for %r", len(volumes), name)
        return volumes


async def discover_series_volumes(
    series_name: str,
    *,
    language: str | None = None,
    max_volumes: int = DEFAULT_MAX_VOLUMES,
    providers: Sequence[MetadataProvider] | None = None,
    settings: EnrichmentSettings | None = None,
) -> list[CandidateRecord]:
    """Discover a series' volumes with the standard providers and a fresh HTTP client."""
    settings = settings or EnrichmentSettings()
    if providers is not None:
        return await SeriesDiscoverer(providers).discover(
            series_name, language=language, max_volumes=max_volumes
        )

    async with EnrichHttpClient(
        timeout=settings.search_timeout,
        min_request_interval=settings.min_request_interval,
        max_retries=settings.max_retries,
        user_agent=settings.user_agent,
        max_concurrent_requests=settings.max_concurrent_requests,
    ) as client:
        discoverer = SeriesDiscoverer(build_providers(client, settings))
        return await discoverer.discover(series_name, language=language, max_volumes=max_volumes)
