# ABOUTME: Integration tests for series volume discovery.
# ABOUTME: Covers membership filtering, deduplication, ordering and partial provider failure.

import asyncio

import httpx

from bookenrich.core.series_discovery import (
    SeriesDiscoverer,
    belongs_to_series,
    discover_series_volumes,
    order_volumes,
    volume_number,
)
from bookenrich.metadata.googlebooks import GoogleBooksProvider
from bookenrich.metadata.http import EnrichHttpClient, MetadataFetchError
from bookenrich.metadata.openlibrary import OpenLibraryProvider
from bookenrich.metadata.types import CandidateRecord, Provider
from tests.fixtures.fake_http import FakeHttpClient
from tests.fixtures.googlebooks_responses import SERIES_SEARCH_RESPONSE as GOOGLE_SERIES
from tests.fixtures.openlibrary_responses import SERIES_SEARCH_RESPONSE as OL_SERIES
from tests.fixtures.stub_provider import StubProvider

GB = Provider.GOOGLE_BOOKS
OL = Provider.OPEN_LIBRARY


def _volume(title: str, provider: Provider = GB, **fields) -> CandidateRecord:
    return CandidateRecord(title=title, source_provider=provider, **fields)


def _discover(providers, name: str = "Thorgal", **kwargs) -> list[CandidateRecord]:
    return asyncio.run(SeriesDiscoverer(providers).discover(name, **kwargs))


class TestBelongsToSeries:
    """Tests for series membership."""

    def test_series_field(self) -> None:
        assert belongs_to_series(_volume("La Magicienne trahie", series="Thorgal"), "Thorgal")

    def test_series_parsed_from_title(self) -> None:
        assert belongs_to_series(_volume("Thorgal - Tome 3 - Les Trois Vieillards"), "thorgal")

    def test_accents_and_case_ignored(self) -> None:
        assert belongs_to_series(_volume("x", series="Les Légendaires"), "les legendaires")

    def test_other_series_rejected(self) -> None:
        assert not belongs_to_series(_volume("Blacksad Tome 1"), "Thorgal")

    def test_coincidental_substring_rejected(self) -> None:
        assert not belongs_to_series(_volume("x", series="Rangers"), "Ange")

    def test_no_series_rejected(self) -> None:
        assert not belongs_to_series(_volume("Thorgal: L'intégrale"), "Thorgal")

    def test_blank_name_rejected(self) -> None:
        assert not belongs_to_series(_volume("x", series="Thorgal"), "  ")


class TestVolumeNumber:
    def test_own_number_first(self) -> None:
        assert volume_number(_volume("Thorgal Tome 3", series_number=7)) == 7

    def test_title_marker(self) -> None:
        assert volume_number(_volume("Thorgal T01")) == 1
        assert volume_number(_volume("Wings of Fire #4")) == 4

    def test_full_parser_fallback(self) -> None:
        assert volume_number(_volume("Foundation 2")) == 2

    def test_none(self) -> None:
        assert volume_number(_volume("Thorgal: L'intégrale")) is None


class TestOrderVolumes:
    def test_numbered_then_unnumbered_by_title(self) -> None:
        volumes = [
            _volume("Third", series_number=3),
            _volume("First", series_number=1),
            _volume("b side"),
            _volume("A side"),
        ]
        assert [v.title for v in order_volumes(volumes)] == ["First", "Third", "A side", "b side"]


class TestDiscoverer:
    """Discovery against scripted providers."""

    def test_merges_and_dedupes_across_providers(self) -> None:
        google = StubProvider(
            GB,
            by_text={
                "*": [
                    _volume("Thorgal - Tome 2", isbn13="9782803600045"),
                    _volume("Thorgal - Tome 1", isbn13="9782803600038"),
                ]
            },
        )
        openlibrary = StubProvider(
            OL,
            by_text={
                "*": [
                    _volume("Thorgal - Tome 1 - La Magicienne trahie", OL, isbn13="9782803600038"),
                    _volume("Thorgal - Tome 3", OL, isbn13="9782803600052"),
                ]
            },
        )
        volumes = _discover([google, openlibrary])
        assert [v.series_number for v in volumes] == [1, 2, 3]
        assert [v.source_provider for v in volumes] == [GB, GB, OL]
        assert all(v.series == "Thorgal" for v in volumes)

    def test_same_number_kept_once(self) -> None:
        google = StubProvider(
            GB,
            by_text={
                "*": [
                    _volume("Thorgal - Tome 1", isbn13="9782803600038"),
                    _volume("Thorgal - Tome 1 - Édition spéciale", isbn13="9782803699999"),
                ]
            },
        )
        assert len(_discover([google])) == 1

    def test_unnumbered_duplicates_by_isbn(self) -> None:
        google = StubProvider(
            GB,
            by_text={
                "*": [
                    _volume("Thorgal: L'intégrale", series="Thorgal", isbn13="9782803611111"),
                    _volume("Thorgal - Intégrale", series="Thorgal", isbn13="9782803611111"),
                ]
            },
        )
        volumes = _discover([google])
        assert [v.title for v in volumes] == ["Thorgal: L'intégrale"]

    def test_unnumbered_without_isbn_all_kept(self) -> None:
        google = StubProvider(
            GB,
            by_text={
                "*": [
                    _volume("Thorgal: Art book", series="Thorgal"),
                    _volume("Thorgal: Coffret", series="Thorgal"),
                ]
            },
        )
        assert len(_discover([google])) == 2

    def test_repeated_keyless_record_kept_once(self) -> None:
        google = StubProvider(GB, by_text={"*": [_volume("Thorgal: Art book", series="Thorgal")]})
        volumes = _discover([google])
        assert len(google.text_calls) == 5
        assert [v.title for v in volumes] == ["Thorgal: Art book"]

    def test_keyless_records_told_apart_by_source_id(self) -> None:
        google = StubProvider(
            GB,
            by_text={
                "*": [
                    _volume("Thorgal: Coffret", series="Thorgal", source_id="a1"),
                    _volume("Thorgal: Coffret", series="Thorgal", source_id="b2"),
                ]
            },
        )
        assert len(_discover([google])) == 2

    def test_max_volumes_truncates_after_ordering(self) -> None:
        google = StubProvider(
            GB,
            by_text={"*": [_volume(f"Thorgal - Tome {n}", isbn13=f"978280360{n:04d}") for n in (5, 2, 9, 1)]},
        )
        volumes = _discover([google], max_volumes=2)
        assert [v.series_number for v in volumes] == [1, 2]

    def test_every_variant_queried_with_language(self) -> None:
        google = StubProvider(GB)
        openlibrary = StubProvider(OL)
        _discover([google, openlibrary], language="fr", max_volumes=10)
        assert [q for q, _, _ in google.text_calls] == [
            '"Thorgal"',
            "Thorgal tome",
            "Thorgal",
            'intitle:"Thorgal"',
            "Thorgal volume",
        ]
        assert {limit for _, limit, _ in google.text_calls} == {20}
        assert [q for q, _, _ in openlibrary.text_calls] == ["Thorgal", "Thorgal tome", "Thorgal volume"]
        assert {limit for _, limit, _ in openlibrary.text_calls} == {40}
        assert {lang for _, _, lang in google.text_calls + openlibrary.text_calls} == {"fr"}

    def test_failing_provider_tolerated(self) -> None:
        broken = StubProvider(GB, error=RuntimeError("quota exceeded"))
        openlibrary = StubProvider(OL, by_text={"*": [_volume("Thorgal - Tome 1", OL)]})
        volumes = _discover([broken, openlibrary])
        assert [v.title for v in volumes] == ["Thorgal - Tome 1"]

    def test_imslp_not_used(self) -> None:
        imslp = StubProvider(Provider.IMSLP, by_text={"*": [_volume("Thorgal - Tome 1")]})
        assert _discover([imslp]) == []
        assert not imslp.called

    def test_blank_name(self) -> None:
        google = StubProvider(GB)
        assert _discover([google], name="   ") == []
        assert not google.called


class TestWithRealProviders:
    """Discovery through the real adapters and canned search responses."""

    def _providers(self, http: FakeHttpClient):
        return [GoogleBooksProvider(http), OpenLibraryProvider(http)]

    def test_thorgal(self) -> None:
        http = FakeHttpClient({"volumes?q=": GOOGLE_SERIES, "search.json": OL_SERIES})
        volumes = asyncio.run(
            discover_series_volumes("Thorgal", providers=self._providers(http))
        )
        assert [v.series_number for v in volumes] == [1, 2, 3]
        assert [v.isbn13 for v in volumes] == ["9782803600038", "9782803600045", "9782803600052"]
        assert all("Blacksad" not in v.title for v in volumes)

    def test_openlibrary_down(self) -> None:
        http = FakeHttpClient(
            {"volumes?q=": GOOGLE_SERIES, "search.json": MetadataFetchError("HTTP 503", status_code=503)}
        )
        volumes = asyncio.run(
            discover_series_volumes("Thorgal", providers=self._providers(http))
        )
        assert [v.series_number for v in volumes] == [1, 3]

    def test_request_fan_out_bounded(self) -> None:
        in_flight = 0
        peak = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.005)
            in_flight -= 1
            if request.url.path.endswith("/volumes"):
                return httpx.Response(200, json=GOOGLE_SERIES)
            if request.url.path.endswith("/search.json"):
                return httpx.Response(200, json=OL_SERIES)
            return httpx.Response(404)

        async def go() -> list[CandidateRecord]:
            transport = httpx.MockTransport(handler)
            async with EnrichHttpClient(transport=transport, max_concurrent_requests=4) as client:
                return await discover_series_volumes("Thorgal", providers=self._providers(client))

        volumes = asyncio.run(go())
        assert [v.series_number for v in volumes] == [1, 2, 3]
        assert 1 < peak <= 4
