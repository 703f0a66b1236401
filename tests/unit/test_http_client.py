# ABOUTME: Unit tests for the httpx-backed HTTP client.
# ABOUTME: Uses httpx.MockTransport so no request leaves the process.

import asyncio

import httpx
import pytest

from bookenrich.metadata.http import (
    DEFAULT_USER_AGENT,
    EnrichHttpClient,
    HttpClient,
    MetadataFetchError,
)


def _client(handler, **kwargs) -> EnrichHttpClient:
    return EnrichHttpClient(transport=httpx.MockTransport(handler), **kwargs)


def _run(coro_factory, client: EnrichHttpClient):
    async def go():
        async with client:
            return await coro_factory(client)

    return asyncio.run(go())


class TestGet:
    """Tests for JSON GET requests."""

    def test_returns_json_and_sends_params(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        result = _run(
            lambda c: c.get("https://example.com/api", params={"q": "dune"}), _client(handler)
        )
        assert result == {"ok": True}
        assert seen[0].url.params["q"] == "dune"
        assert seen[0].headers["User-Agent"] == DEFAULT_USER_AGENT

    def test_custom_user_agent(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        _run(lambda c: c.get("https://example.com"), _client(handler, user_agent="shelf/2.0"))
        assert seen[0].headers["User-Agent"] == "shelf/2.0"

    def test_not_found(self) -> None:
        client = _client(lambda request: httpx.Response(404))
        with pytest.raises(MetadataFetchError) as exc_info:
            _run(lambda c: c.get("https://example.com/missing"), client)
        assert exc_info.value.status_code == 404
        assert exc_info.value.is_not_found

    def test_server_error_not_retried_by_default(self) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(503)

        with pytest.raises(MetadataFetchError) as exc_info:
            _run(lambda c: c.get("https://example.com"), _client(handler))
        assert exc_info.value.status_code == 503
        assert len(calls) == 1

    def test_retry_on_server_error(self) -> None:
        responses = [httpx.Response(503), httpx.Response(200, json={"ok": 1})]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        client = _client(handler, max_retries=1, retry_delay=0)
        assert _run(lambda c: c.get("https://example.com"), client) == {"ok": 1}

    def test_client_error_not_retried(self) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(400)

        with pytest.raises(MetadataFetchError):
            _run(lambda c: c.get("https://example.com"), _client(handler, max_retries=3, retry_delay=0))
        assert len(calls) == 1

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(MetadataFetchError) as exc_info:
            _run(lambda c: c.get("https://example.com"), _client(handler))
        assert exc_info.value.status_code is None
        assert not exc_info.value.is_not_found

    def test_invalid_json(self) -> None:
        client = _client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(MetadataFetchError, match="Invalid JSON"):
            _run(lambda c: c.get("https://example.com"), client)


class TestHead:
    """Tests for HEAD requests used by cover validation."""

    def test_reports_headers(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "HEAD"
            return httpx.Response(
                200, headers={"content-type": "image/jpeg", "content-length": "2048"}
            )

        result = _run(lambda c: c.head("https://example.com/cover.jpg"), _client(handler))
        assert result.status_code == 200
        assert result.content_type == "image/jpeg"
        assert result.content_length == 2048

    def test_error_status_returned_not_raised(self) -> None:
        client = _client(lambda request: httpx.Response(404))
        result = _run(lambda c: c.head("https://example.com/cover.jpg"), client)
        assert result.status_code == 404

    def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(MetadataFetchError):
            _run(lambda c: c.head("https://example.com/cover.jpg"), _client(handler))


def test_satisfies_protocol() -> None:
    client = _client(lambda request: httpx.Response(200))
    assert isinstance(client, HttpClient)
    asyncio.run(client.aclose())


class TestConcurrency:
    """Tests for the in-flight request cap."""

    def test_in_flight_requests_capped(self) -> None:
        in_flight = 0
        peak = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return httpx.Response(200, json={})

        async def fire(client: EnrichHttpClient):
            return await asyncio.gather(
                *(client.get(f"https://example.com/{n}") for n in range(10)),
                client.head("https://example.com/cover.jpg"),
            )

        results = _run(fire, _client(handler, max_concurrent_requests=3))
        assert len(results) == 11
        assert peak == 3
