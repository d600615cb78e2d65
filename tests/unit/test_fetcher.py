import asyncio
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import httpx
import pytest

from src.data.sources.fetcher import RetryingFetcher, backoff_delay, fetch_with_retry
from src.utils.exceptions import (
    HttpStatusError,
    InvalidPayloadError,
    NetworkError,
    RequestTimeoutError,
    describe_error,
)

URL = "https://api.test/getMarketStress"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_backoff_delay_doubles() -> None:
    assert [backoff_delay(a) for a in range(4)] == [1.0, 2.0, 4.0, 8.0]


@pytest.mark.asyncio
async def test_returns_json_on_first_success(recording_sleep) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"success": True, "vix": 18.2})

    async with _client(handler) as client:
        body = await fetch_with_retry(URL, client=client, sleep=recording_sleep)

    assert body == {"success": True, "vix": 18.2}
    assert len(calls) == 1
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_sends_headers_and_params(recording_sleep) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["ua"] = request.headers["User-Agent"]
        seen["accept"] = request.headers["Accept"]
        seen["country"] = request.url.params["country"]
        return httpx.Response(200, json={})

    async with _client(handler) as client:
        await fetch_with_retry(URL, params={"country": "DEU"}, client=client, sleep=recording_sleep)

    assert seen == {"ua": "Oracle-Portfolio/1.0", "accept": "application/json", "country": "DEU"}


@pytest.mark.asyncio
async def test_http_errors_exhaust_attempts_with_backoff(recording_sleep) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    async with _client(handler) as client:
        with pytest.raises(HttpStatusError) as exc_info:
            await fetch_with_retry(URL, max_attempts=3, client=client, sleep=recording_sleep, source="market_stress")

    assert exc_info.value.status_code == 503
    assert exc_info.value.source == "market_stress"
    assert len(calls) == 3
    # No wait after the last attempt
    assert recording_sleep.delays == [1.0, 2.0]
    assert describe_error(exc_info.value) == "Server error - HTTP 503"


@pytest.mark.asyncio
async def test_recovers_after_transient_failure(recording_sleep) -> None:
    responses = iter([httpx.Response(500), httpx.Response(200, json={"ok": 1})])

    async with _client(lambda request: next(responses)) as client:
        body = await fetch_with_retry(URL, max_attempts=3, client=client, sleep=recording_sleep)

    assert body == {"ok": 1}
    assert recording_sleep.delays == [1.0]


@pytest.mark.asyncio
async def test_single_attempt_never_sleeps(recording_sleep) -> None:
    async with _client(lambda request: httpx.Response(404)) as client:
        with pytest.raises(HttpStatusError):
            await fetch_with_retry(URL, max_attempts=1, client=client, sleep=recording_sleep)

    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_non_json_body_is_not_retried(recording_sleep) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, text="<html>maintenance</html>")

    async with _client(handler) as client:
        with pytest.raises(InvalidPayloadError) as exc_info:
            await fetch_with_retry(URL, max_attempts=3, client=client, sleep=recording_sleep)

    assert len(calls) == 1
    assert exc_info.value.reasons == ["response body is not valid JSON"]
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_timeout_cancels_attempt_and_retries(recording_sleep) -> None:
    calls = []

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        await asyncio.sleep(5)
        return httpx.Response(200, json={})

    async with _client(handler) as client:
        with pytest.raises(RequestTimeoutError) as exc_info:
            await fetch_with_retry(URL, max_attempts=2, timeout_ms=20, client=client, sleep=recording_sleep)

    assert len(calls) == 2
    assert recording_sleep.delays == [1.0]
    assert exc_info.value.timeout_ms == 20
    assert describe_error(exc_info.value) == "Request timeout (0.02s) - API too slow"


@pytest.mark.asyncio
async def test_connection_error_becomes_network_error(recording_sleep) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(NetworkError) as exc_info:
            await fetch_with_retry(URL, max_attempts=2, client=client, sleep=recording_sleep)

    assert exc_info.value.url == URL
    assert recording_sleep.delays == [1.0]
    assert describe_error(exc_info.value) == "Network error - Check internet connection"


@pytest.mark.asyncio
async def test_rejects_zero_attempts() -> None:
    with pytest.raises(ValueError):
        await fetch_with_retry(URL, max_attempts=0)


@pytest.mark.asyncio
async def test_retrying_fetcher_uses_defaults_and_overrides(recording_sleep) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(502)

    fetcher = RetryingFetcher(
        client=_client(handler), max_attempts=3, timeout_ms=1000, sleep=recording_sleep
    )
    async with fetcher:
        with pytest.raises(HttpStatusError):
            await fetcher.get_json(URL)
        assert len(calls) == 3

        with pytest.raises(HttpStatusError):
            await fetcher.get_json(URL, max_attempts=1)
        assert len(calls) == 4

    # Caller-supplied clients are left open
    assert not fetcher.client.is_closed
    await fetcher.client.aclose()


@pytest.mark.asyncio
async def test_retrying_fetcher_closes_own_client() -> None:
    fetcher = RetryingFetcher()
    await fetcher.close()
    assert fetcher.client.is_closed


class _SlowHandler(BaseHTTPRequestHandler):
    delay = 0.5

    def do_GET(self) -> None:
        time.sleep(self.delay)
        body = b'{"success": true}'
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args) -> None:
        pass


@pytest.fixture
def slow_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _SlowHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}/getBacktesting"
    server.shutdown()
    server.server_close()


@pytest.mark.asyncio
async def test_timeout_ms_overrides_client_timeout(slow_server, recording_sleep) -> None:
    # client default read timeout is shorter than the server's delay
    async with httpx.AsyncClient(timeout=0.1, trust_env=False) as client:
        body = await fetch_with_retry(
            slow_server, max_attempts=1, timeout_ms=5000, client=client, sleep=recording_sleep
        )

    assert body == {"success": True}


@pytest.mark.asyncio
async def test_requests_carry_no_client_timeout(recording_sleep) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.extensions["timeout"])
        return httpx.Response(200, json={})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), timeout=5.0) as client:
        await fetch_with_retry(URL, timeout_ms=30000, client=client, sleep=recording_sleep)

    assert seen and all(value is None for value in seen.values())


@pytest.mark.asyncio
async def test_owned_clients_have_no_timeout() -> None:
    async with RetryingFetcher(timeout_ms=30000) as fetcher:
        assert fetcher.client.timeout == httpx.Timeout(None)
