"""
End-to-end test of the dashboard pipeline against the local functions.

This test covers:
1. HTTP functions answering through the CORS wrapper
2. Resource hooks fetching every endpoint through the retrying client
3. Backtesting validation, plausibility and summary
4. Country selection re-fetching the country-dependent resources
5. Panels and chart built from the hook state
6. Degradation to fallbacks when the functions fail

Upstream market APIs are not configured, so the functions run in demo mode
and no real network traffic happens.
"""
import threading

import httpx
import pytest

from config.settings import Settings
from src.dashboard import build_dashboard_summary
from src.functions import FunctionsHTTPServer, dispatch
from src.hooks import Failure, Success, create_dashboard_hooks

ROOT = "http://functions.test"


@pytest.fixture
def settings():
    s = Settings()
    s.api.root_url = ROOT
    s.api.backtesting_url = f"{ROOT}/getBacktesting"
    s.api.backtesting_health_url = f"{ROOT}/getBacktestingHealth"
    s.upstream.fred_api_key = None
    s.upstream.alpha_vantage_api_key = None
    s.fetch.max_attempts = 1
    s.use_fallbacks = True
    return s


def _functions_transport(settings, backtest_response, requests):
    async def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        name = request.url.path.strip("/")
        if name == "getBacktesting":
            return httpx.Response(200, json=backtest_response())
        if name == "getBacktestingHealth":
            return httpx.Response(200, json={"success": True, "status": "healthy", "version": "1.4.0"})

        response = await dispatch(settings, name, request.method, dict(request.url.params), None)
        return httpx.Response(response.status, json=response.body, headers=response.headers)

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_dashboard_against_local_functions(settings, backtest_response):
    requests = []
    client = httpx.AsyncClient(transport=_functions_transport(settings, backtest_response, requests))

    async with create_dashboard_hooks(settings, client=client) as hooks:
        assert all(isinstance(h.result, Success) for h in hooks.hooks.values())

        assert hooks["market_stress"].data.data_source == "demo_mode"
        assert hooks["market_stress"].data.stress_level == "MODERATE"
        assert hooks["market_data"].data.etfs["SPY"] == 418.74
        assert hooks["allocations"].data.allocation.stocks == 65
        assert hooks["regime"].data.regime == "EXPANSION"
        assert len(hooks["countries"].data) == 4

        summary = hooks.backtesting.summary
        assert summary.oracle_return == 12.0
        assert summary.benchmark_return == 5.0
        assert summary.outperformance == 7.0
        assert hooks.backtesting.health.is_healthy

        await hooks.select_country("DEU")

        assert hooks["regime"].data.country == "DEU"
        assert hooks["regime"].data.regime == "STAGFLATION"
        assert hooks["allocations"].data.allocation.commodities == 30
        backtest_request = [r for r in requests if r.url.path == "/getBacktesting"][-1]
        assert backtest_request.url.params["country"] == "DEU"
        assert backtest_request.url.params["start_date"] == "2023-01-01"

        dashboard = build_dashboard_summary(hooks)
        assert dashboard["country"] == "DEU"
        assert {p["status"] for p in dashboard["panels"].values()} == {"ok"}
        assert dashboard["panels"]["backtesting"]["chart"]["status"] == "ok"
        assert len(dashboard["panels"]["backtesting"]["chart"]["points"]) == 3

    assert client.is_closed is False
    await client.aclose()


@pytest.mark.asyncio
async def test_dashboard_degrades_when_functions_fail(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"success": False, "error": "Internal server error"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    async with create_dashboard_hooks(settings, client=client) as hooks:
        assert all(isinstance(h.result, Failure) for h in hooks.hooks.values())

        panels = build_dashboard_summary(hooks)["panels"]
        assert panels["market_stress"]["status"] == "fallback"
        assert panels["market_data"]["data"]["data_source"] == "fallback"
        assert panels["allocations"]["status"] == "fallback"
        assert panels["countries"]["status"] == "fallback"
        assert panels["regime"]["status"] == "error"
        assert panels["regime"]["message"] == "Server error - HTTP 500"
        assert panels["backtesting"]["chart"]["status"] == "no_data"
        assert panels["backtesting"]["health"]["status"] == "unhealthy"

    await client.aclose()


@pytest.mark.asyncio
async def test_unsuccessful_backtest_envelope_is_rejected(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/getBacktesting":
            return httpx.Response(200, json={"success": False, "error": "no data for window"})
        return httpx.Response(200, json={"success": False})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    async with create_dashboard_hooks(settings, client=client) as hooks:
        assert hooks.backtesting.error_message.startswith("Data validation failed - invalid success flag")
        # market data and allocations swap in their fallbacks on success=false
        assert isinstance(hooks["market_data"].result, Success)
        assert isinstance(hooks["allocations"].result, Success)
        assert isinstance(hooks["market_stress"].result, Failure)

    await client.aclose()


def test_functions_http_server(settings):
    server = FunctionsHTTPServer(("127.0.0.1", 0), settings)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    try:
        with httpx.Client(base_url=f"http://127.0.0.1:{server.server_address[1]}", trust_env=False) as client:
            health = client.get("/getHealth", headers={"Origin": "http://localhost:3000"})
            assert health.status_code == 200
            assert health.json()["status"] == "healthy"
            assert health.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

            regime = client.get("/getRegime", params={"country": "GBR"})
            assert regime.json()["country_name"] == "United Kingdom"

            preflight = client.options("/getRegime")
            assert preflight.status_code == 204
            assert preflight.content == b""

            assert client.get("/getWeather").status_code == 404
    finally:
        server.shutdown()
        server.server_close()
