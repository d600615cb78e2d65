"""Tests for the HTTP functions and their CORS wrapper."""
import httpx
import pytest

from config.settings import Settings
from src.functions import (
    ROUTES,
    FunctionContext,
    cors_headers,
    dispatch,
    invoke_with_cors,
)
from src.functions.handlers import (
    get_allocations,
    get_countries,
    get_health,
    get_market_data,
    get_market_stress,
    get_regime,
)

FRED_URL = "https://api.stlouisfed.org/fred/series/observations"


def _settings(fred_key=None, alpha_key=None) -> Settings:
    settings = Settings()
    settings.upstream.fred_api_key = fred_key
    settings.upstream.alpha_vantage_api_key = alpha_key
    settings.fetch.max_attempts = 1
    return settings


def _context(settings, handler, sleep) -> FunctionContext:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FunctionContext(settings, client=client, sleep=sleep)


def _fred(values: dict):
    def handler(request: httpx.Request) -> httpx.Response:
        series = request.url.params["series_id"]
        if series not in values:
            return httpx.Response(500)
        return httpx.Response(200, json={"observations": [{"date": "2024-05-01", "value": values[series]}]})

    return handler


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected upstream call to {request.url}")


class TestMarketStress:
    @pytest.mark.asyncio
    async def test_demo_mode_without_key(self, recording_sleep):
        async with _context(_settings(), _unreachable, recording_sleep) as ctx:
            body = await get_market_stress(ctx, {})

        assert body["success"] is True
        assert body["data_source"] == "demo_mode"
        assert body["vix"] == 20.5
        assert body["high_yield_spread"] == 3.2
        assert body["stress_level"] == "MODERATE"

    @pytest.mark.asyncio
    async def test_fred_values(self, recording_sleep):
        handler = _fred({"VIXCLS": "32.14", "BAMLH0A0HYM2EY": "5.5"})
        async with _context(_settings(fred_key="k"), handler, recording_sleep) as ctx:
            body = await get_market_stress(ctx, {})

        assert body["data_source"] == "fred_api"
        assert body["vix"] == 32.14
        assert body["stress_level"] == "HIGH"
        assert body["data_sources"]["vix"].endswith("VIXCLS")

    @pytest.mark.asyncio
    async def test_missing_observation_keeps_default(self, recording_sleep):
        handler = _fred({"VIXCLS": ".", "BAMLH0A0HYM2EY": "3.0"})
        async with _context(_settings(fred_key="k"), handler, recording_sleep) as ctx:
            body = await get_market_stress(ctx, {})

        assert body["vix"] == 20.5
        assert body["high_yield_spread"] == 3.0
        assert body["data_source"] == "fallback"

    @pytest.mark.asyncio
    async def test_fred_error_degrades(self, recording_sleep):
        async with _context(_settings(fred_key="k"), _fred({}), recording_sleep) as ctx:
            body = await get_market_stress(ctx, {})

        assert body["success"] is True
        assert body["data_source"] == "fallback_after_error"
        assert body["stress_level"] == "MODERATE"


class TestMarketData:
    @pytest.mark.asyncio
    async def test_demo_mode(self, recording_sleep):
        async with _context(_settings(), _unreachable, recording_sleep) as ctx:
            body = await get_market_data(ctx, {})

        assert body["market_data"]["data_source"] == "demo_mode"
        assert body["market_data"]["spy_price"] == 418.74
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_complete_quotes_are_paced(self, recording_sleep):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["function"] == "GLOBAL_QUOTE"
            return httpx.Response(200, json={"Global Quote": {"05. price": "100.456"}})

        async with _context(_settings(alpha_key="k"), handler, recording_sleep) as ctx:
            body = await get_market_data(ctx, {})

        assert body["market_data"]["data_source"] == "alpha_vantage_complete"
        assert body["market_data"]["tlt_price"] == 100.46
        # A pause between quotes, none after the last
        assert recording_sleep.delays == [1.0, 1.0, 1.0]

    @pytest.mark.asyncio
    async def test_partial_quotes(self, recording_sleep):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["symbol"] == "SPY":
                return httpx.Response(200, json={"Global Quote": {"05. price": "520.10"}})
            return httpx.Response(200, json={"Note": "rate limited"})

        async with _context(_settings(alpha_key="k"), handler, recording_sleep) as ctx:
            body = await get_market_data(ctx, {})

        assert body["market_data"]["data_source"] == "alpha_vantage_partial"
        assert body["market_data"]["spy_price"] == 520.1
        assert body["market_data"]["gld_price"] == 201.45

    @pytest.mark.asyncio
    async def test_all_quotes_failing(self, recording_sleep):
        async with _context(_settings(alpha_key="k"), lambda r: httpx.Response(503), recording_sleep) as ctx:
            body = await get_market_data(ctx, {})

        assert body["market_data"]["data_source"] == "fallback"


class TestRegimeAndAllocations:
    @pytest.mark.asyncio
    async def test_allocations_for_country(self, recording_sleep):
        async with _context(_settings(), _unreachable, recording_sleep) as ctx:
            body = await get_allocations(ctx, {"country": "deu"})

        assert body["country"] == "DEU"
        assert body["data"]["regime"] == "STAGFLATION"
        assert body["data"]["allocations"] == {"stocks": 40, "bonds": 20, "commodities": 30, "cash": 10}
        assert body["allocation"] == {"actions": 40, "obligations": 20, "or": 30, "cash": 10}

    @pytest.mark.asyncio
    async def test_unknown_country_uses_default(self, recording_sleep):
        async with _context(_settings(), _unreachable, recording_sleep) as ctx:
            body = await get_allocations(ctx, {"country": "XYZ"})

        assert body["country"] == "FRA"

    @pytest.mark.asyncio
    async def test_regime_demo_mode(self, recording_sleep):
        async with _context(_settings(), _unreachable, recording_sleep) as ctx:
            body = await get_regime(ctx, {"country": "USA"})

        assert body["regime"] == "RECOVERY"
        assert body["confidence"] == 0.91
        assert body["data_source"] == "demo_mode"

    @pytest.mark.asyncio
    async def test_regime_adjusted_by_manufacturing(self, recording_sleep):
        handler = _fred({"MANEMP": "52.0"})
        async with _context(_settings(fred_key="k"), handler, recording_sleep) as ctx:
            body = await get_regime(ctx, {"country": "DEU"})

        assert body["regime"] == "EXPANSION"
        assert body["confidence"] == 0.82
        assert body["data_source"] == "fred_api"

    @pytest.mark.asyncio
    async def test_regime_after_error(self, recording_sleep):
        async with _context(_settings(fred_key="k"), _fred({}), recording_sleep) as ctx:
            body = await get_regime(ctx, {"country": "GBR"})

        assert body["regime"] == "EXPANSION"
        assert body["data_source"] == "config_after_error"

    @pytest.mark.asyncio
    async def test_countries(self, recording_sleep):
        async with _context(_settings(), _unreachable, recording_sleep) as ctx:
            body = await get_countries(ctx, {})

        assert body["total_countries"] == 4
        assert [c["code"] for c in body["countries"]] == ["FRA", "DEU", "USA", "GBR"]

    @pytest.mark.asyncio
    async def test_health(self, recording_sleep):
        async with _context(_settings(fred_key="k"), _unreachable, recording_sleep) as ctx:
            body = await get_health(ctx, {})

        assert body["status"] == "healthy"
        assert body["services"]["secrets"] == {"fred": "configured", "alpha_vantage": "demo_mode"}
        assert body["endpoints"] == list(ROUTES)


class TestCors:
    def test_allowed_origin_is_echoed(self):
        headers = cors_headers("http://localhost:3000", ["http://localhost:3000"])
        assert headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
        assert headers["Access-Control-Allow-Methods"] == "GET, POST, OPTIONS"

    def test_other_origins_get_wildcard(self):
        assert cors_headers("https://evil.test", ["http://localhost:3000"])["Access-Control-Allow-Origin"] == "*"
        assert cors_headers(None, [])["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_preflight_has_no_body(self):
        async def handler(query):
            raise AssertionError("handler must not run for OPTIONS")

        response = await invoke_with_cors(handler, "OPTIONS", {}, None, [])
        assert response.status == 204
        assert response.body is None
        assert "Access-Control-Max-Age" in response.headers

    @pytest.mark.asyncio
    async def test_handler_error_becomes_500(self):
        async def handler(query):
            raise RuntimeError("kaboom")

        response = await invoke_with_cors(handler, "GET", {}, None, [])
        assert response.status == 500
        assert response.body["success"] is False
        assert response.body["error"] == "Internal server error"
        assert response.body["details"] == "kaboom"

    @pytest.mark.asyncio
    async def test_dispatch_routes_and_unknown(self):
        settings = _settings()

        response = await dispatch(settings, "getCountries", "GET", {}, "http://localhost:3000")
        assert response.status == 200
        assert response.body["total_countries"] == 4
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

        missing = await dispatch(settings, "getWeather", "GET", {}, None)
        assert missing.status == 404
        assert missing.body["success"] is False
