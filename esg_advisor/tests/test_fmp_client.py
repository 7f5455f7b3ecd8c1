"""
Tests for the FMP client, driven through httpx.MockTransport.
"""

import asyncio

import httpx

from esg_core.data.fmp import FMPClient

API_KEY = "fmp-test-key-0123456789"


def make_client(handler, **kwargs):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("api_key", API_KEY)
    return FMPClient(client=http, **kwargs)


def run(client, coro_factory):
    async def scenario():
        try:
            return await coro_factory(client)
        finally:
            await client.aclose()
    return asyncio.run(scenario())


def test_esg_data_is_normalized_and_cached():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=[{
            "symbol": "AAPL",
            "companyName": "Apple Inc.",
            "ESGScore": 72.4,
            "environmentalScore": 80,
            "socialScore": 65.5,
            "governanceScore": 140,
            "date": "2025-12-31",
        }])

    client = make_client(handler)

    async def scenario(c):
        first = await c.fetch_esg_data("aapl")
        second = await c.fetch_esg_data("AAPL")
        return first, second

    first, second = run(client, scenario)
    assert first is second
    assert len(requests) == 1
    assert requests[0].url.path.endswith("/esg-ratings")
    assert requests[0].url.params["symbol"] == "AAPL"
    assert requests[0].url.params["apikey"] == API_KEY
    assert first.esg_score == 72
    assert first.social_score == 66
    assert first.governance_score == 100
    assert first.last_updated == "2025-12-31"
    assert first.source == "FMP"


def test_esg_field_name_fallbacks():
    def handler(request):
        return httpx.Response(200, json={"symbol": "NEE", "totalEsg": 61, "environmental": 70, "social": 55, "governance": 58})

    data = run(make_client(handler), lambda c: c.fetch_esg_data("NEE"))
    assert (data.esg_score, data.environmental_score, data.social_score, data.governance_score) == (61, 70, 55, 58)


def test_esg_falls_back_to_curated_on_plan_restriction():
    def handler(request):
        return httpx.Response(402, json={"Error Message": "Exclusive Endpoint"})

    data = run(make_client(handler), lambda c: c.fetch_esg_data("MSFT"))
    assert data.source == "CURATED"
    assert data.esg_score == 87


def test_esg_empty_response_for_unknown_symbol():
    def handler(request):
        return httpx.Response(200, json=[])

    assert run(make_client(handler), lambda c: c.fetch_esg_data("ZZZZ")) is None


def test_network_error_falls_back_to_curated():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    data = run(make_client(handler), lambda c: c.fetch_esg_data("ORSTED.CO"))
    assert data.esg_score == 92


def test_without_api_key_no_requests_are_made():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    client = make_client(handler, api_key="")

    async def scenario(c):
        return await c.fetch_esg_data("AAPL"), await c.fetch_stock_quote("AAPL"), await c.fetch_stock_info("AAPL")

    esg, quote, info = run(client, scenario)
    assert calls == []
    assert esg.esg_score == 83
    assert quote is None
    assert info is None


def test_mock_mode_batch():
    client = make_client(lambda request: httpx.Response(500), use_mock=True)
    batch = run(client, lambda c: c.fetch_esg_data_batch(["aapl", "MSFT", "ZZZZ", "AAPL"]))
    assert sorted(batch) == ["AAPL", "MSFT"]
    assert client.has_esg_data("msft")
    assert not client.has_esg_data("ZZZZ")


def test_quote_parsing_and_failure():
    def handler(request):
        if request.url.params["symbol"] == "NVDA":
            return httpx.Response(200, json=[{
                "symbol": "NVDA",
                "name": "NVIDIA Corporation",
                "price": 120.5,
                "change": 1.5,
                "changesPercentage": 1.26,
                "volume": 1000,
                "marketCap": 3.0e12,
                "pe": 60.1,
                "exchangeShortName": "NASDAQ",
            }])
        return httpx.Response(500)

    async def scenario(c):
        return await c.fetch_stock_quote("NVDA"), await c.fetch_stock_quote("BROKEN")

    quote, broken = run(make_client(handler), scenario)
    assert quote.price == 120.5
    assert quote.change_percent == 1.26
    assert quote.exchange == "NASDAQ"
    assert quote.pe == 60.1
    assert broken is None


def test_stock_info_combines_quote_and_esg():
    def handler(request):
        if request.url.path.endswith("/quote"):
            return httpx.Response(200, json=[{"symbol": "TSLA", "name": "Tesla Inc.", "price": 250.0, "change": -3.2, "changePercent": -1.26, "exchange": "NASDAQ"}])
        return httpx.Response(403)

    info = run(make_client(handler), lambda c: c.fetch_stock_info("TSLA"))
    assert info.currency == "USD"
    assert info.price == 250.0
    assert info.change_percent == -1.26
    # curated fallback: Sustainalytics risk 42
    assert info.esg_score == 58
    assert info.to_dict()["symbol"] == "TSLA"


def test_client_built_from_settings_uses_mock_mode():
    from esg_advisor.backend.backend_core.config import Settings
    from esg_advisor.backend.backend_core.tools.portfolio_tools import build_fmp_client

    config = Settings(FMP_API_KEY="configured-key", USE_MOCK_FMP=True, _env_file=None)
    client = build_fmp_client(config)
    assert client.live is False
    data = run(client, lambda c: c.fetch_esg_data("NEE"))
    assert data.source == "CURATED"
    assert data.esg_score == 78


def test_rate_limited_request_is_retried_once():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(429, json={"Error Message": "Limit Reach"})
        return httpx.Response(200, json=[{"symbol": "KO", "price": 62.0, "name": "Coca-Cola"}])

    quote = run(make_client(handler), lambda c: c.fetch_stock_quote("KO"))
    assert len(calls) == 2
    assert quote.price == 62.0


def test_plan_restriction_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(402)

    assert run(make_client(handler), lambda c: c.fetch_stock_quote("KO")) is None
    assert len(calls) == 1
