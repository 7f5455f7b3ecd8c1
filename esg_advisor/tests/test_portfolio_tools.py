"""
Tests for the portfolio data tools and the tool registry.
"""

import asyncio

import pytest

from esg_advisor.backend.backend_core.errors import ToolExecutionError, ToolNotFoundError
from esg_advisor.backend.backend_core.tools.portfolio_tools import register_portfolio_tools
from esg_advisor.backend.backend_core.tools.registry import ToolRegistry
from esg_core.data.fmp import StockInfo
from esg_core.models.holding import Holding, PortfolioSnapshot


def stock_info(symbol="TSLA", esg_score=58):
    return StockInfo(
        symbol=symbol,
        name="Tesla Inc.",
        price=250.0,
        change=-3.2,
        change_percent=-1.26,
        currency="USD",
        exchange="NASDAQ",
        market_cap=8.0e11,
        pe=70.2,
        esg_score=esg_score,
        environmental_score=72,
        social_score=45,
        governance_score=57,
    )


def make_registry(portfolio, lookup=None):
    registry = ToolRegistry()
    register_portfolio_tools(registry, portfolio, lookup)
    return registry


def run_tool(registry, name, **arguments):
    return asyncio.run(registry.execute_tool(name, arguments, session_id="test"))


def test_function_definitions(portfolio):
    definitions = make_registry(portfolio).get_function_definitions()
    assert [d["name"] for d in definitions] == ["get_portfolio", "get_holding", "get_stock_info"]
    for definition in definitions:
        assert definition["description"]
        assert definition["parameters"]["type"] == "object"
    assert definitions[1]["parameters"]["required"] == ["symbol"]


def test_get_portfolio_aggregates_value_weighted_pillars(portfolio):
    result = run_tool(make_registry(portfolio), "get_portfolio")

    assert result["holdingCount"] == 3
    assert result["totalValue"] == 25000.0
    assert result["environmentalScore"] == 87
    assert result["socialScore"] == 84
    assert result["governanceScore"] == 86
    assert result["esgScore"] == 86
    assert result["esgRating"] == "Strong"
    assert result["holdings"][0]["esgScore"] == 83
    assert result["currency"] == "USD"
    assert result["baseUSD"] is True


def test_get_portfolio_without_pillars_uses_holding_scores():
    snapshot = PortfolioSnapshot(holdings=(
        Holding("XOM", "Exxon Mobil", 10, 1000.0, 45),
        Holding("FSLR", "First Solar", 10, 3000.0, 85),
    ))
    result = run_tool(make_registry(snapshot), "get_portfolio")
    assert result["esgScore"] == 75
    assert "environmentalScore" not in result


def test_get_portfolio_reads_live_snapshot(portfolio):
    current = {"snapshot": PortfolioSnapshot()}
    registry = make_registry(lambda: current["snapshot"])
    assert run_tool(registry, "get_portfolio")["holdingCount"] == 0
    current["snapshot"] = portfolio
    assert run_tool(registry, "get_portfolio")["holdingCount"] == 3


def test_get_holding(portfolio):
    result = run_tool(make_registry(portfolio), "get_holding", symbol="vws.co")
    assert result["symbol"] == "VWS.CO"
    assert result["value"] == 3000.0
    assert result["esgRating"] == "Strong"
    assert result["baseUSD"] is True

    with pytest.raises(ToolExecutionError, match="not in the portfolio"):
        run_tool(make_registry(portfolio), "get_holding", symbol="TSLA")
    with pytest.raises(ToolExecutionError, match="symbol is required"):
        run_tool(make_registry(portfolio), "get_holding")


def test_get_stock_info_prefers_portfolio(portfolio):
    async def lookup(symbol):
        raise AssertionError("held symbols must not hit the lookup")

    result = run_tool(make_registry(portfolio, lookup), "get_stock_info", symbol="MSFT")
    assert result["inPortfolio"] is True
    assert result["shares"] == 30


def test_get_stock_info_uses_lookup_for_other_symbols(portfolio):
    seen = []

    async def lookup(symbol):
        seen.append(symbol)
        return stock_info(symbol)

    result = run_tool(make_registry(portfolio, lookup), "get_stock_info", symbol=" tsla")
    assert seen == ["TSLA"]
    assert result["inPortfolio"] is False
    assert result["price"] == 250.0
    assert result["changePercent"] == -1.26
    assert result["esgScore"] == 58
    assert result["esgRating"] == "Below Average"
    assert result["currency"] == "USD"
    assert result["baseUSD"] is True


def test_get_stock_info_unknown_symbol(portfolio):
    async def lookup(symbol):
        return None

    with pytest.raises(ToolExecutionError, match="No data found for symbol ZZZZ"):
        run_tool(make_registry(portfolio, lookup), "get_stock_info", symbol="ZZZZ")
    with pytest.raises(ToolExecutionError):
        run_tool(make_registry(portfolio), "get_stock_info", symbol="ZZZZ")


def test_unknown_tool(portfolio):
    with pytest.raises(ToolNotFoundError) as exc_info:
        run_tool(make_registry(portfolio), "get_weather")
    assert isinstance(exc_info.value, ValueError)
    assert str(exc_info.value) == "Tool not found: get_weather"
