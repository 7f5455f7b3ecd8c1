"""
Portfolio data tools.

Three tools the model can call before answering: the whole portfolio, a
single holding, and quote plus ESG rating for any symbol. Values are
reported in the base currency (USD); the client converts for display,
which is what the `baseUSD` flag tells it.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, Union
import logging

from esg_advisor.backend.backend_core.config import Settings, settings
from esg_advisor.backend.backend_core.errors import ToolExecutionError
from esg_advisor.backend.backend_core.tools.registry import Tool, ToolRegistry
from esg_core.data.fmp import FMPClient, StockInfo
from esg_core.esg.normalize import (
    calculate_aggregate_esg_score,
    clamp_score,
    get_esg_rating_label,
)
from esg_core.models.holding import PortfolioSnapshot

logger = logging.getLogger(__name__)

PortfolioProvider = Callable[[], PortfolioSnapshot]
StockLookup = Callable[[str], Awaitable[Optional[StockInfo]]]


def _currency_tagged(payload: Dict[str, Any]) -> Dict[str, Any]:
    payload["currency"] = settings.BASE_CURRENCY
    payload["baseUSD"] = True
    return payload


def _require_symbol(symbol: Any) -> str:
    if not isinstance(symbol, str) or not symbol.strip():
        raise ToolExecutionError("symbol is required")
    return symbol.strip().upper()


def _as_provider(portfolio: Union[PortfolioSnapshot, PortfolioProvider]) -> PortfolioProvider:
    if isinstance(portfolio, PortfolioSnapshot):
        return lambda: portfolio
    return portfolio


class GetPortfolioTool(Tool):
    """All holdings with totals and the portfolio-level ESG scores."""

    def __init__(self, portfolio: Union[PortfolioSnapshot, PortfolioProvider]):
        self._portfolio = _as_provider(portfolio)

    @property
    def name(self) -> str:
        return "get_portfolio"

    @property
    def description(self) -> str:
        return (
            "Get the user's portfolio: every holding with shares, value, sector and ESG "
            "scores, plus the total value and the value-weighted portfolio ESG score. "
            "Values are in USD."
        )

    @property
    def parameters(self) -> Dict[str, Any]:
        return {"type": "object", "properties": {}, "required": []}

    async def execute(self, **kwargs) -> Dict[str, Any]:
        """Execute the tool."""
        snapshot = self._portfolio()
        holdings = list(snapshot.holdings)

        environmental = snapshot.value_weighted_score("environmental_score")
        social = snapshot.value_weighted_score("social_score")
        governance = snapshot.value_weighted_score("governance_score")

        has_pillars = bool(holdings) and all(
            h.environmental_score is not None and h.social_score is not None and h.governance_score is not None
            for h in holdings
        )
        if has_pillars:
            esg_score = calculate_aggregate_esg_score(environmental, social, governance)
        else:
            esg_score = snapshot.value_weighted_score("esg_score")

        result: Dict[str, Any] = {
            "holdings": [h.to_dict() for h in holdings],
            "holdingCount": len(holdings),
            "totalValue": round(snapshot.total_value, 2),
            "esgScore": esg_score,
            "esgRating": get_esg_rating_label(esg_score),
        }
        if has_pillars:
            result["environmentalScore"] = environmental
            result["socialScore"] = social
            result["governanceScore"] = governance
        return _currency_tagged(result)


class GetHoldingTool(Tool):
    """A single holding from the portfolio."""

    def __init__(self, portfolio: Union[PortfolioSnapshot, PortfolioProvider]):
        self._portfolio = _as_provider(portfolio)

    @property
    def name(self) -> str:
        return "get_holding"

    @property
    def description(self) -> str:
        return (
            "Get one holding from the user's portfolio by ticker symbol, including shares, "
            "value (USD), sector and ESG scores. Only works for stocks the user owns."
        )

    @property
    def parameters(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "symbol": {
                    "type": "string",
                    "description": "Ticker symbol (e.g., 'AAPL', 'NESN.SW')",
                },
            },
            "required": ["symbol"],
        }

    async def execute(self, symbol: Any = None, **kwargs) -> Dict[str, Any]:
        """Execute the tool."""
        key = _require_symbol(symbol)
        holding = self._portfolio().find(key)
        if holding is None:
            raise ToolExecutionError(f"{key} is not in the portfolio")

        result = holding.to_dict()
        result["esgRating"] = get_esg_rating_label(clamp_score(holding.esg_score))
        return _currency_tagged(result)


class GetStockInfoTool(Tool):
    """
    Quote and ESG rating for any symbol.

    Held symbols are answered from the portfolio; anything else goes to the
    live lookup (FMP quote plus normalized ESG rating).
    """

    def __init__(
        self,
        portfolio: Union[PortfolioSnapshot, PortfolioProvider],
        stock_lookup: Optional[StockLookup] = None,
    ):
        self._portfolio = _as_provider(portfolio)
        self._lookup = stock_lookup

    @property
    def name(self) -> str:
        return "get_stock_info"

    @property
    def description(self) -> str:
        return (
            "Get the current price and ESG rating for ANY stock symbol, including stocks "
            "not in the portfolio. Use this when the user asks about a company they do "
            "not own. Prices are in USD."
        )

    @property
    def parameters(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "symbol": {
                    "type": "string",
                    "description": "Ticker symbol (e.g., 'TSLA', 'NVDA', 'ROG.SW')",
                },
            },
            "required": ["symbol"],
        }

    async def execute(self, symbol: Any = None, **kwargs) -> Dict[str, Any]:
        """Execute the tool."""
        key = _require_symbol(symbol)

        holding = self._portfolio().find(key)
        if holding is not None:
            result = holding.to_dict()
            result["inPortfolio"] = True
            result["esgRating"] = get_esg_rating_label(clamp_score(holding.esg_score))
            return _currency_tagged(result)

        if self._lookup is None:
            raise ToolExecutionError(f"No market data source configured to look up {key}")

        info = await self._lookup(key)
        if info is None:
            logger.warning(f"No stock data found for {key}")
            raise ToolExecutionError(f"No data found for symbol {key}")

        result = {
            "symbol": info.symbol,
            "name": info.name,
            "price": info.price,
            "change": info.change,
            "changePercent": info.change_percent,
            "exchange": info.exchange,
            "marketCap": info.market_cap,
            "pe": info.pe,
            "esgScore": info.esg_score,
            "environmentalScore": info.environmental_score,
            "socialScore": info.social_score,
            "governanceScore": info.governance_score,
            "inPortfolio": False,
        }
        if info.esg_score is not None:
            result["esgRating"] = get_esg_rating_label(info.esg_score)
        return _currency_tagged(result)


def register_portfolio_tools(
    registry: ToolRegistry,
    portfolio: Union[PortfolioSnapshot, PortfolioProvider],
    stock_lookup: Optional[StockLookup] = None,
):
    """Register the three portfolio data tools."""
    registry.register(GetPortfolioTool(portfolio))
    registry.register(GetHoldingTool(portfolio))
    registry.register(GetStockInfoTool(portfolio, stock_lookup))


def build_fmp_client(config: Settings = settings) -> FMPClient:
    """FMP client configured from settings; its fetch_stock_info backs get_stock_info."""
    return FMPClient(
        api_key=config.FMP_API_KEY,
        base_url=config.FMP_BASE_URL,
        timeout=config.FMP_TIMEOUT_SECONDS,
        use_mock=config.USE_MOCK_FMP,
        esg_cache_ttl=config.ESG_CACHE_TTL_SECONDS,
        quote_cache_ttl=config.QUOTE_CACHE_TTL_SECONDS,
    )
