from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple
import asyncio
import logging
import time

import httpx

from esg_core.esg.curated_data import CuratedESGData, get_curated_esg_data
from esg_core.esg.normalize import normalize_numeric_score
from esg_core.utils.error_handling import format_api_error_message, is_api_error, should_retry_error
from esg_core.utils.logging import preview_secret

logger = logging.getLogger(__name__)

SOURCE = "FMP"


@dataclass(frozen=True)
class ESGData:
    symbol: str
    company_name: str
    esg_score: int
    environmental_score: int
    social_score: int
    governance_score: int
    last_updated: str
    source: str = SOURCE


@dataclass(frozen=True)
class StockQuote:
    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    volume: float
    market_cap: float
    pe: Optional[float]
    exchange: str


@dataclass(frozen=True)
class StockInfo:
    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    currency: str
    exchange: str
    market_cap: float
    pe: Optional[float]
    esg_score: Optional[int]
    environmental_score: Optional[int]
    social_score: Optional[int]
    governance_score: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _first_record(data: Any) -> Optional[Dict[str, Any]]:
    """FMP returns either a list of records or a single object."""
    if isinstance(data, list):
        data = data[0] if data else None
    return data if isinstance(data, dict) else None


def _first_present(record: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def _curated_to_esg_data(curated: CuratedESGData) -> ESGData:
    return ESGData(
        symbol=curated.symbol,
        company_name=curated.company_name,
        esg_score=curated.esg_score,
        environmental_score=curated.environmental_score,
        social_score=curated.social_score,
        governance_score=curated.governance_score,
        last_updated=curated.last_updated,
        source="CURATED",
    )


class _TTLCache:
    def __init__(self, ttl_seconds: float):
        self._ttl = ttl_seconds
        self._entries: Dict[str, Tuple[Any, float]] = {}

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= time.monotonic():
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, time.monotonic() + self._ttl)

    def clear(self) -> None:
        self._entries.clear()


class FMPClient:
    """
    Financial Modeling Prep client for quotes and ESG ratings.

    ESG ratings fall back to the curated dataset when there is no API key,
    when mock mode is on, or when the endpoint fails (it needs a paid plan
    for many symbols). Quotes have no fallback. Prices are in USD.
    """

    BASE_URL = "https://financialmodelingprep.com/stable"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        use_mock: bool = False,
        esg_cache_ttl: float = 24 * 60 * 60,
        quote_cache_ttl: float = 5 * 60,
        max_retries: int = 1,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize FMPClient.

        Args:
            api_key: FMP API key. Without one, only curated ESG data is served.
            base_url: API root (stable API)
            timeout: Request timeout in seconds
            use_mock: Serve curated ESG data and skip the network entirely
            esg_cache_ttl: ESG cache lifetime in seconds (24h)
            quote_cache_ttl: Quote cache lifetime in seconds (5 min)
            max_retries: Extra attempts for rate limits, 5xx and network errors
            client: Pre-built httpx client (tests inject a MockTransport here)
        """
        self._api_key = (api_key or "").strip()
        self._base_url = base_url.rstrip("/")
        self._use_mock = use_mock
        self._max_retries = max(0, max_retries)
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._esg_cache = _TTLCache(esg_cache_ttl)
        self._quote_cache = _TTLCache(quote_cache_ttl)

        logger.debug(
            f"FMPClient initialized (api_key={preview_secret(self._api_key)}, mock={use_mock})"
        )

    @property
    def live(self) -> bool:
        return bool(self._api_key) and not self._use_mock

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, endpoint: str, symbol: str) -> Any:
        attempt = 0
        while True:
            try:
                response = await self._client.get(
                    f"{self._base_url}/{endpoint}",
                    params={"symbol": symbol, "apikey": self._api_key},
                )
                response.raise_for_status()
                return response.json()
            except httpx.HTTPError as e:
                if attempt >= self._max_retries or not should_retry_error(e):
                    raise
                attempt += 1
                logger.info(format_api_error_message(
                    SOURCE, symbol=symbol, endpoint=endpoint, error=e, additional_info=f"retry {attempt}",
                ))

    def _curated_fallback(self, symbol: str) -> Optional[ESGData]:
        curated = get_curated_esg_data(symbol)
        if curated is None:
            return None
        data = _curated_to_esg_data(curated)
        self._esg_cache.set(symbol, data)
        return data

    async def fetch_esg_data(self, symbol: str) -> Optional[ESGData]:
        """
        Fetch ESG ratings for a symbol, normalized to the canonical scale.

        Returns:
            ESGData, or None when neither FMP nor the curated dataset has it
        """
        symbol = symbol.strip().upper()
        cached = self._esg_cache.get(symbol)
        if cached is not None:
            return cached

        if not self.live:
            return self._curated_fallback(symbol)

        try:
            record = _first_record(await self._get_json("esg-ratings", symbol))
        except (httpx.HTTPError, ValueError) as e:
            level = logging.WARNING if is_api_error(e) else logging.ERROR
            logger.log(level, format_api_error_message(SOURCE, symbol=symbol, endpoint="esg-ratings", error=e))
            return self._curated_fallback(symbol)

        if record is None:
            logger.info(format_api_error_message(
                SOURCE, symbol=symbol, endpoint="esg-ratings", additional_info="empty response, using curated data",
            ))
            return self._curated_fallback(symbol)

        data = ESGData(
            symbol=str(record.get("symbol") or symbol),
            company_name=str(_first_present(record, "companyName", "company") or symbol),
            esg_score=normalize_numeric_score(_first_present(record, "ESGScore", "esgScore", "totalEsg"), SOURCE),
            environmental_score=normalize_numeric_score(_first_present(record, "environmentalScore", "environmental"), SOURCE),
            social_score=normalize_numeric_score(_first_present(record, "socialScore", "social"), SOURCE),
            governance_score=normalize_numeric_score(_first_present(record, "governanceScore", "governance"), SOURCE),
            last_updated=str(
                _first_present(record, "date", "lastUpdated") or datetime.now(timezone.utc).isoformat()
            ),
        )
        self._esg_cache.set(symbol, data)
        return data

    async def fetch_esg_data_batch(self, symbols: Iterable[str]) -> Dict[str, ESGData]:
        """Fetch ESG data for several symbols concurrently; misses are omitted."""
        unique = list(dict.fromkeys(s.strip().upper() for s in symbols if s and s.strip()))
        results = await asyncio.gather(*(self.fetch_esg_data(s) for s in unique))
        return {symbol: data for symbol, data in zip(unique, results) if data is not None}

    def has_esg_data(self, symbol: str) -> bool:
        symbol = symbol.strip().upper()
        return self._esg_cache.get(symbol) is not None or get_curated_esg_data(symbol) is not None

    async def fetch_stock_quote(self, symbol: str) -> Optional[StockQuote]:
        """Fetch a real-time quote. Returns None without an API key or on failure."""
        symbol = symbol.strip().upper()
        cached = self._quote_cache.get(symbol)
        if cached is not None:
            return cached

        if not self.live:
            logger.warning(f"FMP API key not configured, cannot fetch quote for {symbol}")
            return None

        try:
            quote = _first_record(await self._get_json("quote", symbol))
        except (httpx.HTTPError, ValueError) as e:
            level = logging.WARNING if is_api_error(e) else logging.ERROR
            logger.log(level, format_api_error_message(SOURCE, symbol=symbol, endpoint="quote", error=e))
            return None

        if not quote or not quote.get("price"):
            logger.warning(format_api_error_message(SOURCE, symbol=symbol, endpoint="quote", additional_info="no quote data"))
            return None

        stock_quote = StockQuote(
            symbol=str(quote.get("symbol") or symbol),
            name=str(_first_present(quote, "name", "companyName") or symbol),
            price=float(quote.get("price") or 0),
            change=float(quote.get("change") or 0),
            change_percent=float(_first_present(quote, "changesPercentage", "changePercent") or 0),
            volume=float(quote.get("volume") or 0),
            market_cap=float(quote.get("marketCap") or 0),
            pe=quote.get("pe") or None,
            exchange=str(_first_present(quote, "exchange", "exchangeShortName") or ""),
        )
        self._quote_cache.set(symbol, stock_quote)
        return stock_quote

    async def fetch_stock_info(self, symbol: str) -> Optional[StockInfo]:
        """
        Quote plus ESG ratings for any symbol, including ones not in the portfolio.

        Returns None when no quote is available.
        """
        quote, esg = await asyncio.gather(
            self.fetch_stock_quote(symbol),
            self.fetch_esg_data(symbol),
        )
        if quote is None:
            return None

        return StockInfo(
            symbol=quote.symbol,
            name=quote.name,
            price=quote.price,
            change=quote.change,
            change_percent=quote.change_percent,
            currency="USD",
            exchange=quote.exchange,
            market_cap=quote.market_cap,
            pe=quote.pe,
            esg_score=esg.esg_score if esg else None,
            environmental_score=esg.environmental_score if esg else None,
            social_score=esg.social_score if esg else None,
            governance_score=esg.governance_score if esg else None,
        )
