"""
Curated ESG dataset.

Offline fallback used when the FMP ESG endpoint is unavailable (no API key,
free plan, network error). Values come from Sustainalytics risk scores and
are normalized on load, so every record exposes canonical 0-100 scores.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from esg_core.esg.normalize import normalize_numeric_score

logger = logging.getLogger(__name__)

CURATED_DATA_FILE = Path(__file__).parent / "curated_esg.yaml"


@dataclass(frozen=True)
class CuratedESGData:
    symbol: str
    company_name: str
    sector: str
    esg_score: int  # 0-100, higher = better (converted from risk score)
    environmental_score: int
    social_score: int
    governance_score: int
    controversy_level: int  # 0-5, lower = better
    peer_group: str
    last_updated: str


def _record_from_yaml(symbol: str, raw: Dict[str, Any], provider: str, last_updated: str) -> CuratedESGData:
    return CuratedESGData(
        symbol=symbol,
        company_name=str(raw.get("company_name") or symbol),
        sector=str(raw.get("sector") or "Unknown"),
        esg_score=normalize_numeric_score(raw.get("esg_risk"), provider),
        environmental_score=normalize_numeric_score(raw.get("environmental")),
        social_score=normalize_numeric_score(raw.get("social")),
        governance_score=normalize_numeric_score(raw.get("governance")),
        controversy_level=int(raw.get("controversy_level") or 0),
        peer_group=str(raw.get("peer_group") or ""),
        last_updated=str(raw.get("last_updated") or last_updated),
    )


def load_curated_dataset(path: Optional[Path] = None) -> Dict[str, CuratedESGData]:
    """
    Load and normalize the curated dataset from YAML.

    Args:
        path: Dataset file. Defaults to the bundled curated_esg.yaml.

    Returns:
        Mapping of upper-case symbol to record
    """
    path = Path(path) if path is not None else CURATED_DATA_FILE
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    provider = str(data.get("provider") or "SUSTAINALYTICS")
    last_updated = str(data.get("last_updated") or "")
    stocks = data.get("stocks") or {}

    dataset: Dict[str, CuratedESGData] = {}
    for symbol, raw in stocks.items():
        if not isinstance(raw, dict):
            logger.warning(f"Skipping malformed curated ESG entry for {symbol}")
            continue
        key = str(symbol).upper()
        dataset[key] = _record_from_yaml(key, raw, provider, last_updated)

    logger.debug(f"Loaded {len(dataset)} curated ESG records from {path}")
    return dataset


@lru_cache(maxsize=1)
def _dataset() -> Dict[str, CuratedESGData]:
    return load_curated_dataset()


def get_curated_esg_data(symbol: str) -> Optional[CuratedESGData]:
    """Get ESG data for a symbol (case-insensitive)."""
    if not symbol:
        return None
    return _dataset().get(symbol.strip().upper())


def get_available_symbols() -> List[str]:
    return list(_dataset().keys())


def get_stocks_by_sector(sector: str) -> List[CuratedESGData]:
    return [s for s in _dataset().values() if s.sector.lower() == sector.lower()]


def get_stocks_by_min_esg(min_score: int) -> List[CuratedESGData]:
    """Stocks at or above min_score, best first."""
    matches = [s for s in _dataset().values() if s.esg_score >= min_score]
    return sorted(matches, key=lambda s: s.esg_score, reverse=True)


def get_top_esg_performers(limit: int = 10) -> List[CuratedESGData]:
    return sorted(_dataset().values(), key=lambda s: s.esg_score, reverse=True)[:limit]


def get_esg_laggards(limit: int = 10) -> List[CuratedESGData]:
    return sorted(_dataset().values(), key=lambda s: s.esg_score)[:limit]


def get_available_sectors() -> List[str]:
    return sorted({s.sector for s in _dataset().values()})
