from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from esg_core.esg.normalize import calculate_weighted_esg_score, clamp_score


@dataclass(frozen=True)
class Holding:
    symbol: str
    name: str
    shares: float
    value: float              # market value in the base currency (USD)
    esg_score: int            # canonical 0-100
    sector: str = "Unknown"
    environmental_score: Optional[int] = None
    social_score: Optional[int] = None
    governance_score: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "symbol": self.symbol,
            "name": self.name,
            "shares": self.shares,
            "value": round(self.value, 2),
            "esgScore": clamp_score(self.esg_score),
            "sector": self.sector,
        }
        if self.environmental_score is not None:
            data["environmentalScore"] = clamp_score(self.environmental_score)
        if self.social_score is not None:
            data["socialScore"] = clamp_score(self.social_score)
        if self.governance_score is not None:
            data["governanceScore"] = clamp_score(self.governance_score)
        return data


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Read-only view of the user's holdings handed to the data tools."""
    holdings: Sequence[Holding] = field(default_factory=tuple)

    def find(self, symbol: str) -> Optional[Holding]:
        key = (symbol or "").strip().upper()
        for holding in self.holdings:
            if holding.symbol.upper() == key:
                return holding
        return None

    @property
    def total_value(self) -> float:
        return sum(h.value for h in self.holdings)

    def value_weighted_score(self, attr: str = "esg_score") -> int:
        """Value-weighted average of a score attribute across holdings."""
        pairs = [
            (getattr(h, attr), h.value)
            for h in self.holdings
            if getattr(h, attr) is not None
        ]
        return calculate_weighted_esg_score(pairs)

    def symbols(self) -> List[str]:
        return [h.symbol for h in self.holdings]
