"""
Price alert helpers.

Alerts are created from `create_alert` chat actions; persistence belongs
to the embedding application.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional
import uuid

AlertOperator = Literal["gt", "lt", "gte", "lte"]
AlertStatus = Literal["active", "triggered", "dismissed"]

_OPERATOR_TEXT: Dict[str, str] = {
    "gt": "above",
    "gte": "at or above",
    "lt": "below",
    "lte": "at or below",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class PriceAlert:
    symbol: str
    operator: AlertOperator
    target_price: float
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=_now_iso)
    status: AlertStatus = "active"

    def with_status(self, status: AlertStatus) -> "PriceAlert":
        return replace(self, status=status)

    def describe(self) -> str:
        return f"{self.symbol} {get_operator_text(self.operator)} {self.target_price:g}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "operator": self.operator,
            "targetPrice": self.target_price,
            "createdAt": self.created_at,
            "status": self.status,
        }


def parse_alert_type(alert_type: str) -> Optional[AlertOperator]:
    """
    Map an action alert type to a comparison operator.

    Examples:
        >>> parse_alert_type("price_above")
        'gt'
        >>> parse_alert_type("esg_change") is None
        True
    """
    text = (alert_type or "").lower()
    if "above" in text:
        return "gt"
    if "below" in text:
        return "lt"
    return None


def should_trigger(alert: PriceAlert, current_price: float) -> bool:
    """Check whether the current price satisfies the alert condition."""
    if alert.operator == "gt":
        return current_price > alert.target_price
    if alert.operator == "gte":
        return current_price >= alert.target_price
    if alert.operator == "lt":
        return current_price < alert.target_price
    if alert.operator == "lte":
        return current_price <= alert.target_price
    return False


def get_operator_text(operator: str) -> str:
    return _OPERATOR_TEXT.get(operator, "")


def build_alert(symbol: str, alert_type: str, value: float) -> Optional[PriceAlert]:
    """
    Build an active price alert from a `create_alert` action.

    Returns None for alert types that are not price based (esg_change).
    """
    operator = parse_alert_type(alert_type)
    if operator is None:
        return None
    return PriceAlert(symbol=symbol.strip().upper(), operator=operator, target_price=float(value))
