"""
Action data model.

Actions are the state-changing or navigational half of the directive
protocol: `{"action": {"type": "<kind>", "payload": {...}}}`. Each kind has
a fixed payload shape; the union is discriminated on `type`, so unknown
kinds are rejected outright.

Field typing is strict. A quoted number is not a number, a boolean is not a
number, and NaN / Infinity are rejected.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    StrictInt,
)


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("booleans are not numbers")
    return value


Number = Annotated[
    Union[StrictInt, Annotated[float, Field(strict=True, allow_inf_nan=False)]],
    BeforeValidator(_reject_bool),
]
PositiveNumber = Annotated[
    Union[
        Annotated[int, Field(strict=True, gt=0)],
        Annotated[float, Field(strict=True, gt=0, allow_inf_nan=False)],
    ],
    BeforeValidator(_reject_bool),
]
Symbol = Annotated[str, StringConstraints(strict=True, strip_whitespace=True, min_length=1)]
Symbols = Annotated[List[Symbol], Field(min_length=1)]

AlertType = Literal["price_above", "price_below", "esg_change"]
NavigationSection = Literal["dashboard", "holdings", "esg", "screening"]
ActionType = Literal[
    "filter_holdings",
    "add_holding",
    "remove_holding",
    "sell_holding",
    "create_alert",
    "navigate",
    "highlight",
    "show_comparison",
]


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class FilterHoldingsPayload(_Payload):
    sector: Optional[Annotated[str, Field(strict=True)]] = None
    min_esg: Optional[Number] = Field(default=None, alias="minEsg")
    max_esg: Optional[Number] = Field(default=None, alias="maxEsg")


class AddHoldingPayload(_Payload):
    symbol: Symbol
    shares: PositiveNumber
    name: Optional[Annotated[str, Field(strict=True)]] = None


class RemoveHoldingPayload(_Payload):
    symbol: Symbol


class SellHoldingPayload(_Payload):
    symbol: Symbol
    shares: PositiveNumber


class CreateAlertPayload(_Payload):
    symbol: Symbol
    alert_type: AlertType = Field(alias="alertType")
    value: Number


class NavigatePayload(_Payload):
    section: NavigationSection


class SymbolsPayload(_Payload):
    symbols: Symbols


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        """Camel-cased `{type, payload}` mapping as the model writes it."""
        return self.model_dump(by_alias=True, exclude_none=True)


class FilterHoldingsAction(_Action):
    type: Literal["filter_holdings"]
    payload: FilterHoldingsPayload


class AddHoldingAction(_Action):
    type: Literal["add_holding"]
    payload: AddHoldingPayload


class RemoveHoldingAction(_Action):
    type: Literal["remove_holding"]
    payload: RemoveHoldingPayload


class SellHoldingAction(_Action):
    type: Literal["sell_holding"]
    payload: SellHoldingPayload


class CreateAlertAction(_Action):
    type: Literal["create_alert"]
    payload: CreateAlertPayload


class NavigateAction(_Action):
    type: Literal["navigate"]
    payload: NavigatePayload


class HighlightAction(_Action):
    type: Literal["highlight"]
    payload: SymbolsPayload


class ShowComparisonAction(_Action):
    type: Literal["show_comparison"]
    payload: SymbolsPayload


ActionDirective = Annotated[
    Union[
        FilterHoldingsAction,
        AddHoldingAction,
        RemoveHoldingAction,
        SellHoldingAction,
        CreateAlertAction,
        NavigateAction,
        HighlightAction,
        ShowComparisonAction,
    ],
    Field(discriminator="type"),
]

# UI-state changes that are safe to run without asking
SAFE_ACTION_TYPES = frozenset({"navigate", "highlight", "filter_holdings", "show_comparison"})
# Portfolio and alert mutations that need confirmation under the default policy
MUTATING_ACTION_TYPES = frozenset({"add_holding", "remove_holding", "sell_holding", "create_alert"})


@dataclass
class ActionResult:
    success: bool
    message: str
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result


PendingState = Literal["pending", "executing", "executed"]


@dataclass
class PendingAction:
    """A validated mutating action waiting for the user to confirm it."""
    id: str
    action: Any  # ActionDirective
    description: str
    confirmed: bool = False
    executed: bool = False
    state: PendingState = "pending"
    last_result: Optional[ActionResult] = None
    attempts: int = field(default=0)
