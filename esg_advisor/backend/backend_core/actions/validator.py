"""
Structural validation of action directives.

Only shape and types are checked here. Whether a symbol exists or a sale
exceeds the position is the business layer's concern.
"""

from __future__ import annotations
from typing import Any, Optional, Union
import json
import logging

from pydantic import TypeAdapter, ValidationError

from esg_advisor.backend.backend_core.actions.models import (
    MUTATING_ACTION_TYPES,
    SAFE_ACTION_TYPES,
    ActionDirective,
)

logger = logging.getLogger(__name__)

_ACTION_ADAPTER: TypeAdapter = TypeAdapter(ActionDirective)


def validate_action(candidate: Any) -> Optional[ActionDirective]:
    """
    Validate a decoded `{type, payload}` mapping.

    Args:
        candidate: Anything the model produced under the "action" key

    Returns:
        The typed action, or None if the kind is unknown or the payload
        does not match its shape

    Examples:
        >>> validate_action({"type": "navigate", "payload": {"section": "esg"}}).payload.section
        'esg'
        >>> validate_action({"type": "add_holding", "payload": {"symbol": "AAPL", "shares": "10"}}) is None
        True
    """
    if not isinstance(candidate, dict):
        logger.debug(f"Rejected action: expected an object, got {type(candidate).__name__}")
        return None

    try:
        return _ACTION_ADAPTER.validate_python(candidate)
    except ValidationError as e:
        logger.debug(
            f"Rejected action of type {candidate.get('type')!r}: {e.error_count()} validation error(s)"
        )
        return None


def parse_action_from_response(json_str: str) -> Optional[ActionDirective]:
    """Decode and validate an action given as JSON, bare or wrapped in {"action": ...}."""
    try:
        parsed = json.loads(json_str)
    except (TypeError, ValueError):
        return None

    if isinstance(parsed, dict) and "type" not in parsed and "action" in parsed:
        parsed = parsed["action"]
    return validate_action(parsed)


def format_number(value: Union[int, float]) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def get_action_description(action: ActionDirective) -> str:
    """Human-readable one-liner shown next to a pending action."""
    payload = action.payload
    if action.type == "filter_holdings":
        text = "Filter holdings"
        if payload.sector:
            text += f" by sector: {payload.sector}"
        if payload.min_esg:
            text += f" with ESG >= {format_number(payload.min_esg)}"
        if payload.max_esg:
            text += f" with ESG <= {format_number(payload.max_esg)}"
        return text
    if action.type == "add_holding":
        return f"Add {format_number(payload.shares)} shares of {payload.symbol}"
    if action.type == "remove_holding":
        return f"Remove {payload.symbol} from portfolio"
    if action.type == "sell_holding":
        return f"Sell {format_number(payload.shares)} shares of {payload.symbol}"
    if action.type == "create_alert":
        return f"Create {payload.alert_type} alert for {payload.symbol} at {format_number(payload.value)}"
    if action.type == "navigate":
        return f"Navigate to {payload.section}"
    if action.type == "highlight":
        return f"Highlight: {', '.join(payload.symbols)}"
    if action.type == "show_comparison":
        return f"Compare: {' vs '.join(payload.symbols)}"
    return "Unknown action"


def is_safe_action(action: ActionDirective) -> bool:
    return action.type in SAFE_ACTION_TYPES


def is_mutating_action(action: ActionDirective) -> bool:
    return action.type in MUTATING_ACTION_TYPES
