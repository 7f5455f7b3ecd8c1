"""
Action directives: typed model and structural validator.

The execution pipeline lives in `actions.pipeline`.
"""

from esg_advisor.backend.backend_core.actions.models import (
    MUTATING_ACTION_TYPES,
    SAFE_ACTION_TYPES,
    ActionDirective,
    ActionResult,
    PendingAction,
)
from esg_advisor.backend.backend_core.actions.validator import (
    get_action_description,
    is_mutating_action,
    is_safe_action,
    parse_action_from_response,
    validate_action,
)

__all__ = [
    "MUTATING_ACTION_TYPES",
    "SAFE_ACTION_TYPES",
    "ActionDirective",
    "ActionResult",
    "PendingAction",
    "get_action_description",
    "is_mutating_action",
    "is_safe_action",
    "parse_action_from_response",
    "validate_action",
]
