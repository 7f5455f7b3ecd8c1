"""
Action execution pipeline.

Decides whether a validated action runs now or waits for the user, runs
it through a handler keyed by action type, and manages the pending queue
(confirm / cancel). UI-state actions update the session directly;
portfolio and alert mutations are delegated to the embedding
application's callbacks.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
import inspect
import logging
import uuid

from esg_advisor.backend.backend_core.a2ui.parser import RenderDirective, parse_a2ui_message
from esg_advisor.backend.backend_core.actions.models import (
    SAFE_ACTION_TYPES,
    ActionDirective,
    ActionResult,
    PendingAction,
)
from esg_advisor.backend.backend_core.actions.validator import format_number, get_action_description
from esg_advisor.backend.backend_core.config import settings
from esg_advisor.backend.backend_core.session import ChatSessionContext
from esg_core.alerts import build_alert

logger = logging.getLogger(__name__)


class ExecutionPolicy(str, Enum):
    QUEUE = "queue"      # every action waits for confirmation
    AUTO = "auto"        # safe actions run, mutations wait
    TRUSTED = "trusted"  # everything runs immediately

    @classmethod
    def from_value(cls, value: Union["ExecutionPolicy", str]) -> "ExecutionPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning(f"Unknown action execution policy {value!r}, using 'auto'")
            return cls.AUTO


@dataclass
class ActionCallbacks:
    """Hooks into the embedding application. Each may be sync or async."""
    on_add_holding: Optional[Callable[[str, float, Optional[str]], Any]] = None
    on_remove_holding: Optional[Callable[[str], Any]] = None
    on_sell_holding: Optional[Callable[[str, float], Any]] = None
    on_create_alert: Optional[Callable[[str, str, float], Any]] = None
    on_navigate: Optional[Callable[[str], Any]] = None


@dataclass
class ProcessedResponse:
    display_text: str
    components: List[RenderDirective] = field(default_factory=list)
    actions: List[ActionDirective] = field(default_factory=list)
    results: List[ActionResult] = field(default_factory=list)
    queued_ids: List[str] = field(default_factory=list)


Handler = Callable[[ChatSessionContext, Any], Awaitable[ActionResult]]


async def _invoke(callback: Callable[..., Any], *args: Any) -> Any:
    result = callback(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class ActionPipeline:
    """
    Runs or queues actions for a chat session.

    Example:
        pipeline = ActionPipeline(ActionCallbacks(on_add_holding=portfolio.add))
        outcome = await pipeline.process(session, action)
        if isinstance(outcome, str):
            ...  # queued, show a confirmation prompt for session.pending_actions[outcome]
    """

    def __init__(
        self,
        callbacks: Optional[ActionCallbacks] = None,
        policy: Union[ExecutionPolicy, str, None] = None,
    ):
        self.callbacks = callbacks or ActionCallbacks()
        self.policy = ExecutionPolicy.from_value(policy or settings.ACTION_EXECUTION_POLICY)
        self._handlers: Dict[str, Handler] = {
            "filter_holdings": self._filter_holdings,
            "add_holding": self._add_holding,
            "remove_holding": self._remove_holding,
            "sell_holding": self._sell_holding,
            "create_alert": self._create_alert,
            "navigate": self._navigate,
            "highlight": self._highlight,
            "show_comparison": self._show_comparison,
        }

    # ------------------------------------------------------------------ handlers

    async def _filter_holdings(self, session: ChatSessionContext, payload: Any) -> ActionResult:
        session.holdings_filter = payload.model_dump(by_alias=True, exclude_none=True)
        suffix = f" by {payload.sector}" if payload.sector else ""
        return ActionResult(True, f"Holdings filtered{suffix}", data=session.holdings_filter)

    async def _add_holding(self, session: ChatSessionContext, payload: Any) -> ActionResult:
        if self.callbacks.on_add_holding is None:
            return ActionResult(False, "Adding holdings is not available")
        data = await _invoke(self.callbacks.on_add_holding, payload.symbol, payload.shares, payload.name)
        return ActionResult(True, f"Added {format_number(payload.shares)} shares of {payload.symbol}", data=data)

    async def _remove_holding(self, session: ChatSessionContext, payload: Any) -> ActionResult:
        if self.callbacks.on_remove_holding is None:
            return ActionResult(False, "Removing holdings is not available")
        data = await _invoke(self.callbacks.on_remove_holding, payload.symbol)
        return ActionResult(True, f"Removed {payload.symbol} from portfolio", data=data)

    async def _sell_holding(self, session: ChatSessionContext, payload: Any) -> ActionResult:
        if self.callbacks.on_sell_holding is None:
            return ActionResult(False, "Selling holdings is not available")
        data = await _invoke(self.callbacks.on_sell_holding, payload.symbol, payload.shares)
        return ActionResult(True, f"Sold {format_number(payload.shares)} shares of {payload.symbol}", data=data)

    async def _create_alert(self, session: ChatSessionContext, payload: Any) -> ActionResult:
        if self.callbacks.on_create_alert is None:
            return ActionResult(False, "Alerts are not available")
        data = await _invoke(self.callbacks.on_create_alert, payload.symbol, payload.alert_type, payload.value)
        if data is None:
            alert = build_alert(payload.symbol, payload.alert_type, payload.value)
            data = alert.to_dict() if alert else None
        return ActionResult(True, f"Alert created for {payload.symbol}", data=data)

    async def _navigate(self, session: ChatSessionContext, payload: Any) -> ActionResult:
        if self.callbacks.on_navigate is None:
            return ActionResult(False, "Navigation is not available")
        await _invoke(self.callbacks.on_navigate, payload.section)
        return ActionResult(True, f"Navigated to {payload.section}")

    async def _highlight(self, session: ChatSessionContext, payload: Any) -> ActionResult:
        session.highlighted_symbols = list(payload.symbols)
        return ActionResult(True, f"Highlighted: {', '.join(payload.symbols)}")

    async def _show_comparison(self, session: ChatSessionContext, payload: Any) -> ActionResult:
        session.comparison_symbols = list(payload.symbols)
        return ActionResult(True, f"Comparing: {' vs '.join(payload.symbols)}")

    # ------------------------------------------------------------------ execution

    async def execute(self, session: ChatSessionContext, action: ActionDirective) -> ActionResult:
        """Run an action now, regardless of policy. Never raises."""
        handler = self._handlers.get(action.type)
        if handler is None:
            return ActionResult(False, "Unknown action type")

        try:
            return await handler(session, action.payload)
        except Exception as e:
            logger.error(f"Action {action.type} failed for session {session.session_id}: {e}", exc_info=True)
            return ActionResult(False, f"Action failed: {e}")

    def queue(self, session: ChatSessionContext, action: ActionDirective) -> str:
        """Add an action to the session's pending queue and return its id."""
        pending = PendingAction(
            id=str(uuid.uuid4()),
            action=action,
            description=get_action_description(action),
        )
        session.pending_actions[pending.id] = pending
        logger.info(f"Queued action {pending.id} for session {session.session_id}: {pending.description}")
        return pending.id

    def runs_immediately(self, action: ActionDirective, mode: Union[ExecutionPolicy, str, None] = None) -> bool:
        policy = ExecutionPolicy.from_value(mode) if mode is not None else self.policy
        if policy is ExecutionPolicy.TRUSTED:
            return True
        if policy is ExecutionPolicy.AUTO:
            return action.type in SAFE_ACTION_TYPES
        return False

    async def process(
        self,
        session: ChatSessionContext,
        action: ActionDirective,
        mode: Union[ExecutionPolicy, str, None] = None,
    ) -> Union[ActionResult, str]:
        """
        Execute or queue an action according to the execution policy.

        Args:
            session: Chat session the action belongs to
            action: Validated action
            mode: Policy override for this call; defaults to the pipeline's

        Returns:
            ActionResult if the action ran, otherwise the pending action id
        """
        if self.runs_immediately(action, mode):
            return await self.execute(session, action)
        return self.queue(session, action)

    async def confirm(self, session: ChatSessionContext, action_id: str) -> ActionResult:
        """
        Execute a pending action the user confirmed.

        The action is claimed before any await, so a second confirmation of
        the same id never runs the callback twice. On failure it stays
        pending and can be confirmed again.
        """
        pending = session.pending_actions.get(action_id)
        if pending is None:
            return ActionResult(False, "Action not found")
        if pending.state == "executed" and pending.last_result is not None:
            return pending.last_result
        if pending.state == "executing":
            return ActionResult(False, "Action is already being executed")

        pending.state = "executing"
        pending.attempts += 1
        try:
            result = await self.execute(session, pending.action)
        finally:
            if pending.state == "executing":
                pending.state = "pending"

        pending.last_result = result
        if result.success:
            pending.state = "executed"
            pending.confirmed = True
            pending.executed = True
        else:
            logger.warning(f"Pending action {action_id} failed (attempt {pending.attempts}): {result.message}")
        return result

    def cancel(self, session: ChatSessionContext, action_id: str) -> bool:
        """Drop a pending action without running it. Returns False if unknown or running."""
        pending = session.pending_actions.get(action_id)
        if pending is None or pending.state == "executing":
            return False
        del session.pending_actions[action_id]
        return True

    @staticmethod
    def clear_highlights(session: ChatSessionContext) -> None:
        session.highlighted_symbols = []

    @staticmethod
    def clear_comparison(session: ChatSessionContext) -> None:
        session.comparison_symbols = []

    @staticmethod
    def clear_filter(session: ChatSessionContext) -> None:
        session.holdings_filter = None

    async def process_response(
        self,
        session: ChatSessionContext,
        text: str,
        mode: Union[ExecutionPolicy, str, None] = None,
    ) -> ProcessedResponse:
        """Parse a model reply and run every action in it through process()."""
        parsed = parse_a2ui_message(text)
        policy = ExecutionPolicy.from_value(mode) if mode is not None else self.policy
        processed = ProcessedResponse(
            display_text=parsed.display_text,
            components=parsed.components,
            actions=parsed.actions,
        )

        for action in parsed.actions:
            outcome = await self.process(session, action, policy)
            if isinstance(outcome, str):
                processed.queued_ids.append(outcome)
                description = session.pending_actions[outcome].description
                prefix = "Action queued for confirmation" if policy is ExecutionPolicy.AUTO else "Action queued"
                processed.results.append(ActionResult(True, f"{prefix}: {description}"))
            else:
                processed.results.append(outcome)

        return processed
