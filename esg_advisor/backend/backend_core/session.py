"""
Per-conversation state.

One ChatSessionContext per chat: message history, actions waiting for
confirmation, the UI selection the safe actions drive, and the message
counter used by the quota guardrail.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import uuid

from esg_advisor.backend.backend_core.actions.models import PendingAction
from esg_core.models.holding import PortfolioSnapshot


@dataclass
class ChatSessionContext:
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    history: List[Dict[str, Any]] = field(default_factory=list)
    pending_actions: Dict[str, PendingAction] = field(default_factory=dict)
    highlighted_symbols: List[str] = field(default_factory=list)
    comparison_symbols: List[str] = field(default_factory=list)
    holdings_filter: Optional[Dict[str, Any]] = None
    portfolio: PortfolioSnapshot = field(default_factory=PortfolioSnapshot)
    messages_sent: int = 0

    def list_pending(self) -> List[PendingAction]:
        """Actions still waiting for confirmation, oldest first."""
        return [p for p in self.pending_actions.values() if not p.executed]

    def recent_history(self, window: int) -> List[Dict[str, Any]]:
        if window <= 0:
            return []
        return [{"role": m["role"], "content": m["content"]} for m in self.history[-window:]]
