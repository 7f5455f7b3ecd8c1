"""
Guardrails for the ESG advisor.

Per-session message quota: a cap on how many user messages one chat may
send to the model.
"""

from typing import Optional, Tuple
import logging

from esg_advisor.backend.backend_core.config import settings
from esg_advisor.backend.backend_core.errors import MessageQuotaExceeded
from esg_advisor.backend.backend_core.session import ChatSessionContext

logger = logging.getLogger(__name__)


class MessageQuotaTracker:
    """
    Tracks messages per session.

    Enforces the per-session message quota to control model costs.
    """

    def __init__(self, limit: Optional[int] = None):
        """Initialize tracker; limit defaults to MAX_MESSAGES_PER_SESSION."""
        self.limit = settings.MAX_MESSAGES_PER_SESSION if limit is None else limit

    def check_quota(self, session: ChatSessionContext) -> Tuple[bool, Optional[str]]:
        """
        Check if the session may send another message.

        Returns:
            (allowed, error_message)
        """
        if self.limit <= 0 or session.messages_sent < self.limit:
            return True, None

        error_msg = f"Message quota exceeded. Used: {session.messages_sent}, Limit: {self.limit}"
        logger.warning(f"Message quota exceeded for session {session.session_id}")
        return False, error_msg

    def enforce(self, session: ChatSessionContext) -> None:
        """Raise MessageQuotaExceeded if the session is out of messages."""
        allowed, _ = self.check_quota(session)
        if not allowed:
            raise MessageQuotaExceeded(session.session_id, session.messages_sent, self.limit)

    def record_message(self, session: ChatSessionContext) -> None:
        session.messages_sent += 1
