"""
Exception taxonomy for the chat layer.

Malformed directives and invalid action payloads are recovered where they
occur and never surface as exceptions; everything here is raised to, or
converted at, a well-defined boundary.
"""


class AdvisorError(Exception):
    """Base class for chat-layer errors."""


class OrchestratorExhausted(AdvisorError):
    """The model kept requesting tools after the iteration cap was reached."""

    def __init__(self, max_iterations: int, tools_used=None):
        self.max_iterations = max_iterations
        self.tools_used = list(tools_used or [])
        super().__init__(
            f"Model still requested tools after {max_iterations} tool-calling rounds"
        )


class MessageQuotaExceeded(AdvisorError):
    """The session has used up its message quota."""

    def __init__(self, session_id: str, used: int, limit: int):
        self.session_id = session_id
        self.used = used
        self.limit = limit
        super().__init__(
            f"Message quota exceeded for session {session_id}. Used: {used}, Limit: {limit}"
        )


class ToolExecutionError(AdvisorError):
    """A data tool could not produce a result (unknown symbol, upstream failure)."""


class ToolNotFoundError(ToolExecutionError, ValueError):
    """The model requested a tool that is not registered."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Tool not found: {tool_name}")


class ModelResponseError(AdvisorError):
    """The model reply had neither content nor tool calls and did not finish normally."""
