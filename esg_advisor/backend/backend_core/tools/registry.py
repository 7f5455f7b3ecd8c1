"""
Tool Registry for the ESG advisor.

Manages registration and execution of the data tools the model may call.
Tools return data from the portfolio or the market data client and never
fabricate values.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional
from abc import ABC, abstractmethod
import logging

from esg_advisor.backend.backend_core.errors import ToolNotFoundError

logger = logging.getLogger(__name__)

ToolExecutor = Callable[[str, Dict[str, Any]], Awaitable[Any]]


class Tool(ABC):
    """Base class for all tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Tool description for LLM."""
        pass

    @property
    @abstractmethod
    def parameters(self) -> Dict[str, Any]:
        """Tool parameters schema (OpenAI function calling format)."""
        pass

    @abstractmethod
    async def execute(self, **kwargs) -> Any:
        """Execute the tool with given arguments."""
        pass


class ToolRegistry:
    """Registry for managing and executing tools."""

    def __init__(self):
        """Initialize tool registry."""
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool):
        """Register a tool."""
        self._tools[tool.name] = tool
        logger.info(f"Registered tool: {tool.name}")

    def get_tool(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        return self._tools.get(name)

    @property
    def tool_names(self) -> List[str]:
        return list(self._tools.keys())

    async def execute_tool(
        self,
        tool_name: str,
        arguments: Dict[str, Any],
        session_id: str,
    ) -> Any:
        """
        Execute a tool with given arguments.

        Args:
            tool_name: Name of tool to execute
            arguments: Tool arguments
            session_id: Session ID for logging

        Returns:
            Tool execution result

        Raises:
            ToolNotFoundError: No tool is registered under tool_name
        """
        tool = self.get_tool(tool_name)
        if not tool:
            raise ToolNotFoundError(tool_name)

        logger.info(f"Executing tool: {tool_name} for session: {session_id}")

        return await tool.execute(**arguments)

    def executor_for(self, session_id: str) -> ToolExecutor:
        """Bind execute_tool to a session, in the shape the orchestrator expects."""
        async def _execute(tool_name: str, arguments: Dict[str, Any]) -> Any:
            return await self.execute_tool(tool_name, arguments, session_id)
        return _execute

    def get_function_definitions(self) -> List[Dict[str, Any]]:
        """
        Get OpenAI function calling format definitions for all tools.

        Returns:
            List of function definitions in OpenAI format
        """
        definitions = []
        for tool in self._tools.values():
            definitions.append({
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            })
        return definitions
