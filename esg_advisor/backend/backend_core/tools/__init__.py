"""
Data tools the model can call during a chat turn.
"""

from esg_advisor.backend.backend_core.tools.registry import Tool, ToolRegistry
from esg_advisor.backend.backend_core.tools.portfolio_tools import register_portfolio_tools

__all__ = ["Tool", "ToolRegistry", "register_portfolio_tools"]
