"""
Utility modules for the ESG advisor.

This module provides logging setup and error-handling helpers.
"""

from esg_core.utils.error_handling import (
    format_api_error_message,
    is_api_error,
    should_retry_error,
)
from esg_core.utils.logging import configure_logging

__all__ = [
    "configure_logging",
    "format_api_error_message",
    "is_api_error",
    "should_retry_error",
]
