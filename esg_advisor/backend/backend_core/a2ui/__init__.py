"""
A2UI directive parsing - UI components and actions embedded in model replies.
"""

from esg_advisor.backend.backend_core.a2ui.parser import (
    ParsedMessage,
    RenderDirective,
    extract_json_objects,
    has_a2ui_content,
    parse_a2ui_message,
)

__all__ = [
    "ParsedMessage",
    "RenderDirective",
    "extract_json_objects",
    "has_a2ui_content",
    "parse_a2ui_message",
]
