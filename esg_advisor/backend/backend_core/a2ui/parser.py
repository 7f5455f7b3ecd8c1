"""
Directive extraction for model replies.

The model answers in prose with JSON directives embedded anywhere in the
text. This module finds balanced JSON objects in a single linear pass,
classifies them (UI component, action, or plain text), and returns the
remaining prose with every consumed directive removed.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
import json
import logging
import re

from esg_advisor.backend.backend_core.actions.models import ActionDirective
from esg_advisor.backend.backend_core.actions.validator import validate_action

logger = logging.getLogger(__name__)

# Candidates that failed to parse are only hidden when they clearly are directives.
_DIRECTIVE_PREFIX = re.compile(r'\{\s*"(?:surfaceUpdate|action)"\s*:')


@dataclass(frozen=True)
class RenderDirective:
    component: str
    props: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"component": self.component, "props": self.props}


Directive = Union[RenderDirective, ActionDirective]


@dataclass
class ParsedMessage:
    display_text: str
    directives: List[Directive] = field(default_factory=list)

    @property
    def components(self) -> List[RenderDirective]:
        return [d for d in self.directives if isinstance(d, RenderDirective)]

    @property
    def actions(self) -> List[ActionDirective]:
        return [d for d in self.directives if not isinstance(d, RenderDirective)]


def _scan(text: str, begin: int, spans: List[Tuple[int, int]]) -> Optional[int]:
    """
    One pass over text[begin:], appending balanced spans.

    Returns:
        Position of the first opener that never closed, or None. Spans
        found inside that opener are discarded, since the string state
        they were read with started at a brace that was not JSON.
    """
    open_positions: List[int] = []
    in_string = False
    escaped = False

    for i in range(begin, len(text)):
        char = text[i]
        if not open_positions:
            if char == "{":
                open_positions.append(i)
            continue

        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            open_positions.append(i)
        elif char == "}":
            start = open_positions.pop()
            # Drop spans nested in the one that just closed
            while spans and spans[-1][0] > start:
                spans.pop()
            spans.append((start, i + 1))

    if not open_positions:
        return None

    unclosed = open_positions[0]
    while spans and spans[-1][0] > unclosed:
        spans.pop()
    return unclosed


def extract_json_objects(text: str) -> List[Tuple[int, int]]:
    """
    Find the outermost balanced `{...}` spans in text.

    Braces inside JSON string literals are ignored (backslash escapes are
    honored). A brace that never closes does not hide balanced objects
    after it: scanning restarts just past it with a fresh string state,
    so quotes in surrounding prose cannot swallow a later directive.
    Linear when every opener closes; each unclosed top-level opener
    costs one more pass over the rest of the text.

    Returns:
        (start, end) index pairs, end exclusive, in order of appearance
    """
    spans: List[Tuple[int, int]] = []
    begin = 0
    while True:
        unclosed = _scan(text, begin, spans)
        if unclosed is None:
            return spans
        begin = unclosed + 1


def _has_marker(candidate: str) -> bool:
    if '"surfaceUpdate"' in candidate or '"component"' in candidate:
        return True
    return '"action"' in candidate and '"type"' in candidate


def _classify(parsed: Any) -> Tuple[bool, Optional[Directive]]:
    """
    Returns:
        (consume, directive). consume means the span is removed from the text.
    """
    if not isinstance(parsed, dict):
        return False, None

    surface = parsed.get("surfaceUpdate")
    if isinstance(surface, dict) and isinstance(surface.get("component"), str):
        props = surface.get("props")
        return True, RenderDirective(surface["component"], props if isinstance(props, dict) else {})

    if "action" in parsed:
        action = validate_action(parsed["action"])
        if action is None:
            logger.debug("Dropped invalid action directive")
        return True, action

    if isinstance(parsed.get("component"), str):
        props = parsed.get("props")
        return True, RenderDirective(parsed["component"], props if isinstance(props, dict) else {})

    return False, None


def parse_a2ui_message(text: Optional[str]) -> ParsedMessage:
    """
    Split a model reply into display text and directives.

    Args:
        text: Raw reply text

    Returns:
        ParsedMessage with whitespace-collapsed prose and the directives in
        order of appearance

    Examples:
        >>> msg = parse_a2ui_message('Here: {"surfaceUpdate": {"component": "ESGScoreGauge", "props": {"score": 78}}} done')
        >>> msg.display_text, msg.components[0].component
        ('Here: done', 'ESGScoreGauge')
    """
    if not text:
        return ParsedMessage(display_text="")

    directives: List[Directive] = []
    consumed: List[Tuple[int, int]] = []

    for start, end in extract_json_objects(text):
        candidate = text[start:end]
        if not _has_marker(candidate):
            continue

        try:
            parsed = json.loads(candidate)
        except ValueError:
            logger.debug(f"Dropped malformed directive candidate at offset {start}")
            if _DIRECTIVE_PREFIX.match(candidate):
                consumed.append((start, end))
            continue

        consume, directive = _classify(parsed)
        if consume:
            consumed.append((start, end))
        if directive is not None:
            directives.append(directive)

    pieces = []
    cursor = 0
    for start, end in consumed:
        pieces.append(text[cursor:start])
        cursor = end
    pieces.append(text[cursor:])

    display_text = " ".join(" ".join(pieces).split())
    return ParsedMessage(display_text=display_text, directives=directives)


def has_a2ui_content(text: Optional[str]) -> bool:
    """True if the text contains at least one renderable component."""
    return bool(parse_a2ui_message(text).components)
