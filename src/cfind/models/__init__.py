"""Pydantic models for cfind."""

from cfind.models.search import MatchSpan, SearchMatch, SearchOptions, SearchScope, SearchState
from cfind.models.transcript import (
    ContentUnit,
    MessageRecord,
    OtherPart,
    ReasoningPart,
    TextPart,
    ToolPart,
    ToolState,
    parse_part,
)

__all__ = [
    "ContentUnit",
    "MatchSpan",
    "MessageRecord",
    "OtherPart",
    "ReasoningPart",
    "SearchMatch",
    "SearchOptions",
    "SearchScope",
    "SearchState",
    "TextPart",
    "ToolPart",
    "ToolState",
    "parse_part",
]
