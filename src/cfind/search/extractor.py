"""Per-kind policy deciding which text of a part is searchable."""

from __future__ import annotations

import json
from typing import Any

from cfind.models.search import SearchOptions
from cfind.models.transcript import ContentUnit, ReasoningPart, TextPart, ToolPart


def extract_searchable_text(part: ContentUnit | None, options: SearchOptions) -> str:
    """Return the searchable string of ``part``, or ``""`` if it is not searched."""
    match part:
        case TextPart():
            return part.text
        case ToolPart():
            return _tool_output(part) if options.include_tool_outputs else ""
        case ReasoningPart():
            return _reasoning_text(part.text) if options.include_reasoning else ""
        case _:
            return ""


def _tool_output(part: ToolPart) -> str:
    output = part.state.output
    if isinstance(output, str):
        return output
    if output is not None:
        return json.dumps(output, ensure_ascii=False, separators=(",", ":"), default=str)
    fallback = part.state.metadata.get("output")
    return fallback if isinstance(fallback, str) else ""


def _reasoning_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return "\n".join(_flatten_segments(value))


def _flatten_segments(value: Any) -> list[str]:
    # Depth-first over nested lists and {text|value} segment objects.
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        return [text for entry in value for text in _flatten_segments(entry)]
    if isinstance(value, dict):
        for key in ("text", "value"):
            texts = _flatten_segments(value.get(key))
            if texts:
                return texts
    return []
