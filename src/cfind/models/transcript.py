"""Transcript content models: messages and their addressable parts."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TextPart(BaseModel):
    """Plain conversational text."""

    id: str = ""
    kind: Literal["text"] = "text"
    text: str = ""


class ToolState(BaseModel):
    """Live state of a tool invocation."""

    status: str = ""
    input: dict[str, Any] = Field(default_factory=dict)
    output: Any = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ToolPart(BaseModel):
    """A tool call and (eventually) its output."""

    id: str = ""
    kind: Literal["tool"] = "tool"
    tool: str = ""
    state: ToolState = Field(default_factory=ToolState)


class ReasoningPart(BaseModel):
    """Model reasoning; either a string or a list of nested segments."""

    id: str = ""
    kind: Literal["reasoning"] = "reasoning"
    text: Any = ""


class OtherPart(BaseModel):
    """Any part kind that is never searched (files, step markers, ...)."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    kind: str = "other"


ContentUnit = TextPart | ToolPart | ReasoningPart | OtherPart


def parse_part(raw: dict[str, Any]) -> ContentUnit:
    """Build the typed part for a raw mapping, dispatching on ``kind``."""
    match raw.get("kind", raw.get("type", "")):
        case "text":
            return TextPart.model_validate(_with_kind(raw, "text"))
        case "tool":
            return ToolPart.model_validate(_with_kind(raw, "tool"))
        case "reasoning":
            return ReasoningPart.model_validate(_with_kind(raw, "reasoning"))
        case _:
            return OtherPart.model_validate(raw)


def _with_kind(raw: dict[str, Any], kind: str) -> dict[str, Any]:
    data = {key: value for key, value in raw.items() if key != "type"}
    data["kind"] = kind
    return data


class MessageRecord(BaseModel):
    """A message with its ordered part ids and parts keyed by id."""

    id: str
    session_id: str = ""
    role: str = ""
    part_ids: list[str] = Field(default_factory=list)
    parts: dict[str, ContentUnit] = Field(default_factory=dict)

    @field_validator("parts", mode="before")
    @classmethod
    def _parse_parts(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {
            key: parse_part(part) if isinstance(part, dict) else part
            for key, part in value.items()
        }

    def ordered_parts(self) -> list[tuple[str, ContentUnit | None]]:
        """Return ``(part_id, part)`` pairs in part-list order."""
        return [(part_id, self.parts.get(part_id)) for part_id in self.part_ids]
