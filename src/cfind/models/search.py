"""Search models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SearchOptions(BaseModel):
    """Match semantics and content filters. Replaced wholesale on update."""

    model_config = ConfigDict(frozen=True)

    case_sensitive: bool = False
    whole_word: bool = False
    include_tool_outputs: bool = False
    include_reasoning: bool = False

    def merged(self, **changes: Any) -> SearchOptions:
        """Return a copy with ``changes`` applied, ignoring unknown keys."""
        fields = type(self).model_fields
        known = {key: bool(value) for key, value in changes.items() if key in fields}
        return self.model_copy(update=known)


class MatchSpan(BaseModel):
    """A raw occurrence of the query inside one string."""

    model_config = ConfigDict(frozen=True)

    start_index: int
    end_index: int
    text: str


class SearchMatch(BaseModel):
    """A single occurrence of the query inside a message part.

    Identity is positional: ``(message_id, part_index, start_index, end_index)``.
    ``part_id`` is the part identifier seen at scan time and is not part of
    the identity.
    """

    model_config = ConfigDict(frozen=True)

    message_id: str
    part_index: int
    start_index: int
    end_index: int
    text: str
    is_current: bool = False
    part_id: str = ""

    @property
    def key(self) -> tuple[str, int, int, int]:
        return (self.message_id, self.part_index, self.start_index, self.end_index)

    def same_position(self, other: SearchMatch) -> bool:
        return self.key == other.key


class SearchScope(BaseModel):
    """The (instance, session) pair a search is restricted to."""

    model_config = ConfigDict(frozen=True)

    instance_id: str | None = None
    session_id: str | None = None


class SearchState(BaseModel):
    """Snapshot of the search engine's reactive outputs."""

    query: str = ""
    is_open: bool = False
    matches: list[SearchMatch] = Field(default_factory=list)
    current_index: int = -1
    options: SearchOptions = Field(default_factory=SearchOptions)
    scope: SearchScope = Field(default_factory=SearchScope)
    error: str = ""

    @property
    def current_match(self) -> SearchMatch | None:
        if 0 <= self.current_index < len(self.matches):
            return self.matches[self.current_index]
        return None
