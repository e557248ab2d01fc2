"""Pick the initial current match nearest the visual center of the transcript."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from cfind.models.search import SearchMatch


@dataclass(frozen=True)
class AnchorBox:
    """Vertical extent of a message anchor, in scroll-content coordinates."""

    message_id: str
    top: float
    height: float

    @property
    def center(self) -> float:
        return self.top + self.height / 2


class Viewport(Protocol):
    """Scroll position of the transcript container and its message anchors."""

    @property
    def scroll_top(self) -> float: ...

    @property
    def client_height(self) -> float: ...

    def anchors(self) -> list[AnchorBox]: ...


def locate_closest_match(matches: list[SearchMatch], viewport: Viewport | None) -> int:
    """Return the index of the first match in the message nearest the view center.

    ``-1`` for no matches; ``0`` when no viewport or no anchor can be resolved.
    """
    if not matches:
        return -1
    if viewport is None:
        return 0

    anchors = viewport.anchors()
    if not anchors:
        return 0

    center = viewport.scroll_top + viewport.client_height / 2
    closest = min(anchors, key=lambda anchor: abs(anchor.center - center))

    for index, match in enumerate(matches):
        if match.message_id == closest.message_id:
            return index
    return 0
