"""Reveal-then-scroll protocol for the current search match."""

from __future__ import annotations

import asyncio
import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable
from typing import Any, Protocol

from cfind.config import Config
from cfind.models.search import SearchMatch, SearchState
from cfind.models.transcript import ReasoningPart
from cfind.render.highlighter import HighlightRenderer
from cfind.render.markup import closest, has_class, parent_map
from cfind.render.reveal import ExpansionAction, RevealChannel
from cfind.search.engine import SearchEngine
from cfind.search.scheduler import AsyncioScheduler

logger = logging.getLogger(__name__)


class LayoutSettler(Protocol):
    """Waits for the rendering layer to apply pending layout changes and paces retries."""

    async def wait_settled(self) -> None: ...

    async def wait_retry(self, delay_s: float) -> None: ...


class FrameSettler:
    """Fallback settler: waits a fixed number of paint frames."""

    def __init__(self, frames: int = 4, frame_interval_s: float = 1 / 60) -> None:
        self.frames = frames
        self.frame_interval_s = frame_interval_s

    async def wait_settled(self) -> None:
        for _ in range(self.frames):
            await asyncio.sleep(self.frame_interval_s)

    async def wait_retry(self, delay_s: float) -> None:
        await asyncio.sleep(delay_s)


class ScrollTarget(Protocol):
    """The view that can bring an element of the document into sight."""

    def scroll_into_view(self, element: ET.Element, *, block: str = "center") -> None: ...


def is_in_collapsed_section(element: ET.Element, parents: dict[ET.Element, ET.Element]) -> bool:
    toggle = closest(element, parents, lambda node: node.get("aria-expanded") is not None)
    return toggle is not None and toggle.get("aria-expanded") == "false"


def identify_collapsible_parent(
    element: ET.Element, parents: dict[ET.Element, ET.Element]
) -> tuple[ExpansionAction | None, dict[str, str]]:
    """Name the collapsed region around ``element`` and the ids to expand it by."""

    def message_id_of(node: ET.Element) -> str:
        block = closest(node, parents, lambda item: item.get("data-message-id") is not None)
        return block.get("data-message-id", "") if block is not None else ""

    def part_id_of(tool_call: ET.Element | None) -> str:
        key = tool_call.get("data-key", "") if tool_call is not None else ""
        return key.rsplit(":", 1)[-1]

    reasoning = closest(element, parents, lambda node: has_class(node, "message-reasoning-card"))
    if reasoning is not None:
        return ExpansionAction.REASONING, {
            "message_id": message_id_of(reasoning),
            "part_index": element.get("data-search-part-index", "0"),
        }

    diagnostics = closest(
        element, parents, lambda node: has_class(node, "tool-diagnostics-section")
    )
    if diagnostics is not None:
        tool_call = closest(diagnostics, parents, lambda node: has_class(node, "tool-call"))
        return ExpansionAction.DIAGNOSTICS, {
            "message_id": message_id_of(diagnostics),
            "part_id": part_id_of(tool_call),
        }

    tool_call = closest(element, parents, lambda node: has_class(node, "tool-call"))
    if tool_call is not None:
        return ExpansionAction.TOOL_CALL, {
            "message_id": message_id_of(tool_call),
            "part_id": part_id_of(tool_call),
        }

    folder = closest(element, parents, lambda node: has_class(node, "folder-tree-node"))
    if folder is not None:
        return ExpansionAction.FOLDER_NODE, {"element_id": folder.get("data-node-id", "")}

    accordion = closest(element, parents, lambda node: node.get("data-accordion-item") is not None)
    if accordion is not None:
        return ExpansionAction.SIDEBAR_ACCORDION, {"section_id": accordion.get("data-value", "")}

    session = closest(element, parents, lambda node: has_class(node, "session-item"))
    if session is not None:
        return ExpansionAction.SESSION_PARENT, {"session_id": session.get("data-session-id", "")}

    return None, {}


class ExpansionCoordinator:
    """Reveals the current match's collapsed ancestors, then scrolls to it.

    After a reveal request the coordinator waits for the layout to settle
    before looking for the marker; if it still cannot scroll it waits
    ``retry_delay_ms`` and retries ``retry_count`` times, then gives up.
    """

    def __init__(
        self,
        engine: SearchEngine,
        renderer: HighlightRenderer,
        reveal: RevealChannel,
        *,
        scroll_target: ScrollTarget | None = None,
        settler: LayoutSettler | None = None,
        scheduler: AsyncioScheduler | None = None,
        config: Config | None = None,
    ) -> None:
        self._engine = engine
        self._renderer = renderer
        self._reveal = reveal
        self._scroll_target = scroll_target
        self._config = config or engine.config
        self._settler = settler or FrameSettler(
            self._config.settle_frames, self._config.frame_interval_s
        )
        self._scheduler = scheduler
        self._task: asyncio.Task[Any] | None = None
        self._was_open = engine.is_open
        self._unsubscribers: list[Callable[[], None]] = []

    def attach(self) -> None:
        self._unsubscribers.append(self._engine.subscribe(self._on_state))
        self._unsubscribers.append(self._engine.on_navigate(lambda _match: self.request_scroll()))

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if self._scheduler is not None:
            self._scheduler.cancel_all()

    def set_scroll_target(self, scroll_target: ScrollTarget | None) -> None:
        self._scroll_target = scroll_target

    def _on_state(self, state: SearchState) -> None:
        # A freshly opened search may ask every region to expand again.
        if state.is_open and not self._was_open:
            self._reveal.clear()
        self._was_open = state.is_open

    def request_scroll(self) -> asyncio.Task[Any] | None:
        """Schedule :meth:`scroll_to_current_match`, superseding a pending one."""
        if self._scheduler is None:
            logger.debug("No scheduler bound; scroll request dropped")
            return None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = self._scheduler.spawn(self.scroll_to_current_match())
        return self._task

    def expand_sections_for_match(self, instance_id: str, match: SearchMatch) -> bool:
        """Ask collapsed regions holding ``match`` to expand; True if a request went out."""
        part = self._engine.resolve_part(match)
        if isinstance(part, ReasoningPart) and self._reveal.request_reasoning(
            instance_id, match.message_id, match.part_index
        ):
            return True

        document = self._renderer.document
        marker = self._renderer.locate(match)
        if document is None or marker is None:
            logger.warning(
                "Match element not found: message %s part %d [%d:%d]",
                match.message_id,
                match.part_index,
                match.start_index,
                match.end_index,
            )
            return False

        parents = parent_map(document.root)
        if not is_in_collapsed_section(marker, parents):
            return False

        action, ids = identify_collapsible_parent(marker, parents)
        match action:
            case ExpansionAction.REASONING:
                return self._reveal.request_reasoning(
                    instance_id, ids["message_id"], int(ids["part_index"])
                )
            case ExpansionAction.TOOL_CALL:
                return self._reveal.request_tool_call(
                    instance_id, ids["message_id"], ids["part_id"]
                )
            case ExpansionAction.DIAGNOSTICS:
                return self._reveal.request_diagnostics(
                    instance_id, ids["message_id"], ids["part_id"]
                )
            case ExpansionAction.FOLDER_NODE:
                return self._reveal.request_folder_node(instance_id, ids["element_id"])
            case ExpansionAction.SIDEBAR_ACCORDION:
                return self._reveal.request_sidebar_accordion(instance_id, ids["section_id"])
            case ExpansionAction.SESSION_PARENT:
                return self._reveal.request_session_parent(instance_id, ids["session_id"])
            case _:
                logger.warning("Could not identify collapsible parent for match %s", match.key)
                return False

    async def scroll_to_current_match(self) -> bool:
        """Reveal, settle, then scroll to the current match; True if anything scrolled."""
        match = self._engine.current_match()
        if match is None:
            return False

        instance_id = self._engine.scope.instance_id
        did_expand = instance_id is not None and self.expand_sections_for_match(
            instance_id, match
        )
        if did_expand:
            await self._settler.wait_settled()

        scrolled = self._scroll_to(match)
        attempts = 0
        while not scrolled and did_expand and attempts < self._config.retry_count:
            attempts += 1
            await self._settler.wait_retry(self._config.retry_delay_s)
            scrolled = self._scroll_to(match)
        return scrolled

    def _scroll_to(self, match: SearchMatch) -> bool:
        target = self._scroll_target
        document = self._renderer.document
        if target is None or document is None:
            return False

        if self._engine.resolve_part(match) is None:
            logger.warning(
                "Match in message %s part %d is stale; scrolling to the message",
                match.message_id,
                match.part_index,
            )
        else:
            marker = self._renderer.locate(match)
            if marker is not None:
                target.scroll_into_view(marker, block="center")
                return True
            logger.warning(
                "Highlight for match %s not found; scrolling to the message", match.key
            )

        anchor = document.anchor(match.message_id)
        if anchor is not None:
            target.scroll_into_view(anchor, block="start")
            return True
        return False
