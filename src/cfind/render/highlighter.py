"""Keeps the document's highlight markers in sync with the search state."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable

from cfind.config import Config
from cfind.models.search import SearchMatch, SearchOptions, SearchState
from cfind.render.document import PartView, TranscriptDocument
from cfind.search.engine import SearchEngine
from cfind.search.scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

_PaintSignature = tuple[
    ET.Element, bool, str, SearchOptions, tuple[tuple[str, int, int, int], ...], object
]


class HighlightRenderer:
    """Repaints markers whenever the open state, query, matches or current index change.

    Every part is cleared and repainted from scratch, except parts whose paint
    inputs are unchanged and whose markers are still in place; those are left
    alone so identical repaints never touch the tree.
    """

    def __init__(
        self,
        engine: SearchEngine,
        document: TranscriptDocument | None = None,
        *,
        scheduler: Scheduler | None = None,
        config: Config | None = None,
    ) -> None:
        self._engine = engine
        self._document = document
        self._scheduler = scheduler
        self._config = config or engine.config
        self._painted: dict[tuple[str, int], tuple[_PaintSignature, int]] = {}
        self._retries = 0
        self._retry_handle: ScheduledTask | None = None
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def document(self) -> TranscriptDocument | None:
        return self._document

    def attach(self) -> None:
        self._unsubscribers.append(self._engine.subscribe(self._on_state))
        if self._document is not None:
            self._unsubscribers.append(self._document.on_rebuilt(self.repaint))

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._cancel_retry()

    def set_document(self, document: TranscriptDocument | None) -> None:
        self.detach()
        self._document = document
        self._painted.clear()
        self.attach()
        self.repaint()

    def _on_state(self, state: SearchState) -> None:
        self._retries = 0
        self.repaint(state)

    def repaint(self, state: SearchState | None = None) -> bool:
        """Paint every part; returns False if the document is not populated yet."""
        self._cancel_retry()
        state = state or self._engine.state
        document = self._document
        if document is None or not document.is_populated:
            self._schedule_retry()
            return False
        self._retries = 0

        by_part: dict[tuple[str, int], list[SearchMatch]] = {}
        for match in state.matches:
            by_part.setdefault((match.message_id, match.part_index), []).append(match)
        current = state.current_match

        for view in document.views():
            self._paint_view(view, state, by_part.get(view.key, []), current)
        return True

    def _paint_view(
        self,
        view: PartView,
        state: SearchState,
        part_matches: list[SearchMatch],
        current: SearchMatch | None,
    ) -> None:
        # Matches scanned before the part moved belong to other content.
        part_matches = [
            match for match in part_matches if not match.part_id or match.part_id == view.part_id
        ]
        active = state.is_open and bool(state.query) and bool(part_matches)
        current_key = None
        if active and current is not None:
            if any(match.same_position(current) for match in part_matches):
                current_key = current.key
        signature: _PaintSignature = (
            view.body,
            active,
            state.query if active else "",
            state.options,
            tuple(match.key for match in part_matches) if active else (),
            current_key,
        )
        previous = self._painted.get(view.key)
        if previous is not None and previous[0] == signature:
            if sum(1 for _ in view.painter.markers(view.body)) == previous[1]:
                return

        if active:
            painted = view.painter.paint(view.body, part_matches, state.query, state.options)
            view.painter.mark_current(
                view.body, current if current_key else None, part_matches
            )
        else:
            painted = view.painter.paint(view.body, [], "", state.options)
        self._painted[view.key] = (signature, len(painted))

    def locate(self, match: SearchMatch) -> ET.Element | None:
        """Find the painted marker for ``match`` in the document."""
        document = self._document
        if document is None:
            return None
        view = document.part_view(match.message_id, match.part_index)
        if view is None:
            return None
        part_matches = self._engine.matches_for_message(match.message_id, match.part_index)
        return view.painter.find_marker(view.body, match, part_matches)

    def _schedule_retry(self) -> None:
        if self._scheduler is None or self._retries >= self._config.paint_retry_limit:
            logger.debug("Transcript document not populated; skipping highlight paint")
            return
        self._retries += 1
        self._retry_handle = self._scheduler.schedule(
            self._config.paint_retry_delay_s, self._retry
        )

    def _retry(self) -> None:
        self._retry_handle = None
        self.repaint()

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None
