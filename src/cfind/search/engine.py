"""Search controller: scope, debounced scanning, match list and navigation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import StrEnum
from typing import Any

from result import Err, Ok, Result

from cfind.config import Config
from cfind.data.protocols import TranscriptReader
from cfind.models.search import SearchMatch, SearchOptions, SearchScope, SearchState
from cfind.models.transcript import ContentUnit
from cfind.search.extractor import extract_searchable_text
from cfind.search.matcher import InvalidQueryError, find_matches_in_part
from cfind.search.scheduler import ScheduledTask, Scheduler
from cfind.search.viewport import Viewport, locate_closest_match

logger = logging.getLogger(__name__)

StateListener = Callable[[SearchState], None]
NavigateListener = Callable[[SearchMatch], None]


class SearchPhase(StrEnum):
    CLOSED = "closed"
    IDLE = "open-idle"
    DEBOUNCED = "open-debounced"
    SCANNED = "open-scanned"


class SearchEngine:
    """Owns the single authoritative search state of the application.

    All mutation goes through the methods below. Listeners registered with
    :meth:`subscribe` receive a :class:`SearchState` snapshot once per batch
    of changes; listeners registered with :meth:`on_navigate` receive the new
    current match after every next/previous navigation.
    """

    def __init__(
        self,
        transcript: TranscriptReader | None = None,
        *,
        scheduler: Scheduler | None = None,
        viewport: Viewport | None = None,
        config: Config | None = None,
    ) -> None:
        self._transcript = transcript
        self._scheduler = scheduler
        self._viewport = viewport
        self._config = config or Config()

        self._query = ""
        self._is_open = False
        self._matches: list[SearchMatch] = []
        self._current_index = -1
        self._options = SearchOptions()
        self._scope = SearchScope()
        self._error = ""
        self._scanned = False
        self._pending: ScheduledTask | None = None

        self._listeners: list[StateListener] = []
        self._navigate_listeners: list[NavigateListener] = []
        self._batch_depth = 0
        self._dirty = False

    # ── Wiring ──

    def set_transcript(self, transcript: TranscriptReader | None) -> None:
        self._transcript = transcript

    def set_viewport(self, viewport: Viewport | None) -> None:
        self._viewport = viewport

    def set_scheduler(self, scheduler: Scheduler | None) -> None:
        self._cancel_pending()
        self._scheduler = scheduler

    @property
    def config(self) -> Config:
        return self._config

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; the returned callable unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_navigate(self, listener: NavigateListener) -> Callable[[], None]:
        self._navigate_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._navigate_listeners:
                self._navigate_listeners.remove(listener)

        return unsubscribe

    # ── Reactive outputs ──

    @property
    def query(self) -> str:
        return self._query

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def matches(self) -> list[SearchMatch]:
        return list(self._matches)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def options(self) -> SearchOptions:
        return self._options

    @property
    def scope(self) -> SearchScope:
        return self._scope

    @property
    def error(self) -> str:
        return self._error

    @property
    def phase(self) -> SearchPhase:
        if not self._is_open:
            return SearchPhase.CLOSED
        if self._pending is not None:
            return SearchPhase.DEBOUNCED
        if self._scanned:
            return SearchPhase.SCANNED
        return SearchPhase.IDLE

    @property
    def state(self) -> SearchState:
        return SearchState(
            query=self._query,
            is_open=self._is_open,
            matches=list(self._matches),
            current_index=self._current_index,
            options=self._options,
            scope=self._scope,
            error=self._error,
        )

    @property
    def match_count(self) -> int:
        return len(self._matches)

    @property
    def has_matches(self) -> bool:
        return bool(self._matches)

    def current_match(self) -> SearchMatch | None:
        if 0 <= self._current_index < len(self._matches):
            return self._matches[self._current_index]
        return None

    def matches_for_message(
        self, message_id: str, part_index: int | None = None
    ) -> list[SearchMatch]:
        return [
            match
            for match in self._matches
            if match.message_id == message_id
            and (part_index is None or match.part_index == part_index)
        ]

    def counter_label(self) -> str:
        """Position label for the search bar, e.g. ``"3/15"`` or ``"7/100+"``."""
        total = len(self._matches)
        if total == 0:
            return "0/0"
        position = self._current_index + 1
        if total >= self._config.max_matches:
            return f"{position}/{self._config.max_matches}+"
        return f"{position}/{total}"

    # ── Lifecycle ──

    def open(self, instance_id: str | None = None, session_id: str | None = None) -> None:
        """Open the search, restricted to the given scope. Does not scan."""
        scope = SearchScope(instance_id=instance_id, session_id=session_id)
        with self._batch():
            if scope != self._scope:
                self._scope = scope
                self._reset_results()
            self._is_open = True
            self._dirty = True

    def set_scope(self, instance_id: str | None, session_id: str | None) -> None:
        """Rebind the scope, re-scanning the current query in the new session."""
        scope = SearchScope(instance_id=instance_id, session_id=session_id)
        if scope == self._scope:
            return
        with self._batch():
            self._scope = scope
            self._reset_results()
            self._dirty = True
            if self._is_open and self._query:
                self.execute_search()

    def close(self) -> None:
        """Close the search, cancelling any pending scan and resetting state."""
        self._cancel_pending()
        with self._batch():
            self._is_open = False
            self._query = ""
            self._reset_results()
            self._dirty = True

    # ── Query input ──

    def set_query_input(self, text: str) -> None:
        """Update the query immediately and (re)start the debounce timer."""
        self._cancel_pending()
        with self._batch():
            if text != self._query:
                self._query = text
                self._dirty = True
            if self._error:
                self._error = ""
                self._dirty = True
            if not text:
                self.clear_results()
                return
            if self._scheduler is None:
                logger.debug("No scheduler bound; deferring scan until Enter")
                return
            self._pending = self._scheduler.schedule(
                self._config.debounce_s, self._on_debounce_elapsed
            )

    def execute_search_on_enter(self) -> Result[list[SearchMatch], str]:
        """Cancel the debounce timer and scan immediately."""
        self._cancel_pending()
        if not self._query:
            self.clear_results()
            return Ok([])
        return self.execute_search()

    def handle_enter(self, *, shift: bool = False) -> None:
        """Enter navigates when matches exist, otherwise it executes the search."""
        if shift:
            self.navigate_previous()
            return
        if self._matches:
            self.navigate_next()
            return
        self.execute_search_on_enter()

    def update_options(self, **changes: Any) -> Result[list[SearchMatch], str]:
        """Merge option changes and re-scan immediately."""
        options = self._options.merged(**changes)
        with self._batch():
            if options != self._options:
                self._options = options
                self._dirty = True
            if not self._query:
                return Ok([])
            self._cancel_pending()
            return self.execute_search()

    def clear_results(self) -> None:
        with self._batch():
            self._reset_results()
            self._dirty = True

    # ── Scanning ──

    def execute_search(self) -> Result[list[SearchMatch], str]:
        """Scan the scoped session and replace the match list.

        Returns the new matches, or the user-displayable message when the
        query is rejected. A missing transcript, scope or session yields an
        empty match list.
        """
        query = self._query
        if not query:
            self.clear_results()
            return Ok([])

        message_ids = self._scoped_message_ids()
        if message_ids is None:
            self.clear_results()
            return Ok([])

        try:
            matches = self._scan(message_ids, query, self._options)
        except InvalidQueryError as exc:
            logger.info("Rejected search query %r", query)
            with self._batch():
                self._reset_results()
                self._error = str(exc)
                self._dirty = True
            return Err(str(exc))

        current_index = locate_closest_match(matches, self._viewport)
        with self._batch():
            self._matches = _flag_current(matches, current_index)
            self._current_index = current_index
            self._error = ""
            self._scanned = True
            self._dirty = True
        logger.debug(
            "Scanned %d messages for %r: %d matches", len(message_ids), query, len(matches)
        )
        return Ok(list(self._matches))

    def _scoped_message_ids(self) -> list[str] | None:
        session_id = self._scope.session_id
        if self._transcript is None or not session_id:
            return None
        return self._transcript.session_message_ids(session_id)

    def _scan(
        self, message_ids: list[str], query: str, options: SearchOptions
    ) -> list[SearchMatch]:
        assert self._transcript is not None
        limit = self._config.max_matches
        found: list[SearchMatch] = []
        for message_id in message_ids:
            record = self._transcript.message(message_id)
            if record is None:
                continue
            for part_index, (part_id, part) in enumerate(record.ordered_parts()):
                text = extract_searchable_text(part, options)
                if not text:
                    continue
                for match in find_matches_in_part(
                    text, message_id, part_index, query, options, part_id=part_id
                ):
                    found.append(match)
                    if len(found) >= limit:
                        return found
        return found

    def resolve_part(self, match: SearchMatch) -> ContentUnit | None:
        """Return the part a match points at, or None if it moved or vanished.

        Match identity is positional; a part inserted or removed before the
        matched one since the scan makes the match stale.
        """
        if self._transcript is None:
            return None
        record = self._transcript.message(match.message_id)
        if record is None or not 0 <= match.part_index < len(record.part_ids):
            return None
        part_id = record.part_ids[match.part_index]
        if match.part_id and part_id != match.part_id:
            return None
        return record.parts.get(part_id)

    # ── Navigation ──

    def navigate_next(self) -> None:
        total = len(self._matches)
        if total == 0:
            return
        self._move_to((self._current_index + 1) % total)

    def navigate_previous(self) -> None:
        total = len(self._matches)
        if total == 0:
            return
        index = total - 1 if self._current_index <= 0 else self._current_index - 1
        self._move_to(index)

    def _move_to(self, index: int) -> None:
        with self._batch():
            self._matches = _flag_current(self._matches, index)
            self._current_index = index
            self._dirty = True
        current = self._matches[index]
        for listener in list(self._navigate_listeners):
            try:
                listener(current)
            except Exception:
                logger.exception("Search navigation listener failed")

    # ── Internals ──

    def _on_debounce_elapsed(self) -> None:
        self._pending = None
        self.execute_search()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _reset_results(self) -> None:
        self._matches = []
        self._current_index = -1
        self._error = ""
        self._scanned = False

    @contextmanager
    def _batch(self) -> Iterator[None]:
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self._dirty = False
                self._notify()

    def _notify(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Search state listener failed")


def _flag_current(matches: list[SearchMatch], index: int) -> list[SearchMatch]:
    flagged: list[SearchMatch] = []
    for position, match in enumerate(matches):
        is_current = position == index
        if match.is_current != is_current:
            match = match.model_copy(update={"is_current": is_current})
        flagged.append(match)
    return flagged
