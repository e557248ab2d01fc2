"""Reveal channel: ask collapsed regions to expand so a match can be shown."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class ExpansionAction(StrEnum):
    """Kinds of collapsible regions that can be asked to expand."""

    REASONING = "expand-reasoning"
    TOOL_CALL = "expand-tool-call"
    DIAGNOSTICS = "expand-diagnostics"
    FOLDER_NODE = "expand-folder-node"
    SESSION_PARENT = "expand-session-parent"
    SIDEBAR_ACCORDION = "expand-sidebar-accordion"


class ExpansionRequest(BaseModel):
    """Scoped request carried on the reveal channel."""

    model_config = ConfigDict(frozen=True)

    instance_id: str
    action: ExpansionAction
    session_id: str | None = None
    message_id: str | None = None
    part_index: int | None = None
    part_id: str | None = None
    element_id: str | None = None
    section_id: str | None = None

    @property
    def dedup_key(self) -> str:
        identifier = ":".join(
            value
            for value in (self.message_id, self.part_id, self.element_id, self.section_id)
            if value
        )
        if self.part_index is not None and not self.part_id:
            identifier = f"{identifier}:{self.part_index}"
        if self.session_id and not identifier:
            identifier = self.session_id
        return f"{self.action}:{self.instance_id}:{identifier}"


RevealListener = Callable[[ExpansionRequest], None]


class RevealChannel:
    """Dispatches expansion requests, each distinct request at most once.

    A request is re-issued only after :meth:`clear` (done when a new search
    is opened).
    """

    def __init__(self) -> None:
        self._listeners: list[RevealListener] = []
        self._issued: set[str] = set()

    def subscribe(self, listener: RevealListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, request: ExpansionRequest) -> bool:
        """Dispatch ``request``; return False if it was already issued."""
        key = request.dedup_key
        if key in self._issued:
            return False
        self._issued.add(key)
        for listener in list(self._listeners):
            try:
                listener(request)
            except Exception:
                logger.exception("Reveal listener failed for %s", key)
        return True

    def clear(self) -> None:
        self._issued.clear()

    def was_issued(self, request: ExpansionRequest) -> bool:
        return request.dedup_key in self._issued

    # ── Request helpers ──

    def request_reasoning(self, instance_id: str, message_id: str, part_index: int) -> bool:
        return self.emit(
            ExpansionRequest(
                instance_id=instance_id,
                action=ExpansionAction.REASONING,
                message_id=message_id,
                part_index=part_index,
            )
        )

    def request_tool_call(self, instance_id: str, message_id: str, part_id: str) -> bool:
        return self.emit(
            ExpansionRequest(
                instance_id=instance_id,
                action=ExpansionAction.TOOL_CALL,
                message_id=message_id,
                part_id=part_id,
            )
        )

    def request_diagnostics(self, instance_id: str, message_id: str, part_id: str) -> bool:
        return self.emit(
            ExpansionRequest(
                instance_id=instance_id,
                action=ExpansionAction.DIAGNOSTICS,
                message_id=message_id,
                part_id=part_id,
            )
        )

    def request_folder_node(self, instance_id: str, element_id: str) -> bool:
        return self.emit(
            ExpansionRequest(
                instance_id=instance_id,
                action=ExpansionAction.FOLDER_NODE,
                element_id=element_id,
            )
        )

    def request_session_parent(self, instance_id: str, session_id: str) -> bool:
        return self.emit(
            ExpansionRequest(
                instance_id=instance_id,
                action=ExpansionAction.SESSION_PARENT,
                session_id=session_id,
            )
        )

    def request_sidebar_accordion(self, instance_id: str, section_id: str) -> bool:
        return self.emit(
            ExpansionRequest(
                instance_id=instance_id,
                action=ExpansionAction.SIDEBAR_ACCORDION,
                section_id=section_id,
            )
        )
