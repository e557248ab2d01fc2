"""Rendered transcript document: the content tree the search paints into."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable
from dataclasses import dataclass
from html import escape

from cfind.data.protocols import TranscriptReader
from cfind.models.search import SearchOptions
from cfind.models.transcript import ContentUnit, ReasoningPart, TextPart, ToolPart
from cfind.render.markup import (
    add_class,
    has_class,
    render_markdown_tree,
    to_html,
)
from cfind.render.painter import HighlightPainter, PlainTextPainter, RichContentPainter
from cfind.render.reveal import ExpansionAction, ExpansionRequest, RevealChannel
from cfind.search.extractor import extract_searchable_text
from cfind.ui.theme import build_document_stylesheet

logger = logging.getLogger(__name__)

ANCHOR_PREFIX = "message-anchor-"

_EXTRACT_ALL = SearchOptions(include_tool_outputs=True, include_reasoning=True)


@dataclass
class PartView:
    """One rendered part: its wrapper, the element painted into, its painter."""

    message_id: str
    part_index: int
    part_id: str
    kind: str
    wrapper: ET.Element
    body: ET.Element
    painter: HighlightPainter

    @property
    def key(self) -> tuple[str, int]:
        return (self.message_id, self.part_index)


class TranscriptDocument:
    """Builds a session's transcript into an ElementTree and keeps it current.

    User text and collapsible reasoning/tool bodies are plain-text
    representations; assistant text is Markdown rendered into rich content.
    Collapsible regions expand in response to reveal requests for this
    instance.
    """

    def __init__(
        self,
        transcript: TranscriptReader,
        session_id: str,
        *,
        instance_id: str = "",
        reveal: RevealChannel | None = None,
    ) -> None:
        self._transcript = transcript
        self.session_id = session_id
        self.instance_id = instance_id
        self.root = ET.Element("div", {"class": "message-stream"})
        self._views: dict[tuple[str, int], PartView] = {}
        self._anchors: dict[str, ET.Element] = {}
        self._rebuilt_listeners: list[Callable[[], None]] = []
        self._unsubscribe_reveal: Callable[[], None] | None = None
        if reveal is not None:
            self._unsubscribe_reveal = reveal.subscribe(self.handle_reveal)

    # ── Building ──

    def rebuild(self) -> None:
        """Re-render the whole session from the live transcript."""
        root = ET.Element("div", {"class": "message-stream"})
        views: dict[tuple[str, int], PartView] = {}
        anchors: dict[str, ET.Element] = {}
        for message_id in self._transcript.session_message_ids(self.session_id) or []:
            record = self._transcript.message(message_id)
            if record is None:
                continue
            anchor = ET.SubElement(
                root,
                "div",
                {
                    "id": f"{ANCHOR_PREFIX}{message_id}",
                    "class": f"message {record.role}".strip(),
                    "data-message-id": message_id,
                },
            )
            header = ET.SubElement(anchor, "div", {"class": "msg-header"})
            badge_class = f"role-badge {record.role}".strip()
            badge = ET.SubElement(header, "span", {"class": badge_class})
            badge.text = _role_label(record.role)
            anchors[message_id] = anchor

            for part_index, (part_id, part) in enumerate(record.ordered_parts()):
                view = self._render_part(
                    anchor, message_id, part_index, part_id, part, record.role
                )
                if view is not None:
                    views[view.key] = view

        self.root = root
        self._views = views
        self._anchors = anchors
        logger.debug("Rendered session %s: %d parts", self.session_id, len(views))
        for listener in list(self._rebuilt_listeners):
            try:
                listener()
            except Exception:
                logger.exception("Document rebuild listener failed")

    def _render_part(
        self,
        anchor: ET.Element,
        message_id: str,
        part_index: int,
        part_id: str,
        part: ContentUnit | None,
        role: str,
    ) -> PartView | None:
        attrib = {"data-part-index": str(part_index), "data-part-id": part_id}
        match part:
            case TextPart() if role == "user":
                wrapper = ET.SubElement(anchor, "div", {"class": "part part-text", **attrib})
                body = _plain_body(wrapper, "div", part.text)
                painter: HighlightPainter = PlainTextPainter(message_id, part_index, part.text)
            case TextPart():
                wrapper = ET.SubElement(anchor, "div", {"class": "part part-text", **attrib})
                body = render_markdown_tree(part.text, {"class": "markdown-body"})
                wrapper.append(body)
                painter = RichContentPainter(message_id, part_index)
            case ReasoningPart():
                wrapper = _collapsible(anchor, "message-reasoning-card", "Thinking", attrib)
                content = ET.SubElement(
                    wrapper, "div", {"class": "collapsible-body message-reasoning-expanded"}
                )
                text = extract_searchable_text(part, _EXTRACT_ALL)
                body = _plain_body(content, "div", text)
                painter = PlainTextPainter(message_id, part_index, text)
            case ToolPart():
                wrapper = _collapsible(
                    anchor,
                    "tool-call",
                    part.tool or "tool",
                    {**attrib, "data-key": f"{message_id}:{part_id}"},
                )
                details = ET.SubElement(
                    wrapper, "div", {"class": "collapsible-body tool-call-details"}
                )
                text = extract_searchable_text(part, _EXTRACT_ALL)
                body = _plain_body(details, "pre", text)
                painter = PlainTextPainter(message_id, part_index, text)
                diagnostics = part.state.metadata.get("diagnostics")
                if isinstance(diagnostics, str) and diagnostics:
                    section = _collapsible(details, "tool-diagnostics-section", "Diagnostics", {})
                    _plain_body(section, "pre", diagnostics)
            case _:
                return None

        return PartView(
            message_id=message_id,
            part_index=part_index,
            part_id=part_id,
            kind=part.kind,
            wrapper=wrapper,
            body=body,
            painter=painter,
        )

    # ── Access ──

    @property
    def is_populated(self) -> bool:
        return bool(self._anchors)

    def views(self) -> list[PartView]:
        return list(self._views.values())

    def part_view(self, message_id: str, part_index: int) -> PartView | None:
        return self._views.get((message_id, part_index))

    def anchor(self, message_id: str) -> ET.Element | None:
        return self._anchors.get(message_id)

    def on_rebuilt(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._rebuilt_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._rebuilt_listeners:
                self._rebuilt_listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        if self._unsubscribe_reveal is not None:
            self._unsubscribe_reveal()
            self._unsubscribe_reveal = None

    # ── Reveal ──

    def handle_reveal(self, request: ExpansionRequest) -> None:
        """Expand the collapsible region a reveal request names."""
        if request.instance_id != self.instance_id:
            return
        match request.action:
            case ExpansionAction.REASONING:
                if request.message_id is None or request.part_index is None:
                    return
                view = self.part_view(request.message_id, request.part_index)
                if view is not None and view.kind == "reasoning":
                    expand(view.wrapper)
            case ExpansionAction.TOOL_CALL:
                tool_call = self._tool_call(request)
                if tool_call is not None:
                    expand(tool_call)
            case ExpansionAction.DIAGNOSTICS:
                tool_call = self._tool_call(request)
                if tool_call is None:
                    return
                expand(tool_call)
                for element in tool_call.iter("div"):
                    if has_class(element, "tool-diagnostics-section"):
                        expand(element)
            case _:
                logger.debug("Transcript document ignores %s", request.action)

    def _tool_call(self, request: ExpansionRequest) -> ET.Element | None:
        key = f"{request.message_id}:{request.part_id}"
        for element in self.root.iter("div"):
            if has_class(element, "tool-call") and element.get("data-key") == key:
                return element
        return None

    # ── Output ──

    def to_html(self, title: str = "") -> str:
        """Serialize the document as a standalone HTML page."""
        return (
            "<!DOCTYPE html>\n"
            '<html><head><meta charset="utf-8">'
            f"<title>{escape(title or self.session_id)}</title>"
            f"<style>{build_document_stylesheet()}</style>"
            f"</head><body>{to_html(self.root)}</body></html>"
        )


def expand(element: ET.Element) -> None:
    element.set("aria-expanded", "true")
    add_class(element, "expanded")


def _collapsible(
    parent: ET.Element, kind: str, label: str, attrib: dict[str, str]
) -> ET.Element:
    wrapper = ET.SubElement(
        parent, "div", {"class": f"collapsible {kind}", "aria-expanded": "false", **attrib}
    )
    header = ET.SubElement(wrapper, "div", {"class": "collapsible-header"})
    ET.SubElement(header, "span", {"class": "chevron"}).text = "▶"
    ET.SubElement(header, "b").text = label
    return wrapper


def _plain_body(parent: ET.Element, tag: str, text: str) -> ET.Element:
    body = ET.SubElement(parent, tag, {"class": "plain-text"})
    body.text = text or None
    return body


def _role_label(role: str) -> str:
    match role:
        case "user":
            return "You"
        case "assistant":
            return "Assistant"
        case _:
            return role.capitalize() or "System"
