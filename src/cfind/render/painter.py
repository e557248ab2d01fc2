"""Highlight painting for plain-text segments and rendered rich content.

Every painted marker is a ``<mark>`` carrying its identity as attributes::

    data-search-match="true"
    data-search-message-id="<message id>"
    data-search-part-index="<part index>"
    data-search-occurrence="<ordinal among the part's markers>"
    data-search-start / data-search-end   (plain text only)

Plain-text markers are re-identified exactly by offsets. Rich-content markers
cannot be mapped back to scan offsets, so lookups fall back to the
occurrence index within the same (message, part).
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Iterator

from cfind.models.search import SearchMatch, SearchOptions
from cfind.render.markup import add_class, has_class, remove_class
from cfind.search.matcher import find_matches

ATTR_MATCH = "data-search-match"
ATTR_MESSAGE = "data-search-message-id"
ATTR_PART = "data-search-part-index"
ATTR_START = "data-search-start"
ATTR_END = "data-search-end"
ATTR_OCCURRENCE = "data-search-occurrence"

CLASS_MATCH = "search-match"
CLASS_CURRENT = "search-match--current"

# Rendered regions whose structure must not be split by markers.
SKIPPED_TAGS = frozenset({"code", "pre", "a", "mark", "script", "style"})


def is_marker(element: ET.Element) -> bool:
    return element.tag == "mark" and element.get(ATTR_MATCH) == "true"


def occurrence_index(part_matches: list[SearchMatch], match: SearchMatch) -> int:
    """Ordinal of ``match`` among its part's matches ordered by start offset."""
    ordered = sorted(part_matches, key=lambda item: (item.start_index, item.end_index))
    for index, candidate in enumerate(ordered):
        if candidate.same_position(match):
            return index
    return -1


class HighlightPainter(ABC):
    """Paints, finds and clears markers for one (message, part) scope."""

    def __init__(self, message_id: str, part_index: int) -> None:
        self.message_id = message_id
        self.part_index = part_index

    @abstractmethod
    def paint(
        self,
        container: ET.Element,
        part_matches: list[SearchMatch],
        query: str,
        options: SearchOptions,
    ) -> list[ET.Element]:
        """Clear and repaint every marker of this scope inside ``container``."""

    def markers(self, container: ET.Element) -> Iterator[ET.Element]:
        for element in container.iter("mark"):
            if self._owns(element):
                yield element

    def clear(self, container: ET.Element) -> None:
        """Unwrap every marker of this scope, restoring the plain text."""
        for parent in list(container.iter()):
            for child in list(parent):
                if child.tag == "mark" and self._owns(child):
                    _unwrap(parent, child)

    def find_marker(
        self,
        container: ET.Element,
        match: SearchMatch,
        part_matches: list[SearchMatch],
    ) -> ET.Element | None:
        """Locate the marker for ``match``: exact offsets first, then occurrence."""
        if match.message_id != self.message_id or match.part_index != self.part_index:
            return None
        start, end = str(match.start_index), str(match.end_index)
        markers = list(self.markers(container))
        for marker in markers:
            if marker.get(ATTR_START) == start and marker.get(ATTR_END) == end:
                return marker

        occurrence = occurrence_index(part_matches, match)
        if occurrence >= 0:
            wanted = str(occurrence)
            for marker in markers:
                if marker.get(ATTR_START) is None and marker.get(ATTR_OCCURRENCE) == wanted:
                    return marker

        # An overlapped substring match shares the marker painted over its start.
        for marker in markers:
            marker_start, marker_end = marker.get(ATTR_START), marker.get(ATTR_END)
            if marker_start is None or marker_end is None:
                continue
            if int(marker_start) <= match.start_index < int(marker_end):
                return marker
        return None

    def mark_current(
        self,
        container: ET.Element,
        current: SearchMatch | None,
        part_matches: list[SearchMatch],
    ) -> ET.Element | None:
        """Move the current-marker style to ``current`` (if it lives in this scope)."""
        for marker in self.markers(container):
            if has_class(marker, CLASS_CURRENT):
                remove_class(marker, CLASS_CURRENT)
        if current is None:
            return None
        marker = self.find_marker(container, current, part_matches)
        if marker is not None:
            add_class(marker, CLASS_CURRENT)
        return marker

    def _owns(self, element: ET.Element) -> bool:
        return (
            is_marker(element)
            and element.get(ATTR_MESSAGE) == self.message_id
            and element.get(ATTR_PART) == str(self.part_index)
        )

    def _marker(
        self, text: str, occurrence: int, extra: dict[str, str] | None = None
    ) -> ET.Element:
        attrib = {
            "class": CLASS_MATCH,
            ATTR_MATCH: "true",
            ATTR_MESSAGE: self.message_id,
            ATTR_PART: str(self.part_index),
            ATTR_OCCURRENCE: str(occurrence),
            **(extra or {}),
        }
        element = ET.Element("mark", attrib)
        element.text = text
        return element


class PlainTextPainter(HighlightPainter):
    """Owns a container holding a literal source string.

    The container's content is regenerated from the source on every paint:
    the string is split at match boundaries and each matched slice wrapped
    with its exact offsets.
    """

    def __init__(self, message_id: str, part_index: int, source: str) -> None:
        super().__init__(message_id, part_index)
        self.source = source

    def paint(
        self,
        container: ET.Element,
        part_matches: list[SearchMatch],
        query: str,
        options: SearchOptions,
    ) -> list[ET.Element]:
        for child in list(container):
            container.remove(child)
        container.text = None

        ordered = sorted(part_matches, key=lambda item: (item.start_index, item.end_index))
        painted: list[ET.Element] = []
        last = 0
        previous: ET.Element | None = None
        for occurrence, match in enumerate(ordered):
            # Overlapping substring matches cannot be split apart; the first wins.
            if match.start_index < last:
                continue
            before = self.source[last : match.start_index]
            if previous is None:
                container.text = before or None
            else:
                previous.tail = before or None
            marker = self._marker(
                self.source[match.start_index : match.end_index],
                occurrence,
                {ATTR_START: str(match.start_index), ATTR_END: str(match.end_index)},
            )
            container.append(marker)
            painted.append(marker)
            previous = marker
            last = match.end_index

        rest = self.source[last:]
        if previous is None:
            container.text = rest or None
        else:
            previous.tail = rest or None
        return painted


class RichContentPainter(HighlightPainter):
    """Walks an already-rendered tree and wraps query occurrences in its text.

    Code, preformatted and link regions are left untouched, as are existing
    markers. Markers are numbered in paint (document) order.
    """

    def paint(
        self,
        container: ET.Element,
        part_matches: list[SearchMatch],
        query: str,
        options: SearchOptions,
    ) -> list[ET.Element]:
        self.clear(container)
        if not query or not part_matches:
            return []
        painted: list[ET.Element] = []
        self._walk(container, query, options, painted)
        return painted

    def _walk(
        self,
        element: ET.Element,
        query: str,
        options: SearchOptions,
        painted: list[ET.Element],
    ) -> None:
        children = list(element)
        if element.text:
            head, markers = self._split(element.text, query, options, len(painted))
            element.text = head
            for offset, marker in enumerate(markers):
                element.insert(offset, marker)
            painted.extend(markers)

        for child in children:
            if child.tag not in SKIPPED_TAGS and not is_marker(child):
                self._walk(child, query, options, painted)
            if child.tail:
                head, markers = self._split(child.tail, query, options, len(painted))
                child.tail = head
                position = list(element).index(child) + 1
                for offset, marker in enumerate(markers):
                    element.insert(position + offset, marker)
                painted.extend(markers)

    def _split(
        self, text: str, query: str, options: SearchOptions, first_occurrence: int
    ) -> tuple[str | None, list[ET.Element]]:
        spans = []
        last = 0
        for span in find_matches(text, query, options):
            if span.start_index >= last:
                spans.append(span)
                last = span.end_index
        if not spans:
            return text, []

        markers: list[ET.Element] = []
        head = text[: spans[0].start_index]
        for index, span in enumerate(spans):
            marker = self._marker(span.text, first_occurrence + index)
            following = spans[index + 1].start_index if index + 1 < len(spans) else len(text)
            marker.tail = text[span.end_index : following] or None
            markers.append(marker)
        return head or None, markers


def _unwrap(parent: ET.Element, child: ET.Element) -> None:
    restored = "".join(child.itertext()) + (child.tail or "")
    index = list(parent).index(child)
    parent.remove(child)
    if not restored:
        return
    if index == 0:
        parent.text = (parent.text or "") + restored
    else:
        sibling = parent[index - 1]
        sibling.tail = (sibling.tail or "") + restored
