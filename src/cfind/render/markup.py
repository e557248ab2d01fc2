"""Content-tree helpers: HTML fragments as ElementTree, Markdown rendering."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Callable
from html.parser import HTMLParser

import markdown

_MD = markdown.Markdown(extensions=["fenced_code", "tables", "nl2br"])

VOID_ELEMENTS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "wbr"}
)


class _FragmentBuilder(HTMLParser):
    """Tolerant HTML -> ElementTree builder.

    Void elements never take children; stray end tags are ignored and
    unclosed elements are closed implicitly.
    """

    def __init__(self, root: ET.Element) -> None:
        super().__init__(convert_charrefs=True)
        self._stack: list[ET.Element] = [root]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        element = ET.SubElement(
            self._stack[-1], tag, {name: value or "" for name, value in attrs}
        )
        if tag not in VOID_ELEMENTS:
            self._stack.append(element)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        ET.SubElement(self._stack[-1], tag, {name: value or "" for name, value in attrs})

    def handle_endtag(self, tag: str) -> None:
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth].tag == tag:
                del self._stack[depth:]
                return

    def handle_data(self, data: str) -> None:
        append_text(self._stack[-1], data)


def append_text(parent: ET.Element, text: str) -> None:
    """Append text at the end of ``parent``'s content."""
    if not text:
        return
    if len(parent):
        last = parent[-1]
        last.tail = (last.tail or "") + text
    else:
        parent.text = (parent.text or "") + text


def parse_fragment(html: str, tag: str = "div", attrib: dict[str, str] | None = None) -> ET.Element:
    """Parse an HTML fragment into a new ``tag`` element."""
    root = ET.Element(tag, attrib or {})
    builder = _FragmentBuilder(root)
    builder.feed(html)
    builder.close()
    return root


def render_markdown_tree(text: str, attrib: dict[str, str] | None = None) -> ET.Element:
    """Render Markdown and return the result as a ``div`` content tree."""
    _MD.reset()
    return parse_fragment(_MD.convert(text), attrib=attrib)


def to_html(element: ET.Element) -> str:
    return ET.tostring(element, encoding="unicode", method="html")


# ── Class attribute helpers ──


def classes(element: ET.Element) -> list[str]:
    return element.get("class", "").split()


def has_class(element: ET.Element, name: str) -> bool:
    return name in classes(element)


def add_class(element: ET.Element, name: str) -> None:
    current = classes(element)
    if name not in current:
        element.set("class", " ".join([*current, name]))


def remove_class(element: ET.Element, name: str) -> None:
    current = classes(element)
    if name in current:
        element.set("class", " ".join(item for item in current if item != name))


# ── Ancestry ──


def parent_map(root: ET.Element) -> dict[ET.Element, ET.Element]:
    return {child: parent for parent in root.iter() for child in parent}


def closest(
    element: ET.Element,
    parents: dict[ET.Element, ET.Element],
    predicate: Callable[[ET.Element], bool],
) -> ET.Element | None:
    """Return the nearest inclusive ancestor satisfying ``predicate``."""
    node: ET.Element | None = element
    while node is not None:
        if predicate(node):
            return node
        node = parents.get(node)
    return None
