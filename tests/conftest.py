"""Shared fixtures for cfind tests."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Callable
from pathlib import Path

import pytest

from cfind.data.transcript import LiveTranscript, load_transcript
from cfind.render.document import TranscriptDocument
from cfind.render.highlighter import HighlightRenderer
from cfind.render.reveal import RevealChannel
from cfind.search.engine import SearchEngine
from cfind.search.viewport import AnchorBox

SAMPLE_TRANSCRIPT_PATH = Path(__file__).parent / "data" / "sample_transcript.jsonl"
INSTANCE_ID = "pane-1"


class ManualTask:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by a virtual clock; nothing fires until :meth:`advance`."""

    def __init__(self) -> None:
        self.now = 0.0
        self._tasks: list[ManualTask] = []

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> ManualTask:
        task = ManualTask(self.now + delay_s, callback)
        self._tasks.append(task)
        return task

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self._tasks if not t.cancelled and t.due <= target]
            if not due:
                break
            task = min(due, key=lambda t: t.due)
            self._tasks.remove(task)
            self.now = task.due
            task.callback()
        self.now = target


class FakeViewport:
    def __init__(
        self, scroll_top: float, client_height: float, anchors: list[AnchorBox]
    ) -> None:
        self.scroll_top = scroll_top
        self.client_height = client_height
        self._anchors = anchors

    def anchors(self) -> list[AnchorBox]:
        return list(self._anchors)


class FakeScrollTarget:
    def __init__(self) -> None:
        self.calls: list[tuple[ET.Element, str]] = []

    def scroll_into_view(self, element: ET.Element, *, block: str = "center") -> None:
        self.calls.append((element, block))


class FakeSettler:
    def __init__(self) -> None:
        self.waits = 0
        self.retry_waits: list[float] = []

    async def wait_settled(self) -> None:
        self.waits += 1

    async def wait_retry(self, delay_s: float) -> None:
        self.retry_waits.append(delay_s)


@pytest.fixture
def sample_transcript_path() -> Path:
    """Path to the sample JSONL transcript (sessions s1 and s2)."""
    return SAMPLE_TRANSCRIPT_PATH


@pytest.fixture
def transcript() -> LiveTranscript:
    return load_transcript(SAMPLE_TRANSCRIPT_PATH)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def engine(transcript: LiveTranscript, scheduler: ManualScheduler) -> SearchEngine:
    return SearchEngine(transcript, scheduler=scheduler)


@pytest.fixture
def reveal() -> RevealChannel:
    return RevealChannel()


@pytest.fixture
def document(transcript: LiveTranscript, reveal: RevealChannel) -> TranscriptDocument:
    """Unbuilt document for session s1; call ``rebuild()`` to populate it."""
    return TranscriptDocument(transcript, "s1", instance_id=INSTANCE_ID, reveal=reveal)


@pytest.fixture
def renderer(
    engine: SearchEngine, document: TranscriptDocument, scheduler: ManualScheduler
) -> HighlightRenderer:
    renderer = HighlightRenderer(engine, document, scheduler=scheduler)
    renderer.attach()
    document.rebuild()
    return renderer


def all_markers(root: ET.Element) -> list[ET.Element]:
    return [el for el in root.iter("mark") if el.get("data-search-match") == "true"]


def current_markers(root: ET.Element) -> list[ET.Element]:
    return [el for el in all_markers(root) if "search-match--current" in el.get("class", "")]
