"""Tests for the Qt search bar and timer scheduler."""

from __future__ import annotations

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PySide6.QtWidgets")

from PySide6.QtCore import QCoreApplication, QEvent, Qt  # noqa: E402
from PySide6.QtGui import QKeyEvent  # noqa: E402

from cfind.search.engine import SearchEngine  # noqa: E402
from cfind.search.matcher import INVALID_QUERY_MESSAGE  # noqa: E402
from cfind.ui.qt_scheduler import QtScheduler  # noqa: E402
from cfind.ui.search_bar import SearchBar  # noqa: E402
from cfind.ui.theme import build_document_stylesheet, build_search_bar_stylesheet  # noqa: E402
from conftest import INSTANCE_ID, ManualScheduler  # noqa: E402


@pytest.fixture(scope="module")
def qapp():
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
    yield app


@pytest.fixture
def bar(qapp, engine: SearchEngine):
    widget = SearchBar(engine)
    widget.open_search(INSTANCE_ID, "s1")
    yield widget
    widget.dispose()
    widget.deleteLater()


def _press(bar: SearchBar, key: Qt.Key, modifiers=Qt.KeyboardModifier.NoModifier) -> None:
    event = QKeyEvent(QEvent.Type.KeyPress, key, modifiers)
    QCoreApplication.sendEvent(bar.query_input, event)


def test_typing_updates_query_and_counter(
    bar: SearchBar, engine: SearchEngine, scheduler: ManualScheduler
) -> None:
    assert engine.is_open
    bar.query_input.setText("foo")
    assert engine.query == "foo"
    assert bar.counter_text == "0/0"
    scheduler.advance(0.5)
    assert bar.counter_text == "1/4"


def test_keys_drive_navigation(bar: SearchBar, engine: SearchEngine) -> None:
    bar.query_input.setText("foo")
    _press(bar, Qt.Key.Key_Return)
    assert bar.counter_text == "1/4"
    _press(bar, Qt.Key.Key_Return)
    assert engine.current_index == 1
    _press(bar, Qt.Key.Key_Return, Qt.KeyboardModifier.ShiftModifier)
    assert engine.current_index == 0
    _press(bar, Qt.Key.Key_Up)
    assert bar.counter_text == "4/4"
    _press(bar, Qt.Key.Key_Down)
    assert engine.current_index == 0


def test_escape_closes(bar: SearchBar, engine: SearchEngine) -> None:
    closed = []
    bar.closed.connect(lambda: closed.append(True))
    bar.query_input.setText("foo")
    _press(bar, Qt.Key.Key_Escape)
    assert not engine.is_open
    assert bar.query_input.text() == ""
    assert closed == [True]


def test_error_label_and_options(bar: SearchBar, engine: SearchEngine) -> None:
    bar.query_input.setText("foo#")
    _press(bar, Qt.Key.Key_Return)
    assert bar.error_text == INVALID_QUERY_MESSAGE

    bar.query_input.setText("foo")
    assert bar.error_text == ""
    bar._option_boxes["include_tool_outputs"].setChecked(True)
    assert engine.options.include_tool_outputs
    assert engine.match_count == 5

    engine.update_options(include_tool_outputs=False)
    assert not bar._option_boxes["include_tool_outputs"].isChecked()


def test_qt_scheduler_cancel(qapp) -> None:
    fired = []
    scheduler = QtScheduler()
    task = scheduler.schedule(0.0, lambda: fired.append(1))
    assert task.active
    task.cancel()
    QCoreApplication.processEvents()
    assert fired == []


def test_stylesheets_reference_theme() -> None:
    assert "QFrame#searchBar" in build_search_bar_stylesheet()
    assert "mark.search-match" in build_document_stylesheet()
