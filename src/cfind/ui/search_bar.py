"""Search bar: query input, match counter, navigation and option toggles."""

from __future__ import annotations

from collections.abc import Callable

from PySide6.QtCore import QEvent, QObject, Qt, Signal
from PySide6.QtGui import QKeyEvent, QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QCheckBox,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from cfind.models.search import SearchState
from cfind.search.engine import SearchEngine
from cfind.ui.theme import build_search_bar_stylesheet

_OPTIONS = [
    ("case_sensitive", "Aa", "Match case"),
    ("whole_word", "W", "Whole word"),
    ("include_tool_outputs", "Tools", "Search tool outputs"),
    ("include_reasoning", "Thinking", "Search reasoning"),
]


class SearchBar(QFrame):
    """Floating find bar bound to a :class:`SearchEngine`."""

    closed = Signal()

    def __init__(self, engine: SearchEngine, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._engine = engine
        self.setObjectName("searchBar")
        self.setStyleSheet(build_search_bar_stylesheet())

        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 6, 8, 6)
        layout.setSpacing(4)

        row = QHBoxLayout()
        row.setSpacing(6)

        self._input = QLineEdit()
        self._input.setPlaceholderText("Find in session...")
        self._input.setClearButtonEnabled(True)
        self._input.textChanged.connect(self._engine.set_query_input)
        self._input.installEventFilter(self)
        row.addWidget(self._input, stretch=1)

        self._counter = QLabel("0/0")
        self._counter.setObjectName("searchCounter")
        self._counter.setAlignment(Qt.AlignmentFlag.AlignCenter)
        row.addWidget(self._counter)

        self._prev_btn = self._tool_button("↑", "Previous match (Shift+Enter)")
        self._prev_btn.clicked.connect(self._engine.navigate_previous)
        row.addWidget(self._prev_btn)

        self._next_btn = self._tool_button("↓", "Next match (Enter)")
        self._next_btn.clicked.connect(self._engine.navigate_next)
        row.addWidget(self._next_btn)

        self._close_btn = self._tool_button("✕", "Close (Esc)")
        self._close_btn.clicked.connect(self.close_search)
        row.addWidget(self._close_btn)

        layout.addLayout(row)

        options_row = QHBoxLayout()
        options_row.setSpacing(8)
        self._option_boxes: dict[str, QCheckBox] = {}
        for name, label, tooltip in _OPTIONS:
            box = QCheckBox(label)
            box.setToolTip(tooltip)
            box.toggled.connect(lambda checked, n=name: self._engine.update_options(**{n: checked}))
            options_row.addWidget(box)
            self._option_boxes[name] = box
        options_row.addStretch()
        layout.addLayout(options_row)

        self._error = QLabel("")
        self._error.setObjectName("searchError")
        self._error.setWordWrap(True)
        self._error.hide()
        layout.addWidget(self._error)

        QShortcut(QKeySequence("Ctrl+G"), self, self._engine.navigate_next)
        QShortcut(QKeySequence("Ctrl+Shift+G"), self, self._engine.navigate_previous)

        self._unsubscribe: Callable[[], None] | None = self._engine.subscribe(self._sync)
        self._sync(self._engine.state)

    # ── Public ──

    @property
    def query_input(self) -> QLineEdit:
        return self._input

    @property
    def counter_text(self) -> str:
        return self._counter.text()

    @property
    def error_text(self) -> str:
        return self._error.text()

    def open_search(self, instance_id: str | None = None, session_id: str | None = None) -> None:
        self._engine.open(instance_id, session_id)
        self.show()
        self._input.setFocus()
        self._input.selectAll()

    def close_search(self) -> None:
        self._engine.close()
        self.hide()
        self.closed.emit()

    def dispose(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ── Events ──

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:
        if (
            watched is self._input
            and event.type() == QEvent.Type.KeyPress
            and isinstance(event, QKeyEvent)
        ):
            return self._handle_key(event)
        return super().eventFilter(watched, event)

    def _handle_key(self, event: QKeyEvent) -> bool:
        shift = bool(event.modifiers() & Qt.KeyboardModifier.ShiftModifier)
        match event.key():
            case Qt.Key.Key_Return | Qt.Key.Key_Enter:
                self._engine.handle_enter(shift=shift)
            case Qt.Key.Key_Escape:
                self.close_search()
            case Qt.Key.Key_Down:
                self._engine.navigate_next()
            case Qt.Key.Key_Up:
                self._engine.navigate_previous()
            case _:
                return False
        return True

    def _sync(self, state: SearchState) -> None:
        if self._input.text() != state.query:
            self._input.blockSignals(True)
            self._input.setText(state.query)
            self._input.blockSignals(False)

        self._counter.setText(self._engine.counter_label())
        has_matches = bool(state.matches)
        self._prev_btn.setEnabled(has_matches)
        self._next_btn.setEnabled(has_matches)

        options = state.options.model_dump()
        for name, box in self._option_boxes.items():
            if box.isChecked() != options[name]:
                box.blockSignals(True)
                box.setChecked(options[name])
                box.blockSignals(False)

        self._error.setText(state.error)
        self._error.setVisible(bool(state.error))

    @staticmethod
    def _tool_button(text: str, tooltip: str) -> QToolButton:
        btn = QToolButton()
        btn.setText(text)
        btn.setToolTip(tooltip)
        btn.setAutoRaise(True)
        return btn
