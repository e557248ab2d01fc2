"""Scheduler backed by single-shot Qt timers."""

from __future__ import annotations

import logging
from collections.abc import Callable

from PySide6.QtCore import QObject, QTimer

logger = logging.getLogger(__name__)


class QtTimerTask:
    """Handle for one pending timer; cancelling stops it."""

    def __init__(self, timer: QTimer) -> None:
        self._timer = timer

    @property
    def active(self) -> bool:
        return self._timer.isActive()

    def cancel(self) -> None:
        self._timer.stop()
        self._timer.deleteLater()


class QtScheduler:
    """Runs callbacks on the Qt event loop after a delay."""

    def __init__(self, parent: QObject | None = None) -> None:
        self._parent = parent

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> QtTimerTask:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)

        def fire() -> None:
            timer.deleteLater()
            try:
                callback()
            except Exception:
                logger.exception("Scheduled callback failed")

        timer.timeout.connect(fire)
        timer.start(max(0, round(delay_s * 1000)))
        return QtTimerTask(timer)
