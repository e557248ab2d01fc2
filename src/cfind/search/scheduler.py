"""Cancellable scheduled callbacks on the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScheduledTask(Protocol):
    """Handle for a pending callback."""

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs a callback once after a delay; the returned handle cancels it."""

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> ScheduledTask: ...


class AsyncioScheduler:
    """Scheduler backed by ``loop.call_later``.

    Under the desktop app the running loop is the qasync loop, so timers fire
    on the Qt thread.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay_s, _guarded(callback))

    def spawn(self, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        """Run a coroutine as a tracked task whose failures are logged."""
        task: asyncio.Task[T] = self.loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(_log_exception)
        return task

    def cancel_all(self) -> None:
        """Cancel every tracked task except the one running this call."""
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None  # no running loop
        for task in list(self._tasks):
            if task is not current:
                task.cancel()


def _guarded(callback: Callable[[], None]) -> Callable[[], None]:
    def run() -> None:
        try:
            callback()
        except Exception:
            logger.exception("Unhandled exception in scheduled callback")

    return run


def _log_exception(task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.exception("Unhandled exception in scheduled task", exc_info=exc)
