"""Keyed one-shot timers on the asyncio event loop.

All gateway state is mutated from request handlers and timer callbacks that
run on the same event loop, so callbacks never run concurrently with each
other. Scheduling a key that is already pending replaces the pending entry.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger()

TimerCallback = Callable[[], Any]


class Scheduler(ABC):
    """Abstract timer scheduler.

    Callbacks may be plain functions or coroutine functions; awaitable
    results are run as tasks on the loop.
    """

    @abstractmethod
    def time(self) -> float:
        """Monotonic clock in seconds."""
        ...

    @abstractmethod
    def schedule_once(self, key: str, delay: float, callback: TimerCallback) -> None:
        """Run ``callback`` after ``delay`` seconds, replacing any pending ``key``."""
        ...

    @abstractmethod
    def cancel(self, key: str) -> bool:
        """Cancel a pending timer. Returns True if one was pending."""
        ...

    @abstractmethod
    def is_scheduled(self, key: str) -> bool:
        """Whether a timer is pending for ``key``."""
        ...

    def remaining(self, key: str) -> float | None:
        """Seconds until ``key`` fires, or None if not pending."""
        return None


class AsyncioScheduler(Scheduler):
    """Scheduler backed by ``loop.call_later``.

    Must be used from inside the running event loop.
    """

    def __init__(self) -> None:
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()
        self._log = logger.bind(component="scheduler")

    def time(self) -> float:
        return time.monotonic()

    def schedule_once(self, key: str, delay: float, callback: TimerCallback) -> None:
        loop = asyncio.get_running_loop()
        self.cancel(key)
        self._handles[key] = loop.call_later(max(0.0, delay), self._fire, key, callback)

    def cancel(self, key: str) -> bool:
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def is_scheduled(self, key: str) -> bool:
        return key in self._handles

    def remaining(self, key: str) -> float | None:
        handle = self._handles.get(key)
        if handle is None:
            return None
        return max(0.0, handle.when() - asyncio.get_running_loop().time())

    def cancel_all(self) -> None:
        """Cancel every pending timer (used at shutdown)."""
        for key in list(self._handles):
            self.cancel(key)

    def _fire(self, key: str, callback: TimerCallback) -> None:
        self._handles.pop(key, None)
        try:
            result = callback()
        except Exception as e:
            self._log.exception("scheduler.callback_failed", key=key, error=str(e))
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(lambda t, k=key: self._task_done(k, t))

    def _task_done(self, key: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._log.error("scheduler.task_failed", key=key, error=str(exc))
