"""Execution contexts onto which listener notifications are posted.

Embedded browsers deliver navigation callbacks on their own internal thread,
which is rarely the thread the owning flow wants to be called back on. The
monitor therefore never calls its listener directly; it hands a zero-argument
callback to an :class:`ExecutionContext` and returns immediately.

Three contexts are provided:

- :class:`ImmediateContext` -- runs the callback inline. Useful in tests and
  single-threaded tools such as :mod:`oauthview.replay`.
- :class:`ThreadContext` -- a dedicated single worker thread, so callbacks
  run in the order they were posted.
- :class:`AsyncioContext` -- schedules the callback on an event loop, safe to
  call from any thread.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ExecutionContext(ABC):
    """Somewhere a callback can be posted to run later."""

    @abstractmethod
    def post(self, callback: Callable[[], None]) -> None:
        """Enqueue *callback*. Fire-and-forget: nothing is returned or awaited."""
        ...


class ImmediateContext(ExecutionContext):
    """Runs posted callbacks synchronously on the calling thread."""

    def post(self, callback: Callable[[], None]) -> None:
        callback()


class ThreadContext(ExecutionContext):
    """Runs posted callbacks on one dedicated worker thread.

    Exceptions raised by a callback are logged and otherwise discarded, so a
    faulty listener cannot take the worker down.

    Example::

        with ThreadContext() as context:
            monitor = NavigationMonitor(context, listener, ...)
            ...
        # shutdown() waited for pending deliveries

    Args:
        thread_name_prefix: Name prefix for the worker thread.
    """

    def __init__(self, thread_name_prefix: str = "oauthview-delivery") -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=thread_name_prefix
        )

    def post(self, callback: Callable[[], None]) -> None:
        future = self._executor.submit(callback)
        future.add_done_callback(_log_failure)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting callbacks, optionally waiting for queued ones."""
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> ThreadContext:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown(wait=True)


class AsyncioContext(ExecutionContext):
    """Schedules posted callbacks on an asyncio event loop.

    Args:
        loop: Target loop. Defaults to the running loop at construction
            time, so construct it from inside a coroutine or pass a loop.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop if loop is not None else asyncio.get_running_loop()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def post(self, callback: Callable[[], None]) -> None:
        self._loop.call_soon_threadsafe(callback)


def _log_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Posted callback raised: %s", exc, exc_info=exc)
