from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

"""Async task queue with a concurrency cap and completion pacing.

RateLimiter admits queued operations FIFO. At most ``max_concurrent`` run at
once, and after an operation settles its slot sleeps ``delay_ms`` before the
next queued operation is admitted on it. That paces outbound requests to an
upstream rate limit instead of only capping parallelism.

Operations are zero-argument coroutine functions. The future returned by
``submit`` settles with exactly the operation's own result or exception.

``clear()`` drops every queued (not yet started) operation and rejects its
future with ``RateLimiterCleared``. Running operations are never interrupted.
"""

__all__ = [
    "RateLimiter",
    "RateLimiterCleared",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RateLimiterCleared(Exception):
    """Raised into a queued operation's future when the queue is cleared."""


@dataclass
class _QueueItem:
    operation: Callable[[], Awaitable[Any]]
    future: asyncio.Future[Any]


class RateLimiter:
    """FIFO operation queue enforcing a concurrency cap and pacing delay.

    One instance is meant to be shared by every caller of the same upstream so
    that they share one throttle budget.
    """

    def __init__(self, max_concurrent: int = 2, delay_ms: int = 500) -> None:
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1: {max_concurrent}")
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0: {delay_ms}")
        self.max_concurrent = max_concurrent
        self.delay_ms = delay_ms
        self._queue: deque[_QueueItem] = deque()
        self._running = 0
        self._slots: set[asyncio.Task[None]] = set()

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def running_count(self) -> int:
        return self._running

    def submit(self, operation: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """Queue ``operation`` and return a future for its outcome.

        Must be called from a running event loop.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()
        self._queue.append(_QueueItem(operation, future))
        self._admit()
        return future

    def clear(self) -> int:
        """Discard queued operations, rejecting their futures.

        Returns:
            Number of operations discarded
        """
        dropped = 0
        while self._queue:
            item = self._queue.popleft()
            if not item.future.done():
                item.future.set_exception(RateLimiterCleared("operation discarded before start"))
            dropped += 1
        if dropped:
            logger.debug(f"rate limiter cleared: dropped={dropped} running={self._running}")
        return dropped

    async def join(self) -> None:
        """Wait until every slot is idle, pacing delays included."""
        while self._slots:
            await asyncio.gather(*list(self._slots), return_exceptions=True)

    def _admit(self) -> None:
        while self._running < self.max_concurrent and self._queue:
            item = self._queue.popleft()
            if item.future.done():
                # caller gave up (cancelled) while queued
                continue
            self._running += 1
            task = asyncio.ensure_future(self._run_slot(item))
            self._slots.add(task)
            task.add_done_callback(self._slots.discard)

    async def _run_slot(self, item: _QueueItem) -> None:
        try:
            try:
                result = await item.operation()
            except asyncio.CancelledError:
                if not item.future.done():
                    item.future.cancel()
                raise
            except Exception as e:
                if not item.future.done():
                    item.future.set_exception(e)
            else:
                if not item.future.done():
                    item.future.set_result(result)
            await asyncio.sleep(self.delay_ms / 1000)
        finally:
            self._running -= 1
            # queued operations must still get a slot when this one is cancelled
            self._admit()
