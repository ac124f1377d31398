"""
FIFO admission gate bounding how many async tasks run at once.
"""

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskSemaphore:
    """
    Concurrency gate that runs tasks in the order ``acquire`` was called.

    When a running task finishes, its slot is handed directly to the oldest
    waiter, so a late caller can never overtake a queued one.
    """

    def __init__(self, max_concurrent: int):
        """
        Initialize semaphore.

        Args:
            max_concurrent: Number of tasks allowed past the gate at once
        """
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")

        self.max_concurrent = max_concurrent
        self._current_count = 0
        self._peak_count = 0
        self._waiters: Deque[asyncio.Future[None]] = deque()

    @property
    def current_count(self) -> int:
        """Number of tasks currently holding a slot."""
        return self._current_count

    @property
    def queued_count(self) -> int:
        """Number of callers waiting for a slot."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    @property
    def peak_count(self) -> int:
        """Highest number of simultaneously running tasks observed."""
        return self._peak_count

    async def acquire(self, task: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``task`` once a slot is free and return its result.

        The slot is released whether the task returns or raises.

        Args:
            task: Zero-argument coroutine function to run

        Returns:
            Whatever ``task`` returns
        """
        if self._current_count < self.max_concurrent and not self._waiters:
            self._current_count += 1
        else:
            await self._wait_for_slot()

        self._peak_count = max(self._peak_count, self._current_count)

        try:
            return await task()
        finally:
            self._release()

    async def _wait_for_slot(self) -> None:
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        logger.debug(
            f"Task queued ({self._current_count}/{self.max_concurrent} running, "
            f"{len(self._waiters)} waiting)"
        )

        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.cancelled():
                # Never received a slot; drop out of the queue.
                if waiter in self._waiters:
                    self._waiters.remove(waiter)
            else:
                # Slot was handed over just before cancellation; pass it on.
                self._release()
            raise

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Hand the slot over; the running count stays the same.
                waiter.set_result(None)
                return

        self._current_count -= 1
