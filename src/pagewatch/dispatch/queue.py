"""Handoff queue: one long-lived consumer task fed by non-blocking submits.

The scrape loop must never wait on a slow notifier or dump store. ``submit``
therefore never blocks:

* With room in the queue and no producer already waiting, the item is put
  directly.
* Otherwise a short-lived producer task is spawned to wait for room. Producer
  tasks queue up on ``asyncio.Queue.put`` in creation order, so items from one
  caller keep their submission order.
* When ``max_producers`` producers are already waiting, the item is dropped
  and counted in ``dropped``.

The consumer awaits ``handler(item)`` for each item. Handler failures are
logged and counted; they never stop the consumer.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HandoffQueue(Generic[T]):
    """Bounded producer/consumer handoff for a single downstream handler.

    Args:
        name: Label used in logs and task names.
        handler: Coroutine function performing the (possibly slow) delivery.
        maxsize: Queue capacity before submits spill into producer tasks.
        max_producers: Upper bound on concurrently waiting producer tasks.
    """

    def __init__(
        self,
        name: str,
        handler: Callable[[T], Awaitable[None]],
        *,
        maxsize: int = 100,
        max_producers: int = 32,
    ) -> None:
        self.name = name
        self._handler = handler
        self._queue: asyncio.Queue[T] = asyncio.Queue(maxsize=maxsize)
        self._max_producers = max(1, max_producers)
        self._producers: set[asyncio.Task[None]] = set()
        self._consumer: asyncio.Task[None] | None = None
        self._closed = False

        self.submitted = 0
        self.delivered = 0
        self.failed = 0
        self.dropped = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    @property
    def pending(self) -> int:
        """Items queued or held by waiting producers."""
        return self._queue.qsize() + len(self._producers)

    @property
    def waiting_producers(self) -> int:
        return len(self._producers)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the consumer task. Must be called from a running event loop."""
        if self.running:
            return
        self._closed = False
        self._consumer = asyncio.create_task(self._consume(), name=f"{self.name}-consumer")
        logger.debug("Handoff queue [%s] started", self.name)

    async def join(self) -> None:
        """Wait until every submitted item has been handled."""
        while self._producers:
            await asyncio.gather(*list(self._producers), return_exceptions=True)
        await self._queue.join()

    async def close(self, timeout: float = 10.0) -> None:
        """Stop accepting items, drain for up to *timeout* seconds, stop the consumer."""
        self._closed = True
        try:
            await asyncio.wait_for(self.join(), timeout)
        except TimeoutError:
            logger.warning(
                "Handoff queue [%s] did not drain within %.1fs, abandoning %d item(s)",
                self.name,
                timeout,
                self.pending,
            )
            for task in list(self._producers):
                task.cancel()

        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None
        logger.debug(
            "Handoff queue [%s] closed (delivered=%d failed=%d dropped=%d)",
            self.name,
            self.delivered,
            self.failed,
            self.dropped,
        )

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def submit(self, item: T) -> bool:
        """Hand *item* off without blocking.

        Returns:
            ``True`` if the item was queued or handed to a producer task,
            ``False`` if it was dropped.
        """
        if self._closed:
            self.dropped += 1
            logger.warning("Handoff queue [%s] is closed, dropping item", self.name)
            return False

        self.submitted += 1
        if not self._producers:
            try:
                self._queue.put_nowait(item)
                return True
            except asyncio.QueueFull:
                pass

        if len(self._producers) >= self._max_producers:
            self.dropped += 1
            logger.warning(
                "Handoff queue [%s] saturated (%d waiting producers), dropping item",
                self.name,
                len(self._producers),
            )
            return False

        task = asyncio.create_task(self._queue.put(item), name=f"{self.name}-producer")
        self._producers.add(task)
        task.add_done_callback(self._producers.discard)
        return True

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    async def _consume(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                await self._handler(item)
                self.delivered += 1
            except Exception:
                self.failed += 1
                logger.exception("Handoff queue [%s] handler failed", self.name)
            finally:
                self._queue.task_done()
