"""Notification fan-out: one handoff queue and consumer per notifier.

Usage::

    dispatcher = NotificationDispatcher([WebhookNotifier(...)])
    async with dispatcher:
        dispatcher.dispatch(NotificationEvent(url="https://example.com", text="CLOSED"))
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from pagewatch.dispatch.queue import HandoffQueue
from pagewatch.models.events import NotificationEvent

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Protocol for notification transports.

    ``send`` may block on network I/O; it runs on the notifier's own consumer
    task, never on the scrape loop.
    """

    name: str

    async def send(self, event: NotificationEvent) -> None:
        """Deliver a single event."""
        ...


class InMemoryNotifier:
    """Collect events in a list, useful for testing and dry runs."""

    name = "memory"

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    async def send(self, event: NotificationEvent) -> None:
        """Append the event to the in-memory list."""
        self.events.append(event)

    def clear(self) -> None:
        self.events.clear()

    @property
    def count(self) -> int:
        return len(self.events)


class NotificationDispatcher:
    """Fire-and-forget delivery of events to every registered notifier.

    Args:
        notifiers: Transports to deliver to; each gets its own queue.
        queue_size: Capacity of each notifier's queue.
        max_producers: Producer-task bound for each queue.
    """

    def __init__(
        self,
        notifiers: Sequence[Notifier],
        *,
        queue_size: int = 100,
        max_producers: int = 32,
    ) -> None:
        self._queues: list[HandoffQueue[NotificationEvent]] = [
            HandoffQueue(
                f"notify:{notifier.name}",
                notifier.send,
                maxsize=queue_size,
                max_producers=max_producers,
            )
            for notifier in notifiers
        ]

    @property
    def queues(self) -> list[HandoffQueue[NotificationEvent]]:
        return list(self._queues)

    def start(self) -> None:
        for queue in self._queues:
            queue.start()

    async def close(self, timeout: float = 10.0) -> None:
        for queue in self._queues:
            await queue.close(timeout)

    async def __aenter__(self) -> NotificationDispatcher:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def dispatch(self, event: NotificationEvent) -> None:
        """Hand *event* to every notifier without waiting for delivery."""
        if not self._queues:
            logger.warning("No notifiers configured, event for URL [%s] not delivered", event.url)
            return
        for queue in self._queues:
            queue.submit(event)

    __call__ = dispatch
