"""Routing of failure dumps to stdout or to a persistence store."""

from __future__ import annotations

import logging
import sys
from collections import Counter
from typing import Protocol, TextIO

from pagewatch.dispatch.queue import HandoffQueue
from pagewatch.models.events import DumpCategory, DumpRecord

logger = logging.getLogger(__name__)


class DumpStore(Protocol):
    """Write-only persistence for dump records."""

    async def write(self, record: DumpRecord) -> None:
        ...

    async def close(self) -> None:
        ...


class DiagnosticsRouter:
    """Send dump records to a store through a handoff queue, or print them.

    Without a store, content goes straight to *stream* (stdout by default) so
    an operator watching the terminal sees the page that failed.

    Args:
        store: Optional persistence collaborator.
        stream: Output stream used when there is no store.
        queue_size: Capacity of the persistence queue.
        max_producers: Producer-task bound for the persistence queue.
    """

    def __init__(
        self,
        store: DumpStore | None = None,
        *,
        stream: TextIO | None = None,
        queue_size: int = 100,
        max_producers: int = 32,
    ) -> None:
        self._store = store
        self._stream = stream
        self._queue: HandoffQueue[DumpRecord] | None = None
        if store is not None:
            self._queue = HandoffQueue("dumps", store.write, maxsize=queue_size, max_producers=max_producers)
        self.counts: Counter[DumpCategory] = Counter()

    @property
    def persistent(self) -> bool:
        return self._queue is not None

    @property
    def queue(self) -> HandoffQueue[DumpRecord] | None:
        return self._queue

    def start(self) -> None:
        if self._queue is not None:
            self._queue.start()

    async def close(self, timeout: float = 10.0) -> None:
        if self._queue is not None:
            await self._queue.close(timeout)
        if self._store is not None:
            await self._store.close()

    async def __aenter__(self) -> DiagnosticsRouter:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def route(self, record: DumpRecord) -> None:
        """Surface one dump record."""
        self.counts[record.category] += 1
        if self._queue is not None:
            logger.error("Dumping %s content for URL [%s] to the dump store", record.category.value, record.url)
            self._queue.submit(record)
            return

        logger.error("Dumping %s content for URL [%s] to stdout:", record.category.value, record.url)
        stream = self._stream or sys.stdout
        stream.write(record.content)
        stream.write("\n")
        stream.flush()
