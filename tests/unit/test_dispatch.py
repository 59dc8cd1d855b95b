"""Unit tests for pagewatch.dispatch: handoff queues, fan-out, and dump routing."""

from __future__ import annotations

import asyncio
import io

import pytest

from pagewatch.dispatch import DiagnosticsRouter, HandoffQueue, InMemoryNotifier, NotificationDispatcher, Notifier
from pagewatch.models.events import DumpCategory, DumpRecord, NotificationEvent
from pagewatch.store.dump_store import InMemoryDumpStore


def _event(n: int = 0) -> NotificationEvent:
    return NotificationEvent(url=f"https://example.com/{n}", text=f"change {n}")


# ===================================================================
# HandoffQueue
# ===================================================================


class TestHandoffQueue:
    @pytest.mark.anyio
    async def test_delivers_in_submission_order(self) -> None:
        received: list[int] = []

        async def handler(item: int) -> None:
            received.append(item)

        queue: HandoffQueue[int] = HandoffQueue("test", handler, maxsize=2)
        queue.start()
        for i in range(10):
            assert queue.submit(i) is True
        await queue.close(timeout=1)

        assert received == list(range(10))
        assert queue.delivered == 10
        assert queue.dropped == 0
        assert not queue.running

    @pytest.mark.anyio
    async def test_submit_never_blocks_on_slow_handler(self) -> None:
        gate = asyncio.Event()

        async def handler(item: int) -> None:
            await gate.wait()

        queue: HandoffQueue[int] = HandoffQueue("slow", handler, maxsize=1, max_producers=4)
        queue.start()
        for i in range(5):
            queue.submit(i)
        # Nothing awaited: submit returned immediately even though the handler is stuck.
        assert queue.pending >= 4
        gate.set()
        await queue.close(timeout=1)
        assert queue.delivered == 5

    @pytest.mark.anyio
    async def test_drops_when_producers_saturated(self) -> None:
        gate = asyncio.Event()

        async def handler(item: int) -> None:
            await gate.wait()

        queue: HandoffQueue[int] = HandoffQueue("tight", handler, maxsize=1, max_producers=1)
        queue.start()
        await asyncio.sleep(0)
        results = [queue.submit(i) for i in range(4)]
        assert results[:2] == [True, True]
        assert False in results[2:]
        assert queue.dropped >= 1
        gate.set()
        await queue.close(timeout=1)

    @pytest.mark.anyio
    async def test_handler_failure_does_not_stop_consumer(self) -> None:
        received: list[int] = []

        async def handler(item: int) -> None:
            if item == 1:
                raise RuntimeError("transport down")
            received.append(item)

        queue: HandoffQueue[int] = HandoffQueue("flaky", handler)
        queue.start()
        for i in range(3):
            queue.submit(i)
        await queue.close(timeout=1)

        assert received == [0, 2]
        assert queue.failed == 1
        assert queue.delivered == 2

    @pytest.mark.anyio
    async def test_submit_after_close_is_dropped(self) -> None:
        async def handler(item: int) -> None:
            pass

        queue: HandoffQueue[int] = HandoffQueue("closed", handler)
        queue.start()
        await queue.close(timeout=1)
        assert queue.submit(1) is False
        assert queue.dropped == 1

    @pytest.mark.anyio
    async def test_close_gives_up_after_timeout(self) -> None:
        async def handler(item: int) -> None:
            await asyncio.sleep(10)

        queue: HandoffQueue[int] = HandoffQueue("stuck", handler)
        queue.start()
        queue.submit(1)
        await queue.close(timeout=0.05)
        assert not queue.running


# ===================================================================
# NotificationDispatcher
# ===================================================================


class TestNotificationDispatcher:
    def test_in_memory_notifier_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryNotifier(), Notifier)

    @pytest.mark.anyio
    async def test_fans_out_to_every_notifier(self) -> None:
        first, second = InMemoryNotifier(), InMemoryNotifier()
        async with NotificationDispatcher([first, second]) as dispatcher:
            dispatcher.dispatch(_event(1))
            dispatcher(_event(2))

        assert [e.url for e in first.events] == ["https://example.com/1", "https://example.com/2"]
        assert first.count == second.count == 2

    @pytest.mark.anyio
    async def test_one_queue_per_notifier(self) -> None:
        dispatcher = NotificationDispatcher([InMemoryNotifier(), InMemoryNotifier()], queue_size=5)
        assert [q.name for q in dispatcher.queues] == ["notify:memory", "notify:memory"]

    @pytest.mark.anyio
    async def test_no_notifiers_is_harmless(self) -> None:
        async with NotificationDispatcher([]) as dispatcher:
            dispatcher.dispatch(_event())


# ===================================================================
# DiagnosticsRouter
# ===================================================================


class TestDiagnosticsRouter:
    def test_prints_to_stream_without_store(self) -> None:
        stream = io.StringIO()
        router = DiagnosticsRouter(stream=stream)
        router.route(DumpRecord(category=DumpCategory.WAIT_ERROR, url="https://a", content="<html/>"))

        assert stream.getvalue() == "<html/>\n"
        assert router.persistent is False
        assert router.counts[DumpCategory.WAIT_ERROR] == 1

    @pytest.mark.anyio
    async def test_persists_through_store(self) -> None:
        store = InMemoryDumpStore()
        stream = io.StringIO()
        record = DumpRecord(category=DumpCategory.CAPTCHA_DUMP, url="https://a", content="<iframe/>", timestamp=1)

        async with DiagnosticsRouter(store, stream=stream) as router:
            router.route(record)

        assert store.records == {"captcha-dumps-1-https://a": "<iframe/>"}
        assert store.closed is True
        assert stream.getvalue() == ""
