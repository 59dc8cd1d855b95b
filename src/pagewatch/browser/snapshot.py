"""Scoped page capture that is only surfaced when the bracketed step fails.

Every detect and wait step follows the same shape::

    async with page_snapshot(page, target.url, DumpCategory.WAIT_ERROR, router,
                             location=True, dump=True) as snap:
        await page.wait_for_selector(...)

The snapshot is taken on entry. If the block raises, the captured page dump is
routed to diagnostics and the captured location is logged; the exception then
propagates unchanged. On success the capture is discarded.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pagewatch.browser.extract import dump_page
from pagewatch.models.events import DumpCategory, DumpRecord

if TYPE_CHECKING:
    from playwright.async_api import Page

    from pagewatch.dispatch.diagnostics import DiagnosticsRouter

logger = logging.getLogger(__name__)


@dataclass
class PageSnapshot:
    """Page state captured before a risky step."""

    target_url: str
    current_location: str | None = None
    page_dump: str | None = None
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SnapshotCapture:
    """Capture handle that encodes the "only surface on failure" rule.

    Args:
        target_url: URL of the target the step belongs to.
        category: Diagnostic channel for the dump.
        diagnostics: Router that prints or persists dumps.
        location: Capture the current location.
        dump: Capture the full page content.
    """

    def __init__(
        self,
        target_url: str,
        category: DumpCategory,
        diagnostics: DiagnosticsRouter,
        *,
        location: bool = False,
        dump: bool = False,
    ) -> None:
        self.target_url = target_url
        self.category = category
        self._diagnostics = diagnostics
        self._location = location
        self._dump = dump
        self.snapshot = PageSnapshot(target_url=target_url)

    @property
    def current_location(self) -> str | None:
        return self.snapshot.current_location

    async def take(self, page: Page) -> PageSnapshot:
        """Capture location and/or page content, replacing any earlier capture."""
        snap = PageSnapshot(target_url=self.target_url)
        if self._location:
            snap.current_location = page.url
        if self._dump:
            snap.page_dump = await dump_page(page)
        self.snapshot = snap
        return snap

    def report(self, error: BaseException | None) -> BaseException | None:
        """Surface the capture if *error* is set; always return *error* unchanged."""
        if error is None:
            return None

        if self._dump and self.snapshot.page_dump is not None:
            logger.error(
                "Dumping content for URL [%s] after error: %s",
                self.target_url,
                str(error) or type(error).__name__,
            )
            self._diagnostics.route(
                DumpRecord(category=self.category, url=self.target_url, content=self.snapshot.page_dump)
            )
        if self._location:
            logger.error(
                "Logging the current URL location as [%s] for our original target [%s]",
                self.snapshot.current_location,
                self.target_url,
            )
        return error


@asynccontextmanager
async def page_snapshot(
    page: Page,
    target_url: str,
    category: DumpCategory,
    diagnostics: DiagnosticsRouter,
    *,
    location: bool = False,
    dump: bool = False,
) -> AsyncIterator[SnapshotCapture]:
    """Take a snapshot, run the block, and report the snapshot if the block raises.

    Cancellation by the overall run deadline is reported too, so a step cut
    short by the deadline still leaves its dump and location behind.
    """
    capture = SnapshotCapture(target_url, category, diagnostics, location=location, dump=dump)
    await capture.take(page)
    try:
        yield capture
    except BaseException as exc:
        capture.report(exc)
        raise
