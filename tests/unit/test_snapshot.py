"""Unit tests for pagewatch.browser.snapshot: failure-scoped page capture."""

from __future__ import annotations

import logging

import pytest

from pagewatch.browser.snapshot import SnapshotCapture, page_snapshot
from pagewatch.exceptions import WaitTimeoutError
from pagewatch.models.events import DumpCategory

URL = "https://shop.example/item"


class TestSnapshotCapture:
    @pytest.mark.anyio
    async def test_take_captures_only_requested_fields(self, make_page, diagnostics) -> None:
        page = make_page()
        await page.goto(URL)
        capture = SnapshotCapture(URL, DumpCategory.WAIT_ERROR, diagnostics, location=True)

        snap = await capture.take(page)

        assert snap.current_location == URL
        assert snap.page_dump is None
        assert page.eval_calls == []

    @pytest.mark.anyio
    async def test_report_without_error_discards(self, make_page, diagnostics, dump_stream) -> None:
        capture = SnapshotCapture(URL, DumpCategory.WAIT_ERROR, diagnostics, location=True, dump=True)
        await capture.take(make_page())

        assert capture.report(None) is None
        assert dump_stream.getvalue() == ""
        assert sum(diagnostics.counts.values()) == 0

    @pytest.mark.anyio
    async def test_report_with_error_routes_dump(self, make_page, diagnostics, dump_stream) -> None:
        capture = SnapshotCapture(URL, DumpCategory.DETECT_ERROR, diagnostics, dump=True)
        await capture.take(make_page(head="<head/>", body="<body>blocked</body>"))
        error = RuntimeError("boom")

        assert capture.report(error) is error
        assert dump_stream.getvalue() == "<head/><body>blocked</body>\n"
        assert diagnostics.counts[DumpCategory.DETECT_ERROR] == 1

    @pytest.mark.anyio
    async def test_report_logs_location(self, make_page, diagnostics, caplog) -> None:
        page = make_page(landing_url="https://shop.example/blocked")
        await page.goto(URL)
        capture = SnapshotCapture(URL, DumpCategory.WAIT_ERROR, diagnostics, location=True)
        await capture.take(page)

        with caplog.at_level(logging.ERROR, logger="pagewatch.browser.snapshot"):
            capture.report(RuntimeError("boom"))

        assert "https://shop.example/blocked" in caplog.text


class TestPageSnapshot:
    @pytest.mark.anyio
    async def test_success_routes_nothing(self, make_page, diagnostics, dump_stream) -> None:
        async with page_snapshot(make_page(), URL, DumpCategory.WAIT_ERROR, diagnostics, dump=True):
            pass
        assert dump_stream.getvalue() == ""

    @pytest.mark.anyio
    async def test_failure_routes_one_dump_and_reraises(self, make_page, diagnostics) -> None:
        with pytest.raises(WaitTimeoutError):
            async with page_snapshot(make_page(), URL, DumpCategory.WAIT_ERROR, diagnostics, dump=True):
                raise WaitTimeoutError(URL, "#ready")
        assert diagnostics.counts[DumpCategory.WAIT_ERROR] == 1
