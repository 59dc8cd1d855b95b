"""Unit tests for pagewatch.browser.session: launching and tearing down Chromium."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from pagewatch.browser.session import BrowserLauncher
from pagewatch.exceptions import SessionError
from pagewatch.settings.config import BrowserSettings

URL = "https://shop.example/item"


def _fake_playwright() -> tuple[MagicMock, MagicMock, MagicMock, MagicMock, MagicMock]:
    """Return ``(factory, pw, browser, context, page)`` wired like ``async_playwright()``."""
    page = MagicMock()
    page.add_init_script = AsyncMock()

    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    pw = MagicMock()
    pw.chromium.launch = AsyncMock(return_value=browser)
    pw.chromium.launch_persistent_context = AsyncMock(return_value=context)

    manager = MagicMock()
    manager.__aenter__.return_value = pw
    manager.__aexit__.return_value = False
    factory = MagicMock(return_value=manager)
    return factory, pw, browser, context, page


class TestLaunchArgs:
    def test_headless_flags(self) -> None:
        args = BrowserLauncher(headless=True).launch_args()
        assert "--hide-scrollbars" in args
        assert "--mute-audio" in args
        assert args[-1] == "--no-sandbox"

    def test_headed_flags(self) -> None:
        args = BrowserLauncher(headless=False).launch_args()
        assert "--no-first-run" in args
        assert "--hide-scrollbars" not in args
        assert "--no-sandbox" in args

    def test_sandbox_keeps_chromium_sandbox(self) -> None:
        assert "--no-sandbox" not in BrowserLauncher(sandbox=True).launch_args()

    def test_from_settings(self) -> None:
        settings = BrowserSettings.model_validate(
            {"headless": False, "user_data_dir": "/tmp/profile", "action_timeout_ms": 5_000, "stealth_scripts": False}
        )
        launcher = BrowserLauncher.from_settings(settings)
        assert launcher.headless is False
        assert launcher.user_data_dir == "/tmp/profile"
        assert launcher.action_timeout_ms == 5_000
        assert launcher.stealth_scripts is False


class TestSession:
    @pytest.mark.anyio
    async def test_headless_session_configures_page_and_closes(self) -> None:
        factory, pw, browser, context, page = _fake_playwright()
        launcher = BrowserLauncher(headless=True, action_timeout_ms=7_000)

        with patch("pagewatch.browser.session.async_playwright", factory):
            async with launcher.session("ua-one", url=URL) as got:
                assert got is page

        pw.chromium.launch.assert_awaited_once_with(headless=True, args=launcher.launch_args())
        pw.chromium.launch_persistent_context.assert_not_awaited()
        assert browser.new_context.await_args.kwargs["user_agent"] == "ua-one"
        page.set_default_timeout.assert_called_once_with(7_000)
        page.add_init_script.assert_awaited_once()
        assert "navigator" in page.add_init_script.await_args.args[0]
        context.close.assert_awaited_once()
        browser.close.assert_awaited_once()

    @pytest.mark.anyio
    async def test_stealth_script_can_be_disabled(self) -> None:
        factory, _, _, _, page = _fake_playwright()

        with patch("pagewatch.browser.session.async_playwright", factory):
            async with BrowserLauncher(stealth_scripts=False).session("ua-one"):
                pass

        page.add_init_script.assert_not_awaited()

    @pytest.mark.anyio
    async def test_headed_with_profile_uses_persistent_context(self) -> None:
        factory, pw, browser, context, _ = _fake_playwright()
        launcher = BrowserLauncher(headless=False, user_data_dir="/tmp/profile")

        with patch("pagewatch.browser.session.async_playwright", factory):
            async with launcher.session("ua-two"):
                pass

        pw.chromium.launch.assert_not_awaited()
        call = pw.chromium.launch_persistent_context.await_args
        assert call.args == ("/tmp/profile",)
        assert call.kwargs["headless"] is False
        assert call.kwargs["user_agent"] == "ua-two"
        context.close.assert_awaited_once()
        browser.close.assert_not_awaited()

    @pytest.mark.anyio
    async def test_headless_ignores_profile(self) -> None:
        factory, pw, _, _, _ = _fake_playwright()

        with patch("pagewatch.browser.session.async_playwright", factory):
            async with BrowserLauncher(headless=True, user_data_dir="/tmp/profile").session("ua-one"):
                pass

        pw.chromium.launch_persistent_context.assert_not_awaited()
        pw.chromium.launch.assert_awaited_once()

    @pytest.mark.anyio
    async def test_launch_failure_becomes_session_error(self) -> None:
        factory, pw, _, context, _ = _fake_playwright()
        pw.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist\nCall log: ...")

        with patch("pagewatch.browser.session.async_playwright", factory):
            with pytest.raises(SessionError, match="browser launch failed: Executable doesn't exist") as exc_info:
                async with BrowserLauncher().session("ua-one", url=URL):
                    pass

        assert exc_info.value.url == URL
        context.close.assert_not_awaited()

    @pytest.mark.anyio
    async def test_teardown_runs_when_block_raises(self) -> None:
        factory, _, browser, context, _ = _fake_playwright()

        with patch("pagewatch.browser.session.async_playwright", factory):
            with pytest.raises(RuntimeError, match="step blew up"):
                async with BrowserLauncher().session("ua-one"):
                    raise RuntimeError("step blew up")

        context.close.assert_awaited_once()
        browser.close.assert_awaited_once()

    @pytest.mark.anyio
    async def test_close_error_is_not_fatal(self, caplog) -> None:
        factory, _, _, context, _ = _fake_playwright()
        context.close.side_effect = PlaywrightError("Browser has been closed")

        with patch("pagewatch.browser.session.async_playwright", factory):
            async with BrowserLauncher().session("ua-one"):
                pass

        assert "Browser close error" in caplog.text
