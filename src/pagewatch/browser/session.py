"""Browser session lifecycle: launch Chromium with a user agent, yield a page, tear down.

One session serves exactly one pipeline run. ``BrowserLauncher.session`` is an
async context manager so the browser process is always closed, including
when the run is cancelled by the overall timeout.

Usage::

    launcher = BrowserLauncher.from_settings(settings.browser)
    async with launcher.session(user_agent) as page:
        await page.goto(url)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import TYPE_CHECKING, Any, Protocol

from playwright.async_api import Error as PlaywrightError, Page, async_playwright

from pagewatch.browser.extract import first_line
from pagewatch.exceptions import SessionError

if TYPE_CHECKING:
    from pagewatch.settings.config import BrowserSettings

logger = logging.getLogger(__name__)

_HEADLESS_ARGS: list[str] = [
    "--hide-scrollbars",
    "--mute-audio",
    "--disable-gpu",
    "--allow-insecure-localhost",
    "--ignore-certificate-errors",
]

_HEADED_ARGS: list[str] = [
    "--no-first-run",
    "--no-default-browser-check",
]

# Injected via page.add_init_script() before the first navigation.
_STEALTH_SCRIPTS: str = """
// Remove navigator.webdriver flag
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });

// Mimic chrome.runtime (present in real Chrome)
if (!window.chrome) window.chrome = {};
if (!window.chrome.runtime) window.chrome.runtime = {};

// Patch navigator.plugins to look non-empty
Object.defineProperty(navigator, 'plugins', {
    get: () => [1, 2, 3, 4, 5],
});
"""


class SessionFactory(Protocol):
    """Anything that can open a one-shot browser session for a user agent."""

    def session(self, user_agent: str, *, url: str = "") -> AbstractAsyncContextManager[Page]:
        ...


class BrowserLauncher:
    """Launches a fresh Chromium per session.

    Args:
        headless: Run without a visible window.
        user_data_dir: Persistent profile directory, used in headed mode only.
        action_timeout_ms: Default timeout for page actions and waits.
        stealth_scripts: Inject the anti-automation init script.
        sandbox: Keep Chromium's sandbox on (off in containers).
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        user_data_dir: str = "",
        action_timeout_ms: int = 30_000,
        stealth_scripts: bool = True,
        sandbox: bool = False,
    ) -> None:
        self.headless = headless
        self.user_data_dir = user_data_dir
        self.action_timeout_ms = action_timeout_ms
        self.stealth_scripts = stealth_scripts
        self.sandbox = sandbox

    @classmethod
    def from_settings(cls, settings: BrowserSettings) -> BrowserLauncher:
        return cls(
            headless=settings.headless,
            user_data_dir=settings.user_data_dir,
            action_timeout_ms=settings.action_timeout_ms,
            stealth_scripts=settings.stealth_scripts,
            sandbox=settings.sandbox,
        )

    def launch_args(self) -> list[str]:
        """Chromium command-line flags for the configured mode."""
        args = list(_HEADLESS_ARGS if self.headless else _HEADED_ARGS)
        if not self.sandbox:
            args.append("--no-sandbox")
        return args

    def context_args(self, user_agent: str) -> dict[str, Any]:
        return {"user_agent": user_agent, "ignore_https_errors": True}

    @asynccontextmanager
    async def session(self, user_agent: str, *, url: str = "") -> AsyncIterator[Page]:
        """Open a browser, yield a configured page, and always close it.

        Raises:
            SessionError: If Chromium cannot be launched.
        """
        async with async_playwright() as pw:
            try:
                if not self.headless and self.user_data_dir:
                    logger.info("Running headed with persistent profile [%s]", self.user_data_dir)
                    context = await pw.chromium.launch_persistent_context(
                        self.user_data_dir,
                        headless=False,
                        args=self.launch_args(),
                        **self.context_args(user_agent),
                    )
                    browser = None
                else:
                    logger.info("Running in %s mode", "headless" if self.headless else "headed")
                    browser = await pw.chromium.launch(headless=self.headless, args=self.launch_args())
                    context = await browser.new_context(**self.context_args(user_agent))
            except PlaywrightError as exc:
                raise SessionError(url, f"browser launch failed: {first_line(exc)}") from exc

            try:
                page = await context.new_page()
                page.set_default_timeout(self.action_timeout_ms)
                if self.stealth_scripts:
                    await page.add_init_script(_STEALTH_SCRIPTS)
                yield page
            finally:
                await _close_quietly(context, browser)


async def _close_quietly(context: Any, browser: Any) -> None:
    try:
        await context.close()
        if browser is not None:
            await browser.close()
    except PlaywrightError as exc:
        logger.warning("Browser close error (non-fatal): %s", first_line(exc))
