"""CAPTCHA box handling for targets that redirect to a block page.

The handler never solves a challenge. It walks a fixed state machine:

1. **Location check**: still at the target URL means no block page, so no
   CAPTCHA is assumed (``ABSENT``).
2. **Box**: wait for the checkbox, click it (falling back to pressing
   ``Enter`` on it when the pointer click fails), then re-read the location.
   Back at the target means the obstacle is gone (``CLEARED``).
3. **Challenge**: still blocked: wait for the challenge iframe, capture its
   HTML exactly once for the ``captcha-dumps`` channel, and raise
   ``CaptchaUnsolvedError``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError

from pagewatch.browser.extract import as_selector, first_line, wait_visible
from pagewatch.exceptions import CaptchaUnsolvedError
from pagewatch.models.events import DumpCategory, DumpRecord

if TYPE_CHECKING:
    from playwright.async_api import Frame, Page

    from pagewatch.browser.snapshot import SnapshotCapture
    from pagewatch.dispatch.diagnostics import DiagnosticsRouter
    from pagewatch.models.target import CaptchaSelectors

logger = logging.getLogger(__name__)


class CaptchaOutcome(str, Enum):
    """Terminal states of the CAPTCHA box handler that do not raise."""

    ABSENT = "absent"  # never left the target URL
    CLEARED = "cleared"  # box click returned us to the target URL


class ClickMethod(str, Enum):
    """How the checkbox was activated."""

    POINTER = "pointer"
    ENTER_KEY = "enter_key"


@dataclass
class CaptchaResult:
    """Outcome of a CAPTCHA box pass that ended without an error."""

    outcome: CaptchaOutcome
    blocked_location: str = ""
    click_method: ClickMethod | None = None


def same_location(current: str | None, target: str) -> bool:
    """Compare locations ignoring the trailing slash browsers add to bare hosts."""
    if current is None:
        return False
    return current.rstrip("/") == target.rstrip("/")


async def handle_captcha_box(
    page: Page,
    url: str,
    selectors: CaptchaSelectors,
    capture: SnapshotCapture,
    diagnostics: DiagnosticsRouter,
    *,
    timeout_ms: int = 30_000,
) -> CaptchaResult:
    """Run the CAPTCHA box state machine for one target.

    Args:
        page: Page that has already navigated to *url*.
        url: Target URL.
        selectors: CAPTCHA selectors for this target.
        capture: Snapshot handle with location capture enabled; it is
            refreshed after the click.
        diagnostics: Router receiving the challenge capture.
        timeout_ms: Timeout for each wait and click.

    Returns:
        ``CaptchaResult`` with ``ABSENT`` or ``CLEARED``.

    Raises:
        WaitTimeoutError: If the checkbox or challenge iframe never appears.
        CaptchaUnsolvedError: If the challenge loaded and we are still blocked.
    """
    blocked_at = capture.current_location
    if same_location(blocked_at, url):
        logger.info("No location change detected for target URL [%s] so we will not try to detect a captcha box", url)
        return CaptchaResult(outcome=CaptchaOutcome.ABSENT)

    logger.info(
        "Detected location change for target URL [%s] to current URL [%s], waiting for captcha box [%s]",
        url,
        blocked_at,
        selectors.wait_selector,
    )
    await wait_visible(page, selectors.wait_selector, url=url, timeout_ms=timeout_ms)

    click_method = await _click_box(page, selectors.click_selector, url, timeout_ms)
    logger.info("Clicked captcha box for URL [%s] using selector [%s] (%s)", url, selectors.click_selector, click_method.value)

    if selectors.click_sleep_sec > 0:
        await asyncio.sleep(selectors.click_sleep_sec)

    snap = await capture.take(page)
    if same_location(snap.current_location, url):
        logger.info("Captcha box cleared for URL [%s], back at target", url)
        return CaptchaResult(outcome=CaptchaOutcome.CLEARED, blocked_location=blocked_at or "", click_method=click_method)

    logger.info(
        "Current URL is [%s], which is not target URL [%s], so we're still blocked - waiting on captcha challenge [%s]",
        snap.current_location,
        url,
        selectors.iframe_wait_selector,
    )
    await wait_visible(page, selectors.iframe_wait_selector, url=url, timeout_ms=timeout_ms)
    logger.info("Captcha challenge for URL [%s] loaded", url)

    content = await capture_challenge(page, selectors, url=url, timeout_ms=timeout_ms)
    if content is not None:
        diagnostics.route(DumpRecord(category=DumpCategory.CAPTCHA_DUMP, url=url, content=content))

    raise CaptchaUnsolvedError(url, snap.current_location or "")


async def _click_box(page: Page, selector: str, url: str, timeout_ms: int) -> ClickMethod:
    target = as_selector(selector)
    try:
        await page.click(target, timeout=timeout_ms)
        return ClickMethod.POINTER
    except PlaywrightError as exc:
        logger.warning("Pointer click on captcha box [%s] for URL [%s] failed (%s), pressing Enter instead", selector, url, first_line(exc))
    await page.press(target, "Enter", timeout=timeout_ms)
    return ClickMethod.ENTER_KEY


async def capture_challenge(
    page: Page,
    selectors: CaptchaSelectors,
    *,
    url: str,
    timeout_ms: int = 30_000,
) -> str | None:
    """Capture the challenge HTML once.

    Prefers the challenge frame (matched on ``iframe_uri``), waiting for the
    challenge selector inside it. Without a matching frame, evaluates the
    iframe element's outer HTML on the page instead.

    Returns:
        The captured HTML, or ``None`` if the capture itself failed.
    """
    frame = find_frame(page, selectors.iframe_uri)
    try:
        if frame is not None:
            logger.info("Found captcha iframe [%s] for URL [%s], waiting on [%s]", frame.url, url, selectors.challenge_wait_selector)
            await frame.wait_for_selector(
                as_selector(selectors.challenge_wait_selector), state="visible", timeout=timeout_ms
            )
            return await frame.content()

        logger.info("No frame matching [%s] for URL [%s], capturing iframe element instead", selectors.iframe_uri, url)
        return await page.eval_on_selector(as_selector(selectors.iframe_wait_selector), "el => el.outerHTML")
    except PlaywrightError as exc:
        logger.error("Could not capture captcha challenge for URL [%s]: %s", url, first_line(exc))
        return None


def find_frame(page: Page, uri_part: str) -> Frame | None:
    """Return the first child frame whose URL contains *uri_part*."""
    if not uri_part:
        return None
    for frame in page.frames:
        if frame is page.main_frame:
            continue
        if uri_part in (frame.url or ""):
            return frame
    return None
