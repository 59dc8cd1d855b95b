"""Pull text, attributes, or raw HTML out of a page.

Selectors may be CSS or XPath. Playwright only auto-detects XPath for ``//``
and ``..`` prefixes, so absolute paths such as ``/html/body/div`` are
rewritten with an explicit ``xpath=`` engine prefix by ``as_selector``.
"""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeout

from pagewatch.exceptions import ExtractionError, WaitTimeoutError
from pagewatch.models.target import CheckType

logger = logging.getLogger(__name__)


def as_selector(selector: str) -> str:
    """Return *selector* in a form Playwright resolves as CSS or XPath."""
    selector = selector.strip()
    if selector.startswith("/") and not selector.startswith("//"):
        return f"xpath={selector}"
    return selector


async def wait_visible(page: Page, selector: str, *, url: str, timeout_ms: int) -> None:
    """Block until *selector* is visible, raising ``WaitTimeoutError`` on timeout."""
    try:
        await page.wait_for_selector(as_selector(selector), state="visible", timeout=timeout_ms)
    except PlaywrightTimeout as exc:
        raise WaitTimeoutError(url, selector) from exc


async def extract(page: Page, selector: str, kind: CheckType | str, *, url: str = "") -> str:
    """Return the content selected by *selector* according to *kind*.

    Args:
        page: Page to read from.
        selector: CSS/XPath selector, or an element id for ``CheckType.ID``.
            Ignored for ``CheckType.DUMP``.
        kind: Extraction kind.
        url: Target URL, used only for error context.

    Raises:
        ExtractionError: If the kind is unsupported, no node matches an
            ``href`` selector, or the browser rejects the query.
    """
    try:
        kind = CheckType(kind)
    except ValueError:
        raise ExtractionError(url, selector, str(kind), "unsupported extraction kind") from None

    try:
        if kind is CheckType.TEXT:
            return await page.inner_text(as_selector(selector))
        if kind is CheckType.HREF:
            return await _first_href(page, selector, url)
        if kind is CheckType.ID:
            return await page.inner_text(f"id={selector}")
        return await dump_page(page)
    except PlaywrightError as exc:
        logger.error("Extraction of %s for [%s] on [%s] failed: %s", kind.value, selector, url, exc)
        raise ExtractionError(url, selector, kind.value, first_line(exc)) from exc


async def dump_page(page: Page) -> str:
    """Return the outer HTML of ``<head>`` followed by that of ``<body>``."""
    head = await page.eval_on_selector("head", "el => el.outerHTML")
    body = await page.eval_on_selector("body", "el => el.outerHTML")
    return f"{head or ''}{body or ''}"


async def _first_href(page: Page, selector: str, url: str) -> str:
    nodes = await page.query_selector_all(as_selector(selector))
    if not nodes:
        raise ExtractionError(url, selector, CheckType.HREF.value, "no nodes returned for selector")
    return await nodes[0].get_attribute("href") or ""


def first_line(exc: BaseException) -> str:
    """Return the first line of an exception message (Playwright appends call logs)."""
    lines = str(exc).strip().splitlines()
    return lines[0] if lines else type(exc).__name__
