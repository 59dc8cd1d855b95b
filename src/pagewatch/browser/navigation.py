"""Resilient page navigation with automatic wait-strategy fallback.

Pages behind anti-bot layers often never reach ``networkidle`` because of
long-polling beacons and challenge scripts. ``resilient_goto`` tries
``networkidle`` first and falls back to ``load`` then ``domcontentloaded`` on
timeout. Network-level failures surface immediately as ``NavigationError``.
"""

from __future__ import annotations

import logging
from typing import Literal

from playwright.async_api import Error as PlaywrightError, Page, Response, TimeoutError as PlaywrightTimeout

from pagewatch.browser.extract import first_line
from pagewatch.exceptions import NavigationError

logger = logging.getLogger(__name__)

# Playwright error substrings that indicate non-retryable navigation failures.
_NON_RETRYABLE_ERRORS: tuple[str, ...] = (
    "ERR_NAME_NOT_RESOLVED",
    "ERR_CONNECTION_REFUSED",
    "ERR_CONNECTION_RESET",
    "ERR_CONNECTION_CLOSED",
    "ERR_SSL_PROTOCOL_ERROR",
    "ERR_CERT_AUTHORITY_INVALID",
    "ERR_CERT_COMMON_NAME_INVALID",
    "ERR_ADDRESS_UNREACHABLE",
    "ERR_INTERNET_DISCONNECTED",
)

WaitUntil = Literal["networkidle", "load", "domcontentloaded"]

# Strongest first; each timeout falls back to the next.
_FALLBACK_STRATEGY: tuple[WaitUntil, ...] = ("networkidle", "load", "domcontentloaded")


async def resilient_goto(
    page: Page,
    url: str,
    *,
    timeout_ms: int = 30_000,
) -> Response | None:
    """Navigate to *url* with automatic wait-strategy fallback.

    Args:
        page: Playwright page instance.
        url: Target URL to navigate to.
        timeout_ms: Timeout per attempt in milliseconds.

    Returns:
        The main-frame ``Response``, or ``None`` if the page produced none.

    Raises:
        NavigationError: On a non-retryable network error, or when every
            fallback strategy timed out.
    """
    last_error: PlaywrightTimeout | None = None
    for strategy in _FALLBACK_STRATEGY:
        try:
            logger.debug("goto %s (wait_until=%s, timeout=%dms)", url, strategy, timeout_ms)
            return await page.goto(url, wait_until=strategy, timeout=timeout_ms)
        except PlaywrightTimeout as exc:
            logger.warning(
                "Navigation to %s timed out with wait_until=%s, retrying with weaker strategy",
                url,
                strategy,
            )
            last_error = exc
        except PlaywrightError as exc:
            error_msg = str(exc)
            for pattern in _NON_RETRYABLE_ERRORS:
                if pattern in error_msg:
                    reason = pattern.replace("ERR_", "").replace("_", " ").lower()
                    logger.warning("Navigation to %s failed (non-retryable): %s", url, pattern)
                    raise NavigationError(url, reason) from exc
            raise NavigationError(url, first_line(exc)) from exc

    raise NavigationError(url, f"timed out after {len(_FALLBACK_STRATEGY)} wait strategies") from last_error

