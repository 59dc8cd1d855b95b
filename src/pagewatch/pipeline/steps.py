"""Pipeline step variants.

Each step is a frozen dataclass holding only its construction parameters and
an ``extend(sequence)`` method that returns a new action tuple with its own
work appended. Steps do not inherit from one another; ``Step`` is a protocol.

Order within a target's pipeline::

    navigate → notify path? → access denied? → captcha? → wait? → extract | capture
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import ClassVar, Protocol

from pagewatch.browser.captcha import handle_captcha_box
from pagewatch.browser.extract import extract, wait_visible
from pagewatch.browser.navigation import resilient_goto
from pagewatch.browser.snapshot import page_snapshot
from pagewatch.exceptions import AccessDeniedError, NavigationError, NotifyPathMatched
from pagewatch.models.events import DumpCategory, NotificationEvent
from pagewatch.models.target import CaptchaSelectors, CheckType
from pagewatch.pipeline.context import ActionSequence, RunContext

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A unit of pipeline construction."""

    name: ClassVar[str]

    def extend(self, sequence: ActionSequence) -> ActionSequence:
        ...


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NavigateStep:
    """Load the target URL and feed the outcome back into agent selection."""

    url: str
    name: ClassVar[str] = "navigate"

    def extend(self, sequence: ActionSequence) -> ActionSequence:
        return (*sequence, self._navigate)

    async def _navigate(self, ctx: RunContext) -> None:
        try:
            await resilient_goto(ctx.page, self.url, timeout_ms=ctx.timeout_ms)
        except NavigationError:
            ctx.agents.record_failure(self.url)
            raise
        ctx.agents.record_success(self.url)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NotifyPathStep:
    """Notify when the page landed on a location containing *fragment*, then stop the run."""

    url: str
    fragment: str
    name: ClassVar[str] = "detect_notify_path"

    def extend(self, sequence: ActionSequence) -> ActionSequence:
        if not self.fragment:
            return sequence
        return (*sequence, self._check)

    async def _check(self, ctx: RunContext) -> None:
        location = ctx.page.url
        if self.fragment not in location:
            logger.debug("Location [%s] for URL [%s] does not contain notify path [%s]", location, self.url, self.fragment)
            return
        logger.info("Location [%s] for URL [%s] matched notify path [%s], notifying", location, self.url, self.fragment)
        ctx.notify(NotificationEvent(url=self.url, text=location))
        raise NotifyPathMatched(self.url, location, self.fragment)


@dataclass(frozen=True)
class AccessDeniedStep:
    """Rotate the user agent and stop the run when the title reports access denied."""

    url: str
    marker: str = "Access Denied"
    location_on_error: bool = False
    dump_on_error: bool = False
    name: ClassVar[str] = "detect_access_denied"

    def extend(self, sequence: ActionSequence) -> ActionSequence:
        return (*sequence, self._check)

    async def _check(self, ctx: RunContext) -> None:
        async with page_snapshot(
            ctx.page,
            self.url,
            DumpCategory.DETECT_ERROR,
            ctx.diagnostics,
            location=self.location_on_error,
            dump=self.dump_on_error,
        ):
            title = await ctx.page.title()
            if self.marker not in title:
                logger.info(
                    "Didn't find the [%s] message on the page for URL [%s], proceeding to next step",
                    self.marker,
                    self.url,
                )
                return

            state = ctx.agents.state(self.url)
            agent = state.working_agent or state.selected_agent
            logger.warning("Encountered [%s] for URL [%s] with user-agent [%s]", self.marker, self.url, agent)
            ctx.agents.invalidate(self.url, reason="access denied")
            raise AccessDeniedError(self.url, title, agent)


@dataclass(frozen=True)
class CaptchaStep:
    """Run the CAPTCHA box state machine when the page was redirected away."""

    url: str
    selectors: CaptchaSelectors
    dump_on_error: bool = False
    name: ClassVar[str] = "detect_captcha"

    def extend(self, sequence: ActionSequence) -> ActionSequence:
        return (*sequence, self._check)

    async def _check(self, ctx: RunContext) -> None:
        # Location is always captured: the state machine compares it to the target.
        async with page_snapshot(
            ctx.page,
            self.url,
            DumpCategory.DETECT_ERROR,
            ctx.diagnostics,
            location=True,
            dump=self.dump_on_error,
        ) as capture:
            await handle_captcha_box(
                ctx.page,
                self.url,
                self.selectors,
                capture,
                ctx.diagnostics,
                timeout_ms=ctx.timeout_ms,
            )


# ---------------------------------------------------------------------------
# Wait
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WaitStep:
    """Block until the wait selector is visible."""

    url: str
    selector: str
    location_on_error: bool = False
    dump_on_error: bool = False
    name: ClassVar[str] = "wait"

    def extend(self, sequence: ActionSequence) -> ActionSequence:
        if not self.selector:
            return sequence
        return (*sequence, self._wait)

    async def _wait(self, ctx: RunContext) -> None:
        async with page_snapshot(
            ctx.page,
            self.url,
            DumpCategory.WAIT_ERROR,
            ctx.diagnostics,
            location=self.location_on_error,
            dump=self.dump_on_error,
        ):
            logger.debug("Waiting on selector [%s] for URL [%s]", self.selector, self.url)
            await wait_visible(ctx.page, self.selector, url=self.url, timeout_ms=ctx.timeout_ms)


# ---------------------------------------------------------------------------
# Terminal steps
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExtractStep:
    """Compare extracted content with the expected text and notify on difference.

    Without a check configured, reaching this step means the wait condition
    succeeded, which is itself the signal: notify unconditionally.
    """

    url: str
    check_selector: str = ""
    check_type: CheckType = CheckType.DUMP
    expected_text: str = ""
    name: ClassVar[str] = "extract_and_dispatch"

    @property
    def has_check(self) -> bool:
        return bool(self.check_selector) and bool(self.expected_text)

    def extend(self, sequence: ActionSequence) -> ActionSequence:
        return (*sequence, self._extract_and_dispatch)

    async def _extract_and_dispatch(self, ctx: RunContext) -> None:
        if not self.has_check:
            logger.info("Wait condition met for URL [%s], performing the desired action", self.url)
            ctx.notify(NotificationEvent(url=self.url))
            return

        result = await extract(ctx.page, self.check_selector, self.check_type, url=self.url)
        if self.expected_text in result:
            logger.info(
                "Result found for URL [%s] was still [%s], which matches the expected text [%s], so we take no action",
                self.url,
                result,
                self.expected_text,
            )
            return

        logger.info(
            "Result found for URL [%s] was [%s], which differs from the expected text [%s], notifying",
            self.url,
            result,
            self.expected_text,
        )
        ctx.notify(NotificationEvent(url=self.url, text=result))


@dataclass(frozen=True)
class CaptureStep:
    """Store the page's content (or one selector's) as the run's payload."""

    url: str
    text_selector: str = ""
    href_selector: str = ""
    id_selector: str = ""
    name: ClassVar[str] = "capture"

    def extend(self, sequence: ActionSequence) -> ActionSequence:
        return (*sequence, self._capture)

    def selection(self) -> tuple[str, CheckType]:
        """Return the selector and kind to extract, defaulting to a full dump."""
        if self.text_selector:
            return self.text_selector, CheckType.TEXT
        if self.href_selector:
            return self.href_selector, CheckType.HREF
        if self.id_selector:
            return self.id_selector, CheckType.ID
        return "", CheckType.DUMP

    async def _capture(self, ctx: RunContext) -> None:
        selector, kind = self.selection()
        ctx.payload = await extract(ctx.page, selector, kind, url=self.url)
        logger.info("Captured %d characters (%s) from [%s]", len(ctx.payload), kind.value, ctx.page.url)
