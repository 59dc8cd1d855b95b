"""pagewatch test configuration: shared fixtures for unit tests."""

from __future__ import annotations

import io
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from pagewatch.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


# ---------------------------------------------------------------------------
# Fake Playwright objects
# ---------------------------------------------------------------------------


class FakeElement:
    def __init__(self, href: str | None) -> None:
        self._href = href

    async def get_attribute(self, name: str) -> str | None:
        return self._href if name == "href" else None


class FakeFrame:
    def __init__(self, url: str, *, content: str = "", visible: set[str] | None = None) -> None:
        self.url = url
        self._content = content
        self.visible = visible if visible is not None else set()
        self.wait_calls: list[str] = []

    async def wait_for_selector(self, selector: str, *, state: str = "visible", timeout: float | None = None) -> None:
        self.wait_calls.append(selector)
        if selector not in self.visible:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def content(self) -> str:
        return self._content


class FakePage:
    """Just enough of ``playwright.async_api.Page`` for the pipeline.

    Args:
        landing_url: Location after ``goto`` (defaults to the requested URL),
            e.g. a block page the target redirects to.
        after_click_url: Location after the CAPTCHA box is clicked.
        visible: Selectors ``wait_for_selector`` finds visible.
        texts: ``inner_text`` results by selector.
        hrefs: ``query_selector_all`` href values by selector.
        outer_html: ``eval_on_selector`` results by selector, besides head/body.
    """

    def __init__(
        self,
        *,
        title: str = "Example",
        landing_url: str | None = None,
        after_click_url: str | None = None,
        visible: set[str] | None = None,
        texts: dict[str, str] | None = None,
        hrefs: dict[str, list[str | None]] | None = None,
        outer_html: dict[str, str] | None = None,
        head: str = "<head><title>Example</title></head>",
        body: str = "<body><p>hello</p></body>",
        goto_errors: list[Exception] | None = None,
        click_error: Exception | None = None,
        child_frames: list[FakeFrame] | None = None,
    ) -> None:
        self.url = "about:blank"
        self._title = title
        self.landing_url = landing_url
        self.after_click_url = after_click_url
        self.visible = visible if visible is not None else set()
        self.texts = texts or {}
        self.hrefs = hrefs or {}
        self.outer_html = {"head": head, "body": body, **(outer_html or {})}
        self.goto_errors = list(goto_errors or [])
        self.click_error = click_error
        self.main_frame = FakeFrame("about:blank")
        self.frames = [self.main_frame, *(child_frames or [])]

        self.goto_calls: list[tuple[str, str]] = []
        self.wait_calls: list[str] = []
        self.click_calls: list[str] = []
        self.press_calls: list[tuple[str, str]] = []
        self.eval_calls: list[str] = []
        self.default_timeout: float | None = None
        self.init_scripts: list[str] = []

    async def goto(self, url: str, *, wait_until: str = "load", timeout: float | None = None) -> None:
        self.goto_calls.append((url, wait_until))
        if self.goto_errors:
            raise self.goto_errors.pop(0)
        self.url = self.landing_url or url
        return None

    async def title(self) -> str:
        return self._title

    async def wait_for_selector(self, selector: str, *, state: str = "visible", timeout: float | None = None) -> None:
        self.wait_calls.append(selector)
        if selector not in self.visible:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def inner_text(self, selector: str, **kwargs: Any) -> str:
        if selector not in self.texts:
            raise PlaywrightError(f"No element matches selector {selector}\nCall log: ...")
        return self.texts[selector]

    async def query_selector_all(self, selector: str) -> list[FakeElement]:
        return [FakeElement(h) for h in self.hrefs.get(selector, [])]

    async def eval_on_selector(self, selector: str, expression: str) -> str:
        self.eval_calls.append(selector)
        if selector not in self.outer_html:
            raise PlaywrightError(f"Failed to find element matching selector {selector}")
        return self.outer_html[selector]

    async def click(self, selector: str, *, timeout: float | None = None) -> None:
        self.click_calls.append(selector)
        if self.click_error is not None:
            raise self.click_error
        self._after_click()

    async def press(self, selector: str, key: str, *, timeout: float | None = None) -> None:
        self.press_calls.append((selector, key))
        self._after_click()

    def set_default_timeout(self, timeout: float) -> None:
        self.default_timeout = timeout

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    def _after_click(self) -> None:
        if self.after_click_url is not None:
            self.url = self.after_click_url


class FakeLauncher:
    """``SessionFactory`` that hands out ``FakePage`` objects instead of Chromium."""

    def __init__(self, page_factory: Callable[[], FakePage], *, launch_error: Exception | None = None) -> None:
        self.page_factory = page_factory
        self.launch_error = launch_error
        self.pages: list[FakePage] = []
        self.agents: list[str] = []
        self.closed = 0

    @asynccontextmanager
    async def session(self, user_agent: str, *, url: str = "") -> AsyncIterator[FakePage]:
        self.agents.append(user_agent)
        if self.launch_error is not None:
            raise self.launch_error
        page = self.page_factory()
        self.pages.append(page)
        try:
            yield page
        finally:
            self.closed += 1


@pytest.fixture()
def make_page() -> Callable[..., FakePage]:
    """Factory for ``FakePage`` objects."""
    return FakePage


@pytest.fixture()
def make_frame() -> Callable[..., FakeFrame]:
    return FakeFrame


@pytest.fixture()
def make_launcher() -> Callable[..., FakeLauncher]:
    return FakeLauncher


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture()
def dump_stream() -> io.StringIO:
    """Stdout stand-in for dumps printed without a store."""
    return io.StringIO()


@pytest.fixture()
def diagnostics(dump_stream: io.StringIO):
    """A stdout-mode ``DiagnosticsRouter`` writing into ``dump_stream``."""
    from pagewatch.dispatch.diagnostics import DiagnosticsRouter

    return DiagnosticsRouter(stream=dump_stream)


@pytest.fixture()
def agents():
    from pagewatch.browser.agents import AgentManager

    return AgentManager(["ua-one", "ua-two", "ua-three"])


@pytest.fixture()
def events() -> list:
    """Sink list used as the ``notify`` callback."""
    return []


@pytest.fixture()
def make_context(agents, diagnostics, events):
    """Build a ``RunContext`` around a page and target."""
    from pagewatch.pipeline.context import RunContext

    def _make(page: FakePage, target) -> RunContext:
        return RunContext(
            page=page,
            target=target,
            agents=agents,
            notify=events.append,
            diagnostics=diagnostics,
            timeout_ms=1_000,
        )

    return _make


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that require external services or real I/O")
