"""Per-run state handed to every pipeline action."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from playwright.async_api import Page

    from pagewatch.browser.agents import AgentManager
    from pagewatch.dispatch.diagnostics import DiagnosticsRouter
    from pagewatch.models.events import NotificationEvent
    from pagewatch.models.target import Target


@dataclass
class RunContext:
    """Everything an action needs for one execution of one target's pipeline.

    A fresh context is built for every run; only ``agents`` outlives it.
    """

    page: Page
    target: Target
    agents: AgentManager
    notify: Callable[[NotificationEvent], None]
    diagnostics: DiagnosticsRouter
    timeout_ms: int = 30_000
    payload: str | None = None

    @property
    def url(self) -> str:
        return self.target.url


Action = Callable[[RunContext], Awaitable[None]]
ActionSequence = tuple[Action, ...]
