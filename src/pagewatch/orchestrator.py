"""Top-level wiring for the ``fetch`` and ``watch`` entry points.

Builds pipelines once from settings and targets, starts the notification and
dump queues, runs the matching executor, and drains the queues on the way out.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TextIO

from pagewatch.browser.agents import AgentManager
from pagewatch.browser.session import BrowserLauncher, SessionFactory
from pagewatch.dispatch.diagnostics import DiagnosticsRouter, DumpStore
from pagewatch.dispatch.notifications import NotificationDispatcher, Notifier
from pagewatch.executor import FetchExecutor, SessionRunner, WatchExecutor
from pagewatch.models.events import NotificationEvent, RunResult
from pagewatch.models.target import Target
from pagewatch.notifiers.log import LogNotifier
from pagewatch.pipeline.builder import (
    Features,
    FetchSelection,
    Pipeline,
    build_pipeline,
    plan_fetch_steps,
    plan_watch_steps,
)
from pagewatch.settings.config import Settings

logger = logging.getLogger(__name__)


def build_watch_pipelines(settings: Settings, targets: Sequence[Target]) -> list[Pipeline]:
    """Build one pipeline per target, in order."""
    features = Features.from_settings(settings.detection, settings.diagnostics)
    return [build_pipeline(target, plan_watch_steps(target, features)) for target in targets]


def _build_runner(
    settings: Settings,
    diagnostics: DiagnosticsRouter,
    notify: Callable[[NotificationEvent], None],
    launcher: SessionFactory | None,
    agents: AgentManager | None,
) -> SessionRunner:
    return SessionRunner(
        launcher or BrowserLauncher.from_settings(settings.browser),
        agents or AgentManager(settings.browser.agents),
        diagnostics,
        notify,
        timeout_sec=settings.browser.timeout_sec,
        action_timeout_ms=settings.browser.action_timeout_ms,
    )


def _diagnostics_router(settings: Settings, store: DumpStore | None, stream: TextIO | None) -> DiagnosticsRouter:
    return DiagnosticsRouter(
        store,
        stream=stream,
        queue_size=settings.dispatch.queue_size,
        max_producers=settings.dispatch.max_producers,
    )


async def run_fetch(
    settings: Settings,
    target: Target,
    selection: FetchSelection | None = None,
    *,
    store: DumpStore | None = None,
    launcher: SessionFactory | None = None,
    agents: AgentManager | None = None,
    stream: TextIO | None = None,
) -> RunResult:
    """Fetch *target* once and return the result carrying the captured payload."""
    features = Features.from_settings(settings.detection, settings.diagnostics)
    pipeline = build_pipeline(target, plan_fetch_steps(target, features, selection))

    dispatcher = NotificationDispatcher(
        [LogNotifier()],
        queue_size=settings.dispatch.queue_size,
        max_producers=settings.dispatch.max_producers,
    )
    diagnostics = _diagnostics_router(settings, store, stream)
    drain = settings.dispatch.drain_timeout_sec

    dispatcher.start()
    diagnostics.start()
    try:
        runner = _build_runner(settings, diagnostics, dispatcher.dispatch, launcher, agents)
        return await FetchExecutor(runner, pipeline).run()
    finally:
        await dispatcher.close(drain)
        await diagnostics.close(drain)


async def run_watch(
    settings: Settings,
    targets: Sequence[Target],
    notifiers: Sequence[Notifier],
    *,
    store: DumpStore | None = None,
    launcher: SessionFactory | None = None,
    agents: AgentManager | None = None,
    stream: TextIO | None = None,
    max_cycles: int | None = None,
) -> WatchExecutor:
    """Watch *targets* until cancelled (or for *max_cycles* cycles).

    Returns the executor so callers can inspect cycle counts and the last
    cycle's results.
    """
    pipelines = build_watch_pipelines(settings, targets)
    for pipeline in pipelines:
        logger.info("URL [%s]: %s", pipeline.url, " -> ".join(pipeline.step_names))

    dispatcher = NotificationDispatcher(
        notifiers,
        queue_size=settings.dispatch.queue_size,
        max_producers=settings.dispatch.max_producers,
    )
    diagnostics = _diagnostics_router(settings, store, stream)
    drain = settings.dispatch.drain_timeout_sec

    dispatcher.start()
    diagnostics.start()
    try:
        runner = _build_runner(settings, diagnostics, dispatcher.dispatch, launcher, agents)
        executor = WatchExecutor(
            runner,
            pipelines,
            interval_sec=settings.watch.interval_sec,
            max_cycles=max_cycles,
        )
        await executor.run()
        return executor
    finally:
        await dispatcher.close(drain)
        await diagnostics.close(drain)
