"""Executors that drive pipelines through browser sessions.

* ``SessionRunner`` runs one pipeline in one fresh browser session and turns
  every expected failure into a ``RunResult``.
* ``FetchExecutor`` runs a single pipeline once (``pagewatch fetch``).
* ``WatchExecutor`` re-runs every pipeline on a fixed interval
  (``pagewatch watch``). Targets run one after another in configuration
  order; a failure on one target never stops the cycle.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from typing import TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError

from pagewatch.browser.extract import first_line
from pagewatch.exceptions import CycleError, SessionError
from pagewatch.models.events import RunResult
from pagewatch.pipeline.context import RunContext

if TYPE_CHECKING:
    from pagewatch.browser.agents import AgentManager
    from pagewatch.browser.session import SessionFactory
    from pagewatch.dispatch.diagnostics import DiagnosticsRouter
    from pagewatch.models.events import NotificationEvent
    from pagewatch.pipeline.builder import Pipeline

logger = logging.getLogger(__name__)


class ExecutorState(str, Enum):
    INIT = "init"
    RUN_ONCE = "run_once"
    RUN_CYCLE = "run_cycle"
    SLEEP = "sleep"
    DONE = "done"


class SessionRunner:
    """Execute a pipeline inside a one-shot browser session.

    Args:
        launcher: Opens a browser session for a user agent.
        agents: Per-target user-agent state, shared across runs.
        diagnostics: Destination for failure dumps.
        notify: Non-blocking notification callback.
        timeout_sec: Overall deadline for one run (0 = none).
        action_timeout_ms: Timeout for individual waits and clicks.
    """

    def __init__(
        self,
        launcher: SessionFactory,
        agents: AgentManager,
        diagnostics: DiagnosticsRouter,
        notify: Callable[[NotificationEvent], None],
        *,
        timeout_sec: float = 0,
        action_timeout_ms: int = 30_000,
    ) -> None:
        self.launcher = launcher
        self.agents = agents
        self.diagnostics = diagnostics
        self.notify = notify
        self.timeout_sec = timeout_sec
        self.action_timeout_ms = action_timeout_ms

    async def run(self, pipeline: Pipeline) -> RunResult:
        """Run *pipeline* once and classify the outcome. Never raises for expected failures."""
        url = pipeline.url
        agent = self.agents.select_agent(url)
        started = time.monotonic()

        def result(**fields: object) -> RunResult:
            return RunResult(url=url, agent=agent, duration_sec=round(time.monotonic() - started, 3), **fields)

        try:
            payload = await self._with_deadline(self._execute(pipeline, agent))
        except CycleError as exc:
            logger.warning("Run for URL [%s] ended early: %s", url, exc)
            return result(error=str(exc), error_type=type(exc).__name__)
        except SessionError as exc:
            logger.error("Session for URL [%s] failed: %s", url, exc)
            return result(error=str(exc), error_type=type(exc).__name__, recoverable=False)
        except PlaywrightError as exc:
            logger.error("Browser error for URL [%s]: %s", url, first_line(exc))
            return result(error=first_line(exc), error_type=type(exc).__name__, recoverable=False)
        except TimeoutError:
            logger.error("Run for URL [%s] exceeded the overall timeout of %ss", url, self.timeout_sec)
            return result(
                error=f"run exceeded the overall timeout of {self.timeout_sec}s",
                error_type="TimeoutError",
                recoverable=False,
            )
        except Exception as exc:
            # Anything else still yields a result so the watch loop moves on.
            logger.exception("Unexpected failure for URL [%s]", url)
            return result(error=str(exc), error_type=type(exc).__name__, recoverable=False)

        logger.debug("Run for URL [%s] completed in %.2fs", url, time.monotonic() - started)
        return result(payload=payload)

    async def _with_deadline(self, coro: Awaitable[str | None]) -> str | None:
        if self.timeout_sec and self.timeout_sec > 0:
            return await asyncio.wait_for(coro, self.timeout_sec)
        return await coro

    async def _execute(self, pipeline: Pipeline, agent: str) -> str | None:
        async with self.launcher.session(agent, url=pipeline.url) as page:
            ctx = RunContext(
                page=page,
                target=pipeline.target,
                agents=self.agents,
                notify=self.notify,
                diagnostics=self.diagnostics,
                timeout_ms=self.action_timeout_ms,
            )
            await pipeline.run(ctx)
            return ctx.payload


class FetchExecutor:
    """Run exactly one pipeline once and hand back its result."""

    def __init__(self, runner: SessionRunner, pipeline: Pipeline) -> None:
        self.runner = runner
        self.pipeline = pipeline
        self.state = ExecutorState.INIT

    async def run(self) -> RunResult:
        self.state = ExecutorState.RUN_ONCE
        logger.info("Fetching content from: [%s]", self.pipeline.url)
        try:
            return await self.runner.run(self.pipeline)
        finally:
            self.state = ExecutorState.DONE


class WatchExecutor:
    """Poll every pipeline on a fixed interval.

    Args:
        runner: Executes one pipeline per browser session.
        pipelines: One pipeline per target, in configuration order.
        interval_sec: Target time between cycle starts.
        max_cycles: Stop after this many cycles (``None`` = run forever).
        sleep: Injectable sleep coroutine.
    """

    def __init__(
        self,
        runner: SessionRunner,
        pipelines: Sequence[Pipeline],
        *,
        interval_sec: float = 30,
        max_cycles: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.runner = runner
        self.pipelines = tuple(pipelines)
        self.interval_sec = interval_sec
        self.max_cycles = max_cycles
        self._sleep = sleep
        self.state = ExecutorState.INIT
        self.cycles = 0
        self.last_results: list[RunResult] = []

    async def run_cycle(self) -> list[RunResult]:
        """Run every pipeline once, in order."""
        self.state = ExecutorState.RUN_CYCLE
        results: list[RunResult] = []
        for pipeline in self.pipelines:
            result = await self.runner.run(pipeline)
            if not result.succeeded:
                logger.info("Cycle %d: URL [%s] failed (%s)", self.cycles + 1, result.url, result.error_type)
            results.append(result)
        self.cycles += 1
        self.last_results = results
        return results

    async def run(self) -> None:
        logger.info("Watching %d target(s) every %ss", len(self.pipelines), self.interval_sec)
        try:
            while self.max_cycles is None or self.cycles < self.max_cycles:
                started = time.monotonic()
                await self.run_cycle()
                if self.max_cycles is not None and self.cycles >= self.max_cycles:
                    break

                remaining = max(0.0, self.interval_sec - (time.monotonic() - started))
                self.state = ExecutorState.SLEEP
                logger.debug("Cycle %d done, sleeping %.1fs", self.cycles, remaining)
                await self._sleep(remaining)
        finally:
            self.state = ExecutorState.DONE
