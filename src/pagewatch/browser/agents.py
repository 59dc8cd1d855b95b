"""User-agent selection with a sticky-until-failure policy.

Each target URL keeps a ``SessionState``: the agent picked for the current
attempt and the agent last known to work. A working agent is reused for every
run until a navigation fails or access is denied; then it is cleared and the
next run draws a fresh agent from the pool.

The manager is owned by an executor instance, so several engines can share a
process without sharing agent state. Targets run one at a time, so the state
for a URL is never touched by two runs at once and no lock is needed.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace

from pagewatch.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """Agent bookkeeping for one target URL."""

    selected_agent: str = ""
    working_agent: str = ""


class AgentManager:
    """Chooses a browser identity per target and remembers which one works.

    Args:
        agents: The user-agent pool. Read-only after construction.
        seed_source: Returns a fresh seed for every random pick; defaults to
            wall-clock nanoseconds so picks do not repeat deterministically.
    """

    def __init__(self, agents: Sequence[str], seed_source: Callable[[], int] = time.time_ns) -> None:
        self._agents = tuple(a.strip() for a in agents if a.strip())
        if not self._agents:
            raise ConfigurationError("At least one user agent is required")
        self._seed_source = seed_source
        self._states: dict[str, SessionState] = {}

    @property
    def pool(self) -> tuple[str, ...]:
        return self._agents

    def __len__(self) -> int:
        return len(self._agents)

    def state(self, url: str) -> SessionState:
        """Return a copy of the session state for *url*."""
        return replace(self._states.get(url, SessionState()))

    def select_agent(self, url: str) -> str:
        """Return the agent to use for the next attempt against *url*."""
        state = self._states.setdefault(url, SessionState())
        if state.working_agent:
            logger.info("Last working agent was [%s] for URL [%s], so will continue using it", state.working_agent, url)
            return state.working_agent

        state.selected_agent = self._random_agent()
        logger.info(
            "No working agent for URL [%s], so using selected user-agent [%s] for this attempt",
            url,
            state.selected_agent,
        )
        return state.selected_agent

    def record_success(self, url: str) -> None:
        """Promote the selected agent to working after a successful navigation."""
        state = self._states.setdefault(url, SessionState())
        if not state.working_agent and state.selected_agent:
            logger.info(
                "User-agent [%s] for URL [%s] succeeded, so it will be set as the current working agent",
                state.selected_agent,
                url,
            )
            state.working_agent = state.selected_agent

    def record_failure(self, url: str) -> None:
        """Forget the working agent after a failed navigation."""
        self.invalidate(url, reason="navigation failed")

    def invalidate(self, url: str, reason: str = "") -> None:
        """Clear the working agent so the next attempt rotates identity."""
        state = self._states.setdefault(url, SessionState())
        if state.working_agent:
            logger.warning(
                "User-agent [%s] for URL [%s] no longer working (%s), will try a different one on the next request",
                state.working_agent,
                url,
                reason or "unspecified",
            )
        state.working_agent = ""

    def _random_agent(self) -> str:
        rng = random.Random(self._seed_source())
        pool = list(self._agents)
        rng.shuffle(pool)
        return rng.choice(pool)
