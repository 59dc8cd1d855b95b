"""Planning and assembly of per-target pipelines.

Pipelines are built once at process start and re-run every cycle::

    features = Features.from_settings(settings.detection, settings.diagnostics)
    steps = plan_watch_steps(target, features)
    pipeline = build_pipeline(target, steps)
    await pipeline.run(ctx)
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pagewatch.pipeline.context import ActionSequence, RunContext
from pagewatch.pipeline.steps import (
    AccessDeniedStep,
    CaptchaStep,
    CaptureStep,
    ExtractStep,
    NavigateStep,
    NotifyPathStep,
    Step,
    WaitStep,
)

if TYPE_CHECKING:
    from pagewatch.models.target import Target
    from pagewatch.settings.config import DetectionSettings, DiagnosticsSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Features:
    """Global switches that decide which optional steps a pipeline gets."""

    detect_notify_path: bool = False
    detect_access_denied: bool = False
    detect_captcha_box: bool = False
    dump_on_error: bool = False
    location_on_error: bool = False
    access_denied_marker: str = "Access Denied"

    @classmethod
    def from_settings(cls, detection: DetectionSettings, diagnostics: DiagnosticsSettings) -> Features:
        return cls(
            detect_notify_path=detection.detect_notify_path,
            detect_access_denied=detection.detect_access_denied,
            detect_captcha_box=detection.detect_captcha_box,
            dump_on_error=diagnostics.error_dump,
            location_on_error=diagnostics.error_location,
            access_denied_marker=detection.access_denied_marker,
        )


@dataclass(frozen=True)
class FetchSelection:
    """Which part of the page a fetch run should capture."""

    text_selector: str = ""
    href_selector: str = ""
    id_selector: str = ""


def _leading_steps(target: Target, features: Features) -> list[Step]:
    steps: list[Step] = [NavigateStep(target.url)]

    if features.detect_notify_path and target.notify_path:
        steps.append(NotifyPathStep(target.url, target.notify_path))

    if features.detect_access_denied:
        steps.append(
            AccessDeniedStep(
                target.url,
                marker=features.access_denied_marker,
                location_on_error=features.location_on_error,
                dump_on_error=features.dump_on_error,
            )
        )

    if features.detect_captcha_box and target.captcha is not None:
        steps.append(CaptchaStep(target.url, target.captcha, dump_on_error=features.dump_on_error))

    if target.wait_selector:
        steps.append(
            WaitStep(
                target.url,
                target.wait_selector,
                location_on_error=features.location_on_error,
                dump_on_error=features.dump_on_error,
            )
        )
    return steps


def plan_watch_steps(target: Target, features: Features) -> list[Step]:
    """Return the ordered steps of a watch pipeline for *target*."""
    steps = _leading_steps(target, features)
    steps.append(
        ExtractStep(
            target.url,
            check_selector=target.check_selector,
            check_type=target.check_type,
            expected_text=target.expected_text,
        )
    )
    return steps


def plan_fetch_steps(target: Target, features: Features, selection: FetchSelection | None = None) -> list[Step]:
    """Return the ordered steps of a one-shot fetch pipeline for *target*."""
    selection = selection or FetchSelection()
    steps = _leading_steps(target, features)
    steps.append(
        CaptureStep(
            target.url,
            text_selector=selection.text_selector,
            href_selector=selection.href_selector,
            id_selector=selection.id_selector,
        )
    )
    return steps


@dataclass(frozen=True)
class Pipeline:
    """An immutable, ordered sequence of actions for one target."""

    target: Target
    actions: ActionSequence
    step_names: tuple[str, ...]

    @property
    def url(self) -> str:
        return self.target.url

    def __len__(self) -> int:
        return len(self.actions)

    async def run(self, ctx: RunContext) -> None:
        """Execute every action in order; the first exception ends the run."""
        for action in self.actions:
            await action(ctx)


def build_pipeline(target: Target, steps: Sequence[Step]) -> Pipeline:
    """Fold *steps* into a pipeline, each step extending the sequence in turn."""
    actions: ActionSequence = functools.reduce(lambda sequence, step: step.extend(sequence), steps, ())
    names = tuple(step.name for step in steps)
    logger.debug("Built pipeline for URL [%s]: %s", target.url, " -> ".join(names))
    return Pipeline(target=target, actions=actions, step_names=names)
