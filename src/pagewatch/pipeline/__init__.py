"""Per-target action pipelines."""

from pagewatch.pipeline.builder import (
    Features,
    FetchSelection,
    Pipeline,
    build_pipeline,
    plan_fetch_steps,
    plan_watch_steps,
)
from pagewatch.pipeline.context import Action, ActionSequence, RunContext
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

__all__ = [
    "AccessDeniedStep",
    "Action",
    "ActionSequence",
    "CaptchaStep",
    "CaptureStep",
    "ExtractStep",
    "Features",
    "FetchSelection",
    "NavigateStep",
    "NotifyPathStep",
    "Pipeline",
    "RunContext",
    "Step",
    "WaitStep",
    "build_pipeline",
    "plan_fetch_steps",
    "plan_watch_steps",
]
