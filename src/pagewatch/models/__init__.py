"""Data models shared across the pipeline, executors, and dispatch."""

from pagewatch.models.events import DumpCategory, DumpRecord, NotificationEvent, RunResult
from pagewatch.models.target import (
    CaptchaSelectors,
    CheckType,
    Target,
    build_targets,
    captcha_selectors_for,
    validate_detection,
)

__all__ = [
    "CaptchaSelectors",
    "CheckType",
    "DumpCategory",
    "DumpRecord",
    "NotificationEvent",
    "RunResult",
    "Target",
    "build_targets",
    "captcha_selectors_for",
    "validate_detection",
]
