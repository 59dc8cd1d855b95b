"""Records that flow out of a pipeline run: notifications, dumps, and run results."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NotificationEvent(BaseModel):
    """A change worth telling someone about.

    ``text`` is the extracted content that differed from the expected text, the
    location that matched a notify path, or ``None`` when reaching the wait
    condition was the only signal.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    text: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DumpCategory(str, Enum):
    """Diagnostic channels; the values double as persistence key prefixes."""

    WAIT_ERROR = "wait-errors"
    DETECT_ERROR = "detect-errors"
    CAPTCHA_DUMP = "captcha-dumps"


class DumpRecord(BaseModel):
    """Page content captured around a step that failed."""

    model_config = ConfigDict(frozen=True)

    category: DumpCategory
    url: str
    content: str
    timestamp: int = Field(default_factory=lambda: int(time.time()))

    @property
    def key(self) -> str:
        """Composite persistence key: ``{category}-{unix timestamp}-{url}``."""
        return f"{self.category.value}-{self.timestamp}-{self.url}"


class RunResult(BaseModel):
    """Outcome of executing one target's pipeline in one browser session."""

    url: str
    agent: str = ""
    error: str = ""
    error_type: str = ""
    recoverable: bool = True
    payload: str | None = None
    duration_sec: float = 0.0

    @property
    def succeeded(self) -> bool:
        return not self.error
