"""Watched targets and their construction from configuration.

The configuration surface describes targets as parallel lists (``urls``,
``wait_selectors``, ``check_selectors`` ...) where index *i* of every list
belongs to URL *i*. ``build_targets`` validates the lists against each other
and produces one immutable ``Target`` per URL.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, field_validator

from pagewatch.exceptions import ConfigurationError

if TYPE_CHECKING:
    from pagewatch.settings.config import DetectionSettings, WatchSettings

logger = logging.getLogger(__name__)


class CheckType(str, Enum):
    """How content is pulled out of a page for comparison."""

    TEXT = "text"  # text content of the selector
    HREF = "href"  # href attribute of the first matching node
    ID = "id"  # text content of the element with this id
    DUMP = "dump"  # outer HTML of <head> + <body>


class CaptchaSelectors(BaseModel):
    """Selectors that drive the CAPTCHA box state machine for one target."""

    model_config = ConfigDict(frozen=True)

    wait_selector: str
    click_selector: str
    iframe_wait_selector: str
    iframe_uri: str
    challenge_wait_selector: str
    click_sleep_sec: float = 0.0


class Target(BaseModel):
    """One watched URL with its selectors.

    Immutable once built; the pipeline for a target is constructed once at
    process start and only its execution repeats.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    wait_selector: str = ""
    check_selector: str = ""
    check_type: CheckType = CheckType.DUMP
    expected_text: str = ""
    notify_path: str = ""
    captcha: CaptchaSelectors | None = None

    @field_validator("url")
    @classmethod
    def _require_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Target URL must be non-empty")
        return v

    @property
    def has_check(self) -> bool:
        """True when both a check selector and an expected text are configured."""
        return bool(self.check_selector) and bool(self.expected_text)


def _per_target(name: str, values: list[str], count: int, *, strip: bool = True) -> list[str]:
    """Return *values* padded to *count* when empty, or fail on a length mismatch."""
    if not values:
        return [""] * count
    if len(values) != count:
        raise ConfigurationError(
            f"Number of URLs ({count}) and {name} ({len(values)}) passed in must have the same length"
        )
    return [v.strip() for v in values] if strip else list(values)


def _parse_check_type(raw: str, url: str) -> CheckType:
    if not raw:
        return CheckType.DUMP
    try:
        return CheckType(raw.lower())
    except ValueError:
        allowed = ", ".join(t.value for t in CheckType)
        raise ConfigurationError(f"Unsupported check type [{raw}] for URL [{url}] (expected one of: {allowed})") from None


def captcha_selectors_for(
    detection: DetectionSettings,
    *,
    url: str = "",
    wait_selector: str = "",
    click_selector: str = "",
) -> CaptchaSelectors | None:
    """Return the CAPTCHA selectors for one target, or ``None`` when detection is off.

    Empty per-target overrides fall back to the global selectors.
    """
    if not detection.detect_captcha_box:
        return None
    if wait_selector:
        logger.info("Using override captcha wait selector [%s] for URL [%s]", wait_selector, url)
    if click_selector:
        logger.info("Using override captcha click selector [%s] for URL [%s]", click_selector, url)
    return CaptchaSelectors(
        wait_selector=wait_selector or detection.captcha_wait_selector,
        click_selector=click_selector or detection.captcha_click_selector,
        iframe_wait_selector=detection.captcha_iframe_wait_selector,
        iframe_uri=detection.captcha_iframe_uri,
        challenge_wait_selector=detection.captcha_challenge_wait_selector,
        click_sleep_sec=detection.captcha_click_sleep_sec,
    )


def build_targets(watch: WatchSettings, detection: DetectionSettings) -> list[Target]:
    """Turn the parallel-list watch configuration into ``Target`` objects.

    Args:
        watch: Watch section holding the per-target lists.
        detection: Detection section supplying global CAPTCHA selectors.

    Returns:
        Targets in configuration order.

    Raises:
        ConfigurationError: On missing URLs, mismatched list lengths, or
            invalid check types.
    """
    urls = [u.strip() for u in watch.urls]
    if not urls:
        raise ConfigurationError("We require a non-empty list of URLs")
    if not all(urls):
        raise ConfigurationError("Every configured URL must be non-empty")

    count = len(urls)
    if len(watch.wait_selectors) != count:
        raise ConfigurationError(
            f"Number of URLs ({count}) and wait_selectors ({len(watch.wait_selectors)}) passed in must have the same length"
        )
    wait_selectors = _per_target("wait_selectors", watch.wait_selectors, count)
    check_selectors = _per_target("check_selectors", watch.check_selectors, count)
    check_types = _per_target("check_types", watch.check_types, count)
    expected_texts = _per_target("expected_texts", watch.expected_texts, count, strip=False)
    notify_paths = _per_target("notify_paths", watch.notify_paths, count)
    captcha_waits = _per_target("captcha_wait_selectors", watch.captcha_wait_selectors, count)
    captcha_clicks = _per_target("captcha_click_selectors", watch.captcha_click_selectors, count)

    targets: list[Target] = []
    for i, url in enumerate(urls):
        captcha = captcha_selectors_for(
            detection,
            url=url,
            wait_selector=captcha_waits[i],
            click_selector=captcha_clicks[i],
        )
        targets.append(
            Target(
                url=url,
                wait_selector=wait_selectors[i],
                check_selector=check_selectors[i],
                check_type=_parse_check_type(check_types[i], url),
                expected_text=expected_texts[i],
                notify_path=notify_paths[i],
                captcha=captcha,
            )
        )

    return targets


def validate_detection(detection: DetectionSettings) -> None:
    """Fail fast when CAPTCHA detection is enabled without a usable selector set."""
    if not detection.detect_captcha_box:
        return
    required = {
        "captcha_wait_selector": detection.captcha_wait_selector,
        "captcha_click_selector": detection.captcha_click_selector,
        "captcha_iframe_wait_selector": detection.captcha_iframe_wait_selector,
        "captcha_iframe_uri": detection.captcha_iframe_uri,
        "captcha_challenge_wait_selector": detection.captcha_challenge_wait_selector,
    }
    missing = [name for name, value in required.items() if not value.strip()]
    if missing:
        raise ConfigurationError(
            "CAPTCHA box detection requires non-empty selectors: " + ", ".join(missing)
        )
