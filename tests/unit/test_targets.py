"""Unit tests for pagewatch.models: target building and event records."""

from __future__ import annotations

import pytest

from pagewatch.exceptions import ConfigurationError
from pagewatch.models import (
    CheckType,
    DumpCategory,
    DumpRecord,
    NotificationEvent,
    RunResult,
    Target,
    build_targets,
    validate_detection,
)
from pagewatch.settings.config import DetectionSettings, WatchSettings


def _watch(**kwargs) -> WatchSettings:
    return WatchSettings.model_validate(kwargs)


def _detection(**kwargs) -> DetectionSettings:
    return DetectionSettings.model_validate(kwargs)


class TestBuildTargets:
    def test_minimal_configuration(self) -> None:
        targets = build_targets(_watch(urls=["https://a.example"], wait_selectors=["#ready"]), _detection())
        assert targets == [Target(url="https://a.example", wait_selector="#ready")]
        assert targets[0].check_type is CheckType.DUMP
        assert targets[0].captcha is None
        assert targets[0].has_check is False

    def test_full_configuration_keeps_order(self) -> None:
        watch = _watch(
            urls=["https://a.example", "https://b.example"],
            wait_selectors=["#a", "//div[@id='b']"],
            check_selectors=["#price", "a.next"],
            check_types=["text", "HREF"],
            expected_texts=["$10 ", "/page/2"],
            notify_paths=["", "/checkout"],
        )
        a, b = build_targets(watch, _detection())
        assert a.url == "https://a.example"
        assert a.check_type is CheckType.TEXT
        assert a.expected_text == "$10 "
        assert a.has_check is True
        assert b.check_type is CheckType.HREF
        assert b.notify_path == "/checkout"

    def test_empty_urls_is_fatal(self) -> None:
        with pytest.raises(ConfigurationError, match="non-empty list of URLs"):
            build_targets(_watch(), _detection())

    def test_blank_url_is_fatal(self) -> None:
        with pytest.raises(ConfigurationError):
            build_targets(_watch(urls=["https://a.example", " "], wait_selectors=["", ""]), _detection())

    def test_wait_selectors_must_match_urls(self) -> None:
        with pytest.raises(ConfigurationError, match="wait_selectors"):
            build_targets(_watch(urls=["https://a.example", "https://b.example"], wait_selectors=["#a"]), _detection())

    def test_missing_wait_selectors_is_fatal(self) -> None:
        with pytest.raises(ConfigurationError, match="wait_selectors"):
            build_targets(_watch(urls=["https://a.example"]), _detection())

    @pytest.mark.parametrize(
        "field",
        ["check_selectors", "check_types", "expected_texts", "notify_paths", "captcha_wait_selectors"],
    )
    def test_optional_list_length_mismatch_is_fatal(self, field: str) -> None:
        watch = _watch(urls=["https://a.example", "https://b.example"], wait_selectors=["#a", "#b"], **{field: ["x"]})
        with pytest.raises(ConfigurationError, match=field):
            build_targets(watch, _detection())

    def test_invalid_check_type_is_fatal(self) -> None:
        watch = _watch(urls=["https://a.example"], wait_selectors=["#a"], check_types=["html"])
        with pytest.raises(ConfigurationError, match="Unsupported check type"):
            build_targets(watch, _detection())


class TestCaptchaSelectors:
    def test_global_selectors_used_when_detection_enabled(self) -> None:
        (target,) = build_targets(
            _watch(urls=["https://a.example"], wait_selectors=["#a"]),
            _detection(detect_captcha_box=True),
        )
        assert target.captcha is not None
        assert target.captcha.wait_selector == "div.re-captcha"
        assert target.captcha.click_selector == "div.g-recaptcha"
        assert target.captcha.iframe_uri == "recaptcha/api2/bframe"

    def test_per_target_override_falls_back_when_empty(self) -> None:
        watch = _watch(
            urls=["https://a.example", "https://b.example"],
            wait_selectors=["#a", "#b"],
            captcha_wait_selectors=["div.custom-box", ""],
            captcha_click_selectors=["", "button.custom-click"],
        )
        a, b = build_targets(watch, _detection(detect_captcha_box=True))
        assert a.captcha.wait_selector == "div.custom-box"
        assert a.captcha.click_selector == "div.g-recaptcha"
        assert b.captcha.wait_selector == "div.re-captcha"
        assert b.captcha.click_selector == "button.custom-click"

    def test_validate_detection_requires_selectors(self) -> None:
        with pytest.raises(ConfigurationError, match="captcha_iframe_uri"):
            validate_detection(_detection(detect_captcha_box=True, captcha_iframe_uri=" "))

    def test_validate_detection_ignores_disabled_detection(self) -> None:
        validate_detection(_detection(detect_captcha_box=False, captcha_iframe_uri=""))


class TestRecords:
    def test_dump_key_format(self) -> None:
        record = DumpRecord(
            category=DumpCategory.WAIT_ERROR,
            url="https://a.example",
            content="<html/>",
            timestamp=1700000000,
        )
        assert record.key == "wait-errors-1700000000-https://a.example"

    def test_category_prefixes(self) -> None:
        assert [c.value for c in DumpCategory] == ["wait-errors", "detect-errors", "captcha-dumps"]

    def test_event_text_is_optional(self) -> None:
        event = NotificationEvent(url="https://a.example")
        assert event.text is None
        assert event.created_at.tzinfo is not None

    def test_run_result_success(self) -> None:
        assert RunResult(url="https://a.example").succeeded is True
        assert RunResult(url="https://a.example", error="boom").succeeded is False
