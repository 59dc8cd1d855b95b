"""Shared CLI plumbing: root options, settings loading, and fatal-error exits."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console

from pagewatch.logging_setup import configure_logging
from pagewatch.settings import Settings, load_settings

err_console = Console(stderr=True)

# Exit code for configuration errors, raised before any browser session starts.
CONFIG_ERROR_EXIT = 2


def present(**values: Any) -> dict[str, Any]:
    """Drop options the user did not pass so they don't mask TOML or env values."""
    return {key: val for key, val in values.items() if val is not None and val != []}


@dataclass
class CliOptions:
    """Options given on the root command, shared by every subcommand."""

    headless: bool | None = None
    user_data_dir: str | None = None
    agents: list[str] = field(default_factory=list)
    timeout_sec: int | None = None
    action_timeout_ms: int | None = None
    log_level: str | None = None
    json_logs: bool | None = None
    error_dump: bool | None = None
    error_location: bool | None = None
    detect_notify_path: bool | None = None
    detect_access_denied: bool | None = None
    detect_captcha_box: bool | None = None
    captcha_wait_selector: str | None = None
    captcha_click_selector: str | None = None
    captcha_iframe_wait_selector: str | None = None
    captcha_click_sleep_sec: float | None = None
    redis_dumps: bool | None = None
    redis_url: str | None = None
    redis_password: str | None = None
    redis_key_expiration_sec: int | None = None
    redis_write_timeout_sec: int | None = None

    def overrides(self) -> dict[str, Any]:
        return {
            "log_level": self.log_level,
            "json_logs": self.json_logs,
            "browser": present(
                headless=self.headless,
                user_data_dir=self.user_data_dir,
                agents=self.agents,
                timeout_sec=self.timeout_sec,
                action_timeout_ms=self.action_timeout_ms,
            ),
            "detection": present(
                detect_notify_path=self.detect_notify_path,
                detect_access_denied=self.detect_access_denied,
                detect_captcha_box=self.detect_captcha_box,
                captcha_wait_selector=self.captcha_wait_selector,
                captcha_click_selector=self.captcha_click_selector,
                captcha_iframe_wait_selector=self.captcha_iframe_wait_selector,
                captcha_click_sleep_sec=self.captcha_click_sleep_sec,
            ),
            "diagnostics": present(
                error_dump=self.error_dump,
                error_location=self.error_location,
                redis_dumps=self.redis_dumps,
                redis_url=self.redis_url,
                redis_password=self.redis_password,
                redis_key_expiration_sec=self.redis_key_expiration_sec,
                redis_write_timeout_sec=self.redis_write_timeout_sec,
            ),
        }


def fail(message: object) -> NoReturn:
    """Print a configuration error and exit with code 2."""
    err_console.print(f"[red]✗[/red] {message}")
    raise typer.Exit(code=CONFIG_ERROR_EXIT)


def load_or_exit(options: CliOptions | None, **sections: dict[str, Any]) -> Settings:
    """Resolve settings from root options plus per-command *sections*, then set up logging.

    Args:
        options: Root command options (``None`` when invoked programmatically).
        **sections: Extra per-section overrides, e.g. ``watch={"urls": [...]}``.
    """
    overrides = (options or CliOptions()).overrides()
    for name, values in sections.items():
        overrides[name] = {**overrides.get(name, {}), **present(**values)}

    try:
        settings = load_settings(**overrides)
    except ValidationError as exc:
        fail(f"Invalid configuration: {exc}")

    configure_logging(settings.log_level, json_logs=settings.json_logs)
    return settings
