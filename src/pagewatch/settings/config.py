"""Configuration loader for pagewatch using Pydantic settings.

Config precedence (highest wins):
  1. CLI flags (passed as explicit overrides)
  2. Environment variables (PAGEWATCH_* with __ for nesting)
  3. settings.local.toml
  4. settings.{env}.toml
  5. settings.default.toml
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("PAGEWATCH_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "PAGEWATCH_ENV"
DEFAULT_ENV = "local"

DEFAULT_USER_AGENTS: list[str] = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 11_1_0) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/87.0.4280.88 Safari/537.36",
]


def _resolve_env() -> str:
    return (os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()


def _load_toml(path: Path) -> dict[str, Any]:
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class BrowserSettings(BaseSettings):
    """Playwright browser session settings."""

    model_config = SettingsConfigDict(env_prefix="PAGEWATCH_BROWSER__")

    headless: bool = True
    user_data_dir: str = ""
    agents: list[str] = Field(default_factory=lambda: list(DEFAULT_USER_AGENTS))
    timeout_sec: int = 0  # overall deadline per target run, 0 = none
    action_timeout_ms: int = 30_000
    stealth_scripts: bool = True
    sandbox: bool = False


class DetectionSettings(BaseSettings):
    """Anti-bot detection flags and CAPTCHA selectors."""

    model_config = SettingsConfigDict(env_prefix="PAGEWATCH_DETECTION__")

    detect_notify_path: bool = False
    detect_access_denied: bool = False
    detect_captcha_box: bool = False
    access_denied_marker: str = "Access Denied"

    captcha_wait_selector: str = "div.re-captcha"
    captcha_click_selector: str = "div.g-recaptcha"
    captcha_iframe_wait_selector: str = "/html/body/div[6]/div[4]/iframe"
    captcha_iframe_uri: str = "recaptcha/api2/bframe"
    captcha_challenge_wait_selector: str = "div.rc-imageselect-payload"
    captcha_click_sleep_sec: float = 5.0


class DiagnosticsSettings(BaseSettings):
    """Failure diagnostics: page dumps, locations, and the Redis dump store."""

    model_config = SettingsConfigDict(env_prefix="PAGEWATCH_DIAGNOSTICS__")

    error_dump: bool = False
    error_location: bool = False
    redis_dumps: bool = False
    redis_url: str = ""
    redis_password: str = ""
    redis_key_expiration_sec: int = 0
    redis_write_timeout_sec: int = 5


class WatchSettings(BaseSettings):
    """Watched targets as parallel per-target lists, plus the polling interval."""

    model_config = SettingsConfigDict(env_prefix="PAGEWATCH_WATCH__")

    interval_sec: int = 30
    urls: list[str] = Field(default_factory=list)
    wait_selectors: list[str] = Field(default_factory=list)
    check_selectors: list[str] = Field(default_factory=list)
    check_types: list[str] = Field(default_factory=list)
    expected_texts: list[str] = Field(default_factory=list)
    notify_paths: list[str] = Field(default_factory=list)
    captcha_wait_selectors: list[str] = Field(default_factory=list)
    captcha_click_selectors: list[str] = Field(default_factory=list)


class DispatchSettings(BaseSettings):
    """Handoff queue sizing for notifiers and dump persistence."""

    model_config = SettingsConfigDict(env_prefix="PAGEWATCH_DISPATCH__")

    queue_size: int = 100
    max_producers: int = 32
    drain_timeout_sec: float = 10.0


class DiscordSettings(BaseSettings):
    """Webhook notifier configuration."""

    model_config = SettingsConfigDict(env_prefix="PAGEWATCH_DISCORD__")

    webhook_url: str = ""
    username: str = "Pagewatch Alert"
    timeout_sec: float = 10.0


class EmailSettings(BaseSettings):
    """SMTP notifier configuration."""

    model_config = SettingsConfigDict(env_prefix="PAGEWATCH_EMAIL__")

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    from_addr: str = ""
    to_addr: str = ""
    subject: str = "Pagewatch Watcher"
    password: str = ""


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root pagewatch settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="PAGEWATCH_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    project_root: Path = Field(default=PROJECT_ROOT)
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool = False

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    diagnostics: DiagnosticsSettings = Field(default_factory=DiagnosticsSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)
    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)

    @model_validator(mode="before")
    @classmethod
    def _merge_toml_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Layer TOML config files before env var and explicit overrides."""
        defaults = _load_toml(CONFIG_DIR / "settings.default.toml")
        env_name = (values.get("env") or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()
        env_overrides = _load_toml(CONFIG_DIR / f"settings.{env_name}.toml")
        local_overrides = _load_toml(CONFIG_DIR / "settings.local.toml")

        # Merge: defaults < env-specific < local < explicit values
        merged: dict[str, Any] = {}
        for layer in (defaults, env_overrides, local_overrides, values):
            for key, val in layer.items():
                if isinstance(val, dict) and isinstance(merged.get(key), dict):
                    merged[key] = {**merged[key], **val}
                else:
                    merged[key] = val
        return merged

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize a relative browser profile directory against project_root."""
        data_dir = self.browser.user_data_dir
        if data_dir and not Path(data_dir).expanduser().is_absolute():
            self.browser.user_data_dir = str(self.project_root / data_dir)
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()


def load_settings(**overrides: Any) -> Settings:
    """Build an uncached ``Settings`` with explicit nested overrides.

    Used by the CLI so flags win over TOML and environment values::

        load_settings(browser={"headless": False}, watch={"interval_sec": 10})
    """
    cleaned = {key: val for key, val in overrides.items() if val not in (None, {})}
    return Settings(**cleaned)
