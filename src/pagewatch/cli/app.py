"""Unified CLI entry point for pagewatch.

Config precedence: settings.default.toml -> settings.{env}.toml -> settings.local.toml
-> env vars (PAGEWATCH_* with double underscores) -> CLI flags.
"""

from __future__ import annotations

from typing import List, Optional

import typer

from pagewatch.cli.common import CliOptions
from pagewatch.cli.fetch import fetch
from pagewatch.cli.settings_cmd import settings_app
from pagewatch.cli.watch import watch_app

try:
    from importlib.metadata import version

    VERSION = version("pagewatch")
except Exception:
    VERSION = "unknown"

APP_HELP = (
    "pagewatch: watch dynamic web pages through a headless browser and notify on change. "
    "Config precedence: settings.default.toml -> settings.local.toml -> env vars (PAGEWATCH_* with __) -> CLI flags."
)

app = typer.Typer(add_completion=True, help=APP_HELP)

app.command("fetch")(fetch)
app.add_typer(watch_app, name="watch")
app.add_typer(settings_app, name="settings")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    headless: Optional[bool] = typer.Option(None, "--headless/--headed", help="Run Chromium without a window."),
    user_data_dir: Optional[str] = typer.Option(None, "--user-data-dir", help="Persistent browser profile directory (headed mode)."),
    agents: Optional[List[str]] = typer.Option(None, "--agent", "-a", help="User agent to rotate through (repeatable)."),
    timeout: Optional[int] = typer.Option(None, "--timeout", "-t", min=0, help="Overall seconds per target run (0 = none)."),
    action_timeout: Optional[int] = typer.Option(None, "--action-timeout", min=1, help="Milliseconds allowed per page action or wait."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
    json_logs: Optional[bool] = typer.Option(None, "--json-logs/--text-logs", help="Emit JSON log lines."),
    error_dump: Optional[bool] = typer.Option(None, "--error-dump/--no-error-dump", help="Dump page HTML when a step fails."),
    error_location: Optional[bool] = typer.Option(None, "--error-location/--no-error-location", help="Log the page location when a step fails."),
    detect_notify_path: Optional[bool] = typer.Option(None, "--detect-notify-path/--no-detect-notify-path", help="Notify when redirected to a notify path."),
    detect_access_denied: Optional[bool] = typer.Option(None, "--detect-access-denied/--no-detect-access-denied", help="Rotate user agents on access-denied pages."),
    detect_captcha_box: Optional[bool] = typer.Option(None, "--detect-captcha-box/--no-detect-captcha-box", help="Click through CAPTCHA boxes."),
    captcha_wait_selector: Optional[str] = typer.Option(None, "--captcha-wait-selector", help="Default selector of the CAPTCHA box."),
    captcha_click_selector: Optional[str] = typer.Option(None, "--captcha-click-selector", help="Default selector clicked to open the CAPTCHA."),
    captcha_iframe_wait_selector: Optional[str] = typer.Option(None, "--captcha-iframe-wait-selector", help="Selector of the CAPTCHA challenge iframe."),
    captcha_click_sleep: Optional[float] = typer.Option(None, "--captcha-click-sleep", min=0, help="Seconds to wait after clicking the CAPTCHA box."),
    redis_dumps: Optional[bool] = typer.Option(None, "--redis-dumps/--no-redis-dumps", help="Write dumps to Redis instead of stdout."),
    redis_url: Optional[str] = typer.Option(None, "--redis-url", help="Redis URL or host:port for dumps."),
    redis_password: Optional[str] = typer.Option(None, "--redis-password", help="Redis password."),
    redis_key_expiration: Optional[int] = typer.Option(None, "--redis-key-expiration", min=0, help="Dump key TTL in seconds (0 = none)."),
    redis_write_timeout: Optional[int] = typer.Option(None, "--redis-write-timeout", min=1, help="Seconds allowed per Redis dump write."),
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    """Collect options shared by every command; show help when no subcommand is provided."""
    if version:
        typer.echo(f"pagewatch {VERSION}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    ctx.obj = CliOptions(
        headless=headless,
        user_data_dir=user_data_dir,
        agents=agents or [],
        timeout_sec=timeout,
        action_timeout_ms=action_timeout,
        log_level=log_level,
        json_logs=json_logs,
        error_dump=error_dump,
        error_location=error_location,
        detect_notify_path=detect_notify_path,
        detect_access_denied=detect_access_denied,
        detect_captcha_box=detect_captcha_box,
        captcha_wait_selector=captcha_wait_selector,
        captcha_click_selector=captcha_click_selector,
        captcha_iframe_wait_selector=captcha_iframe_wait_selector,
        captcha_click_sleep_sec=captcha_click_sleep,
        redis_dumps=redis_dumps,
        redis_url=redis_url,
        redis_password=redis_password,
        redis_key_expiration_sec=redis_key_expiration,
        redis_write_timeout_sec=redis_write_timeout,
    )


if __name__ == "__main__":
    app()
