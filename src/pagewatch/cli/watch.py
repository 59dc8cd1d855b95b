"""``pagewatch watch``: poll targets forever and notify on change.

Target flags live on the ``watch`` group; the notifier is picked by subcommand::

    pagewatch watch -u https://shop.example/item -w '#stock' \\
        -c '#stock' --check-type text -e 'Sold out' discord --webhook-url https://...
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, List, Optional

import typer

from pagewatch.cli.common import CliOptions, fail, load_or_exit, present
from pagewatch.dispatch.notifications import Notifier
from pagewatch.exceptions import ConfigurationError
from pagewatch.settings import Settings

watch_app = typer.Typer(help="Watch URLs and notify when their content changes.")


@dataclass
class WatchOptions:
    """Target flags collected by the ``watch`` group callback."""

    root: CliOptions | None = None
    urls: list[str] = field(default_factory=list)
    wait_selectors: list[str] = field(default_factory=list)
    check_selectors: list[str] = field(default_factory=list)
    check_types: list[str] = field(default_factory=list)
    expected_texts: list[str] = field(default_factory=list)
    notify_paths: list[str] = field(default_factory=list)
    captcha_wait_selectors: list[str] = field(default_factory=list)
    captcha_click_selectors: list[str] = field(default_factory=list)
    interval_sec: int | None = None

    def overrides(self) -> dict[str, Any]:
        return present(
            urls=self.urls,
            wait_selectors=self.wait_selectors,
            check_selectors=self.check_selectors,
            check_types=self.check_types,
            expected_texts=self.expected_texts,
            notify_paths=self.notify_paths,
            captcha_wait_selectors=self.captcha_wait_selectors,
            captcha_click_selectors=self.captcha_click_selectors,
            interval_sec=self.interval_sec,
        )


@watch_app.callback()
def watch(
    ctx: typer.Context,
    urls: Optional[List[str]] = typer.Option(None, "--url", "-u", help="URL to watch (repeatable)."),
    wait_selectors: Optional[List[str]] = typer.Option(None, "--wait-selector", "-w", help="Selector to wait for, one per URL."),
    check_selectors: Optional[List[str]] = typer.Option(None, "--check-selector", "-c", help="Selector to compare, one per URL."),
    check_types: Optional[List[str]] = typer.Option(None, "--check-type", help="text, href, id or dump, one per URL."),
    expected_texts: Optional[List[str]] = typer.Option(None, "--expected-text", "-e", help="Text expected while nothing changed, one per URL."),
    notify_paths: Optional[List[str]] = typer.Option(None, "--notify-path", help="Notify when the location contains this, one per URL."),
    captcha_wait_selectors: Optional[List[str]] = typer.Option(None, "--captcha-wait-selector", help="Per-URL CAPTCHA box selector."),
    captcha_click_selectors: Optional[List[str]] = typer.Option(None, "--captcha-click-selector", help="Per-URL CAPTCHA click selector."),
    interval: Optional[int] = typer.Option(None, "--interval", "-i", min=0, help="Seconds between polling cycles."),
) -> None:
    """Collect target flags for the notifier subcommands."""
    ctx.obj = WatchOptions(
        root=ctx.obj,
        urls=urls or [],
        wait_selectors=wait_selectors or [],
        check_selectors=check_selectors or [],
        check_types=check_types or [],
        expected_texts=expected_texts or [],
        notify_paths=notify_paths or [],
        captcha_wait_selectors=captcha_wait_selectors or [],
        captcha_click_selectors=captcha_click_selectors or [],
        interval_sec=interval,
    )


def _run(options: WatchOptions, build_notifier: Callable[[Settings], Notifier], **sections: dict[str, Any]) -> None:
    """Validate everything up front, then watch until interrupted."""
    from pagewatch.models.target import build_targets, validate_detection
    from pagewatch.orchestrator import run_watch
    from pagewatch.store.dump_store import build_dump_store

    settings = load_or_exit(options.root, watch=options.overrides(), **sections)
    try:
        validate_detection(settings.detection)
        targets = build_targets(settings.watch, settings.detection)
        notifier = build_notifier(settings)
        store = build_dump_store(settings.diagnostics)
    except ConfigurationError as exc:
        fail(exc)

    try:
        asyncio.run(run_watch(settings, targets, [notifier], store=store))
    except KeyboardInterrupt:
        typer.echo("Stopped.", err=True)


def _email_notifier(settings: Settings) -> Notifier:
    from pagewatch.notifiers.email import EmailNotifier

    cfg = settings.email
    missing = [name for name in ("from_addr", "to_addr", "password") if not getattr(cfg, name)]
    if missing:
        raise ConfigurationError("Email notifications require: " + ", ".join(missing))
    return EmailNotifier(
        from_addr=cfg.from_addr,
        to_addr=cfg.to_addr,
        password=cfg.password,
        subject=cfg.subject,
        smtp_host=cfg.smtp_host,
        smtp_port=cfg.smtp_port,
    )


def _discord_notifier(settings: Settings) -> Notifier:
    from pagewatch.notifiers.webhook import WebhookNotifier

    cfg = settings.discord
    if not cfg.webhook_url:
        raise ConfigurationError("Discord notifications require a webhook_url")
    return WebhookNotifier(cfg.webhook_url, username=cfg.username, timeout_sec=cfg.timeout_sec)


def _log_notifier(settings: Settings) -> Notifier:
    from pagewatch.notifiers.log import LogNotifier

    return LogNotifier()


@watch_app.command("email")
def watch_email(
    ctx: typer.Context,
    from_addr: Optional[str] = typer.Option(None, "--from", help="Sender address (also the SMTP login)."),
    to_addr: Optional[str] = typer.Option(None, "--to", help="Recipient address."),
    password: Optional[str] = typer.Option(None, "--password", "-p", envvar="PAGEWATCH_EMAIL__PASSWORD", help="SMTP password."),
    subject: Optional[str] = typer.Option(None, "--subject", help="Email subject."),
    smtp_host: Optional[str] = typer.Option(None, "--smtp-host", help="SMTP server host."),
    smtp_port: Optional[int] = typer.Option(None, "--smtp-port", help="SMTP server port (implicit TLS)."),
) -> None:
    """Email when a watched page changes."""
    _run(
        ctx.obj,
        _email_notifier,
        email={
            "from_addr": from_addr,
            "to_addr": to_addr,
            "password": password,
            "subject": subject,
            "smtp_host": smtp_host,
            "smtp_port": smtp_port,
        },
    )


@watch_app.command("discord")
def watch_discord(
    ctx: typer.Context,
    webhook_url: Optional[str] = typer.Option(None, "--webhook-url", help="Discord webhook URL."),
    username: Optional[str] = typer.Option(None, "--username", help="Display name for messages."),
) -> None:
    """Post to a Discord webhook when a watched page changes."""
    _run(ctx.obj, _discord_notifier, discord={"webhook_url": webhook_url, "username": username})


@watch_app.command("log")
def watch_log(ctx: typer.Context) -> None:
    """Only log when a watched page changes."""
    _run(ctx.obj, _log_notifier)
