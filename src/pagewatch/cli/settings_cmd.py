"""CLI commands for inspecting and validating pagewatch settings."""

from __future__ import annotations

import json

import typer
from rich.console import Console

from pagewatch.cli.common import fail, load_or_exit
from pagewatch.exceptions import ConfigurationError

settings_app = typer.Typer(help="Inspect and validate pagewatch configuration.")
console = Console()


@settings_app.command("show")
def show_settings(ctx: typer.Context) -> None:
    """Display the currently resolved settings."""
    settings = load_or_exit(ctx.obj)
    data = settings.model_dump(mode="json")
    for section, key in (("email", "password"), ("diagnostics", "redis_password")):
        if data[section].get(key):
            data[section][key] = "***"
    console.print_json(json.dumps(data, indent=2, default=str))


@settings_app.command("validate")
def validate_settings(ctx: typer.Context) -> None:
    """Validate settings and the configured watch targets."""
    from pagewatch.browser.agents import AgentManager
    from pagewatch.models.target import build_targets, validate_detection

    settings = load_or_exit(ctx.obj)
    try:
        validate_detection(settings.detection)
        agents = AgentManager(settings.browser.agents)
        targets = build_targets(settings.watch, settings.detection) if settings.watch.urls else []
    except ConfigurationError as exc:
        fail(f"Settings validation failed: {exc}")

    console.print("[green]✓[/green] Settings are valid.")
    console.print(f"  Environment: {settings.env}")
    console.print(f"  User agents: {len(agents)}")
    console.print(f"  Watch targets: {len(targets)} (every {settings.watch.interval_sec}s)")
    console.print(f"  Dumps: {'redis' if settings.diagnostics.redis_dumps else 'stdout'}")
