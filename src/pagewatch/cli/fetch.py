"""``pagewatch fetch``: print a page's content (or one selector's) to stdout."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from pagewatch.cli.common import CliOptions, fail, load_or_exit
from pagewatch.exceptions import ConfigurationError


def fetch(
    ctx: typer.Context,
    url: str = typer.Option(..., "--url", "-u", help="URL to fetch."),
    wait_selector: str = typer.Option("", "--wait-selector", "-w", help="Wait until this selector is visible."),
    text_selector: Optional[str] = typer.Option(None, "--text-selector", help="Print the text of this selector."),
    href_selector: Optional[str] = typer.Option(None, "--href-selector", help="Print the href of the first match."),
    id_selector: Optional[str] = typer.Option(None, "--id-selector", help="Print the text of the element with this id."),
) -> None:
    """Fetch the URL once and write its HTML (or the selected content) to stdout."""
    from pagewatch.models.target import Target, captcha_selectors_for, validate_detection
    from pagewatch.orchestrator import run_fetch
    from pagewatch.pipeline.builder import FetchSelection
    from pagewatch.store.dump_store import build_dump_store

    options: CliOptions | None = ctx.obj
    settings = load_or_exit(options)
    try:
        validate_detection(settings.detection)
        if not url.strip():
            raise ConfigurationError("A non-empty --url is required")
        target = Target(
            url=url,
            wait_selector=wait_selector.strip(),
            captcha=captcha_selectors_for(settings.detection, url=url),
        )
        store = build_dump_store(settings.diagnostics)
    except ConfigurationError as exc:
        fail(exc)

    selection = FetchSelection(
        text_selector=text_selector or "",
        href_selector=href_selector or "",
        id_selector=id_selector or "",
    )
    result = asyncio.run(run_fetch(settings, target, selection, store=store))
    if not result.succeeded:
        raise typer.Exit(code=1)
    typer.echo(result.payload or "")
