"""
CLI: ``reflow template`` and ``reflow fmt`` — render documents against the home context.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from reflow.cli.utils import github_client, handle_errors, optional_path, read_text, settings_from
from reflow.context.builder import home_builder
from reflow.context.document import PathDocument
from reflow.core.errors import ContextKeyError, ValidationError
from reflow.core.formats import Formatter
from reflow.core.logging import get_logger
from reflow.core.settings import ReflowSettings
from reflow.templating.engine import default_engine

logger = get_logger(__name__)

EXCLUDE_KEY = "exclude"


def exclude_keys(doc: PathDocument) -> list[str]:
    """Delete every dotted key listed under ``exclude``; returns those that existed."""
    try:
        keys = doc.get_path(EXCLUDE_KEY, list)
    except ContextKeyError as exc:
        raise ValidationError("excluding keys", cause=exc) from exc

    removed = [str(key) for key in keys if doc.delete_path(str(key))]
    logger.debug("excluded_keys", keys=removed)
    return removed


async def _home_context(
    settings: ReflowSettings,
    context_github: Path | None,
    context_values: Path | None,
) -> PathDocument:
    async with github_client(settings) as gh:
        doc = PathDocument()
        builder = home_builder(
            settings.resolved_home(),
            gh,
            github_context=context_github,
            values_context=context_values,
        )
        await builder.build(doc)
        return doc


def template(
    ctx: typer.Context,
    exclude: bool = typer.Option(False, "--exclude", "-e", help="Delete the keys listed under 'exclude'"),
    context_github: str | None = typer.Option(None, "--context-github", envvar="REFLOW_CONTEXT_GITHUB"),
    context_values: str | None = typer.Option(None, "--context-values", envvar="REFLOW_CONTEXT_VALUES"),
) -> None:
    """Render a template read from stdin against the home context."""
    settings = settings_from(ctx)

    with handle_errors():
        text = read_text("-")
        doc = asyncio.run(_home_context(settings, optional_path(context_github), optional_path(context_values)))
        if exclude:
            exclude_keys(doc)
        rendered = default_engine().render(text, doc)
    typer.echo(rendered, nl=False)


def fmt(
    ctx: typer.Context,
    src: Path = typer.Argument(..., help="Source document (rendered as a template)"),
    dst: Path = typer.Argument(..., help="Destination; format follows its extension"),
    mask: bool = typer.Option(False, "--mask", "-m", help="Replace keys listed under 'mask' with ***"),
    context_github: str | None = typer.Option(None, "--context-github", envvar="REFLOW_CONTEXT_GITHUB"),
    context_values: str | None = typer.Option(None, "--context-values", envvar="REFLOW_CONTEXT_VALUES"),
) -> None:
    """Render SRC against the home context and write it to DST."""
    settings = settings_from(ctx)

    async def _fmt() -> None:
        async with github_client(settings) as gh:
            builder = home_builder(
                settings.resolved_home(),
                gh,
                github_context=optional_path(context_github),
                values_context=optional_path(context_values),
            )
            await Formatter().format(builder, src, dst, mask=mask)

    with handle_errors():
        asyncio.run(_fmt())
