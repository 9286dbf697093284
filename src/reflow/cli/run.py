"""
CLI: ``reflow run`` and ``reflow call`` — dispatch a workflow and wait for it.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Mapping
from typing import Any

import typer

from reflow.cli.utils import (
    github_client,
    handle_errors,
    optional_path,
    output_document,
    read_document,
    settings_from,
)
from reflow.context.builder import home_builder
from reflow.context.document import PathDocument
from reflow.core.errors import ValidationError
from reflow.core.settings import ReflowSettings
from reflow.orchestration.orchestrator import RunOrchestrator, render_inputs
from reflow.workflow.reference import WorkflowReference


def run(
    ctx: typer.Context,
    run_id: str = typer.Argument(..., help="Run id printed by `reflow manifest`"),
    pages: int | None = typer.Option(None, "--pages", "-p", help="Per page limit while listing workflow runs"),
    interval: float | None = typer.Option(None, "--interval", "-y", help="Seconds between polls"),
    max_lookup: float | None = typer.Option(None, "--max-lookup", "-x", help="Seconds allowed to find the run"),
    warmup: float | None = typer.Option(None, "--warmup", help="Seconds to wait after dispatch"),
    json_out: bool = typer.Option(False, "--json", help="Print outputs as JSON"),
) -> None:
    """Run a workflow prepared by `reflow manifest` and print its outputs."""
    settings = settings_from(ctx, per_page=pages, interval=interval, max_lookup=max_lookup, warmup=warmup)

    async def _run() -> dict[str, Any]:
        async with github_client(settings) as gh:
            return await RunOrchestrator(settings, gh).run(run_id)

    with handle_errors():
        outputs = asyncio.run(_run())
    output_document(outputs, as_json=json_out)


def call(
    ctx: typer.Context,
    uses: str = typer.Option(..., "--uses", "-u", help="owner/repo/.github/workflows/file@branch"),
    inputs: str = typer.Option("-", "--inputs", "-i", envvar="REFLOW_INPUTS", help="Inputs document, '-' for stdin"),
    context_github: str | None = typer.Option(None, "--context-github", envvar="REFLOW_CONTEXT_GITHUB"),
    context_values: str | None = typer.Option(None, "--context-values", envvar="REFLOW_CONTEXT_VALUES"),
    pages: int | None = typer.Option(None, "--pages", "-p", help="Per page limit while listing workflow runs"),
    interval: float | None = typer.Option(None, "--interval", "-y", help="Seconds between polls"),
    max_lookup: float | None = typer.Option(None, "--max-lookup", "-x", help="Seconds allowed to find the run"),
    warmup: float | None = typer.Option(None, "--warmup", help="Seconds to wait after dispatch"),
    json_out: bool = typer.Option(False, "--json", help="Print outputs as JSON"),
) -> None:
    """Dispatch a workflow directly, rendering inputs against the home context."""
    settings = settings_from(ctx, per_page=pages, interval=interval, max_lookup=max_lookup, warmup=warmup)

    with handle_errors():
        reference = WorkflowReference.parse(uses)
        raw = read_document(inputs)
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise ValidationError(f"inputs must be a mapping, got {type(raw).__name__}")
        outputs = asyncio.run(
            _call(settings, reference, raw, optional_path(context_github), optional_path(context_values))
        )
    output_document(outputs, as_json=json_out)


async def _call(
    settings: ReflowSettings,
    reference: WorkflowReference,
    raw: Mapping[str, Any],
    context_github,
    context_values,
) -> dict[str, Any]:
    async with github_client(settings) as gh:
        doc = PathDocument()
        builder = home_builder(
            settings.resolved_home(),
            gh,
            github_context=context_github,
            values_context=context_values,
        )
        await builder.build(doc)
        doc.set_path("reflow.token", settings.token.get_secret_value())

        orchestrator = RunOrchestrator(settings, gh)
        rendered = render_inputs(raw, doc, orchestrator.engine)
        return await orchestrator.execute(reference, rendered, str(uuid.uuid4()))
