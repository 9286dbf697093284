"""
CLI: ``reflow manifest`` and ``reflow home`` — prepare run directories.
"""

from __future__ import annotations

import typer

from reflow.cli.utils import console, handle_errors, read_text, settings_from
from reflow.manifest.builder import ManifestBuilder


def manifest(ctx: typer.Context) -> None:
    """Create a run directory from a manifest read from stdin."""
    settings = settings_from(ctx)

    with handle_errors():
        ManifestBuilder(settings.resolved_home()).build(read_text("-"))


def home(
    ctx: typer.Context,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the installation home, creating it if needed."""
    path = settings_from(ctx).resolved_home()
    if json_out:
        console.print_json(data={"home": str(path)})
        return
    typer.echo(str(path))
