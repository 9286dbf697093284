"""
Root Typer application for the reflow CLI.

Typical use from a calling workflow::

    run_id=$(reflow manifest < manifest.yaml | cut -d= -f2)
    reflow run "$run_id" --json
"""

from __future__ import annotations

from pathlib import Path

import typer
from typer import Typer

from reflow import __version__
from reflow.core.logging import configure_logging
from reflow.core.settings import get_settings

app = Typer(
    name="reflow",
    help="reflow — dispatch reusable GitHub Actions workflows and collect their outputs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"reflow {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging."),
    home: Path | None = typer.Option(None, "--home", help="Installation home (default: REFLOW_HOME)."),
) -> None:
    """reflow CLI — manifest, run, call, template and fmt."""
    settings = get_settings(debug=debug or None, home=home)
    configure_logging(level=settings.effective_log_level)
    ctx.obj = settings


# ── Command registration ─────────────────────────────────────────────────

from reflow.cli.documents import fmt, template  # noqa: E402
from reflow.cli.manifest import home as home_cmd  # noqa: E402
from reflow.cli.manifest import manifest  # noqa: E402
from reflow.cli.run import call, run  # noqa: E402

app.command("manifest", help="Create a run directory from a manifest on stdin.")(manifest)
app.command("run", help="Run a prepared workflow and print its outputs.")(run)
app.command("call", help="Call a workflow directly without a manifest.")(call)
app.command("template", help="Render stdin against the home context.")(template)
app.command("fmt", help="Render and convert a document.")(fmt)
app.command("home", help="Show the installation home.")(home_cmd)
