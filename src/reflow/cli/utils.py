"""
CLI utility helpers — settings, error reporting and output formatting.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape

from reflow.core.errors import FormatError, ReflowError
from reflow.core.formats import dumps, loads
from reflow.core.logging import get_logger
from reflow.core.settings import ReflowSettings, get_settings
from reflow.github.client import GitHubClient

console = Console()
err_console = Console(stderr=True)

logger = get_logger(__name__)

STDIN = "-"


# ── Settings / clients ───────────────────────────────────────────────────


def settings_from(ctx: typer.Context, **overrides: Any) -> ReflowSettings:
    """Settings built by the root callback, with per-command flag overrides."""
    settings = ctx.obj if isinstance(ctx.obj, ReflowSettings) else get_settings()
    update = {k: v for k, v in overrides.items() if v is not None}
    if update:
        settings = settings.model_copy(update=update)
    return settings


def github_client(settings: ReflowSettings) -> GitHubClient:
    """Create the GitHub client used by commands."""
    return GitHubClient.from_settings(settings)


# ── Error handling ───────────────────────────────────────────────────────


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print a reflow failure as its wrapped chain and exit with code 1."""
    try:
        yield
    except ReflowError as exc:
        logger.debug("command_failed", **exc.to_dict())
        err_console.print(
            f"[bold red]Error[/bold red] ({exc.category.value}): {escape(str(exc))}",
            highlight=False,
            soft_wrap=True,
        )
        raise typer.Exit(code=1) from exc


# ── Input helpers ────────────────────────────────────────────────────────


def read_text(path: str) -> str:
    """Read ``path``, or stdin when it is ``-``."""
    if path == STDIN:
        return sys.stdin.read()
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise FormatError(f"reading {path}", cause=exc) from exc


def read_document(path: str) -> Any:
    return loads(read_text(path), source="<stdin>" if path == STDIN else path)


def optional_path(value: str | None) -> Path | None:
    return Path(value) if value else None


# ── Output helpers ───────────────────────────────────────────────────────


def output_document(value: Any, *, as_json: bool = False) -> None:
    """Write a result document to stdout as YAML (default) or JSON."""
    if as_json:
        typer.echo(json.dumps(value, default=str, sort_keys=True))
        return
    if not value:
        typer.echo("{}")
        return
    typer.echo(dumps(value, "yaml"), nl=False)
