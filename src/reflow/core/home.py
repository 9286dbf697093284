"""Installation home and per-run working directories.

Layout::

    <home>/
      context/      raw documents merged into every context
      templates/    templated documents merged into every context
      outputs/
      runs/<run-id>/
        context/    github.json, manifest.yaml
        templates/  values.yaml
        inputs/     inputs.yaml
        outputs/    outputs.json
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

HOME_DIRS = ("context", "templates", "outputs")
RUN_DIRS = ("context", "templates", "inputs", "outputs")


def default_home() -> Path:
    """``$XDG_CONFIG_HOME/reflow``, falling back to ``~/.config/reflow``."""
    config_dir = os.environ.get("XDG_CONFIG_HOME")
    if config_dir:
        return Path(config_dir) / "reflow"
    return Path.home() / ".config" / "reflow"


def init_home(home: Path) -> Path:
    for name in HOME_DIRS:
        (home / name).mkdir(parents=True, exist_ok=True)
    return home


def resolve_home(home: Path | str | None = None) -> Path:
    """Resolve the installation home and make sure its layout exists."""
    path = Path(home).expanduser() if home else default_home()
    return init_home(path)


@dataclass(frozen=True)
class RunLayout:
    """Paths of one run's working directory."""

    home: Path
    run_id: str

    @property
    def root(self) -> Path:
        return self.home / "runs" / self.run_id

    @property
    def context(self) -> Path:
        return self.root / "context"

    @property
    def templates(self) -> Path:
        return self.root / "templates"

    @property
    def inputs(self) -> Path:
        return self.root / "inputs"

    @property
    def outputs(self) -> Path:
        return self.root / "outputs"

    @property
    def inputs_file(self) -> Path:
        return self.inputs / "inputs.yaml"

    @property
    def outputs_file(self) -> Path:
        return self.outputs / "outputs.json"

    def create(self) -> RunLayout:
        for name in RUN_DIRS:
            (self.root / name).mkdir(parents=True, exist_ok=True)
        return self

    def exists(self) -> bool:
        return self.root.is_dir()
