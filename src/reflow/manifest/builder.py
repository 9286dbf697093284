"""
Manifest builder: turns a calling workflow's manifest into a run directory.

The manifest is what the composite action pipes into ``reflow manifest``::

    github: ${{ toJSON(github) }}
    inputs:
      uses: octo/deploy/.github/workflows/deploy.yaml@main
      values: |
        env: prod
      inputs: |
        version: "{{ reflow.sha }}"
      debug: "false"

It may also arrive as two YAML documents (``github`` first, ``inputs``
second); documents are merged in order.

Architecture:
    ::

        stdin ──► merge documents ──► drop github.token / inputs.token
                                          │
                                          ▼
                      runs/<uuid4>/context/github.json      (event payload)
                      runs/<uuid4>/context/manifest.yaml    (uses, id, debug)
                      runs/<uuid4>/templates/values.yaml    (raw text)
                      runs/<uuid4>/inputs/inputs.yaml       (raw text)
                                          │
                                          ▼
                      run-id=<uuid4>  ──► $GITHUB_OUTPUT or stdout

Guardrails:
    ❌ DON'T: write any credential from the manifest to disk
    ✅ DO: treat ``values`` and ``inputs`` as opaque text (they are templates)

Tags:
    manifest, run-directory, github-actions, reflow
"""

from __future__ import annotations

import os
import sys
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import IO, Any

import yaml

from reflow.context.document import PathDocument
from reflow.core.errors import ContextKeyError, FormatError, ManifestError
from reflow.core.formats import Formatter
from reflow.core.home import RunLayout
from reflow.core.logging import get_logger

logger = get_logger(__name__)

SECRET_KEYS = ("github.token", "inputs.token")
REQUIRED_FIELDS = ("uses", "values", "inputs", "debug")
RUN_ID_OUTPUT = "run-id"


def load_manifest(stream: str | bytes | IO[str]) -> PathDocument:
    """Decode a one- or two-document manifest stream into a single document."""
    doc = PathDocument()
    try:
        for part in yaml.safe_load_all(stream):
            if part is None:
                continue
            if not isinstance(part, Mapping):
                raise ManifestError(f"manifest document must be a mapping, got {type(part).__name__}")
            doc.update(part)
    except yaml.YAMLError as exc:
        raise FormatError("decoding manifest", cause=exc) from exc
    return doc


def emit_output(key: str, value: str) -> None:
    """Publish a step output: append to ``$GITHUB_OUTPUT`` or print ``key=value``."""
    line = f"{key}={value}\n"
    output_file = os.environ.get("GITHUB_OUTPUT")
    if output_file:
        with open(output_file, "a", encoding="utf-8") as fh:
            fh.write(line)
    else:
        sys.stdout.write(line)
        sys.stdout.flush()


class ManifestBuilder:
    """Prepares ``<home>/runs/<id>`` from a manifest."""

    def __init__(self, home: Path, formatter: Formatter | None = None):
        self.home = Path(home)
        self.formatter = formatter or Formatter()

    def build(self, stream: str | bytes | IO[str], *, emit: bool = True) -> str:
        """Write a new run directory and return its id."""
        doc = load_manifest(stream)

        for key in SECRET_KEYS:
            if doc.delete_path(key):
                logger.debug("dropped_secret", key=key)

        try:
            github = doc.get_path("github", Mapping)
            inputs = PathDocument(doc.get_path("inputs", Mapping))
            fields: dict[str, str] = {name: inputs.get_path(name, str) for name in REQUIRED_FIELDS}
        except ContextKeyError as exc:
            raise ManifestError("building manifest", cause=exc) from exc

        layout = RunLayout(self.home, str(uuid.uuid4())).create()
        self._write(layout, github, fields)
        logger.info("manifest_built", run_id=layout.run_id, uses=fields["uses"])

        if emit:
            emit_output(RUN_ID_OUTPUT, layout.run_id)
        return layout.run_id

    def _write(self, layout: RunLayout, github: Mapping[str, Any], fields: dict[str, str]) -> None:
        manifest = {"uses": fields["uses"], "id": layout.run_id, "debug": fields["debug"]}

        self.formatter.marshal(dict(github), layout.context / "github.json")
        self.formatter.marshal(manifest, layout.context / "manifest.yaml")
        (layout.templates / "values.yaml").write_text(fields["values"], encoding="utf-8")
        layout.inputs_file.write_text(fields["inputs"], encoding="utf-8")


__all__ = ["ManifestBuilder", "emit_output", "load_manifest", "RUN_ID_OUTPUT", "SECRET_KEYS"]
