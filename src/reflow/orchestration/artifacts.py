"""Decoding of the ``reflow-outputs`` artifact archive.

The archive holds one or more YAML (or JSON) files. A file whose stem is
``outputs`` is a mapping merged into the result one level deep; every other
file is stored whole under its stem::

    outputs.yaml   {x: 1, y: 2}      ─┐
    report.json    {"passed": 10}    ─┴─►  {"x": 1, "y": 2, "report": {"passed": 10}}
"""

from __future__ import annotations

import io
import zipfile
import zlib
from collections.abc import Iterable, Mapping
from pathlib import PurePosixPath
from typing import Any

import yaml

from reflow.core.errors import ArtifactError
from reflow.github.models import Artifact

OUTPUTS_ENTRY = "outputs"

# Raised by ZipFile on hostile input: corrupt deflate data, encrypted entries,
# unknown compression methods, truncated streams
_ARCHIVE_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    RuntimeError,
    NotImplementedError,
    EOFError,
    OSError,
    ValueError,
)


def find_artifact(artifacts: Iterable[Artifact], name: str) -> Artifact | None:
    """First artifact called ``name``; later duplicates are ignored."""
    return next((a for a in artifacts if a.name == name), None)


def _entry_key(filename: str) -> str:
    return PurePosixPath(filename).stem


def extract_outputs(archive: bytes, *, max_entry_size: int | None = None) -> dict[str, Any]:
    try:
        zf = zipfile.ZipFile(io.BytesIO(archive))
    except _ARCHIVE_ERRORS as exc:
        raise ArtifactError("open zip archive", cause=exc) from exc

    outputs: dict[str, Any] = {}
    with zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            if max_entry_size is not None and info.file_size > max_entry_size:
                raise ArtifactError(
                    f"archive entry {info.filename!r} is {info.file_size} bytes, limit is {max_entry_size}"
                )

            try:
                value = next(yaml.safe_load_all(zf.read(info)), None)
            except (yaml.YAMLError, *_ARCHIVE_ERRORS) as exc:
                raise ArtifactError(f"decode {info.filename!r}", cause=exc) from exc

            key = _entry_key(info.filename)
            if key == OUTPUTS_ENTRY:
                if value is None:
                    continue
                if not isinstance(value, Mapping):
                    raise ArtifactError(
                        f"{info.filename!r} must hold a mapping, got {type(value).__name__}"
                    )
                outputs.update(value)
            else:
                outputs[key] = value

    return outputs
