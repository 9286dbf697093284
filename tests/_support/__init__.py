"""
Test support utilities for reflow tests.

This module provides helpers that don't fit as pytest fixtures but are
useful across multiple test files: building artifact archives and writing
context documents into a home or run directory.
"""

from __future__ import annotations

import io
import json
import zipfile
from pathlib import Path
from typing import Any

import yaml

TOKEN = "t0ken-secret"


def make_archive(files: dict[str, str | bytes], compression: int = zipfile.ZIP_STORED) -> bytes:
    """Build an in-memory zip archive from ``{name: content}``."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=compression) as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buf.getvalue()


def write_document(path: Path, value: Any) -> Path:
    """Write ``value`` as JSON or YAML depending on the file extension."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix == ".json":
        path.write_text(json.dumps(value), encoding="utf-8")
    else:
        path.write_text(yaml.safe_dump(value), encoding="utf-8")
    return path
