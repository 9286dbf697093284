"""JSON/YAML document conversion keyed on file extension.

JSON is a subset of YAML, so every supported extension decodes through the
YAML loader; encoding picks the writer matching the destination extension.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from reflow.core.errors import FormatError
from reflow.core.logging import get_logger

if TYPE_CHECKING:
    from reflow.context.builder import ContextSource

logger = get_logger(__name__)

DOCUMENT_EXTENSIONS = (".json", ".yaml", ".yml")

MASK = "***"


def is_document(path: Path | str) -> bool:
    return Path(path).suffix.lower() in DOCUMENT_EXTENSIONS


def dumps(value: Any, fmt: str) -> str:
    """Encode ``value`` as ``json`` or ``yaml``."""
    match fmt.lower().lstrip("."):
        case "json":
            return json.dumps(value, default=str)
        case "yaml" | "yml":
            return yaml.safe_dump(value, default_flow_style=False, sort_keys=True, allow_unicode=True)
        case other:
            raise FormatError(f"unsupported format: {other!r}")


def loads(text: str | bytes, *, source: str = "<string>") -> Any:
    """Decode a JSON or YAML document."""
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise FormatError(f"decoding {source}", cause=exc) from exc


class Formatter:
    """Reads and writes documents, choosing the encoding from the file extension."""

    def marshal(self, value: Any, path: Path | str) -> None:
        path = Path(path)
        if not is_document(path):
            raise FormatError(f"unsupported format: {path.suffix!r}")
        text = dumps(value, path.suffix)
        path.write_text(text, encoding="utf-8")

    def unmarshal(self, path: Path | str) -> Any:
        path = Path(path)
        if not is_document(path):
            raise FormatError(f"unsupported format: {path.suffix!r}")
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise FormatError(f"reading {path}", cause=exc) from exc
        return loads(raw, source=str(path))

    async def format(
        self,
        builder: ContextSource,
        src: Path | str,
        dst: Path | str,
        *,
        mask: bool = False,
    ) -> None:
        """Render ``src`` against a freshly built context and write it to ``dst``.

        With ``mask``, every dotted key listed under the context's ``mask``
        list that resolves is replaced by ``***`` before rendering.
        """
        from reflow.context.document import PathDocument
        from reflow.templating.engine import render

        doc = PathDocument()
        await builder.build(doc)

        if mask:
            for key in doc.get_path("mask", list):
                key = str(key)
                if doc.delete_path(key):
                    doc.set_path(key, MASK)
                    logger.debug("masked_key", key=key)

        src = Path(src)
        try:
            text = src.read_text(encoding="utf-8")
        except OSError as exc:
            raise FormatError(f"reading {src}", cause=exc) from exc

        value = loads(render(text, doc), source=str(src))
        self.marshal(value, dst)


__all__ = ["Formatter", "dumps", "loads", "is_document", "DOCUMENT_EXTENSIONS", "MASK"]
