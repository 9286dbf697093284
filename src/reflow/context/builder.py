"""
Layered context assembly.

A context is one :class:`~reflow.context.document.PathDocument` built by
running an ordered list of sources into it. Later sources override earlier
ones on key collision; home-scoped sources never write the reserved
top-level keys, so a run's own documents always win over installation
defaults.

Architecture:
    ::

        SequenceBuilder
          1. DirectorySource(runs/<id>/context)                       raw
          2. EventContextSource                                       reflow.*
          3. DirectorySource(<home>/context,   exclude=RESERVED)      raw
          4. DirectorySource(<home>/templates, exclude=RESERVED)      templated
          5. DirectorySource(runs/<id>/templates)                     templated

Templated sources render each file against the document built *so far*, so
a file may only reference keys produced by earlier layers or by files that
sort before it in the same directory. Files are read in lexicographic order
of their names.

Examples:
    >>> builder = run_builder(RunLayout(home, run_id), github)
    >>> doc = PathDocument()
    >>> await builder.build(doc)
    >>> doc.get_path("manifest.uses", str)
    'octo/repo/.github/workflows/deploy.yaml@main'

Tags:
    context, layering, templating, reflow
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from reflow.context.document import PathDocument
from reflow.core.errors import ContextBuildError
from reflow.core.formats import is_document, loads
from reflow.core.home import RunLayout
from reflow.core.logging import get_logger
from reflow.templating.engine import TemplateEngine, default_engine

if TYPE_CHECKING:
    from reflow.github.client import GitHubClient

logger = get_logger(__name__)

RESERVED_KEYS: tuple[str, ...] = ("manifest", "github", "values", "reflow")


class ContextSource(ABC):
    """One layer of the context pipeline."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def build(self, doc: PathDocument) -> None:
        """Merge this source's documents into ``doc``."""


class SequenceBuilder(ContextSource):
    """Runs sources in order, stopping at the first failure."""

    def __init__(self, sources: Iterable[ContextSource]):
        self.sources = list(sources)

    async def build(self, doc: PathDocument) -> None:
        for source in self.sources:
            # Cancellation checkpoint between layers
            await asyncio.sleep(0)

            logger.debug("building_layer", source=source.name)
            try:
                await source.build(doc)
            except ContextBuildError:
                raise
            except Exception as exc:
                raise ContextBuildError(source.name, exc) from exc


class DirectorySource(ContextSource):
    """Loads every JSON/YAML file of one directory under its file stem."""

    def __init__(
        self,
        path: Path | str,
        *,
        exclude: Sequence[str] = (),
        templated: bool = False,
        engine: TemplateEngine | None = None,
    ):
        self.path = Path(path)
        self.exclude = frozenset(exclude)
        self.templated = templated
        self.engine = engine

    @property
    def name(self) -> str:
        return f"{type(self).__name__}({self.path})"

    def entries(self) -> list[Path]:
        """Immediate files of the directory, sorted by name."""
        if not self.path.is_dir():
            logger.debug("directory_missing", path=str(self.path))
            return []
        return sorted((p for p in self.path.iterdir() if p.is_file()), key=lambda p: p.name)

    async def build(self, doc: PathDocument) -> None:
        entries = self.entries()
        logger.debug("directory_entries", path=str(self.path), count=len(entries))

        for entry in entries:
            await asyncio.sleep(0)

            key = entry.stem
            if key in self.exclude:
                logger.debug("excluding_entry", entry=entry.name)
                continue
            if not is_document(entry):
                logger.debug("skipping_entry", entry=entry.name, reason="unsupported extension")
                continue

            doc[key] = self._load(entry, doc)

    def _load(self, entry: Path, doc: PathDocument):
        try:
            raw = entry.read_text(encoding="utf-8")
            if self.templated:
                raw = (self.engine or default_engine()).render(raw, doc)
            return loads(raw, source=entry.name)
        except Exception as exc:
            raise ContextBuildError(f"{self.name}: {entry.name}", exc) from exc


class FileSource(ContextSource):
    """Loads a single document under an explicit key."""

    def __init__(
        self,
        path: Path | str,
        key: str,
        *,
        templated: bool = False,
        engine: TemplateEngine | None = None,
    ):
        self.path = Path(path)
        self.key = key
        self.templated = templated
        self.engine = engine

    @property
    def name(self) -> str:
        return f"{type(self).__name__}({self.key}={self.path})"

    async def build(self, doc: PathDocument) -> None:
        raw = self.path.read_text(encoding="utf-8")
        if self.templated:
            raw = (self.engine or default_engine()).render(raw, doc)
        doc.set_path(self.key, loads(raw, source=str(self.path)))


def home_sources(home: Path) -> list[ContextSource]:
    """Installation-wide layers; never write reserved keys."""
    return [
        DirectorySource(home / "context", exclude=RESERVED_KEYS),
        DirectorySource(home / "templates", exclude=RESERVED_KEYS, templated=True),
    ]


def run_builder(layout: RunLayout, github: GitHubClient) -> SequenceBuilder:
    """The full pipeline for one prepared run directory."""
    from reflow.context.event import EventContextSource

    return SequenceBuilder(
        [
            DirectorySource(layout.context),
            EventContextSource(github),
            *home_sources(layout.home),
            DirectorySource(layout.templates, templated=True),
        ]
    )


def home_builder(
    home: Path,
    github: GitHubClient | None = None,
    *,
    github_context: Path | None = None,
    values_context: Path | None = None,
) -> SequenceBuilder:
    """Pipeline used outside of a run (``template``/``fmt``/``call``).

    With no run directory the installation home stands in for it:
    ``<home>/context`` is loaded without the reserved-key exclusion, so a
    ``<home>/context/github.json`` event drives ``reflow.*`` just like a
    run's own event does. Layers, later ones winning::

        <home>/context          raw, reserved keys allowed
        github_context          explicit event payload, stored as ``github``
        EventContextSource      only when a client is given
        <home>/templates        templated, reserved keys excluded
        values_context          templated, stored as ``values``
    """
    from reflow.context.event import EventContextSource

    sources: list[ContextSource] = [DirectorySource(home / "context")]
    if github_context is not None:
        sources.append(FileSource(github_context, "github"))
    if github is not None:
        sources.append(EventContextSource(github))
    sources.append(DirectorySource(home / "templates", exclude=RESERVED_KEYS, templated=True))
    if values_context is not None:
        sources.append(FileSource(values_context, "values", templated=True))
    return SequenceBuilder(sources)


async def build_context(builder: ContextSource) -> PathDocument:
    doc = PathDocument()
    await builder.build(doc)
    return doc


__all__ = [
    "RESERVED_KEYS",
    "ContextSource",
    "SequenceBuilder",
    "DirectorySource",
    "FileSource",
    "home_sources",
    "run_builder",
    "home_builder",
    "build_context",
]
