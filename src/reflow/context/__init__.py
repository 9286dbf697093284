"""Layered context documents."""

from reflow.context.builder import (
    RESERVED_KEYS,
    ContextSource,
    DirectorySource,
    FileSource,
    SequenceBuilder,
    build_context,
    home_builder,
    home_sources,
    run_builder,
)
from reflow.context.document import PathDocument, delete_path, get_path, set_path
from reflow.context.event import EventContextSource

__all__ = [
    "RESERVED_KEYS",
    "ContextSource",
    "DirectorySource",
    "EventContextSource",
    "FileSource",
    "PathDocument",
    "SequenceBuilder",
    "build_context",
    "delete_path",
    "get_path",
    "home_builder",
    "home_sources",
    "run_builder",
    "set_path",
]
