"""Dotted-path access to nested context documents.

A context document is a tree of plain Python values: mappings keyed by path
segment, with scalars (``str``, ``int``, ``float``, ``bool``, ``None``) or
lists at the leaves. ``PathDocument`` is a ``dict`` so it can be handed to the
template engine and to the JSON/YAML encoders unchanged; the module-level
helpers work on any plain ``dict``.

Paths split on ``.`` with no escaping, so keys that themselves contain a
``.`` cannot be addressed.

Examples:
    >>> doc = PathDocument()
    >>> doc.set_path("git.head", "sha")
    False
    >>> doc.get_path("git.head", str)
    'sha'
    >>> doc.set_path("git.head", "sha2")
    True
    >>> doc.delete_path("git")
    True
    >>> doc.get_path("git.head")
    Traceback (most recent call last):
    ...
    KeyMissing: key 'git.head' is missing
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any, TypeVar, overload

from reflow.core.errors import KeyMissing, KeyTypeMismatch

T = TypeVar("T")

SEPARATOR = "."


def split_path(path: str) -> list[str]:
    if not path:
        raise ValueError("empty key path")
    return path.split(SEPARATOR)


def _type_name(kind: type | tuple[type, ...]) -> str:
    if isinstance(kind, tuple):
        return " | ".join(k.__name__ for k in kind)
    return kind.__name__


def _matches(value: Any, kind: type | tuple[type, ...]) -> bool:
    if not isinstance(value, kind):
        return False
    # bool is an int subclass; a flag is never a number
    if isinstance(value, bool):
        kinds = kind if isinstance(kind, tuple) else (kind,)
        return bool in kinds or object in kinds
    return True


@overload
def get_path(doc: Mapping[str, Any], path: str) -> Any: ...
@overload
def get_path(doc: Mapping[str, Any], path: str, kind: type[T]) -> T: ...
@overload
def get_path(doc: Mapping[str, Any], path: str, kind: tuple[type, ...]) -> Any: ...


def get_path(doc, path, kind=object):
    """Return the value at ``path``, checking it is an instance of ``kind``.

    Raises:
        KeyMissing: a segment is absent or a non-terminal segment is not a mapping
        KeyTypeMismatch: the value exists but is not of ``kind``
    """
    if not path:
        raise KeyMissing(path)
    *parents, leaf = path.split(SEPARATOR)

    node: Any = doc
    for key in parents:
        node = node.get(key)
        if not isinstance(node, Mapping):
            raise KeyMissing(path)

    if leaf not in node:
        raise KeyMissing(path)

    value = node[leaf]
    if not _matches(value, kind):
        raise KeyTypeMismatch(path, value, _type_name(kind))
    return value


def set_path(doc: MutableMapping[str, Any], path: str, value: Any) -> bool:
    """Set ``path`` to ``value``, creating intermediate mappings.

    Returns True when something was replaced: either an existing leaf, or an
    intermediate node that was not a mapping and got overwritten by one.
    """
    *parents, leaf = split_path(path)
    replaced = False

    node = doc
    for key in parents:
        child = node.get(key)
        if not isinstance(child, MutableMapping):
            if child is not None:
                replaced = True
            child = {}
            node[key] = child
        node = child

    if leaf in node:
        replaced = True
    node[leaf] = value
    return replaced


def delete_path(doc: MutableMapping[str, Any], path: str) -> bool:
    """Delete ``path``; returns False (and changes nothing) if it does not resolve."""
    *parents, leaf = split_path(path)

    node: Any = doc
    for key in parents:
        node = node.get(key)
        if not isinstance(node, MutableMapping):
            return False

    if leaf in node:
        del node[leaf]
        return True
    return False


class PathDocument(dict):
    """A context document with dotted-path accessors."""

    def get_path(self, path: str, kind: type[T] | tuple[type, ...] = object) -> T:
        return get_path(self, path, kind)

    def set_path(self, path: str, value: Any) -> bool:
        return set_path(self, path, value)

    def delete_path(self, path: str) -> bool:
        return delete_path(self, path)

    def has_path(self, path: str) -> bool:
        try:
            get_path(self, path)
        except KeyMissing:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return dict(self)


__all__ = ["PathDocument", "get_path", "set_path", "delete_path", "split_path", "SEPARATOR"]
