"""
Template rendering for context documents and workflow inputs.

Templates are Jinja2 text templates rendered against a context document. A
parse failure and an evaluation failure are distinct error types so callers
(and users reading the wrapped error chain) can tell a typo in the template
from a reference to data that is not there.

Architecture:
    ::

        text ──► Environment.from_string() ──► Template.render(data)
                       │                              │
                       ▼                              ▼
              TemplateParseError              TemplateExecError

Features:
    - Function library from :mod:`reflow.templating.functions`
      (YAML/JSON/ENV encoders, base64, required) as globals and filters
    - Undefined top-level names render empty; attribute access on an
      undefined value fails with ``TemplateExecError``
    - Trailing newlines of the source text are preserved

Examples:
    >>> render("{{ toEnvPrefix('REFLOW_', git) }}", {"git": {"head": 123}})
    'REFLOW_HEAD=123'

Tags:
    templating, jinja2, reflow
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from functools import cache
from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, Undefined

from reflow.core.errors import TemplateExecError, TemplateParseError
from reflow.templating.functions import FUNCTIONS

# Functions whose document argument is not the first one; their filter form
# takes the piped value as the document.
_DOCUMENT_LAST = frozenset({"toEnvPrefix", "mustToEnvPrefix", "required"})


def _as_filter(name: str, fn: Callable[..., Any]) -> Callable[..., Any]:
    if name not in _DOCUMENT_LAST:
        return fn

    def flipped(value: Any, first: Any) -> Any:
        return fn(first, value)

    flipped.__name__ = fn.__name__
    return flipped


class TemplateEngine:
    """Renders text templates against context documents."""

    def __init__(
        self,
        functions: Mapping[str, Callable[..., Any]] | None = None,
        *,
        strict: bool = False,
    ):
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined if strict else Undefined,
        )
        self.register(FUNCTIONS)
        if functions:
            self.register(functions)

    def register(self, functions: Mapping[str, Callable[..., Any]]) -> None:
        """Add functions to the library; names must not already be defined."""
        for name, fn in functions.items():
            if name in self.env.globals or name in self.env.filters:
                raise ValueError(f"template function {name!r} is already defined")
            self.env.globals[name] = fn
            self.env.filters[name] = _as_filter(name, fn)

    def render(self, text: str | bytes, data: Mapping[str, Any] | None = None) -> str:
        if isinstance(text, bytes):
            text = text.decode("utf-8")

        try:
            template = self.env.from_string(text)
        except TemplateSyntaxError as exc:
            raise TemplateParseError(f"template parse error (line {exc.lineno})", cause=exc) from exc

        try:
            return template.render(dict(data or {}))
        except Exception as exc:
            raise TemplateExecError("template execute error", cause=exc) from exc


@cache
def default_engine() -> TemplateEngine:
    return TemplateEngine()


def render(text: str | bytes, data: Mapping[str, Any] | None = None) -> str:
    """Render ``text`` with the stock function library."""
    return default_engine().render(text, data)


__all__ = ["TemplateEngine", "render", "default_engine"]
