"""Jinja2 templating with the reflow function library."""

from reflow.templating.engine import TemplateEngine, default_engine, render
from reflow.templating.functions import FUNCTIONS, env_marshal, flatten

__all__ = ["TemplateEngine", "default_engine", "render", "FUNCTIONS", "env_marshal", "flatten"]
