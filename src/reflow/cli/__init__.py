"""reflow command line interface."""

from reflow.cli.app import app

__all__ = ["app"]
