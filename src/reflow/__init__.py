"""
reflow — run reusable GitHub Actions workflows from other workflows.

A calling workflow hands reflow a manifest; reflow prepares a run directory,
assembles a layered context, renders the workflow inputs, dispatches the
target workflow on a throwaway anchor branch, waits for the run to conclude
and returns the outputs the run published as the ``reflow-outputs`` artifact.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
