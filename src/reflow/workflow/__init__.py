"""Workflow addressing."""

from reflow.workflow.reference import WorkflowReference

__all__ = ["WorkflowReference"]
