"""Remote workflow run orchestration."""

from reflow.orchestration.artifacts import extract_outputs, find_artifact
from reflow.orchestration.orchestrator import (
    AnchorRef,
    RunOrchestrator,
    anchor_name,
    coerce_input,
    render_inputs,
)
from reflow.orchestration.state import RunPhase, RunState
from reflow.orchestration.timers import Ticker

__all__ = [
    "AnchorRef",
    "RunOrchestrator",
    "RunPhase",
    "RunState",
    "Ticker",
    "anchor_name",
    "coerce_input",
    "extract_outputs",
    "find_artifact",
    "render_inputs",
]
