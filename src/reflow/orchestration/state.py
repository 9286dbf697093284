"""Run state tracked by the orchestrator for a single dispatched run."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

SUCCESS = "success"


class RunPhase(str, Enum):
    IDLE = "idle"
    ANCHOR_CREATED = "anchor_created"
    DISPATCHED = "dispatched"
    AWAITING_RUN = "awaiting_run"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class RunState:
    """In-memory state of one run; never persisted."""

    anchor_name: str
    phase: RunPhase = RunPhase.IDLE
    dispatched_at: datetime | None = None
    run_id: int | None = None
    status: str | None = None
    conclusion: str | None = None
    html_url: str | None = None
    polls: int = 0

    @property
    def succeeded(self) -> bool:
        return self.conclusion == SUCCESS
