"""Pydantic models for the slices of GitHub REST payloads reflow reads.

Unknown fields are ignored; only what the orchestrator and the event source
actually consume is declared.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GitObject(_Payload):
    sha: str
    type: str = "commit"


class GitRef(_Payload):
    ref: str
    object: GitObject


class WorkflowRun(_Payload):
    id: int
    name: str | None = None
    head_branch: str | None = None
    head_sha: str | None = None
    status: str | None = None
    conclusion: str | None = None
    html_url: str | None = None

    @property
    def is_concluded(self) -> bool:
        return bool(self.conclusion)


class WorkflowRunList(_Payload):
    total_count: int = 0
    workflow_runs: list[WorkflowRun] = Field(default_factory=list)


class Artifact(_Payload):
    id: int
    name: str
    size_in_bytes: int | None = None
    expired: bool = False


class ArtifactList(_Payload):
    total_count: int = 0
    artifacts: list[Artifact] = Field(default_factory=list)


class PullRequestHead(_Payload):
    ref: str
    sha: str


class PullRequest(_Payload):
    number: int
    head: PullRequestHead
    html_url: str | None = None
