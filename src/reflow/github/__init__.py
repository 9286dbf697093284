"""GitHub REST API access."""

from reflow.github.client import GitHubClient
from reflow.github.models import (
    Artifact,
    ArtifactList,
    GitObject,
    GitRef,
    PullRequest,
    WorkflowRun,
    WorkflowRunList,
)

__all__ = [
    "GitHubClient",
    "Artifact",
    "ArtifactList",
    "GitObject",
    "GitRef",
    "PullRequest",
    "WorkflowRun",
    "WorkflowRunList",
]
