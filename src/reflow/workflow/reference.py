"""Compact workflow addresses: ``owner/repo/.github/workflows/file@branch``.

The branch always carries an explicit ``heads/`` or ``tags/`` prefix once
parsed (``heads/`` is added when missing), which is the form the git refs API
expects. Serialising therefore reproduces the input only when the input was
already prefixed.

>>> ref = WorkflowReference.parse("octo/repo/.github/workflows/deploy.yaml@main")
>>> ref.branch
'heads/main'
>>> str(ref)
'octo/repo/.github/workflows/deploy.yaml@heads/main'
"""

from __future__ import annotations

from dataclasses import dataclass

from reflow.core.errors import MalformedReference

WORKFLOWS_DIR = "/.github/workflows/"
BRANCH_PREFIXES = ("heads/", "tags/")


@dataclass(frozen=True)
class WorkflowReference:
    owner: str
    repo: str
    file: str
    branch: str

    @classmethod
    def parse(cls, text: str) -> WorkflowReference:
        repository, marker, rest = text.partition(WORKFLOWS_DIR)
        if not marker:
            raise MalformedReference(text, f"missing {WORKFLOWS_DIR!r}")

        owner, slash, repo = repository.partition("/")
        if not slash or not owner or not repo or "/" in repo:
            raise MalformedReference(text, "expected 'owner/repo' before the workflows directory")

        file, at, branch = rest.partition("@")
        if not file:
            raise MalformedReference(text, "missing workflow file")
        if not at or not branch:
            raise MalformedReference(text, "missing '@branch'")

        if not branch.startswith(BRANCH_PREFIXES):
            branch = "heads/" + branch

        return cls(owner=owner, repo=repo, file=file, branch=branch)

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def branch_name(self) -> str:
        """The branch or tag without its ``heads/``/``tags/`` prefix."""
        return self.branch.split("/", 1)[1]

    @property
    def git_ref(self) -> str:
        return f"refs/{self.branch}"

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}{WORKFLOWS_DIR}{self.file}@{self.branch}"
