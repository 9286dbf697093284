"""Derives ``reflow.{owner,repo,ref,sha}`` from the ``github`` event document.

Supported events:

==================  ==========================================================
``push``            ``github.ref`` / ``github.sha``
``workflow_dispatch``  same as ``push``
``pull_request``    ``github.event.pull_request.head.{ref,sha}``
``issue_comment``   the pull request the comment belongs to, fetched from the
                    API (the event payload does not carry its head)
==================  ==========================================================
"""

from __future__ import annotations

from collections.abc import Mapping

from reflow.context.builder import ContextSource
from reflow.context.document import PathDocument
from reflow.core.errors import KeyMissing, ValidationError
from reflow.core.logging import get_logger
from reflow.github.client import GitHubClient

logger = get_logger(__name__)


class EventContextSource(ContextSource):
    def __init__(self, github: GitHubClient):
        self.github = github

    async def build(self, doc: PathDocument) -> None:
        try:
            event = doc.get_path("github.event_name", str)
        except KeyMissing:
            logger.debug("no_event_payload", reason="github.event_name is missing")
            return

        repository = doc.get_path("github.repository", str)
        owner, _, repo = repository.partition("/")
        if not owner or not repo or "/" in repo:
            raise ValidationError(f"{event}: invalid repository: {repository!r}")

        doc.set_path("reflow.owner", owner)
        doc.set_path("reflow.repo", repo)

        match event:
            case "push" | "workflow_dispatch":
                ref = doc.get_path("github.ref", str)
                sha = doc.get_path("github.sha", str)
            case "pull_request":
                ref = doc.get_path("github.event.pull_request.head.ref", str)
                sha = doc.get_path("github.event.pull_request.head.sha", str)
            case "issue_comment":
                ref, sha = await self._issue_comment(doc, owner, repo)
            case _:
                raise ValidationError(f"unsupported event type: {event!r}")

        doc.set_path("reflow.ref", ref)
        doc.set_path("reflow.sha", sha)
        logger.debug("event_context", event_name=event, owner=owner, repo=repo, ref=ref)

    async def _issue_comment(self, doc: PathDocument, owner: str, repo: str) -> tuple[str, str]:
        try:
            pull = doc.get_path("github.event.issue.pull_request", Mapping)
        except KeyMissing:
            pull = None
        if not pull:
            raise ValidationError("issue_comment: issue is not a pull request")

        number = doc.get_path("github.event.issue.number", int)
        pr = await self.github.get_pull_request(owner, repo, number)
        return pr.head.ref, pr.head.sha
