"""
Run orchestrator — dispatch a workflow, find its run, poll it, collect outputs.

Manifesto:
    ``workflow_dispatch`` answers with ``204 No Content``: nothing identifies
    the run it creates. reflow makes the run identifiable by dispatching it on
    a disposable, uniquely named branch (the *anchor*) and then looking for
    the run whose ``head_branch`` is that anchor.

Architecture:
    ::

        IDLE
          │  get ref <branch>, create refs/heads/reflow/<run-id>   RefLookupError
          ▼                                                        RefCreateError
        ANCHOR_CREATED ─────────────┐  (anchor deleted on every exit path)
          │  POST .../dispatches    │                               DispatchError
          ▼                         │
        DISPATCHED                  │
          │  warm-up sleep          │
          ▼                         │
        AWAITING_RUN ── no run before max_lookup ──► TIMED_OUT     RunLookupTimeout
          │  list runs every tick   │                               RunStatusError
          ▼                         │
        POLLING                     │
          │  get run every tick until concluded                   RunStatusError
          ├── conclusion != success ──► FAILED                     RunFailed
          ▼                         │
        SUCCEEDED                   │
          │  list artifacts, download reflow-outputs (≤ 1 MiB)     ArtifactError
          ▼                         │
        outputs ◄───────────────────┘

    The poll phase has no timeout of its own; caller cancellation is its
    only bound. Every await point observes cancellation, and the ticker and
    lookup deadline are released on all exit paths.

Examples:
    >>> async with GitHubClient.from_settings(settings) as gh:
    ...     outputs = await RunOrchestrator(settings, gh).run(run_id)

Tags:
    orchestration, github-actions, state-machine, polling, reflow
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Mapping
from datetime import UTC, datetime
from typing import Any, TypeVar

from reflow.context.builder import run_builder
from reflow.context.document import PathDocument
from reflow.core.errors import (
    ArtifactError,
    ConfigError,
    ContextKeyError,
    DispatchError,
    GitHubAPIError,
    RefCreateError,
    RefLookupError,
    RemoteCallError,
    RunFailed,
    RunLookupTimeout,
    RunStatusError,
    TemplateError,
    ValidationError,
)
from reflow.core.formats import Formatter
from reflow.core.home import RunLayout
from reflow.core.logging import LogContext, get_logger
from reflow.core.settings import ReflowSettings
from reflow.github.client import GitHubClient
from reflow.github.models import WorkflowRun
from reflow.orchestration.artifacts import extract_outputs, find_artifact
from reflow.orchestration.state import RunPhase, RunState
from reflow.orchestration.timers import Ticker
from reflow.templating.engine import TemplateEngine, default_engine
from reflow.workflow.reference import WorkflowReference

logger = get_logger(__name__)

T = TypeVar("T")

ANCHOR_PREFIX = "reflow/"


def anchor_name(run_id: str) -> str:
    return ANCHOR_PREFIX + run_id


def coerce_input(value: Any) -> str:
    """String form of an input value as sent in the dispatch payload."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list)):
        return json.dumps(value, default=str)
    return str(value)


def render_inputs(
    inputs: Mapping[str, Any],
    context: Mapping[str, Any],
    engine: TemplateEngine | None = None,
) -> dict[str, str]:
    """Coerce every input to a string and render it against ``context``."""
    engine = engine or default_engine()
    rendered: dict[str, str] = {}
    for name, value in inputs.items():
        try:
            rendered[str(name)] = engine.render(coerce_input(value), context)
        except TemplateError as exc:
            raise type(exc)(f"input {name!r}", cause=exc) from exc
    return rendered


class AnchorRef:
    """Scoped ownership of the anchor branch.

    Entering creates ``refs/heads/<name>`` at ``sha``; leaving deletes it no
    matter how the block exits. A failed deletion is logged, not raised.
    """

    def __init__(self, github: GitHubClient, reference: WorkflowReference, name: str, sha: str):
        self.github = github
        self.reference = reference
        self.name = name
        self.sha = sha

    @property
    def ref(self) -> str:
        return f"refs/heads/{self.name}"

    async def __aenter__(self) -> AnchorRef:
        owner, repo = self.reference.owner, self.reference.repo
        try:
            await self.github.create_ref(owner, repo, self.ref, self.sha)
        except GitHubAPIError as exc:
            raise RefCreateError(f"create ref {self.ref}", cause=exc) from exc
        logger.debug("anchor_created", ref=self.ref, sha=self.sha)
        return self

    async def __aexit__(self, *args) -> None:
        owner, repo = self.reference.owner, self.reference.repo
        try:
            await self.github.delete_ref(owner, repo, self.ref)
        except GitHubAPIError as exc:
            logger.warning("anchor_cleanup_failed", ref=self.ref, error=str(exc))
        else:
            logger.debug("anchor_deleted", ref=self.ref)


class RunOrchestrator:
    """Drives exactly one remote run from dispatch to collected outputs."""

    def __init__(
        self,
        settings: ReflowSettings,
        github: GitHubClient,
        *,
        engine: TemplateEngine | None = None,
        formatter: Formatter | None = None,
    ):
        self.settings = settings
        self.github = github
        self.engine = engine or default_engine()
        self.formatter = formatter or Formatter()
        self.state: RunState | None = None

    # ── Prepared runs ────────────────────────────────────────────

    async def run(self, run_id: str) -> dict[str, Any]:
        """Run a workflow prepared by the manifest builder under ``runs/<run_id>``."""
        layout = RunLayout(self.settings.resolved_home(), run_id)
        if not layout.exists():
            raise ConfigError(f"run {run_id!r} not found in {layout.root}")

        with LogContext(run_id=run_id):
            doc = PathDocument()
            try:
                await run_builder(layout, self.github).build(doc)
            except ConfigError as exc:
                raise ConfigError("building context", cause=exc) from exc

            try:
                uses = doc.get_path("manifest.uses", str)
            except ContextKeyError as exc:
                raise ConfigError("reading manifest", cause=exc) from exc

            reference = WorkflowReference.parse(uses)
            inputs = self._load_inputs(layout)

            token = self.settings.token.get_secret_value()
            doc.set_path("reflow.token", token)

            outputs = await self.execute(reference, render_inputs(inputs, doc, self.engine), run_id)

            self.formatter.marshal(outputs, layout.outputs_file)
            logger.debug("outputs_written", path=str(layout.outputs_file))
            return outputs

    def _load_inputs(self, layout: RunLayout) -> dict[str, Any]:
        if not layout.inputs_file.exists():
            return {}
        inputs = self.formatter.unmarshal(layout.inputs_file)
        if inputs is None:
            return {}
        if not isinstance(inputs, Mapping):
            raise ValidationError(
                f"{layout.inputs_file.name}: inputs must be a mapping, got {type(inputs).__name__}"
            )
        return dict(inputs)

    # ── State machine ────────────────────────────────────────────

    async def execute(
        self,
        reference: WorkflowReference,
        inputs: Mapping[str, str],
        run_id: str,
    ) -> dict[str, Any]:
        """Dispatch ``reference`` with rendered ``inputs`` and return its outputs."""
        state = self.state = RunState(anchor_name=anchor_name(run_id))
        owner, repo, workflow = reference.owner, reference.repo, reference.file

        with LogContext(workflow=workflow):
            base = await self._remote(
                RefLookupError,
                f"get ref {reference.branch}",
                self.github.get_ref(owner, repo, reference.branch),
            )

            async with AnchorRef(self.github, reference, state.anchor_name, base.object.sha):
                state.phase = RunPhase.ANCHOR_CREATED

                await self._remote(
                    DispatchError,
                    f"dispatch workflow {workflow}",
                    self.github.dispatch_workflow(owner, repo, workflow, state.anchor_name, dict(inputs)),
                )
                state.phase = RunPhase.DISPATCHED
                state.dispatched_at = datetime.now(UTC)
                logger.info("workflow_dispatched", anchor=state.anchor_name)

                await asyncio.sleep(self.settings.warmup)

                async with Ticker(self.settings.interval) as ticker:
                    run = await self._await_run(reference, state, ticker)
                    run = await self._poll(reference, state, ticker, run)

                if not state.succeeded:
                    state.phase = RunPhase.FAILED
                    raise RunFailed(run.conclusion or "", status=run.status, html_url=run.html_url)

                state.phase = RunPhase.SUCCEEDED
                logger.info("workflow_succeeded", url=run.html_url)
                return await self._collect_outputs(reference, run)

    async def _await_run(
        self,
        reference: WorkflowReference,
        state: RunState,
        ticker: Ticker,
    ) -> WorkflowRun:
        state.phase = RunPhase.AWAITING_RUN
        try:
            async with asyncio.timeout(self.settings.max_lookup) as deadline:
                while True:
                    listing = await self._remote(
                        RunStatusError,
                        f"list workflow runs for {reference.file}",
                        self.github.list_workflow_runs(
                            reference.owner,
                            reference.repo,
                            reference.file,
                            per_page=self.settings.per_page,
                        ),
                    )
                    run = next(
                        (r for r in listing.workflow_runs if r.head_branch == state.anchor_name),
                        None,
                    )
                    if run is not None:
                        break
                    logger.debug("workflow_run_not_found", anchor=state.anchor_name)
                    await ticker.wait()
        except TimeoutError as exc:
            if not deadline.expired():
                raise
            state.phase = RunPhase.TIMED_OUT
            raise RunLookupTimeout(state.anchor_name, self.settings.max_lookup) from exc

        state.run_id = run.id
        state.html_url = run.html_url
        logger.info("workflow_running", url=run.html_url)
        return run

    async def _poll(
        self,
        reference: WorkflowReference,
        state: RunState,
        ticker: Ticker,
        run: WorkflowRun,
    ) -> WorkflowRun:
        state.phase = RunPhase.POLLING
        while True:
            await ticker.wait()
            run = await self._remote(
                RunStatusError,
                f"get workflow run {run.id}",
                self.github.get_workflow_run(reference.owner, reference.repo, run.id),
            )
            state.polls += 1
            state.status = run.status
            state.conclusion = run.conclusion
            logger.info("workflow_status", status=run.status, url=run.html_url)
            if run.is_concluded:
                return run

    async def _collect_outputs(self, reference: WorkflowReference, run: WorkflowRun) -> dict[str, Any]:
        owner, repo = reference.owner, reference.repo
        name = self.settings.artifact_name
        limit = self.settings.max_artifact_size

        try:
            listing = await self.github.list_run_artifacts(owner, repo, run.id)
            artifact = find_artifact(listing.artifacts, name)
            if artifact is None:
                logger.info("no_outputs_artifact", artifact=name, found=len(listing.artifacts))
                return {}

            url = await self.github.artifact_download_url(owner, repo, artifact.id)
            archive = await self.github.read_limited(url, limit)
        except GitHubAPIError as exc:
            raise ArtifactError(f"download artifact {name!r}", cause=exc) from exc

        if len(archive) > limit:
            raise ArtifactError(f"artifact {name!r} exceeds {limit} bytes")

        outputs = extract_outputs(archive, max_entry_size=limit)
        logger.debug("outputs_collected", keys=sorted(outputs))
        return outputs

    @staticmethod
    async def _remote(error: type[RemoteCallError], what: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except GitHubAPIError as exc:
            raise error(what, cause=exc) from exc


__all__ = [
    "ANCHOR_PREFIX",
    "AnchorRef",
    "RunOrchestrator",
    "anchor_name",
    "coerce_input",
    "render_inputs",
]
