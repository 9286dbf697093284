"""
Async GitHub REST client covering the calls reflow makes.

Architecture:
    ::

        GitHubClient (httpx.AsyncClient, bearer token, api base url)
          ├── git refs        get_ref / create_ref / delete_ref
          ├── actions         dispatch_workflow / list_workflow_runs /
          │                   get_workflow_run / list_run_artifacts /
          │                   artifact_download_url
          ├── pulls           get_pull_request
          └── downloads       read_limited (separate client, no credential)

Every non-2xx answer and every transport failure raises
:class:`~reflow.core.errors.GitHubAPIError`; the caller decides which
orchestrator error to wrap it into. Nothing is retried.

Examples:
    >>> async with GitHubClient.from_settings(settings) as gh:
    ...     ref = await gh.get_ref("octo", "repo", "heads/main")

Tags:
    github, rest-client, httpx, async, reflow
"""

from __future__ import annotations

from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from reflow.core.errors import GitHubAPIError
from reflow.core.logging import get_logger
from reflow.core.settings import ReflowSettings
from reflow.github.models import (
    ArtifactList,
    GitRef,
    PullRequest,
    WorkflowRun,
    WorkflowRunList,
)

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

API_VERSION = "2022-11-28"
DEFAULT_TIMEOUT = 30.0


def _q(segment: str) -> str:
    return quote(segment, safe="/")


def _repo_path(owner: str, repo: str) -> str:
    return f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"


class GitHubClient:
    """Thin async wrapper over the GitHub REST API."""

    def __init__(
        self,
        token: str = "",
        *,
        base_url: str = "https://api.github.com",
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": "reflow",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._transport = transport
        self._timeout = timeout
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            transport=transport,
            timeout=timeout,
        )

    @classmethod
    def from_settings(
        cls,
        settings: ReflowSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> GitHubClient:
        return cls(
            settings.token.get_secret_value(),
            base_url=settings.api_url,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    # ── Plumbing ─────────────────────────────────────────────────

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise GitHubAPIError(f"{method} {url}", url=url, cause=exc) from exc

        logger.debug("github_request", method=method, url=url, status=response.status_code)

        if response.is_error:
            raise GitHubAPIError(
                f"{method} {url}: {response.status_code} {_error_message(response)}",
                http_status=response.status_code,
                url=url,
            )
        return response

    @staticmethod
    def _decode(response: httpx.Response, model: type[M]) -> M:
        try:
            return model.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise GitHubAPIError(
                f"unexpected {model.__name__} payload from {response.request.url}",
                http_status=response.status_code,
                url=str(response.request.url),
                cause=exc,
            ) from exc

    # ── Git refs ─────────────────────────────────────────────────

    async def get_ref(self, owner: str, repo: str, ref: str) -> GitRef:
        """Read a ref such as ``heads/main`` or ``tags/v1``."""
        response = await self._request("GET", f"{_repo_path(owner, repo)}/git/ref/{_q(ref)}")
        return self._decode(response, GitRef)

    async def create_ref(self, owner: str, repo: str, ref: str, sha: str) -> GitRef:
        """Create a fully qualified ref (``refs/heads/...``) pointing at ``sha``."""
        response = await self._request(
            "POST",
            f"{_repo_path(owner, repo)}/git/refs",
            json={"ref": ref, "sha": sha},
        )
        return self._decode(response, GitRef)

    async def delete_ref(self, owner: str, repo: str, ref: str) -> None:
        ref = ref.removeprefix("refs/")
        await self._request("DELETE", f"{_repo_path(owner, repo)}/git/refs/{_q(ref)}")

    # ── Actions ──────────────────────────────────────────────────

    async def dispatch_workflow(
        self,
        owner: str,
        repo: str,
        workflow_file: str,
        ref: str,
        inputs: dict[str, str],
    ) -> None:
        await self._request(
            "POST",
            f"{_repo_path(owner, repo)}/actions/workflows/{_q(workflow_file)}/dispatches",
            json={"ref": ref, "inputs": inputs},
        )

    async def list_workflow_runs(
        self,
        owner: str,
        repo: str,
        workflow_file: str,
        *,
        per_page: int = 10,
        page: int = 1,
    ) -> WorkflowRunList:
        response = await self._request(
            "GET",
            f"{_repo_path(owner, repo)}/actions/workflows/{_q(workflow_file)}/runs",
            params={"per_page": per_page, "page": page},
        )
        return self._decode(response, WorkflowRunList)

    async def get_workflow_run(self, owner: str, repo: str, run_id: int) -> WorkflowRun:
        response = await self._request("GET", f"{_repo_path(owner, repo)}/actions/runs/{run_id}")
        return self._decode(response, WorkflowRun)

    async def list_run_artifacts(self, owner: str, repo: str, run_id: int) -> ArtifactList:
        response = await self._request(
            "GET", f"{_repo_path(owner, repo)}/actions/runs/{run_id}/artifacts"
        )
        return self._decode(response, ArtifactList)

    async def artifact_download_url(self, owner: str, repo: str, artifact_id: int) -> str:
        """Resolve the short-lived archive URL the API redirects to."""
        url = f"{_repo_path(owner, repo)}/actions/artifacts/{artifact_id}/zip"
        response = await self._request("GET", url, follow_redirects=False)
        location = response.headers.get("Location")
        if not response.is_redirect or not location:
            raise GitHubAPIError(
                f"GET {url}: expected a redirect, got {response.status_code}",
                http_status=response.status_code,
                url=url,
            )
        return location

    # ── Pulls ────────────────────────────────────────────────────

    async def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequest:
        response = await self._request("GET", f"{_repo_path(owner, repo)}/pulls/{number}")
        return self._decode(response, PullRequest)

    # ── Downloads ────────────────────────────────────────────────

    async def read_limited(self, url: str, limit: int) -> bytes:
        """Fetch ``url`` reading at most ``limit + 1`` bytes.

        The download URL is pre-signed, so the API credential is not sent.
        A result longer than ``limit`` means the body was larger.
        """
        chunks: list[bytes] = []
        size = 0
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._timeout,
                follow_redirects=True,
            ) as client:
                async with client.stream("GET", url) as response:
                    if response.is_error:
                        raise GitHubAPIError(
                            f"GET {url}: {response.status_code}",
                            http_status=response.status_code,
                            url=url,
                        )
                    async for chunk in response.aiter_bytes():
                        chunks.append(chunk)
                        size += len(chunk)
                        if size > limit:
                            break
        except httpx.HTTPError as exc:
            raise GitHubAPIError(f"GET {url}", url=url, cause=exc) from exc

        return b"".join(chunks)[: limit + 1]


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase


__all__ = ["GitHubClient", "API_VERSION"]
