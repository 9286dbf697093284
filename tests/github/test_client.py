"""Tests for reflow.github.client against an httpx.MockTransport."""

import httpx
import pytest

from _support import make_archive
from reflow.core.errors import GitHubAPIError
from reflow.github.client import API_VERSION, GitHubClient


class TestRequests:
    @pytest.mark.asyncio
    async def test_headers(self, github, stub_github):
        await github.get_ref("octo", "repo", "heads/main")
        request = stub_github.requests[-1]
        assert request.headers["Authorization"] == "Bearer t0ken-secret"
        assert request.headers["X-GitHub-Api-Version"] == API_VERSION

    @pytest.mark.asyncio
    async def test_no_auth_header_without_token(self, stub_github):
        async with GitHubClient(transport=stub_github.transport) as gh:
            await gh.get_ref("octo", "repo", "heads/main")
        assert "Authorization" not in stub_github.requests[-1].headers

    @pytest.mark.asyncio
    async def test_get_ref(self, github):
        ref = await github.get_ref("octo", "repo", "heads/main")
        assert ref.ref == "refs/heads/main"
        assert ref.object.sha == "c0ffee"

    @pytest.mark.asyncio
    async def test_owner_and_repo_are_quoted(self, github, stub_github):
        with pytest.raises(GitHubAPIError):
            await github.get_workflow_run("octo org", "re?po#1", 7)
        request = stub_github.requests[-1]
        assert request.url.raw_path == b"/repos/octo%20org/re%3Fpo%231/actions/runs/7"
        assert request.url.query == b""

    @pytest.mark.asyncio
    async def test_create_and_delete_ref(self, github, stub_github):
        created = await github.create_ref("octo", "repo", "refs/heads/reflow/1", "c0ffee")
        await github.delete_ref("octo", "repo", "refs/heads/reflow/1")

        assert created.ref == "refs/heads/reflow/1"
        assert stub_github.created_refs == [{"ref": "refs/heads/reflow/1", "sha": "c0ffee"}]
        assert stub_github.deleted_refs == ["heads/reflow/1"]

    @pytest.mark.asyncio
    async def test_dispatch_payload(self, github, stub_github):
        await github.dispatch_workflow("octo", "repo", "deploy.yaml", "reflow/1", {"version": "1"})
        assert stub_github.dispatches == [{"ref": "reflow/1", "inputs": {"version": "1"}}]

    @pytest.mark.asyncio
    async def test_list_runs_pagination_params(self, github, stub_github):
        listing = await github.list_workflow_runs("octo", "repo", "deploy.yaml", per_page=25)
        params = stub_github.requests[-1].url.params
        assert params["per_page"] == "25"
        assert params["page"] == "1"
        assert listing.workflow_runs[0].head_branch == "main"


class TestErrors:
    @pytest.mark.asyncio
    async def test_error_status_carries_message(self, github, stub_github):
        stub_github.fail("GET", r"/repos/octo/repo/git/ref/.*", status=422)
        with pytest.raises(GitHubAPIError) as exc:
            await github.get_ref("octo", "repo", "heads/main")
        assert exc.value.http_status == 422
        assert "stub failure" in str(exc.value)

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def boom(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with GitHubClient("t", transport=httpx.MockTransport(boom)) as gh:
            with pytest.raises(GitHubAPIError) as exc:
                await gh.get_workflow_run("octo", "repo", 1)
        assert exc.value.http_status is None
        assert isinstance(exc.value.cause, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_unexpected_payload(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"nope": True}))
        async with GitHubClient("t", transport=transport) as gh:
            with pytest.raises(GitHubAPIError, match="unexpected WorkflowRun payload"):
                await gh.get_workflow_run("octo", "repo", 1)


class TestArtifacts:
    @pytest.mark.asyncio
    async def test_download_url_from_redirect(self, github):
        url = await github.artifact_download_url("octo", "repo", 11)
        assert url == "https://downloads.example/artifacts/11.zip"

    @pytest.mark.asyncio
    async def test_download_url_requires_redirect(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        async with GitHubClient("t", transport=transport) as gh:
            with pytest.raises(GitHubAPIError, match="expected a redirect"):
                await gh.artifact_download_url("octo", "repo", 11)

    @pytest.mark.asyncio
    async def test_read_limited_omits_credential(self, github, stub_github):
        archive = make_archive({"outputs.yaml": "x: 1\n"})
        stub_github.add_artifact(archive)

        body = await github.read_limited("https://downloads.example/artifacts/11.zip", 1024 * 1024)

        assert body == archive
        assert stub_github.download_auth == [None]

    @pytest.mark.asyncio
    async def test_read_limited_stops_after_limit(self, github, stub_github):
        stub_github.archives[12] = b"x" * 100
        body = await github.read_limited("https://downloads.example/artifacts/12.zip", 10)
        assert len(body) == 11

    @pytest.mark.asyncio
    async def test_read_limited_error_status(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(410))
        async with GitHubClient("t", transport=transport) as gh:
            with pytest.raises(GitHubAPIError) as exc:
                await gh.read_limited("https://downloads.example/a.zip", 10)
        assert exc.value.http_status == 410


class TestPullRequests:
    @pytest.mark.asyncio
    async def test_get_pull_request(self, github, stub_github):
        stub_github.pulls[3] = {"number": 3, "head": {"ref": "feat", "sha": "abc"}, "extra": "ignored"}
        pr = await github.get_pull_request("octo", "repo", 3)
        assert (pr.number, pr.head.ref, pr.head.sha) == (3, "feat", "abc")
