"""
Shared pytest fixtures and configuration for reflow tests.

This module provides:
- Temporary installation homes and run directories
- Settings tuned for fast polling
- A stub GitHub API (``httpx.MockTransport``) and a client bound to it

Usage:
    Fixtures are auto-discovered by pytest. Simply use them as function
    arguments (pytest injects them automatically).

    @pytest.mark.asyncio
    async def test_dispatch(stub_github, github):
        ...
"""

import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Ensure reflow package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from _support import TOKEN
from _support.github import StubGitHub
from reflow.core.home import RunLayout, init_home
from reflow.core.logging import configure_logging
from reflow.core.settings import ReflowSettings
from reflow.github.client import GitHubClient


# =============================================================================
# Environment isolation
# =============================================================================

@pytest.fixture(autouse=True, scope="session")
def _stderr_logging() -> None:
    """Route logs to stderr so stdout assertions only see command output."""
    configure_logging(level="DEBUG", json_format=False)

@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's environment out of settings and step outputs."""
    for name in (
        "PAT",
        "GITHUB_TOKEN",
        "GITHUB_OUTPUT",
        "REFLOW_HOME",
        "REFLOW_DEBUG",
        "REFLOW_INPUTS",
        "REFLOW_CONTEXT_GITHUB",
        "REFLOW_CONTEXT_VALUES",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))

# =============================================================================
# Home / settings
# =============================================================================

@pytest.fixture
def home(tmp_path: Path) -> Path:
    return init_home(tmp_path / "home")

@pytest.fixture
def layout(home: Path) -> RunLayout:
    return RunLayout(home, "3f1c0000-0000-4000-8000-000000000001").create()

@pytest.fixture
def settings(home: Path) -> ReflowSettings:
    return ReflowSettings(
        home=home,
        interval=0.01,
        warmup=0,
        max_lookup=0.5,
        PAT=TOKEN,
    )

# =============================================================================
# GitHub
# =============================================================================

@pytest.fixture
def stub_github() -> StubGitHub:
    return StubGitHub()

@pytest_asyncio.fixture
async def github(stub_github: StubGitHub, settings: ReflowSettings):
    client = GitHubClient.from_settings(settings, transport=stub_github.transport)
    yield client
    await client.aclose()
