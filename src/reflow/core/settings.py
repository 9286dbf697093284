"""Process-wide settings for reflow.

``ReflowSettings`` is built once at process start (by the CLI) and passed
explicitly to the components that need it: the GitHub client, the run
orchestrator and the manifest builder. There is no module-level default
instance.

Every field reads from a ``REFLOW_``-prefixed environment variable, except
the credential which comes from ``PAT`` or ``GITHUB_TOKEN`` (first non-empty
wins). CLI flags override fields via ``settings.model_copy(update=...)``.

Examples:
    >>> settings = ReflowSettings(interval=5, max_lookup=60)
    >>> settings.per_page
    10

Tags:
    settings, configuration, pydantic, environment, reflow
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from reflow.core.home import resolve_home

MiB = 1024 * 1024


class ReflowSettings(BaseSettings):
    """Settings shared by every reflow command.

    Fields
    ──────
    home              : Installation home (``REFLOW_HOME``); resolved lazily
    debug             : Debug logging (``REFLOW_DEBUG``)
    log_level         : Structlog level when not in debug mode
    per_page          : Page size when listing workflow runs
    interval          : Seconds between poll ticks
    max_lookup        : Seconds allowed for the dispatched run to appear
    warmup            : Seconds to wait after dispatch before the first lookup
    api_url           : GitHub REST API base URL
    artifact_name     : Name of the artifact carrying run outputs
    max_artifact_size : Maximum number of artifact bytes read into memory
    token             : GitHub token (``PAT`` or ``GITHUB_TOKEN``)
    """

    model_config = SettingsConfigDict(
        env_prefix="REFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    # ── Installation ─────────────────────────────────────────────
    home: Path | None = None

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"

    # ── Orchestration ────────────────────────────────────────────
    per_page: int = Field(default=10, ge=1, le=100)
    interval: float = Field(default=30.0, gt=0)
    max_lookup: float = Field(default=180.0, gt=0)
    warmup: float = Field(default=10.0, ge=0)

    # ── Remote ───────────────────────────────────────────────────
    api_url: str = "https://api.github.com"
    artifact_name: str = "reflow-outputs"
    max_artifact_size: int = Field(default=1 * MiB, gt=0)
    token: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("PAT", "GITHUB_TOKEN"),
    )

    def resolved_home(self) -> Path:
        """Return the installation home, creating its layout on demand."""
        return resolve_home(self.home)

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level


def get_settings(**overrides) -> ReflowSettings:
    """Build settings from the environment, applying non-None overrides."""
    settings = ReflowSettings()
    update = {k: v for k, v in overrides.items() if v is not None}
    if update:
        settings = settings.model_copy(update=update)
    return settings


__all__ = ["ReflowSettings", "get_settings", "MiB"]
