"""
Structured error types for reflow.

Every failure raised by reflow derives from :class:`ReflowError`. Instead of
bare exceptions that lose context on the way up to the CLI, each error carries
a category, an :class:`ErrorContext` with run metadata, and the chained
underlying cause, so the final message printed by the CLI is the full wrapped
chain and the structured log line has everything needed for diagnosis.

Manifesto:
    - **Typed hierarchy:** One subclass per failure domain
    - **Wrap, don't swallow:** Components chain the original exception
    - **Rich context:** Errors carry run id, workflow and URL metadata
    - **No automatic retry:** Remote failures are fatal by contract

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        ReflowError                               │
        │               (category, context, cause)                         │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ValidationError     ConfigError         SourceError             │
        │  (VALIDATION)        (CONFIG)            (SOURCE)                │
        │       │                   │                   │                  │
        │  MalformedReference  ContextBuildError   GitHubAPIError          │
        │  ManifestError       ContextKeyError     ParseError              │
        │                        KeyMissing          FormatError           │
        │                        KeyTypeMismatch                           │
        │                                                                  │
        │  TemplateError       OrchestrationError                          │
        │  (TEMPLATE)          (ORCHESTRATION)                             │
        │       │                   │                                      │
        │  TemplateParseError  RemoteCallError  RunLookupTimeout           │
        │  TemplateExecError     RefLookupError RunFailed                  │
        │                        RefCreateError ArtifactError              │
        │                        DispatchError                             │
        │                        RunStatusError                            │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = RunFailed("failure", status="completed", html_url="https://x")
    >>> err.conclusion
    'failure'
    >>> err.category
    <ErrorCategory.ORCHESTRATION: 'ORCHESTRATION'>

    Chaining a remote failure:

    >>> try:
    ...     raise GitHubAPIError("404 Not Found", http_status=404)
    ... except GitHubAPIError as e:
    ...     raise RefLookupError("get ref heads/main", cause=e)
    Traceback (most recent call last):
    ...
    RefLookupError: get ref heads/main: 404 Not Found

Tags:
    error-handling, exception-hierarchy, error-context, reflow
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories used for classification in logs."""

    NETWORK = "NETWORK"  # Transport failures talking to the API
    SOURCE = "SOURCE"  # Upstream API returned an error status
    PARSE = "PARSE"  # Document decoding failures
    VALIDATION = "VALIDATION"  # Malformed user input
    CONFIG = "CONFIG"  # Context assembly, missing keys
    TEMPLATE = "TEMPLATE"  # Template parse/evaluation failures
    ORCHESTRATION = "ORCHESTRATION"  # Run state machine failures
    INTERNAL = "INTERNAL"  # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"  # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only non-None fields are serialized by :meth:`to_dict`; anything that
    does not have a dedicated field goes into ``metadata``.

    Guardrails:
        ❌ DON'T: Store the GitHub token or any input marked secret
        ✅ DO: Store identifiers (run id, anchor, workflow file)
    """

    run_id: str | None = None
    workflow: str | None = None
    source: str | None = None
    url: str | None = None
    http_status: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["run_id", "workflow", "source", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ReflowError(Exception):
    """
    Base exception for all reflow errors.

    The string form of a wrapped error is ``"<message>: <cause>"`` so that a
    chain of wrapped errors reads like the path the failure travelled, e.g.
    ``building context: DirectorySource(templates): values.yaml: ...``.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ReflowError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# SOURCE / PARSE ERRORS
# =============================================================================


class SourceError(ReflowError):
    """Error talking to an upstream system."""

    default_category = ErrorCategory.SOURCE


class GitHubAPIError(SourceError):
    """The GitHub REST API answered with an error status or was unreachable."""

    def __init__(
        self,
        message: str,
        *,
        http_status: int | None = None,
        url: str | None = None,
        cause: BaseException | None = None,
    ):
        category = ErrorCategory.NETWORK if http_status is None else None
        super().__init__(
            message,
            category=category,
            context=ErrorContext(url=url, http_status=http_status),
            cause=cause,
        )
        self.http_status = http_status


class ParseError(SourceError):
    """Error decoding a structured document."""

    default_category = ErrorCategory.PARSE


class FormatError(ParseError):
    """Unsupported or undecodable JSON/YAML document."""


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ReflowError):
    """User-supplied input is malformed."""

    default_category = ErrorCategory.VALIDATION


class MalformedReference(ValidationError):
    """A workflow reference does not match ``owner/repo/.github/workflows/file@ref``."""

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        self.reason = reason
        super().__init__(f"malformed workflow reference {reference!r}: {reason}")


class ManifestError(ValidationError):
    """The manifest document is missing required fields."""


# =============================================================================
# CONFIG / CONTEXT ERRORS
# =============================================================================


class ConfigError(ReflowError):
    """Context assembly or configuration failure."""

    default_category = ErrorCategory.CONFIG


class ContextBuildError(ConfigError):
    """A layered context source failed."""

    def __init__(self, source: str, cause: BaseException):
        self.source = source
        super().__init__(source, context=ErrorContext(source=source), cause=cause)


class ContextKeyError(ConfigError, LookupError):
    """Base for dotted-path lookup failures on a context document."""

    def __init__(self, message: str, path: str):
        self.path = path
        super().__init__(message)


class KeyMissing(ContextKeyError):
    """A segment of a dotted path does not resolve."""

    def __init__(self, path: str):
        super().__init__(f"key {path!r} is missing", path)


class KeyTypeMismatch(ContextKeyError):
    """The value at a dotted path is not of the requested type."""

    def __init__(self, path: str, value: Any, expected: str):
        self.value = value
        self.expected = expected
        super().__init__(
            f"key {path!r} has invalid type: got {type(value).__name__}, want {expected}",
            path,
        )


# =============================================================================
# TEMPLATE ERRORS
# =============================================================================


class TemplateError(ReflowError):
    """Template rendering failure."""

    default_category = ErrorCategory.TEMPLATE


class TemplateParseError(TemplateError):
    """The template text could not be parsed."""


class TemplateExecError(TemplateError):
    """The template parsed but failed while being evaluated."""


# =============================================================================
# ORCHESTRATION ERRORS
# =============================================================================


class OrchestrationError(ReflowError):
    """Remote run state machine failure."""

    default_category = ErrorCategory.ORCHESTRATION


class RemoteCallError(OrchestrationError):
    """A fatal remote call made by the orchestrator failed."""


class RefLookupError(RemoteCallError):
    """Reading the base ref of the workflow reference failed."""


class RefCreateError(RemoteCallError):
    """Creating the anchor ref failed."""


class DispatchError(RemoteCallError):
    """Dispatching the workflow failed."""


class RunStatusError(RemoteCallError):
    """Listing the workflow's runs or reading the matched run failed."""


class RunLookupTimeout(OrchestrationError):
    """No run matching the anchor appeared within the lookup budget."""

    def __init__(self, anchor: str, timeout: float):
        self.anchor = anchor
        self.timeout = timeout
        super().__init__(
            f"looking up workflow run for anchor {anchor!r} timed out after {timeout:g}s"
        )


class RunFailed(OrchestrationError):
    """The matched run concluded with anything other than ``success``."""

    def __init__(self, conclusion: str, *, status: str | None = None, html_url: str | None = None):
        self.conclusion = conclusion
        self.status = status
        self.html_url = html_url
        super().__init__(
            f"undesired workflow conclusion: got {conclusion!r}, want 'success' [{html_url or status}]",
            context=ErrorContext(url=html_url),
        )


class ArtifactError(OrchestrationError):
    """Downloading or decoding the outputs artifact failed."""


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, ReflowError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.NETWORK
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ReflowError",
    # Source
    "SourceError",
    "GitHubAPIError",
    "ParseError",
    "FormatError",
    # Validation
    "ValidationError",
    "MalformedReference",
    "ManifestError",
    # Config
    "ConfigError",
    "ContextBuildError",
    "ContextKeyError",
    "KeyMissing",
    "KeyTypeMismatch",
    # Template
    "TemplateError",
    "TemplateParseError",
    "TemplateExecError",
    # Orchestration
    "OrchestrationError",
    "RemoteCallError",
    "RefLookupError",
    "RefCreateError",
    "DispatchError",
    "RunStatusError",
    "RunLookupTimeout",
    "RunFailed",
    "ArtifactError",
    # Utilities
    "categorize_error",
]
