"""Tests for reflow.core.errors module."""

import pytest

from reflow.core.errors import (
    ArtifactError,
    ConfigError,
    ContextBuildError,
    ContextKeyError,
    DispatchError,
    ErrorCategory,
    ErrorContext,
    FormatError,
    GitHubAPIError,
    KeyMissing,
    KeyTypeMismatch,
    MalformedReference,
    ManifestError,
    OrchestrationError,
    ParseError,
    RefCreateError,
    RefLookupError,
    ReflowError,
    RemoteCallError,
    RunFailed,
    RunLookupTimeout,
    RunStatusError,
    SourceError,
    TemplateError,
    TemplateExecError,
    TemplateParseError,
    ValidationError,
    categorize_error,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_empty_context_serializes_to_empty_dict(self):
        assert ErrorContext().to_dict() == {}

    def test_only_set_fields_are_serialized(self):
        ctx = ErrorContext(run_id="r1", http_status=404, metadata={"anchor": "reflow/r1"})
        assert ctx.to_dict() == {"run_id": "r1", "http_status": 404, "anchor": "reflow/r1"}


class TestReflowError:
    """Test the base error."""

    def test_default_category_is_internal(self):
        assert ReflowError("boom").category == ErrorCategory.INTERNAL

    def test_str_includes_cause_chain(self):
        inner = GitHubAPIError("404 Not Found", http_status=404)
        outer = RefLookupError("get ref heads/main", cause=inner)
        assert str(outer) == "get ref heads/main: 404 Not Found"
        assert outer.__cause__ is inner

    def test_with_context_sets_fields_and_metadata(self):
        err = DispatchError("dispatch").with_context(run_id="r1", anchor="reflow/r1")
        assert err.context.run_id == "r1"
        assert err.context.metadata == {"anchor": "reflow/r1"}

    def test_to_dict(self):
        err = ArtifactError("download", cause=ValueError("bad zip")).with_context(workflow="deploy.yaml")
        assert err.to_dict() == {
            "error_type": "ArtifactError",
            "message": "download",
            "category": "ORCHESTRATION",
            "context": {"workflow": "deploy.yaml"},
            "cause": "bad zip",
        }


class TestHierarchy:
    """Each failure lands in the right branch of the hierarchy."""

    @pytest.mark.parametrize(
        "error, base",
        [
            (GitHubAPIError("x"), SourceError),
            (FormatError("x"), ParseError),
            (MalformedReference("x", "y"), ValidationError),
            (ManifestError("x"), ValidationError),
            (ContextBuildError("src", ValueError()), ConfigError),
            (KeyMissing("a.b"), ContextKeyError),
            (KeyTypeMismatch("a", 1, "str"), ContextKeyError),
            (TemplateParseError("x"), TemplateError),
            (TemplateExecError("x"), TemplateError),
            (RefLookupError("x"), RemoteCallError),
            (RefCreateError("x"), RemoteCallError),
            (DispatchError("x"), RemoteCallError),
            (RunStatusError("x"), RemoteCallError),
            (RunLookupTimeout("reflow/1", 180), OrchestrationError),
            (RunFailed("failure"), OrchestrationError),
            (ArtifactError("x"), OrchestrationError),
        ],
    )
    def test_base_class(self, error, base):
        assert isinstance(error, base)
        assert isinstance(error, ReflowError)

    def test_key_errors_are_lookup_errors(self):
        with pytest.raises(LookupError):
            raise KeyMissing("github.ref")

    def test_transport_failure_is_network_category(self):
        assert GitHubAPIError("GET /x").category == ErrorCategory.NETWORK
        assert GitHubAPIError("GET /x", http_status=500).category == ErrorCategory.SOURCE


class TestSpecificErrors:
    def test_run_failed_carries_run_details(self):
        err = RunFailed("failure", status="completed", html_url="https://github.com/o/r/actions/runs/1")
        assert err.conclusion == "failure"
        assert err.status == "completed"
        assert "https://github.com/o/r/actions/runs/1" in str(err)
        assert err.context.url == err.html_url

    def test_lookup_timeout_message(self):
        err = RunLookupTimeout("reflow/abc", 180.0)
        assert "reflow/abc" in str(err)
        assert "180s" in str(err)

    def test_malformed_reference_keeps_input(self):
        err = MalformedReference("nope", "missing '@branch'")
        assert err.reference == "nope"
        assert "missing '@branch'" in str(err)

    def test_key_type_mismatch_names_types(self):
        err = KeyTypeMismatch("github.ref", 12, "str")
        assert err.path == "github.ref"
        assert "got int, want str" in str(err)


class TestCategorizeError:
    def test_reflow_error(self):
        assert categorize_error(TemplateExecError("x")) == ErrorCategory.TEMPLATE

    def test_builtin_errors(self):
        assert categorize_error(ConnectionError()) == ErrorCategory.NETWORK
        assert categorize_error(ValueError()) == ErrorCategory.VALIDATION
        assert categorize_error(RuntimeError()) == ErrorCategory.UNKNOWN
