"""Tests for hookwarden.core.results module."""

import pytest
from pydantic import ValidationError

from hookwarden.core.results import (
    STEP_RESULT_TYPES,
    FullTestSuiteResult,
    HookResult,
    LintingResult,
    SecurityAuditResult,
    StepStatus,
    make_step_result,
    parse_step_result,
)


class TestStepStatus:
    """Tests for StepStatus."""

    def test_only_failed_is_not_ok(self):
        assert [s for s in StepStatus if not s.is_ok] == [StepStatus.FAILED]


class TestStepResults:
    """Tests for the step result variants."""

    def test_every_variant_is_registered_by_step_name(self):
        assert STEP_RESULT_TYPES["linting"] is LintingResult
        assert STEP_RESULT_TYPES["security_audit"] is SecurityAuditResult
        assert len(STEP_RESULT_TYPES) == 28

    def test_make_step_result(self):
        result = make_step_result("full_test_suite", StepStatus.FAILED, error="boom")
        assert isinstance(result, FullTestSuiteResult)
        assert result.error == "boom"
        assert result.step == "full_test_suite"

    def test_make_step_result_unknown_step(self):
        with pytest.raises(KeyError):
            make_step_result("no_such_step", StepStatus.PASSED)

    def test_variants_reject_foreign_fields(self):
        with pytest.raises(ValidationError):
            LintingResult(status=StepStatus.PASSED, vulnerabilities={"high": 1})

    def test_parse_step_result_uses_discriminator(self):
        result = parse_step_result({
            "step": "security_audit",
            "status": "failed",
            "vulnerabilities": {"critical": 2},
        })
        assert isinstance(result, SecurityAuditResult)
        assert result.status == StepStatus.FAILED
        assert result.vulnerabilities == {"critical": 2}


class TestHookResult:
    """Tests for HookResult."""

    def _result(self) -> HookResult:
        return HookResult(
            hook_type="pre-push",
            success=False,
            duration=12.5,
            results={
                "full_test_suite": FullTestSuiteResult(status=StepStatus.FAILED, error="x"),
                "security_audit": SecurityAuditResult(status=StepStatus.WARNING),
                "linting": LintingResult(status=StepStatus.PASSED),
            },
        )

    def test_failed_and_warning_steps(self):
        result = self._result()
        assert result.failed_steps() == ["full_test_suite"]
        assert result.warning_steps() == ["security_audit"]

    def test_to_dict_is_json_ready(self):
        data = self._result().to_dict()
        assert data["results"]["full_test_suite"]["status"] == "failed"
        assert data["results"]["linting"]["step"] == "linting"
        assert data["bypass"] is None

    def test_results_validated_at_boundary(self):
        with pytest.raises(ValidationError):
            HookResult(
                hook_type="pre-commit",
                success=True,
                results={"linting": {"step": "linting", "status": "exploded"}},
            )

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            HookResult(hook_type="pre-commit", success=True, duration=-1)
