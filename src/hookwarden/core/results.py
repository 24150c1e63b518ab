"""Step and hook result models.

Every pipeline step returns one ``StepResult`` variant, discriminated by its
``step`` literal. ``HookResult`` validates the ``results`` mapping at the
pipeline boundary, so a step can only report the fields its variant
declares.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class StepStatus(str, Enum):
    """Outcome of a single pipeline step."""

    PASSED = "passed"
    FAILED = "failed"
    WARNING = "warning"
    SKIPPED = "skipped"
    WAIVED = "waived"

    @property
    def is_ok(self) -> bool:
        """Statuses that do not fail a pre-* hook on their own."""
        return self != StepStatus.FAILED


class _StepBase(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=False)

    status: StepStatus
    message: str | None = None
    error: str | None = None
    category: str | None = Field(
        default=None,
        description="Error classification category when the step raised",
    )
    output: str | None = None


# pre-commit / commit-msg


class LintingResult(_StepBase):
    step: Literal["linting"] = "linting"
    files_processed: int = 0


class FastTestResult(_StepBase):
    step: Literal["testing"] = "testing"
    tests_passed: int = 0
    tests_failed: int = 0
    cached: bool = False


class ContextValidationResult(_StepBase):
    step: Literal["context_validation"] = "context_validation"
    code_changes: bool = False
    journal_updated: bool = False
    persona: str | None = None
    step_id: str | None = None
    issues: list[str] = Field(default_factory=list)
    remediation: list[str] = Field(default_factory=list)


class GatekeeperResult(_StepBase):
    step: Literal["gatekeeper_integration"] = "gatekeeper_integration"
    gate: str | None = None
    validations: list[dict[str, Any]] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    waiver: str | None = None
    report: str | None = None


class BypassResult(_StepBase):
    step: Literal["bypass"] = "bypass"
    bypassed: bool = False
    bypass_type: str | None = None
    reason: str | None = None
    audit_trail: dict[str, Any] | None = None


class MessageValidationResult(_StepBase):
    step: Literal["message_validation"] = "message_validation"
    valid: bool = False
    format: str | None = None
    parsed: dict[str, Any] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)


# pre-push


class FullTestSuiteResult(_StepBase):
    step: Literal["full_test_suite"] = "full_test_suite"
    tests_passed: int = 0
    tests_failed: int = 0
    coverage: float | None = None
    coverage_threshold: float | None = None


class BuildValidationResult(_StepBase):
    step: Literal["build_validation"] = "build_validation"


class SecurityAuditResult(_StepBase):
    step: Literal["security_audit"] = "security_audit"
    vulnerabilities: dict[str, int] = Field(default_factory=dict)


class WorkflowSyncResult(_StepBase):
    step: Literal["workflow_sync"] = "workflow_sync"
    workflow_active: bool = False
    current_persona: str | None = None
    phase: str = "unknown"
    personas_consistent: bool = False
    context_synchronized: bool = False


# post-commit


class MetricsUpdateResult(_StepBase):
    step: Literal["metrics_update"] = "metrics_update"
    files_changed: int = 0
    lines_added: int = 0
    lines_deleted: int = 0
    metrics: dict[str, Any] | None = None


class DocumentationResult(_StepBase):
    step: Literal["documentation"] = "documentation"
    files: list[str] = Field(default_factory=list)


class ContextUpdateResult(_StepBase):
    step: Literal["context_update"] = "context_update"
    persona: str | None = None
    step_id: str | None = None
    content_hash: str | None = None


class NotificationResult(_StepBase):
    step: Literal["orchestrator_notification"] = "orchestrator_notification"
    delivered: bool = False


# post-merge


class WorkflowResult(_StepBase):
    step: Literal["workflow"] = "workflow"


class RepositoryValidationResult(_StepBase):
    step: Literal["repository_validation"] = "repository_validation"
    working_tree_clean: bool = False
    has_unmerged_paths: bool = False
    branch_valid: bool = False
    branch: str | None = None
    critical_files: dict[str, bool] = Field(default_factory=dict)
    integrity_check: dict[str, Any] = Field(default_factory=dict)
    is_valid: bool = False
    issues: list[str] = Field(default_factory=list)
    summary: str | None = None


class MergeAnalysisResult(_StepBase):
    step: Literal["merge_analysis"] = "merge_analysis"
    report_path: str | None = None
    report: dict[str, Any] | None = None


# pre-rebase


class SafetyValidationResult(_StepBase):
    step: Literal["safety_validation"] = "safety_validation"
    working_tree_clean: bool = False
    current_branch: str | None = None
    is_protected: bool = False


class CommitCompatibilityResult(_StepBase):
    step: Literal["commit_compatibility"] = "commit_compatibility"
    commits_analyzed: int = 0
    invalid_commits: list[str] = Field(default_factory=list)


class ConflictDetectionResult(_StepBase):
    step: Literal["conflict_detection"] = "conflict_detection"
    has_conflicts: bool = False
    conflicting_files: list[str] = Field(default_factory=list)


class CommitAnalysisResult(_StepBase):
    step: Literal["commit_analysis"] = "commit_analysis"
    commit_count: int = 0


# post-checkout


class ContextRestorationResult(_StepBase):
    step: Literal["context_restoration"] = "context_restoration"
    restored: bool = False
    context_file: str | None = None
    previous_saved: bool = False


class BranchInfoResult(_StepBase):
    step: Literal["branch_info"] = "branch_info"
    previous_branch: str | None = None
    new_branch: str | None = None
    is_new_branch: bool = False


# pre-receive


class CommitValidationResult(_StepBase):
    step: Literal["commit_validation"] = "commit_validation"
    commits_analyzed: int = 0
    invalid_commits: list[str] = Field(default_factory=list)


class BranchProtectionResult(_StepBase):
    step: Literal["branch_protection"] = "branch_protection"
    is_protected: bool = False
    is_deletion: bool = False


class AuthorValidationResult(_StepBase):
    step: Literal["author_validation"] = "author_validation"
    commits_checked: int = 0
    issues: list[str] = Field(default_factory=list)


class SizeValidationResult(_StepBase):
    step: Literal["size_validation"] = "size_validation"
    commit_count: int = 0


class ForcePushDetectionResult(_StepBase):
    step: Literal["force_push_detection"] = "force_push_detection"
    is_force_push: bool = False
    audit_trail: dict[str, Any] | None = None


StepResult = Annotated[
    LintingResult
    | FastTestResult
    | ContextValidationResult
    | GatekeeperResult
    | BypassResult
    | MessageValidationResult
    | FullTestSuiteResult
    | BuildValidationResult
    | SecurityAuditResult
    | WorkflowSyncResult
    | MetricsUpdateResult
    | DocumentationResult
    | ContextUpdateResult
    | NotificationResult
    | WorkflowResult
    | RepositoryValidationResult
    | MergeAnalysisResult
    | SafetyValidationResult
    | CommitCompatibilityResult
    | ConflictDetectionResult
    | CommitAnalysisResult
    | ContextRestorationResult
    | BranchInfoResult
    | CommitValidationResult
    | BranchProtectionResult
    | AuthorValidationResult
    | SizeValidationResult
    | ForcePushDetectionResult,
    Field(discriminator="step"),
]

STEP_RESULT_TYPES: dict[str, type[_StepBase]] = {
    cls.model_fields["step"].default: cls
    for cls in (
        LintingResult, FastTestResult, ContextValidationResult, GatekeeperResult,
        BypassResult, MessageValidationResult, FullTestSuiteResult,
        BuildValidationResult, SecurityAuditResult, WorkflowSyncResult,
        MetricsUpdateResult, DocumentationResult, ContextUpdateResult,
        NotificationResult, WorkflowResult, RepositoryValidationResult,
        MergeAnalysisResult, SafetyValidationResult, CommitCompatibilityResult,
        ConflictDetectionResult, CommitAnalysisResult, ContextRestorationResult,
        BranchInfoResult, CommitValidationResult, BranchProtectionResult,
        AuthorValidationResult, SizeValidationResult, ForcePushDetectionResult,
    )
}
"""Step name -> result model."""

_step_adapter: TypeAdapter[Any] = TypeAdapter(StepResult)


def make_step_result(step: str, status: StepStatus, **fields: Any) -> Any:
    """Build the result variant registered for ``step``.

    Raises:
        KeyError: If no result model is registered for the step name.
    """
    return STEP_RESULT_TYPES[step](status=status, **fields)


def parse_step_result(data: dict[str, Any]) -> Any:
    """Validate a serialized step result into its variant."""
    return _step_adapter.validate_python(data)


class HookResult(BaseModel):
    """Outcome of one lifecycle event."""

    model_config = ConfigDict(extra="forbid")

    hook_type: str
    success: bool
    duration: float = Field(default=0.0, ge=0, description="Milliseconds")
    results: dict[str, StepResult] = Field(default_factory=dict)
    execution_id: str | None = None
    branch: str | None = None
    remote: str | None = None
    error: str | None = None
    failure_report: dict[str, Any] | None = None
    remediation: dict[str, Any] | None = None
    recovery: dict[str, Any] | None = None
    bypass: dict[str, Any] | None = None

    def failed_steps(self) -> list[str]:
        return [name for name, r in self.results.items() if r.status == StepStatus.FAILED]

    def warning_steps(self) -> list[str]:
        return [name for name, r in self.results.items() if r.status == StepStatus.WARNING]

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
