"""Remediation guidance and impact assessment for classified errors."""

from __future__ import annotations

from typing import Any

from hookwarden.core.errors import ErrorCategory, ErrorClassification, RecoveryResult, Severity

REMEDIATIONS: dict[ErrorCategory, dict[str, list[str]]] = {
    ErrorCategory.TEST_FAILURE: {
        "steps": [
            "Review test output for specific failures",
            "Run tests locally: python -m pytest",
            "Fix failing tests or update test expectations",
            "Ensure all dependencies are installed",
        ],
        "commands": ["python -m pytest", "python -m pytest -vv"],
    },
    ErrorCategory.BUILD_FAILURE: {
        "steps": [
            "Check build logs for errors",
            "Verify all dependencies are installed: pip install -e .",
            "Check for syntax errors in recent changes",
            "Run build locally: python -m build",
        ],
        "commands": ["pip install -e .", "python -m build"],
    },
    ErrorCategory.SECURITY_VULNERABILITY: {
        "steps": [
            "Review dependency audit output for vulnerabilities",
            "Upgrade vulnerable dependencies to a fixed version",
            "For breaking upgrades, review and test the changes",
            "Pin the fixed versions in your dependency constraints",
        ],
        "commands": ["pip-audit", "pip-audit --fix"],
    },
    ErrorCategory.INVALID_COMMIT_MESSAGE: {
        "steps": [
            "Use the pattern: [PERSONA] [STEP-ID] Description",
            "Valid personas: DEVELOPER, PM, ARCHITECT, QA, DEVOPS, SECURITY, RELEASE",
            "Step ID format: STEP-XXX where XXX is a number",
            "Example: [DEVELOPER] [STEP-001] Implement user authentication",
        ],
        "commands": ['git commit --amend -m "[PERSONA] [STEP-ID] Description"'],
    },
    ErrorCategory.LINT_ERROR: {
        "steps": [
            "Run linter to see specific issues: ruff check .",
            "Auto-fix issues: ruff check --fix .",
            "Review and fix remaining manual issues",
            "Ensure code follows project style guide",
        ],
        "commands": ["ruff check .", "ruff check --fix ."],
    },
    ErrorCategory.MISSING_CONTEXT_UPDATE: {
        "steps": [
            "Update activeContext.md with current work details",
            "Include persona, step ID, and description",
            "Ensure context reflects current development phase",
            "Use bypass only if context is truly not applicable",
        ],
        "commands": [],
    },
    ErrorCategory.PERFORMANCE_THRESHOLD: {
        "steps": [
            "Review performance metrics in hook output",
            "Lint only staged files for faster pre-commit checks",
            "Use parallel test execution",
            "Consider splitting large commits",
        ],
        "commands": ["hookwarden metrics"],
    },
}

DEFAULT_REMEDIATION: dict[str, list[str]] = {
    "steps": ["Review error message for details", "Check hook logs for more information"],
    "commands": [],
}

IMPACTS: dict[Severity, dict[str, str]] = {
    Severity.BLOCKING: {
        "workflow": "Blocks current operation",
        "team": "Prevents commit/push from completing",
        "project": "May delay development progress",
    },
    Severity.WARNING: {
        "workflow": "Allows operation with warnings",
        "team": "May require follow-up action",
        "project": "Minimal immediate impact",
    },
    Severity.NON_BLOCKING: {
        "workflow": "Does not block operation",
        "team": "No immediate action required",
        "project": "No impact on development flow",
    },
}


def build_remediation(
    classification: ErrorClassification,
    recovery: RecoveryResult | None = None,
) -> dict[str, Any]:
    """Remediation steps and commands, plus the auto-recovery outcome if any."""
    template = REMEDIATIONS.get(classification.category, DEFAULT_REMEDIATION)
    remediation: dict[str, Any] = {
        "steps": list(template["steps"]),
        "commands": list(template["commands"]),
    }
    if recovery is not None and recovery.successful:
        remediation["auto_recovery"] = {
            "action": recovery.action,
            "details": recovery.details,
            "status": "successful",
        }
    elif recovery is not None:
        remediation["auto_recovery"] = {"status": "failed", "reason": recovery.reason}
    return remediation


def assess_impact(classification: ErrorClassification) -> dict[str, str]:
    return dict(IMPACTS.get(classification.severity, IMPACTS[Severity.BLOCKING]))
