"""Default commit message validator.

Accepts the structured ``[PERSONA] [STEP-ID] Description`` form and falls
back to Conventional Commits (``type(scope): description``).
"""

from __future__ import annotations

import re

from hookwarden.core.logging import get_logger
from hookwarden.integrations.base import MessageValidation

_logger = get_logger("integrations.message_validator")

BMAD_REGEX = re.compile(r"^\[([A-Z_]+)\] \[([A-Z]+-\d+)\] (.+)$")
CONVENTIONAL_REGEX = re.compile(
    r"^(feat|fix|docs|style|refactor|perf|test|build|ci|chore|revert)(\([\w-]+\))?!?: (.+)$"
)
STEP_ID_REGEX = re.compile(r"^([A-Z]+)-(\d+)$")

VALID_PERSONAS = (
    "DEVELOPER", "ARCHITECT", "PM", "QA", "DEVOPS",
    "SECURITY", "RELEASE", "RECOVERY", "ORCHESTRATOR",
)
STANDARD_STEP_PREFIXES = ("STEP", "ARCH", "TEST", "DEV", "SEC", "OPS", "REL", "REC")


def subject_line(text: str) -> str:
    """First non-empty, non-comment line of a commit message."""
    for line in text.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            return stripped
    return ""


class RegexMessageValidator:
    """Pattern-based validator for structured and conventional messages."""

    def __init__(self, allow_conventional: bool = True) -> None:
        self.allow_conventional = allow_conventional

    def validate(self, text: str) -> MessageValidation:
        subject = subject_line(text or "")
        if not subject:
            return MessageValidation(valid=False, errors=["Commit message cannot be empty"])

        bmad = self._validate_bmad(subject)
        if bmad.valid or not self.allow_conventional:
            return bmad

        conventional = self._validate_conventional(subject)
        if conventional.valid:
            conventional.warnings.append("Using conventional commits format as fallback")
            return conventional

        _logger.debug("message_validator.rejected", subject=subject[:100])
        return MessageValidation(
            valid=False,
            errors=bmad.errors + [f"Conventional format: {e}" for e in conventional.errors],
        )

    def _validate_bmad(self, subject: str) -> MessageValidation:
        match = BMAD_REGEX.match(subject)
        if not match:
            return MessageValidation(
                valid=False,
                errors=["Message does not match pattern: [PERSONA] [STEP-ID] Description"],
            )

        persona, step_id, description = match.groups()
        errors: list[str] = []
        warnings: list[str] = []

        if persona not in VALID_PERSONAS:
            warnings.append(
                f"Persona '{persona}' is not a standard persona. "
                f"Valid personas: {', '.join(VALID_PERSONAS)}"
            )

        step_match = STEP_ID_REGEX.match(step_id)
        if step_match:
            prefix, number = step_match.groups()
            if prefix not in STANDARD_STEP_PREFIXES:
                warnings.append(f"Step ID prefix '{prefix}' is not standard")
            if int(number) < 1:
                errors.append("Step ID number must be greater than 0")
            elif int(number) > 9999:
                warnings.append("Step ID number is very large")

        description = description.strip()
        if not description:
            errors.append("Description is required")
        elif len(description) < 5:
            warnings.append("Description is very short - consider adding more detail")

        if errors:
            return MessageValidation(valid=False, errors=errors, warnings=warnings)
        return MessageValidation(
            valid=True,
            format="bmad",
            parsed={"persona": persona, "step_id": step_id, "description": description},
            warnings=warnings,
        )

    def _validate_conventional(self, subject: str) -> MessageValidation:
        match = CONVENTIONAL_REGEX.match(subject)
        if not match:
            return MessageValidation(
                valid=False,
                errors=[
                    "Message does not match conventional commits pattern: "
                    "type(scope): description"
                ],
            )
        type_, scope, description = match.groups()
        return MessageValidation(
            valid=True,
            format="conventional",
            parsed={
                "type": type_,
                "scope": scope[1:-1] if scope else None,
                "description": description.strip(),
            },
        )

    def error_message(self, validation: MessageValidation) -> str | None:
        """Format a multi-line explanation for an invalid message."""
        if validation.valid:
            return None
        lines = ["COMMIT MESSAGE VALIDATION FAILED", "", "ERRORS:"]
        lines += [f"  {i}. {e}" for i, e in enumerate(validation.errors, start=1)]
        lines += [
            "",
            "REQUIRED FORMATS:",
            "  [PERSONA] [STEP-ID] Description",
            "    e.g. [DEVELOPER] [STEP-001] Implement user authentication",
        ]
        if self.allow_conventional:
            lines += [
                "  type(scope): description",
                "    e.g. feat(auth): add user login functionality",
            ]
        return "\n".join(lines)
