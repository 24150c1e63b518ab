"""Pure helpers shared by the pipeline mixins.

Journal inspection (persona, workflow phase, step-id sanity) and parsers
for the text tools print: pytest summaries, coverage totals, dependency
scanner reports and ``git show --stat`` lines.
"""

from __future__ import annotations

import json
import re
from typing import Any

from hookwarden.core.constants import BMAD_COMMIT_PATTERN

PERSONA_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "PM": ("ARCHITECT", "DEVELOPER", "QA"),
    "ARCHITECT": ("DEVELOPER", "PM", "SECURITY"),
    "DEVELOPER": ("QA", "ARCHITECT", "DEVOPS"),
    "QA": ("DEVELOPER", "DEVOPS", "RELEASE"),
    "DEVOPS": ("DEVELOPER", "QA", "SECURITY", "RELEASE"),
    "SECURITY": ("DEVELOPER", "ARCHITECT", "DEVOPS"),
    "RELEASE": ("PM", "QA", "DEVOPS"),
    "RECOVERY": ("DEVELOPER", "ARCHITECT", "DEVOPS"),
    "ORCHESTRATOR": ("PM", "ARCHITECT", "DEVELOPER", "QA", "DEVOPS", "SECURITY", "RELEASE"),
}
"""Persona -> personas that may take over the work next."""

WORKFLOW_PHASES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"planning|requirements|analysis", re.IGNORECASE), "planning"),
    (re.compile(r"design|architecture|modeling", re.IGNORECASE), "design"),
    (re.compile(r"implementation|coding|development", re.IGNORECASE), "implementation"),
    (re.compile(r"testing|qa|validation", re.IGNORECASE), "testing"),
    (re.compile(r"deployment|release|production", re.IGNORECASE), "deployment"),
    (re.compile(r"maintenance|support|monitoring", re.IGNORECASE), "maintenance"),
)

SEVERITIES = ("critical", "high", "moderate", "medium", "low", "info")

_BMAD_RE = re.compile(BMAD_COMMIT_PATTERN)
_PERSONA_LINE_RE = re.compile(r"(?:persona|role|acting as)\**:\**\s*([A-Za-z_]+)", re.IGNORECASE)
_PERSONA_TAG_RE = re.compile(r"\[([A-Z_]+)\]")
_STEP_TAG_RE = re.compile(r"\[([A-Z]+-\d+)\]")
_STEP_ID_RE = re.compile(r"^([A-Z]+)-(\d+)$")
_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")
_WORK_KEYWORDS = ("current", "working", "implementing")

_PYTEST_COUNT_RE = re.compile(r"(\d+) (passed|failed|errors?)")
_COVERAGE_TOTAL_RE = re.compile(r"^TOTAL\s+.*?(\d+(?:\.\d+)?)%\s*$", re.MULTILINE)
_STAT_RE = re.compile(
    r"(\d+) files? changed(?:, (\d+) insertions?\(\+\))?(?:, (\d+) deletions?\(-\))?"
)


# =============================================================================
# Journal inspection
# =============================================================================


def extract_persona(content: str) -> str | None:
    """Current persona declared in journal text.

    An explicit ``Persona: X`` line wins over the first ``[X]`` tag.
    """
    if match := _PERSONA_LINE_RE.search(content):
        return match.group(1).upper()
    if match := _PERSONA_TAG_RE.search(content):
        return match.group(1)
    return None


def is_valid_transition(from_persona: str, to_persona: str) -> bool:
    return to_persona in PERSONA_TRANSITIONS.get(from_persona, ())


def personas_compatible(current: str | None, incoming: str | None) -> bool:
    """True when ``incoming`` may follow ``current`` (unknown sides pass)."""
    if not current or not incoming:
        return True
    return current == incoming or is_valid_transition(current, incoming)


def detect_phase(content: str) -> str:
    for pattern, phase in WORKFLOW_PHASES:
        if pattern.search(content):
            return phase
    return "unknown"


def step_id_is_sane(content: str, step_id: str) -> bool:
    """Check a step id against the journal.

    Journals with no recorded step ids accept anything; otherwise the id
    must be ``PREFIX-N`` with ``0 < N <= 9999``.
    """
    if not _STEP_TAG_RE.search(content):
        return True
    match = _STEP_ID_RE.match(step_id)
    if not match:
        return False
    return 0 < int(match.group(2)) <= 9999


def mentions_date(content: str) -> bool:
    return bool(_DATE_RE.search(content))


def journal_content_ok(content: str) -> bool:
    """Quality bar for a staged journal: long enough, dated or descriptive."""
    if len(content) < 50:
        return False
    lowered = content.lower()
    return mentions_date(content) or any(k in lowered for k in _WORK_KEYWORDS)


def parse_bmad_subject(subject: str) -> tuple[str, str, str] | None:
    """Split ``[PERSONA] [STEP-ID] Description`` into its parts."""
    match = _BMAD_RE.match(subject.strip())
    return (match.group(1), match.group(2), match.group(3)) if match else None


def commit_personas(subjects: list[str]) -> list[str]:
    personas = []
    for subject in subjects:
        if match := _PERSONA_TAG_RE.search(subject):
            personas.append(match.group(1))
    return personas


def has_extension(path: str, extensions: list[str]) -> bool:
    return any(path.endswith(ext) for ext in extensions)


def context_file_name(branch: str) -> str:
    """Per-branch journal snapshot name: ``feature/x`` -> ``feature-x.md``."""
    return branch.replace("/", "-") + ".md"


# =============================================================================
# Tool output parsing
# =============================================================================


def parse_pytest_summary(output: str) -> tuple[int, int]:
    """Return (passed, failed) from a pytest summary; errors count as failed."""
    passed = failed = 0
    for count, kind in _PYTEST_COUNT_RE.findall(output):
        if kind == "passed":
            passed = int(count)
        else:
            failed += int(count)
    return passed, failed


def parse_coverage_total(output: str) -> float | None:
    """Total percentage from a coverage.py ``TOTAL`` row."""
    matches = _COVERAGE_TOTAL_RE.findall(output)
    return float(matches[-1]) if matches else None


def parse_stat_summary(output: str) -> tuple[int, int, int]:
    """Return (files, insertions, deletions) from ``git show --stat``."""
    match = _STAT_RE.search(output)
    if not match:
        return 0, 0, 0
    files, added, deleted = match.groups()
    return int(files), int(added or 0), int(deleted or 0)


def parse_security_report(output: str) -> dict[str, int] | None:
    """Vulnerability counts by severity, or None when nothing was recognized.

    Accepted forms:
    - JSON ``{"vulnerabilities": {severity: count}}``
    - pip-audit JSON (``{"dependencies": [{"vulns": [...]}]}``); its entries
      carry no severity, so each one counts as ``high``
    - text containing ``N critical``, ``N high``...
    """
    data = _load_json_object(output)
    if data is not None:
        vulnerabilities = data.get("vulnerabilities")
        if isinstance(vulnerabilities, dict):
            return {
                str(k).lower(): int(v)
                for k, v in vulnerabilities.items()
                if isinstance(v, int | float)
            }
        dependencies = data.get("dependencies")
        if isinstance(dependencies, list):
            found = sum(len(dep.get("vulns", [])) for dep in dependencies if isinstance(dep, dict))
            return {"high": found}

    counts: dict[str, int] = {}
    for severity in SEVERITIES:
        if match := re.search(rf"(\d+)\s+{severity}\b", output, re.IGNORECASE):
            counts[severity] = int(match.group(1))
    return counts or None


def _load_json_object(output: str) -> dict[str, Any] | None:
    start, end = output.find("{"), output.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        data = json.loads(output[start : end + 1])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "\n... (truncated)"
