"""Tests for hookwarden.orchestrator.helpers (journal inspection and tool parsers)."""

import pytest

from hookwarden.orchestrator.helpers import (
    commit_personas,
    context_file_name,
    detect_phase,
    extract_persona,
    journal_content_ok,
    parse_bmad_subject,
    parse_coverage_total,
    parse_pytest_summary,
    parse_security_report,
    parse_stat_summary,
    personas_compatible,
    step_id_is_sane,
    truncate,
)


class TestJournalInspection:
    """Tests for persona/phase/step-id helpers."""

    def test_persona_line_wins_over_tag(self):
        content = "[QA] [STEP-3] earlier\n**Persona**: developer\n"
        assert extract_persona(content) == "DEVELOPER"

    def test_persona_from_tag(self):
        assert extract_persona("Last: [ARCHITECT] [ARCH-1] schema") == "ARCHITECT"

    def test_no_persona(self):
        assert extract_persona("nothing here") is None

    @pytest.mark.parametrize(
        ("current", "incoming", "expected"),
        [
            ("DEVELOPER", "DEVELOPER", True),
            ("DEVELOPER", "QA", True),
            ("DEVELOPER", "PM", False),
            (None, "PM", True),
            ("PM", None, True),
        ],
    )
    def test_personas_compatible(self, current, incoming, expected):
        assert personas_compatible(current, incoming) is expected

    def test_detect_phase(self):
        assert detect_phase("We are in the design stage") == "design"
        assert detect_phase("Running QA validation") == "testing"
        assert detect_phase("nothing") == "unknown"

    def test_step_id_sanity(self):
        assert step_id_is_sane("no ids yet", "ANY") is True
        journal = "[DEVELOPER] [STEP-004] wip"
        assert step_id_is_sane(journal, "STEP-005") is True
        assert step_id_is_sane(journal, "STEP-0") is False
        assert step_id_is_sane(journal, "STEP-10000") is False
        assert step_id_is_sane(journal, "step5") is False

    def test_journal_content_ok(self):
        assert journal_content_ok("short") is False
        assert journal_content_ok("x" * 60) is False
        assert journal_content_ok("Currently implementing the login flow for the web app") is True
        assert journal_content_ok("2026-10-17 " + "y" * 50) is True

    def test_parse_bmad_subject(self):
        assert parse_bmad_subject("[QA] [STEP-12] Add tests") == ("QA", "STEP-12", "Add tests")
        assert parse_bmad_subject("fix: typo") is None

    def test_commit_personas(self):
        assert commit_personas(["[QA] [STEP-1] a", "plain", "[PM] [STEP-2] b"]) == ["QA", "PM"]

    def test_context_file_name(self):
        assert context_file_name("feature/login") == "feature-login.md"


class TestToolOutputParsing:
    """Tests for parsers of test, coverage, stat and scanner output."""

    def test_pytest_summary(self):
        assert parse_pytest_summary("=== 12 passed, 2 failed, 1 error in 3.2s ===") == (12, 3)
        assert parse_pytest_summary("no summary") == (0, 0)

    def test_coverage_total(self):
        output = "Name    Stmts   Miss  Cover\nsrc/a.py   10   2   80%\nTOTAL     100   28    72%\n"
        assert parse_coverage_total(output) == 72.0
        assert parse_coverage_total("no table") is None

    def test_stat_summary(self):
        assert parse_stat_summary(" 3 files changed, 10 insertions(+), 2 deletions(-)") == (3, 10, 2)
        assert parse_stat_summary(" 1 file changed, 4 deletions(-)") == (1, 0, 4)
        assert parse_stat_summary("") == (0, 0, 0)

    def test_security_report_severity_json(self):
        output = 'noise {"vulnerabilities": {"Critical": 1, "high": 0, "low": 3}} trailing'
        assert parse_security_report(output) == {"critical": 1, "high": 0, "low": 3}

    def test_security_report_pip_audit_json(self):
        output = '{"dependencies": [{"name": "a", "vulns": [{"id": "X"}, {"id": "Y"}]}]}'
        assert parse_security_report(output) == {"high": 2}

    def test_security_report_text(self):
        assert parse_security_report("found 2 moderate and 1 low") == {"moderate": 2, "low": 1}
        assert parse_security_report("all clear") is None

    def test_truncate(self):
        assert truncate("abc", 5) == "abc"
        assert truncate("abcdef", 3) == "abc\n... (truncated)"
