"""Tests for the commit-msg pipeline."""

import pytest

from hookwarden.core.results import StepStatus
from hookwarden.integrations.gatekeeper import RuleBasedGate
from hookwarden.orchestrator import EngineState, HookOrchestrator
from hookwarden.state.memory import InMemoryKeyValueStore

VALID = "[DEVELOPER] [STEP-001] Implement user authentication"


@pytest.fixture
def dev_orchestrator(engine) -> HookOrchestrator:
    engine.config.development_mode = True
    return HookOrchestrator(engine)


class TestValidation:
    """Tests for message validation without bypasses."""

    @pytest.mark.asyncio
    async def test_structured_message_passes(self, orchestrator):
        result = await orchestrator.execute_commit_msg(VALID)
        assert result.success is True
        assert result.results["bypass"].status == StepStatus.SKIPPED
        validation = result.results["message_validation"]
        assert validation.status == StepStatus.PASSED
        assert validation.format == "bmad"
        assert validation.parsed["step_id"] == "STEP-001"
        assert result.results["gatekeeper_integration"].status == StepStatus.PASSED

    @pytest.mark.asyncio
    async def test_missing_journal_only_warns(self, orchestrator):
        result = await orchestrator.execute_commit_msg(VALID)
        context = result.results["context_validation"]
        assert context.status == StepStatus.WARNING
        assert "activeContext.md not found" in context.message

    @pytest.mark.asyncio
    async def test_invalid_message_fails_with_remediation(self, orchestrator):
        result = await orchestrator.execute_commit_msg("updated stuff")
        assert result.success is False
        validation = result.results["message_validation"]
        assert validation.status == StepStatus.FAILED
        assert validation.category == "INVALID_COMMIT_MESSAGE"
        assert result.results["gatekeeper_integration"].status == StepStatus.SKIPPED
        assert result.remediation["examples"][0] == VALID
        assert result.bypass is None

    @pytest.mark.asyncio
    async def test_conventional_message_passes_with_warning(self, orchestrator):
        result = await orchestrator.execute_commit_msg("feat(auth): add user login")
        assert result.success is True
        validation = result.results["message_validation"]
        assert validation.status == StepStatus.WARNING
        assert validation.format == "conventional"
        assert result.results["context_validation"].status == StepStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_comment_lines_are_ignored(self, orchestrator):
        message = f"# Please enter the commit message\n{VALID}\n\nLonger body text\n"
        result = await orchestrator.execute_commit_msg(message)
        assert result.success is True


class TestContextConsistency:
    """Tests for the journal check on structured messages."""

    @pytest.mark.asyncio
    async def test_compatible_persona(self, orchestrator, repo_root):
        (repo_root / "activeContext.md").write_text("**Persona**: DEVELOPER\n[DEVELOPER] [STEP-001]")
        result = await orchestrator.execute_commit_msg("[QA] [STEP-002] Add regression tests")
        assert result.results["context_validation"].status == StepStatus.PASSED

    @pytest.mark.asyncio
    async def test_persona_mismatch_warns(self, orchestrator, repo_root):
        (repo_root / "activeContext.md").write_text("**Persona**: DEVELOPER\n")
        result = await orchestrator.execute_commit_msg("[PM] [STEP-002] Plan roadmap items")
        context = result.results["context_validation"]
        assert context.status == StepStatus.WARNING
        assert context.issues == ["Persona PM does not follow current persona DEVELOPER"]
        assert result.success is True


class TestBypass:
    """Tests for development-mode and environment bypasses."""

    @pytest.mark.asyncio
    async def test_wip_prefix_in_development_mode(self, dev_orchestrator, repo_root):
        result = await dev_orchestrator.execute_commit_msg("WIP: quick fix")
        assert result.success is True
        bypass = result.results["bypass"]
        assert bypass.bypassed is True
        assert bypass.bypass_type == "prefix"
        assert bypass.status == StepStatus.WAIVED
        assert result.results["message_validation"].status == StepStatus.WAIVED
        assert result.bypass["bypass_method"] == "prefix"
        assert (repo_root / ".git" / "hookwarden" / "audit.log").exists()

    @pytest.mark.asyncio
    async def test_wip_prefix_outside_development_mode(self, orchestrator):
        result = await orchestrator.execute_commit_msg("WIP: quick fix")
        assert result.success is False
        assert result.results["bypass"].bypassed is False

    @pytest.mark.asyncio
    async def test_emergency_keyword(self, dev_orchestrator):
        result = await dev_orchestrator.execute_commit_msg("Hotfix for prod outage")
        assert result.success is True
        assert result.results["bypass"].bypass_type == "emergency"

    @pytest.mark.asyncio
    async def test_environment_bypass(self, orchestrator, monkeypatch):
        monkeypatch.setenv("HOOKWARDEN_BYPASS_COMMIT_MSG", "true")
        result = await orchestrator.execute_commit_msg("whatever")
        assert result.success is True
        assert result.results["bypass"].bypass_type == "environment"
        assert result.bypass["error_category"] == "INVALID_COMMIT_MESSAGE"

    @pytest.mark.asyncio
    async def test_bypasses_are_audited(self, dev_orchestrator):
        await dev_orchestrator.execute_commit_msg("WIP: one")
        await dev_orchestrator.execute_commit_msg("TEMP: two")
        trail = dev_orchestrator.error_handler.get_bypass_audit_trail()
        assert [r.audit_trail["original_message"] for r in trail] == ["WIP: one", "TEMP: two"]

    @pytest.mark.asyncio
    async def test_development_mode_remediation_mentions_prefixes(self, dev_orchestrator):
        result = await dev_orchestrator.execute_commit_msg("nope")
        assert result.success is False
        assert any("WIP:" in fix for fix in result.remediation["quick_fixes"])


class CrashingValidator:
    def validate(self, text: str):
        raise RuntimeError("validator backend crashed")


class CrashingGate(RuleBasedGate):
    def evaluate(self, hook_type, context):
        raise RuntimeError("policy backend crashed")


class TestCollaboratorErrors:
    """Collaborator exceptions become step results instead of escaping the pipeline."""

    @staticmethod
    def _orchestrator(repo_root, hook_config, fake_runner, **collaborators) -> HookOrchestrator:
        engine = EngineState.create(
            repo_root,
            hook_config,
            runner=fake_runner,
            state_store=InMemoryKeyValueStore(),
            **collaborators,
        )
        return HookOrchestrator(engine)

    @pytest.mark.asyncio
    async def test_validator_error_is_a_failed_step(self, repo_root, hook_config, fake_runner):
        orchestrator = self._orchestrator(
            repo_root, hook_config, fake_runner, message_validator=CrashingValidator()
        )
        result = await orchestrator.execute_commit_msg("[DEVELOPER] [STEP-001] ok")

        assert result.success is False
        assert result.error is None
        validation = result.results["message_validation"]
        assert validation.status == StepStatus.FAILED
        assert validation.error == "validator backend crashed"
        assert validation.category == "UNKNOWN_ERROR"
        assert result.results["context_validation"].status == StepStatus.SKIPPED
        assert result.results["gatekeeper_integration"].status == StepStatus.SKIPPED
        assert result.failure_report["errors"][0]["error"]["category"] == "UNKNOWN_ERROR"
        assert result.remediation["errors"] == ["validator backend crashed"]

    @pytest.mark.asyncio
    async def test_validator_error_with_environment_bypass(
        self, repo_root, hook_config, fake_runner, monkeypatch
    ):
        monkeypatch.setenv("HOOKWARDEN_BYPASS_COMMIT_MSG", "true")
        orchestrator = self._orchestrator(
            repo_root, hook_config, fake_runner, message_validator=CrashingValidator()
        )
        result = await orchestrator.execute_commit_msg("anything")
        assert result.success is True
        assert "message_validation" in result.results

    @pytest.mark.asyncio
    async def test_gate_error_is_a_failed_step(self, repo_root, hook_config, fake_runner):
        orchestrator = self._orchestrator(repo_root, hook_config, fake_runner, gate=CrashingGate())
        result = await orchestrator.execute_commit_msg(VALID)

        assert result.success is False
        assert result.error is None
        assert result.results["message_validation"].status == StepStatus.PASSED
        gate = result.results["gatekeeper_integration"]
        assert gate.status == StepStatus.FAILED
        assert gate.error == "policy backend crashed"
