"""Tests for the post-commit and post-merge pipelines."""

import json
from typing import Any

import pytest

from hookwarden.core.errors import CommandError
from hookwarden.core.results import StepStatus
from hookwarden.orchestrator import EngineState, HookOrchestrator
from hookwarden.state.memory import InMemoryKeyValueStore
from tests.helpers import FakeCommandRunner

COMMIT = "abcdef1234567890abcdef1234567890abcdef12"


class RecordingNotifier:
    def __init__(self, delivered: bool = True) -> None:
        self.delivered = delivered
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def notify(self, event_type: str, payload: dict[str, Any]) -> bool:
        self.events.append((event_type, payload))
        return self.delivered

    async def close(self) -> None:
        pass


class ExplodingNotifier:
    async def notify(self, event_type: str, payload: dict[str, Any]) -> bool:
        raise RuntimeError("orchestrator unreachable")

    async def close(self) -> None:
        pass


def _orchestrator(repo_root, hook_config, runner, notifier) -> HookOrchestrator:
    engine = EngineState.create(
        repo_root,
        hook_config,
        runner=runner,
        state_store=InMemoryKeyValueStore(),
        notifier=notifier,
    )
    return HookOrchestrator(engine)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def commit_runner(fake_runner: FakeCommandRunner) -> FakeCommandRunner:
    fake_runner.on("git", "show", stdout=" 2 files changed, 5 insertions(+), 1 deletion(-)\n")
    fake_runner.on("git", "diff-tree", stdout="src/app.py\nREADME.md\n")
    fake_runner.on("git", "log", "-1", stdout="[DEVELOPER] [STEP-002] Add app module\n")
    return fake_runner


class TestPostCommit:
    """Tests for execute_post_commit."""

    @pytest.mark.asyncio
    async def test_records_commit_everywhere(
        self, repo_root, hook_config, commit_runner, notifier
    ):
        orchestrator = _orchestrator(repo_root, hook_config, commit_runner, notifier)
        result = await orchestrator.execute_post_commit(COMMIT)

        assert result.success is True
        assert list(result.results) == [
            "metrics_update",
            "documentation",
            "context_update",
            "orchestrator_notification",
        ]
        metrics = result.results["metrics_update"]
        assert metrics.status == StepStatus.PASSED
        assert (metrics.files_changed, metrics.lines_added, metrics.lines_deleted) == (2, 5, 1)

        assert result.results["documentation"].message == "No docs command configured"

        context = result.results["context_update"]
        assert context.persona == "DEVELOPER"
        assert context.step_id == "STEP-002"
        journal = (repo_root / "activeContext.md").read_text()
        assert journal.startswith("# Active Context\n\n")
        assert "## Commit abcdef12" in journal
        assert "- **Files Changed**: 2" in journal

        assert result.results["orchestrator_notification"].delivered is True
        event, payload = notifier.events[0]
        assert event == "commit"
        assert payload["commit"] == COMMIT
        assert payload["step_id"] == "STEP-002"

    @pytest.mark.asyncio
    async def test_metrics_accumulate(self, repo_root, hook_config, commit_runner, notifier):
        orchestrator = _orchestrator(repo_root, hook_config, commit_runner, notifier)
        await orchestrator.execute_post_commit(COMMIT)
        await orchestrator.execute_post_commit(COMMIT)

        data = json.loads((repo_root / ".github/metrics/project-metrics.json").read_text())
        assert data["total_commits"] == 2
        assert data["total_lines_added"] == 10
        assert data["average_files_per_commit"] == 2.0

    @pytest.mark.asyncio
    async def test_non_code_commit_skips_journal(self, repo_root, hook_config, fake_runner, notifier):
        fake_runner.on("git", "diff-tree", stdout="README.md\n")
        orchestrator = _orchestrator(repo_root, hook_config, fake_runner, notifier)
        result = await orchestrator.execute_post_commit(COMMIT)
        assert result.results["context_update"].status == StepStatus.SKIPPED
        assert not (repo_root / "activeContext.md").exists()

    @pytest.mark.asyncio
    async def test_undelivered_notification_warns(self, repo_root, hook_config, commit_runner):
        orchestrator = _orchestrator(
            repo_root, hook_config, commit_runner, RecordingNotifier(delivered=False)
        )
        result = await orchestrator.execute_post_commit(COMMIT)
        notification = result.results["orchestrator_notification"]
        assert notification.status == StepStatus.WARNING
        assert notification.category == "NOTIFICATION_FAILURE"
        assert result.success is True

    @pytest.mark.asyncio
    async def test_open_circuit_skips_notification(
        self, repo_root, hook_config, commit_runner, notifier
    ):
        orchestrator = _orchestrator(repo_root, hook_config, commit_runner, notifier)
        for _ in range(3):
            orchestrator.state.circuit_breaker.record_failure()
        result = await orchestrator.execute_post_commit(COMMIT)
        assert result.results["orchestrator_notification"].status == StepStatus.SKIPPED
        assert notifier.events == []

    @pytest.mark.asyncio
    async def test_never_fails_when_everything_breaks(self, repo_root, hook_config):
        runner = FakeCommandRunner(default_error=CommandError("boom"))
        orchestrator = _orchestrator(repo_root, hook_config, runner, ExplodingNotifier())
        result = await orchestrator.execute_post_commit(COMMIT)

        assert result.success is True
        assert result.error is None
        assert result.duration < 10000
        for name in ("metrics_update", "documentation", "context_update"):
            assert result.results[name].status == StepStatus.WARNING
        assert result.results["orchestrator_notification"].status == StepStatus.WARNING


class TestPostMerge:
    """Tests for execute_post_merge."""

    @pytest.mark.asyncio
    async def test_clean_merge(self, engine, fake_runner, repo_root):
        fake_runner.on("git", "rev-parse", "--abbrev-ref", "HEAD", stdout="feature/x\n")
        fake_runner.on("git", "diff", "--stat", stdout=" 3 files changed, 12 insertions(+)\n")
        fake_runner.on("git", "diff", "--name-only", stdout="a.py\nb.py\nc.md\n")
        result = await HookOrchestrator(engine).execute_post_merge("merge")

        assert result.success is True
        assert result.recovery is None
        assert result.results["workflow"].status == StepStatus.SKIPPED
        assert result.results["repository_validation"].is_valid is True

        analysis = result.results["merge_analysis"]
        assert analysis.report["statistics"]["net_change"] == 12
        report = json.loads((repo_root / ".github/reports/merge-analysis.json").read_text())
        assert report["files_changed"] == ["a.py", "b.py", "c.md"]

    @pytest.mark.asyncio
    async def test_workflow_failure_suggests_recovery(self, engine, fake_runner, repo_root):
        engine.config.commands.workflow = ["make", "integrate"]
        fake_runner.on("make", exit_code=2, stderr="integration failed")
        fake_runner.on("git", "rev-parse", "--abbrev-ref", "HEAD", stdout="feature/x\n")
        fake_runner.on("git", "rev-parse", "HEAD", stdout="c" * 40 + "\n")
        fake_runner.on("git", "rev-parse", "HEAD~1", stdout="abcdef1234" + "0" * 30 + "\n")
        result = await HookOrchestrator(engine).execute_post_merge("squash")

        assert result.success is True
        assert result.results["workflow"].status == StepStatus.FAILED
        recovery = result.recovery
        assert recovery["troubleshooting"]["failure_type"] == "workflow_execution_failed"
        commands = [r["command"] for r in recovery["rollback_recommendations"]]
        assert commands == ["git reset --hard abcdef1", "git reflog"]

        report = json.loads((repo_root / ".github/reports/recovery-report.json").read_text())
        assert report["merge_type"] == "squash"
        assert report["failures"][0]["check"] == "workflow"
        assert report["failure_count"] == 1

    @pytest.mark.asyncio
    async def test_protected_branch_recommends_revert(self, engine, fake_runner):
        engine.config.critical_files = ["pyproject.toml"]
        fake_runner.on("git", "rev-parse", "--abbrev-ref", "HEAD", stdout="main\n")
        fake_runner.on("git", "rev-parse", "HEAD", stdout="c" * 40 + "\n")
        fake_runner.on("git", "remote", stdout="origin\n")
        result = await HookOrchestrator(engine).execute_post_merge("merge")

        validation = result.results["repository_validation"]
        assert validation.status == StepStatus.FAILED
        assert validation.issues == ["Critical file missing: pyproject.toml"]
        commands = [r["command"] for r in result.recovery["rollback_recommendations"]]
        assert commands[0] == "git revert -m 1 " + "c" * 40
        assert "git push --force-with-lease" in commands
        assert result.recovery["troubleshooting"]["failure_type"] == (
            "repository_validation_failed"
        )
