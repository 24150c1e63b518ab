"""Pytest fixtures for hookwarden tests."""

import logging
import shutil
from pathlib import Path
from typing import Generator

import pytest
import structlog

from hookwarden.core.config import HookConfig, LockConfig, NotificationsConfig
from hookwarden.orchestrator import EngineState, HookOrchestrator
from hookwarden.state.memory import InMemoryKeyValueStore
from tests.helpers import FakeCommandRunner, git

HOOKWARDEN_ENV_VARS = (
    "HOOKWARDEN_DEV_MODE",
    "HOOKWARDEN_PERFORMANCE_THRESHOLD",
    "HOOKWARDEN_DISABLE_AUTO_RECOVERY",
    "HOOKWARDEN_GATE_WAIVER",
    "HOOKWARDEN_BYPASS_COMMIT_MSG",
    "HOOKWARDEN_WEBHOOK_URL",
    "HOOKWARDEN_LOG_LEVEL",
    "HOOKWARDEN_LOG_FILE",
    "HOOKWARDEN_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset CLI option state, structlog and root handlers around each test."""
    from hookwarden.cli import helpers

    helpers.reset_logging_state()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    helpers.reset_logging_state()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Hooks read overrides and waivers from the environment."""
    for name in HOOKWARDEN_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Engine fixtures
# =============================================================================


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """Repository root with an empty ``.git`` directory."""
    root = tmp_path / "repo"
    (root / ".git").mkdir(parents=True)
    return root


@pytest.fixture
def hook_config() -> HookConfig:
    """Configuration with fast locks, memory state and no notifications."""
    return HookConfig(
        state_backend="memory",
        locks=LockConfig(retries=3, min_delay_seconds=0.0, max_delay_seconds=0.01),
        notifications=NotificationsConfig(backend="none"),
    )


@pytest.fixture
def fake_runner() -> FakeCommandRunner:
    return FakeCommandRunner()


@pytest.fixture
def engine(
    repo_root: Path,
    hook_config: HookConfig,
    fake_runner: FakeCommandRunner,
) -> EngineState:
    return EngineState.create(
        repo_root,
        hook_config,
        runner=fake_runner,
        state_store=InMemoryKeyValueStore(),
    )


@pytest.fixture
def orchestrator(engine: EngineState) -> HookOrchestrator:
    return HookOrchestrator(engine)


# =============================================================================
# Real git repositories
# =============================================================================


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A real repository on ``main`` with one commit."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    root = tmp_path / "git-repo"
    root.mkdir()
    git(root, "init", "-q")
    git(root, "symbolic-ref", "HEAD", "refs/heads/main")
    git(root, "config", "user.email", "dev@example.com")
    git(root, "config", "user.name", "Dev")
    git(root, "config", "commit.gpgsign", "false")
    (root / "README.md").write_text("# demo\n")
    git(root, "add", "README.md")
    git(root, "commit", "-q", "-m", "[DEVELOPER] [STEP-001] Initial commit")
    return root
