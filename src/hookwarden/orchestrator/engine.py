"""Process-wide engine state.

``EngineState`` bundles every long-lived collaborator a hook run needs.
It is built once per process by :meth:`EngineState.create` and passed to
the orchestrator, which keeps no module-level singletons of its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from hookwarden.core.config import HookConfig
from hookwarden.core.logging import get_logger
from hookwarden.core.repository import Repository, repository_at
from hookwarden.execution.circuit_breaker import PersistentCircuitBreaker
from hookwarden.execution.commands import AsyncCommandRunner, CommandRunner, GitClient
from hookwarden.execution.locking import LockManager
from hookwarden.execution.performance import PerformanceTracker
from hookwarden.integrations.base import MessageValidator, PolicyGate, WorkflowNotifier
from hookwarden.integrations.gatekeeper import RuleBasedGate
from hookwarden.integrations.message_validator import RegexMessageValidator
from hookwarden.integrations.notifier import create_notifier
from hookwarden.recovery.audit import BypassAuditLog
from hookwarden.recovery.handler import ErrorHandler
from hookwarden.recovery.registry import create_default_registry
from hookwarden.state.base import KeyValueStore
from hookwarden.state.file_backend import FileKeyValueStore
from hookwarden.state.git_backend import GitStateStore
from hookwarden.state.journal import JournalStore
from hookwarden.state.memory import InMemoryKeyValueStore

_logger = get_logger("engine")


@dataclass
class EngineState:
    """Long-lived collaborators shared by all pipelines of one process."""

    repo_root: Path
    repository: Repository
    config: HookConfig
    runner: CommandRunner
    git: GitClient
    locks: LockManager
    circuit_breaker: PersistentCircuitBreaker
    state_store: KeyValueStore
    journal: JournalStore
    audit_log: BypassAuditLog
    tracker: PerformanceTracker
    error_handler: ErrorHandler
    message_validator: MessageValidator
    gate: PolicyGate
    notifier: WorkflowNotifier

    @classmethod
    def create(
        cls,
        repo_root: Path,
        config: HookConfig | None = None,
        *,
        runner: CommandRunner | None = None,
        state_store: KeyValueStore | None = None,
        message_validator: MessageValidator | None = None,
        gate: PolicyGate | None = None,
        notifier: WorkflowNotifier | None = None,
        repository: Repository | None = None,
    ) -> EngineState:
        """Wire the default collaborators for a repository.

        Args:
            repo_root: Repository working-tree root.
            config: Hook configuration; loaded from ``.hookwarden.yaml`` when None.
            runner: Subprocess runner (tests inject a fake).
            state_store: Key/value store; chosen by ``config.state_backend`` when None.
            message_validator: Commit-message grammar checker.
            gate: Policy gate.
            notifier: Workflow notifier; chosen by ``config.notifications`` when None.
            repository: Repository layout; discovered from ``repo_root`` when None.
        """
        repository = repository or repository_at(repo_root)
        repo_root = repository.root
        config = config or HookConfig.load(repo_root)
        runner = runner or AsyncCommandRunner()
        git = GitClient(runner, repo_root, timeout=config.timeouts.git)
        paths = config.paths

        locks = LockManager(
            repository.resolve(paths.lock_dir),
            retries=config.locks.retries,
            min_delay=config.locks.min_delay_seconds,
            max_delay=config.locks.max_delay_seconds,
            stale_seconds=config.locks.stale_seconds,
        )
        circuit_breaker = PersistentCircuitBreaker(
            repository.resolve(paths.circuit_breaker), locks
        )
        if state_store is None:
            state_store = _create_state_store(config, repository, git)
        journal = JournalStore(repo_root, locks)
        audit_log = BypassAuditLog(repository.resolve(paths.audit_log), locks)

        tracker = PerformanceTracker(
            performance_threshold=config.performance_threshold,
            optimization_threshold=config.optimization_threshold,
            development_mode=config.development_mode,
        )
        error_handler = ErrorHandler(
            create_default_registry(runner, config, repository, journal),
            circuit_breaker,
            audit_log,
            max_recovery_attempts=config.max_recovery_attempts,
            enable_auto_recovery=config.enable_auto_recovery,
        )

        _logger.debug(
            "engine.created",
            repo=str(repo_root),
            git_dir=str(repository.git_dir),
            state_backend=type(state_store).__name__,
            development_mode=config.development_mode,
        )
        return cls(
            repo_root=repo_root,
            repository=repository,
            config=config,
            runner=runner,
            git=git,
            locks=locks,
            circuit_breaker=circuit_breaker,
            state_store=state_store,
            journal=journal,
            audit_log=audit_log,
            tracker=tracker,
            error_handler=error_handler,
            message_validator=message_validator or RegexMessageValidator(),
            gate=gate or RuleBasedGate(),
            notifier=notifier or create_notifier(config.notifications),
        )


def _create_state_store(
    config: HookConfig,
    repository: Repository,
    git: GitClient,
) -> KeyValueStore:
    if config.state_backend == "memory":
        return InMemoryKeyValueStore()
    if config.state_backend == "file":
        return FileKeyValueStore(repository.resolve(config.paths.state_dir))
    return GitStateStore(git, branch=config.state_branch)
