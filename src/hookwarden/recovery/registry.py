"""Registry of available recovery actions.

The create_default_registry() factory returns a registry with all built-in
actions pre-registered.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hookwarden.core.errors import ErrorCategory

if TYPE_CHECKING:
    from hookwarden.core.config import HookConfig
    from hookwarden.core.repository import Repository
    from hookwarden.execution.commands import CommandRunner
    from hookwarden.recovery.actions import RecoveryAction
    from hookwarden.state.journal import JournalStore


class RecoveryRegistry:
    """Registry of recovery actions keyed by the categories they handle.

    Example:
        registry = RecoveryRegistry()
        registry.register(CacheRebuildAction(cache_dir))

        action = registry.find_for(ErrorCategory.CACHE_ERROR)
    """

    def __init__(self) -> None:
        self._actions: list[RecoveryAction] = []

    def register(self, action: RecoveryAction) -> None:
        self._actions.append(action)

    def all_actions(self) -> list[RecoveryAction]:
        return list(self._actions)

    def get_by_name(self, name: str) -> RecoveryAction | None:
        for action in self._actions:
            if action.name == name:
                return action
        return None

    def find_for(self, category: ErrorCategory) -> RecoveryAction | None:
        """Return the first registered action handling ``category``."""
        for action in self._actions:
            if category in action.categories:
                return action
        return None

    def count(self) -> int:
        return len(self._actions)


def create_default_registry(
    runner: CommandRunner,
    config: HookConfig,
    repository: Repository,
    journal: JournalStore,
) -> RecoveryRegistry:
    """Create a registry with all built-in recovery actions.

    Registers auto-fix, auto-generate-context, enable-optimizations,
    coverage-guidance, cache-rebuild and retry-lock.
    """
    from hookwarden.recovery.actions import (
        AutoFixAction,
        AutoGenerateContextAction,
        CacheRebuildAction,
        CoverageGuidanceAction,
        EnableOptimizationsAction,
        RetryLockAction,
    )

    registry = RecoveryRegistry()
    registry.register(AutoFixAction(runner, config, repository.root))
    registry.register(AutoGenerateContextAction(journal, config.paths.journal))
    registry.register(EnableOptimizationsAction(config, repository.root))
    registry.register(CoverageGuidanceAction(config.coverage_threshold))
    registry.register(CacheRebuildAction(repository.resolve(config.paths.cache_dir)))
    registry.register(RetryLockAction())
    return registry
