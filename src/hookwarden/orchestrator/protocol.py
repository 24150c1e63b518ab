"""OrchestratorProtocol: shared attribute declarations for mixin type safety.

The pipeline mixins access attributes initialised by
``OrchestratorBase.__init__`` and helpers defined on the base class. Each
mixin annotates ``self`` with this protocol so cross-mixin access
type-checks::

    class PrePushMixin:
        async def execute_pre_push(self: OrchestratorProtocol, ...) -> HookResult:
            ...

The protocol is never instantiated. At runtime the composed
``HookOrchestrator`` provides every declared member.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from hookwarden.core.config import HookConfig
    from hookwarden.core.results import HookResult
    from hookwarden.execution.commands import CommandRunner, GitClient
    from hookwarden.execution.performance import PerformanceTracker
    from hookwarden.recovery.actions import RecoveryContext
    from hookwarden.recovery.handler import ErrorHandler

    from .base import HookRun
    from .engine import EngineState


class OrchestratorProtocol(Protocol):
    """Members the pipeline mixins expect on ``self``."""

    state: EngineState
    config: HookConfig
    git: GitClient
    runner: CommandRunner
    repo_root: Path
    tracker: PerformanceTracker
    error_handler: ErrorHandler

    async def _execute(
        self,
        hook_type: str,
        pipeline: Callable[[HookRun], Awaitable[None]],
        *,
        branch: str | None = None,
        remote: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> HookResult: ...

    async def _guard_step(
        self,
        run: HookRun,
        step: str,
        operation: Callable[[], Awaitable[Any]],
        recovery_context: RecoveryContext | None = None,
    ) -> Any: ...

    def _skip(self, run: HookRun, step: str, message: str) -> Any: ...

    async def _run_gate(self, run: HookRun, **context: Any) -> None: ...

    def _aggregate_success(self, run: HookRun) -> bool: ...

    async def _run_tool(
        self,
        command: list[str],
        timeout: float,
        *,
        check: bool = False,
    ) -> Any: ...

    async def _read_journal(self) -> str | None: ...

    def _clip(self, text: str) -> str: ...
