"""Hook orchestrator composed from per-event pipeline mixins.

    - engine.py:       EngineState, the process-wide collaborators
    - base.py:         Execution lifecycle, step boundary, policy gate
    - pre_commit.py:   linting, fast tests, staged-context checks
    - commit_msg.py:   bypass handling and message validation
    - pre_push.py:     full suite, build, security audit, workflow sync
    - post_commit.py:  metrics, docs, journal entry, notification
    - post_merge.py:   integration workflow, repository checks, recovery
    - lifecycle.py:    pre-rebase safety and post-checkout context swap
    - pre_receive.py:  server-side ref update validation

Architecture:
    class HookOrchestrator(
        PreCommitMixin,
        CommitMsgMixin,
        PrePushMixin,
        PostCommitMixin,
        PostMergeMixin,
        LifecycleMixin,
        PreReceiveMixin,
        OrchestratorBase,   # last = first in MRO
    ): pass

    OrchestratorBase.__init__ binds the EngineState collaborators that
    every mixin reads through ``OrchestratorProtocol``.

Usage:
    from hookwarden.orchestrator import EngineState, HookOrchestrator

    state = EngineState.create(Path("."))
    result = await HookOrchestrator(state).execute_pre_commit()
"""

from __future__ import annotations

from hookwarden.orchestrator.base import GATE_STEP, HookRun, OrchestratorBase
from hookwarden.orchestrator.commit_msg import BYPASS_ENV_VAR, CommitMsgMixin
from hookwarden.orchestrator.engine import EngineState
from hookwarden.orchestrator.lifecycle import LifecycleMixin
from hookwarden.orchestrator.post_commit import PostCommitMixin
from hookwarden.orchestrator.post_merge import PostMergeMixin
from hookwarden.orchestrator.pre_commit import PreCommitMixin
from hookwarden.orchestrator.pre_push import PrePushMixin
from hookwarden.orchestrator.pre_receive import PreReceiveMixin


class HookOrchestrator(
    PreCommitMixin,       # pre-commit
    CommitMsgMixin,       # commit-msg
    PrePushMixin,         # pre-push
    PostCommitMixin,      # post-commit
    PostMergeMixin,       # post-merge
    LifecycleMixin,       # pre-rebase, post-checkout
    PreReceiveMixin,      # pre-receive
    OrchestratorBase,     # Collaborators and plumbing (last = first in MRO)
):
    """Runs the pipeline for each repository lifecycle event.

    Every ``execute_*`` entry point returns a HookResult and never raises:
    step failures become step results and unexpected errors land in
    ``HookResult.error``. Post-* events always report success.

    Example:
        state = EngineState.create(repo_root)
        orchestrator = HookOrchestrator(state)

        result = await orchestrator.execute_pre_push("main", "origin")
        if not result.success:
            for step in result.failed_steps():
                print(step, result.results[step].error)
    """

    pass


__all__ = [
    "HookOrchestrator",
    "EngineState",
    "HookRun",
    "GATE_STEP",
    "BYPASS_ENV_VAR",
    # Mixins (for advanced composition or testing)
    "OrchestratorBase",
    "PreCommitMixin",
    "CommitMsgMixin",
    "PrePushMixin",
    "PostCommitMixin",
    "PostMergeMixin",
    "LifecycleMixin",
    "PreReceiveMixin",
]
