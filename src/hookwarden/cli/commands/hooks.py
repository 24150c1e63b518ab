"""Hook entry commands.

Each command takes the arguments git passes to the corresponding hook
script, so a hook can be installed as a one-liner::

    #!/bin/sh
    exec hookwarden pre-push "$@"

Exit codes:
  0: hook succeeded (post-* hooks always succeed)
  1: hook blocked the operation
  2: cannot run (not a repository, invalid configuration)
"""

from __future__ import annotations

from pathlib import Path

import typer

from hookwarden.core.results import HookResult
from hookwarden.orchestrator import HookOrchestrator

from ..helpers import configure_global_logging, is_quiet, is_verbose, run_hook
from ..output import console, print_json, render_hook_result

JsonOption = typer.Option(False, "--json", "-j", help="Output the hook result as JSON")


def _finish(result: HookResult, json_output: bool) -> None:
    if json_output:
        print_json(result.to_dict())
    else:
        render_hook_result(result, verbose=is_verbose(), quiet=is_quiet())
    if not result.success:
        raise typer.Exit(1)


def pre_commit(
    files: list[str] | None = typer.Argument(
        None,
        help="Files to check instead of the staged set",
    ),
    json_output: bool = JsonOption,
) -> None:
    """Lint, fast-test and context-check staged changes."""
    configure_global_logging(console)
    result = run_hook(console, lambda o: o.execute_pre_commit(files or None))
    _finish(result, json_output)


def commit_msg(
    message_file: Path = typer.Argument(
        ...,
        help="File holding the commit message (git passes .git/COMMIT_EDITMSG)",
        exists=True,
        readable=True,
    ),
    json_output: bool = JsonOption,
) -> None:
    """Validate a commit message."""
    configure_global_logging(console)
    lines = message_file.read_text(encoding="utf-8").splitlines()
    message = "\n".join(line for line in lines if not line.startswith("#")).strip()
    result = run_hook(console, lambda o: o.execute_commit_msg(message))
    _finish(result, json_output)


def pre_push(
    remote: str = typer.Argument("origin", help="Name of the remote being pushed to"),
    url: str | None = typer.Argument(None, help="URL of the remote (unused)"),
    json_output: bool = JsonOption,
) -> None:
    """Run the full test suite, build and security audit before pushing."""
    configure_global_logging(console)

    async def invoke(orchestrator: HookOrchestrator) -> HookResult:
        branch = await orchestrator.git.current_branch() or "HEAD"
        return await orchestrator.execute_pre_push(branch, remote)

    _finish(run_hook(console, invoke), json_output)


def post_commit(
    commit: str = typer.Argument("HEAD", help="Commit to record"),
    json_output: bool = JsonOption,
) -> None:
    """Update metrics, docs and the context journal after a commit."""
    configure_global_logging(console)

    async def invoke(orchestrator: HookOrchestrator) -> HookResult:
        sha = await orchestrator.git.head_sha() if commit == "HEAD" else commit
        return await orchestrator.execute_post_commit(sha or commit)

    _finish(run_hook(console, invoke), json_output)


def post_merge(
    squash_flag: str = typer.Argument("0", help="1 when the merge was a squash"),
    json_output: bool = JsonOption,
) -> None:
    """Validate the repository after a merge."""
    configure_global_logging(console)
    merge_type = "squash" if squash_flag == "1" else "merge"
    result = run_hook(console, lambda o: o.execute_post_merge(merge_type))
    _finish(result, json_output)


def pre_rebase(
    upstream: str = typer.Argument(..., help="Upstream the branch is rebased onto"),
    branch: str | None = typer.Argument(None, help="Branch being rebased (default: HEAD)"),
    json_output: bool = JsonOption,
) -> None:
    """Check that a rebase is safe."""
    configure_global_logging(console)
    result = run_hook(console, lambda o: o.execute_pre_rebase(upstream, branch))
    _finish(result, json_output)


def post_checkout(
    previous: str = typer.Argument(..., help="Previous HEAD"),
    new: str = typer.Argument(..., help="New HEAD"),
    branch_flag: str = typer.Argument("1", help="1 for a branch checkout, 0 for files"),
    json_output: bool = JsonOption,
) -> None:
    """Swap the context journal when switching branches."""
    configure_global_logging(console)
    result = run_hook(
        console,
        lambda o: o.execute_post_checkout(previous, new, branch_flag == "1"),
    )
    _finish(result, json_output)


def pre_receive(json_output: bool = JsonOption) -> None:
    """Validate pushed refs; reads ``<old> <new> <ref>`` lines from stdin."""
    configure_global_logging(console)
    updates: list[tuple[str, str, str]] = []
    for line in typer.get_text_stream("stdin").read().splitlines():
        parts = line.split()
        if len(parts) == 3:
            updates.append((parts[0], parts[1], parts[2]))
    if not updates:
        console.print("[yellow]No ref updates on stdin[/yellow]")
        raise typer.Exit(0)

    async def invoke(orchestrator: HookOrchestrator) -> list[HookResult]:
        return [
            await orchestrator.execute_pre_receive(old, new, ref)
            for old, new, ref in updates
        ]

    results = run_hook(console, invoke)
    if json_output:
        print_json([r.to_dict() for r in results])
    else:
        for result in results:
            if result.branch:
                console.print(f"[bold]{result.branch}[/bold]")
            render_hook_result(result, verbose=is_verbose(), quiet=is_quiet())
    if not all(r.success for r in results):
        raise typer.Exit(1)
