"""Typed subprocess wrapper for tool and git invocations.

Security Note: commands are always argument arrays passed to
asyncio.create_subprocess_exec(); nothing is interpolated into a shell.

Every command runs with an explicit timeout. On expiry the process is
killed and CommandTimeoutError is raised; timeouts are never retried here.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from hookwarden.core.errors import CommandError, CommandNotFoundError, CommandTimeoutError
from hookwarden.core.logging import get_logger

_logger = get_logger("commands")

DEFAULT_TIMEOUT_SECONDS = 60.0


@dataclass
class CommandResult:
    """Completed external command."""

    args: list[str]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, as tools split their reports unpredictably."""
        stdout, stderr = self.stdout.strip(), self.stderr.strip()
        if stdout and stderr:
            return f"{stdout}\n{stderr}"
        return stdout or stderr


@runtime_checkable
class CommandRunner(Protocol):
    """Runs an argument array and returns its result.

    Implementations raise CommandTimeoutError on timeout and
    CommandNotFoundError when the executable is missing. When ``check`` is
    true a non-zero exit raises CommandError.
    """

    async def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        input: str | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = False,
    ) -> CommandResult: ...


class AsyncCommandRunner:
    """CommandRunner backed by asyncio subprocesses."""

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.default_timeout = default_timeout

    async def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        input: str | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = False,
    ) -> CommandResult:
        cmd = list(args)
        if not cmd:
            raise CommandError("Empty command")
        timeout = timeout if timeout is not None else self.default_timeout
        start_time = time.monotonic()

        _logger.debug(
            "command.starting",
            command=cmd[0],
            args_count=len(cmd) - 1,
            cwd=str(cwd) if cwd else None,
            timeout_seconds=timeout,
        )

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env={**os.environ, **env} if env is not None else None,
            )
        except FileNotFoundError as e:
            raise CommandNotFoundError(
                f"Command not found: {cmd[0]}", args=cmd, exit_code=127
            ) from e

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(input.encode() if input is not None else None),
                timeout=timeout,
            )
        except TimeoutError:
            if process.returncode is None:
                process.kill()
            await process.wait()
            _logger.warning(
                "command.timeout",
                command=cmd[0],
                pid=process.pid,
                timeout_seconds=timeout,
            )
            raise CommandTimeoutError(cmd, timeout) from None

        result = CommandResult(
            args=cmd,
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
            duration_seconds=time.monotonic() - start_time,
        )

        _logger.debug(
            "command.completed",
            command=cmd[0],
            exit_code=result.exit_code,
            duration_seconds=round(result.duration_seconds, 3),
        )

        if check and not result.ok:
            raise CommandError(
                f"Command failed with exit code {result.exit_code}: {' '.join(cmd)}",
                args=cmd,
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        return result


class GitClient:
    """Thin async git helper bound to one repository."""

    def __init__(
        self,
        runner: CommandRunner,
        repo_root: Path,
        timeout: float = 30.0,
    ) -> None:
        self.runner = runner
        self.repo_root = repo_root
        self.timeout = timeout

    async def run(
        self,
        *args: str,
        check: bool = True,
        input: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run a git command in the repository.

        Raises:
            CommandError: If check=True and git exits non-zero.
        """
        _logger.debug("git_command", args=args, cwd=str(self.repo_root))
        result = await self.runner.run(
            ["git", *args],
            cwd=self.repo_root,
            timeout=self.timeout,
            input=input,
            env=env,
        )
        if check and not result.ok:
            _logger.error(
                "git_command_failed",
                args=args,
                exit_code=result.exit_code,
                stderr=result.stderr.strip()[:500],
            )
            raise CommandError(
                f"Git command failed: {' '.join(args)}\n{result.stderr}",
                args=["git", *args],
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        return result

    async def output(self, *args: str) -> str:
        """Run a checked git command and return its stripped stdout."""
        return (await self.run(*args)).stdout.strip()

    async def head_sha(self) -> str | None:
        result = await self.run("rev-parse", "HEAD", check=False)
        return result.stdout.strip() if result.ok else None

    async def current_branch(self) -> str | None:
        result = await self.run("rev-parse", "--abbrev-ref", "HEAD", check=False)
        return result.stdout.strip() if result.ok and result.stdout.strip() else None

    async def is_clean(self) -> bool:
        return not (await self.output("status", "--porcelain"))

    async def ref_exists(self, ref: str) -> bool:
        result = await self.run("rev-parse", "--verify", "--quiet", ref, check=False)
        return result.ok

    async def changed_files(self, commit: str) -> list[str]:
        out = await self.output(
            "diff-tree", "--no-commit-id", "--name-only", "-r", "--root", commit
        )
        return [line for line in out.splitlines() if line]

    async def commit_message(self, commit: str) -> str:
        return await self.output("log", "-1", "--format=%B", commit)

    async def commit_subjects(
        self,
        *revisions: str,
        max_count: int | None = None,
    ) -> list[tuple[str, str]]:
        """Return (sha, subject) pairs for a revision range, newest first.

        ``revisions`` are passed to ``git log`` as-is, so both ``a..b`` and
        ``b --not --all`` forms work.
        """
        limit = [f"--max-count={max_count}"] if max_count is not None else []
        out = await self.output("log", *limit, "--format=%H%x09%s", *revisions)
        pairs: list[tuple[str, str]] = []
        for line in out.splitlines():
            sha, _, subject = line.partition("\t")
            if sha:
                pairs.append((sha, subject))
        return pairs

    async def remotes(self) -> list[str]:
        out = await self.output("remote")
        return [line for line in out.splitlines() if line]

    async def has_stash(self) -> bool:
        result = await self.run("stash", "list", check=False)
        return bool(result.ok and result.stdout.strip())
