"""Shared test helpers for hookwarden tests."""

import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from hookwarden.core.errors import CommandError
from hookwarden.execution.commands import CommandResult


class FakeCommandRunner:
    """CommandRunner that answers from canned responses.

    Responses are registered per argument prefix; the longest matching
    prefix wins. Several responses for the same prefix are consumed in
    order, and the last one repeats. Unmatched commands exit 0 silently.
    """

    def __init__(self, default_error: Exception | None = None) -> None:
        self.calls: list[list[str]] = []
        self.default_error = default_error
        self._responses: dict[tuple[str, ...], list[CommandResult | Exception]] = {}

    def on(
        self,
        *prefix: str,
        exit_code: int = 0,
        stdout: str = "",
        stderr: str = "",
        raises: Exception | None = None,
    ) -> "FakeCommandRunner":
        response: CommandResult | Exception
        if raises is not None:
            response = raises
        else:
            response = CommandResult(
                args=list(prefix), exit_code=exit_code, stdout=stdout, stderr=stderr
            )
        self._responses.setdefault(tuple(prefix), []).append(response)
        return self

    def ran(self, *prefix: str) -> bool:
        return any(call[: len(prefix)] == list(prefix) for call in self.calls)

    def count(self, *prefix: str) -> int:
        return sum(1 for call in self.calls if call[: len(prefix)] == list(prefix))

    def _match(self, cmd: list[str]) -> CommandResult | Exception | None:
        best: tuple[str, ...] | None = None
        for prefix in self._responses:
            if tuple(cmd[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return None
        queue = self._responses[best]
        return queue.pop(0) if len(queue) > 1 else queue[0]

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
        self.calls.append(cmd)
        response = self._match(cmd)
        if response is None:
            if self.default_error is not None:
                raise self.default_error
            response = CommandResult(args=cmd, exit_code=0)
        if isinstance(response, Exception):
            raise response

        result = CommandResult(
            args=cmd,
            exit_code=response.exit_code,
            stdout=response.stdout,
            stderr=response.stderr,
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


def git(cwd: Path, *args: str) -> str:
    """Run git in ``cwd`` and return stdout."""
    result = subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    )
    return result.stdout.strip()
