"""Branch-native key/value store.

State lives on an orphan branch (``hookwarden-state`` by default) as
ordinary blobs. Writes build a new commit through a throwaway index file
(``GIT_INDEX_FILE``), so the working tree and the real index are never
touched, even while a commit is in progress.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from pathlib import Path

from hookwarden.core import constants
from hookwarden.core.errors import CommandError, StateStoreError
from hookwarden.core.logging import get_logger
from hookwarden.execution.commands import GitClient
from hookwarden.state.base import KeyValueStore, normalize_key

_logger = get_logger("state.git")


class GitStateStore(KeyValueStore):
    """Stores each key as a file on a dedicated orphan branch."""

    def __init__(self, git: GitClient, branch: str = constants.STATE_BRANCH) -> None:
        self.git = git
        self.branch = branch
        self._git_dir: Path | None = None

    @property
    def ref(self) -> str:
        return f"refs/heads/{self.branch}"

    async def _resolve_git_dir(self) -> Path:
        if self._git_dir is None:
            self._git_dir = Path(await self.git.output("rev-parse", "--absolute-git-dir"))
        return self._git_dir

    async def init(self) -> bool:
        """Create the orphan branch if missing.

        Returns:
            True if the branch was created by this call.
        """
        if await self.git.ref_exists(self.ref):
            return False
        empty_tree = await self.git.output("hash-object", "-t", "tree", "/dev/null")
        commit = await self.git.output("commit-tree", empty_tree, "-m", "Initial State")
        await self.git.run("update-ref", self.ref, commit)
        _logger.info("state.branch_initialized", branch=self.branch)
        return True

    async def read(self, key: str) -> str | None:
        result = await self.git.run("show", f"{self.ref}:{normalize_key(key)}", check=False)
        return result.stdout if result.ok else None

    async def write(self, key: str, content: str) -> None:
        path = normalize_key(key)
        await self._commit_change(
            f"Update {path}",
            lambda env: self._stage_blob(path, content, env),
        )
        _logger.debug("state.written", key=path, backend="git", size=len(content))

    async def delete(self, key: str) -> bool:
        path = normalize_key(key)
        if path not in await self.list_keys():
            return False
        await self._commit_change(
            f"Delete {path}",
            lambda env: self.git.run("update-index", "--force-remove", path, env=env),
        )
        return True

    async def list_keys(self) -> list[str]:
        result = await self.git.run("ls-tree", "-r", "--name-only", self.ref, check=False)
        if not result.ok:
            return []
        return sorted(line for line in result.stdout.splitlines() if line)

    async def _stage_blob(self, path: str, content: str, env: dict[str, str]) -> None:
        blob = (await self.git.run("hash-object", "-w", "--stdin", input=content)).stdout.strip()
        await self.git.run(
            "update-index", "--add", "--cacheinfo", "100644", blob, path, env=env
        )

    async def _commit_change(
        self,
        message: str,
        stage: Callable[[dict[str, str]], Awaitable[object]],
    ) -> None:
        try:
            await self.init()
            git_dir = await self._resolve_git_dir()
            temp_index = git_dir / f"hookwarden-state-index-{time.time_ns()}"
            env = {"GIT_INDEX_FILE": str(temp_index)}
            try:
                await self.git.run("read-tree", self.ref, env=env)
                await stage(env)
                tree = (await self.git.run("write-tree", env=env)).stdout.strip()
                parent = await self.git.output("rev-parse", self.ref)
                commit = await self.git.output("commit-tree", tree, "-p", parent, "-m", message)
                await self.git.run("update-ref", self.ref, commit, parent)
            finally:
                temp_index.unlink(missing_ok=True)
        except CommandError as e:
            raise StateStoreError(f"Failed to update state branch {self.branch}: {e}") from e
