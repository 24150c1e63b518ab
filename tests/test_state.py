"""Tests for hookwarden.state: key/value backends and the journal store."""

import asyncio
from pathlib import Path

import pytest

from hookwarden.execution.commands import AsyncCommandRunner, GitClient
from hookwarden.execution.locking import LockManager
from hookwarden.state import (
    FileKeyValueStore,
    GitStateStore,
    InMemoryKeyValueStore,
    JournalStore,
)
from hookwarden.state.base import normalize_key
from hookwarden.state.journal import content_hash
from tests.helpers import git


class TestNormalizeKey:
    """Tests for normalize_key."""

    def test_collapses_separators(self):
        assert normalize_key("/contexts//feature.md") == "contexts/feature.md"
        assert normalize_key("a\\b") == "a/b"
        assert normalize_key("./a/./b") == "a/b"

    @pytest.mark.parametrize("key", ["", "/", "./", "../etc/passwd", "a/../../b"])
    def test_rejects_invalid_keys(self, key: str):
        with pytest.raises(ValueError):
            normalize_key(key)


class TestInMemoryKeyValueStore:
    """Tests for InMemoryKeyValueStore."""

    @pytest.mark.asyncio
    async def test_crud(self):
        store = InMemoryKeyValueStore({"/a.md": "one"})
        assert await store.read("a.md") == "one"
        await store.write("b/c.md", "two")
        assert await store.list_keys() == ["a.md", "b/c.md"]
        assert await store.delete("a.md") is True
        assert await store.delete("a.md") is False
        assert await store.read("a.md") is None


class TestFileKeyValueStore:
    """Tests for FileKeyValueStore."""

    @pytest.fixture
    def store(self, tmp_path: Path) -> FileKeyValueStore:
        return FileKeyValueStore(tmp_path / "state")

    @pytest.mark.asyncio
    async def test_missing_root_lists_nothing(self, store):
        assert await store.list_keys() == []
        assert await store.read("contexts/x.md") is None

    @pytest.mark.asyncio
    async def test_write_read_list(self, store):
        await store.write("contexts/feature-x.md", "# context\n")
        await store.write("metrics.json", "{}")
        assert await store.read("contexts/feature-x.md") == "# context\n"
        assert await store.list_keys() == ["contexts/feature-x.md", "metrics.json"]
        assert (store.root / "contexts" / "feature-x.md").is_file()

    @pytest.mark.asyncio
    async def test_overwrite(self, store):
        await store.write("k", "v1")
        await store.write("k", "v2")
        assert await store.read("k") == "v2"

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.write("k", "v")
        assert await store.delete("k") is True
        assert await store.delete("k") is False

    @pytest.mark.asyncio
    async def test_rejects_escaping_keys(self, store):
        with pytest.raises(ValueError):
            await store.write("../outside", "x")


class TestJournalStore:
    """Tests for JournalStore."""

    @pytest.fixture
    def journal(self, tmp_path: Path) -> JournalStore:
        locks = LockManager(tmp_path / "locks", retries=50, min_delay=0, max_delay=0.01)
        return JournalStore(tmp_path / "repo", locks)

    @pytest.mark.asyncio
    async def test_write_returns_digest(self, journal):
        digest = await journal.write("activeContext.md", "hello")
        assert digest == content_hash("hello")
        assert await journal.read("activeContext.md") == "hello"
        assert journal.exists("activeContext.md")

    @pytest.mark.asyncio
    async def test_append_starts_with_header(self, journal):
        await journal.append("activeContext.md", "- one\n", header="# Active Context\n")
        await journal.append("activeContext.md", "- two\n", header="# ignored\n")
        assert await journal.read("activeContext.md") == "# Active Context\n- one\n- two\n"

    @pytest.mark.asyncio
    async def test_update(self, journal):
        await journal.update("notes.md", lambda current: (current or "") + "x")
        await journal.update("notes.md", lambda current: (current or "") + "y")
        assert await journal.read("notes.md") == "xy"

    @pytest.mark.asyncio
    async def test_concurrent_appends_are_not_lost(self, journal):
        await asyncio.gather(*(journal.append("log.md", f"{i}\n") for i in range(5)))
        lines = (await journal.read("log.md") or "").splitlines()
        assert sorted(lines) == [str(i) for i in range(5)]

    @pytest.mark.asyncio
    async def test_mirror_receives_writes(self, tmp_path: Path):
        mirror = InMemoryKeyValueStore()
        locks = LockManager(tmp_path / "locks")
        journal = JournalStore(tmp_path / "repo", locks, mirror=mirror)
        await journal.write("activeContext.md", "ctx")
        assert await mirror.read("activeContext.md") == "ctx"


class TestGitStateStore:
    """Tests for GitStateStore against a real repository."""

    @pytest.fixture
    def store(self, git_repo: Path) -> GitStateStore:
        return GitStateStore(GitClient(AsyncCommandRunner(), git_repo))

    @pytest.mark.asyncio
    async def test_init_creates_orphan_branch_once(self, store, git_repo):
        assert await store.init() is True
        assert await store.init() is False
        assert git(git_repo, "log", "--format=%s", "hookwarden-state") == "Initial State"

    @pytest.mark.asyncio
    async def test_write_and_read(self, store):
        await store.write("contexts/feature-x.md", "# Feature X\n")
        assert await store.read("contexts/feature-x.md") == "# Feature X\n"
        assert await store.read("missing.md") is None

    @pytest.mark.asyncio
    async def test_list_and_delete(self, store):
        await store.write("a.md", "a")
        await store.write("b/c.md", "c")
        assert await store.list_keys() == ["a.md", "b/c.md"]
        assert await store.delete("a.md") is True
        assert await store.delete("a.md") is False
        assert await store.list_keys() == ["b/c.md"]

    @pytest.mark.asyncio
    async def test_working_tree_and_index_untouched(self, store, git_repo):
        (git_repo / "staged.txt").write_text("staged")
        git(git_repo, "add", "staged.txt")
        await store.write("k.md", "v")
        assert git(git_repo, "diff", "--cached", "--name-only") == "staged.txt"
        assert git(git_repo, "rev-parse", "--abbrev-ref", "HEAD") == "main"
        assert not (git_repo / "k.md").exists()

    @pytest.mark.asyncio
    async def test_empty_branch_lists_nothing(self, store):
        assert await store.list_keys() == []
