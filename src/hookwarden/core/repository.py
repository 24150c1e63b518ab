"""Repository layout discovery.

Hooks run in three kinds of repository:

- a regular clone, where ``<root>/.git`` is the git directory;
- a linked worktree or submodule, where ``<root>/.git`` is a file holding
  ``gitdir: <path>``;
- a bare server repository, where the git directory is the repository itself
  and there is no work tree. Server-side ``pre-receive`` runs here.

Runtime files (locks, audit log, circuit breaker, caches, performance
history) are configured with a ``.git/`` prefix and always resolve against
the real git directory, so they work in all three layouts.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

GIT_DIR_NAME = ".git"
GIT_DIR_PREFIX = ".git/"
GITDIR_FILE_PREFIX = "gitdir:"


@dataclass(frozen=True)
class Repository:
    """Where a repository's work tree and git directory live.

    Attributes:
        root: Work-tree root; the git directory itself for a bare repository.
        git_dir: Absolute git directory.
        bare: True when there is no work tree.
    """

    root: Path
    git_dir: Path
    bare: bool = False

    def resolve(self, relative: str) -> Path:
        """Resolve a configured path.

        Paths under ``.git/`` are mapped into the git directory; everything
        else is relative to the work-tree root.
        """
        if relative == GIT_DIR_NAME:
            return self.git_dir
        if relative.startswith(GIT_DIR_PREFIX):
            return self.git_dir / relative[len(GIT_DIR_PREFIX):]
        return self.root / relative


def _looks_like_git_dir(path: Path) -> bool:
    return (path / "HEAD").is_file() and (path / "objects").is_dir() and (path / "refs").is_dir()


def _read_gitdir_file(path: Path) -> Path | None:
    try:
        content = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    if not content.startswith(GITDIR_FILE_PREFIX):
        return None
    target = Path(content[len(GITDIR_FILE_PREFIX):].strip())
    if not target.is_absolute():
        target = path.parent / target
    return target.resolve()


def _layout_at(candidate: Path) -> Repository | None:
    dot_git = candidate / GIT_DIR_NAME
    if dot_git.is_dir():
        return Repository(root=candidate, git_dir=dot_git)
    if dot_git.is_file():
        git_dir = _read_gitdir_file(dot_git)
        if git_dir is not None:
            return Repository(root=candidate, git_dir=git_dir)
    if _looks_like_git_dir(candidate):
        if candidate.name == GIT_DIR_NAME:
            # Inside the git directory of a regular clone
            return Repository(root=candidate.parent, git_dir=candidate)
        return Repository(root=candidate, git_dir=candidate, bare=True)
    return None


def discover_repository(start: Path | None = None) -> Repository | None:
    """Find the repository containing ``start`` (default: cwd).

    Returns:
        The nearest enclosing repository, or None outside any repository.
    """
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        layout = _layout_at(candidate)
        if layout is not None:
            return layout
    return None


def repository_at(root: Path) -> Repository:
    """Layout of a repository whose root is already known.

    Falls back to ``<root>/.git`` when nothing is on disk yet.
    """
    root = root.resolve()
    return _layout_at(root) or Repository(root=root, git_dir=root / GIT_DIR_NAME)


__all__ = ["Repository", "discover_repository", "repository_at"]
