"""Working tree guard: sync must never touch a tree with local changes."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from git import InvalidGitRepositoryError, NoSuchPathError, GitCommandError

from .inspector import open_repository


@dataclass
class WorktreeStatus:
    """Cleanliness of a working tree, with the offending paths when dirty."""
    clean: bool
    changed_paths: List[str] = field(default_factory=list)
    error: Optional[str] = None


def parse_porcelain_status(output: str) -> List[str]:
    """Paths from ``git status --porcelain`` output (renames report the new path)."""
    paths = []
    for line in output.splitlines():
        if len(line) < 4:
            continue
        path = line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        paths.append(path.strip('"'))
    return paths


def get_worktree_status(local_path: Path) -> WorktreeStatus:
    """
    Inspect the working tree at local_path.

    Staged changes, unstaged modifications and untracked files all make
    the tree dirty; ignored files do not. Any failure to open or query the
    repository reports the tree as not clean.
    """
    logger = logging.getLogger('gitsync.engine.worktree')

    try:
        repo = open_repository(local_path)
    except (InvalidGitRepositoryError, NoSuchPathError, GitCommandError, OSError) as e:
        logger.warning(f"Cannot open {local_path} to check working tree: {e}")
        return WorktreeStatus(clean=False, error=f"{type(e).__name__}: {e}")

    try:
        output = repo.git.status("--porcelain", "--untracked-files=all", "--ignore-submodules=none")
    except GitCommandError as e:
        logger.warning(f"Cannot query working tree status for {local_path}: {e}")
        return WorktreeStatus(clean=False, error=f"{type(e).__name__}: {e}")
    finally:
        repo.close()

    changed_paths = parse_porcelain_status(output)
    if changed_paths:
        logger.debug(f"Working tree at {local_path} has {len(changed_paths)} changed path(s)")
    return WorktreeStatus(clean=not changed_paths, changed_paths=changed_paths)


def is_worktree_clean(local_path: Path) -> bool:
    """True iff the working tree has no uncommitted or untracked changes."""
    return get_worktree_status(local_path).clean
