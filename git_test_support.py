#!/usr/bin/env python3
"""
Shared helpers for tests that need real Git repositories.

Every repository lives under a temporary directory: a bare "remote", an
"upstream" working clone used to publish new commits to it, and whatever
local clones the test creates.
"""

import subprocess
from pathlib import Path
from typing import List


GIT_IDENTITY = [
    "-c", "user.name=Test User",
    "-c", "user.email=test@example.com",
    "-c", "commit.gpgsign=false",
    "-c", "init.defaultBranch=master",
]


def run_git(cwd: Path, *args: str) -> str:
    """Run git in cwd and return stripped stdout; raises on failure."""
    result = subprocess.run(
        ["git", *GIT_IDENTITY, *args],
        cwd=str(cwd),
        check=True,
        capture_output=True,
        text=True
    )
    return result.stdout.strip()


class GitFixture:
    """A bare remote seeded with commits on master, plus an upstream working clone."""

    def __init__(self, root: Path):
        self.root = root
        self.remote_dir = root / "remote.git"
        self.upstream_dir = root / "upstream"

    @property
    def remote_url(self) -> str:
        return str(self.remote_dir)

    def create(self, commits: int = 2) -> "GitFixture":
        """Create the bare remote and push `commits` commits to master."""
        self.remote_dir.mkdir(parents=True)
        run_git(self.remote_dir, "init", "--bare")
        run_git(self.remote_dir, "symbolic-ref", "HEAD", "refs/heads/master")

        self.upstream_dir.mkdir(parents=True)
        run_git(self.upstream_dir, "init")
        run_git(self.upstream_dir, "symbolic-ref", "HEAD", "refs/heads/master")
        run_git(self.upstream_dir, "remote", "add", "origin", self.remote_url)

        for index in range(commits):
            self.commit_upstream("file", f"content {index}\n", f"Commit {index}")
        return self

    def commit_upstream(self, filename: str, content: str, message: str, branch: str = "master") -> str:
        """Write a file in the upstream clone, commit it and push; returns the new commit id."""
        self.checkout_upstream(branch)
        path = self.upstream_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        run_git(self.upstream_dir, "add", "--", filename)
        run_git(self.upstream_dir, "commit", "-m", message)
        run_git(self.upstream_dir, "push", "origin", f"HEAD:refs/heads/{branch}")
        return run_git(self.upstream_dir, "rev-parse", "HEAD")

    def remove_upstream(self, filename: str, message: str) -> str:
        """Delete a tracked file upstream and push."""
        self.checkout_upstream("master")
        run_git(self.upstream_dir, "rm", "--", filename)
        run_git(self.upstream_dir, "commit", "-m", message)
        run_git(self.upstream_dir, "push", "origin", "HEAD:refs/heads/master")
        return run_git(self.upstream_dir, "rev-parse", "HEAD")

    def checkout_upstream(self, branch: str) -> None:
        current = run_git(self.upstream_dir, "symbolic-ref", "--short", "HEAD")
        if current == branch:
            return
        branches = run_git(self.upstream_dir, "branch", "--list", branch)
        if branches:
            run_git(self.upstream_dir, "checkout", branch)
        else:
            run_git(self.upstream_dir, "checkout", "-b", branch)

    def create_upstream_branch(self, branch: str) -> str:
        """Push a new branch off master with one extra commit."""
        self.checkout_upstream("master")
        run_git(self.upstream_dir, "checkout", "-b", branch)
        return self.commit_upstream(f"{branch}.txt", f"on {branch}\n", f"Start {branch}", branch=branch)

    def delete_upstream_branch(self, branch: str) -> None:
        self.checkout_upstream("master")
        run_git(self.upstream_dir, "push", "origin", "--delete", branch)

    def remote_head(self, branch: str = "master") -> str:
        return run_git(self.remote_dir, "rev-parse", f"refs/heads/{branch}")


def local_head(path: Path) -> str:
    return run_git(path, "rev-parse", "HEAD")


def commit_locally(path: Path, filename: str, content: str, message: str) -> str:
    """Create a commit in a local clone without pushing it."""
    (path / filename).write_text(content)
    run_git(path, "add", "--", filename)
    run_git(path, "commit", "-m", message)
    return local_head(path)


def snapshot_tree(path: Path) -> List[tuple]:
    """(relative path, size, mtime_ns) for every file, .git included."""
    entries = []
    for item in sorted(path.rglob("*")):
        if item.is_file():
            stat = item.stat()
            entries.append((str(item.relative_to(path)), stat.st_size, stat.st_mtime_ns))
    return entries
