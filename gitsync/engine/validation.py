"""Remote URL validation for existing and freshly cloned repositories."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from git import InvalidGitRepositoryError, NoSuchPathError, GitCommandError

from .error_types import ErrorCode
from .inspector import DEFAULT_REMOTE_NAME, open_repository, read_remote_url
from .utils import GitSyncResult, create_git_sync_result, failure


@dataclass
class RemoteValidation:
    """Outcome of comparing a discovered remote URL with the expected one."""
    matches: bool
    expected: str
    actual: Optional[str]

    def describe(self) -> str:
        actual = self.actual if self.actual is not None else "<no remote URL>"
        return f"expected remote {self.expected!r}, found {actual!r}"


def validate_remote(expected: str, actual: Optional[str]) -> RemoteValidation:
    """
    Classify a discovered remote URL against the expected one.

    The comparison is exact: trailing slashes, ".git" suffixes and
    protocol aliases are significant. A missing URL never matches.
    """
    return RemoteValidation(
        matches=actual is not None and actual == expected,
        expected=expected,
        actual=actual
    )


def validate_cloned_repository(git_repo_dir: Path, git_remote_url: str) -> GitSyncResult:
    """
    Validate the structure of a freshly cloned repository.

    This function checks:
    1. The directory opens as a repository root
    2. Remote origin is configured
    3. Its URL equals the URL the clone was made from

    Args:
        git_repo_dir: Path to the Git repository directory
        git_remote_url: Expected remote URL

    Returns:
        GitSyncResult indicating validation success or failure
    """
    logger = logging.getLogger('gitsync.engine.validation')
    operation = "validate_cloned_repo"

    try:
        repo = open_repository(git_repo_dir)
    except (InvalidGitRepositoryError, NoSuchPathError, GitCommandError) as e:
        error_msg = f"Cloned repository validation failed: not a valid Git repository: {e}"
        logger.error(error_msg)
        return failure(operation, ErrorCode.CLONE_VALIDATION_FAILED, error_msg, path=str(git_repo_dir))

    try:
        if DEFAULT_REMOTE_NAME not in [remote.name for remote in repo.remotes]:
            error_msg = "Cloned repository validation failed: origin remote not configured"
            logger.error(error_msg)
            return failure(operation, ErrorCode.CLONE_VALIDATION_FAILED, error_msg, path=str(git_repo_dir))

        validation = validate_remote(git_remote_url, read_remote_url(repo, repo.remote(DEFAULT_REMOTE_NAME)))
        if not validation.matches:
            error_msg = f"Cloned repository validation failed: remote URL mismatch ({validation.describe()})"
            logger.error(error_msg)
            return failure(
                operation,
                ErrorCode.CLONE_VALIDATION_FAILED,
                error_msg,
                path=str(git_repo_dir),
                expected=validation.expected,
                actual=validation.actual
            )

        revision = repo.head.commit.hexsha if repo.head.is_valid() else None
        branch = None if repo.head.is_detached else repo.active_branch.name
    finally:
        repo.close()

    logger.debug(f"Cloned repository validation successful, current branch: {branch}")
    return create_git_sync_result(
        success=True,
        message=f"Cloned repository validation successful, current branch: {branch}",
        operation=operation,
        revision=revision,
        branch_used=branch
    )
