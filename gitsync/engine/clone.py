"""Repository cloning for the initial bootstrap, using GitPython."""

import logging
import sys
from pathlib import Path
from typing import Optional

from git import Git, GitCommandError

from ..config import SyncTarget
from .credentials import git_environment
from .error_types import ErrorCode
from .inspector import DEFAULT_REMOTE_NAME, is_empty_directory
from .performance_logger import get_performance_logger
from .utils import GitSyncResult, create_git_sync_result, failure
from .validation import validate_cloned_repository


CHECKOUT_FAILURE_MARKERS = (
    "Clone succeeded, but checkout failed",
    "unable to checkout working tree",
)


def is_timeout_error(error: GitCommandError) -> bool:
    """Whether GitPython killed the command because its deadline passed."""
    return "did not complete in" in str(error.stderr or "")


def git_deadline(timeout: Optional[float]) -> Optional[float]:
    """
    kill_after_timeout value for a GitPython call.

    GitPython refuses kill_after_timeout on Windows, so git commands run
    without a deadline there.
    """
    if timeout and sys.platform == "win32":
        logging.getLogger('gitsync.engine.clone').warning(
            f"Git operation deadlines are not supported on Windows; ignoring timeout of {timeout}s"
        )
        return None
    return timeout


def classify_clone_failure(error: GitCommandError) -> str:
    """Which clone stage failed: "checkout" once objects were fetched, else "fetch"."""
    stderr = str(error.stderr or "")
    if any(marker in stderr for marker in CHECKOUT_FAILURE_MARKERS):
        return "checkout"
    return "fetch"


def clone_repository(target: SyncTarget, timeout: Optional[float] = None) -> GitSyncResult:
    """
    Clone the target's remote into its local directory.

    This function performs the following operations:
    1. Checks the destination is absent or an empty directory
    2. Creates missing parent directories
    3. Clones with origin as the only remote, checking out the tracked
       branch (or the remote default branch)
    4. Validates the cloned repository against the expected remote URL

    A failed clone may leave a partially initialized directory behind;
    it is not removed.

    Args:
        target: Remote URL, destination and credentials
        timeout: Seconds before the git process is killed; None waits forever

    Returns:
        GitSyncResult indicating success or failure of the clone operation
    """
    logger = logging.getLogger('gitsync.engine.clone')
    operation = "clone_repository"
    local_path: Path = target.local_path

    if local_path.exists() and not is_empty_directory(local_path):
        error_msg = f"Cannot clone repository: {local_path} exists and is not an empty directory"
        logger.error(error_msg)
        return failure(operation, ErrorCode.NOT_A_REPOSITORY, error_msg, path=str(local_path))

    try:
        local_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        error_msg = f"Cannot create parent directory {local_path.parent}: {e}"
        logger.error(error_msg)
        return failure(operation, ErrorCode.IO_ERROR, error_msg, path=str(local_path.parent))

    args = ["--origin", DEFAULT_REMOTE_NAME]
    if target.branch:
        args.extend(["--branch", target.branch])
    args.extend(["--", target.remote_url, str(local_path)])

    logger.info(f"Cloning repository from {target.remote_url} into {local_path}")

    try:
        with git_environment(target.credentials) as env:
            with get_performance_logger().time_operation(
                "git_clone",
                {"remote_url": target.remote_url, "branch": target.branch or "HEAD"}
            ):
                # Runs in the caller's working directory; local_path is absolute
                Git().clone(*args, env=env, kill_after_timeout=git_deadline(timeout))
    except GitCommandError as e:
        if is_timeout_error(e):
            error_msg = f"Git clone of {target.remote_url} did not complete within {timeout}s"
            logger.error(error_msg)
            return failure(
                operation,
                ErrorCode.OPERATION_TIMEOUT,
                error_msg,
                path=str(local_path),
                timeout=timeout
            )

        stage = classify_clone_failure(e)
        error_msg = f"Git clone failed during {stage}: {str(e.stderr or e).strip()}"
        logger.error(error_msg)
        return failure(
            operation,
            ErrorCode.CLONE_FAILED,
            error_msg,
            path=str(local_path),
            stage=stage,
            remote_url=target.remote_url
        )
    except OSError as e:
        # git executable missing, or the askpass helper could not be written
        error_msg = f"Git clone could not be started: {e}"
        logger.error(error_msg)
        return failure(operation, ErrorCode.IO_ERROR, error_msg, path=str(local_path))

    validation_result = validate_cloned_repository(local_path, target.remote_url)
    if not validation_result.success:
        return validation_result

    logger.info(f"Repository clone completed successfully from {target.remote_url}")

    return create_git_sync_result(
        success=True,
        message=f"Repository cloned successfully from {target.remote_url}",
        operation=operation,
        revision=validation_result.revision,
        branch_used=validation_result.branch_used
    )
