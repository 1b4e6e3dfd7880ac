"""
Reconciler: the public bootstrap/sync surface.

GitSync owns one managed directory. Each call takes the target's advisory
lock, decides from the on-disk state what (if anything) to do, and returns
a GitSyncResult; backend and filesystem failures are never raised.
"""

import logging
import threading
from typing import Callable, Optional

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..config import SyncTarget
from ..file_lock import repository_lock, stale_lock_age
from .clone import clone_repository
from .error_types import ErrorCode
from .fast_forward import fast_forward_repository
from .inspector import inspect_directory, open_repository
from .performance_logger import get_performance_logger
from .repository_info import DirectoryState, RepositoryState
from .utils import GitSyncResult, create_git_sync_result, failure
from .validation import validate_remote
from .worktree import get_worktree_status, is_worktree_clean


class GitSync:
    """
    Keeps one local directory a faithful, fast-forward-only mirror of a remote.

    The directory is owned exclusively by this object while a call runs:
    concurrent calls on the same instance are serialised, and calls from
    other processes are excluded through a lock file next to the directory.
    """

    def __init__(self, target: SyncTarget, timeout: Optional[float] = None, lock_timeout: float = 30.0):
        """
        Args:
            target: Remote, local directory, branch and credentials
            timeout: Deadline in seconds for clone and fetch; None or 0 waits forever
            lock_timeout: Seconds to wait for another process holding the lock
        """
        self.target = target
        self.timeout = timeout or None
        self.lock_timeout = lock_timeout
        self.logger = logging.getLogger('gitsync.engine.reconciler')
        self._lock = threading.Lock()

    def bootstrap(self) -> GitSyncResult:
        """
        Make sure the directory holds a clone of the remote.

        An absent directory is cloned. An existing clone of the same remote
        is accepted without any write. Anything else at the path is
        reported and left exactly as found.
        """
        return self._run("bootstrap", self._bootstrap)

    def sync(self) -> GitSyncResult:
        """
        Fast-forward an existing clone to the remote tip.

        Refuses to run on a dirty working tree, a foreign remote, or a
        history that has diverged from the remote.
        """
        return self._run("sync", self._sync)

    def get_repository_state(self) -> RepositoryState:
        """Fresh snapshot of the managed directory."""
        inspection = inspect_directory(self.target.local_path)
        if not inspection.is_repository:
            return RepositoryState(
                exists=inspection.exists,
                is_repository=False,
                remote_configured=None,
                is_clean=False
            )
        return RepositoryState(
            exists=True,
            is_repository=True,
            remote_configured=inspection.remote_url,
            is_clean=is_worktree_clean(self.target.local_path)
        )

    def _run(self, operation: str, step: Callable[[], GitSyncResult]) -> GitSyncResult:
        with self._lock:
            try:
                with repository_lock(self.target, self.lock_timeout, stale_age=stale_lock_age(self.timeout)):
                    result = self._run_locked(operation, step)
            except TimeoutError:
                error_msg = (
                    f"Another process is working on {self.target.local_path} "
                    f"(lock {self.target.lock_path} held for more than {self.lock_timeout}s)"
                )
                self.logger.warning(error_msg, extra={'operation': operation})
                return failure(
                    operation,
                    ErrorCode.LOCK_TIMEOUT,
                    error_msg,
                    path=str(self.target.local_path),
                    lock_path=str(self.target.lock_path)
                )

        result.operation = operation
        if result.revision is None:
            result.revision = self._current_revision()
        return result

    def _run_locked(self, operation: str, step: Callable[[], GitSyncResult]) -> GitSyncResult:
        try:
            with get_performance_logger().time_operation(operation, {"path": str(self.target.local_path)}):
                return step()
        except Exception as e:
            # Unexpected backend failure; report it as this step's error
            error_code = ErrorCode.CLONE_FAILED if operation == "bootstrap" else ErrorCode.FETCH_FAILED
            error_msg = f"Unexpected error during {operation} of {self.target.local_path}: {e}"
            self.logger.error(error_msg, exc_info=True, extra={'operation': operation})
            return failure(operation, error_code, error_msg, path=str(self.target.local_path))

    def _bootstrap(self) -> GitSyncResult:
        operation = "bootstrap"
        inspection = inspect_directory(self.target.local_path)

        if inspection.state == DirectoryState.ABSENT:
            self.logger.info(f"{self.target.local_path} does not exist, cloning {self.target.remote_url}")
            return clone_repository(self.target, timeout=self.timeout)

        if inspection.state == DirectoryState.NOT_A_REPOSITORY:
            error_msg = f"{self.target.local_path} exists but is not a Git repository; refusing to touch it"
            self.logger.error(error_msg, extra={'operation': operation})
            return failure(
                operation,
                ErrorCode.NOT_A_REPOSITORY,
                error_msg,
                path=str(self.target.local_path),
                cause=inspection.error
            )

        mismatch = self._check_remote(operation, inspection.remote_url)
        if mismatch is not None:
            return mismatch

        self.logger.info(f"{self.target.local_path} already tracks {self.target.remote_url}, nothing to do")
        return create_git_sync_result(
            success=True,
            message=f"Repository at {self.target.local_path} already tracks {self.target.remote_url}",
            operation=operation,
            revision=self._current_revision(),
            branch_used=self._current_branch()
        )

    def _sync(self) -> GitSyncResult:
        operation = "sync"
        inspection = inspect_directory(self.target.local_path)

        if inspection.state == DirectoryState.ABSENT:
            error_msg = f"{self.target.local_path} does not exist; bootstrap must run before sync"
            self.logger.error(error_msg, extra={'operation': operation})
            return failure(operation, ErrorCode.REPOSITORY_MISSING, error_msg, path=str(self.target.local_path))

        if inspection.state == DirectoryState.NOT_A_REPOSITORY:
            error_msg = f"{self.target.local_path} is not a Git repository"
            self.logger.error(error_msg, extra={'operation': operation})
            return failure(
                operation,
                ErrorCode.NOT_A_REPOSITORY,
                error_msg,
                path=str(self.target.local_path),
                cause=inspection.error
            )

        mismatch = self._check_remote(operation, inspection.remote_url)
        if mismatch is not None:
            return mismatch

        status = get_worktree_status(self.target.local_path)
        if not status.clean:
            error_msg = f"Working tree at {self.target.local_path} has local changes; not syncing"
            if status.error:
                error_msg = f"Cannot verify working tree at {self.target.local_path} is clean: {status.error}"
            self.logger.warning(error_msg, extra={'operation': operation})
            result = failure(
                operation,
                ErrorCode.WORK_TREE_NOT_CLEAN,
                error_msg,
                path=str(self.target.local_path),
                changed_paths=status.changed_paths
            )
            result.revision = self._current_revision()
            return result

        return fast_forward_repository(self.target, timeout=self.timeout)

    def _check_remote(self, operation: str, actual_url: Optional[str]) -> Optional[GitSyncResult]:
        validation = validate_remote(self.target.remote_url, actual_url)
        if validation.matches:
            return None

        error_msg = f"Repository at {self.target.local_path} has incorrect remote: {validation.describe()}"
        self.logger.error(error_msg, extra={'operation': operation})
        return failure(
            operation,
            ErrorCode.INCORRECT_GIT_REMOTES,
            error_msg,
            path=str(self.target.local_path),
            expected=validation.expected,
            actual=validation.actual
        )

    def _current_revision(self) -> Optional[str]:
        try:
            repo = open_repository(self.target.local_path)
        except (InvalidGitRepositoryError, NoSuchPathError, GitCommandError, OSError):
            return None
        try:
            return repo.head.commit.hexsha if repo.head.is_valid() else None
        finally:
            repo.close()

    def _current_branch(self) -> Optional[str]:
        try:
            repo = open_repository(self.target.local_path)
        except (InvalidGitRepositoryError, NoSuchPathError, GitCommandError, OSError):
            return None
        try:
            return None if repo.head.is_detached else repo.head.reference.name
        finally:
            repo.close()


def bootstrap(target: SyncTarget, **kwargs) -> GitSyncResult:
    """Run GitSync(target, **kwargs).bootstrap()."""
    return GitSync(target, **kwargs).bootstrap()


def sync(target: SyncTarget, **kwargs) -> GitSyncResult:
    """Run GitSync(target, **kwargs).sync()."""
    return GitSync(target, **kwargs).sync()
