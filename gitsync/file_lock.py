"""
Cross-platform advisory locking for managed directories.

A lock file beside each managed directory gives one process at a time
the right to run bootstrap or sync against it.
"""

import math
import os
import subprocess
import time
import logging
import threading
from pathlib import Path
from typing import Optional
from contextlib import contextmanager

from .config import SyncTarget
from .platform import get_platform_info, get_platform_specific_defaults


LOCK_OWNER_PREFIX = "locked_by_pid_"


def is_process_running(pid: int) -> bool:
    """
    Check if a process with given PID is still running.

    Args:
        pid: Process ID to check

    Returns:
        True if process is running, False otherwise
    """
    if pid <= 0:
        return False
    try:
        if get_platform_info().is_windows:
            result = subprocess.run(
                ["tasklist", "/FI", f"PID eq {pid}"],
                capture_output=True,
                text=True,
                timeout=5
            )
            return str(pid) in result.stdout
        os.kill(pid, 0)
        return True
    except PermissionError:
        # Exists, owned by another user
        return True
    except (OSError, subprocess.TimeoutExpired, subprocess.CalledProcessError):
        return False


def read_lock_owner(lock_file_path: Path) -> Optional[int]:
    """PID recorded in a lock file, or None when it cannot be parsed."""
    try:
        content = lock_file_path.read_text()
        return int(content.split(LOCK_OWNER_PREFIX)[1].split("_")[0])
    except (ValueError, IndexError, OSError):
        return None


class FileLock:
    """
    Exclusive lock backed by a file created with O_CREAT | O_EXCL.

    The file holds the owner's PID. A lock whose owner is gone, or that is
    older than stale_age seconds, is reclaimed.
    """

    def __init__(self, lock_file_path: Path, timeout: float = 30.0, stale_age: Optional[float] = None):
        """
        Initialize file lock.

        Args:
            lock_file_path: Path to the lock file
            timeout: Maximum time to wait for lock acquisition (seconds)
            stale_age: Age in seconds after which any lock is reclaimed
        """
        self.lock_file_path = Path(lock_file_path)
        self.timeout = timeout
        self.stale_age = stale_age if stale_age is not None else get_platform_specific_defaults()['stale_lock_age']
        self.logger = logging.getLogger('gitsync.file_lock')
        self._lock_acquired = False

    def acquire(self) -> bool:
        """
        Acquire the file lock, polling until timeout.

        Returns:
            True if lock was acquired, False if timeout occurred
        """
        deadline = time.monotonic() + self.timeout

        while True:
            try:
                self.lock_file_path.parent.mkdir(parents=True, exist_ok=True)
                if self._try_create():
                    self._lock_acquired = True
                    self.logger.debug(f"Acquired lock: {self.lock_file_path}")
                    return True
            except OSError as e:
                self.logger.warning(f"Error acquiring lock {self.lock_file_path}: {e}")

            if time.monotonic() >= deadline:
                break
            time.sleep(0.1)

        self.logger.warning(f"Failed to acquire lock {self.lock_file_path} within {self.timeout}s")
        return False

    def _try_create(self) -> bool:
        try:
            self._create_lock_file()
            return True
        except FileExistsError:
            pass

        if not self._cleanup_stale_lock():
            return False
        try:
            self._create_lock_file()
            return True
        except FileExistsError:
            # Another process reclaimed it first
            return False

    def _create_lock_file(self) -> None:
        fd = os.open(self.lock_file_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        with os.fdopen(fd, 'w') as f:
            f.write(f"{LOCK_OWNER_PREFIX}{os.getpid()}_thread_{threading.get_ident()}")

    def _cleanup_stale_lock(self) -> bool:
        """
        Remove an existing lock if it is stale.

        Returns:
            True if the lock file is gone and creation can be retried
        """
        try:
            lock_age = time.time() - self.lock_file_path.stat().st_mtime
        except FileNotFoundError:
            return True

        if lock_age > self.stale_age:
            self.logger.warning(f"Cleaning up stale lock file ({lock_age:.0f}s old): {self.lock_file_path}")
            return self._remove_lock_file()

        pid = read_lock_owner(self.lock_file_path)
        if pid is None:
            # Owner may still be writing its PID
            if lock_age < 1.0:
                return False
            self.logger.warning(f"Cleaning up unparseable lock file: {self.lock_file_path}")
            return self._remove_lock_file()

        if not is_process_running(pid):
            self.logger.warning(f"Cleaning up lock from dead process {pid}: {self.lock_file_path}")
            return self._remove_lock_file()

        return False

    def _remove_lock_file(self) -> bool:
        try:
            self.lock_file_path.unlink()
        except FileNotFoundError:
            pass
        return True

    def release(self) -> bool:
        """
        Release the file lock.

        Returns:
            True if lock was released, False otherwise
        """
        if not self._lock_acquired:
            return True

        try:
            self.lock_file_path.unlink()
            self.logger.debug(f"Released lock: {self.lock_file_path}")
        except FileNotFoundError:
            self.logger.warning(f"Lock file disappeared before release: {self.lock_file_path}")
        except OSError as e:
            self.logger.error(f"Error releasing lock {self.lock_file_path}: {e}")
            return False

        self._lock_acquired = False
        return True

    def __enter__(self):
        if not self.acquire():
            raise TimeoutError(f"Could not acquire lock {self.lock_file_path} within {self.timeout}s")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


def stale_lock_age(operation_timeout: Optional[float]) -> float:
    """
    Age after which a lock left by a live owner may be reclaimed.

    Without an operation deadline a clone or fetch may legitimately hold
    the lock for any length of time, so age alone never makes it stale.
    """
    if not operation_timeout:
        return math.inf
    return max(get_platform_specific_defaults()['stale_lock_age'], 2 * operation_timeout)


@contextmanager
def repository_lock(target: SyncTarget, timeout: float = 30.0, stale_age: Optional[float] = None):
    """
    Context manager holding the advisory lock for a sync target.

    Args:
        target: Target whose directory is being reconciled
        timeout: Maximum time to wait for lock acquisition
        stale_age: Age in seconds after which a held lock is reclaimed

    Yields:
        FileLock instance

    Raises:
        TimeoutError: If lock cannot be acquired within timeout
    """
    with FileLock(target.lock_path, timeout, stale_age) as lock:
        yield lock


def cleanup_stale_lock(target: SyncTarget, max_age: Optional[float] = None) -> bool:
    """
    Remove a target's lock file left behind by a dead or long-gone owner.

    Args:
        target: Target whose lock file is checked
        max_age: Seconds after which a lock is stale regardless of owner;
            defaults to the platform's stale lock age

    Returns:
        True if a stale lock file was removed
    """
    logger = logging.getLogger('gitsync.file_lock')
    lock_file = target.lock_path
    if max_age is None:
        max_age = get_platform_specific_defaults()['stale_lock_age']

    if not lock_file.exists():
        return False

    try:
        file_age = time.time() - lock_file.stat().st_mtime
    except FileNotFoundError:
        return False

    pid = read_lock_owner(lock_file)
    owner_alive = pid is not None and is_process_running(pid)

    if owner_alive and file_age <= max_age:
        return False

    try:
        lock_file.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"Error removing stale lock file {lock_file}: {e}")
        return False

    logger.info(f"Cleaned up stale lock (owner pid {pid}): {lock_file}")
    return True
