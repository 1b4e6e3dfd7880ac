#!/usr/bin/env python3
"""
Unit tests for the advisory lock that guards a managed directory.
"""

import math
import os
import shutil
import sys
import tempfile
import time
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from gitsync.config import SyncTarget
from gitsync.file_lock import FileLock, cleanup_stale_lock, read_lock_owner, repository_lock, stale_lock_age


DEAD_PID = 999999999


class TestFileLock(unittest.TestCase):
    """Lock acquisition, contention and stale lock recovery."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.lock_path = self.temp_dir / ".repo.gitsync.lock"

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_acquire_and_release(self):
        lock = FileLock(self.lock_path, timeout=1.0)

        self.assertTrue(lock.acquire())
        self.assertTrue(self.lock_path.exists())
        self.assertEqual(read_lock_owner(self.lock_path), os.getpid())

        self.assertTrue(lock.release())
        self.assertFalse(self.lock_path.exists())
        self.assertTrue(lock.release())

    def test_second_lock_times_out(self):
        first = FileLock(self.lock_path, timeout=1.0)
        second = FileLock(self.lock_path, timeout=0.2)
        self.assertTrue(first.acquire())
        try:
            started = time.monotonic()
            self.assertFalse(second.acquire())
            self.assertGreaterEqual(time.monotonic() - started, 0.2)
        finally:
            first.release()

        self.assertTrue(second.acquire())
        second.release()

    def test_lock_of_dead_process_is_reclaimed(self):
        self.lock_path.write_text(f"locked_by_pid_{DEAD_PID}_thread_1")

        lock = FileLock(self.lock_path, timeout=0.5)

        self.assertTrue(lock.acquire())
        self.assertEqual(read_lock_owner(self.lock_path), os.getpid())
        lock.release()

    def test_old_lock_is_reclaimed(self):
        self.lock_path.write_text(f"locked_by_pid_{os.getpid()}_thread_1")
        old = time.time() - 7200
        os.utime(self.lock_path, (old, old))

        lock = FileLock(self.lock_path, timeout=0.5, stale_age=3600)

        self.assertTrue(lock.acquire())
        lock.release()

    def test_old_lock_of_live_owner_is_kept_without_stale_age(self):
        self.lock_path.write_text(f"locked_by_pid_{os.getpid()}_thread_1")
        old = time.time() - 7200
        os.utime(self.lock_path, (old, old))

        lock = FileLock(self.lock_path, timeout=0.2, stale_age=math.inf)

        self.assertFalse(lock.acquire())
        self.assertTrue(self.lock_path.exists())

    def test_stale_lock_age_follows_operation_timeout(self):
        self.assertEqual(stale_lock_age(None), math.inf)
        self.assertEqual(stale_lock_age(0), math.inf)
        self.assertEqual(stale_lock_age(300.0), 3600.0)
        self.assertEqual(stale_lock_age(3000.0), 6000.0)

    def test_context_manager_raises_on_timeout(self):
        holder = FileLock(self.lock_path, timeout=1.0)
        self.assertTrue(holder.acquire())
        try:
            with self.assertRaises(TimeoutError):
                with FileLock(self.lock_path, timeout=0.1):
                    pass
        finally:
            holder.release()

    def test_repository_lock_uses_sibling_lock_file(self):
        target = SyncTarget(remote_url="https://example.com/r.git", local_path=self.temp_dir / "repo")

        with repository_lock(target, timeout=0.5):
            self.assertTrue(target.lock_path.exists())
            self.assertFalse(target.local_path.exists())

        self.assertFalse(target.lock_path.exists())

    def test_cleanup_stale_lock(self):
        target = SyncTarget(remote_url="https://example.com/r.git", local_path=self.temp_dir / "repo")
        self.assertFalse(cleanup_stale_lock(target))

        target.lock_path.write_text(f"locked_by_pid_{os.getpid()}_thread_1")
        self.assertFalse(cleanup_stale_lock(target))
        self.assertTrue(target.lock_path.exists())

        target.lock_path.write_text(f"locked_by_pid_{DEAD_PID}_thread_1")
        self.assertTrue(cleanup_stale_lock(target))
        self.assertFalse(target.lock_path.exists())

    def test_cleanup_stale_lock_honours_max_age(self):
        target = SyncTarget(remote_url="https://example.com/r.git", local_path=self.temp_dir / "repo")
        target.lock_path.write_text(f"locked_by_pid_{os.getpid()}_thread_1")
        old = time.time() - 7200
        os.utime(target.lock_path, (old, old))

        self.assertFalse(cleanup_stale_lock(target, max_age=math.inf))
        self.assertTrue(target.lock_path.exists())

        self.assertTrue(cleanup_stale_lock(target))
        self.assertFalse(target.lock_path.exists())


if __name__ == "__main__":
    unittest.main(verbosity=2)
