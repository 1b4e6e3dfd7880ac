"""Periodic bootstrap-then-sync schedule for one managed directory."""

import logging
import threading
from typing import Optional

from .config import Config
from .engine import GitSync, GitSyncResult


def setup_logging(config: Config) -> None:
    """Setup logging configuration with structured logging."""
    class StructuredFormatter(logging.Formatter):
        def format(self, record):
            if hasattr(record, 'operation'):
                record = logging.makeLogRecord(record.__dict__)
                record.msg = f"[{record.operation}] {record.msg}"
            return super().format(record)

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    formatter = StructuredFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logger = logging.getLogger('gitsync')
    logger.setLevel(getattr(logging, config.log_level))
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False


class GitSyncWatcher:
    """
    Runs bootstrap once, then sync every interval, on a daemon thread.

    Failed syncs are logged and retried on the next tick. A failed
    bootstrap stops the schedule: nothing the next tick does would fix a
    foreign or non-repository directory.
    """

    def __init__(self, config: Config, git_sync: Optional[GitSync] = None):
        self.config = config
        self.interval = config.sync_interval
        self.git_sync = git_sync or GitSync(
            config.to_target(),
            timeout=config.operation_timeout,
            lock_timeout=config.lock_timeout
        )
        self.logger = logging.getLogger('gitsync.watcher')
        self.last_result: Optional[GitSyncResult] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the background thread; a second call while running does nothing."""
        if self.is_running():
            self.logger.debug("Watcher already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name=f"GitSync-{self.config.local_path.name}",
            daemon=True
        )
        self._thread.start()
        self.logger.info(f"Started watching {self.config.local_path} (every {self.interval}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Ask the thread to finish and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                self.logger.warning("Watcher thread did not stop within the timeout")
            else:
                self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the thread exits; True if it did."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def run_once(self) -> GitSyncResult:
        """One sync, outside the schedule."""
        result = self.git_sync.sync()
        self._report(result)
        return result

    def _run(self) -> None:
        try:
            result = self.git_sync.bootstrap()
            self._report(result)
            if not result.success:
                self.logger.error("Bootstrap failed, not scheduling syncs")
                return

            while not self._stop_event.wait(self.interval):
                self.run_once()
        except Exception as e:
            self.logger.error(f"Unexpected error in watcher thread: {e}", exc_info=True)

    def _report(self, result: GitSyncResult) -> None:
        self.last_result = result
        if result.success:
            self.logger.debug(f"{result.operation}: {result.message}")
            return

        resolution = result.resolution
        retry_hint = ""
        if resolution is not None:
            retry_hint = " (will retry)" if resolution.retryable else f" ({resolution.user_message})"
        self.logger.warning(f"{result.operation} failed [{result.error_code.value}]: {result.message}{retry_hint}")
