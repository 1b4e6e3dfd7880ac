"""Entry point: python -m gitsync"""

import sys
import logging

from . import __version__
from .config import load_configuration, validate_configuration
from .engine.performance_logger import get_performance_logger
from .file_lock import cleanup_stale_lock, stale_lock_age
from .platform import get_platform_info
from .watcher import GitSyncWatcher, setup_logging


def main() -> int:
    """Keep the configured directory in sync until interrupted."""
    try:
        config = load_configuration()
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2

    setup_logging(config)
    startup_logger = logging.getLogger('gitsync.startup')
    startup_logger.info(f"gitsync {__version__} on {get_platform_info().get_platform_name()}")
    startup_logger.info(f"Mirroring {config.remote_url} into {config.local_path}")

    issues = validate_configuration(config)
    for issue in issues:
        if issue.startswith("ERROR:"):
            startup_logger.error(issue)
        else:
            startup_logger.warning(issue)
    if any(issue.startswith("ERROR:") for issue in issues):
        startup_logger.error("Configuration validation failed")
        return 2

    target = config.to_target()
    if cleanup_stale_lock(target, max_age=stale_lock_age(config.operation_timeout)):
        startup_logger.warning(f"Removed stale lock left by a previous run: {target.lock_path}")

    watcher = GitSyncWatcher(config)
    watcher.start()
    try:
        # join() with a timeout keeps the main thread responsive to Ctrl+C
        while not watcher.wait(timeout=1.0):
            pass
    except KeyboardInterrupt:
        startup_logger.info("Stopped by user (Ctrl+C)")
        watcher.stop(timeout=10.0)
        return 0
    finally:
        get_performance_logger().log_performance_summary()

    result = watcher.last_result
    if result is not None and not result.success:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
