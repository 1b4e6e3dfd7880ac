"""Performance logging utilities for clone, fetch and checkout operations."""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Optional, Any, Generator


# Operations slower than this are reported as warnings
SLOW_OPERATION_SECONDS = 30.0


@dataclass
class PerformanceMetrics:
    """Performance metrics for a single reconciliation step."""
    operation: str
    duration: float
    start_time: float
    end_time: float
    context: Optional[Dict[str, Any]] = None
    success: bool = True


class PerformanceLogger:
    """
    Timing utilities for reconciliation steps.

    Keeps the most recent measurement per operation name so a host can
    log a summary of how long clones and fetches take.
    """

    def __init__(self, logger_name: str = 'gitsync.performance'):
        self.logger = logging.getLogger(logger_name)
        self._metrics: Dict[str, PerformanceMetrics] = {}

    @contextmanager
    def time_operation(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        log_level: int = logging.DEBUG
    ) -> Generator[None, None, None]:
        """
        Context manager for timing operations.

        Exceptions raised inside the block are recorded as failures and
        re-raised unchanged; reporting them is left to the caller.

        Args:
            operation: Name of the operation being timed
            context: Additional context information
            log_level: Logging level for completion messages
        """
        start_time = time.time()
        self.logger.log(log_level, f"⏱️ Starting {operation}")

        success = True
        try:
            yield
        except Exception as e:
            success = False
            self.logger.debug(f"❌ {operation} failed after {time.time() - start_time:.3f}s: {e}")
            raise
        finally:
            end_time = time.time()
            duration = end_time - start_time

            self._metrics[operation] = PerformanceMetrics(
                operation=operation,
                duration=duration,
                start_time=start_time,
                end_time=end_time,
                context=context,
                success=success
            )

            if success:
                self.logger.log(log_level, f"✅ {operation} completed in {duration:.3f}s")
                if context:
                    context_str = ", ".join(f"{k}={v}" for k, v in context.items())
                    self.logger.debug(f"📊 {operation} context: {context_str}")

            if duration > SLOW_OPERATION_SECONDS:
                self.logger.warning(f"⚠️ Slow Git operation detected: '{operation}' took {duration:.3f}s")

    def get_metrics(self, operation: str) -> Optional[PerformanceMetrics]:
        """Most recent measurement for an operation, if any."""
        return self._metrics.get(operation)

    def get_performance_summary(self) -> Dict[str, Any]:
        """
        Get a summary of performance metrics.

        Returns:
            Dictionary containing performance summary
        """
        if not self._metrics:
            return {"total_operations": 0, "average_duration": 0.0}

        total_operations = len(self._metrics)
        total_duration = sum(m.duration for m in self._metrics.values())
        successful_ops = sum(1 for m in self._metrics.values() if m.success)
        slowest_op = max(self._metrics.values(), key=lambda m: m.duration)

        return {
            "total_operations": total_operations,
            "total_duration": total_duration,
            "average_duration": total_duration / total_operations,
            "success_rate": successful_ops / total_operations,
            "slowest_operation": {
                "name": slowest_op.operation,
                "duration": slowest_op.duration
            }
        }

    def log_performance_summary(self) -> None:
        """Log a summary of all performance metrics."""
        summary = self.get_performance_summary()

        if summary["total_operations"] == 0:
            self.logger.info("📊 No performance metrics available")
            return

        self.logger.info(
            f"📊 Performance Summary: {summary['total_operations']} operations, "
            f"avg {summary['average_duration']:.3f}s, "
            f"{summary['success_rate']:.1%} success rate"
        )

        slowest = summary["slowest_operation"]
        self.logger.info(f"🐌 Slowest operation: {slowest['name']} ({slowest['duration']:.3f}s)")


# Global performance logger instance
_performance_logger: Optional[PerformanceLogger] = None


def get_performance_logger() -> PerformanceLogger:
    """Get or create the global performance logger instance."""
    global _performance_logger
    if _performance_logger is None:
        _performance_logger = PerformanceLogger()
    return _performance_logger
