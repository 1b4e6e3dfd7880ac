"""Result type shared by all reconciliation operations."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .error_types import ErrorCode, ErrorResolution
from .error_strategies import get_error_resolution
from .repository_info import MergeOutcome


@dataclass
class GitSyncResult:
    """Result of a bootstrap, sync or lower-level engine operation."""
    success: bool
    message: str
    operation: str
    error_code: Optional[ErrorCode] = None
    details: Dict[str, Any] = field(default_factory=dict)
    merge_outcome: Optional[MergeOutcome] = None
    revision: Optional[str] = None
    branch_used: Optional[str] = None

    @property
    def resolution(self) -> Optional[ErrorResolution]:
        """Resolution hint for a failed result."""
        if self.error_code is None:
            return None
        return get_error_resolution(self.error_code)


def create_git_sync_result(
    success: bool,
    message: str,
    operation: str,
    error_code: Optional[ErrorCode] = None,
    details: Optional[Dict[str, Any]] = None,
    merge_outcome: Optional[MergeOutcome] = None,
    revision: Optional[str] = None,
    branch_used: Optional[str] = None
) -> GitSyncResult:
    """
    Helper function to create GitSyncResult instances.

    Args:
        success: Whether the operation was successful
        message: Descriptive message about the operation result
        operation: Name of the operation that was performed
        error_code: Error code for failed operations
        details: Structured diagnostics (paths, URLs, stages)
        merge_outcome: Classification made by the fast-forward engine
        revision: Commit id HEAD points at after the operation
        branch_used: Branch name that was used in the operation

    Returns:
        GitSyncResult instance with all fields populated
    """
    return GitSyncResult(
        success=success,
        message=message,
        operation=operation,
        error_code=error_code,
        details=dict(details or {}),
        merge_outcome=merge_outcome,
        revision=revision,
        branch_used=branch_used
    )


def failure(operation: str, error_code: ErrorCode, message: str, **details: Any) -> GitSyncResult:
    """Shorthand for a failed result carrying structured details."""
    return create_git_sync_result(
        success=False,
        message=message,
        operation=operation,
        error_code=error_code,
        details=details
    )
