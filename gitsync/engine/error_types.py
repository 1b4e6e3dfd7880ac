"""Error codes and categorization for reconciliation operations."""

from dataclasses import dataclass
from enum import Enum
from typing import List


class ErrorCode(str, Enum):
    """Classified failure kinds returned in GitSyncResult.error_code."""
    INCORRECT_GIT_REMOTES = "INCORRECT_GIT_REMOTES"
    NOT_A_REPOSITORY = "NOT_A_REPOSITORY"
    REPOSITORY_MISSING = "REPOSITORY_MISSING"
    WORK_TREE_NOT_CLEAN = "WORK_TREE_NOT_CLEAN"
    FAST_FORWARD_NOT_POSSIBLE = "FAST_FORWARD_NOT_POSSIBLE"
    REMOTE_BRANCH_NOT_FOUND = "REMOTE_BRANCH_NOT_FOUND"
    CLONE_FAILED = "CLONE_FAILED"
    CLONE_VALIDATION_FAILED = "CLONE_VALIDATION_FAILED"
    FETCH_FAILED = "FETCH_FAILED"
    REF_UPDATE_FAILED = "REF_UPDATE_FAILED"
    CHECKOUT_FAILED = "CHECKOUT_FAILED"
    IO_ERROR = "IO_ERROR"
    OPERATION_TIMEOUT = "OPERATION_TIMEOUT"
    LOCK_TIMEOUT = "LOCK_TIMEOUT"


class ErrorCategory(Enum):
    """Categories of reconciliation errors for appropriate handling."""
    CONFIGURATION = "configuration"
    WORKING_TREE = "working_tree"
    HISTORY = "history"
    NETWORK = "network"
    REPOSITORY_ACCESS = "repository_access"
    FILE_SYSTEM = "file_system"
    CONCURRENCY = "concurrency"


class RecoveryAction(Enum):
    """What a host should do about a failed call."""
    RETRY = "retry"
    USER_ACTION_REQUIRED = "user_action_required"
    REPAIR = "repair"


@dataclass
class ErrorResolution:
    """Information about how to resolve a specific error."""
    code: ErrorCode
    category: ErrorCategory
    action: RecoveryAction
    user_message: str
    resolution_steps: List[str]

    @property
    def retryable(self) -> bool:
        """Whether calling again on the next tick may succeed without intervention."""
        return self.action == RecoveryAction.RETRY
