"""Resolution hints for each reconciliation error code."""

from typing import Dict
from .error_types import ErrorCategory, ErrorCode, ErrorResolution, RecoveryAction


def build_error_strategies() -> Dict[ErrorCode, ErrorResolution]:
    """Build resolution hints for each error code."""
    return {
        ErrorCode.INCORRECT_GIT_REMOTES: ErrorResolution(
            code=ErrorCode.INCORRECT_GIT_REMOTES,
            category=ErrorCategory.CONFIGURATION,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The directory is a repository for a different remote",
            resolution_steps=[
                "Check that the configured remote URL is spelled exactly as stored in the repository",
                "Point the target at a different directory, or remove the existing one manually"
            ]
        ),

        ErrorCode.NOT_A_REPOSITORY: ErrorResolution(
            code=ErrorCode.NOT_A_REPOSITORY,
            category=ErrorCategory.CONFIGURATION,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The directory exists but is not a Git repository",
            resolution_steps=[
                "Move the existing content out of the way",
                "Or configure an empty or non-existent directory"
            ]
        ),

        ErrorCode.REPOSITORY_MISSING: ErrorResolution(
            code=ErrorCode.REPOSITORY_MISSING,
            category=ErrorCategory.CONFIGURATION,
            action=RecoveryAction.REPAIR,
            user_message="The managed directory does not exist yet",
            resolution_steps=["Run bootstrap before sync"]
        ),

        ErrorCode.WORK_TREE_NOT_CLEAN: ErrorResolution(
            code=ErrorCode.WORK_TREE_NOT_CLEAN,
            category=ErrorCategory.WORKING_TREE,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The working tree has local modifications",
            resolution_steps=[
                "Inspect the changed paths listed in the result details",
                "Discard or commit the changes elsewhere; the directory must not be edited in place"
            ]
        ),

        ErrorCode.FAST_FORWARD_NOT_POSSIBLE: ErrorResolution(
            code=ErrorCode.FAST_FORWARD_NOT_POSSIBLE,
            category=ErrorCategory.HISTORY,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="Local and remote history have diverged",
            resolution_steps=[
                "Check whether the upstream branch was force-pushed",
                "Check for local commits made inside the managed directory",
                "Re-create the clone if the local history is disposable"
            ]
        ),

        ErrorCode.REMOTE_BRANCH_NOT_FOUND: ErrorResolution(
            code=ErrorCode.REMOTE_BRANCH_NOT_FOUND,
            category=ErrorCategory.HISTORY,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The tracked branch no longer exists on the remote",
            resolution_steps=[
                "Verify the configured branch name",
                "Configure the branch that replaced it upstream"
            ]
        ),

        ErrorCode.CLONE_FAILED: ErrorResolution(
            code=ErrorCode.CLONE_FAILED,
            category=ErrorCategory.NETWORK,
            action=RecoveryAction.RETRY,
            user_message="Cloning the remote repository failed",
            resolution_steps=[
                "Verify the repository URL and credentials",
                "A partially created directory may need to be removed before retrying"
            ]
        ),

        ErrorCode.CLONE_VALIDATION_FAILED: ErrorResolution(
            code=ErrorCode.CLONE_VALIDATION_FAILED,
            category=ErrorCategory.REPOSITORY_ACCESS,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The clone completed but does not match the configured remote",
            resolution_steps=[
                "Check the remote URL for redirects or rewriting (url.<base>.insteadOf)",
                "Remove the cloned directory and bootstrap again"
            ]
        ),

        ErrorCode.FETCH_FAILED: ErrorResolution(
            code=ErrorCode.FETCH_FAILED,
            category=ErrorCategory.NETWORK,
            action=RecoveryAction.RETRY,
            user_message="Fetching from the remote failed",
            resolution_steps=[
                "Check network connectivity and credentials",
                "The next sync will try again"
            ]
        ),

        ErrorCode.REF_UPDATE_FAILED: ErrorResolution(
            code=ErrorCode.REF_UPDATE_FAILED,
            category=ErrorCategory.REPOSITORY_ACCESS,
            action=RecoveryAction.REPAIR,
            user_message="Updating the local branch reference failed",
            resolution_steps=[
                "Check for stale .lock files inside the .git directory",
                "Make sure HEAD is attached to a branch"
            ]
        ),

        ErrorCode.CHECKOUT_FAILED: ErrorResolution(
            code=ErrorCode.CHECKOUT_FAILED,
            category=ErrorCategory.FILE_SYSTEM,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The branch moved but the working tree could not be updated",
            resolution_steps=[
                "Check file permissions inside the working tree",
                "Run 'git checkout --force <branch>' in the directory to finish the update",
                "Until then every sync reports WORK_TREE_NOT_CLEAN"
            ]
        ),

        ErrorCode.IO_ERROR: ErrorResolution(
            code=ErrorCode.IO_ERROR,
            category=ErrorCategory.FILE_SYSTEM,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="A filesystem operation failed",
            resolution_steps=[
                "Check permissions on the parent directory",
                "Check available disk space"
            ]
        ),

        ErrorCode.OPERATION_TIMEOUT: ErrorResolution(
            code=ErrorCode.OPERATION_TIMEOUT,
            category=ErrorCategory.NETWORK,
            action=RecoveryAction.RETRY,
            user_message="The Git operation did not finish in time",
            resolution_steps=[
                "Increase the operation timeout for large repositories",
                "Remove any partially cloned directory before retrying"
            ]
        ),

        ErrorCode.LOCK_TIMEOUT: ErrorResolution(
            code=ErrorCode.LOCK_TIMEOUT,
            category=ErrorCategory.CONCURRENCY,
            action=RecoveryAction.RETRY,
            user_message="Another process is reconciling this directory",
            resolution_steps=[
                "Make sure only one scheduler manages each directory",
                "Remove the lock file if its owner process is gone"
            ]
        ),
    }


_strategies: Dict[ErrorCode, ErrorResolution] = build_error_strategies()


def get_error_resolution(code: ErrorCode) -> ErrorResolution:
    """Look up the resolution hint for an error code."""
    return _strategies[ErrorCode(code)]
