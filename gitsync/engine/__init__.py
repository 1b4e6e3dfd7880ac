"""Repository reconciliation engine for gitsync."""

from .reconciler import GitSync, bootstrap, sync
from .utils import GitSyncResult, create_git_sync_result
from .error_types import ErrorCode, ErrorCategory, ErrorResolution, RecoveryAction
from .error_strategies import get_error_resolution
from .repository_info import DirectoryState, MergeOutcome, RepositoryState
from .credentials import build_git_environment

__all__ = [
    'GitSync',
    'bootstrap',
    'sync',
    'GitSyncResult',
    'create_git_sync_result',
    'ErrorCode',
    'ErrorCategory',
    'ErrorResolution',
    'RecoveryAction',
    'get_error_resolution',
    'DirectoryState',
    'MergeOutcome',
    'RepositoryState',
    'build_git_environment'
]
