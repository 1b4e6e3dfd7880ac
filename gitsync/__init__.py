"""
gitsync - keep a local directory a fast-forward-only mirror of a Git remote.

Bootstrap clones the remote into an absent directory (and never adopts
anything else); sync fetches and fast-forwards a clean clone.
"""

__version__ = "1.0.0"
__description__ = "Fast-forward-only Git directory synchronization"

from .config import Config, Credentials, SyncTarget, load_configuration
from .engine import GitSync, GitSyncResult, ErrorCode, MergeOutcome, bootstrap, sync

__all__ = [
    "Config",
    "Credentials",
    "SyncTarget",
    "load_configuration",
    "GitSync",
    "GitSyncResult",
    "ErrorCode",
    "MergeOutcome",
    "bootstrap",
    "sync"
]
