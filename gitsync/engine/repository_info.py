"""Repository state data structures derived fresh on every reconciliation call."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DirectoryState(Enum):
    """On-disk state of a managed directory."""
    ABSENT = "absent"                      # Path does not exist
    NOT_A_REPOSITORY = "not_a_repository"  # Path exists, cannot be opened as a repository
    REPOSITORY = "repository"              # Path is a repository root


class MergeOutcome(Enum):
    """Relationship between the local tip and the fetched remote tip."""
    UP_TO_DATE = "up_to_date"
    FAST_FORWARDABLE = "fast_forwardable"
    DIVERGED = "diverged"


@dataclass
class RepositoryState:
    """Snapshot of a managed directory; never cached across calls."""
    exists: bool
    is_repository: bool
    remote_configured: Optional[str]
    is_clean: bool


@dataclass
class MergeAnalysis:
    """Result of comparing the local branch tip against the fetched tip."""
    outcome: MergeOutcome
    local_revision: Optional[str]
    target_revision: str

    @property
    def is_fast_forward(self) -> bool:
        return self.outcome == MergeOutcome.FAST_FORWARDABLE
