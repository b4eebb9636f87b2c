"""Core types shared by the workspace orchestration engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Status(Enum):
    """Status of a per-repository operation."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class OperationResult:
    """Result of running one operation against one repository."""
    status: Status
    message: str
    repo: str
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        """Check if operation was successful."""
        return self.status == Status.SUCCESS

    @property
    def skipped(self) -> bool:
        """Check if operation was skipped."""
        return self.status == Status.SKIPPED

    @property
    def failed(self) -> bool:
        """Check if operation failed."""
        return self.status == Status.FAILED


@dataclass(frozen=True)
class RepoStatus:
    """Working tree state of a single repository in a workspace.

    The three counters are independent: a file staged and then edited
    again counts once as staged and once as modified.
    """
    path_relative: str
    current_branch: str
    staged_count: int = 0
    modified_count: int = 0
    untracked_count: int = 0

    @property
    def has_changes(self) -> bool:
        """True if any file is staged, modified or untracked."""
        return bool(self.staged_count or self.modified_count or self.untracked_count)


@dataclass(frozen=True)
class CloneInfo:
    """Metadata needed to clone or refresh one repository.

    latest_commit and default_branch are None for empty upstream repositories.
    """
    full_name: str
    latest_commit: Optional[str] = None
    default_branch: Optional[str] = None

    @property
    def has_commit_info(self) -> bool:
        return bool(self.latest_commit and self.default_branch)
