"""Progress tracking and summaries for terminal output."""

import sys
import logging
from collections import Counter
from typing import List, Optional

from ..core.types import OperationResult, RepoStatus, Status

logger = logging.getLogger('nut')


class ProgressTracker:
    """Track and display progress for repository operations."""

    def __init__(self, total: int, operation_name: str):
        """Initialize progress tracker.

        Args:
            total: Total number of repositories to process
            operation_name: Name of the operation being performed
        """
        self.total = total
        self.operation_name = operation_name
        self.completed = 0
        self.success_count = 0
        self.skipped_count = 0
        self.failed_count = 0
        self.current_repo: Optional[str] = None

    def update(self, result: OperationResult, current_repo: Optional[str] = None) -> None:
        """Update progress with a new result.

        Args:
            result: Operation result
            current_repo: Optional name of the repository that just finished
        """
        self.current_repo = current_repo
        self.completed += 1

        if result.status == Status.SUCCESS:
            self.success_count += 1
        elif result.status == Status.SKIPPED:
            self.skipped_count += 1
        else:
            self.failed_count += 1

        self.display()

    def display(self) -> None:
        """Display current progress."""
        percentage = (self.completed / self.total * 100) if self.total > 0 else 0

        bar_width = 20
        filled = int(bar_width * self.completed / self.total) if self.total > 0 else 0
        bar = '█' * filled + '░' * (bar_width - filled)

        status = f"\r[{bar}] {percentage:.0f}% ({self.completed}/{self.total}) "
        if self.current_repo:
            status += f"Last: {self.current_repo} "
        status += f"✓{self.success_count} ⊘{self.skipped_count} ✗{self.failed_count}"

        # stderr keeps the bar out of command output
        sys.stderr.write(status)
        sys.stderr.flush()

    def finish(self) -> None:
        """Finish progress tracking."""
        sys.stderr.write("\n")
        sys.stderr.flush()

        logger.info(f"Completed {self.operation_name} operation")
        logger.info(f"Total: {self.total}, Success: {self.success_count}, "
                    f"Skipped: {self.skipped_count}, Failed: {self.failed_count}")


def print_clone_summary(results: List[OperationResult], operation_name: str) -> None:
    """Print a summary of a clone run.

    Successful and skipped clones are counted per pipeline outcome
    message. Failures are listed with their error.

    Args:
        results: One result per repository
        operation_name: Name of the operation
    """
    by_status = Counter(r.status for r in results)
    outcomes = Counter(r.message for r in results if not r.failed)

    print("\n" + "=" * 60)
    print(f"SUMMARY: {operation_name.upper()}")
    print("=" * 60)
    print(f"Total repositories: {len(results)}")
    print(f"✓ Success: {by_status[Status.SUCCESS]}")
    print(f"⊘ Skipped: {by_status[Status.SKIPPED]}")
    print(f"✗ Failed: {by_status[Status.FAILED]}")

    if outcomes:
        print("\nBy outcome:")
        for message, count in sorted(outcomes.items()):
            print(f"  {message}: {count}")

    failed = sorted((r for r in results if r.failed), key=lambda r: r.repo)
    if failed:
        print("\nFailed repositories:")
        for result in failed:
            print(f"  - {result.repo}: {result.message}")

    print("=" * 60)


def print_status_summary(statuses: List[RepoStatus]) -> None:
    """Print the workspace status report.

    Args:
        statuses: Status records, already sorted by path
    """
    with_changes = [s for s in statuses if s.has_changes]
    total = len(statuses)
    clean = total - len(with_changes)

    print("Workspace status:")
    print(f"  {total} repositories total")
    print(f"  {clean} clean, {len(with_changes)} with changes")
    print()

    if not with_changes:
        print("All repositories are clean.")
        return

    print("Repositories with changes:")
    print()
    for status in with_changes:
        print(f"  {status.path_relative} ({status.current_branch})")
        if status.staged_count > 0:
            print(f"    {status.staged_count} file(s) with staged changes")
        if status.modified_count > 0:
            print(f"    {status.modified_count} file(s) with unstaged changes")
        if status.untracked_count > 0:
            print(f"    {status.untracked_count} untracked file(s)")
        print()
