"""Working tree status for every repository in a workspace."""

import os
import logging
from pathlib import Path
from typing import List, Optional, Tuple
from concurrent.futures import ThreadPoolExecutor

from .command import git_output, try_git_output
from .repository import find_repositories
from ..core.errors import NutError
from ..core.types import RepoStatus

logger = logging.getLogger('nut')


def get_current_branch(repo_path: 'os.PathLike[str]') -> Optional[str]:
    """Get the current branch, or a detached HEAD description.

    Args:
        repo_path: Path to the repository

    Returns:
        Branch name, ``(detached at <hash>)``, ``(detached)``, or None if
        the branch query itself failed
    """
    branch = try_git_output(repo_path, ["branch", "--show-current"])
    if branch is None:
        return None
    branch = branch.strip()
    if branch:
        return branch

    commit = try_git_output(repo_path, ["rev-parse", "--short", "HEAD"])
    if commit:
        return f"(detached at {commit.strip()})"
    return "(detached)"


def parse_porcelain(status_text: str) -> Tuple[int, int, int]:
    """Count changes in ``git status --porcelain`` output.

    Returns:
        (staged, modified, untracked)
    """
    staged = modified = untracked = 0
    for line in status_text.splitlines():
        if len(line) < 2:
            continue
        index_status, worktree_status = line[0], line[1]
        if index_status == '?' and worktree_status == '?':
            untracked += 1
            continue
        if index_status not in (' ', '?'):
            staged += 1
        if worktree_status not in (' ', '?'):
            modified += 1
    return staged, modified, untracked


def get_repo_status(
    workspace_dir: 'os.PathLike[str]',
    repo_path_relative: 'os.PathLike[str]'
) -> Optional[RepoStatus]:
    """Query branch and working tree state of one repository.

    Args:
        workspace_dir: Workspace root
        repo_path_relative: Repository path relative to the workspace root

    Returns:
        RepoStatus, or None if the path is not a repository or a query failed
    """
    abs_path = Path(workspace_dir) / repo_path_relative
    relative = Path(repo_path_relative).as_posix()

    if not (abs_path / ".git").exists():
        logger.debug(f"Skipping {relative}: not a git repository")
        return None

    try:
        current_branch = get_current_branch(abs_path)
        if current_branch is None:
            logger.warning(f"Skipping {relative}: could not determine current branch")
            return None
        status_text = git_output(abs_path, ["status", "--porcelain"])
    except NutError as e:
        logger.warning(f"Skipping {relative}: {e}")
        return None

    staged, modified, untracked = parse_porcelain(status_text)
    return RepoStatus(
        path_relative=relative,
        current_branch=current_branch,
        staged_count=staged,
        modified_count=modified,
        untracked_count=untracked
    )


def get_all_repos_status(workspace_dir: 'os.PathLike[str]') -> List[RepoStatus]:
    """Get the status of every repository in a workspace.

    All repositories are queried concurrently, one worker per repository.
    Repositories whose status cannot be determined are left out.

    Args:
        workspace_dir: Workspace root

    Returns:
        Status records sorted by repository path

    Raises:
        ReadDirectoryFailed: If the workspace root cannot be read
    """
    repos = find_repositories(workspace_dir)
    if not repos:
        return []

    with ThreadPoolExecutor(max_workers=len(repos)) as executor:
        results = list(executor.map(
            lambda repo: get_repo_status(workspace_dir, repo),
            repos
        ))

    statuses = [status for status in results if status is not None]
    statuses.sort(key=lambda s: Path(s.path_relative).parts)
    return statuses
