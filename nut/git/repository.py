"""Discover the git repositories checked out in a workspace."""

import os
import logging
from pathlib import Path
from typing import List

from ..core.errors import ReadDirectoryFailed

logger = logging.getLogger('nut')

# Deep enough for owner/repo layouts plus one nesting level, without
# descending into large checked-out trees.
MAX_REPOSITORY_SEARCH_DEPTH = 3


def repo_exists(repo_path: 'os.PathLike[str]') -> bool:
    """Check if a path exists and is a directory."""
    return os.path.isdir(repo_path)


def _read_dir(directory: Path) -> List[os.DirEntry]:
    with os.scandir(directory) as entries:
        return list(entries)


def find_repositories(workspace_dir: 'os.PathLike[str]') -> List[Path]:
    """Find all git repositories in a workspace.

    Looks for directories named ``.git`` at most three levels below the
    workspace root. The parent of each match, relative to the root, is a
    repository path. Sub-directories that cannot be read are skipped.

    Args:
        workspace_dir: Workspace root directory

    Returns:
        Repository paths relative to the root, sorted component-wise

    Raises:
        ReadDirectoryFailed: If the workspace root itself cannot be read
    """
    root = Path(workspace_dir)
    try:
        top_level = _read_dir(root)
    except OSError as e:
        raise ReadDirectoryFailed(root, e) from e

    repos: List[Path] = []
    pending = [(entry, 1) for entry in top_level]
    while pending:
        entry, depth = pending.pop()
        if not entry.is_dir(follow_symlinks=False):
            continue

        path = Path(entry.path)
        if entry.name == ".git":
            repos.append(path.parent.relative_to(root))
            continue

        if depth >= MAX_REPOSITORY_SEARCH_DEPTH:
            continue

        try:
            children = _read_dir(path)
        except OSError as e:
            logger.debug(f"Skipping unreadable directory {path}: {e}")
            continue
        pending.extend((child, depth + 1) for child in children)

    repos.sort(key=lambda p: p.parts)
    return repos
