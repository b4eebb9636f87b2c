"""Clone repositories into a workspace through a shared mirror cache.

Each repository is mirrored once per host under the cache directory
(``<cache>/<host>/<owner>/<repo>``). Workspace checkouts are local clones
of that mirror with ``origin`` pointed back at the real remote, so N
workspaces cloning the same repository pay the network cost once.
"""

import os
import logging
from pathlib import Path
from typing import Callable, Optional

from filelock import FileLock

from .command import run_git, git_output, try_git_output
from .protocol import DEFAULT_HOST, GitProtocol, get_git_protocol_with_fallback
from ..core.errors import CreateDirectoryFailed, GitOperationFailed, InvalidUtf8
from ..core.types import CloneInfo, OperationResult, Status

logger = logging.getLogger('nut')


def _run_step(working_dir: Path, args, operation: str) -> None:
    """Run a git step, naming the pipeline step if it fails."""
    try:
        run_git(working_dir, args)
    except GitOperationFailed as e:
        raise GitOperationFailed(
            operation,
            returncode=e.returncode,
            signal=e.signal,
            stderr=e.stderr
        ) from e


def _make_dirs(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CreateDirectoryFailed(path, e) from e


def _utf8_path(path: Path) -> str:
    value = os.fspath(path)
    try:
        value.encode('utf-8')
    except UnicodeEncodeError as e:
        raise InvalidUtf8(f"path {value!r}") from e
    return value


def update_workspace_repo(
    workspace_repo_dir: Path,
    default_branch: str,
    latest_commit: str
) -> Optional[str]:
    """Bring an existing workspace checkout up to date if it is stale.

    The working tree is only fast-forwarded when the default branch is
    checked out; on any other branch the remote is fetched and the
    working tree is left alone.

    Args:
        workspace_repo_dir: Path to the workspace checkout
        default_branch: Remote default branch
        latest_commit: Latest commit of the remote default branch

    Returns:
        "fetched" or "pulled", or None if the checkout was already current

    Raises:
        GitOperationFailed: If the fetch or pull failed
    """
    workspace_commit = try_git_output(workspace_repo_dir, ["rev-parse", f"origin/{default_branch}"])
    if workspace_commit == latest_commit:
        return None

    current_branch = git_output(workspace_repo_dir, ["branch", "--show-current"])
    if current_branch != default_branch:
        logger.info(f"Fetching origin in {workspace_repo_dir} (on branch '{current_branch or 'detached'}')")
        _run_step(workspace_repo_dir, ["fetch", "origin"], "fetch origin in workspace repository")
        return "fetched"

    logger.info(f"Pulling latest changes in {workspace_repo_dir}")
    _run_step(workspace_repo_dir, ["pull"], "pull in workspace repository")
    return "pulled"


def get_cache_commit(cache_repo_dir: Path, default_branch: str) -> Optional[str]:
    """Get the commit the mirror cache has for the default branch.

    Mirrors keep the remote's branches under refs/heads, so
    ``origin/<branch>`` usually does not resolve there.
    """
    for ref in (f"origin/{default_branch}", f"refs/heads/{default_branch}"):
        commit = try_git_output(cache_repo_dir, ["rev-parse", ref])
        if commit:
            return commit
    return None


class ClonePipeline:
    """Clone or refresh repositories in a workspace using a mirror cache."""

    def __init__(
        self,
        cache_dir: 'os.PathLike[str]',
        host: str = DEFAULT_HOST,
        clone_url_getter: Optional[Callable[[str], str]] = None
    ):
        """Initialize clone pipeline.

        Args:
            cache_dir: Root of the mirror cache, shared by all workspaces
            host: Git host the repositories live on
            clone_url_getter: Optional callable mapping a full name to a
                clone URL; defaults to the gh protocol preference
        """
        self.cache_dir = Path(cache_dir)
        self.host = host
        self.clone_url_getter = clone_url_getter
        self._protocol: Optional[GitProtocol] = None

    @property
    def host_cache_dir(self) -> Path:
        return self.cache_dir / self.host

    def cache_repo_path(self, full_name: str) -> Path:
        return self.host_cache_dir / full_name

    def cache_lock(self, full_name: str) -> FileLock:
        """Lock file next to a mirror, guarding every use of that mirror."""
        cache_repo_dir = self.cache_repo_path(full_name)
        lock_path = cache_repo_dir.parent / f"{cache_repo_dir.name}.lock"
        _make_dirs(lock_path.parent)
        return FileLock(os.fspath(lock_path))

    def get_clone_url(self, full_name: str) -> str:
        """Get the real remote URL for a repository."""
        if self.clone_url_getter:
            return self.clone_url_getter(full_name)
        if self._protocol is None:
            self._protocol = get_git_protocol_with_fallback(self.host)
        return self._protocol.to_clone_url(self.host, full_name)

    def ensure_cache_repo(
        self,
        full_name: str,
        clone_url: str,
        default_branch: str,
        latest_commit: str
    ) -> Optional[str]:
        """Create the mirror cache, or refresh it if it is stale.

        Holds a lock file next to the mirror while it is created or
        updated, so concurrent runs never clone the same mirror twice.

        Returns:
            "mirrored" or "refreshed", or None if the cache was current
        """
        cache_repo_dir = self.cache_repo_path(full_name)

        with self.cache_lock(full_name):
            if cache_repo_dir.exists():
                if get_cache_commit(cache_repo_dir, default_branch) == latest_commit:
                    return None
                logger.info(f"Refreshing cache for {full_name}")
                _run_step(cache_repo_dir, ["remote", "update", "--prune"], "update cache repository")
                return "refreshed"

            logger.info(f"Creating cache mirror for {full_name}")
            _run_step(
                self.host_cache_dir,
                ["clone", clone_url, full_name, "--mirror", "--bare"],
                "clone cache repository"
            )
            return "mirrored"

    def clone_from_cache(self, workspace_dir: Path, full_name: str, clone_url: str) -> None:
        """Clone the mirror into the workspace and point origin at the remote.

        The mirror lock is held during the local clone so a concurrent
        refresh cannot prune refs out from under it.
        """
        cache_repo_path = _utf8_path(self.cache_repo_path(full_name))
        with self.cache_lock(full_name):
            _run_step(
                workspace_dir,
                ["clone", "--local", cache_repo_path, full_name],
                "clone workspace repository"
            )
        _run_step(
            workspace_dir / full_name,
            ["remote", "set-url", "origin", clone_url],
            "set remote url in workspace repository"
        )

    def clone(self, workspace_dir: 'os.PathLike[str]', info: CloneInfo) -> OperationResult:
        """Clone one repository into a workspace, or refresh its checkout.

        Args:
            workspace_dir: Workspace root
            info: Repository metadata

        Returns:
            OperationResult; SKIPPED when nothing needed to change

        Raises:
            NutError: If any git step or cache directory creation failed
        """
        workspace_dir = Path(workspace_dir)
        full_name = info.full_name
        clone_url = self.get_clone_url(full_name)
        workspace_repo_dir = workspace_dir / full_name

        if info.has_commit_info:
            if workspace_repo_dir.exists():
                action = update_workspace_repo(
                    workspace_repo_dir,
                    info.default_branch,
                    info.latest_commit
                )
                if action is None:
                    return OperationResult(Status.SKIPPED, "Already up to date", full_name)
                if action == "fetched":
                    return OperationResult(Status.SUCCESS, "Fetched origin", full_name)
                return OperationResult(Status.SUCCESS, "Pulled latest changes", full_name)

            self.ensure_cache_repo(
                full_name,
                clone_url,
                info.default_branch,
                info.latest_commit
            )

        # Can already exist, e.g. for an empty upstream repository
        if workspace_repo_dir.exists():
            return OperationResult(Status.SKIPPED, "Already present in workspace", full_name)

        if self.cache_repo_path(full_name).exists():
            logger.info(f"Cloning {full_name} from cache")
            self.clone_from_cache(workspace_dir, full_name, clone_url)
        else:
            logger.info(f"Cloning {full_name} from {clone_url}")
            _run_step(workspace_dir, ["clone", clone_url, full_name], "clone workspace repository")

        return OperationResult(Status.SUCCESS, "Cloned successfully", full_name)
