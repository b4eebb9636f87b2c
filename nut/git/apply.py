"""Run a command or script in every repository of a workspace."""

import os
import sys
import stat
import logging
import subprocess
from pathlib import Path
from typing import List, Sequence

from .repository import find_repositories
from ..core.errors import (
    ApplyMissingCommand,
    CommandFailed,
    ScriptNotExecutable,
    ScriptPathInvalid,
)
from ..core.types import OperationResult, Status

logger = logging.getLogger('nut')


def _failure_reason(returncode: int) -> str:
    if returncode < 0:
        return f"Command terminated by signal {-returncode}"
    return f"Command exited with status code {returncode}"


def apply_command(workspace_dir: 'os.PathLike[str]', command: Sequence[str]) -> List[OperationResult]:
    """Execute a command in each repository without using a shell.

    Repositories are processed one at a time in sorted order. Each run is
    framed by a ``==> <repo> <==`` header and a blank line on stdout. A
    command failing in one repository is reported and the loop moves on.

    Args:
        workspace_dir: Workspace root
        command: Program name followed by its arguments

    Returns:
        One result per repository

    Raises:
        ApplyMissingCommand: If command is empty
        CommandFailed: If the program could not be started
    """
    if not command:
        raise ApplyMissingCommand()

    repos = find_repositories(workspace_dir)
    if not repos:
        print("No repositories found in workspace")
        return []

    results = []
    for repo_path_relative in repos:
        repo = repo_path_relative.as_posix()
        print(f"==> {repo} <==", flush=True)

        try:
            completed = subprocess.run(
                list(command),
                cwd=Path(workspace_dir) / repo_path_relative,
                check=False
            )
        except OSError as e:
            raise CommandFailed(repo, str(e)) from e

        if completed.returncode == 0:
            results.append(OperationResult(Status.SUCCESS, "Command succeeded", repo))
        else:
            error = CommandFailed(repo, _failure_reason(completed.returncode))
            logger.debug(str(error))
            print(file=sys.stderr)
            print(f"Error [{error.code}]: {error}", file=sys.stderr, flush=True)
            results.append(OperationResult(Status.FAILED, error.reason, repo, error=error))
        print(flush=True)

    return results


def check_script(script_path: 'os.PathLike[str]') -> Path:
    """Resolve a script path and check that it can be executed.

    The permission check only applies on platforms with executable bits.

    Returns:
        Absolute path to the script

    Raises:
        ScriptPathInvalid: If the script does not exist or cannot be read
        ScriptNotExecutable: If no executable bit is set
    """
    display = os.fspath(script_path)
    try:
        absolute = Path(script_path).resolve(strict=True)
        mode = absolute.stat().st_mode
    except OSError as e:
        raise ScriptPathInvalid(display, e) from e

    if os.name == 'posix' and not mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH):
        raise ScriptNotExecutable(display)
    return absolute


def apply_script(
    workspace_dir: 'os.PathLike[str]',
    script_path: 'os.PathLike[str]',
    args: Sequence[str] = ()
) -> List[OperationResult]:
    """Run an executable script in each repository of a workspace.

    The script is checked before any repository is touched.
    """
    absolute = check_script(script_path)
    return apply_command(workspace_dir, [os.fspath(absolute), *args])
