"""Run the git executable and translate its failures into typed errors.

Every other git component goes through this module. Each call spawns
exactly one process and never retries; retry policy belongs to callers.
"""

import os
import logging
import subprocess
from typing import Optional, Sequence, Union

from ..core.errors import GitCommandFailed, GitOperationFailed, InvalidUtf8

logger = logging.getLogger('nut')

GIT_EXECUTABLE = "git"

PathArg = Union[str, 'os.PathLike[str]']


def describe(args: Sequence[str]) -> str:
    """Render a git invocation for log and error messages."""
    return " ".join([GIT_EXECUTABLE, *args])


def _spawn(working_dir: PathArg, args: Sequence[str]) -> subprocess.CompletedProcess:
    command = describe(args)
    logger.debug(f"Running '{command}' in {os.fspath(working_dir)}")
    try:
        return subprocess.run(
            [GIT_EXECUTABLE, *args],
            cwd=working_dir,
            capture_output=True,
            check=False
        )
    except OSError as e:
        raise GitCommandFailed(command, e, executable=GIT_EXECUTABLE) from e


def _check(result: subprocess.CompletedProcess, args: Sequence[str]) -> None:
    if result.returncode == 0:
        return
    stderr = result.stderr.decode('utf-8', errors='replace').strip()
    if result.returncode < 0:
        error = GitOperationFailed(describe(args), signal=-result.returncode, stderr=stderr)
    else:
        error = GitOperationFailed(describe(args), returncode=result.returncode, stderr=stderr)
    logger.debug(f"{error}: {stderr}")
    raise error


def _decode(output: bytes, args: Sequence[str]) -> str:
    try:
        return output.decode('utf-8').rstrip()
    except UnicodeDecodeError as e:
        raise InvalidUtf8(f"output of '{describe(args)}'") from e


def run_git(working_dir: PathArg, args: Sequence[str]) -> None:
    """Run git and require it to succeed.

    Args:
        working_dir: Directory to run git in
        args: Arguments passed to git

    Raises:
        GitCommandFailed: If git could not be started
        GitOperationFailed: If git exited non-zero or was killed by a signal
    """
    _check(_spawn(working_dir, args), args)


def git_output(working_dir: PathArg, args: Sequence[str]) -> str:
    """Run git and return its standard output without trailing whitespace.

    Raises:
        GitCommandFailed: If git could not be started
        GitOperationFailed: If git exited non-zero or was killed by a signal
        InvalidUtf8: If the output is not valid UTF-8
    """
    result = _spawn(working_dir, args)
    _check(result, args)
    return _decode(result.stdout, args)


def try_git_output(working_dir: PathArg, args: Sequence[str]) -> Optional[str]:
    """Like git_output, but return None when git ran and failed.

    Failing to start git at all still raises GitCommandFailed.
    """
    try:
        return git_output(working_dir, args)
    except GitOperationFailed:
        return None
