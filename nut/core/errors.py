"""Typed errors raised by the workspace orchestration engine.

Every error carries a stable ``code`` so the command-line front-end can
print a structured message naming the failed operation and its cause.
"""

import os
from typing import List, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .types import OperationResult


class NutError(Exception):
    """Base class for all nut errors."""

    code: str = "nut::error"
    help: Optional[str] = None


# Process errors

class GitCommandFailed(NutError):
    """The git executable could not be started."""

    code = "nut::git::command_failed"

    def __init__(self, command: str, source: OSError, executable: str = "git"):
        self.command = command
        self.source = source
        self.executable = executable
        super().__init__(f"Git command failed: {command}")

    @property
    def executable_missing(self) -> bool:
        if not isinstance(self.source, FileNotFoundError):
            return False
        # a missing working directory also surfaces as FileNotFoundError
        return self.source.filename in (None, self.executable)

    @property
    def help(self) -> Optional[str]:
        if self.executable_missing:
            return "Make sure git is installed and available on PATH"
        return None


class GitOperationFailed(NutError):
    """A git process ran but exited non-zero or was killed by a signal."""

    code = "nut::git::operation_failed"

    def __init__(
        self,
        operation: str,
        returncode: Optional[int] = None,
        signal: Optional[int] = None,
        stderr: str = ""
    ):
        self.operation = operation
        self.returncode = returncode
        self.signal = signal
        self.stderr = stderr
        message = f"Git operation failed: {operation}"
        if signal is not None:
            message += f" (terminated by signal {signal})"
        elif returncode is not None:
            message += f" (exit status {returncode})"
        super().__init__(message)


class CommandFailed(NutError):
    """A command run by apply failed inside one repository."""

    code = "nut::apply::command_failed"

    def __init__(self, repo: str, reason: str):
        self.repo = repo
        self.reason = reason
        super().__init__(f"Command execution failed in repository: {repo}: {reason}")


class CloneFailures(NutError):
    """One or more clone pipelines failed in a parallel clone run."""

    code = "nut::git::clone_failed"

    def __init__(
        self,
        failures: List['OperationResult'],
        results: Optional[List['OperationResult']] = None
    ):
        self.failures = failures
        self.results = results if results is not None else list(failures)
        names = ", ".join(f.repo for f in failures)
        super().__init__(f"{len(failures)} repositories failed to clone: {names}")


# Filesystem errors

class FileSystemError(NutError):
    """Base class for filesystem failures."""

    verb = "access"

    def __init__(self, path: Union[str, 'os.PathLike[str]'], source: OSError):
        self.path = path
        self.source = source
        super().__init__(f"Failed to {self.verb}: {os.fspath(path)}")


class CreateDirectoryFailed(FileSystemError):
    code = "nut::io::create_dir"
    verb = "create directory"


class ReadDirectoryFailed(FileSystemError):
    code = "nut::io::read_dir"
    verb = "read directory"


class ReadFileFailed(FileSystemError):
    code = "nut::io::read_file"
    verb = "read file"


class WriteFileFailed(FileSystemError):
    code = "nut::io::write_file"
    verb = "write file"


class InvalidUtf8(NutError):
    code = "nut::git::invalid_utf8"

    def __init__(self, what: str):
        self.what = what
        super().__init__(f"Invalid UTF-8 in {what}")


# Argument and precondition errors

class InvalidParallelCount(NutError):
    code = "nut::args::parallel_count"
    help = "Use a concurrency ceiling of at least 1"

    def __init__(self, value: int):
        self.value = value
        super().__init__(f"parallel_count must be greater than 0, got {value}")


class ApplyMissingCommand(NutError):
    code = "nut::apply::missing_command"
    help = "Use 'nut apply -- <command>' or 'nut apply --script <path>'"

    def __init__(self):
        super().__init__("No command provided for apply")


class ScriptPathInvalid(NutError):
    code = "nut::apply::script_path_invalid"
    help = "Make sure the script path is correct and accessible"

    def __init__(self, path: str, source: OSError):
        self.path = path
        self.source = source
        super().__init__(f"Invalid script path: {path}")


class ScriptNotExecutable(NutError):
    code = "nut::apply::script_not_executable"

    def __init__(self, path: str):
        self.path = path
        self.help = f"Make sure the script is executable (chmod +x {path})"
        super().__init__(f"Script is not executable: {path}")


class InvalidRepositoryName(NutError):
    code = "nut::args::invalid_repository_name"
    help = "Must look like 'owner/repo'"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid full repository name: '{name}'.")


class QueryAndPositionalArgsConflict(NutError):
    code = "nut::args::query_and_positional_conflict"
    help = "Use --query <query> OR positional arguments <owner>/<repo>, but not both at the same time"

    def __init__(self):
        super().__init__(
            "Please provide either a query using --query or positional repository "
            "arguments, but not both."
        )


class InvalidArgumentCombination(NutError):
    code = "nut::args::invalid_combination"
    help = "Use --query <query> to search for repositories or provide positional arguments <owner>/<repo>"

    def __init__(self):
        super().__init__(
            "Please provide either a query using --query or positional repository arguments."
        )


# Workspace errors

class InvalidWorkspaceId(NutError):
    code = "nut::workspace::invalid_id"
    help = "Workspace IDs must be valid ULIDs"

    def __init__(self, workspace_id: str):
        self.workspace_id = workspace_id
        super().__init__(f"Invalid workspace ID: {workspace_id}")


class NotInWorkspace(NutError):
    code = "nut::workspace::not_entered"
    help = (
        "Create a new workspace with 'nut create' or pass the workspace ID "
        "via the --workspace option."
    )

    def __init__(self, working_directory: str, data_directory: str):
        self.working_directory = working_directory
        self.data_directory = data_directory
        super().__init__(
            "Not in a workspace.\n"
            f"    Current working directory: {working_directory}\n"
            f"    Data directory: {data_directory}"
        )


class AlreadyInWorkspace(NutError):
    code = "nut::workspace::already_entered"
    help = "Leave the current workspace before creating a new one"

    def __init__(self):
        super().__init__("Already in workspace")


# Collaborator errors

class MissingGitHubToken(NutError):
    code = "nut::github::missing_token"

    def __init__(self, message: str):
        self.help = message
        super().__init__("GitHub token required")


class GitHubApiError(NutError):
    code = "nut::github::api_error"

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"GitHub API error ({status_code}): {message}")
