"""Workspaces: directories of checked-out repositories named by a ULID."""

import os
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ulid import ULID

from .errors import (
    CreateDirectoryFailed,
    InvalidUtf8,
    InvalidWorkspaceId,
    NotInWorkspace,
    ReadDirectoryFailed,
    ReadFileFailed,
    WriteFileFailed,
)

logger = logging.getLogger('nut')

# Per-workspace metadata lives here, next to the repositories
METADATA_DIR = ".nut"
DESCRIPTION_FILE = "description"


def parse_workspace_id(workspace_id: str) -> ULID:
    """Parse a workspace ID.

    Raises:
        InvalidWorkspaceId: If the string is not a valid ULID
    """
    try:
        return ULID.from_str(workspace_id)
    except ValueError as e:
        raise InvalidWorkspaceId(workspace_id) from e


@dataclass(frozen=True)
class Workspace:
    """A workspace directory and its ID."""
    id: ULID
    path: Path

    @property
    def created(self) -> datetime:
        return self.id.datetime

    @property
    def description_path(self) -> Path:
        return self.path / METADATA_DIR / DESCRIPTION_FILE

    def read_description(self) -> Optional[str]:
        """Read the workspace description, or None if it was never written.

        Raises:
            ReadFileFailed: If the description exists but cannot be read
            InvalidUtf8: If the description is not valid UTF-8
        """
        try:
            return self.description_path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise InvalidUtf8(f"workspace description {self.description_path}") from e
        except OSError as e:
            raise ReadFileFailed(self.description_path, e) from e

    @classmethod
    def at(cls, data_dir: 'os.PathLike[str]', workspace_id: ULID) -> 'Workspace':
        return cls(id=workspace_id, path=Path(data_dir) / str(workspace_id))

    @classmethod
    def resolve(
        cls,
        data_dir: 'os.PathLike[str]',
        workspace_id: Optional[str] = None,
        entered_id: Optional[str] = None,
        cwd: Optional['os.PathLike[str]'] = None
    ) -> 'Workspace':
        """Find the workspace to operate on.

        Tries, in order: the explicit workspace_id, the entered_id marker
        (taken from the environment by the caller), and the first path
        component of cwd below data_dir.

        Args:
            data_dir: Directory holding all workspaces
            workspace_id: Workspace ID given explicitly
            entered_id: ID of the currently entered workspace, if any
            cwd: Working directory to infer the workspace from

        Raises:
            InvalidWorkspaceId: If an explicit or entered ID is malformed
            NotInWorkspace: If no workspace could be determined
        """
        for candidate in (workspace_id, entered_id):
            if candidate:
                return cls.at(data_dir, parse_workspace_id(candidate))

        if cwd is not None:
            inferred = _workspace_id_from_path(Path(data_dir), Path(cwd))
            if inferred is not None:
                return cls.at(data_dir, inferred)

        raise NotInWorkspace(
            working_directory=os.fspath(cwd) if cwd is not None else "(unknown)",
            data_directory=os.fspath(data_dir)
        )


def _workspace_id_from_path(data_dir: Path, path: Path) -> Optional[ULID]:
    try:
        relative = path.resolve().relative_to(data_dir.resolve())
    except ValueError:
        return None
    if not relative.parts:
        return None
    try:
        return ULID.from_str(relative.parts[0])
    except ValueError:
        return None


def create_workspace(data_dir: 'os.PathLike[str]', description: str) -> Workspace:
    """Create a new, empty workspace with a description.

    Args:
        data_dir: Directory holding all workspaces
        description: Free-form description stored with the workspace

    Returns:
        The new workspace
    """
    workspace = Workspace.at(data_dir, ULID())
    metadata_dir = workspace.description_path.parent
    try:
        metadata_dir.mkdir(parents=True, exist_ok=False)
    except OSError as e:
        raise CreateDirectoryFailed(metadata_dir, e) from e

    try:
        workspace.description_path.write_text(description, encoding='utf-8')
    except OSError as e:
        raise WriteFileFailed(workspace.description_path, e) from e

    logger.info(f"Created workspace {workspace.id} at {workspace.path}")
    return workspace


def list_workspaces(data_dir: 'os.PathLike[str]') -> List[Workspace]:
    """List all workspaces, most recently created first.

    Directories whose names are not ULIDs are ignored.
    """
    data_dir = Path(data_dir)
    try:
        with os.scandir(data_dir) as it:
            entries = list(it)
    except FileNotFoundError:
        return []
    except OSError as e:
        raise ReadDirectoryFailed(data_dir, e) from e

    workspaces = []
    for entry in entries:
        if not entry.is_dir():
            continue
        try:
            workspace_id = ULID.from_str(entry.name)
        except ValueError:
            continue
        workspaces.append(Workspace(id=workspace_id, path=Path(entry.path)))

    workspaces.sort(key=lambda w: str(w.id), reverse=True)
    return workspaces
