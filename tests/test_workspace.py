"""Tests for nut.core.workspace."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from ulid import ULID

from nut.core.errors import InvalidUtf8, InvalidWorkspaceId, NotInWorkspace, ReadFileFailed
from nut.core.workspace import (
    Workspace,
    create_workspace,
    list_workspaces,
    parse_workspace_id,
)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "data"
    path.mkdir()
    return path


class TestCreateWorkspace:
    def test_creates_directory_and_description(self, data_dir: Path):
        workspace = create_workspace(data_dir, "rename the logger")

        assert workspace.path == data_dir / str(workspace.id)
        assert workspace.path.is_dir()
        assert workspace.read_description() == "rename the logger"

    def test_ids_are_unique(self, data_dir: Path):
        first = create_workspace(data_dir, "one")
        second = create_workspace(data_dir, "two")
        assert first.id != second.id


class TestListWorkspaces:
    def test_missing_data_dir(self, tmp_path: Path):
        assert list_workspaces(tmp_path / "missing") == []

    def test_newest_first(self, data_dir: Path):
        now = datetime.now(timezone.utc)
        old = ULID.from_datetime(now - timedelta(days=2))
        new = ULID.from_datetime(now)
        for workspace_id in (old, new):
            (data_dir / str(workspace_id)).mkdir()

        assert [w.id for w in list_workspaces(data_dir)] == [new, old]

    def test_ignores_foreign_entries(self, data_dir: Path):
        workspace = create_workspace(data_dir, "real")
        (data_dir / "not-a-workspace").mkdir()
        (data_dir / str(ULID())).write_text("a file, not a directory")

        assert [w.id for w in list_workspaces(data_dir)] == [workspace.id]

    def test_missing_description(self, data_dir: Path):
        (data_dir / str(ULID())).mkdir()
        [workspace] = list_workspaces(data_dir)
        assert workspace.read_description() is None

    def test_unreadable_description(self, data_dir: Path):
        workspace = create_workspace(data_dir, "replaced")
        workspace.description_path.unlink()
        workspace.description_path.mkdir()

        with pytest.raises(ReadFileFailed) as exc_info:
            workspace.read_description()
        assert exc_info.value.code == "nut::io::read_file"

    def test_description_not_utf8(self, data_dir: Path):
        workspace = create_workspace(data_dir, "replaced")
        workspace.description_path.write_bytes(b"\xff\xfe broken")

        with pytest.raises(InvalidUtf8):
            workspace.read_description()


class TestResolveWorkspace:
    def test_explicit_id_wins(self, data_dir: Path):
        explicit, entered = ULID(), ULID()
        workspace = Workspace.resolve(data_dir, workspace_id=str(explicit), entered_id=str(entered))
        assert workspace.id == explicit
        assert workspace.path == data_dir / str(explicit)

    def test_entered_id(self, data_dir: Path):
        entered = ULID()
        assert Workspace.resolve(data_dir, entered_id=str(entered)).id == entered

    def test_inferred_from_working_directory(self, data_dir: Path):
        workspace = create_workspace(data_dir, "nested")
        cwd = workspace.path / "octo" / "hello"
        cwd.mkdir(parents=True)

        assert Workspace.resolve(data_dir, cwd=cwd).id == workspace.id

    def test_outside_data_dir(self, data_dir: Path, tmp_path: Path):
        with pytest.raises(NotInWorkspace) as exc_info:
            Workspace.resolve(data_dir, cwd=tmp_path)
        assert str(tmp_path) in str(exc_info.value)

    def test_data_dir_itself_is_not_a_workspace(self, data_dir: Path):
        with pytest.raises(NotInWorkspace):
            Workspace.resolve(data_dir, cwd=data_dir)

    def test_invalid_id(self, data_dir: Path):
        with pytest.raises(InvalidWorkspaceId):
            Workspace.resolve(data_dir, workspace_id="not-a-ulid")

    def test_parse_round_trips_string_form(self):
        workspace_id = ULID()
        assert parse_workspace_id(str(workspace_id)) == workspace_id
