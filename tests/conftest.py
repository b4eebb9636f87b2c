"""Shared fixtures: isolate git and nut from the user's environment."""

import os
import shutil
import logging
import subprocess
from pathlib import Path

import pytest


def run_git(cwd, *args) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True
    )
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    home = tmp_path / "home"
    home.mkdir()
    (home / ".gitconfig").write_text(
        "[init]\n\tdefaultBranch = main\n"
        "[pull]\n\trebase = false\n"
        "[advice]\n\tdetachedHead = false\n"
    )
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(home / ".gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    monkeypatch.setenv("GIT_TERMINAL_PROMPT", "0")
    for name in ("AUTHOR", "COMMITTER"):
        monkeypatch.setenv(f"GIT_{name}_NAME", "Test User")
        monkeypatch.setenv(f"GIT_{name}_EMAIL", "test@example.com")
    for var in list(os.environ):
        if var.startswith("NUT_") or var in ("GITHUB_TOKEN", "GITHUB_API_URL"):
            monkeypatch.delenv(var, raising=False)

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def git():
    """Run git in a directory, skipping the test when git is unavailable."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    return run_git


@pytest.fixture
def make_repo(git):
    """Create a repository with one commit on main."""

    def _make(path: Path, files=None) -> Path:
        path.mkdir(parents=True, exist_ok=True)
        git(path, "init", "--quiet")
        git(path, "symbolic-ref", "HEAD", "refs/heads/main")
        for name, content in (files or {"README.md": "hello\n"}).items():
            (path / name).write_text(content)
        git(path, "add", "--all")
        git(path, "commit", "--quiet", "-m", "initial commit")
        return path

    return _make


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "workspace"
    path.mkdir()
    return path


def make_fake_repo(root: Path, relative: str) -> Path:
    """Create a directory that looks like a repository to the locator."""
    path = root / relative
    (path / ".git").mkdir(parents=True)
    return path


@pytest.fixture
def fake_repo():
    return make_fake_repo
