"""Tests for nut.git.clone: the cache-tiered clone pipeline."""

import threading
from pathlib import Path
from typing import List

import pytest
from filelock import FileLock, Timeout

from nut.core.errors import GitOperationFailed
from nut.core.types import CloneInfo, Status
from nut.git import clone as clone_module
from nut.git.clone import ClonePipeline, get_cache_commit
from nut.git.protocol import GitProtocol

FULL_NAME = "octo/hello"


class Upstream:
    """A local repository standing in for the real remote."""

    def __init__(self, path: Path, git):
        self.path = path
        self.git = git

    @property
    def url(self) -> str:
        return str(self.path)

    def head(self) -> str:
        return self.git(self.path, "rev-parse", "HEAD")

    def commit(self, name: str, content: str) -> str:
        (self.path / name).write_text(content)
        self.git(self.path, "add", name)
        self.git(self.path, "commit", "--quiet", "-m", f"update {name}")
        return self.head()

    def info(self) -> CloneInfo:
        return CloneInfo(full_name=FULL_NAME, latest_commit=self.head(), default_branch="main")


@pytest.fixture
def upstream(tmp_path: Path, make_repo, git) -> Upstream:
    return Upstream(make_repo(tmp_path / "remote" / FULL_NAME), git)


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def pipeline(cache_dir: Path, upstream: Upstream) -> ClonePipeline:
    return ClonePipeline(cache_dir, clone_url_getter=lambda full_name: upstream.url)


@pytest.fixture
def git_calls(monkeypatch: pytest.MonkeyPatch) -> List[List[str]]:
    """Record every git step the pipeline runs."""
    calls: List[List[str]] = []
    real_run_git = clone_module.run_git

    def recording_run_git(working_dir, args):
        calls.append(list(args))
        real_run_git(working_dir, args)

    monkeypatch.setattr(clone_module, "run_git", recording_run_git)
    return calls


def _verbs(calls: List[List[str]]) -> List[str]:
    return [" ".join(args[:2]) if args[0] == "remote" else args[0] for args in calls]


class TestFreshClone:
    def test_clones_through_cache(self, pipeline, upstream, workspace, cache_dir, git):
        result = pipeline.clone(workspace, upstream.info())

        assert result.status == Status.SUCCESS
        assert result.repo == FULL_NAME
        checkout = workspace / FULL_NAME
        assert git(checkout, "rev-parse", "HEAD") == upstream.head()
        assert (cache_dir / "github.com" / FULL_NAME).is_dir()
        assert git(cache_dir / "github.com" / FULL_NAME, "rev-parse", "--is-bare-repository") == "true"

    def test_origin_points_at_real_remote(self, pipeline, upstream, workspace, cache_dir, git):
        pipeline.clone(workspace, upstream.info())

        origin = git(workspace / FULL_NAME, "remote", "get-url", "origin")
        assert origin == upstream.url

    def test_second_run_is_a_no_op(self, pipeline, upstream, workspace, git_calls):
        pipeline.clone(workspace, upstream.info())
        git_calls.clear()

        result = pipeline.clone(workspace, upstream.info())

        assert result.status == Status.SKIPPED
        assert git_calls == []


class TestCacheReuse:
    def test_second_workspace_clones_locally(self, pipeline, upstream, tmp_path, git_calls, git):
        first = tmp_path / "ws1"
        second = tmp_path / "ws2"
        first.mkdir()
        second.mkdir()
        pipeline.clone(first, upstream.info())
        git_calls.clear()

        pipeline.clone(second, upstream.info())

        assert _verbs(git_calls) == ["clone", "remote set-url"]
        assert "--local" in git_calls[0]
        assert git(second / FULL_NAME, "remote", "get-url", "origin") == upstream.url

    def test_stale_cache_is_refreshed(self, pipeline, upstream, tmp_path, git_calls, git):
        first = tmp_path / "ws1"
        second = tmp_path / "ws2"
        first.mkdir()
        second.mkdir()
        pipeline.clone(first, upstream.info())
        new_head = upstream.commit("CHANGELOG.md", "v2\n")
        git_calls.clear()

        pipeline.clone(second, upstream.info())

        assert ["remote", "update", "--prune"] in git_calls
        assert git(second / FULL_NAME, "rev-parse", "HEAD") == new_head

    def test_cache_commit_resolves_mirror_branch(self, pipeline, upstream, workspace, cache_dir):
        pipeline.clone(workspace, upstream.info())
        mirror = cache_dir / "github.com" / FULL_NAME
        assert get_cache_commit(mirror, "main") == upstream.head()
        assert get_cache_commit(mirror, "no-such-branch") is None


class TestExistingCheckout:
    def test_default_branch_is_pulled(self, pipeline, upstream, workspace, git):
        pipeline.clone(workspace, upstream.info())
        new_head = upstream.commit("CHANGELOG.md", "v2\n")

        result = pipeline.clone(workspace, upstream.info())

        assert result.status == Status.SUCCESS
        assert result.message == "Pulled latest changes"
        assert git(workspace / FULL_NAME, "rev-parse", "HEAD") == new_head

    def test_feature_branch_is_only_fetched(self, pipeline, upstream, workspace, git):
        pipeline.clone(workspace, upstream.info())
        checkout = workspace / FULL_NAME
        git(checkout, "checkout", "--quiet", "-b", "feature")
        old_head = git(checkout, "rev-parse", "HEAD")
        new_head = upstream.commit("CHANGELOG.md", "v2\n")

        result = pipeline.clone(workspace, upstream.info())

        assert result.message == "Fetched origin"
        assert git(checkout, "rev-parse", "HEAD") == old_head
        assert git(checkout, "rev-parse", "origin/main") == new_head
        assert git(checkout, "branch", "--show-current") == "feature"

    def test_failed_pull_names_the_step(self, pipeline, upstream, workspace, tmp_path, git):
        pipeline.clone(workspace, upstream.info())
        checkout = workspace / FULL_NAME
        git(checkout, "remote", "set-url", "origin", str(tmp_path / "gone"))
        stale = CloneInfo(full_name=FULL_NAME, latest_commit="0" * 40, default_branch="main")

        with pytest.raises(GitOperationFailed) as exc_info:
            pipeline.clone(workspace, stale)
        assert "pull" in str(exc_info.value)


class TestEmptyUpstream:
    def test_clones_directly_without_cache(self, tmp_path, workspace, cache_dir, git):
        remote = tmp_path / "remote" / "octo" / "empty"
        remote.mkdir(parents=True)
        git(remote, "init", "--quiet", "--bare")
        pipeline = ClonePipeline(cache_dir, clone_url_getter=lambda full_name: str(remote))

        result = pipeline.clone(workspace, CloneInfo(full_name="octo/empty"))

        assert result.status == Status.SUCCESS
        assert not (cache_dir / "github.com" / "octo" / "empty").exists()
        assert git(workspace / "octo" / "empty", "remote", "get-url", "origin") == str(remote)

    def test_existing_checkout_is_left_alone(self, tmp_path, workspace, cache_dir, git_calls):
        (workspace / "octo" / "empty").mkdir(parents=True)
        pipeline = ClonePipeline(cache_dir, clone_url_getter=lambda full_name: "unused")

        result = pipeline.clone(workspace, CloneInfo(full_name="octo/empty"))

        assert result.status == Status.SKIPPED
        assert git_calls == []


class TestCloneUrl:
    def test_uses_protocol_preference(self, cache_dir, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(
            clone_module, "get_git_protocol_with_fallback", lambda host: GitProtocol.SSH
        )
        pipeline = ClonePipeline(cache_dir, host="github.com")
        assert pipeline.get_clone_url(FULL_NAME) == "git@github.com:octo/hello.git"

    def test_cache_layout_is_keyed_by_host(self, cache_dir):
        pipeline = ClonePipeline(cache_dir, host="git.example.com")
        assert pipeline.cache_repo_path(FULL_NAME) == cache_dir / "git.example.com" / "octo" / "hello"


class TestMirrorLock:
    def test_concurrent_clones_share_one_mirror(self, pipeline, upstream, tmp_path, git_calls, git):
        workspaces = [tmp_path / f"ws{i}" for i in range(6)]
        for workspace_dir in workspaces:
            workspace_dir.mkdir()
        info = upstream.info()
        barrier = threading.Barrier(len(workspaces))
        errors = []

        def clone_into(workspace_dir):
            barrier.wait()
            try:
                pipeline.clone(workspace_dir, info)
            except Exception as e:  # collected for the assertion below
                errors.append(e)

        threads = [threading.Thread(target=clone_into, args=(w,)) for w in workspaces]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert sum(1 for args in git_calls if "--mirror" in args) == 1
        for workspace_dir in workspaces:
            assert git(workspace_dir / FULL_NAME, "remote", "get-url", "origin") == upstream.url
            assert git(workspace_dir / FULL_NAME, "rev-parse", "HEAD") == upstream.head()

    def test_local_clone_holds_mirror_lock(
        self, pipeline, upstream, workspace, cache_dir, monkeypatch: pytest.MonkeyPatch
    ):
        lock_path = cache_dir / "github.com" / "octo" / "hello.lock"
        held_during = {}
        real_run_git = clone_module.run_git

        def checking_run_git(working_dir, args):
            if args[0] == "clone" and "--local" in args:
                try:
                    with FileLock(str(lock_path), timeout=0):
                        held_during["clone"] = False
                except Timeout:
                    held_during["clone"] = True
            real_run_git(working_dir, args)

        monkeypatch.setattr(clone_module, "run_git", checking_run_git)
        pipeline.clone(workspace, upstream.info())

        assert held_during == {"clone": True}
