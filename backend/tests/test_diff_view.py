"""Tests for diff side materialization."""

import pytest
from support import GitRepo

from git_outgoing.core.diff_view import DiffView
from git_outgoing.core.errors import InvalidRangeError, NoUpstreamError
from git_outgoing.core.push_state import PushStateTracker
from git_outgoing.services.git_client import GitClient


def make_diffs(repo: GitRepo) -> tuple[DiffView, PushStateTracker]:
    git = GitClient(repo.path)
    tracker = PushStateTracker(git)
    return DiffView(git, tracker), tracker


class TestFileDiff:
    """Tests for DiffView.file_diff."""

    @pytest.mark.asyncio
    async def test_remote_left_local_right(self, git_repo: GitRepo) -> None:
        """The left side is the pushed content, the right side the branch tip."""
        git_repo.commit("edit", {"README.md": "hello again\n"})
        diffs, _ = make_diffs(git_repo)

        sides = await diffs.file_diff("README.md")

        assert sides.title == "README.md (main)"
        assert sides.left_ref == "origin/main"
        assert sides.right_ref == "main"
        assert sides.left_content == "hello\n"
        assert sides.right_content == "hello again\n"

    @pytest.mark.asyncio
    async def test_added_file_has_empty_left(self, git_repo: GitRepo) -> None:
        """A file that does not exist upstream diffs against empty content."""
        git_repo.commit("add", {"new.txt": "new\n"})
        diffs, _ = make_diffs(git_repo)

        sides = await diffs.file_diff("new.txt")

        assert sides.left_content == ""
        assert sides.right_content == "new\n"

    @pytest.mark.asyncio
    async def test_falls_back_to_marker(self, git_repo: GitRepo) -> None:
        """Without an upstream, the push marker is the left side."""
        pushed = git_repo.run("rev-parse", "HEAD")
        diffs, tracker = make_diffs(git_repo)
        await tracker.refresh()
        git_repo.run("branch", "--unset-upstream")
        git_repo.run("update-ref", "-d", "refs/remotes/origin/main")
        git_repo.commit("edit", {"README.md": "local\n"})

        sides = await diffs.file_diff("README.md")

        assert sides.left_ref == pushed
        assert sides.left_content == "hello\n"
        assert sides.right_content == "local\n"

    @pytest.mark.asyncio
    async def test_no_upstream_no_marker(self, git_repo: GitRepo) -> None:
        """With neither an upstream nor a marker the diff cannot be built."""
        git_repo.run("checkout", "-q", "-b", "feature")
        diffs, _ = make_diffs(git_repo)
        with pytest.raises(NoUpstreamError):
            await diffs.file_diff("README.md")


class TestCommitDiff:
    """Tests for DiffView.commit_diff."""

    @pytest.mark.asyncio
    async def test_parent_left_commit_right(self, git_repo: GitRepo) -> None:
        """A commit is compared with its parent."""
        commit_id = git_repo.commit("edit", {"README.md": "changed\n"})
        git_repo.commit("later", {"README.md": "later\n"})
        diffs, _ = make_diffs(git_repo)

        sides = await diffs.commit_diff(commit_id, "README.md")

        assert sides.title == f"README.md ({commit_id[:7]})"
        assert sides.left_content == "hello\n"
        assert sides.right_content == "changed\n"

    @pytest.mark.asyncio
    async def test_root_commit_has_empty_left(self, git_repo: GitRepo) -> None:
        """The root commit has no parent, so its left side is empty."""
        root = git_repo.run("rev-list", "--max-parents=0", "HEAD")
        diffs, _ = make_diffs(git_repo)

        sides = await diffs.commit_diff(root, "README.md")

        assert sides.left_content == ""
        assert sides.right_content == "hello\n"

    @pytest.mark.asyncio
    async def test_unknown_commit(self, git_repo: GitRepo) -> None:
        """An id that does not resolve is an invalid range."""
        diffs, _ = make_diffs(git_repo)
        with pytest.raises(InvalidRangeError):
            await diffs.commit_diff("deadbeef" * 5, "README.md")
