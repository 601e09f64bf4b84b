"""Test doubles: an in-memory git client and a real repository builder."""

import subprocess
from collections.abc import Iterator
from pathlib import Path

from git_outgoing.core.errors import (
    CommitNotFoundError,
    DivergenceUnavailableError,
    GitError,
    InvalidRangeError,
    NoUpstreamError,
)
from git_outgoing.models.git import Commit, FileChange, TrackedFile
from git_outgoing.services.git_client import GitClient


class FakeGitClient(GitClient):
    """Linear history on one branch plus an optional remote tracking tip.

    ``history`` is oldest first. ``remote_tip`` is the id the upstream ref
    points at, or None when the branch has no upstream.
    """

    def __init__(self, summaries: list[str] | None = None, branch: str = "feature") -> None:
        super().__init__("/nonexistent-repo")
        self.branch = branch
        self.upstream = f"origin/{branch}"
        self.history: list[Commit] = [
            Commit(id=f"c{index}", summary=summary)
            for index, summary in enumerate(summaries or [], start=1)
        ]
        self.remote_tip: str | None = None
        self.files: dict[str, list[FileChange]] = {}
        self.tracked: dict[str, list[TrackedFile]] = {}
        self.failing_commits: set[str] = set()
        self.merge_base_error: GitError | None = None
        self.reflog: list[str] = []
        self.reflog_error: GitError | None = None
        self.calls: list[tuple[str, ...]] = []

    def _ids(self) -> list[str]:
        return [commit.id for commit in self.history]

    def _resolve(self, ref: str) -> int:
        if ref in (self.branch, "HEAD"):
            return len(self.history) - 1
        if ref == self.upstream:
            if self.remote_tip is None:
                raise InvalidRangeError(f"unknown revision {ref}")
            ref = self.remote_tip
        try:
            return self._ids().index(ref)
        except ValueError as e:
            raise InvalidRangeError(f"unknown revision {ref}") from e

    async def current_branch(self) -> str:
        self.calls.append(("current_branch",))
        return self.branch

    async def upstream_ref(self, branch: str) -> str:
        self.calls.append(("upstream_ref", branch))
        if self.remote_tip is None:
            raise NoUpstreamError(f"branch {branch!r} has no upstream")
        return self.upstream

    async def merge_base(self, local_ref: str, remote_ref: str) -> str:
        self.calls.append(("merge_base", local_ref, remote_ref))
        if self.merge_base_error is not None:
            raise self.merge_base_error
        try:
            return self.history[min(self._resolve(local_ref), self._resolve(remote_ref))].id
        except InvalidRangeError as e:
            raise NoUpstreamError(str(e)) from e
        except IndexError as e:
            raise DivergenceUnavailableError("no common history") from e

    async def log_range(
        self,
        from_exclusive: str | None,
        to_inclusive: str,
        max_count: int | None = None,
    ) -> Iterator[Commit]:
        self.calls.append(("log_range", str(from_exclusive), to_inclusive))
        end = self._resolve(to_inclusive)
        start = self._resolve(from_exclusive) + 1 if from_exclusive else 0
        selected = list(reversed(self.history[start : end + 1]))
        if max_count is not None:
            selected = selected[:max_count]
        return iter(selected)

    async def changed_files(self, commit_id: str) -> list[FileChange]:
        self.calls.append(("changed_files", commit_id))
        if commit_id in self.failing_commits or commit_id not in self._ids():
            raise CommitNotFoundError(f"commit {commit_id} not found")
        return list(self.files.get(commit_id, []))

    async def list_files(self, ref: str) -> list[TrackedFile]:
        self.calls.append(("list_files", ref))
        self._resolve(ref)
        return list(self.tracked.get(ref, []))

    async def last_reflog_entry(self, ref: str = "HEAD") -> str | None:
        self.calls.append(("last_reflog_entry", ref))
        if self.reflog_error is not None:
            raise self.reflog_error
        return self.reflog[-1] if self.reflog else None

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


GIT_IDENTITY = [
    "-c",
    "user.name=Test User",
    "-c",
    "user.email=test@example.com",
    "-c",
    "commit.gpgsign=false",
    "-c",
    "init.defaultBranch=main",
]


class GitRepo:
    """A working copy with a bare ``origin`` remote, driven by the git CLI."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.path = root / "work"
        self.remote = root / "remote.git"

    def run(self, *args: str, cwd: Path | None = None) -> str:
        result = subprocess.run(
            ["git", *GIT_IDENTITY, *args],
            cwd=cwd or self.path,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()

    def commit(self, message: str, files: dict[str, str | None]) -> str:
        """Write (or delete, for None) files and commit them; returns the id."""
        for name, content in files.items():
            if content is None:
                self.run("rm", "-q", name)
                continue
            target = self.path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
            self.run("add", name)
        self.run("commit", "-q", "-m", message)
        return self.run("rev-parse", "HEAD")

    def push(self) -> None:
        self.run("push", "-q", "-u", "origin", "HEAD")
