"""Computes outgoing and synced commits/files for the current branch."""

import asyncio
import logging
from collections import Counter
from collections.abc import Iterable

from git_outgoing.config import FileStatusPolicy
from git_outgoing.core.errors import GitError
from git_outgoing.core.push_state import PushStateTracker
from git_outgoing.models.git import (
    ChangeKind,
    Commit,
    ErrorEntry,
    FileChange,
    Listing,
    TrackedFile,
)
from git_outgoing.services.git_client import GitClient

logger = logging.getLogger(__name__)


def unique_commits(commits: Iterable[Commit]) -> list[Commit]:
    """Drop repeated commit ids, keeping the first occurrence."""
    seen: set[str] = set()
    result: list[Commit] = []
    for commit in commits:
        if commit.id in seen:
            continue
        seen.add(commit.id)
        result.append(commit)
    return result


def merge_file_changes(
    changes_by_commit: Iterable[list[FileChange]],
    policy: FileStatusPolicy = FileStatusPolicy.FIRST_SEEN,
) -> list[FileChange]:
    """Union per-commit file changes into one record per path.

    ``changes_by_commit`` must be in processing order (oldest commit first).
    With FIRST_SEEN the earliest commit's status is kept; with
    ALWAYS_MODIFIED a path touched by more than one commit is reported as
    modified.

    Returns:
        One FileChange per path, sorted by path
    """
    merged: dict[str, FileChange] = {}
    touches: Counter[str] = Counter()
    for changes in changes_by_commit:
        for change in changes:
            touches[change.path] += 1
            if change.path not in merged:
                merged[change.path] = change

    result = list(merged.values())
    if policy is FileStatusPolicy.ALWAYS_MODIFIED:
        result = [
            change.model_copy(update={"change_kind": ChangeKind.MODIFIED})
            if touches[change.path] > 1
            else change
            for change in result
        ]
    return sorted(result, key=lambda change: change.path)


class OutgoingEngine:
    """Best-effort outgoing/synced queries.

    Git failures never escape: each independent sub-query that fails is
    logged and turned into an ErrorEntry next to whatever did load.
    """

    def __init__(
        self,
        git: GitClient,
        tracker: PushStateTracker,
        policy: FileStatusPolicy = FileStatusPolicy.FIRST_SEEN,
        synced_log_limit: int | None = 200,
    ) -> None:
        self._git = git
        self._tracker = tracker
        self._policy = policy
        self._synced_log_limit = synced_log_limit

    @property
    def policy(self) -> FileStatusPolicy:
        return self._policy

    async def _outgoing_range(self) -> tuple[str, str]:
        """Lower (exclusive) and upper (inclusive) bounds of the outgoing set."""
        branch = await self._git.current_branch()
        state = self._tracker.state
        # A marker computed for another branch says nothing about this one.
        if state.marker is not None and state.branch in (None, branch):
            return state.marker, branch
        upstream = await self._git.upstream_ref(branch)
        return upstream, branch

    async def outgoing_commits(self) -> Listing[Commit]:
        """Commits after the push marker (or remote tip) up to the branch tip, newest first."""
        try:
            base, tip = await self._outgoing_range()
            commits = unique_commits(await self._git.log_range(base, tip))
        except GitError as e:
            logger.warning(f"Error getting outgoing commits: {e}")
            return Listing(errors=[ErrorEntry(message="Error loading commits", detail=str(e))])
        return Listing(items=commits)

    async def outgoing_files(self) -> Listing[FileChange]:
        """Files touched by the outgoing commits, one record per path."""
        commits = await self.outgoing_commits()
        errors = list(commits.errors)
        if not commits.items:
            return Listing(errors=errors)

        ordered = list(reversed(commits.items))
        results = await asyncio.gather(
            *(self._git.changed_files(commit.id) for commit in ordered),
            return_exceptions=True,
        )

        per_commit: list[list[FileChange]] = []
        for commit, result in zip(ordered, results, strict=True):
            if isinstance(result, Exception):
                if isinstance(result, GitError):
                    logger.warning(f"Error getting files for commit {commit.short_id}: {result}")
                else:
                    logger.error(
                        f"Unexpected error getting files for commit {commit.short_id}: {result!r}"
                    )
                errors.append(
                    ErrorEntry(
                        message=f"Error loading files for {commit.short_id}",
                        detail=str(result),
                    )
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                per_commit.append(result)

        return Listing(items=merge_file_changes(per_commit, self._policy), errors=errors)

    async def synced_commits(self) -> Listing[Commit]:
        """Commits reachable from the push marker, marker included.

        At most ``synced_log_limit`` commits are listed; when older ones
        exist the listing carries a notice saying so.
        """
        marker = self._tracker.marker
        if marker is None:
            return Listing()
        limit = self._synced_log_limit
        try:
            commits = unique_commits(
                await self._git.log_range(None, marker, None if limit is None else limit + 1)
            )
        except GitError as e:
            logger.warning(f"Error getting synced commits: {e}")
            return Listing(
                errors=[ErrorEntry(message="Error loading synced commits", detail=str(e))]
            )

        if limit is not None and len(commits) > limit:
            return Listing(
                items=commits[:limit],
                notices=[f"Older synced commits not shown (limit {limit})"],
            )
        return Listing(items=commits)

    async def synced_files(self) -> Listing[TrackedFile]:
        """Files in the tree at the push marker."""
        marker = self._tracker.marker
        if marker is None:
            return Listing()
        try:
            files = await self._git.list_files(marker)
        except GitError as e:
            logger.warning(f"Error getting synced files: {e}")
            return Listing(errors=[ErrorEntry(message="Error loading synced files", detail=str(e))])
        return Listing(items=files)

    async def commit_files(self, commit_id: str) -> Listing[FileChange]:
        """Files touched by one commit."""
        try:
            files = await self._git.changed_files(commit_id)
        except GitError as e:
            logger.warning(f"Error getting files for commit {commit_id}: {e}")
            return Listing(errors=[ErrorEntry(message="Error loading commit files", detail=str(e))])
        return Listing(items=files)
