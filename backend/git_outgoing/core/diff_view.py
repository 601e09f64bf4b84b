"""Two-sided file content for diff views."""

import asyncio
import logging

from git_outgoing.core.errors import NoUpstreamError
from git_outgoing.core.push_state import PushStateTracker
from git_outgoing.models.git import DiffSides
from git_outgoing.services.git_client import GitClient

logger = logging.getLogger(__name__)


class DiffView:
    """Materializes both sides of a file diff from git objects."""

    def __init__(self, git: GitClient, tracker: PushStateTracker) -> None:
        self._git = git
        self._tracker = tracker

    async def _sides(
        self, title: str, path: str, left_ref: str, right_ref: str
    ) -> DiffSides:
        left_content, right_content = await asyncio.gather(
            self._git.show_file(left_ref, path),
            self._git.show_file(right_ref, path),
        )
        return DiffSides(
            title=title,
            path=path,
            left_ref=left_ref,
            right_ref=right_ref,
            left_content=left_content,
            right_content=right_content,
        )

    async def file_diff(self, path: str) -> DiffSides:
        """Compare a file at the remote tracking ref with the branch tip.

        Falls back to the push marker as the left side when the branch has
        no upstream.

        Raises:
            NoUpstreamError: If neither an upstream nor a marker is known.
        """
        branch = await self._git.current_branch()
        try:
            left_ref = await self._git.upstream_ref(branch)
        except NoUpstreamError:
            marker = self._tracker.marker
            if marker is None:
                raise
            logger.debug(f"No upstream for {branch}, diffing {path} against push marker")
            left_ref = marker
        return await self._sides(f"{path} ({branch})", path, left_ref, branch)

    async def commit_diff(self, commit_id: str, path: str) -> DiffSides:
        """Compare a file before and after a single commit.

        Raises:
            InvalidRangeError: If the commit does not resolve.
        """
        resolved = await self._git.resolve_ref(commit_id)
        return await self._sides(f"{path} ({resolved[:7]})", path, f"{resolved}^", resolved)
