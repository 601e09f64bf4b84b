"""Tracks the last known synchronization point of the current branch."""

import logging
from datetime import UTC, datetime

from git_outgoing.core.errors import GitError
from git_outgoing.models.git import PushState
from git_outgoing.services.git_client import GitClient

logger = logging.getLogger(__name__)


class PushStateTracker:
    """Owns the push marker: the merge-base of the branch and its upstream.

    The marker starts out unknown and only changes through ``refresh()``.
    Each refresh builds a new immutable PushState and swaps it in with a
    single assignment, so readers see either the old or the new state.
    """

    def __init__(self, git: GitClient) -> None:
        self._git = git
        self._state = PushState()
        self._generation = 0

    @property
    def state(self) -> PushState:
        return self._state

    @property
    def marker(self) -> str | None:
        return self._state.marker

    async def refresh(self) -> PushState:
        """Recompute the marker from the repository.

        Any git failure turns the state Unknown and records why. Results of
        a refresh that finishes after a newer one was applied are dropped.

        Returns:
            The state in effect after this call
        """
        self._generation += 1
        generation = self._generation

        try:
            branch = await self._git.current_branch()
            upstream = await self._git.upstream_ref(branch)
            marker = await self._git.merge_base(branch, upstream)
            new_state = PushState(
                marker=marker,
                branch=branch,
                upstream=upstream,
                refreshed_at=datetime.now(UTC),
                generation=generation,
            )
            logger.info(f"Push marker for {branch} is {marker[:7]} (upstream {upstream})")
        except GitError as e:
            logger.warning(f"Push marker unavailable: {e}")
            new_state = PushState(
                refreshed_at=datetime.now(UTC),
                error=str(e),
                generation=generation,
            )

        if generation < self._state.generation:
            logger.debug(f"Discarding superseded push state refresh {generation}")
            return self._state

        self._state = new_state
        return new_state

    def clear(self) -> None:
        """Forget the marker."""
        self._state = PushState(generation=self._generation)
