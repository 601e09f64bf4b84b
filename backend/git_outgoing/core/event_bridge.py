"""Turns repository events into marker refreshes or view invalidations."""

import asyncio
import contextlib
import logging

from git_outgoing.core.errors import GitError, InvalidRangeError, NoUpstreamError
from git_outgoing.core.tree_view import OutgoingView
from git_outgoing.models.events import RepoEvent, RepoEventType
from git_outgoing.services.git_client import GitClient

logger = logging.getLogger(__name__)

PUSH_KEYWORD = "push"


class RepoEventDispatcher:
    """Single consumer of the repository event channel.

    A ``metadata_changed`` event whose newest reflog entry records a push
    moves the push marker before the view is refreshed. Every other event
    only invalidates the view, so checkouts and fetches leave the marker
    where it is.
    """

    def __init__(self, git: GitClient, view: OutgoingView) -> None:
        self._git = git
        self._view = view
        self._queue: asyncio.Queue[RepoEvent] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._last_reflog_entry: str | None = None

    def submit(self, event: RepoEvent) -> None:
        """Queue an event for dispatch."""
        self._queue.put_nowait(event)

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._consume_loop(), name="repo_event_dispatch")
        logger.info("Repository event dispatcher started")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info("Repository event dispatcher stopped")

    async def _seed_reflog_entry(self) -> None:
        """Remember the current reflog tip so only later pushes are detected."""
        try:
            self._last_reflog_entry = await self._latest_reflog_entry()
        except GitError as e:
            logger.warning(f"Error reading initial git reflog: {e}")

    async def _consume_loop(self) -> None:
        await self._seed_reflog_entry()
        while True:
            event = await self._queue.get()
            try:
                await self.dispatch(event)
            except Exception as e:
                logger.exception(f"Error dispatching {event.event_type}: {e}")
            finally:
                self._queue.task_done()

    async def dispatch(self, event: RepoEvent) -> bool:
        """Handle one event.

        Returns:
            True if the push marker was refreshed
        """
        logger.debug(f"Repository event: {event.event_type} {event.paths[:3]}")
        if event.event_type is RepoEventType.METADATA_CHANGED and await self._push_detected():
            logger.info("Detected git push, updating push marker")
            await self._view.request_push_state_update()
            return True

        await self._view.request_refresh()
        return False

    async def _latest_reflog_entry(self) -> str | None:
        """Newest reflog entry of the upstream ref, or of HEAD without one."""
        branch = await self._git.current_branch()
        try:
            upstream = await self._git.upstream_ref(branch)
            return await self._git.last_reflog_entry(upstream)
        except (NoUpstreamError, InvalidRangeError):
            return await self._git.last_reflog_entry("HEAD")

    async def _push_detected(self) -> bool:
        try:
            entry = await self._latest_reflog_entry()
        except GitError as e:
            logger.warning(f"Error checking git reflog: {e}")
            return False

        if entry is None or entry == self._last_reflog_entry:
            return False
        self._last_reflog_entry = entry
        _, _, subject = entry.partition("\t")
        return PUSH_KEYWORD in subject.lower()
