"""Wires the git client, push tracker, engine, view, and change bridge together."""

import asyncio
import contextlib
import logging
from datetime import UTC, datetime
from pathlib import Path

from git_outgoing.api.websocket import manager
from git_outgoing.config import Settings, get_settings
from git_outgoing.core.diff_view import DiffView
from git_outgoing.core.errors import GitError
from git_outgoing.core.event_bridge import RepoEventDispatcher
from git_outgoing.core.outgoing_engine import OutgoingEngine
from git_outgoing.core.push_state import PushStateTracker
from git_outgoing.core.repo_watcher import RepoWatcher
from git_outgoing.core.tree_view import OutgoingView, ViewChange
from git_outgoing.services.git_client import GitClient

logger = logging.getLogger(__name__)


class OutgoingService:
    """Owns every component for one tracked repository."""

    def __init__(self, settings: Settings | None = None, repo_path: str | Path | None = None) -> None:
        """Initialize the service.

        Args:
            settings: Settings to use (defaults to the cached application settings)
            repo_path: Repository to track (defaults to settings.repo_root())
        """
        self._settings = settings or get_settings()
        self._initial_refresh: asyncio.Task[None] | None = None
        self._started = False
        self.watcher: RepoWatcher | None = None
        self._build(Path(repo_path) if repo_path else self._settings.repo_root())

    def _build(self, repo_path: Path) -> None:
        settings = self._settings
        self.git = GitClient(
            repo_path,
            git_executable=settings.GIT_EXECUTABLE,
            timeout=settings.GIT_TIMEOUT,
            remote_name=settings.REMOTE_NAME,
        )
        self.tracker = PushStateTracker(self.git)
        self.engine = OutgoingEngine(
            self.git,
            self.tracker,
            policy=settings.FILE_STATUS_POLICY,
            synced_log_limit=settings.SYNCED_LOG_LIMIT,
        )
        self.view = OutgoingView(self.engine, self.tracker)
        self.view.add_listener(self._broadcast_change)
        self.diffs = DiffView(self.git, self.tracker)
        self.dispatcher = RepoEventDispatcher(self.git, self.view)

    @property
    def repo_path(self) -> Path:
        return self.git.repo_path

    async def _broadcast_change(self, change: ViewChange) -> None:
        """Tell WebSocket clients to re-read the view."""
        await manager.broadcast_all(
            {
                "type": "tree_changed",
                "timestamp": datetime.now(UTC).isoformat(),
                "generation": change.generation,
                "pushState": change.push_state.model_dump(mode="json", by_alias=True),
            }
        )

    async def _load_push_state(self) -> None:
        try:
            await self.view.request_push_state_update()
        except Exception as e:
            logger.error(f"Initial push state refresh failed: {e}")

    async def _start_watcher(self) -> None:
        try:
            git_dir = await self.git.git_dir()
        except GitError as e:
            logger.warning(f"Not watching {self.repo_path}: {e}")
            return
        self.watcher = RepoWatcher(
            git_dir,
            self.dispatcher.submit,
            debounce_delay=self._settings.WATCH_DEBOUNCE_SECONDS,
        )
        await self.watcher.start()

    async def start(self) -> None:
        """Load the push marker in the background and begin watching."""
        if self._started:
            return
        self._started = True

        self._initial_refresh = asyncio.create_task(
            self._load_push_state(), name="initial_push_state"
        )
        self.dispatcher.start()
        if self._settings.WATCH_ENABLED:
            await self._start_watcher()
        logger.info(f"Outgoing view started for {self.repo_path}")

    async def wait_ready(self) -> None:
        """Wait for the initial push marker refresh to finish."""
        if self._initial_refresh:
            await self._initial_refresh

    async def stop(self) -> None:
        """Stop watching and cancel background work."""
        if self.watcher:
            await self.watcher.stop()
            self.watcher = None
        await self.dispatcher.stop()
        if self._initial_refresh:
            self._initial_refresh.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._initial_refresh
            self._initial_refresh = None
        self._started = False
        logger.info("Outgoing view stopped")

    async def configure(self, repo_path: str | Path) -> None:
        """Point the service at another repository, restarting if running."""
        was_started = self._started
        if was_started:
            await self.stop()
        self._build(Path(repo_path))
        logger.info(f"OutgoingService configured: repo_path={repo_path}")
        if was_started:
            await self.start()


outgoing_service = OutgoingService()
