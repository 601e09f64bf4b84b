"""Watches the repository metadata directory for changes.

File events arrive on watchdog's observer thread; they are handed to the
event loop, collected per kind, and flushed as one RepoEvent per kind once
the directory has been quiet for the debounce delay.
"""

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from git_outgoing.models.events import RepoEvent, RepoEventType

logger = logging.getLogger(__name__)

# Object writes always come with a ref or index update we do see.
IGNORED_TOP_LEVEL = frozenset({"objects"})
LOCK_SUFFIX = ".lock"


class RepoWatcher:
    """Feeds filesystem events under ``.git`` into a RepoEvent sink."""

    def __init__(
        self,
        git_dir: Path,
        submit: Callable[[RepoEvent], None],
        debounce_delay: float = 0.3,
    ) -> None:
        self._git_dir = git_dir
        self._submit = submit
        self._debounce_delay = debounce_delay

        self._observer: BaseObserver | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending_paths: dict[RepoEventType, set[str]] = {}
        self._flush_task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def git_dir(self) -> Path:
        return self._git_dir

    async def start(self) -> None:
        """Start watching the metadata directory."""
        if self._running:
            return

        self._loop = asyncio.get_running_loop()
        self._running = True

        if not self._git_dir.is_dir():
            logger.warning(f"Git metadata directory not found: {self._git_dir}")
            return

        self._observer = Observer()
        self._observer.schedule(_GitDirHandler(self), str(self._git_dir), recursive=True)
        self._observer.start()
        logger.info(f"Watching {self._git_dir} for repository changes")

    async def stop(self) -> None:
        """Stop watching and drop pending events."""
        self._running = False
        if self._observer:
            self._observer.stop()
            await asyncio.to_thread(self._observer.join)
            self._observer = None
        if self._flush_task:
            self._flush_task.cancel()
            self._flush_task = None
        self._pending_paths.clear()
        self._loop = None

    def is_relevant(self, path: str) -> bool:
        """Whether a changed path can affect outgoing/synced state."""
        try:
            relative = Path(path).relative_to(self._git_dir)
        except ValueError:
            return False
        if not relative.parts or relative.parts[0] in IGNORED_TOP_LEVEL:
            return False
        return not relative.name.endswith(LOCK_SUFFIX)

    def record(self, event_type: RepoEventType, path: str) -> None:
        """Thread-safe entry point for observer callbacks."""
        if not self._loop or not self.is_relevant(path):
            return
        self._loop.call_soon_threadsafe(self._collect, event_type, path)

    def _collect(self, event_type: RepoEventType, path: str) -> None:
        self._pending_paths.setdefault(event_type, set()).add(path)
        if self._flush_task:
            self._flush_task.cancel()
        self._flush_task = asyncio.create_task(self._flush_later())

    async def _flush_later(self) -> None:
        try:
            await asyncio.sleep(self._debounce_delay)
        except asyncio.CancelledError:
            return
        pending, self._pending_paths = self._pending_paths, {}
        self._flush_task = None
        for event_type in RepoEventType:
            paths = pending.get(event_type)
            if paths:
                self._submit(RepoEvent(event_type=event_type, paths=sorted(paths)))


class _GitDirHandler(FileSystemEventHandler):
    """Watchdog handler that forwards file events to RepoWatcher."""

    def __init__(self, parent: RepoWatcher) -> None:
        self._parent = parent

    @staticmethod
    def _path(raw: str | bytes) -> str:
        # Undecodable bytes become U+FFFD; RepoEvent paths must be valid UTF-8.
        return os.fsdecode(raw).encode("utf-8", "surrogateescape").decode("utf-8", "replace")

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._parent.record(RepoEventType.METADATA_CHANGED, self._path(event.src_path))

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._parent.record(RepoEventType.METADATA_CREATED, self._path(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._parent.record(RepoEventType.METADATA_DELETED, self._path(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        # git writes <file>.lock and renames it over <file>
        if not event.is_directory:
            self._parent.record(RepoEventType.METADATA_CHANGED, self._path(event.dest_path))
