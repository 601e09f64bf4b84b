"""Maps engine results onto the rows of the outgoing view."""

import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from git_outgoing.core.outgoing_engine import OutgoingEngine
from git_outgoing.core.push_state import PushStateTracker
from git_outgoing.models.git import (
    ChangeKind,
    Commit,
    ErrorEntry,
    FileChange,
    Listing,
    PushState,
    TrackedFile,
)
from git_outgoing.models.tree import Category, NodeKind, TreeNode

logger = logging.getLogger(__name__)

CATEGORY_TITLES: dict[Category, tuple[str, str]] = {
    Category.OUTGOING_COMMITS: ("📦", "Outgoing Commits"),
    Category.OUTGOING_FILES: ("📄", "Changed Files"),
    Category.SYNCED_COMMITS: ("✅", "Synced Commits"),
    Category.SYNCED_FILES: ("📋", "Synced Files"),
}

EMPTY_LABELS: dict[Category, str] = {
    Category.OUTGOING_COMMITS: "No outgoing commits",
    Category.OUTGOING_FILES: "No changes in outgoing commits",
    Category.SYNCED_COMMITS: "No synced commits",
    Category.SYNCED_FILES: "No synced files",
}

STATUS_ICONS: dict[ChangeKind, str] = {
    ChangeKind.MODIFIED: "📝",
    ChangeKind.ADDED: "➕",
    ChangeKind.DELETED: "❌",
    ChangeKind.RENAMED: "🔄",
    ChangeKind.COPIED: "📋",
    ChangeKind.UNMERGED: "⚠️",
    ChangeKind.TYPE_CHANGED: "📋",
    ChangeKind.UNKNOWN: "❓",
}

TRACKED_FILE_ICON = "📄"


class ViewChange(BaseModel):
    """Notification that cached rows were invalidated."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    generation: int
    push_state: PushState


ChangeListener = Callable[[ViewChange], Coroutine[Any, Any, None]]


def status_icon(change_kind: ChangeKind | None) -> str:
    if change_kind is None:
        return TRACKED_FILE_ICON
    return STATUS_ICONS.get(change_kind, STATUS_ICONS[ChangeKind.UNKNOWN])


def commit_node(category: Category, commit: Commit) -> TreeNode:
    return TreeNode(
        id=f"{category}:{commit.id}",
        kind=NodeKind.COMMIT,
        label=f"{commit.summary} ({commit.short_id})",
        category=category,
        commit_id=commit.id,
    )


def file_node(category: Category, change: FileChange) -> TreeNode:
    label = f"{status_icon(change.change_kind)} {change.path}"
    tooltip = f"{change.previous_path} → {change.path}" if change.previous_path else None
    return TreeNode(
        id=f"{category}:{change.path}",
        kind=NodeKind.FILE,
        label=label,
        icon=status_icon(change.change_kind),
        category=category,
        path=change.path,
        change_kind=change.change_kind,
        tooltip=tooltip,
    )


def tracked_file_node(category: Category, tracked: TrackedFile) -> TreeNode:
    return TreeNode(
        id=f"{category}:{tracked.path}",
        kind=NodeKind.FILE,
        label=f"{TRACKED_FILE_ICON} {tracked.path}",
        icon=TRACKED_FILE_ICON,
        category=category,
        path=tracked.path,
    )


def informational_node(
    category: Category, key: str, label: str, tooltip: str | None = None
) -> TreeNode:
    return TreeNode(
        id=f"{category}:info:{key}",
        kind=NodeKind.INFORMATIONAL,
        label=label,
        category=category,
        tooltip=tooltip,
    )


def error_nodes(category: Category, errors: list[ErrorEntry]) -> list[TreeNode]:
    return [
        informational_node(category, f"error-{index}", entry.message, tooltip=entry.detail)
        for index, entry in enumerate(errors)
    ]


class OutgoingView:
    """Presentation-facing surface of the outgoing engine.

    Rows are cached per category until the next refresh. Each refresh bumps
    a generation counter; a fill that started under an older generation is
    returned to its caller but not cached.
    """

    def __init__(self, engine: OutgoingEngine, tracker: PushStateTracker) -> None:
        self._engine = engine
        self._tracker = tracker
        self._cache: dict[Category, list[TreeNode]] = {}
        self._generation = 0
        self._listeners: list[ChangeListener] = []
        self._handlers: dict[Category, Callable[[], Awaitable[list[TreeNode]]]] = {
            Category.OUTGOING_COMMITS: self._outgoing_commit_nodes,
            Category.OUTGOING_FILES: self._outgoing_file_nodes,
            Category.SYNCED_COMMITS: self._synced_commit_nodes,
            Category.SYNCED_FILES: self._synced_file_nodes,
        }

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def push_state(self) -> PushState:
        return self._tracker.state

    def add_listener(self, listener: ChangeListener) -> None:
        """Register an async callback invoked after every refresh."""
        self._listeners.append(listener)

    def get_root_categories(self) -> list[TreeNode]:
        return [
            TreeNode(
                id=str(category),
                kind=NodeKind.CATEGORY,
                label=f"{icon} {title}",
                icon=icon,
                category=category,
                collapsible=True,
            )
            for category, (icon, title) in CATEGORY_TITLES.items()
        ]

    async def get_items_for_category(self, category: Category) -> list[TreeNode]:
        cached = self._cache.get(category)
        if cached is not None:
            return cached

        generation = self._generation
        handler = self._handlers[category]
        try:
            nodes = await handler()
        except Exception as e:
            logger.exception(f"Error building rows for {category}: {e}")
            _, title = CATEGORY_TITLES[category]
            nodes = [
                informational_node(category, "error", f"Error loading {title.lower()}", str(e))
            ]

        if generation == self._generation:
            self._cache[category] = nodes
        else:
            logger.debug(f"Discarding stale rows for {category} (generation {generation})")
        return nodes

    async def request_refresh(self) -> ViewChange:
        """Invalidate every cached category and notify listeners."""
        self._generation += 1
        self._cache.clear()
        logger.debug(f"Outgoing view invalidated (generation {self._generation})")

        change = ViewChange(generation=self._generation, push_state=self._tracker.state)
        for listener in list(self._listeners):
            try:
                await listener(change)
            except Exception as e:
                logger.warning(f"Error in view change listener: {e}")
        return change

    async def request_push_state_update(self) -> PushState:
        """Recompute the push marker, then refresh."""
        state = await self._tracker.refresh()
        await self.request_refresh()
        return state

    def _render(
        self,
        category: Category,
        listing: Listing[Any],
        build: Callable[[Category, Any], TreeNode],
    ) -> list[TreeNode]:
        nodes = [build(category, item) for item in listing.items]
        nodes.extend(error_nodes(category, listing.errors))
        nodes.extend(
            informational_node(category, f"notice-{index}", notice)
            for index, notice in enumerate(listing.notices)
        )
        if listing.is_empty:
            nodes.append(informational_node(category, "empty", EMPTY_LABELS[category]))
        return nodes

    async def _outgoing_commit_nodes(self) -> list[TreeNode]:
        listing = await self._engine.outgoing_commits()
        return self._render(Category.OUTGOING_COMMITS, listing, commit_node)

    async def _outgoing_file_nodes(self) -> list[TreeNode]:
        listing = await self._engine.outgoing_files()
        return self._render(Category.OUTGOING_FILES, listing, file_node)

    async def _synced_commit_nodes(self) -> list[TreeNode]:
        listing = await self._engine.synced_commits()
        return self._render(Category.SYNCED_COMMITS, listing, commit_node)

    async def _synced_file_nodes(self) -> list[TreeNode]:
        listing = await self._engine.synced_files()
        return self._render(Category.SYNCED_FILES, listing, tracked_file_node)
