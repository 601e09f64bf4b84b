from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class RepoEventType(StrEnum):
    """Signals that may change the outgoing/synced views."""

    METADATA_CHANGED = "metadata_changed"
    METADATA_CREATED = "metadata_created"
    METADATA_DELETED = "metadata_deleted"
    ACTIVE_VIEW_CHANGED = "active_view_changed"


def _default_paths() -> list[str]:
    return []


class RepoEvent(BaseModel):
    """A repository mutation signal or a client notification."""

    event_type: RepoEventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    paths: list[str] = Field(default_factory=_default_paths)
