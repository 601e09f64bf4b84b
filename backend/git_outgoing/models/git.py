"""Git models for outgoing and synced repository state."""

from datetime import datetime
from enum import StrEnum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class ChangeKind(StrEnum):
    """Git name-status codes."""

    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    RENAMED = "R"
    COPIED = "C"
    UNMERGED = "U"
    TYPE_CHANGED = "T"
    UNKNOWN = "X"

    @classmethod
    def from_status(cls, status: str) -> "ChangeKind":
        """Map a raw status field (e.g. ``R100``) to a ChangeKind."""
        if not status:
            return cls.UNKNOWN
        try:
            return cls(status[0])
        except ValueError:
            return cls.UNKNOWN


class Commit(BaseModel):
    """A commit summary parsed from one line of log output."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., description="Full commit hash")
    summary: str = Field(..., description="First line of the commit message")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def short_id(self) -> str:
        return self.id[:7]


class FileChange(BaseModel):
    """A file touched by a commit."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    path: str
    change_kind: ChangeKind
    previous_path: str | None = None


class TrackedFile(BaseModel):
    """A file present in the tree at a given ref."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    path: str


class ErrorEntry(BaseModel):
    """Informational entry standing in for a failed sub-query."""

    message: str
    detail: str | None = None


ItemT = TypeVar("ItemT")


class Listing(BaseModel, Generic[ItemT]):
    """Best-effort query result: whatever loaded plus any failures.

    ``notices`` are informational lines such as a truncated history.
    """

    items: list[ItemT] = Field(default_factory=list)
    errors: list[ErrorEntry] = Field(default_factory=list)
    notices: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when the query succeeded and found nothing."""
        return not self.items and not self.errors


class PushState(BaseModel):
    """Last known synchronization point between the branch and its remote.

    ``marker`` is None while the state is unknown. Instances are immutable;
    the tracker swaps whole instances.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    marker: str | None = None
    branch: str | None = None
    upstream: str | None = None
    refreshed_at: datetime | None = None
    error: str | None = None
    generation: int = 0

    @property
    def is_known(self) -> bool:
        return self.marker is not None


class DiffSides(BaseModel):
    """Two-sided text content for a diff view."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    path: str
    left_ref: str
    right_ref: str
    left_content: str
    right_content: str
