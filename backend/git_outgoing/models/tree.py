"""Tree node models consumed by the presentation layer."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from git_outgoing.models.git import ChangeKind


class Direction(StrEnum):
    OUTGOING = "outgoing"
    SYNCED = "synced"


class Subject(StrEnum):
    COMMITS = "commits"
    FILES = "files"


class Category(StrEnum):
    """Root sections of the view, one per direction and subject."""

    OUTGOING_COMMITS = "outgoing_commits"
    OUTGOING_FILES = "outgoing_files"
    SYNCED_COMMITS = "synced_commits"
    SYNCED_FILES = "synced_files"

    @property
    def direction(self) -> Direction:
        return Direction(self.value.split("_", 1)[0])

    @property
    def subject(self) -> Subject:
        return Subject(self.value.split("_", 1)[1])


class NodeKind(StrEnum):
    CATEGORY = "category"
    COMMIT = "commit"
    FILE = "file"
    INFORMATIONAL = "informational"


class TreeNode(BaseModel):
    """A single row of the outgoing view."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    kind: NodeKind
    label: str
    icon: str = ""
    category: Category | None = None
    commit_id: str | None = None
    path: str | None = None
    change_kind: ChangeKind | None = None
    tooltip: str | None = None
    collapsible: bool = False
