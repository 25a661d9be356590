"""Data models for the group forest and its persisted document."""

from __future__ import annotations

import re
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .errors import ValidationError
from .ids import new_id, now_ms

DOCUMENT_VERSION = "1.0.0"
GROUP_NAME_MAX_LENGTH = 50
GROUP_NAME_PATTERN = re.compile(r"^[A-Za-z0-9\s\-_]+$")

ItemKind = Literal["file", "folder", "subgroup"]
SortOrder = Literal["alphabetical", "custom", "recent", "dateCreated"]
StorageLocation = Literal["workspace", "global"]


class ForestModel(BaseModel):
    """Shared configuration for document models.

    Attributes use snake_case in Python and camelCase in the document. Fields
    the model does not know about (runtime-only view data) are dropped, and
    assignments are validated against the field types.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        validate_assignment=True,
    )


class FileRef(ForestModel):
    """Reference to a file inside a group.

    Attributes:
        id: Opaque identifier.
        relative_path: Path relative to the project root; unique per group.
        label: Optional display label override.
        added_at: Epoch milliseconds when the reference was added.
        sort_index: Position under custom ordering, if assigned.
    """

    id: str = Field(default_factory=new_id)
    relative_path: str
    label: Optional[str] = None
    added_at: int = Field(default_factory=now_ms)
    sort_index: Optional[int] = None


class FolderRef(ForestModel):
    """Reference to a folder inside a group; contents are resolved live.

    Attributes:
        id: Opaque identifier.
        relative_path: Path relative to the project root; unique per group.
        label: Optional display label override.
        added_at: Epoch milliseconds when the reference was added.
        sort_index: Position under custom ordering, if assigned.
        expanded: Whether the folder is expanded in a tree view.
    """

    id: str = Field(default_factory=new_id)
    relative_path: str
    label: Optional[str] = None
    added_at: int = Field(default_factory=now_ms)
    sort_index: Optional[int] = None
    expanded: Optional[bool] = None


class Group(ForestModel):
    """A named node of the forest owning files, folders, and subgroups.

    Attributes:
        id: Opaque identifier, immutable once assigned.
        name: Display name.
        description: Optional free-text description.
        color: Optional color tag.
        files: File references in stored order.
        folders: Folder references in stored order.
        subgroups: Child groups, owned exclusively by this group.
        parent_id: Identifier of the owning group; ``None`` for top-level groups.
        created_at: Epoch milliseconds at creation.
        updated_at: Epoch milliseconds of the last mutation touching this group.
        sort_index: Position under custom ordering, if assigned.
        is_expanded: Whether the group is expanded in a tree view.
    """

    id: str = Field(default_factory=new_id)
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    files: List[FileRef] = Field(default_factory=list)
    folders: List[FolderRef] = Field(default_factory=list)
    subgroups: List[Group] = Field(default_factory=list)
    parent_id: Optional[str] = None
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)
    sort_index: Optional[int] = None
    is_expanded: Optional[bool] = None

    def touch(self) -> None:
        """Refresh ``updated_at`` to the current time."""
        self.updated_at = now_ms()

    def items_of(self, kind: ItemKind) -> list[Any]:
        """Return the live sibling list holding items of ``kind``."""
        if kind == "file":
            return self.files
        if kind == "folder":
            return self.folders
        if kind == "subgroup":
            return self.subgroups
        raise ValidationError(f"Unknown item kind: {kind!r}")


class ForestDocument(ForestModel):
    """Persisted and exchanged snapshot of the whole forest.

    Attributes:
        version: Opaque version tag carried through unchanged.
        groups: Top-level groups in stored order.
    """

    version: str = DOCUMENT_VERSION
    groups: List[Group] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready mapping written to storage and exports."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


Group.model_rebuild()


def group_name_problem(value: str | None) -> str | None:
    """Return a message describing why ``value`` is not a valid group name.

    Args:
        value: Candidate group name.

    Returns:
        str | None: Human-readable problem, or ``None`` when the name is valid.
    """
    if not value:
        return "Group name is required"
    if len(value) > GROUP_NAME_MAX_LENGTH:
        return f"Group name must be at most {GROUP_NAME_MAX_LENGTH} characters"
    if not GROUP_NAME_PATTERN.match(value):
        return "Group name can only contain letters, numbers, spaces, hyphens, and underscores"
    return None


def ensure_valid_group_name(value: str | None) -> str:
    """Return ``value`` unchanged or raise ``ValidationError``."""
    problem = group_name_problem(value)
    if problem is not None:
        raise ValidationError(problem)
    assert value is not None
    return value


__all__ = [
    "DOCUMENT_VERSION",
    "GROUP_NAME_MAX_LENGTH",
    "ItemKind",
    "SortOrder",
    "StorageLocation",
    "FileRef",
    "FolderRef",
    "Group",
    "ForestDocument",
    "group_name_problem",
    "ensure_valid_group_name",
]
