"""Presentation ordering for sibling lists.

Nothing here mutates stored order; every function returns a new list.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Literal, Optional, Sequence, TypeVar, Union

from .models import FileRef, FolderRef, Group, SortOrder

UNINDEXED_SORT_KEY = 999

NodeKind = Literal["group", "subgroup", "folder", "file"]
_Item = TypeVar("_Item", FileRef, FolderRef)


@dataclass(frozen=True, slots=True)
class TreeNode:
    """A row of the rendered tree.

    Attributes:
        kind: Discriminant naming which payload the node carries.
        payload: The group, folder, or file the row represents.
        group_id: Owning group for folder and file rows.
        can_move: Whether the row can be dragged.
    """

    kind: NodeKind
    payload: Union[Group, FolderRef, FileRef]
    group_id: Optional[str] = None
    can_move: bool = True

    @property
    def id(self) -> str:
        return self.payload.id


def _basename(relative_path: str) -> str:
    return PurePosixPath(relative_path.replace("\\", "/")).name


def sort_groups(groups: Sequence[Group], order: SortOrder) -> list[Group]:
    """Return ``groups`` in presentation order."""
    if order == "alphabetical":
        return sorted(groups, key=lambda group: group.name.casefold())
    if order == "custom":
        return sorted(
            groups,
            key=lambda group: UNINDEXED_SORT_KEY if group.sort_index is None else group.sort_index,
        )
    if order == "recent":
        return sorted(groups, key=lambda group: group.updated_at, reverse=True)
    return sorted(groups, key=lambda group: group.created_at)


def sort_items(items: Sequence[_Item], order: SortOrder) -> list[_Item]:
    """Return file or folder references in presentation order."""
    if order == "alphabetical":
        return sorted(items, key=lambda item: _basename(item.relative_path).casefold())
    if order == "custom":
        return sorted(
            items,
            key=lambda item: UNINDEXED_SORT_KEY if item.sort_index is None else item.sort_index,
        )
    if order == "recent":
        return sorted(items, key=lambda item: item.added_at, reverse=True)
    return sorted(items, key=lambda item: item.added_at)


def top_level_nodes(groups: Sequence[Group], order: SortOrder) -> list[TreeNode]:
    """Return sorted nodes for the top-level groups."""
    return [TreeNode(kind="group", payload=group) for group in sort_groups(groups, order)]


def group_children(group: Group, order: SortOrder) -> list[TreeNode]:
    """Return a group's children: subgroups, then folders, then files."""
    children = [
        TreeNode(kind="subgroup", payload=subgroup)
        for subgroup in sort_groups(group.subgroups, order)
    ]
    children.extend(
        TreeNode(kind="folder", payload=folder, group_id=group.id)
        for folder in sort_items(group.folders, order)
    )
    children.extend(
        TreeNode(kind="file", payload=file, group_id=group.id)
        for file in sort_items(group.files, order)
    )
    return children


__all__ = [
    "UNINDEXED_SORT_KEY",
    "NodeKind",
    "TreeNode",
    "sort_groups",
    "sort_items",
    "top_level_nodes",
    "group_children",
]
