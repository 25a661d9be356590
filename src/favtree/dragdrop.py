"""Drag-and-drop semantics over the group tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from favtree.commands import Prompter, ensure_custom_order
from favtree.session import Session
from favtree.store.models import ItemKind
from favtree.store.ordering import NodeKind, TreeNode
from favtree.store.tree import TreeStore
from favtree.workspace import relative_to_root

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DragItem:
    """Serializable description of a dragged row.

    Attributes:
        kind: Kind of the dragged row.
        id: Identifier of the dragged group, folder, or file.
        group_id: Owning group; ``None`` for top-level groups.
    """

    kind: NodeKind
    id: str
    group_id: Optional[str]


def item_kind_of(kind: NodeKind) -> ItemKind:
    """Map a tree node kind onto the sibling-list kind the engine works with."""
    if kind == "file":
        return "file"
    if kind == "folder":
        return "folder"
    return "subgroup"


def locate_node(store: TreeStore, node_id: str) -> Optional[TreeNode]:
    """Return the tree node for any group, folder, or file identifier."""
    for group, depth in store.walk():
        if group.id == node_id:
            return TreeNode(kind="subgroup" if depth else "group", payload=group)
        for folder in group.folders:
            if folder.id == node_id:
                return TreeNode(kind="folder", payload=folder, group_id=group.id)
        for file in group.files:
            if file.id == node_id:
                return TreeNode(kind="file", payload=file, group_id=group.id)
    return None


class DropController:
    """Translate drops into reorder, move, and add mutations."""

    def __init__(self, session: Session, prompter: Prompter) -> None:
        self._session = session
        self._prompter = prompter

    def _enabled(self) -> bool:
        return self._session.config().behavior.enable_drag_and_drop

    def drag(self, nodes: Sequence[TreeNode]) -> list[DragItem]:
        """Describe dragged nodes, resolving each subgroup's owner from the root."""
        items = []
        for node in nodes:
            if node.kind in ("group", "subgroup"):
                parent = self._session.store.find_parent(node.id)
                items.append(DragItem(node.kind, node.id, parent.id if parent else None))
            else:
                items.append(DragItem(node.kind, node.id, node.group_id))
        return items

    def drop(self, target: Optional[TreeNode], items: Sequence[DragItem]) -> bool:
        """Apply a drop of ``items`` onto ``target``.

        Dropping a file or folder onto a sibling of the same kind reorders it
        to the sibling's position. Dropping onto a group moves the item to
        that group. Only single-item drops are handled.
        """
        if target is None or not self._enabled() or len(items) != 1:
            return False
        item = items[0]

        if target.kind in ("file", "folder"):
            if target.group_id != item.group_id or target.kind != item.kind:
                return False
            group = self._session.store.find_by_id(target.group_id or "")
            if group is None:
                return False
            kind = item_kind_of(target.kind)
            siblings = group.items_of(kind)
            index = next((i for i, other in enumerate(siblings) if other.id == target.id), -1)
            if index == -1:
                return False
            ensure_custom_order(self._session, self._prompter)
            return self._session.engine.reorder_items(group.id, item.id, index, kind)

        if item.group_id is None or item.group_id == target.id:
            return False
        return self._session.engine.move_between_groups(
            item.group_id, target.id, item.id, item_kind_of(item.kind)
        )

    def drop_paths(self, target: TreeNode, paths: Sequence[Path]) -> int:
        """Add external files and folders dropped onto a group; return how many were added."""
        if not self._enabled() or target.kind not in ("group", "subgroup"):
            return 0
        root = self._session.root
        if root is None:
            return 0
        added = 0
        for path in paths:
            if not path.exists():
                LOGGER.error("Error handling drop: %s does not exist", path)
                continue
            relative_path = relative_to_root(root, path)
            if path.is_dir():
                added += self._session.engine.add_folder_to_group(target.id, relative_path)
            else:
                added += self._session.engine.add_file_to_group(target.id, relative_path)
        return added


__all__ = ["DragItem", "DropController", "item_kind_of", "locate_node"]
