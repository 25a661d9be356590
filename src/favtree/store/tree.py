"""In-memory forest of groups and its read-side queries."""

from __future__ import annotations

from typing import Iterator, Optional

from .models import ForestDocument, Group


class TreeStore:
    """Own the forest document and resolve identities within it.

    The store performs no business validation; it only knows the shape of the
    forest. Parent identifiers are never followed as references: every upward
    lookup re-resolves from the top-level list.
    """

    def __init__(self, document: ForestDocument | None = None) -> None:
        self._document = document if document is not None else ForestDocument()

    @property
    def document(self) -> ForestDocument:
        """Return the live forest document."""
        return self._document

    @property
    def version(self) -> str:
        """Return the opaque version tag of the current document."""
        return self._document.version

    def get_all_top_level(self) -> list[Group]:
        """Return the top-level groups in stored order."""
        return self._document.groups

    def replace_top_level(self, groups: list[Group]) -> None:
        """Swap the top-level list, keeping the document version."""
        self._document.groups = list(groups)

    def replace_document(self, document: ForestDocument) -> None:
        """Swap the whole document, version tag included."""
        self._document = document

    def walk(self) -> Iterator[tuple[Group, int]]:
        """Yield every group depth-first with its nesting depth."""
        stack: list[tuple[Group, int]] = [(group, 0) for group in reversed(self._document.groups)]
        while stack:
            group, depth = stack.pop()
            yield group, depth
            stack.extend((child, depth + 1) for child in reversed(group.subgroups))

    def find_by_id(self, group_id: str) -> Optional[Group]:
        """Return the group with ``group_id`` anywhere in the forest, if any."""
        for group, _ in self.walk():
            if group.id == group_id:
                return group
        return None

    def find_parent(self, group_id: str) -> Optional[Group]:
        """Return the group owning ``group_id``; ``None`` for top-level or unknown ids."""
        for group, _ in self.walk():
            if any(child.id == group_id for child in group.subgroups):
                return group
        return None

    def sibling_list(self, group_id: str) -> Optional[list[Group]]:
        """Return the live list that contains ``group_id``, if it exists."""
        if any(group.id == group_id for group in self._document.groups):
            return self._document.groups
        parent = self.find_parent(group_id)
        return parent.subgroups if parent is not None else None

    def is_descendant(self, ancestor_id: str, group_id: str) -> bool:
        """Return whether ``group_id`` lies strictly inside ``ancestor_id``'s subtree."""
        ancestor = self.find_by_id(ancestor_id)
        if ancestor is None:
            return False
        pending = list(ancestor.subgroups)
        while pending:
            current = pending.pop()
            if current.id == group_id:
                return True
            pending.extend(current.subgroups)
        return False

    def is_file_in_any_group(self, relative_path: str) -> bool:
        """Return whether a top-level group directly holds ``relative_path``."""
        return bool(self.groups_containing_file(relative_path))

    def groups_containing_file(self, relative_path: str) -> list[Group]:
        """Return top-level groups whose direct files include ``relative_path``."""
        return [
            group
            for group in self._document.groups
            if any(file.relative_path == relative_path for file in group.files)
        ]

    def count_groups(self) -> int:
        """Return the number of groups at every depth."""
        return sum(1 for _ in self.walk())


__all__ = ["TreeStore"]
