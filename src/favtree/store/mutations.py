"""Mutation engine for the group forest."""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Protocol, TypeVar

from pydantic import ValidationError as PydanticValidationError

from favtree.workspace import relative_to_root

from .errors import (
    DuplicateError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from .ids import now_ms
from .models import (
    FileRef,
    FolderRef,
    ForestDocument,
    Group,
    ItemKind,
    ensure_valid_group_name,
)
from .tree import TreeStore

LOGGER = logging.getLogger(__name__)

UPDATABLE_GROUP_FIELDS = frozenset({"name", "description", "color", "is_expanded", "sort_index"})

Notifier = Callable[[str], None]
_F = TypeVar("_F", bound=Callable[..., bool])


class DocumentWriter(Protocol):
    """Anything able to persist the whole forest document."""

    def save(self, document: ForestDocument) -> None: ...


def _reported(method: _F) -> _F:
    """Turn validation, lookup, and duplicate failures into ``False`` plus a notice."""

    @functools.wraps(method)
    def wrapper(self: "MutationEngine", *args: Any, **kwargs: Any) -> bool:
        try:
            return method(self, *args, **kwargs)
        except (ValidationError, NotFoundError, DuplicateError) as exc:
            LOGGER.info("%s rejected: %s", method.__name__, exc)
            self._notify(str(exc))
            return False

    return wrapper  # type: ignore[return-value]


def _renumber(items: Iterable[Any]) -> None:
    for index, item in enumerate(items):
        item.sort_index = index


def _index_of(items: list[Any], item_id: str) -> int:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index
    return -1


class MutationEngine:
    """Apply validated mutations to a ``TreeStore`` and flush after each one.

    Every successful mutation writes the full document through ``writer``
    before returning. A write failure is logged and reported through
    ``notify`` but the in-memory change stays in place.
    """

    def __init__(
        self,
        store: TreeStore,
        writer: DocumentWriter,
        *,
        notify: Optional[Notifier] = None,
        root: Path | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Forest the engine mutates.
            writer: Persistence target flushed after each mutation.
            notify: Callback receiving user-facing notices.
            root: Project root used to relativize absolute paths.
        """
        self._store = store
        self._writer = writer
        self._notify_callback = notify
        self._root = root

    @property
    def store(self) -> TreeStore:
        """Return the forest this engine mutates."""
        return self._store

    # Groups -----------------------------------------------------------

    def create_group(
        self,
        name: str,
        description: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> Group:
        """Create an empty group at the top level or under ``parent_id``.

        Args:
            name: Display name; must satisfy the group naming rule.
            description: Optional description.
            parent_id: Identifier of the owning group, if any.

        Returns:
            Group: The newly attached group.

        Raises:
            ValidationError: If ``name`` is not a valid group name.
            NotFoundError: If ``parent_id`` does not resolve.
        """
        ensure_valid_group_name(name)
        parent: Optional[Group] = None
        if parent_id is not None:
            parent = self._require_group(parent_id)

        stamp = now_ms()
        group = Group(
            name=name,
            description=description or None,
            parent_id=parent_id,
            created_at=stamp,
            updated_at=stamp,
            is_expanded=True,
        )
        if parent is None:
            self._store.get_all_top_level().append(group)
        else:
            parent.subgroups.append(group)
            parent.updated_at = stamp

        LOGGER.debug("Created group %s (%s) under %s", group.name, group.id, parent_id or "root")
        self._flush()
        return group

    @_reported
    def update_group(self, group_id: str, **fields: Any) -> bool:
        """Shallow-merge ``fields`` into the group anywhere in the forest."""
        unknown = set(fields) - UPDATABLE_GROUP_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update group fields: {', '.join(sorted(unknown))}")
        if "name" in fields:
            ensure_valid_group_name(fields["name"])

        group = self._require_group(group_id)
        candidate = group.model_copy()
        try:
            for key, value in fields.items():
                setattr(candidate, key, value)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid group fields: {exc}") from exc
        for key in fields:
            setattr(group, key, getattr(candidate, key))
        group.touch()
        self._flush()
        return True

    @_reported
    def rename_group(self, group_id: str, name: str) -> bool:
        """Rename a group, rejecting a name already used by one of its siblings."""
        ensure_valid_group_name(name)
        siblings = self._store.sibling_list(group_id)
        if siblings is None:
            raise NotFoundError(f"Group '{group_id}' not found")
        if any(sibling.name == name and sibling.id != group_id for sibling in siblings):
            raise DuplicateError(f"A group named '{name}' already exists")
        return self.update_group(group_id, name=name)

    @_reported
    def delete_group(self, group_id: str) -> bool:
        """Remove a group together with its whole subtree."""
        siblings = self._store.sibling_list(group_id)
        if siblings is None:
            raise NotFoundError(f"Group '{group_id}' not found")
        parent = self._store.find_parent(group_id)
        del siblings[_index_of(siblings, group_id)]
        if parent is not None:
            parent.touch()
        self._flush()
        return True

    # Files and folders ------------------------------------------------

    @_reported
    def add_file_to_group(
        self, group_id: str, relative_path: str, label: Optional[str] = None
    ) -> bool:
        """Append a file reference unless the group already holds that path."""
        group = self._require_group(group_id)
        if any(file.relative_path == relative_path for file in group.files):
            raise DuplicateError(f"File already exists in group '{group.name}'")
        group.files.append(FileRef(relative_path=relative_path, label=label))
        group.touch()
        self._flush()
        return True

    @_reported
    def remove_file_from_group(self, group_id: str, file_id: str) -> bool:
        """Remove one file reference from a group."""
        return self._remove_item(group_id, file_id, "file")

    @_reported
    def add_folder_to_group(
        self, group_id: str, relative_path: str, label: Optional[str] = None
    ) -> bool:
        """Append a folder reference unless the group already holds that path."""
        group = self._require_group(group_id)
        if any(folder.relative_path == relative_path for folder in group.folders):
            raise DuplicateError(f"Folder already exists in group '{group.name}'")
        group.folders.append(FolderRef(relative_path=relative_path, label=label, expanded=True))
        group.touch()
        self._flush()
        return True

    @_reported
    def remove_folder_from_group(self, group_id: str, folder_id: str) -> bool:
        """Remove one folder reference from a group."""
        return self._remove_item(group_id, folder_id, "folder")

    def remove_file_everywhere(self, relative_path: str) -> int:
        """Drop ``relative_path`` from the direct file lists of top-level groups.

        Subgroups are not visited.

        Returns:
            int: Number of file references removed.
        """
        removed = 0
        for group in self._store.get_all_top_level():
            index = next(
                (i for i, file in enumerate(group.files) if file.relative_path == relative_path),
                -1,
            )
            if index != -1:
                del group.files[index]
                group.touch()
                removed += 1
        if removed:
            LOGGER.info("Removed deleted file %s from %d group(s)", relative_path, removed)
        self._flush()
        return removed

    def remove_path_everywhere(self, absolute_path: Path | str) -> int:
        """Relativize an externally deleted path and sweep it from the forest."""
        if self._root is None:
            LOGGER.debug("Ignoring deletion of %s; no project root.", absolute_path)
            return 0
        return self.remove_file_everywhere(relative_to_root(self._root, Path(absolute_path)))

    # Ordering ---------------------------------------------------------

    @_reported
    def reorder_items(self, group_id: str, item_id: str, new_index: int, kind: ItemKind) -> bool:
        """Move an item within its sibling list and renumber ``sort_index``.

        Returns ``False`` when the item is missing or already at ``new_index``.
        """
        group = self._require_group(group_id)
        items = group.items_of(kind)
        if not self._move_within(items, item_id, new_index):
            return False
        group.touch()
        self._flush()
        return True

    @_reported
    def reorder_top_level_groups(self, group_id: str, new_index: int) -> bool:
        """Move a top-level group within the top-level list and renumber it."""
        if not self._move_within(self._store.get_all_top_level(), group_id, new_index):
            return False
        self._flush()
        return True

    @_reported
    def move_between_groups(
        self, source_group_id: str, target_group_id: str, item_id: str, kind: ItemKind
    ) -> bool:
        """Move an item from one group's list to the end of another's.

        Subgroup moves rewrite the moved group's ``parent_id`` and refuse to
        attach a group beneath itself.
        """
        if source_group_id == target_group_id:
            raise ValidationError("Source and target group are the same")
        source = self._require_group(source_group_id)
        target = self._require_group(target_group_id)
        source_items = source.items_of(kind)
        target_items = target.items_of(kind)

        index = _index_of(source_items, item_id)
        if index == -1:
            raise NotFoundError(f"No {kind} '{item_id}' in group '{source.name}'")
        item = source_items[index]

        if kind == "subgroup":
            if item_id == target_group_id or self._store.is_descendant(item_id, target_group_id):
                raise ValidationError(f"Cannot move group '{item.name}' into its own subtree")
        elif any(other.relative_path == item.relative_path for other in target_items):
            raise DuplicateError(
                f"{kind.capitalize()} '{item.relative_path}' "
                f"already exists in group '{target.name}'"
            )

        del source_items[index]
        if kind == "subgroup":
            item.parent_id = target_group_id
        indexed = bool(target_items) and all(other.sort_index is not None for other in target_items)
        item.sort_index = len(target_items) if indexed else None
        target_items.append(item)
        if any(other.sort_index is not None for other in source_items):
            _renumber(source_items)

        stamp = now_ms()
        source.updated_at = stamp
        target.updated_at = stamp
        self._flush()
        return True

    # Whole-document operations -----------------------------------------

    def replace_document(self, document: ForestDocument) -> None:
        """Swap the entire document and flush it."""
        self._store.replace_document(document)
        self._flush()

    def append_groups(self, groups: Iterable[Group]) -> None:
        """Append top-level groups verbatim and flush."""
        self._store.get_all_top_level().extend(groups)
        self._flush()

    def flush(self) -> bool:
        """Write the document now; return whether the write succeeded."""
        return self._flush()

    # Internal helpers -------------------------------------------------

    def _require_group(self, group_id: str) -> Group:
        group = self._store.find_by_id(group_id)
        if group is None:
            raise NotFoundError(f"Group '{group_id}' not found")
        return group

    def _remove_item(self, group_id: str, item_id: str, kind: ItemKind) -> bool:
        group = self._require_group(group_id)
        items = group.items_of(kind)
        index = _index_of(items, item_id)
        if index == -1:
            raise NotFoundError(f"No {kind} '{item_id}' in group '{group.name}'")
        del items[index]
        group.touch()
        self._flush()
        return True

    def _move_within(self, items: list[Any], item_id: str, new_index: int) -> bool:
        old_index = _index_of(items, item_id)
        if old_index == -1:
            raise NotFoundError(f"Item '{item_id}' not found")
        if old_index == new_index:
            return False
        if new_index < 0 or new_index > len(items):
            raise ValidationError(f"Index {new_index} is outside 0..{len(items)}")
        moved = items.pop(old_index)
        items.insert(new_index, moved)
        _renumber(items)
        return True

    def _flush(self) -> bool:
        try:
            self._writer.save(self._store.document)
        except PersistenceError as exc:
            LOGGER.error("Error saving favorites: %s", exc)
            self._notify(f"Failed to save favorites: {exc}")
            return False
        return True

    def _notify(self, message: str) -> None:
        if self._notify_callback is not None:
            self._notify_callback(message)


__all__ = ["MutationEngine", "DocumentWriter", "Notifier", "UPDATABLE_GROUP_FIELDS"]
