"""Hierarchical group store: models, forest queries, and mutations."""

from .errors import (
    CommandCancelled,
    DuplicateError,
    FavtreeError,
    FormatError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from .models import (
    DOCUMENT_VERSION,
    FileRef,
    FolderRef,
    ForestDocument,
    Group,
    ItemKind,
    SortOrder,
    StorageLocation,
    group_name_problem,
)
from .mutations import MutationEngine
from .ordering import TreeNode, group_children, sort_groups, sort_items, top_level_nodes
from .tree import TreeStore

__all__ = [
    "DOCUMENT_VERSION",
    "FileRef",
    "FolderRef",
    "ForestDocument",
    "Group",
    "ItemKind",
    "SortOrder",
    "StorageLocation",
    "group_name_problem",
    "TreeStore",
    "MutationEngine",
    "TreeNode",
    "group_children",
    "sort_groups",
    "sort_items",
    "top_level_nodes",
    "FavtreeError",
    "ValidationError",
    "NotFoundError",
    "DuplicateError",
    "FormatError",
    "PersistenceError",
    "CommandCancelled",
]
