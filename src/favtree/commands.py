"""Interactive command flows: prompt, validate, then mutate.

Each flow gathers every answer it needs before touching the store, so a
dismissed prompt (``CommandCancelled``) leaves nothing half-applied.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

from favtree.codec import (
    IMPORT_MODE_LABELS,
    ImportMode,
    ImportResult,
    import_document,
    parse_document,
)
from favtree.session import Session
from favtree.store.errors import NotFoundError
from favtree.store.models import Group, group_name_problem
from favtree.workspace import collect_group_files, relative_to_root

LOGGER = logging.getLogger(__name__)

Validator = Callable[[str], Optional[str]]


class Prompter(Protocol):
    """User interaction collaborator used by command flows.

    Every method raises ``CommandCancelled`` when the user dismisses it.
    """

    def prompt_text(
        self,
        message: str,
        *,
        default: Optional[str] = None,
        validate: Optional[Validator] = None,
        required: bool = True,
    ) -> str: ...

    def pick(self, message: str, options: Sequence[str]) -> int: ...

    def confirm(self, message: str) -> bool: ...

    def notify(self, message: str) -> None: ...


def _require(session: Session, group_id: str) -> Group:
    group = session.store.find_by_id(group_id)
    if group is None:
        raise NotFoundError(f"Group '{group_id}' not found")
    return group


def _add_path(session: Session, group: Group, path: Path) -> bool:
    if session.root is None:
        LOGGER.warning("Cannot add %s without a project root.", path)
        return False
    relative_path = relative_to_root(session.root, path)
    if path.is_dir():
        return session.engine.add_folder_to_group(group.id, relative_path)
    return session.engine.add_file_to_group(group.id, relative_path)


def group_picker_labels(session: Session) -> list[tuple[str, Group]]:
    """Return indented picker labels for every group, depth-first."""
    labels = []
    for group, depth in session.store.walk():
        count = len(group.files) + len(group.folders)
        labels.append((f"{'  ' * depth}{group.name} ({count} items)", group))
    return labels


def select_group(session: Session, prompter: Prompter, message: str) -> Group:
    """Ask the user to choose any group in the forest."""
    choices = group_picker_labels(session)
    index = prompter.pick(message, [label for label, _ in choices])
    return choices[index][1]


def create_group_flow(
    session: Session,
    prompter: Prompter,
    *,
    parent_id: Optional[str] = None,
    path: Optional[Path] = None,
) -> Group:
    """Prompt for a name and description, create the group, and seed it with ``path``."""
    noun = "subgroup" if parent_id else "group"
    name = prompter.prompt_text(f"Enter {noun} name", validate=group_name_problem)
    description = prompter.prompt_text(f"Enter {noun} description (optional)", required=False)

    group = session.engine.create_group(name, description or None, parent_id)
    if path is not None:
        _add_path(session, group, path)
    prompter.notify(f"{noun.capitalize()} '{name}' created")
    return group


def rename_group_flow(session: Session, prompter: Prompter, group_id: str) -> bool:
    """Prompt for a new name that no sibling uses, then rename."""
    group = _require(session, group_id)

    def _validate(value: str) -> Optional[str]:
        problem = group_name_problem(value)
        if problem:
            return problem
        siblings = session.store.sibling_list(group_id) or []
        if value != group.name and any(
            sibling.name == value and sibling.id != group_id for sibling in siblings
        ):
            return "A group with this name already exists"
        return None

    new_name = prompter.prompt_text("Enter new group name", default=group.name, validate=_validate)
    if new_name == group.name:
        return False
    if session.engine.rename_group(group_id, new_name):
        prompter.notify(f"Group renamed to '{new_name}'")
        return True
    return False


def delete_group_flow(session: Session, prompter: Prompter, group_id: str) -> bool:
    """Delete a group, asking first when the configuration requires it."""
    group = _require(session, group_id)
    if session.config().behavior.confirm_delete:
        message = (
            f"Delete group '{group.name}' and all its subgroups?"
            if group.subgroups
            else f"Delete group '{group.name}'?"
        )
        if not prompter.confirm(message):
            return False
    if session.engine.delete_group(group_id):
        prompter.notify(f"Group '{group.name}' deleted")
        return True
    return False


def add_path_flow(session: Session, prompter: Prompter, path: Path) -> bool:
    """Add a file or folder to a chosen group, offering to create one if none exist."""
    if not session.store.get_all_top_level():
        if prompter.confirm("No groups found. Would you like to create one?"):
            create_group_flow(session, prompter, path=path)
            return True
        return False

    kind = "folder" if path.is_dir() else "file"
    group = select_group(session, prompter, f"Select a group to add the {kind} to")
    if _add_path(session, group, path):
        prompter.notify(f"Added {kind} to group '{group.name}'")
        return True
    return False


def ensure_custom_order(session: Session, prompter: Prompter) -> None:
    """Switch the configured sort order to ``custom`` so manual moves show."""
    if session.config().view.sort_order != "custom":
        session.config_manager.set_value("view.sort_order", "custom")
        prompter.notify('Sort order changed to "custom" to allow manual reordering')


def shift_group_flow(session: Session, prompter: Prompter, group_id: str, offset: int) -> bool:
    """Move a top-level group one slot up (``-1``) or down (``+1``)."""
    _require(session, group_id)
    groups = session.store.get_all_top_level()
    positions = {candidate.id: index for index, candidate in enumerate(groups)}
    if group_id not in positions:
        prompter.notify("Only top-level groups can be reordered")
        return False

    target = positions[group_id] + offset
    if target < 0:
        prompter.notify("Group is already at the top")
        return False
    if target >= len(groups):
        prompter.notify("Group is already at the bottom")
        return False

    ensure_custom_order(session, prompter)
    return session.engine.reorder_top_level_groups(group_id, target)


def import_flow(session: Session, prompter: Prompter, data: bytes) -> ImportResult:
    """Validate an import payload, ask how to apply it, then apply it.

    Raises:
        FormatError: If the payload is malformed; nothing is applied.
    """
    parse_document(data)
    modes: list[ImportMode] = ["replace", "merge"]
    index = prompter.pick(
        "How should the imported data be handled?", [IMPORT_MODE_LABELS[mode] for mode in modes]
    )
    result = import_document(session.engine, data, modes[index])
    prompter.notify("Groups imported successfully")
    return result


def open_all_files_flow(session: Session, prompter: Prompter, group_id: str) -> list[Path]:
    """Return the files a bulk open of the group should open, honoring the cap."""
    group = _require(session, group_id)
    if session.root is None:
        return []
    files = collect_group_files(group, session.root)
    if not files:
        prompter.notify(f"No files in group '{group.name}'")
        return []

    limit = session.config().behavior.open_all_files_limit
    if len(files) > limit and not prompter.confirm(
        f"This group contains {len(files)} files. Only the first {limit} will be opened. Continue?"
    ):
        return []
    return files[:limit]


__all__ = [
    "Prompter",
    "Validator",
    "group_picker_labels",
    "select_group",
    "create_group_flow",
    "rename_group_flow",
    "delete_group_flow",
    "add_path_flow",
    "ensure_custom_order",
    "shift_group_flow",
    "import_flow",
    "open_all_files_flow",
]
