"""Tests for drag-and-drop translation."""

from __future__ import annotations

from pathlib import Path

from favtree.config import ConfigManager
from favtree.dragdrop import DragItem, DropController, locate_node
from favtree.session import Session, open_session
from favtree.store import CommandCancelled


class SilentPrompter:
    """Prompter that only collects notices."""

    def __init__(self) -> None:
        self.notices: list[str] = []

    def prompt_text(self, message: str, **_: object) -> str:
        raise CommandCancelled(message)

    def pick(self, message: str, options: object) -> int:
        raise CommandCancelled(message)

    def confirm(self, message: str) -> bool:
        raise CommandCancelled(message)

    def notify(self, message: str) -> None:
        self.notices.append(message)


def _session(tmp_path: Path) -> Session:
    root = tmp_path / "project"
    root.mkdir()
    return open_session(root, config_manager=ConfigManager(tmp_path / "config.yaml", env={}))


def _seed(session: Session) -> tuple[str, str, str]:
    """Create two groups and a nested subgroup; return their ids."""
    first = session.engine.create_group("First")
    second = session.engine.create_group("Second")
    nested = session.engine.create_group("Nested", parent_id=first.id)
    for name in ("a.txt", "b.txt", "c.txt"):
        session.engine.add_file_to_group(first.id, name)
    return first.id, second.id, nested.id


def _node(session: Session, node_id: str):
    node = locate_node(session.store, node_id)
    assert node is not None
    return node


def test_locate_node_distinguishes_kinds(tmp_path: Path) -> None:
    session = _session(tmp_path)
    first_id, _, nested_id = _seed(session)
    file_id = session.store.find_by_id(first_id).files[0].id

    assert _node(session, first_id).kind == "group"
    assert _node(session, nested_id).kind == "subgroup"
    file_node = _node(session, file_id)
    assert (file_node.kind, file_node.group_id) == ("file", first_id)
    assert locate_node(session.store, "missing") is None


def test_drag_resolves_subgroup_owner(tmp_path: Path) -> None:
    session = _session(tmp_path)
    first_id, second_id, nested_id = _seed(session)
    controller = DropController(session, SilentPrompter())

    items = controller.drag([_node(session, nested_id), _node(session, second_id)])

    assert items == [
        DragItem("subgroup", nested_id, first_id),
        DragItem("group", second_id, None),
    ]


def test_drop_onto_sibling_file_reorders_and_switches_to_custom(tmp_path: Path) -> None:
    session = _session(tmp_path)
    first_id, _, _ = _seed(session)
    files = session.store.find_by_id(first_id).files
    prompter = SilentPrompter()
    controller = DropController(session, prompter)

    dragged = controller.drag([_node(session, files[2].id)])
    assert controller.drop(_node(session, files[0].id), dragged)

    relative_paths = [file.relative_path for file in session.store.find_by_id(first_id).files]
    assert relative_paths == ["c.txt", "a.txt", "b.txt"]
    assert session.config().view.sort_order == "custom"
    assert prompter.notices == ['Sort order changed to "custom" to allow manual reordering']


def test_drop_file_onto_group_moves_it(tmp_path: Path) -> None:
    session = _session(tmp_path)
    first_id, second_id, _ = _seed(session)
    file_id = session.store.find_by_id(first_id).files[0].id
    controller = DropController(session, SilentPrompter())

    assert controller.drop(_node(session, second_id), controller.drag([_node(session, file_id)]))

    assert [file.relative_path for file in session.store.find_by_id(second_id).files] == ["a.txt"]
    assert len(session.store.find_by_id(first_id).files) == 2


def test_drop_subgroup_onto_other_group_moves_it(tmp_path: Path) -> None:
    session = _session(tmp_path)
    _, second_id, nested_id = _seed(session)
    controller = DropController(session, SilentPrompter())

    assert controller.drop(_node(session, second_id), controller.drag([_node(session, nested_id)]))

    assert session.store.find_parent(nested_id).id == second_id


def test_drop_top_level_group_is_ignored(tmp_path: Path) -> None:
    session = _session(tmp_path)
    first_id, second_id, _ = _seed(session)
    controller = DropController(session, SilentPrompter())

    dragged = controller.drag([_node(session, second_id)])
    assert not controller.drop(_node(session, first_id), dragged)


def test_drop_ignores_multi_item_and_cross_kind_drops(tmp_path: Path) -> None:
    session = _session(tmp_path)
    first_id, second_id, nested_id = _seed(session)
    files = session.store.find_by_id(first_id).files
    controller = DropController(session, SilentPrompter())

    two = controller.drag([_node(session, files[0].id), _node(session, files[1].id)])
    assert not controller.drop(_node(session, second_id), two)

    subgroup = controller.drag([_node(session, nested_id)])
    assert not controller.drop(_node(session, files[0].id), subgroup)
    assert not controller.drop(None, subgroup)


def test_drop_disabled_by_configuration(tmp_path: Path) -> None:
    session = _session(tmp_path)
    first_id, second_id, _ = _seed(session)
    session.config_manager.set_value("behavior.enable_drag_and_drop", False)
    file_id = session.store.find_by_id(first_id).files[0].id
    controller = DropController(session, SilentPrompter())

    dragged = controller.drag([_node(session, file_id)])
    assert not controller.drop(_node(session, second_id), dragged)
    assert len(session.store.find_by_id(first_id).files) == 3


def test_drop_paths_adds_files_and_folders(tmp_path: Path) -> None:
    session = _session(tmp_path)
    _, second_id, _ = _seed(session)
    (session.root / "docs").mkdir()
    (session.root / "notes.md").write_text("n", encoding="utf-8")
    controller = DropController(session, SilentPrompter())

    added = controller.drop_paths(
        _node(session, second_id),
        [session.root / "docs", session.root / "notes.md", session.root / "ghost.md"],
    )

    second = session.store.find_by_id(second_id)
    assert added == 2
    assert [folder.relative_path for folder in second.folders] == ["docs"]
    assert [file.relative_path for file in second.files] == ["notes.md"]
