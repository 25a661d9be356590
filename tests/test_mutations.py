"""Tests for the mutation engine."""

from __future__ import annotations

import time
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from favtree.config import ConfigManager
from favtree.session import open_session
from favtree.store import (
    FileRef,
    FolderRef,
    ForestDocument,
    Group,
    MutationEngine,
    NotFoundError,
    PersistenceError,
    TreeStore,
    ValidationError,
)


class RecordingWriter:
    """Document writer that records payloads and can be told to fail."""

    def __init__(self) -> None:
        self.saved: list[dict] = []
        self.fail = False

    def save(self, document: ForestDocument) -> None:
        if self.fail:
            raise PersistenceError("disk full")
        self.saved.append(document.to_payload())


def _engine(
    groups: list[Group] | None = None, *, root: Path | None = None
) -> tuple[MutationEngine, RecordingWriter, list[str]]:
    writer = RecordingWriter()
    notices: list[str] = []
    store = TreeStore(ForestDocument(groups=groups or []))
    return MutationEngine(store, writer, notify=notices.append, root=root), writer, notices


def _files(*paths: str) -> list[FileRef]:
    return [FileRef(id=f"f{index}", relative_path=path) for index, path in enumerate(paths)]


def test_create_top_level_group_sets_fields_and_flushes() -> None:
    engine, writer, _ = _engine()

    group = engine.create_group("Work", "Daily files")

    assert engine.store.get_all_top_level() == [group]
    assert group.description == "Daily files"
    assert group.parent_id is None
    assert group.created_at == group.updated_at
    assert group.is_expanded is True
    assert group.files == [] and group.folders == [] and group.subgroups == []
    assert len(writer.saved) == 1
    assert writer.saved[0]["groups"][0]["name"] == "Work"


def test_create_subgroup_attaches_under_parent_and_touches_it() -> None:
    parent = Group(id="p", name="Parent", created_at=1, updated_at=1)
    engine, _, _ = _engine([parent])

    child = engine.create_group("Child", parent_id="p")

    assert parent.subgroups == [child]
    assert child.parent_id == "p"
    assert parent.updated_at == child.created_at
    assert engine.store.get_all_top_level() == [parent]


def test_create_group_rejects_invalid_name_without_changes() -> None:
    engine, writer, _ = _engine()

    with pytest.raises(ValidationError):
        engine.create_group("bad/name")

    assert engine.store.get_all_top_level() == []
    assert writer.saved == []


def test_create_group_with_missing_parent_raises() -> None:
    engine, writer, _ = _engine()

    with pytest.raises(NotFoundError):
        engine.create_group("Child", parent_id="nope")

    assert writer.saved == []


def test_rename_updates_name_and_timestamp() -> None:
    group = Group(id="g", name="Old", created_at=1, updated_at=1)
    engine, writer, _ = _engine([group])

    assert engine.rename_group("g", "New")

    assert group.name == "New"
    assert group.updated_at > 1
    assert len(writer.saved) == 1


def test_rename_rejects_sibling_duplicate() -> None:
    engine, writer, notices = _engine([Group(id="a", name="A"), Group(id="b", name="B")])

    assert not engine.rename_group("b", "A")

    assert engine.store.find_by_id("b").name == "B"
    assert writer.saved == []
    assert notices == ["A group named 'A' already exists"]


def test_rename_allows_same_name_in_other_parent() -> None:
    nested = Group(id="n", name="Nested", parent_id="a")
    engine, _, _ = _engine([Group(id="a", name="A", subgroups=[nested]), Group(id="b", name="B")])

    assert engine.rename_group("n", "B")
    assert nested.name == "B"


def test_rename_invalid_name_reports_and_returns_false() -> None:
    engine, writer, notices = _engine([Group(id="g", name="Good")])

    assert not engine.rename_group("g", "")

    assert writer.saved == []
    assert notices == ["Group name is required"]


def test_update_group_rejects_unknown_fields() -> None:
    engine, writer, _ = _engine([Group(id="g", name="Good")])

    assert not engine.update_group("g", files=[])
    assert writer.saved == []


def test_update_group_merges_fields_for_nested_group() -> None:
    nested = Group(id="n", name="Nested", parent_id="top")
    engine, _, _ = _engine([Group(id="top", name="Top", subgroups=[nested])])

    assert engine.update_group("n", description="about", color="blue", is_expanded=False)

    assert (nested.description, nested.color, nested.is_expanded) == ("about", "blue", False)


def test_delete_group_removes_whole_subtree() -> None:
    leaf = Group(id="leaf", name="Leaf", parent_id="child")
    child = Group(id="child", name="Child", parent_id="top", subgroups=[leaf])
    engine, writer, _ = _engine([Group(id="top", name="Top", subgroups=[child])])

    assert engine.delete_group("top")

    assert engine.store.find_by_id("top") is None
    assert engine.store.find_by_id("leaf") is None
    assert writer.saved[-1]["groups"] == []


def test_delete_nested_group_touches_parent() -> None:
    child = Group(id="child", name="Child", parent_id="top")
    top = Group(id="top", name="Top", subgroups=[child], updated_at=1)
    engine, _, _ = _engine([top])

    assert engine.delete_group("child")

    assert top.subgroups == []
    assert top.updated_at > 1


def test_delete_missing_group_returns_false() -> None:
    engine, writer, notices = _engine()

    assert not engine.delete_group("ghost")
    assert writer.saved == []
    assert notices


def test_add_file_rejects_duplicate_path() -> None:
    group = Group(id="g", name="Docs")
    engine, writer, notices = _engine([group])

    assert engine.add_file_to_group("g", "src/a.py")
    assert not engine.add_file_to_group("g", "src/a.py")

    assert [file.relative_path for file in group.files] == ["src/a.py"]
    assert len(writer.saved) == 1
    assert notices == ["File already exists in group 'Docs'"]


def test_same_path_allowed_in_different_groups() -> None:
    engine, _, _ = _engine([Group(id="a", name="A"), Group(id="b", name="B")])

    assert engine.add_file_to_group("a", "src/a.py")
    assert engine.add_file_to_group("b", "src/a.py")


def test_add_folder_defaults_to_expanded() -> None:
    group = Group(id="g", name="Docs")
    engine, _, _ = _engine([group])

    assert engine.add_folder_to_group("g", "docs", label="Documentation")

    assert group.folders[0].expanded is True
    assert group.folders[0].label == "Documentation"
    assert not engine.add_folder_to_group("g", "docs")


def test_add_to_missing_group_returns_false() -> None:
    engine, writer, _ = _engine()

    assert not engine.add_file_to_group("ghost", "a.txt")
    assert writer.saved == []


def test_remove_file_and_folder() -> None:
    group = Group(
        id="g",
        name="Docs",
        files=_files("a.txt"),
        folders=[FolderRef(id="d0", relative_path="docs")],
    )
    engine, writer, _ = _engine([group])

    assert engine.remove_file_from_group("g", "f0")
    assert engine.remove_folder_from_group("g", "d0")
    assert not engine.remove_file_from_group("g", "f0")

    assert group.files == [] and group.folders == []
    assert len(writer.saved) == 2


def test_remove_file_everywhere_only_visits_top_level() -> None:
    nested = Group(id="n", name="Nested", parent_id="a", files=_files("x.txt"))
    first = Group(id="a", name="A", files=_files("x.txt", "y.txt"), subgroups=[nested])
    second = Group(id="b", name="B", files=_files("x.txt"))
    engine, writer, _ = _engine([first, second])

    assert engine.remove_file_everywhere("x.txt") == 2

    assert [file.relative_path for file in first.files] == ["y.txt"]
    assert second.files == []
    assert [file.relative_path for file in nested.files] == ["x.txt"]
    assert len(writer.saved) == 1


def test_remove_file_everywhere_flushes_even_without_matches() -> None:
    engine, writer, _ = _engine([Group(id="a", name="A")])

    assert engine.remove_file_everywhere("missing.txt") == 0
    assert len(writer.saved) == 1


def test_remove_path_everywhere_relativizes_against_root(tmp_path: Path) -> None:
    group = Group(id="a", name="A", files=_files("src/main.py"))
    engine, _, _ = _engine([group], root=tmp_path)

    assert engine.remove_path_everywhere(tmp_path / "src" / "main.py") == 1
    assert group.files == []


def test_remove_path_everywhere_without_root_is_noop() -> None:
    group = Group(id="a", name="A", files=_files("main.py"))
    engine, writer, _ = _engine([group])

    assert engine.remove_path_everywhere("/elsewhere/main.py") == 0
    assert len(group.files) == 1
    assert writer.saved == []


def test_reorder_items_renumbers_sort_index() -> None:
    group = Group(id="g", name="G", files=_files("a", "b", "c"))
    engine, writer, _ = _engine([group])

    assert engine.reorder_items("g", "f2", 0, "file")

    assert [file.relative_path for file in group.files] == ["c", "a", "b"]
    assert [file.sort_index for file in group.files] == [0, 1, 2]
    assert len(writer.saved) == 1


def test_reorder_to_same_index_is_noop() -> None:
    group = Group(id="g", name="G", files=_files("a", "b"))
    engine, writer, _ = _engine([group])

    assert not engine.reorder_items("g", "f1", 1, "file")
    assert writer.saved == []
    assert [file.sort_index for file in group.files] == [None, None]


def test_reorder_missing_item_returns_false() -> None:
    engine, writer, _ = _engine([Group(id="g", name="G", files=_files("a"))])

    assert not engine.reorder_items("g", "nope", 0, "file")
    assert writer.saved == []


def test_reorder_out_of_range_index_is_rejected() -> None:
    group = Group(id="g", name="G", files=_files("a", "b"))
    engine, writer, notices = _engine([group])

    assert not engine.reorder_items("g", "f0", 5, "file")
    assert not engine.reorder_items("g", "f0", -1, "file")

    assert [file.relative_path for file in group.files] == ["a", "b"]
    assert writer.saved == []
    assert len(notices) == 2


def test_reorder_subgroups() -> None:
    kids = [Group(id=f"s{i}", name=f"S{i}", parent_id="g") for i in range(3)]
    group = Group(id="g", name="G", subgroups=kids)
    engine, _, _ = _engine([group])

    assert engine.reorder_items("g", "s0", 2, "subgroup")

    assert [kid.id for kid in group.subgroups] == ["s1", "s2", "s0"]
    assert [kid.sort_index for kid in group.subgroups] == [0, 1, 2]


def test_reorder_top_level_groups() -> None:
    engine, writer, _ = _engine([Group(id=name, name=name) for name in ("A", "B", "C")])

    assert engine.reorder_top_level_groups("C", 1)

    top = engine.store.get_all_top_level()
    assert [group.id for group in top] == ["A", "C", "B"]
    assert [group.sort_index for group in top] == [0, 1, 2]
    assert len(writer.saved) == 1


def test_move_file_between_groups() -> None:
    source = Group(id="s", name="Source", files=_files("a.txt"), updated_at=1)
    target = Group(id="t", name="Target", updated_at=1)
    engine, writer, _ = _engine([source, target])

    assert engine.move_between_groups("s", "t", "f0", "file")

    assert source.files == []
    assert [file.relative_path for file in target.files] == ["a.txt"]
    assert source.updated_at == target.updated_at > 1
    assert len(writer.saved) == 1


def test_move_rejects_duplicate_path_in_target() -> None:
    source = Group(id="s", name="Source", files=_files("a.txt"))
    target = Group(id="t", name="Target", files=[FileRef(id="other", relative_path="a.txt")])
    engine, writer, notices = _engine([source, target])

    assert not engine.move_between_groups("s", "t", "f0", "file")

    assert len(source.files) == 1 and len(target.files) == 1
    assert writer.saved == []
    assert notices == ["File 'a.txt' already exists in group 'Target'"]


def test_move_subgroup_rewrites_parent_id() -> None:
    child = Group(id="c", name="Child", parent_id="a")
    engine, _, _ = _engine([Group(id="a", name="A", subgroups=[child]), Group(id="b", name="B")])

    assert engine.move_between_groups("a", "b", "c", "subgroup")

    assert engine.store.find_parent("c").id == "b"
    assert child.parent_id == "b"


def test_move_subgroup_into_own_descendant_is_rejected() -> None:
    leaf = Group(id="leaf", name="Leaf", parent_id="mid")
    mid = Group(id="mid", name="Mid", parent_id="top", subgroups=[leaf])
    top = Group(id="top", name="Top", subgroups=[mid])
    engine, writer, _ = _engine([top])

    assert not engine.move_between_groups("top", "leaf", "mid", "subgroup")

    assert top.subgroups == [mid]
    assert engine.store.find_parent("leaf").id == "mid"
    assert writer.saved == []


def test_move_to_same_group_is_rejected() -> None:
    engine, writer, _ = _engine([Group(id="g", name="G", files=_files("a"))])

    assert not engine.move_between_groups("g", "g", "f0", "file")
    assert writer.saved == []


def test_move_appends_with_next_sort_index_when_target_is_indexed() -> None:
    source = Group(id="s", name="S", files=_files("a", "b"))
    target = Group(id="t", name="T", files=[FileRef(id="x", relative_path="x", sort_index=0)])
    source.files[0].sort_index = 0
    source.files[1].sort_index = 1
    engine, _, _ = _engine([source, target])

    assert engine.move_between_groups("s", "t", "f0", "file")

    assert [file.sort_index for file in target.files] == [0, 1]
    assert [file.sort_index for file in source.files] == [0]


def test_move_missing_item_returns_false() -> None:
    engine, writer, _ = _engine([Group(id="s", name="S"), Group(id="t", name="T")])

    assert not engine.move_between_groups("s", "t", "ghost", "folder")
    assert writer.saved == []


def test_failed_flush_keeps_in_memory_change_and_notifies() -> None:
    engine, writer, notices = _engine([Group(id="g", name="G")])
    writer.fail = True

    assert engine.add_file_to_group("g", "a.txt")

    assert [file.relative_path for file in engine.store.find_by_id("g").files] == ["a.txt"]
    assert notices == ["Failed to save favorites: disk full"]
    assert not engine.flush()


def test_append_and_replace_document_flush() -> None:
    engine, writer, _ = _engine([Group(id="g", name="G")])

    engine.append_groups([Group(name="Extra")])
    engine.replace_document(ForestDocument(version="9", groups=[]))

    assert len(writer.saved) == 2
    assert writer.saved[0]["groups"][1]["name"] == "Extra"
    assert engine.store.version == "9"


def test_updated_at_never_precedes_created_at() -> None:
    engine, _, _ = _engine()
    group = engine.create_group("Timed")
    time.sleep(0.002)

    engine.add_file_to_group(group.id, "a.txt")

    assert group.updated_at >= group.created_at


def test_scenario_reorder_second_file_to_front() -> None:
    engine, _, _ = _engine()
    group = engine.create_group("A")
    engine.add_file_to_group(group.id, "x.ts")
    engine.add_file_to_group(group.id, "y.ts")
    y_id = group.files[1].id

    assert engine.reorder_items(group.id, y_id, 0, "file")

    stored = engine.store.find_by_id(group.id).files
    assert [file.relative_path for file in stored] == ["y.ts", "x.ts"]
    assert [file.sort_index for file in stored] == [0, 1]


def test_scenario_move_file_between_new_groups() -> None:
    engine, _, _ = _engine()
    first = engine.create_group("A")
    second = engine.create_group("B")
    engine.add_file_to_group(first.id, "z.ts")

    assert engine.move_between_groups(first.id, second.id, first.files[0].id, "file")

    assert engine.store.find_by_id(first.id).files == []
    assert [file.relative_path for file in engine.store.find_by_id(second.id).files] == ["z.ts"]


def test_scenario_deleting_group_removes_its_subgroup() -> None:
    engine, _, _ = _engine()
    parent = engine.create_group("A")
    child = engine.create_group("A1", parent_id=parent.id)

    assert engine.delete_group(parent.id)

    assert engine.store.find_by_id(child.id) is None


def test_flush_with_broken_configuration_notifies_instead_of_raising(tmp_path: Path) -> None:
    root = tmp_path / "project"
    root.mkdir()
    manager = ConfigManager(tmp_path / "config.yaml", env={})
    notices: list[str] = []
    session = open_session(root, config_manager=manager, notify=notices.append)
    group = session.engine.create_group("A")
    manager.config_path.write_text("storage:\n  location: nowhere\n", encoding="utf-8")

    assert session.engine.add_file_to_group(group.id, "x.py")

    assert [file.relative_path for file in group.files] == ["x.py"]
    assert len(notices) == 1
    assert notices[0].startswith("Failed to save favorites: Cannot choose a favorites backend")


def test_update_group_rejects_badly_typed_fields() -> None:
    group = Group(id="g", name="G", sort_index=2, updated_at=1)
    engine, writer, notices = _engine([group])

    assert not engine.update_group("g", color="red", sort_index="x")

    assert group.sort_index == 2
    assert group.color is None
    assert group.updated_at == 1
    assert writer.saved == []
    assert notices[0].startswith("Invalid group fields")


def test_models_validate_assignment() -> None:
    file = FileRef(relative_path="a.txt")

    with pytest.raises(PydanticValidationError):
        file.sort_index = "first"  # type: ignore[assignment]
