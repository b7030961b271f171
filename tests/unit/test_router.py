"""Tests for EditorSession: intents, rename state, confirmation and history."""

import asyncio

import pytest

from tests.unit.fakes import FakeClipboard, FakeConfirm, names
from tree_editor.config import DEFAULT_NODE_NAME
from tree_editor.core.history import HistoryLog
from tree_editor.core.importer.json_reader import export_document
from tree_editor.core.router import Direction, EditorSession, Intent
from tree_editor.core.tree import store
from tree_editor.models.node import Document, Node


def _children(session: EditorSession, node_id: str) -> list[str]:
    node = store.find_by_id(session.document, node_id)
    assert node is not None
    return [child.id for child in node.children]


def test_edit_scenario_with_store_and_history() -> None:
    """Add A, add B under it, rename to B2, then walk the history both ways."""
    history = HistoryLog()
    document = Document()
    history.record(document)
    document = store.add_root(document, Node(id="A", name="A"))
    history.record(document)
    document = store.add_child(document, "A", Node(id="B", name="B"))
    history.record(document)
    document = store.rename(document, "B", "B2")
    history.record(document)

    assert export_document(document) == {
        "id": "A",
        "name": "A",
        "children": [{"id": "B", "name": "B2", "children": []}],
    }

    undone = history.undo()
    assert undone is not None
    assert store.find_by_id(undone, "B") == Node(id="B", name="B")
    undone = history.undo()
    assert undone is not None
    assert store.find_by_id(undone, "B") is None

    history.redo()
    assert history.redo() == document


def test_new_session_is_empty() -> None:
    session = EditorSession()
    assert session.document.is_empty
    assert not session.history.can_undo
    assert session.selected is None


def test_add_root_on_empty_document_starts_renaming() -> None:
    session = EditorSession()

    assert session.dispatch(Intent.ADD_ROOT)

    root = session.document.roots[0]
    assert root.name == DEFAULT_NODE_NAME
    assert session.selection == [root.id]
    assert session.editing == root.id


def test_add_child_then_other_intent_commits_pending_rename(session: EditorSession) -> None:
    session.select(["c"])
    session.dispatch(Intent.ADD_CHILD)
    new_id = session.editing
    assert new_id is not None

    session.set_edit_text("Typed name")
    session.dispatch(Intent.NAVIGATE, direction=Direction.LEFT)

    node = store.find_by_id(session.document, new_id)
    assert node is not None
    assert node.name == "Typed name"
    assert session.editing is None
    assert session.selection == ["c"]


def test_add_sibling_and_parent(session: EditorSession) -> None:
    session.select(["a1"])
    session.add_sibling()
    assert len(_children(session, "a")) == 3

    session.select(["c"])
    session.add_parent()
    wrapper = session.selected
    assert wrapper is not None
    assert _children(session, wrapper) == ["c"]


def test_add_sibling_of_top_level_node_adds_root(session: EditorSession) -> None:
    session.select(["root"])
    session.dispatch("add-sibling")
    assert len(session.document.roots) == 2


def test_structural_intents_need_a_selection(session: EditorSession) -> None:
    for intent in (Intent.ADD_CHILD, Intent.ADD_SIBLING, Intent.ADD_PARENT, Intent.DELETE):
        assert not session.dispatch(intent)
    assert not session.history.can_undo


def test_rename_commit_and_blank_revert(session: EditorSession) -> None:
    session.select(["c"])
    session.dispatch(Intent.BEGIN_RENAME)
    assert session.edit_text == "C"
    assert session.dispatch(Intent.RENAME, text="  Charlie ")
    assert store.find_by_id(session.document, "c") == Node(id="c", name="Charlie")

    session.dispatch(Intent.BEGIN_RENAME)
    assert not session.dispatch(Intent.RENAME, text="   ")
    assert store.find_by_id(session.document, "c") == Node(id="c", name="Charlie")
    assert session.editing is None


def test_cancel_rename_keeps_the_old_name(session: EditorSession) -> None:
    session.select(["c"])
    session.begin_rename()
    session.set_edit_text("Nope")

    assert session.dispatch(Intent.CANCEL_RENAME)
    assert store.find_by_id(session.document, "c") == Node(id="c", name="C")
    assert not session.history.can_undo


def test_delete_leaf_moves_selection_without_asking(
    session: EditorSession, confirm: FakeConfirm
) -> None:
    session.select(["a1"])

    assert session.dispatch(Intent.DELETE)

    assert _children(session, "a") == ["a2"]
    assert session.selection == ["a2"]
    assert confirm.messages == []


def test_delete_with_children_asks_first(session: EditorSession, confirm: FakeConfirm) -> None:
    session.select(["a"])

    assert session.dispatch(Intent.DELETE)

    assert confirm.messages == ["Delete 'A' and its 2 descendant node(s)?"]
    assert store.find_by_id(session.document, "a1") is None
    assert session.selection == ["b"]


def test_declined_delete_changes_nothing(document: Document) -> None:
    session = EditorSession(document, confirm=FakeConfirm(answer=False))
    session.select(["a"])

    assert not session.dispatch(Intent.DELETE)
    assert session.document is document


def test_default_confirmation_declines(document: Document) -> None:
    session = EditorSession(document)
    session.select(["root"])
    assert not session.delete()


def test_delete_last_root_empties_document(confirm: FakeConfirm) -> None:
    session = EditorSession(Document(roots=(Node(id="only", name="Only"),)), confirm=confirm)
    session.select(["only"])

    assert session.delete()

    assert session.document.is_empty
    assert session.selection == []
    assert "last root" in confirm.messages[0]
    assert session.add_root()
    assert len(session.document.roots) == 1


def test_undo_keeps_surviving_selection(session: EditorSession) -> None:
    session.select(["c"])
    session.dispatch(Intent.COLLAPSE_LAYER)

    assert session.dispatch(Intent.UNDO)
    assert session.selection == ["c"]
    assert session.dispatch(Intent.REDO)
    assert session.selection == ["c"]


def test_undo_drops_selection_of_vanished_node(session: EditorSession) -> None:
    session.select(["c"])
    session.add_child()
    new_id = session.editing
    session.commit_rename("Child")

    session.undo()
    session.undo()

    assert new_id not in store.all_ids(session.document)
    assert session.selection == []


def test_undo_abandons_pending_rename(session: EditorSession) -> None:
    session.select(["c"])
    session.begin_rename()
    session.set_edit_text("Unsaved")

    assert not session.dispatch(Intent.UNDO)
    assert session.editing is None
    assert store.find_by_id(session.document, "c") == Node(id="c", name="C")


def test_collapse_toggles(session: EditorSession) -> None:
    session.select(["a"])
    assert session.dispatch(Intent.COLLAPSE)
    assert not session.dispatch(Intent.COLLAPSE)
    assert session.dispatch(Intent.COLLAPSE, collapsed=False)


@pytest.mark.parametrize(
    ("start", "direction", "expected"),
    [
        ("a1", Direction.LEFT, "a"),
        ("a", Direction.RIGHT, "a1"),
        ("a", Direction.DOWN, "b"),
        ("b", Direction.UP, "a"),
        ("b", Direction.RIGHT, None),
        ("root", Direction.LEFT, None),
    ],
)
def test_navigate(
    session: EditorSession, start: str, direction: Direction, expected: str | None
) -> None:
    session.select([start])
    moved = session.dispatch(Intent.NAVIGATE, direction=direction)
    assert moved is (expected is not None)
    assert session.selected == (expected or start)


def test_select_ignores_unknown_and_duplicate_ids(session: EditorSession) -> None:
    assert session.dispatch(Intent.SELECT, ids=["c", "nope", "c", "a"])
    assert session.selection == ["c", "a"]
    assert not session.select(["c", "a"])


def test_copy_paste_uses_fresh_ids(session: EditorSession, clipboard: FakeClipboard) -> None:
    session.select(["a", "a1"])
    session.dispatch(Intent.COPY)
    assert clipboard.writes == ["A\n\tA1\nA1"]

    session.select(["c"])
    assert session.dispatch(Intent.PASTE)

    c = store.find_by_id(session.document, "c")
    assert c is not None
    assert names(c.children) == ["A", "A1"]
    ids = store.all_ids(session.document)
    assert len(ids) == len(set(ids))


def test_paste_needs_exactly_one_target(session: EditorSession) -> None:
    session.select(["a", "c"])
    session.copy()
    assert not session.paste()


def test_paste_falls_back_to_system_text(
    session: EditorSession, clipboard: FakeClipboard
) -> None:
    clipboard.text = "X\n\tY\n\tZ\n"
    session.select(["a"])

    assert session.paste()

    x = store.find_by_id(session.document, "a").children[-1]  # type: ignore[union-attr]
    assert x.name == "X"
    assert names(x.children) == ["Y", "Z"]


def test_paste_intent_with_text(session: EditorSession) -> None:
    session.select(["c"])
    assert session.dispatch(Intent.PASTE, text="One\nTwo")
    assert len(_children(session, "c")) == 2


def test_apaste_reads_clipboard_off_the_loop(
    session: EditorSession, clipboard: FakeClipboard
) -> None:
    clipboard.text = "Async"
    session.select(["c"])

    assert asyncio.run(session.apaste())
    assert clipboard.reads == 1
    assert len(_children(session, "c")) == 1


def test_apaste_target_deleted_meanwhile(session: EditorSession) -> None:
    class DeletingClipboard(FakeClipboard):
        def read_text(self) -> str:
            session.document = store.delete_node(session.document, "c")
            return "Late"

    session.clipboard.system_clipboard = DeletingClipboard()
    session.select(["c"])

    assert not asyncio.run(session.apaste())
    assert "Late" not in [node.name for node, _ in store.iter_nodes(session.document)]


def test_import_json_resets_history(session: EditorSession) -> None:
    session.select(["c"])
    session.dispatch(Intent.COLLAPSE_LAYER)

    session.import_json([{"id": "x", "name": "X", "children": []}])

    assert [root.id for root in session.document.roots] == ["x"]
    assert not session.history.can_undo
    assert session.selection == []


def test_snapshot(session: EditorSession) -> None:
    session.select(["b"])
    snapshot = session.snapshot()

    assert snapshot["selection"] == ["b"]
    assert snapshot["editing"] is None
    assert snapshot["can_undo"] is False
    assert [entry["id"] for entry in snapshot["visible"]] == ["root", "a", "a1", "a2", "b", "c"]
    b = next(entry for entry in snapshot["visible"] if entry["id"] == "b")
    assert b == {"id": "b", "name": "B", "depth": 1, "collapsed": True, "child_count": 1}
    assert snapshot["breadcrumbs"] == [{"id": "root", "name": "Root", "depth": 0}]
    assert snapshot["document"]["id"] == "root"


def test_snapshot_breadcrumbs_follow_the_selection(session: EditorSession) -> None:
    assert session.snapshot()["breadcrumbs"] == []

    session.select(["a2"])
    crumbs = session.snapshot()["breadcrumbs"]

    assert [(crumb["id"], crumb["depth"]) for crumb in crumbs] == [("root", 0), ("a", 1)]


def test_history_limit_from_environment(
    monkeypatch: pytest.MonkeyPatch, document: Document
) -> None:
    monkeypatch.setenv("TREE_EDITOR_HISTORY_LIMIT", "3")
    session = EditorSession(document)
    assert session.history.limit == 3

    monkeypatch.setenv("TREE_EDITOR_HISTORY_LIMIT", "zero")
    assert EditorSession(document).history.limit == 20


def test_zero_history_limit_is_rejected(
    monkeypatch: pytest.MonkeyPatch, document: Document
) -> None:
    monkeypatch.setenv("TREE_EDITOR_HISTORY_LIMIT", "5")
    with pytest.raises(ValueError, match="positive"):
        EditorSession(document, history_limit=0)
