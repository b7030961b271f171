"""Turn user intents into document edits, history entries and selection moves.

:class:`EditorSession` owns all mutable editor state: the current document,
the selection, the node being renamed, the undo history and the clipboard.
Renderers read :meth:`EditorSession.snapshot` and send intents back through
:meth:`EditorSession.dispatch`.
"""

import asyncio
from enum import StrEnum
from typing import Any

from loguru import logger

from tree_editor.config import DEFAULT_NODE_NAME, resolve_history_limit
from tree_editor.core.clipboard import ClipboardBridge
from tree_editor.core.history import HistoryLog
from tree_editor.core.importer.json_reader import export_document, import_document
from tree_editor.core.tree import navigation, store
from tree_editor.core.tree.ids import IdGenerator
from tree_editor.models.node import Document, Node
from tree_editor.protocols import ConfirmProtocol, SystemClipboardProtocol


class Intent(StrEnum):
    ADD_CHILD = "add-child"
    ADD_SIBLING = "add-sibling"
    ADD_PARENT = "add-parent"
    ADD_ROOT = "add-root"
    BEGIN_RENAME = "begin-rename"
    RENAME = "rename"
    CANCEL_RENAME = "cancel-rename"
    DELETE = "delete"
    COLLAPSE = "collapse"
    COLLAPSE_LAYER = "collapse-layer"
    UNDO = "undo"
    REDO = "redo"
    COPY = "copy"
    PASTE = "paste"
    NAVIGATE = "navigate"
    SELECT = "select"


class Direction(StrEnum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"


# Intents that act on the rename itself, or throw it away, instead of committing it first.
_KEEPS_PENDING_EDIT = frozenset(
    {Intent.RENAME, Intent.CANCEL_RENAME, Intent.UNDO, Intent.REDO}
)


def decline_all(message: str) -> bool:
    """Default confirmation: refuse, so nothing is destroyed without a real prompt."""
    logger.debug("No confirmation handler, declining: {}", message)
    return False


class EditorSession:
    """One open document and the editing state around it."""

    def __init__(
        self,
        document: Document | None = None,
        *,
        confirm: ConfirmProtocol | None = None,
        system_clipboard: SystemClipboardProtocol | None = None,
        history_limit: int | None = None,
        id_generator: IdGenerator | None = None,
    ) -> None:
        self.document = document or Document()
        self.id_generator = id_generator or IdGenerator()
        self.id_generator.reserve(store.all_ids(self.document))
        self.history = HistoryLog(
            limit=history_limit if history_limit is not None else resolve_history_limit()
        )
        self.history.record(self.document)
        self.clipboard = ClipboardBridge(self.id_generator, system_clipboard=system_clipboard)
        self.confirm: ConfirmProtocol = confirm or decline_all
        self.selection: list[str] = []
        self.editing: str | None = None
        self.edit_text: str = ""
        self._pre_edit_name: str | None = None

    # --- State helpers ---

    @property
    def selected(self) -> str | None:
        """The command target: the first selected node, if any."""
        return self.selection[0] if self.selection else None

    def _commit(self, document: Document) -> bool:
        """Adopt a new document and record it; identical documents are no-ops."""
        if document is self.document:
            return False
        self.document = document
        self.history.record(document)
        return True

    def _new_node(self) -> Node:
        return Node(id=self.id_generator.new_id(), name=DEFAULT_NODE_NAME)

    def _start_editing(self, node_id: str) -> None:
        node = store.find_by_id(self.document, node_id)
        if node is None:
            return
        self.selection = [node_id]
        self.editing = node_id
        self.edit_text = node.name
        self._pre_edit_name = node.name

    def _stop_editing(self) -> None:
        self.editing = None
        self.edit_text = ""
        self._pre_edit_name = None

    def _keep_surviving_selection(self) -> None:
        present = set(store.all_ids(self.document))
        self.selection = [node_id for node_id in self.selection if node_id in present]

    # --- Intents ---

    def dispatch(self, intent: Intent | str, **params: Any) -> bool:
        """Run one intent, committing any pending rename first.

        Returns True if the intent changed the document, the selection or
        the clipboard.
        """
        intent = Intent(intent)
        if self.editing is not None and intent not in _KEEPS_PENDING_EDIT:
            self.commit_rename()
        logger.debug("Intent {} on {}", intent, self.selection)

        match intent:
            case Intent.ADD_CHILD:
                return self.add_child()
            case Intent.ADD_SIBLING:
                return self.add_sibling()
            case Intent.ADD_PARENT:
                return self.add_parent()
            case Intent.ADD_ROOT:
                return self.add_root()
            case Intent.BEGIN_RENAME:
                return self.begin_rename()
            case Intent.RENAME:
                return self.commit_rename(params.get("text"))
            case Intent.CANCEL_RENAME:
                return self.cancel_rename()
            case Intent.DELETE:
                return self.delete()
            case Intent.COLLAPSE:
                return self.set_collapsed(params.get("collapsed", True))
            case Intent.COLLAPSE_LAYER:
                return self.collapse_layer(params.get("collapsed", True))
            case Intent.UNDO:
                return self.undo()
            case Intent.REDO:
                return self.redo()
            case Intent.COPY:
                return bool(self.copy())
            case Intent.PASTE:
                text = params.get("text")
                return self.paste() if text is None else self.paste_text(text)
            case Intent.NAVIGATE:
                return self.navigate(Direction(params["direction"]))
            case Intent.SELECT:
                return self.select(params.get("ids", ()))
        return False

    def add_child(self) -> bool:
        target = self.selected
        if target is None:
            return False
        new_node = self._new_node()
        if not self._commit(store.add_child(self.document, target, new_node)):
            return False
        self._start_editing(new_node.id)
        return True

    def add_sibling(self) -> bool:
        target = self.selected
        if target is None:
            return False
        located = store.find_with_parent(self.document, target)
        if located is None:
            return False
        if located.parent_is_virtual_root:
            return self.add_root()
        new_node = self._new_node()
        if not self._commit(store.add_sibling(self.document, target, new_node)):
            return False
        self._start_editing(new_node.id)
        return True

    def add_parent(self) -> bool:
        target = self.selected
        if target is None:
            return False
        new_node = self._new_node()
        if not self._commit(store.add_parent(self.document, target, new_node)):
            return False
        self._start_editing(new_node.id)
        return True

    def add_root(self) -> bool:
        new_node = self._new_node()
        self._commit(store.add_root(self.document, new_node))
        self._start_editing(new_node.id)
        return True

    def begin_rename(self) -> bool:
        target = self.selected
        if target is None or store.find_by_id(self.document, target) is None:
            return False
        self._start_editing(target)
        return True

    def set_edit_text(self, text: str) -> None:
        """Track what the user has typed so far; nothing is committed yet."""
        if self.editing is not None:
            self.edit_text = text

    def commit_rename(self, text: str | None = None) -> bool:
        """Finish the rename. Blank text restores the pre-edit name."""
        if self.editing is None:
            return False
        node_id = self.editing
        new_name = self.edit_text if text is None else text
        previous = self._pre_edit_name
        self._stop_editing()
        if not new_name.strip():
            logger.debug("Blank name for {}, keeping {!r}", node_id, previous)
            return False
        return self._commit(store.rename(self.document, node_id, new_name))

    def cancel_rename(self) -> bool:
        if self.editing is None:
            return False
        self._stop_editing()
        return True

    def delete(self) -> bool:
        """Delete the selected node, asking first if that would lose more than one node."""
        target = self.selected
        if target is None:
            return False
        located = store.find_with_parent(self.document, target)
        if located is None:
            return False

        message: str | None = None
        if located.node.children:
            count = store.count_nodes(located.node) - 1
            message = f"Delete {located.node.name!r} and its {count} descendant node(s)?"
        elif located.parent_is_virtual_root and len(self.document.roots) == 1:
            message = (
                f"Delete {located.node.name!r}, the last root node? The document will be empty."
            )
        if message is not None and not self.confirm(message):
            logger.debug("Delete of {} declined", target)
            return False

        next_selected = navigation.selection_after_delete(self.document, target)
        if not self._commit(store.delete_node(self.document, target)):
            return False
        self.selection = [next_selected] if next_selected else []
        return True

    def set_collapsed(self, collapsed: bool) -> bool:
        target = self.selected
        if target is None:
            return False
        return self._commit(store.set_collapsed(self.document, target, collapsed))

    def collapse_layer(self, collapsed: bool) -> bool:
        target = self.selected
        if target is None:
            return False
        return self._commit(store.set_collapsed_for_layer(self.document, target, collapsed))

    def undo(self) -> bool:
        self._stop_editing()
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self.document = snapshot
        self._keep_surviving_selection()
        return True

    def redo(self) -> bool:
        self._stop_editing()
        snapshot = self.history.redo()
        if snapshot is None:
            return False
        self.document = snapshot
        self._keep_surviving_selection()
        return True

    def copy(self) -> tuple[Node, ...]:
        if not self.selection:
            return ()
        return self.clipboard.copy(self.document, self.selection)

    def paste(self) -> bool:
        """Paste under the single selected node: copied nodes first, else clipboard text."""
        if len(self.selection) != 1:
            return False
        target = self.selection[0]
        if self.clipboard.has_payload:
            return self._commit(self.clipboard.paste(self.document, target))
        return self.paste_text(self.clipboard.read_system_text(), target_id=target)

    def paste_text(self, text: str, *, target_id: str | None = None) -> bool:
        """Decode tab-indented text under a node (the selected one by default)."""
        target = target_id or self.selected
        if target is None:
            return False
        return self._commit(self.clipboard.paste_text(self.document, target, text))

    async def apaste(self) -> bool:
        """Like :meth:`paste`, but reads the system clipboard off the event loop.

        The decoded text is applied to whatever document is current once the
        read finishes; if the target was deleted meanwhile, nothing happens.
        """
        if len(self.selection) != 1:
            return False
        if self.clipboard.has_payload:
            return self.paste()
        target = self.selection[0]
        text = await asyncio.to_thread(self.clipboard.read_system_text)
        return self.paste_text(text, target_id=target)

    def navigate(self, direction: Direction) -> bool:
        target = self.selected
        if target is None:
            return False
        new_target: str | None = None
        match direction:
            case Direction.LEFT:
                new_target = navigation.parent_target(self.document, target)
            case Direction.RIGHT:
                new_target = navigation.first_child_target(self.document, target)
            case Direction.UP:
                new_target = navigation.layer_neighbor_target(self.document, target, -1)
            case Direction.DOWN:
                new_target = navigation.layer_neighbor_target(self.document, target, 1)
        if new_target is None:
            return False
        self.selection = [new_target]
        return True

    def select(self, ids: Any) -> bool:
        """Replace the selection; unknown ids are ignored."""
        if isinstance(ids, str):
            ids = [ids]
        present = set(store.all_ids(self.document))
        selection = [node_id for node_id in dict.fromkeys(ids) if node_id in present]
        changed = selection != self.selection
        self.selection = selection
        return changed

    # --- Whole-document operations ---

    def import_json(self, data: Any) -> None:
        """Replace the document with imported JSON and start a fresh history.

        Raises:
            TreeValidationError: the session is left untouched.
        """
        self.load(import_document(data, id_generator=self.id_generator))

    def load(self, document: Document) -> None:
        """Switch to another document, starting a fresh history."""
        self.id_generator.reserve(store.all_ids(document))
        self.document = document
        self.history.reset(document)
        self.selection = []
        self._stop_editing()
        logger.info("Session now holds {} top-level node(s)", len(document.roots))

    def export_json(self) -> dict[str, Any] | list[dict[str, Any]]:
        return export_document(self.document)

    def _breadcrumbs(self) -> list[dict[str, Any]]:
        if self.selected is None:
            return []
        return [
            {"id": crumb.node_id, "name": crumb.name, "depth": crumb.depth}
            for crumb in navigation.get_breadcrumbs(self.document, node_id=self.selected)
        ]

    def snapshot(self) -> dict[str, Any]:
        """A read-only view of everything a renderer needs."""
        return {
            "document": None if self.document.is_empty else export_document(self.document),
            "visible": [
                {
                    "id": entry.node.id,
                    "name": entry.node.name,
                    "depth": entry.depth,
                    "collapsed": entry.node.collapsed,
                    "child_count": len(entry.node.children),
                }
                for entry in store.iter_visible(self.document)
            ],
            "selection": list(self.selection),
            "breadcrumbs": self._breadcrumbs(),
            "editing": self.editing,
            "can_undo": self.history.can_undo,
            "can_redo": self.history.can_redo,
        }
