"""Hierarchical outline editor: tree store, undo history, clipboard and JSON interchange."""

from tree_editor.core.history import HistoryLog
from tree_editor.core.router import Direction, EditorSession, Intent
from tree_editor.models.node import Document, Node
from tree_editor.protocols import ConfirmProtocol, SystemClipboardProtocol
from tree_editor.writer import FileWriter

__all__ = [
    "ConfirmProtocol",
    "Direction",
    "Document",
    "EditorSession",
    "FileWriter",
    "HistoryLog",
    "Intent",
    "Node",
    "SystemClipboardProtocol",
]
