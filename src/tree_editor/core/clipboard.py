"""Copy and paste of subtrees, with a plain-text fallback."""

from collections.abc import Sequence
from dataclasses import replace

from loguru import logger

from tree_editor.core.codec.indent_text import (
    decode_fragments,
    encode,
    lines_to_text,
    text_to_lines,
)
from tree_editor.core.tree.ids import IdFactory
from tree_editor.core.tree.store import append_children, find_by_id
from tree_editor.models.node import Document, Node
from tree_editor.protocols import SystemClipboardProtocol


def filter_selected_subtree(node: Node, selected_ids: Sequence[str] | set[str]) -> Node | None:
    """Keep only selected nodes, recursively.

    An unselected node is dropped together with everything below it, even
    if some of its descendants are selected.
    """
    if node.id not in selected_ids:
        return None
    children = tuple(
        kept
        for kept in (filter_selected_subtree(child, selected_ids) for child in node.children)
        if kept is not None
    )
    return replace(node, children=children)


def clone_with_new_ids(node: Node, id_factory: IdFactory) -> Node:
    """Deep copy of a subtree where every node gets a fresh id."""
    return replace(
        node,
        id=id_factory(),
        children=tuple(clone_with_new_ids(child, id_factory) for child in node.children),
    )


class ClipboardBridge:
    """Holds the structured copy payload and mirrors it to the system clipboard."""

    def __init__(
        self,
        id_factory: IdFactory,
        *,
        system_clipboard: SystemClipboardProtocol | None = None,
    ) -> None:
        self.id_factory = id_factory
        self.system_clipboard = system_clipboard
        self.payload: tuple[Node, ...] | None = None

    @property
    def has_payload(self) -> bool:
        return bool(self.payload)

    def clear(self) -> None:
        self.payload = None

    def copy(self, document: Document, selected_ids: Sequence[str]) -> tuple[Node, ...]:
        """Copy one filtered fragment per selected node, keeping original ids."""
        selected = set(selected_ids)
        fragments: list[Node] = []
        for node_id in selected_ids:
            node = find_by_id(document, node_id)
            if node is None:
                continue
            kept = filter_selected_subtree(node, selected)
            if kept is not None:
                fragments.append(kept)
        payload = tuple(fragments)
        if not payload:
            return payload
        self.payload = payload
        logger.debug("Copied {} fragment(s)", len(payload))
        if self.system_clipboard is not None:
            lines = [line for fragment in payload for line in encode(fragment)]
            self.system_clipboard.write_text(lines_to_text(lines))
        return payload

    def paste(
        self,
        document: Document,
        target_id: str,
        payload: Sequence[Node] | None = None,
    ) -> Document:
        """Append fresh-id clones of the payload under the target."""
        fragments = self.payload if payload is None else tuple(payload)
        if not fragments:
            return document
        if find_by_id(document, target_id) is None:
            logger.debug("paste: node {} not found, document unchanged", target_id)
            return document
        clones = [clone_with_new_ids(fragment, self.id_factory) for fragment in fragments]
        return append_children(document, target_id, clones, action="paste")

    def paste_text(self, document: Document, target_id: str, text: str) -> Document:
        """Decode tab-indented text and append the resulting trees under the target."""
        if not text.strip():
            return document
        if find_by_id(document, target_id) is None:
            logger.debug("paste_text: node {} not found, document unchanged", target_id)
            return document
        fragments = decode_fragments(text_to_lines(text), self.id_factory)
        logger.debug("Decoded {} fragment(s) from pasted text", len(fragments))
        return append_children(document, target_id, fragments, action="paste_text")

    def read_system_text(self) -> str:
        if self.system_clipboard is None:
            return ""
        return self.system_clipboard.read_text()
