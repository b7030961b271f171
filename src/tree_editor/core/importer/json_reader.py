"""Import and export whole documents as JSON.

The exported form is a single ``{"id", "name", "children"}`` object when
the document has one top-level node, and an array of such objects when it
has several. Import accepts either shape.
"""

import json
from pathlib import Path
from typing import Any

from loguru import logger

from tree_editor.config import DEFAULT_NODE_NAME, VIRTUAL_ROOT_ID
from tree_editor.core.tree.ids import IdGenerator
from tree_editor.models.node import Document, Node


class TreeValidationError(ValueError):
    """Raised when imported JSON does not describe a tree document."""


def node_to_dict(node: Node) -> dict[str, Any]:
    """Serialize a node and its subtree; ``collapsed`` is written only when set."""
    data: dict[str, Any] = {
        "id": node.id,
        "name": node.name,
        "children": [node_to_dict(child) for child in node.children],
    }
    if node.collapsed:
        data["collapsed"] = True
    return data


def export_document(document: Document) -> dict[str, Any] | list[dict[str, Any]]:
    """Return the JSON value for a document.

    Raises:
        ValueError: if the document is empty; there is nothing to export.
    """
    if document.is_empty:
        msg = "Cannot export an empty document"
        raise ValueError(msg)
    if len(document.roots) == 1:
        return node_to_dict(document.roots[0])
    return [node_to_dict(root) for root in document.roots]


def dumps_export(document: Document) -> str:
    """Pretty-printed export, ready to be written as a UTF-8 file."""
    return json.dumps(export_document(document), indent=2, ensure_ascii=False) + "\n"


def _validate_top_level(raw: Any, *, where: str) -> None:
    if not isinstance(raw, dict):
        msg = f"{where}: expected a tree object, got {type(raw).__name__}"
        raise TreeValidationError(msg)
    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id:
        msg = f"{where}: missing or invalid 'id'"
        raise TreeValidationError(msg)
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        msg = f"{where}: missing, blank or invalid 'name'"
        raise TreeValidationError(msg)
    if not isinstance(raw.get("children"), list):
        msg = f"{where}: 'children' must be an array"
        raise TreeValidationError(msg)


def _collect_ids(raw: Any, out: set[str]) -> None:
    if isinstance(raw, dict):
        node_id = raw.get("id")
        if isinstance(node_id, str):
            out.add(node_id)
        children = raw.get("children")
        if isinstance(children, list):
            for child in children:
                _collect_ids(child, out)


class _Builder:
    """Turns validated JSON into nodes, repairing nested ids that are unusable."""

    def __init__(self, id_generator: IdGenerator) -> None:
        self.id_generator = id_generator
        self.seen: set[str] = {VIRTUAL_ROOT_ID}
        self.repaired = 0

    def build(self, raw: Any, *, where: str) -> Node:
        if not isinstance(raw, dict):
            msg = f"{where}: expected a tree object, got {type(raw).__name__}"
            raise TreeValidationError(msg)

        node_id = raw.get("id")
        if not isinstance(node_id, str) or not node_id or node_id in self.seen:
            fresh = self.id_generator.new_id()
            logger.warning("{}: replacing unusable id {!r} with {}", where, node_id, fresh)
            self.repaired += 1
            node_id = fresh
        self.seen.add(node_id)

        name = raw.get("name")
        if not isinstance(name, str):
            name = "" if name is None else str(name)
        if not name.strip():
            logger.warning("{}: blank name on {}, using {!r}", where, node_id, DEFAULT_NODE_NAME)
            name = DEFAULT_NODE_NAME

        raw_children = raw.get("children")
        if not isinstance(raw_children, list):
            raw_children = []

        children = tuple(
            self.build(child, where=f"{where}.children[{i}]")
            for i, child in enumerate(raw_children)
        )
        return Node(
            id=node_id,
            name=name,
            children=children,
            collapsed=raw.get("collapsed") is True,
        )


def import_document(data: Any, *, id_generator: IdGenerator | None = None) -> Document:
    """Build a document from a parsed JSON value.

    Only the top-level objects are checked for ``id``, ``name`` and an array
    ``children``. Nested nodes are taken as they are, except that missing or
    duplicate ids are replaced with fresh ones from ``id_generator`` and blank
    names become the default node name.

    Raises:
        TreeValidationError: if the top-level shape is not a tree or a list of trees.
    """
    if isinstance(data, list):
        raw_roots = data
        for i, raw in enumerate(raw_roots):
            _validate_top_level(raw, where=f"$[{i}]")
        labels = [f"$[{i}]" for i in range(len(raw_roots))]
    elif isinstance(data, dict):
        _validate_top_level(data, where="$")
        raw_roots = [data]
        labels = ["$"]
    else:
        msg = f"Expected a tree object or an array of tree objects, got {type(data).__name__}"
        raise TreeValidationError(msg)

    generator = id_generator or IdGenerator()
    existing: set[str] = set()
    for raw in raw_roots:
        _collect_ids(raw, existing)
    generator.reserve(existing)

    builder = _Builder(generator)
    roots = tuple(
        builder.build(raw, where=label) for raw, label in zip(raw_roots, labels, strict=True)
    )
    if builder.repaired:
        logger.warning("Repaired {} node id(s) during import", builder.repaired)
    return Document(roots=roots)


def loads_document(text: str, *, id_generator: IdGenerator | None = None) -> Document:
    """Parse JSON text into a document; parse errors become TreeValidationError."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON: {e}"
        raise TreeValidationError(msg) from e
    return import_document(data, id_generator=id_generator)


def read_document(path: str | Path, *, id_generator: IdGenerator | None = None) -> Document:
    """Read a UTF-8 JSON file and import it.

    Raises:
        TreeValidationError: also when the file cannot be read or is not UTF-8.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Cannot read {path}: {e}"
        raise TreeValidationError(msg) from e
    document = loads_document(text, id_generator=id_generator)
    logger.info("Imported {} top-level node(s) from {}", len(document.roots), path)
    return document
