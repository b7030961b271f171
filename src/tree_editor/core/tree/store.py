"""Pure query and mutation functions over immutable outline documents.

Every mutation takes a :class:`Document` and returns a new one, rebuilding
only the path from a top-level node down to the changed node. When the
target id cannot be resolved, or the edit would not change anything, the
very same document object is returned, so callers detect a no-op with
``result is document``.
"""

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import replace

from loguru import logger

from tree_editor.config import VIRTUAL_ROOT_ID
from tree_editor.models.node import Document, Node, NodeWithParent, VisibleNode

Replacement = Callable[[Node], Iterable[Node]]


# --- Queries ---


def iter_nodes(document: Document) -> Iterator[tuple[Node, int]]:
    """Yield ``(node, depth)`` for every node in pre-order, collapsed or not."""
    stack: list[tuple[Node, int]] = [(n, 0) for n in reversed(document.roots)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        stack.extend((child, depth + 1) for child in reversed(node.children))


def iter_visible(document: Document) -> Iterator[VisibleNode]:
    """Yield visible nodes in pre-order; children of collapsed nodes are skipped."""
    stack: list[tuple[Node, int]] = [(n, 0) for n in reversed(document.roots)]
    while stack:
        node, depth = stack.pop()
        yield VisibleNode(node=node, depth=depth)
        if not node.collapsed:
            stack.extend((child, depth + 1) for child in reversed(node.children))


def visible_descendants(document: Document) -> Iterator[Node]:
    """Return the renderer's traversal: pre-order, virtual root excluded.

    Each call returns a new generator, so the sequence can be restarted.
    """
    return (entry.node for entry in iter_visible(document))


def find_by_id(document: Document, node_id: str) -> Node | None:
    """Depth-first search for a node, returning the first match."""
    if node_id == VIRTUAL_ROOT_ID:
        return document.virtual_root()
    for node, _depth in iter_nodes(document):
        if node.id == node_id:
            return node
    return None


def find_with_parent(document: Document, node_id: str) -> NodeWithParent | None:
    """Find a node together with its parent and its index among the siblings.

    Top-level nodes report the synthesized virtual root as their parent.
    """

    def search(parent: Node, depth: int) -> NodeWithParent | None:
        for index, child in enumerate(parent.children):
            if child.id == node_id:
                return NodeWithParent(node=child, parent=parent, index=index, depth=depth)
            found = search(child, depth + 1)
            if found is not None:
                return found
        return None

    return search(document.virtual_root(), 0)


def depth_of(document: Document, node_id: str) -> int | None:
    """Depth of a node, counting top-level nodes as depth 0."""
    for node, depth in iter_nodes(document):
        if node.id == node_id:
            return depth
    return None


def all_ids(document: Document) -> list[str]:
    """Ids of every node in pre-order (duplicates would show up twice)."""
    return [node.id for node, _depth in iter_nodes(document)]


def count_nodes(node: Node) -> int:
    """Number of nodes in a subtree, including its root."""
    return 1 + sum(count_nodes(child) for child in node.children)


# --- Mutations ---


def _rewrite(
    nodes: tuple[Node, ...], node_id: str, replacement: Replacement
) -> tuple[Node, ...] | None:
    """Swap the node with ``node_id`` for ``replacement(node)``; None if absent."""
    for index, node in enumerate(nodes):
        if node.id == node_id:
            return nodes[:index] + tuple(replacement(node)) + nodes[index + 1 :]
        if node.children:
            children = _rewrite(node.children, node_id, replacement)
            if children is not None:
                return nodes[:index] + (replace(node, children=children),) + nodes[index + 1 :]
    return None


def _update(
    document: Document, node_id: str, replacement: Replacement, *, action: str
) -> Document:
    roots = _rewrite(document.roots, node_id, replacement)
    if roots is None:
        logger.debug("{}: node {} not found, document unchanged", action, node_id)
        return document
    logger.debug("{}: {}", action, node_id)
    return Document(roots=roots)


def add_root(document: Document, new_node: Node) -> Document:
    """Append a new top-level node. Always legal, even on an empty document."""
    logger.debug("add_root: {}", new_node.id)
    return Document(roots=document.roots + (new_node,))


def add_child(document: Document, target_id: str, new_node: Node) -> Document:
    """Append ``new_node`` to the target's children."""
    if target_id == VIRTUAL_ROOT_ID:
        return add_root(document, new_node)
    return append_children(document, target_id, (new_node,), action="add_child")


def append_children(
    document: Document,
    target_id: str,
    new_nodes: Sequence[Node],
    *,
    action: str = "append_children",
) -> Document:
    """Append several nodes to the target's children in a single edit."""
    if not new_nodes:
        return document
    if target_id == VIRTUAL_ROOT_ID:
        logger.debug("{}: {} top-level node(s)", action, len(new_nodes))
        return Document(roots=document.roots + tuple(new_nodes))
    return _update(
        document,
        target_id,
        lambda node: (replace(node, children=node.children + tuple(new_nodes)),),
        action=action,
    )


def add_sibling(document: Document, target_id: str, new_node: Node) -> Document:
    """Append ``new_node`` at the end of the target's parent's children.

    A top-level target has the virtual root as parent, so this becomes
    :func:`add_root`.
    """
    located = find_with_parent(document, target_id)
    if located is None:
        logger.debug("add_sibling: node {} not found, document unchanged", target_id)
        return document
    if located.parent_is_virtual_root:
        return add_root(document, new_node)
    return add_child(document, located.parent.id, new_node)


def add_parent(document: Document, target_id: str, new_node: Node) -> Document:
    """Put ``new_node`` in the target's place and move the target under it."""
    return _update(
        document,
        target_id,
        lambda node: (replace(new_node, children=new_node.children + (node,)),),
        action="add_parent",
    )


def rename(document: Document, node_id: str, new_name: str) -> Document:
    """Rename a node. Blank names are refused; the caller keeps the old name."""
    name = new_name.strip()
    if not name:
        logger.debug("rename: blank name for {}, document unchanged", node_id)
        return document
    node = find_by_id(document, node_id)
    if node is None or node_id == VIRTUAL_ROOT_ID or node.name == name:
        return document
    return _update(document, node_id, lambda n: (replace(n, name=name),), action="rename")


def delete_node(document: Document, node_id: str) -> Document:
    """Remove a node and its whole subtree.

    Removing the last top-level node leaves an empty document. Interactive
    callers must confirm before deleting a node that has children.
    """
    return _update(document, node_id, lambda _node: (), action="delete_node")


def set_collapsed(document: Document, node_id: str, collapsed: bool) -> Document:
    """Set the collapsed flag of one node."""
    node = find_by_id(document, node_id)
    if node is None or node_id == VIRTUAL_ROOT_ID or node.collapsed == collapsed:
        return document
    return _update(
        document,
        node_id,
        lambda n: (replace(n, collapsed=collapsed),),
        action="set_collapsed",
    )


def _collapse_at_depth(nodes: tuple[Node, ...], depth: int, collapsed: bool) -> tuple[Node, ...]:
    changed = False
    result: list[Node] = []
    for node in nodes:
        if depth == 0:
            new = node if node.collapsed == collapsed else replace(node, collapsed=collapsed)
        else:
            children = _collapse_at_depth(node.children, depth - 1, collapsed)
            new = node if children is node.children else replace(node, children=children)
        changed = changed or new is not node
        result.append(new)
    return tuple(result) if changed else nodes


def set_collapsed_for_layer(document: Document, anchor_id: str, collapsed: bool) -> Document:
    """Set the collapsed flag on every node at the anchor's depth."""
    depth = depth_of(document, anchor_id)
    if depth is None:
        logger.debug("set_collapsed_for_layer: node {} not found, document unchanged", anchor_id)
        return document
    roots = _collapse_at_depth(document.roots, depth, collapsed)
    if roots is document.roots:
        return document
    logger.debug("set_collapsed_for_layer: depth {} collapsed={}", depth, collapsed)
    return Document(roots=roots)
