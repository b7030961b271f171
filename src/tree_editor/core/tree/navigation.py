"""Tree navigation: breadcrumbs, layers and keyboard moves."""

from tree_editor.core.tree.store import depth_of, find_with_parent, iter_nodes, iter_visible
from tree_editor.models.node import Breadcrumb, Document, Node


def get_breadcrumbs(document: Document, *, node_id: str) -> tuple[Breadcrumb, ...]:
    """Get ancestor breadcrumbs for a node.

    Returns breadcrumbs in order from the top-level node to the immediate
    parent (excludes the node itself and the virtual root).
    """
    trail: list[Breadcrumb] = []
    for node, depth in iter_nodes(document):
        # Pre-order: anything at this depth or deeper is no longer an ancestor.
        del trail[depth:]
        if node.id == node_id:
            return tuple(trail)
        trail.append(Breadcrumb(node_id=node.id, name=node.name, depth=depth))
    return ()


def get_layer(document: Document, *, depth: int) -> tuple[Node, ...]:
    """Visible nodes at one depth, in the order a renderer stacks them."""
    return tuple(entry.node for entry in iter_visible(document) if entry.depth == depth)


def parent_target(document: Document, node_id: str) -> str | None:
    """Where "left" goes: the parent, unless that is the virtual root."""
    located = find_with_parent(document, node_id)
    if located is None or located.parent_is_virtual_root:
        return None
    return located.parent.id


def first_child_target(document: Document, node_id: str) -> str | None:
    """Where "right" goes: the first child, unless the node is collapsed."""
    located = find_with_parent(document, node_id)
    if located is None or located.node.collapsed or not located.node.children:
        return None
    return located.node.children[0].id


def layer_neighbor_target(document: Document, node_id: str, step: int) -> str | None:
    """Where "up"/"down" go: the previous/next visible node at the same depth.

    Pre-order position stands in for the rendered vertical position, which
    matches a tidy-tree layout. ``step`` is -1 for up and 1 for down.
    """
    depth = depth_of(document, node_id)
    if depth is None:
        return None
    layer = [node.id for node in get_layer(document, depth=depth)]
    if node_id not in layer:
        return None
    index = layer.index(node_id) + step
    if 0 <= index < len(layer):
        return layer[index]
    return None


def selection_after_delete(document: Document, node_id: str) -> str | None:
    """Pick what to select once ``node_id`` is deleted.

    Next sibling, else previous sibling, else the parent (when it is not the
    virtual root), else nothing.
    """
    located = find_with_parent(document, node_id)
    if located is None:
        return None
    siblings = located.parent.children
    if located.index + 1 < len(siblings):
        return siblings[located.index + 1].id
    if located.index > 0:
        return siblings[located.index - 1].id
    if located.parent_is_virtual_root:
        return None
    return located.parent.id
