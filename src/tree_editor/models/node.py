"""Domain models for the tree editor."""

from dataclasses import dataclass

from tree_editor.config import VIRTUAL_ROOT_ID


@dataclass(frozen=True)
class Node:
    """A single node of an outline tree.

    Nodes are immutable; every edit builds new nodes along the path to the
    changed one and shares the untouched subtrees.
    """

    id: str
    name: str
    children: tuple["Node", ...] = ()
    collapsed: bool = False


@dataclass(frozen=True)
class Document:
    """An outline holding zero, one or several independent trees."""

    roots: tuple[Node, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.roots

    def virtual_root(self) -> Node:
        """Return the sentinel node whose children are the top-level nodes."""
        return Node(id=VIRTUAL_ROOT_ID, name="", children=self.roots)


@dataclass(frozen=True)
class NodeWithParent:
    """A node located in a document, with its parent and position."""

    node: Node
    parent: Node
    index: int
    depth: int

    @property
    def parent_is_virtual_root(self) -> bool:
        return self.parent.id == VIRTUAL_ROOT_ID


@dataclass(frozen=True)
class Breadcrumb:
    """A single ancestor in a breadcrumb trail."""

    node_id: str
    name: str
    depth: int


@dataclass(frozen=True)
class VisibleNode:
    """A node as a renderer lays it out: its depth and whether it hides children."""

    node: Node
    depth: int

    @property
    def has_hidden_children(self) -> bool:
        return self.node.collapsed and bool(self.node.children)
