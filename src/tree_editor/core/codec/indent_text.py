"""Convert between trees and tab-indented name outlines.

One line per node, its depth given by the number of leading tab
characters::

    Root
    \tChild 1
    \t\tGrandchild
    \tChild 2

The text form carries names and shape only; decoding assigns fresh ids.
"""

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from loguru import logger

from tree_editor.core.tree.ids import IdFactory
from tree_editor.models.node import Document, Node

_LINE_BREAK = re.compile(r"\r?\n")
_FLATTEN = re.compile(r"[\t\r\n]+")


@dataclass
class _Draft:
    """Mutable node used while the stack parser is still attaching children."""

    id: str
    name: str
    children: list["_Draft"] = field(default_factory=list)

    def freeze(self) -> Node:
        return Node(id=self.id, name=self.name, children=tuple(c.freeze() for c in self.children))


def text_to_lines(text: str) -> list[str]:
    return _LINE_BREAK.split(text)


def lines_to_text(lines: Iterable[str]) -> str:
    return "\n".join(lines)


def encode(node: Node, level: int = 0, *, skip_collapsed: bool = False) -> Iterator[str]:
    """Yield the outline lines of a subtree in pre-order.

    Nameless nodes emit no line of their own, but their children are still
    written one level deeper. With ``skip_collapsed`` the children of
    collapsed nodes are left out, matching what a renderer shows.
    """
    if node.name:
        yield "\t" * level + _FLATTEN.sub(" ", node.name)
    if skip_collapsed and node.collapsed:
        return
    for child in node.children:
        yield from encode(child, level + 1, skip_collapsed=skip_collapsed)


def encode_document(document: Document, *, skip_collapsed: bool = False) -> Iterator[str]:
    """Outline lines for every top-level node, each starting at level 0."""
    for root in document.roots:
        yield from encode(root, skip_collapsed=skip_collapsed)


def _parse_lines(lines: Iterable[str]) -> Iterator[tuple[int, str]]:
    """Yield ``(level, name)`` for every non-blank line."""
    for raw in lines:
        body = raw.lstrip("\t")
        name = body.strip()
        if not name:
            continue
        yield len(raw) - len(body), name


def decode_fragments(lines: Iterable[str], id_factory: IdFactory) -> tuple[Node, ...]:
    """Rebuild a list of independent trees from outline lines.

    Every level-0 line starts a new fragment. A line is attached under the
    closest preceding line with a smaller level. Indented lines that appear
    before any level-0 line have no parent to attach to; they are skipped
    rather than promoted to fragment roots.
    """
    anchor = _Draft(id="", name="")
    stack: list[tuple[_Draft, int]] = [(anchor, -1)]
    skipped = 0
    for level, name in _parse_lines(lines):
        if level > 0 and len(stack) == 1:
            skipped += 1
            logger.debug("Skipping orphan outline line at level {}: {!r}", level, name)
            continue
        while stack[-1][1] >= level:
            stack.pop()
        draft = _Draft(id=id_factory(), name=name)
        stack[-1][0].children.append(draft)
        stack.append((draft, level))
    if skipped:
        logger.debug("Skipped {} orphan outline line(s)", skipped)
    return tuple(draft.freeze() for draft in anchor.children)


def decode(lines: Iterable[str], id_factory: IdFactory) -> Node | None:
    """Rebuild a single tree from outline lines.

    The first line is the root whatever its indentation. The root is never
    closed, so later level-0 lines become its children.
    """
    parsed = _parse_lines(lines)
    first = next(parsed, None)
    if first is None:
        return None
    root = _Draft(id=id_factory(), name=first[1])
    stack: list[tuple[_Draft, int]] = [(root, 0)]
    for level, name in parsed:
        while len(stack) > 1 and stack[-1][1] >= level:
            stack.pop()
        draft = _Draft(id=id_factory(), name=name)
        stack[-1][0].children.append(draft)
        stack.append((draft, level))
    return root.freeze()
