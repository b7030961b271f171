"""Shared test fixtures."""

import random
from collections.abc import Iterator

import pytest
from loguru import logger

from tests.unit.fakes import FakeClipboard, FakeConfirm
from tree_editor.core.router import EditorSession
from tree_editor.core.tree.ids import IdGenerator
from tree_editor.models.node import Document, Node

# Root
#   A
#     A1
#     A2
#   B (collapsed)
#     B1
#   C
SAMPLE_DOCUMENT = Document(
    roots=(
        Node(
            id="root",
            name="Root",
            children=(
                Node(
                    id="a",
                    name="A",
                    children=(Node(id="a1", name="A1"), Node(id="a2", name="A2")),
                ),
                Node(id="b", name="B", children=(Node(id="b1", name="B1"),), collapsed=True),
                Node(id="c", name="C"),
            ),
        ),
    )
)

SAMPLE_JSON = {
    "id": "root",
    "name": "Root",
    "children": [
        {
            "id": "a",
            "name": "A",
            "children": [
                {"id": "a1", "name": "A1", "children": []},
                {"id": "a2", "name": "A2", "children": []},
            ],
        },
        {
            "id": "b",
            "name": "B",
            "children": [{"id": "b1", "name": "B1", "children": []}],
            "collapsed": True,
        },
        {"id": "c", "name": "C", "children": []},
    ],
}


@pytest.fixture
def document() -> Document:
    return SAMPLE_DOCUMENT


@pytest.fixture
def id_generator() -> IdGenerator:
    """Generator with a fixed clock and seed, so ids are reproducible."""
    return IdGenerator(clock=lambda: 1_700_000_000.0, rng=random.Random(42))


@pytest.fixture
def clipboard() -> FakeClipboard:
    return FakeClipboard()


@pytest.fixture
def confirm() -> FakeConfirm:
    return FakeConfirm(answer=True)


@pytest.fixture
def session(
    document: Document,
    id_generator: IdGenerator,
    clipboard: FakeClipboard,
    confirm: FakeConfirm,
) -> EditorSession:
    """A session on the sample document with fake clipboard and confirmation."""
    return EditorSession(
        document,
        confirm=confirm,
        system_clipboard=clipboard,
        id_generator=id_generator,
    )


@pytest.fixture
def caplog_loguru() -> Iterator[list[str]]:
    """Collect loguru messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]))
    yield messages
    logger.remove(handler_id)
