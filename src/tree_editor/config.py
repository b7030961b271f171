"""Configuration constants for the tree editor."""

import os

from loguru import logger

# Id of the synthesized sentinel whose children are the document's top-level nodes.
VIRTUAL_ROOT_ID: str = "virtual-root-container"

# Maximum number of snapshots kept by the undo/redo history.
HISTORY_LIMIT: int = 20

# Name given to nodes created by the add-child/sibling/parent/root commands.
DEFAULT_NODE_NAME: str = "Node"

# Suggested filename for JSON exports.
DEFAULT_EXPORT_FILENAME: str = "tree-export.json"

# Issued ids look like "node-<epoch ms>-<random base36>".
ID_PREFIX: str = "node"
ID_RANDOM_LENGTH: int = 9

HISTORY_LIMIT_ENV: str = "TREE_EDITOR_HISTORY_LIMIT"

# JSON document the MCP server opens on startup, if set.
DOCUMENT_ENV: str = "TREE_EDITOR_DOCUMENT"


def resolve_history_limit() -> int:
    """Return the history limit, honoring the environment override if it is valid."""
    raw = os.environ.get(HISTORY_LIMIT_ENV)
    if raw is None:
        return HISTORY_LIMIT
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value < 1:
        logger.warning("Ignoring {}={!r}, using {}", HISTORY_LIMIT_ENV, raw, HISTORY_LIMIT)
        return HISTORY_LIMIT
    return value