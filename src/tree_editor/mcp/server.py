"""MCP server exposing one in-memory tree editor session."""

import asyncio
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from tree_editor.config import DOCUMENT_ENV
from tree_editor.core.codec.indent_text import encode_document, lines_to_text
from tree_editor.core.importer.json_reader import TreeValidationError, read_document
from tree_editor.core.router import Direction, EditorSession, Intent
from tree_editor.core.tree import store
from tree_editor.writer import FileWriter

# Selection and clipboard text have their own tools.
_COMMAND_INTENTS = tuple(i.value for i in Intent if i not in (Intent.SELECT,))


def _accept_all(message: str) -> bool:
    logger.info("Confirmed by caller: {}", message)
    return True


# --- Core functions (testable without MCP context) ---


def tree_snapshot(session: EditorSession, *, include_document: bool = False) -> dict[str, Any]:
    """Return the visible outline, selection, breadcrumbs and undo state.

    Args:
        include_document: Also return the full exported document, hidden
            (collapsed) nodes included.
    """
    snapshot = session.snapshot()
    if not include_document:
        del snapshot["document"]
    snapshot["node_count"] = sum(store.count_nodes(root) for root in session.document.roots)
    return snapshot


def tree_select(session: EditorSession, *, node_ids: list[str]) -> dict[str, Any]:
    """Replace the selection. The first id is the target of later commands."""
    session.dispatch(Intent.SELECT, ids=node_ids)
    ignored = [node_id for node_id in node_ids if node_id not in session.selection]
    result: dict[str, Any] = {"selection": list(session.selection)}
    if ignored:
        result["ignored"] = ignored
    return result


def tree_command(
    session: EditorSession,
    *,
    intent: str,
    direction: str | None = None,
    collapsed: bool | None = None,
    text: str | None = None,
    confirm: bool = False,
) -> dict[str, Any]:
    """Run one editing command against the selected node.

    Args:
        intent: One of the command names, e.g. "add-child" or "undo".
        direction: For "navigate": left, right, up or down.
        collapsed: For "collapse"/"collapse-layer": False expands instead.
        text: For "rename": the new name. For "paste": tab-indented text to
            paste instead of the clipboard.
        confirm: Allow deletes that remove descendants or the last root.
    """
    if intent not in _COMMAND_INTENTS:
        return {"error": f"Unknown intent '{intent}'.", "valid_intents": list(_COMMAND_INTENTS)}

    params: dict[str, Any] = {}
    if intent == Intent.NAVIGATE:
        if direction not in {d.value for d in Direction}:
            return {"error": f"Invalid direction '{direction}'. Use left, right, up or down."}
        params["direction"] = direction
    if collapsed is not None:
        params["collapsed"] = collapsed
    if text is not None:
        params["text"] = text

    if intent == Intent.RENAME and session.editing is None:
        session.dispatch(Intent.BEGIN_RENAME)

    previous_confirm = session.confirm
    if confirm:
        session.confirm = _accept_all
    try:
        changed = session.dispatch(intent, **params)
    finally:
        session.confirm = previous_confirm

    result: dict[str, Any] = {"intent": intent, "changed": changed}
    result.update(tree_snapshot(session))
    return result


def tree_paste_text(
    session: EditorSession, *, text: str, node_id: str | None = None
) -> dict[str, Any]:
    """Paste tab-indented text under a node (the selected node by default)."""
    session.commit_rename()
    target = node_id or session.selected
    if target is None:
        return {"error": "No node selected and no node_id given."}
    changed = session.paste_text(text, target_id=target)
    return {"changed": changed, "target": target, **tree_snapshot(session)}


def tree_import(
    session: EditorSession, *, data: Any = None, path: str | None = None
) -> dict[str, Any]:
    """Replace the session's document with a JSON tree, given inline or as a file."""
    if (data is None) == (path is None):
        return {"error": "Give exactly one of data or path."}
    try:
        if path is not None:
            session.load(read_document(Path(path).expanduser(), id_generator=session.id_generator))
        else:
            session.import_json(data)
    except (OSError, TreeValidationError) as e:
        return {"error": f"Import failed: {e}"}
    return tree_snapshot(session)


def tree_export(
    session: EditorSession, *, path: str | None = None, output_format: str = "json"
) -> dict[str, Any]:
    """Export the document as JSON, or as a tab-indented outline.

    Args:
        path: Write to this .json/.txt file instead of returning the content.
        output_format: "json" or "text".
    """
    session.commit_rename()
    if session.document.is_empty:
        return {"error": "The document is empty; nothing to export."}
    if output_format not in ("json", "text"):
        return {"error": f"Invalid output_format '{output_format}'. Use json or text."}

    if path is None:
        if output_format == "text":
            return {"content": lines_to_text(list(encode_document(session.document)))}
        return {"document": session.export_json()}

    target = Path(path).expanduser()
    try:
        writer = FileWriter(target.parent)
        if output_format == "text":
            contents = lines_to_text(list(encode_document(session.document))) + "\n"
            fname = writer.make_data_file(target.name, contents=contents)
        else:
            fname = writer.write_export(session.document, target.name)
        writer.finalize()
    except (OSError, ValueError) as e:
        return {"error": f"Export failed: {e}"}
    return {"path": fname}


# --- Server setup ---


@dataclass
class ServerContext:
    """Shared state for the MCP server lifetime."""

    session: EditorSession
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Start an empty session, or open the document named in the environment."""
    session = EditorSession()
    document_path = os.environ.get(DOCUMENT_ENV)
    if document_path:
        try:
            session.load(
                read_document(Path(document_path).expanduser(), id_generator=session.id_generator)
            )
        except (OSError, TreeValidationError) as e:
            logger.error("Could not open {}: {}", document_path, e)
    yield ServerContext(session=session)


mcp_server = FastMCP(
    "tree-editor",
    instructions="""\
A hierarchical outline editor. Every node has an id, a name and ordered
children; the document may have several top-level nodes.

## Workflow
1. tree_snapshot_tool to see the visible outline and node ids.
2. tree_select_tool to pick the node a command acts on.
3. tree_command_tool for edits: add-child, add-sibling, add-parent, add-root,
   rename (text=...), delete (confirm=true for nodes with children), collapse,
   collapse-layer, navigate (direction=...), copy, paste, undo, redo.

New nodes are selected automatically, so "add-child" followed by
"rename" with text names the new node.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def tree_snapshot_tool(ctx: Context, include_document: bool = False) -> dict[str, Any]:
    """Show the visible outline with ids and depths, the selection, the path to
    the selected node and the undo state.

    Args:
        include_document: Also return the whole document as JSON.
    """
    server = _ctx(ctx)
    async with server.lock:
        return tree_snapshot(server.session, include_document=include_document)


@mcp_server.tool()
async def tree_select_tool(ctx: Context, node_ids: list[str]) -> dict[str, Any]:
    """Select nodes by id. Commands act on the first selected node.

    Args:
        node_ids: Ids from tree_snapshot_tool; unknown ids are ignored.
    """
    server = _ctx(ctx)
    async with server.lock:
        return tree_select(server.session, node_ids=node_ids)


@mcp_server.tool()
async def tree_command_tool(
    ctx: Context,
    intent: str,
    direction: str | None = None,
    collapsed: bool | None = None,
    text: str | None = None,
    confirm: bool = False,
) -> dict[str, Any]:
    """Run an editing command on the selected node and return the new outline.

    Args:
        intent: add-child, add-sibling, add-parent, add-root, begin-rename,
            rename, cancel-rename, delete, collapse, collapse-layer, undo,
            redo, copy, paste or navigate.
        direction: For navigate: left (parent), right (first child),
            up or down (previous/next visible node at the same depth).
        collapsed: For collapse/collapse-layer; false expands.
        text: New name for rename; tab-indented text for paste.
        confirm: Required to delete a node with children or the last root.
    """
    server = _ctx(ctx)
    async with server.lock:
        return tree_command(
            server.session,
            intent=intent,
            direction=direction,
            collapsed=collapsed,
            text=text,
            confirm=confirm,
        )


@mcp_server.tool()
async def tree_paste_text_tool(
    ctx: Context, text: str, node_id: str | None = None
) -> dict[str, Any]:
    """Paste a tab-indented outline as new children of a node.

    Each line is a node; one leading tab per level. Unindented lines become
    new children of the target, indented lines nest under the line above.

    Args:
        text: The outline text.
        node_id: Target node (defaults to the selected node).
    """
    server = _ctx(ctx)
    async with server.lock:
        return tree_paste_text(server.session, text=text, node_id=node_id)


@mcp_server.tool()
async def tree_import_tool(
    ctx: Context, data: Any = None, path: str | None = None
) -> dict[str, Any]:
    """Replace the document with a JSON tree and clear the undo history.

    Args:
        data: A {"id", "name", "children"} object or an array of them.
        path: A JSON file to read instead of data.
    """
    server = _ctx(ctx)
    async with server.lock:
        return tree_import(server.session, data=data, path=path)


@mcp_server.tool()
async def tree_export_tool(
    ctx: Context, path: str | None = None, output_format: str = "json"
) -> dict[str, Any]:
    """Export the document, returning it or writing it to a .json/.txt file.

    Args:
        path: File to write; omit to get the content back.
        output_format: "json" or "text" (tab-indented names).
    """
    server = _ctx(ctx)
    async with server.lock:
        return tree_export(server.session, path=path, output_format=output_format)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from tree_editor.logging_config import configure_logging

    configure_logging(quiet=True)
    mcp_server.run(transport="stdio")
