"""CLI for the tree editor (inspect, convert, edit, MCP server)."""

import sys
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from tree_editor.console import CommandLoop, render_outline
from tree_editor.core.codec.indent_text import (
    decode,
    decode_fragments,
    encode_document,
    lines_to_text,
    text_to_lines,
)
from tree_editor.core.importer.json_reader import (
    TreeValidationError,
    dumps_export,
    read_document,
)
from tree_editor.core.router import EditorSession
from tree_editor.core.tree.ids import IdGenerator
from tree_editor.core.tree.store import count_nodes
from tree_editor.logging_config import configure_logging
from tree_editor.models.node import Document
from tree_editor.writer import FileWriter

app = typer.Typer(help="Tree editor: edit, inspect and convert outline documents.")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


def _load(path: Path) -> Document:
    """Read a document, turning import problems into a clean exit."""
    if not path.exists():
        logger.error("File not found: {}", path)
        raise typer.Exit(1)
    try:
        return read_document(path)
    except TreeValidationError as e:
        typer.echo(f"Invalid tree document {path}: {e}", err=True)
        raise typer.Exit(1) from e


def _write_or_echo(output: Path | None, contents: str, *, dry_run: bool = False) -> None:
    if output is None:
        typer.echo(contents, nl=not contents.endswith("\n"))
        return
    try:
        writer = FileWriter(output.parent, dry_run=dry_run)
        fname = writer.make_data_file(output.name, contents=contents)
    except ValueError as e:
        typer.echo(f"Cannot write {output}: {e}", err=True)
        raise typer.Exit(1) from e
    writer.finalize()
    typer.echo(f"Wrote {fname}")


@app.command()
def show(
    path: Path = typer.Argument(..., help="JSON tree document"),
) -> None:
    """Print the visible outline of a document with node ids."""
    session = EditorSession(_load(path))
    for line in render_outline(session):
        typer.echo(line)


@app.command()
def validate(
    path: Path = typer.Argument(..., help="JSON tree document"),
) -> None:
    """Check that a file can be imported, and summarize it."""
    document = _load(path)
    total = sum(count_nodes(root) for root in document.roots)
    typer.echo(f"OK: {len(document.roots)} root node(s), {total} node(s)")


@app.command(name="to-text")
def to_text(
    path: Path = typer.Argument(..., help="JSON tree document"),
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to this .txt file instead of stdout"),
    ] = None,
    skip_collapsed: bool = typer.Option(
        False, "--skip-collapsed", help="Leave out the children of collapsed nodes"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only log what would be written"),
) -> None:
    """Extract node names as a tab-indented outline."""
    document = _load(path)
    lines = list(encode_document(document, skip_collapsed=skip_collapsed))
    _write_or_echo(output, lines_to_text(lines) + "\n" if lines else "", dry_run=dry_run)


@app.command(name="from-text")
def from_text(
    path: Annotated[
        Path | None,
        typer.Argument(help="Tab-indented outline file (stdin when omitted)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to this .json file instead of stdout"),
    ] = None,
    multi: bool = typer.Option(
        False, "--multi", "-m", help="Treat every unindented line as its own root"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only log what would be written"),
) -> None:
    """Build a JSON tree, with fresh ids, from a tab-indented outline."""
    text = path.read_text(encoding="utf-8") if path else sys.stdin.read()
    ids = IdGenerator()
    if multi:
        document = Document(roots=decode_fragments(text_to_lines(text), ids))
    else:
        root = decode(text_to_lines(text), ids)
        document = Document(roots=(root,) if root else ())
    if document.is_empty:
        typer.echo("No outline lines found.", err=True)
        raise typer.Exit(1)
    _write_or_echo(output, dumps_export(document), dry_run=dry_run)


@app.command()
def edit(
    path: Annotated[
        Path | None,
        typer.Argument(help="JSON tree document to open (starts empty when omitted)"),
    ] = None,
    script: Annotated[
        Path | None,
        typer.Option("--script", "-s", help="Read commands from this file instead of stdin"),
    ] = None,
) -> None:
    """Edit a document with line commands ('help' lists them)."""
    document = _load(path) if path else Document()
    session = EditorSession(document, confirm=lambda message: typer.confirm(message))
    loop = CommandLoop(session, save_path=path)
    if script:
        loop.run(script.read_text(encoding="utf-8").splitlines())
    else:
        loop.run(sys.stdin)


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from tree_editor.mcp.server import run_mcp_server

    run_mcp_server()
