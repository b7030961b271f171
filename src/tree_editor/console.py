"""Line-oriented console that drives an editor session.

Each input line is one command, for example::

    select node-1
    child
    rename Shopping list
    paste-text Milk\\n\\tSemi-skimmed\\nBread
    undo
    save groceries.json
"""

from collections.abc import Callable, Iterable
from pathlib import Path

import typer
from loguru import logger

from tree_editor.config import DEFAULT_EXPORT_FILENAME
from tree_editor.core.importer.json_reader import TreeValidationError, read_document
from tree_editor.core.router import Direction, EditorSession, Intent
from tree_editor.core.tree.store import iter_visible
from tree_editor.writer import FileWriter

HELP_TEXT = """\
Commands:
  show                      print the visible outline
  select ID [ID ...]        select nodes (the first one is the command target)
  child | sibling | parent | root
                            add a node and start renaming it
  edit                      start renaming the selected node
  rename TEXT               finish (or start and finish) a rename
  cancel                    abandon the pending rename
  delete                    delete the selected node (asks when children would go too)
  collapse | expand         collapse or expand the selected node
  collapse-layer | expand-layer
                            the same for every node at the selected node's depth
  left | right | up | down  move the selection
  copy | paste              copy the selection, paste under the selected node
  paste-text TEXT           paste tab-indented text; write \\t and \\n as escapes
  undo | redo
  open PATH                 import a JSON file, replacing the document
  save [PATH]               export the document as JSON
  help | quit"""

_SIMPLE_INTENTS: dict[str, tuple[Intent, dict[str, object]]] = {
    "child": (Intent.ADD_CHILD, {}),
    "sibling": (Intent.ADD_SIBLING, {}),
    "parent": (Intent.ADD_PARENT, {}),
    "root": (Intent.ADD_ROOT, {}),
    "edit": (Intent.BEGIN_RENAME, {}),
    "cancel": (Intent.CANCEL_RENAME, {}),
    "delete": (Intent.DELETE, {}),
    "collapse": (Intent.COLLAPSE, {"collapsed": True}),
    "expand": (Intent.COLLAPSE, {"collapsed": False}),
    "collapse-layer": (Intent.COLLAPSE_LAYER, {"collapsed": True}),
    "expand-layer": (Intent.COLLAPSE_LAYER, {"collapsed": False}),
    "undo": (Intent.UNDO, {}),
    "redo": (Intent.REDO, {}),
    "copy": (Intent.COPY, {}),
    "paste": (Intent.PASTE, {}),
    **{d.value: (Intent.NAVIGATE, {"direction": d}) for d in Direction},
}


def render_outline(session: EditorSession) -> list[str]:
    """Visible outline lines, marking the selection, the rename and collapsed nodes."""
    if session.document.is_empty:
        return ["(empty document)"]
    selected = set(session.selection)
    lines = []
    for entry in iter_visible(session.document):
        node = entry.node
        marker = ">" if node.id in selected else " "
        name = session.edit_text + "_" if node.id == session.editing else node.name
        fold = " [+]" if entry.has_hidden_children else ""
        lines.append(f"{marker} {'    ' * entry.depth}{name}{fold}  ({node.id})")
    return lines


def _unescape(text: str) -> str:
    return text.replace("\\t", "\t").replace("\\n", "\n")


class CommandLoop:
    """Parse console lines into session intents and print the results."""

    def __init__(
        self,
        session: EditorSession,
        *,
        save_path: Path | None = None,
        echo: Callable[[str], None] = typer.echo,
    ) -> None:
        self.session = session
        self.save_path = save_path
        self.echo = echo

    def run(self, lines: Iterable[str]) -> None:
        for line in lines:
            if not self.execute(line):
                break

    def execute(self, line: str) -> bool:
        """Run one command line. Returns False when the loop should stop."""
        command, _, arg = line.strip().partition(" ")
        arg = arg.strip()
        if not command or command.startswith("#"):
            return True

        if command in ("quit", "exit"):
            self.session.commit_rename()
            return False
        if command == "help":
            self.echo(HELP_TEXT)
        elif command == "show":
            self._show()
        elif command == "select":
            if not self.session.dispatch(Intent.SELECT, ids=arg.split()):
                self.echo("Selection unchanged.")
        elif command == "rename":
            self._rename(arg)
        elif command == "paste-text":
            if not self.session.dispatch(Intent.PASTE, text=_unescape(arg)):
                self.echo("Nothing pasted.")
        elif command == "open":
            self._open(arg)
        elif command == "save":
            self._save(arg)
        elif command in _SIMPLE_INTENTS:
            intent, params = _SIMPLE_INTENTS[command]
            if not self.session.dispatch(intent, **params):
                self.echo(f"{command}: nothing to do.")
        else:
            self.echo(f"Unknown command {command!r}, try 'help'.")
        return True

    def _show(self) -> None:
        for line in render_outline(self.session):
            self.echo(line)

    def _rename(self, text: str) -> None:
        if self.session.editing is None and not self.session.dispatch(Intent.BEGIN_RENAME):
            self.echo("rename: select a node first.")
            return
        if not self.session.dispatch(Intent.RENAME, text=text):
            self.echo("Name unchanged.")

    def _open(self, arg: str) -> None:
        if not arg:
            self.echo("open: missing path.")
            return
        try:
            document = read_document(Path(arg).expanduser(), id_generator=self.session.id_generator)
        except (OSError, TreeValidationError) as e:
            self.echo(f"Import failed: {e}")
            return
        self.session.load(document)
        self.save_path = Path(arg).expanduser()
        self.echo(f"Opened {arg} ({len(document.roots)} root node(s)).")

    def _save(self, arg: str) -> None:
        self.session.commit_rename()
        if self.session.document.is_empty:
            self.echo("Nothing to save: the document is empty.")
            return
        path = Path(arg).expanduser() if arg else self.save_path
        try:
            if path is None:
                # Never overwrite an earlier export when no file was named.
                default = Path(DEFAULT_EXPORT_FILENAME)
                writer = FileWriter(Path.cwd())
                stem = writer.make_unique_name(default.stem, suffix=default.suffix)
                path = Path.cwd() / (stem + default.suffix)
            else:
                writer = FileWriter(path.parent)
            fname = writer.write_export(self.session.document, path.name)
            writer.finalize()
        except (OSError, ValueError) as e:
            logger.error("Export failed: {}", e)
            self.echo(f"Export failed: {e}")
            return
        self.save_path = path
        self.echo(f"Saved {fname}")
