"""File writer for exports that leaves unchanged files alone."""

import json
from pathlib import Path
from typing import Any

from loguru import logger

from tree_editor.config import DEFAULT_EXPORT_FILENAME
from tree_editor.core.importer.json_reader import dumps_export
from tree_editor.models.node import Document


class FileWriter:
    """Write output files into one directory.

    - Do not rewrite files whose contents are the same.
    - Refuse paths that escape the directory or are not .json/.txt.
    - In dry-run mode, only log what would be written.
    """

    def __init__(self, datadir: str | Path, *, dry_run: bool = False) -> None:
        self.datadir = str(Path(datadir).resolve())
        self.dry_run = dry_run

        if not dry_run and not Path(self.datadir).is_dir():
            msg = f"Output directory {self.datadir!r} not found"
            raise ValueError(msg)

        logger.debug("Writer ready, datadir {!r}, dry_run {!r}", self.datadir, dry_run)
        self._files_made: set[str] = set()
        self._unique_names: set[str] = set()
        self._num_same = 0
        self._num_changed = 0
        self._num_created = 0

    def is_possible_output(self, fname: str) -> bool:
        """Only JSON exports and plain-text outlines are ever written."""
        return fname.endswith(".json") or fname.endswith(".txt")

    def _resolve(self, fname_rel: str) -> str:
        if Path(fname_rel).is_absolute():
            msg = f"must be relative: {fname_rel!r}"
            raise ValueError(msg)
        fname = str((Path(self.datadir) / fname_rel).resolve())
        if not fname.startswith(self.datadir + "/"):
            msg = f"Path escapes datadir: {fname!r}"
            raise ValueError(msg)
        return fname

    def make_unique_name(self, base: str, *, suffix: str = "") -> str:
        """Append -1, -2, ... to ``base`` until ``base + suffix`` is not taken.

        Files already on disk count as taken, so exports never clobber each other.
        """
        unique_str = ""
        unique_count = 0
        while True:
            fname = self._resolve(base + unique_str + suffix)
            if (
                fname not in self._files_made
                and fname not in self._unique_names
                and not Path(fname).exists()
            ):
                break
            unique_count += 1
            unique_str = f"-{unique_count}"

        self._unique_names.add(fname)
        return base + unique_str

    def make_data_file(
        self,
        fname_rel: str,
        *,
        contents: str | None = None,
        data: Any = None,
    ) -> str:
        """Write contents to a file relative to the output directory.

        Args:
            fname_rel: Path relative to output directory.
            contents: String contents to write. If None, serialize data to json.
            data: Data to serialize as json. Mutually exclusive with contents.

        Returns:
            The absolute path of the file.
        """
        if contents is None:
            contents = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        elif data is not None:
            msg = "Cannot specify both contents and data"
            raise ValueError(msg)

        fname = self._resolve(fname_rel)
        if not self.is_possible_output(fname):
            msg = f"Wanted to write {fname!r} but is_possible_output() returns False"
            raise ValueError(msg)

        self._files_made.add(fname)
        action = "create"
        try:
            with open(fname, encoding="utf-8") as f:
                if f.read() == contents:
                    self._num_same += 1
                    logger.debug("Unchanged, not rewriting {!r}", fname)
                    return fname
            action = "update"
        except (FileNotFoundError, UnicodeDecodeError):
            pass

        if action == "update":
            self._num_changed += 1
        else:
            self._num_created += 1

        if self.dry_run:
            logger.info("dry-run: would {} {!r}", action, fname)
        else:
            logger.debug("Writing ({}) {!r}", action, fname)
            Path(fname).parent.mkdir(parents=True, exist_ok=True)
            with open(fname, "w", encoding="utf-8") as f:
                f.write(contents)
        return fname

    def finalize(self) -> None:
        """Log update statistics for everything written so far."""
        log_msg = (
            f"Outputs: {self._num_created} new, {self._num_changed} changed, "
            f"{self._num_same} same"
        )
        if self._num_same == len(self._files_made):
            logger.debug(log_msg)
        else:
            logger.info(log_msg)

    def write_export(self, document: Document, fname_rel: str = DEFAULT_EXPORT_FILENAME) -> str:
        """Export a document as pretty-printed JSON; returns the file path."""
        fname = self.make_data_file(fname_rel, contents=dumps_export(document))
        logger.info("Exported {} top-level node(s) to {}", len(document.roots), fname)
        return fname
