"""Tests for FileWriter: export writer that leaves unchanged files alone."""

import json
from pathlib import Path

import pytest

from tests.unit.conftest import SAMPLE_JSON
from tree_editor.models.node import Document
from tree_editor.writer import FileWriter


def test_init_creates_writer_for_valid_directory(tmp_path: Path) -> None:
    """FileWriter accepts an existing directory."""
    writer = FileWriter(tmp_path)

    assert writer.datadir == str(tmp_path.resolve())
    assert writer.dry_run is False


def test_init_raises_for_missing_directory(tmp_path: Path) -> None:
    """FileWriter raises ValueError when directory does not exist."""
    with pytest.raises(ValueError, match="not found"):
        FileWriter(tmp_path / "does_not_exist")


def test_is_possible_output_accepts_json_and_txt(tmp_path: Path) -> None:
    """Only .json and .txt files are valid output files."""
    writer = FileWriter(tmp_path)

    assert writer.is_possible_output("tree.json") is True
    assert writer.is_possible_output("tree.txt") is True
    assert writer.is_possible_output("tree.py") is False


def test_make_unique_name_skips_taken_names(tmp_path: Path) -> None:
    """Names already reserved, or already on disk, get a -N suffix."""
    (tmp_path / "tree-export.json").write_text("{}")
    writer = FileWriter(tmp_path)

    first = writer.make_unique_name("tree-export", suffix=".json")
    second = writer.make_unique_name("tree-export", suffix=".json")

    assert (first, second) == ("tree-export-1", "tree-export-2")


def test_paths_must_stay_inside_datadir(tmp_path: Path) -> None:
    """Absolute and escaping paths are rejected."""
    writer = FileWriter(tmp_path)

    with pytest.raises(ValueError, match="must be relative"):
        writer.make_data_file("/etc/tree.json", data={})
    with pytest.raises(ValueError, match="Path escapes datadir"):
        writer.make_data_file("../tree.json", data={})


def test_make_data_file_rejects_unknown_extension(tmp_path: Path) -> None:
    writer = FileWriter(tmp_path)

    with pytest.raises(ValueError, match="is_possible_output"):
        writer.make_data_file("tree.py", contents="print()")


def test_make_data_file_rejects_both_contents_and_data(tmp_path: Path) -> None:
    writer = FileWriter(tmp_path)

    with pytest.raises(ValueError, match="Cannot specify both"):
        writer.make_data_file("tree.json", contents="text", data={"key": "val"})


def test_finalize_counts_created_changed_and_same(
    tmp_path: Path, caplog_loguru: list[str]
) -> None:
    """Identical content is not rewritten."""
    writer = FileWriter(tmp_path)
    writer.make_data_file("tree.json", data={"a": 1})
    writer.make_data_file("tree.json", data={"a": 1})
    writer.make_data_file("tree.json", data={"a": 2})
    writer.finalize()

    assert caplog_loguru[-1] == "Outputs: 1 new, 1 changed, 1 same"
    assert json.loads((tmp_path / "tree.json").read_text()) == {"a": 2}


def test_make_data_file_creates_subdirectories(tmp_path: Path) -> None:
    writer = FileWriter(tmp_path)

    writer.make_data_file("sub/dir/outline.txt", contents="Root\n")

    assert (tmp_path / "sub" / "dir" / "outline.txt").read_text() == "Root\n"


def test_dry_run_writes_nothing(tmp_path: Path, caplog_loguru: list[str]) -> None:
    writer = FileWriter(tmp_path, dry_run=True)

    fname = writer.make_data_file("tree.json", data={})
    writer.finalize()

    assert fname == str(tmp_path.resolve() / "tree.json")
    assert not (tmp_path / "tree.json").exists()
    assert caplog_loguru[-1] == "Outputs: 1 new, 0 changed, 0 same"


def test_write_export(tmp_path: Path, document: Document) -> None:
    writer = FileWriter(tmp_path)

    fname = writer.write_export(document)

    assert Path(fname).name == "tree-export.json"
    assert json.loads(Path(fname).read_text(encoding="utf-8")) == SAMPLE_JSON
