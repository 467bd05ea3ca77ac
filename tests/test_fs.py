from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from aware_optimize.bundle.fs import FileSystem

from conftest import write_file


def test_copy_tree_keeps_symlinks_as_links(tmp_path: Path) -> None:
    source = tmp_path / "node_modules" / "sharp"
    write_file(source / "lib" / "index.js", "module.exports = {}")
    os.symlink("lib/index.js", source / "main.js")
    os.symlink("build/Release/sharp.node", source / "binding.node")
    destination = tmp_path / "out" / "sharp"

    asyncio.run(FileSystem().copy(source, destination))

    assert (destination / "lib" / "index.js").read_text(encoding="utf-8") == "module.exports = {}"
    assert (destination / "main.js").is_symlink()
    assert os.readlink(destination / "main.js") == "lib/index.js"
    assert (destination / "binding.node").is_symlink()
    assert not (destination / "binding.node").exists()


def test_copy_missing_source_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        asyncio.run(FileSystem().copy(tmp_path / "missing", tmp_path / "out" / "missing"))

    assert not (tmp_path / "out").exists()


def test_copy_single_file_creates_parents(tmp_path: Path) -> None:
    source = write_file(tmp_path / "config.json", "{}")

    asyncio.run(FileSystem().copy(source, tmp_path / "a" / "b" / "config.json"))

    assert (tmp_path / "a" / "b" / "config.json").read_text(encoding="utf-8") == "{}"


def test_remove_tree_ignores_missing_paths(tmp_path: Path) -> None:
    target = write_file(tmp_path / "out" / "nested" / "file.txt", "x").parent.parent

    asyncio.run(FileSystem().remove_tree(target))
    asyncio.run(FileSystem().remove_tree(target))

    assert not target.exists()
