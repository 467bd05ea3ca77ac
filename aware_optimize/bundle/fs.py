"""Filesystem operations used while assembling function artifacts."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path


def _remove_tree(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def _copy(source: Path, destination: Path) -> None:
    if not source.exists():
        raise FileNotFoundError(f"Source not found: {source}")
    destination.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir():
        shutil.copytree(source, destination, dirs_exist_ok=True, symlinks=True)
    else:
        shutil.copy2(source, destination)


def _write_bytes(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)


class FileSystem:
    """Blocking file operations pushed to worker threads so builds can overlap."""

    async def remove_tree(self, path: Path) -> None:
        """Remove a file or directory tree; missing paths are ignored."""

        await asyncio.to_thread(_remove_tree, Path(path))

    async def make_dirs(self, path: Path) -> None:
        await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)

    async def copy(self, source: Path, destination: Path) -> None:
        """Copy a file, or a whole directory tree, creating parent directories.

        Symlinks inside a copied tree are recreated as links, not followed.
        """

        await asyncio.to_thread(_copy, Path(source), Path(destination))

    async def write_bytes(self, path: Path, payload: bytes) -> None:
        await asyncio.to_thread(_write_bytes, Path(path), payload)
