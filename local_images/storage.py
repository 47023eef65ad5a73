"""Asynchronous filesystem primitives used by the content processor."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Tuple

from send2trash import send2trash

from .errors import StorageError

logger = logging.getLogger("local_images")


def _mkdir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


async def ensure_directory(path: Path) -> None:
    """Create ``path`` if needed; fail only if it still does not exist."""
    try:
        await asyncio.to_thread(_mkdir, path)
    except OSError as exc:
        logger.warning("Could not create directory %s: %s", path, exc)
    if not await asyncio.to_thread(path.is_dir):
        raise StorageError(f"Media directory {path} does not exist and cannot be created")


async def file_exists(path: Path) -> bool:
    return await asyncio.to_thread(path.exists)


async def write_bytes(path: Path, data: bytes) -> None:
    try:
        await asyncio.to_thread(path.write_bytes, data)
    except OSError as exc:
        raise StorageError(f"Cannot write {path}: {exc}") from exc


def _scan(path: Path) -> List[Tuple[str, bool]]:
    return [(entry.name, entry.is_file()) for entry in sorted(path.iterdir())]


async def list_directory(path: Path) -> List[Tuple[str, bool]]:
    """Return ``(name, is_file)`` pairs for the entries of ``path``."""
    try:
        return await asyncio.to_thread(_scan, path)
    except OSError as exc:
        raise StorageError(f"Cannot list {path}: {exc}") from exc


def _remove(path: Path, to_trash: bool) -> None:
    if to_trash:
        send2trash(str(path))
    else:
        path.unlink()


async def remove_file(path: Path, to_trash: bool = True) -> None:
    """Delete a file, sending it to the trash unless ``to_trash`` is False."""
    try:
        await asyncio.to_thread(_remove, path, to_trash)
    except OSError as exc:
        raise StorageError(f"Cannot remove {path}: {exc}") from exc
