"""File access layer: named byte handles for folders on disk or in memory.

The codec and the ingestor only see :class:`FileHandle` objects. Reading and
replacing real paths happens here and nowhere else.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Iterable, Protocol, runtime_checkable


@runtime_checkable
class FileHandle(Protocol):
    name: str

    async def read_bytes(self) -> bytes: ...

    async def write_bytes(self, data: bytes) -> None: ...


class LocalFile:
    """A file on disk. Writes go to a temporary sibling that then replaces the original."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.name = self.path.name

    async def read_bytes(self) -> bytes:
        return await asyncio.to_thread(self.path.read_bytes)

    async def write_bytes(self, data: bytes) -> None:
        await asyncio.to_thread(_replace_file, self.path, data)

    def __repr__(self) -> str:
        return f"LocalFile({str(self.path)!r})"


def _replace_file(path: Path, data: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class MemoryFile:
    """An in-memory file, used for HTTP uploads and tests."""

    def __init__(self, name: str, data: bytes = b""):
        self.name = name
        self.data = data

    async def read_bytes(self) -> bytes:
        return self.data

    async def write_bytes(self, data: bytes) -> None:
        self.data = bytes(data)

    def __repr__(self) -> str:
        return f"MemoryFile({self.name!r}, {len(self.data)} bytes)"


def open_folder(path: str | Path) -> list[LocalFile]:
    """Return a handle for every regular file directly inside ``path``, sorted by name."""
    folder = Path(path)
    if not folder.is_dir():
        raise NotADirectoryError(f"Not a directory: {folder}")
    return [LocalFile(p) for p in sorted(folder.iterdir()) if p.is_file()]


def extension_of(handle: FileHandle | str) -> str:
    """Text after the last dot of a handle's name (the whole name if there is none)."""
    name = handle if isinstance(handle, str) else handle.name
    return name.rsplit(".", 1)[-1]


def find_file(folder: Iterable[FileHandle], name: str) -> FileHandle | None:
    """Exact-name lookup within a folder."""
    for handle in folder:
        if handle.name == name:
            return handle
    return None


def files_with_extension(folder: Iterable[FileHandle], *extensions: str) -> list[FileHandle]:
    """Handles whose extension is one of ``extensions``, ignoring case, in folder order."""
    wanted = {ext.lower() for ext in extensions}
    return [f for f in folder if extension_of(f).lower() in wanted]
