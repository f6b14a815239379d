"""Directory listings for auto-indexed package directories."""

from __future__ import annotations

import asyncio
import os
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .constants import EntryType
from .content_type import get_content_type


@dataclass(frozen=True)
class FileSystemEntry:
    """A single node of a directory listing."""

    path: str
    last_modified: str
    content_type: str
    size: int
    type: EntryType
    children: Optional[List["FileSystemEntry"]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape served to clients.

        ``children`` is omitted when the directory was not expanded, so an
        unexpanded directory stays distinguishable from an empty one.
        """
        data: Dict[str, Any] = {
            "path": self.path,
            "lastModified": self.last_modified,
            "contentType": self.content_type,
            "size": self.size,
            "type": self.type.value,
        }
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data


def entry_type(st: os.stat_result) -> EntryType:
    """Classify a stat result."""
    mode = st.st_mode
    if stat.S_ISREG(mode):
        return EntryType.FILE
    if stat.S_ISDIR(mode):
        return EntryType.DIRECTORY
    if stat.S_ISBLK(mode):
        return EntryType.BLOCK_DEVICE
    if stat.S_ISCHR(mode):
        return EntryType.CHARACTER_DEVICE
    if stat.S_ISLNK(mode):
        return EntryType.SYMLINK
    if stat.S_ISFIFO(mode):
        return EntryType.FIFO
    if stat.S_ISSOCK(mode):
        return EntryType.SOCKET
    return EntryType.UNKNOWN


def _format_mtime(mtime: float) -> str:
    stamp = datetime.fromtimestamp(mtime, tz=timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _join(relative_path: str, name: str) -> str:
    if not relative_path:
        return name
    return relative_path.rstrip("/") + "/" + name


async def _build_entry(
    base_dir: str, relative_path: str, st: os.stat_result, max_depth: int
) -> FileSystemEntry:
    kind = entry_type(st)
    children = None
    if kind is EntryType.DIRECTORY and max_depth > 0:
        children = await _build_children(base_dir, relative_path, max_depth - 1)
    return FileSystemEntry(
        path=relative_path,
        last_modified=_format_mtime(st.st_mtime),
        content_type=get_content_type(relative_path),
        size=st.st_size,
        type=kind,
        children=children,
    )


async def _build_children(
    base_dir: str, relative_path: str, max_depth: int
) -> List[FileSystemEntry]:
    directory = os.path.join(base_dir, relative_path.lstrip("/"))
    names = await asyncio.to_thread(os.listdir, directory)
    stats = await asyncio.gather(
        *(asyncio.to_thread(os.lstat, os.path.join(directory, name)) for name in names)
    )
    return list(
        await asyncio.gather(
            *(
                _build_entry(base_dir, _join(relative_path, name), st, max_depth)
                for name, st in zip(names, stats)
            )
        )
    )


async def build_tree(base_dir: str, relative_path: str, max_depth: int) -> FileSystemEntry:
    """Build the listing for ``relative_path`` inside ``base_dir``.

    Args:
        base_dir: Root directory of the extracted package.
        relative_path: Path of the entry relative to ``base_dir``.
        max_depth: Levels of directories to expand below this entry.

    Returns:
        FileSystemEntry for ``relative_path``; directories carry children
        in listing order.

    Raises:
        OSError: If any entry cannot be listed or stat'ed.
    """
    path = os.path.join(base_dir, relative_path.lstrip("/"))
    st = await asyncio.to_thread(os.lstat, path)
    return await _build_entry(base_dir, relative_path, st, max_depth)
