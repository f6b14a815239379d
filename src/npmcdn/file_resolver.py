"""Resolve request paths to files the way ``require()`` does.

A path like ``lib/file`` resolves to ``lib/file``, ``lib/file.js`` or
``lib/file.json``, whichever exists first. Entry points may additionally
resolve a directory through its ``index`` file.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import stat
from typing import Optional

from .constants import Constants

logger = logging.getLogger(__name__)

# stat() failures that mean "nothing there" rather than a real I/O problem
_ABSENT_ERRNOS = (errno.ENOENT, errno.ENOTDIR)


def safe_join(base: str, relative: str) -> Optional[str]:
    """Join ``relative`` onto ``base`` without escaping ``base``.

    Leading slashes are ignored. Returns None when the normalized result
    falls outside ``base``.
    """
    base = os.path.abspath(base)
    candidate = os.path.normpath(os.path.join(base, relative.lstrip("/")))
    if candidate != base and not candidate.startswith(base + os.sep):
        return None
    return candidate


async def stat_path(path: str) -> Optional[os.stat_result]:
    """Stat ``path`` in a worker thread. Returns None if it does not exist."""
    try:
        return await asyncio.to_thread(os.stat, path)
    except OSError as exc:
        if exc.errno in _ABSENT_ERRNOS:
            return None
        raise


async def is_directory(path: str) -> bool:
    """Return True if ``path`` exists and is a directory."""
    st = await stat_path(path)
    return st is not None and stat.S_ISDIR(st.st_mode)


async def resolve_file(path: str, use_index: bool) -> Optional[str]:
    """Resolve ``path`` to an existing regular file.

    Args:
        path: Absolute filesystem path without extension guessing applied.
        use_index: Fall back to ``path/index`` when ``path`` is a directory.

    Returns:
        The resolved file path, or None when nothing matches.

    Raises:
        OSError: For any filesystem error other than the path being absent.
    """
    directory = None
    for ext in Constants.RESOLVE_EXTENSIONS:
        candidate = path + ext
        st = await stat_path(candidate)
        if st is None:
            continue
        if stat.S_ISREG(st.st_mode):
            return candidate
        if ext == "" and stat.S_ISDIR(st.st_mode):
            directory = candidate

    if directory is not None and use_index:
        logger.debug("Resolving %s through its index file", directory)
        return await resolve_file(os.path.join(directory, Constants.DEFAULT_MAIN_FILE), False)

    return None
