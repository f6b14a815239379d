"""On-disk cache of extracted package tarballs.

Each exact package version is extracted into ``<root>/<name>/<version>``;
scoped names add one level for the scope. A directory counts as cached once
it holds a regular
``package.json``; directories are published by atomic rename so the
manifest never appears before the rest of the package.
"""

from __future__ import annotations

import logging
import os
import stat
from typing import Any, Dict

from .constants import Constants
from .file_resolver import stat_path

logger = logging.getLogger(__name__)


class PackageCache:
    """Locates and checks extracted packages under a cache root."""

    def __init__(self, root: str):
        """Initialize the package cache.

        Args:
            root: Directory holding one subdirectory per package version.
        """
        self._root = os.path.abspath(root)

    @property
    def root(self) -> str:
        """Cache root directory."""
        return self._root

    def directory_for(self, package_name: str, version: str) -> str:
        """Return the cache directory for ``package_name`` at ``version``.

        The version is its own path component, so no name/version pair can
        share a directory with another.
        """
        return os.path.join(self._root, *package_name.split("/"), version)

    def manifest_path(self, directory: str) -> str:
        """Path of the package manifest inside ``directory``."""
        return os.path.join(directory, Constants.PACKAGE_JSON_FILE)

    async def is_cached(self, directory: str) -> bool:
        """Return True if ``directory`` holds an extracted package.

        Raises:
            OSError: When the manifest cannot be checked for a reason other
                than it being absent.
        """
        st = await stat_path(self.manifest_path(directory))
        return st is not None and stat.S_ISREG(st.st_mode)

    def ensure_root(self) -> None:
        """Create the cache root if needed."""
        os.makedirs(self._root, exist_ok=True)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics; entries counts top-level package directories."""
        try:
            entries = len(os.listdir(self._root))
        except OSError:
            entries = 0
        return {"root": self._root, "entries": entries}
