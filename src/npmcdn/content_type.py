"""Content-type lookup for files served out of package tarballs."""

from __future__ import annotations

import mimetypes
import re

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Dotfiles and well-known extensionless files that are plain text.
_TEXT_FILES = re.compile(
    r"(?:^|/)(\.[a-z]*rc|\.git[a-z]*|\.[a-z]*ignore|LICENSE|README|CHANGES|AUTHORS|Makefile|\.lock)$",
    re.IGNORECASE,
)

# Extensions common in npm packages that the platform mime table may lack.
_EXTRA_TYPES = {
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".cjs": "application/javascript",
    ".jsx": "text/jsx",
    ".ts": "text/x-typescript",
    ".tsx": "text/x-typescript",
    ".map": "application/json",
    ".json": "application/json",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".flow": "text/plain",
    ".coffee": "text/x-coffeescript",
    ".vue": "text/plain",
    ".woff2": "font/woff2",
}


def get_content_type(path: str) -> str:
    """Return the content type for ``path`` based on its name."""
    if _TEXT_FILES.search(path):
        return "text/plain"
    _, ext = _splitext(path)
    if ext in _EXTRA_TYPES:
        return _EXTRA_TYPES[ext]
    guessed, _ = mimetypes.guess_type(path, strict=False)
    return guessed or DEFAULT_CONTENT_TYPE


def _splitext(path: str):
    name = path.rsplit("/", 1)[-1]
    if "." not in name.lstrip("."):
        return name, ""
    stem, ext = name.rsplit(".", 1)
    return stem, f".{ext.lower()}"
