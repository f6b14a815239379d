"""Parser for package URLs such as ``/history@1.12.5/umd/History.min.js``."""

from __future__ import annotations

import re
import urllib.parse
from dataclasses import dataclass
from typing import Optional

from .constants import Constants

_DOT_SEGMENTS = (".", "..")


@dataclass(frozen=True)
class PackageRequest:
    """Result of parsing a package URL."""

    package_name: str
    version: str
    filename: str = ""
    search: str = ""

    @property
    def display_name(self) -> str:
        """Return ``name@version`` for messages and logs."""
        return f"{self.package_name}@{self.version}"


class RequestParser:
    """Parser for extracting package/version/file info from CDN request URLs."""

    # /{package}[@{version}][/{filename}]
    # /@{scope}/{package}[@{version}][/{filename}]
    _SCOPED_PATTERN = re.compile(r"^/(@[^/]*)/([^/]*)(/.*)?$")
    _UNSCOPED_PATTERN = re.compile(r"^/([^/]*)(/.*)?$")
    _VALID_NAME_PATTERN = re.compile(r"^[^/@]+$")

    def __init__(self, default_version: str = Constants.DEFAULT_VERSION_TAG):
        """Initialize the request parser.

        Args:
            default_version: Version token used when the URL names none.
        """
        self._default_version = default_version

    def parse(self, path: str, query: str = "") -> Optional[PackageRequest]:
        """Parse a request path into a PackageRequest.

        Args:
            path: The URL path to parse. A ``?query`` suffix is split off
                when ``query`` is not given separately.
            query: Raw query string, with or without the leading ``?``.

        Returns:
            PackageRequest, or None when the path is not a package URL.
        """
        if not query and "?" in path:
            path, query = path.split("?", 1)
        search = self._normalize_search(query)

        if not path.startswith("/"):
            path = "/" + path

        if path.startswith("/@"):
            match = self._SCOPED_PATTERN.match(path)
            if match is None:
                return None
            scope, segment, filename = match.groups()
            scope = urllib.parse.unquote(scope)
            if not self._VALID_NAME_PATTERN.match(scope[1:]):
                return None
            name, version = self._split_version(segment)
            if name is None:
                return None
            package_name = f"{scope}/{name}"
        else:
            match = self._UNSCOPED_PATTERN.match(path)
            if match is None:
                return None
            segment, filename = match.groups()
            name, version = self._split_version(segment)
            if name is None:
                return None
            package_name = name

        return PackageRequest(
            package_name=package_name,
            version=version,
            filename=urllib.parse.unquote(filename or ""),
            search=search,
        )

    def _split_version(self, segment: str):
        """Split ``name@version`` on its last ``@``; return (None, None) if invalid."""
        name, sep, version = segment.rpartition("@")
        if not sep:
            name, version = segment, ""
        name = urllib.parse.unquote(name)
        version = urllib.parse.unquote(version)
        if not name or not self._VALID_NAME_PATTERN.match(name):
            return None, None
        # names and versions become cache path components
        if name in _DOT_SEGMENTS or version in _DOT_SEGMENTS:
            return None, None
        if "/" in version or "\\" in version:
            return None, None
        return name, version or self._default_version

    @staticmethod
    def _normalize_search(query: str) -> str:
        if not query:
            return ""
        return query if query.startswith("?") else f"?{query}"


_DEFAULT_PARSER = RequestParser()


def parse_package_url(path: str, query: str = "") -> Optional[PackageRequest]:
    """Parse ``path`` with the default parser. Returns None for invalid URLs."""
    return _DEFAULT_PARSER.parse(path, query)


def create_package_url(
    package_name: str,
    version: Optional[str] = None,
    filename: str = "",
    search: str = "",
) -> str:
    """Build a package URL, the inverse of :func:`parse_package_url`."""
    url = f"/{package_name}"
    if version:
        url += f"@{version}"
    if filename:
        url += filename if filename.startswith("/") else f"/{filename}"
    if search:
        url += search if search.startswith("?") else f"?{search}"
    return url
