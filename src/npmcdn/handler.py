"""Request handler turning package URLs into files from npm tarballs.

Supported URL schemes are:

    /history@1.12.5/umd/History.min.js (recommended)
    /history@1.12.5 (package.json's main is implied)

Additionally, the following URLs are supported but will return a
temporary (302) redirect:

    /history (redirects to version, latest is implied)
    /history/umd/History.min.js (redirects to version, latest is implied)
    /history@latest/umd/History.min.js (redirects to version)
    /history@^1/umd/History.min.js (redirects to max satisfying version)
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import tarfile
import urllib.parse
from typing import Any, Awaitable, Callable, Dict, Optional

from aiohttp import web

from . import responses
from .cache import PackageCache
from .constants import Constants
from .errors import RegistryError
from .file_resolver import is_directory, resolve_file, safe_join
from .registry import RegistryClient
from .request_parser import PackageRequest, RequestParser, create_package_url
from .tree import build_tree
from .versions import ResolutionMode, is_exact_version, resolve_version

logger = logging.getLogger(__name__)

# Builds the bundle for an extracted package directory; returns its path or None.
BundleBuilder = Callable[[str], Awaitable[Optional[str]]]


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


class RequestHandler:
    """Serves files out of npm packages, fetching them on demand."""

    def __init__(
        self,
        cache: PackageCache,
        registry: RegistryClient,
        *,
        bundle_path: str = Constants.DEFAULT_BUNDLE_PATH,
        redirect_ttl: int = 0,
        auto_index: bool = True,
        max_depth: Optional[int] = None,
        base_path: str = "",
        bundle_builder: Optional[BundleBuilder] = None,
    ):
        """Initialize the request handler.

        Args:
            cache: Cache of extracted packages.
            registry: Registry client used for metadata and tarballs.
            bundle_path: Pseudo-filename served by ``bundle_builder``.
            redirect_ttl: Cache lifetime in seconds for redirects; 0 disables it.
            auto_index: Serve JSON listings for directories.
            max_depth: Directory levels expanded in listings; None is unbounded.
            base_path: Mount prefix prepended to every redirect.
            bundle_builder: Optional coroutine creating the bundle file.
        """
        self._cache = cache
        self._registry = registry
        self._parser = RequestParser()
        self._bundle_path = bundle_path
        self._redirect_ttl = redirect_ttl
        self._auto_index = auto_index
        self._max_depth = sys.maxsize if max_depth is None else max_depth
        self._base_path = base_path.rstrip("/")
        self._bundle_builder = bundle_builder

    async def handle(self, request: web.Request) -> web.StreamResponse:
        """aiohttp entry point."""
        path = request.rel_url.raw_path
        if self._base_path and path.startswith(self._base_path):
            path = path[len(self._base_path):] or "/"
        return await self.serve(path, request.rel_url.raw_query_string)

    async def serve(self, url: str, query: str = "") -> web.StreamResponse:
        """Serve the package URL ``url`` (relative to the base path).

        Args:
            url: Raw request path, e.g. ``/react@16.0.0/index.js``.
            query: Raw query string without the leading ``?``.

        Returns:
            The response to send.
        """
        logger.info("%s %s%s", self._base_path or "/", url, f"?{query}" if query else "")

        parsed = self._parser.parse(url, query)
        if parsed is None:
            return responses.send_invalid_url(url)

        directory = self._cache.directory_for(parsed.package_name, parsed.version)
        # Tags and ranges always go through the registry first.
        if is_exact_version(parsed.version):
            try:
                cached = await self._cache.is_cached(directory)
            except OSError as exc:
                return responses.send_server_error(exc)
            if cached:
                # Best case: we already have this package on disk.
                return await self._serve_package(parsed, directory, url, query)

        try:
            info = await self._registry.get_package_info(parsed.package_name)
        except RegistryError as exc:
            return responses.send_server_error(exc)

        if info is None:
            return responses.send_not_found(f'package "{parsed.package_name}"')

        if not isinstance(info.get("versions"), dict):
            return responses.send_server_error(
                RegistryError(f"Unable to retrieve info for package {parsed.package_name}")
            )

        resolution = resolve_version(parsed.version, info)

        if resolution.mode is ResolutionMode.EXACT:
            # A valid request for a package we haven't downloaded yet.
            return await self._fetch_and_serve(parsed, info["versions"][parsed.version], directory, url, query)

        if resolution.found:
            logger.debug(
                "Resolved %s (%s) to %s",
                parsed.display_name, resolution.mode.value, resolution.version,
            )
            return responses.send_redirect(
                self._location(
                    create_package_url(
                        parsed.package_name, resolution.version, parsed.filename, parsed.search
                    )
                ),
                self._redirect_ttl,
            )

        return responses.send_not_found(f"package {parsed.display_name}")

    async def _fetch_and_serve(
        self,
        parsed: PackageRequest,
        manifest: Dict[str, Any],
        directory: str,
        url: str,
        query: str,
    ) -> web.StreamResponse:
        dist = manifest.get("dist") if isinstance(manifest, dict) else None
        tarball_url = dist.get("tarball") if isinstance(dist, dict) else None
        if not tarball_url:
            return responses.send_server_error(
                RegistryError(f"No tarball URL for package {parsed.display_name}")
            )

        logger.info("Fetching %s from %s", parsed.display_name, tarball_url)
        try:
            await self._registry.fetch_and_extract(tarball_url, directory)
        except (RegistryError, OSError, tarfile.TarError) as exc:
            return responses.send_server_error(exc)

        return await self._serve_package(parsed, directory, url, query)

    async def _serve_package(
        self, parsed: PackageRequest, directory: str, url: str, query: str
    ) -> web.StreamResponse:
        if parsed.filename == self._bundle_path:
            return await self._serve_bundle(parsed, directory)
        if parsed.filename:
            return await self._serve_filename(parsed, directory, url)
        main_field = urllib.parse.parse_qs(query).get("main", [None])[0]
        return await self._serve_main(parsed, directory, main_field)

    async def _serve_bundle(self, parsed: PackageRequest, directory: str) -> web.StreamResponse:
        bundle_name = self._bundle_path.lstrip("/")
        if self._bundle_builder is None:
            return responses.send_not_found(f"{bundle_name} in package {parsed.display_name}")
        try:
            file = await self._bundle_builder(directory)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            return responses.send_server_error(exc)
        if file is None:
            return responses.send_not_found(f"{bundle_name} in package {parsed.display_name}")
        return responses.send_file(file, Constants.ONE_YEAR)

    async def _serve_filename(
        self, parsed: PackageRequest, directory: str, url: str
    ) -> web.StreamResponse:
        not_found = f'file "{parsed.filename}" in package {parsed.display_name}'
        filepath = safe_join(directory, parsed.filename)
        if filepath is None:
            return responses.send_not_found(not_found)

        # Try to serve the file in the URL, or at least a directory index.
        try:
            file = await resolve_file(filepath, False)
            if file is not None:
                return responses.send_file(file, Constants.ONE_YEAR)
            if not self._auto_index or not await is_directory(filepath):
                return responses.send_not_found(not_found)
        except OSError as exc:
            return responses.send_server_error(exc)

        # Directory URLs always end with a slash.
        if not url.endswith("/"):
            return responses.send_redirect(
                self._location(url + "/" + parsed.search), self._redirect_ttl
            )

        try:
            tree = await build_tree(directory, parsed.filename, self._max_depth)
        except OSError as exc:
            logger.error(
                "Unable to generate index json for %s%s", parsed.display_name, parsed.filename
            )
            return responses.send_server_error(exc)
        return responses.send_json(tree.to_dict(), Constants.ONE_YEAR)

    async def _serve_main(
        self, parsed: PackageRequest, directory: str, main_field: Optional[str]
    ) -> web.StreamResponse:
        # No filename in the URL. Try to serve the package's "main" file.
        try:
            data = await asyncio.to_thread(_read_text, self._cache.manifest_path(directory))
        except OSError as exc:
            return responses.send_server_error(exc)

        try:
            package_config = json.loads(data)
        except ValueError as exc:
            return responses.send_text(500, f"Error parsing package.json: {exc}")
        if not isinstance(package_config, dict):
            return responses.send_text(500, "Error parsing package.json: expected an object")

        if main_field and main_field not in package_config:
            return responses.send_not_found(
                f'field "{main_field}" in package.json of {parsed.display_name}'
            )

        # Default main is index, same as npm.
        main_property = main_field or Constants.DEFAULT_MAIN_FIELD
        main_filename = package_config.get(main_property) or Constants.DEFAULT_MAIN_FILE
        if not isinstance(main_filename, str):
            return responses.send_not_found(
                f'field "{main_property}" in package.json of {parsed.display_name}'
            )

        not_found = f'main file "{main_filename}" in package {parsed.display_name}'
        filepath = safe_join(directory, main_filename)
        if filepath is None:
            return responses.send_not_found(not_found)

        try:
            file = await resolve_file(filepath, True)
        except OSError as exc:
            return responses.send_server_error(exc)
        if file is None:
            return responses.send_not_found(not_found)
        return responses.send_file(file, Constants.ONE_YEAR)

    def _location(self, url: str) -> str:
        return self._base_path + url
