"""Registry client for package metadata and tarball downloads."""

from __future__ import annotations

import asyncio
import io
import json
import logging
import os
import posixpath
import shutil
import tarfile
import tempfile
from typing import Any, Dict, Optional

import aiohttp
from yarl import URL

from .common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from .constants import Constants
from .errors import RegistryError

logger = logging.getLogger(__name__)


class RegistryClient:
    """Client for the npm registry."""

    def __init__(
        self,
        registry_url: str = Constants.REGISTRY_URL_NPM,
        timeout: int = Constants.REQUEST_TIMEOUT,
    ):
        """Initialize the registry client.

        Args:
            registry_url: Base URL of the npm registry.
            timeout: Request timeout in seconds.
        """
        self._registry_url = registry_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def registry_url(self) -> str:
        """Base URL of the registry."""
        return self._registry_url

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=100)
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
            )

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    def package_url(self, package_name: str) -> URL:
        """Build the metadata URL for ``package_name``.

        The registry expects the scope separator encoded (``@scope%2Fname``).
        """
        encoded = package_name.replace("/", "%2F")
        return URL(f"{self._registry_url}/{encoded}", encoded=True)

    async def get_package_info(self, package_name: str) -> Optional[Dict[str, Any]]:
        """Fetch the registry document for a package.

        Args:
            package_name: Package name, scoped or unscoped.

        Returns:
            Parsed packument, or None if the registry does not know the package.

        Raises:
            RegistryError: On transport failure, unexpected status or bad JSON.
        """
        url = self.package_url(package_name)
        headers = {"Accept": "application/json"}
        body = await self._get(url, headers=headers, allow_not_found=True)
        if body is None:
            return None
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise RegistryError(
                f"Invalid JSON from registry for {package_name}: {exc}", url=str(url)
            ) from exc
        if not isinstance(data, dict):
            raise RegistryError(f"Unexpected registry document for {package_name}", url=str(url))
        return data

    async def fetch_and_extract(self, tarball_url: str, destination: str) -> None:
        """Download a package tarball and extract it into ``destination``.

        The archive is unpacked into a temporary sibling directory and renamed
        into place, so ``destination`` is either complete or absent. When
        another request published the same directory first, this copy is
        discarded.

        Raises:
            RegistryError: If the download fails.
            OSError, tarfile.TarError: If extraction fails.
        """
        data = await self._get(URL(tarball_url), headers={"Accept": "*/*"})
        assert data is not None
        await asyncio.to_thread(extract_tarball, data, destination)

    async def _get(
        self,
        url: URL,
        headers: Dict[str, str],
        allow_not_found: bool = False,
    ) -> Optional[bytes]:
        """GET ``url`` and return the body; None on 404 when allowed."""
        if self._session is None:
            await self.start()
        assert self._session is not None

        target = safe_url(str(url))
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request", component="registry", action="GET", target=target
                    ),
                )
            try:
                async with self._session.get(url, headers=headers) as response:
                    status = response.status
                    if status == 404 and allow_not_found:
                        body = None
                    elif status != 200:
                        raise RegistryError(
                            f"Registry returned HTTP {status} for {target}",
                            url=target,
                            status=status,
                        )
                    else:
                        body = await response.read()
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                logger.error("Registry request to %s failed: %s", target, exc)
                raise RegistryError(f"Registry request failed: {exc}", url=target) from exc

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="registry",
                        action="GET",
                        status_code=status,
                        duration_ms=t.duration_ms(),
                        target=target,
                    ),
                )
        return body

    async def __aenter__(self) -> "RegistryClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()


def _strip_member_name(name: str) -> Optional[str]:
    """Drop the archive's top-level directory (usually ``package/``).

    Returns None for members that would land outside the destination.
    """
    name = name.replace("\\", "/")
    if name.startswith("/") or ".." in name.split("/"):
        return None
    parts = [part for part in name.split("/")[1:] if part not in ("", ".")]
    if not parts:
        return None
    return posixpath.join(*parts)


def extract_tarball(data: bytes, destination: str) -> None:
    """Extract gzipped tarball bytes into ``destination`` atomically.

    Only regular files and directories are extracted.
    """
    parent = os.path.dirname(destination)
    os.makedirs(parent, exist_ok=True)
    staging = tempfile.mkdtemp(prefix=".extract-", dir=parent)
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as archive:
            for member in archive:
                relative = _strip_member_name(member.name)
                if relative is None:
                    continue
                target = os.path.join(staging, *relative.split("/"))
                if member.isdir():
                    os.makedirs(target, exist_ok=True)
                elif member.isfile():
                    os.makedirs(os.path.dirname(target), exist_ok=True)
                    source = archive.extractfile(member)
                    assert source is not None
                    with source, open(target, "wb") as fh:
                        shutil.copyfileobj(source, fh)
                    os.chmod(target, 0o644)
                else:
                    logger.debug("Skipping non-regular tarball entry %s", member.name)
        try:
            os.rename(staging, destination)
        except OSError:
            if not os.path.isfile(os.path.join(destination, Constants.PACKAGE_JSON_FILE)):
                raise
            logger.debug("%s was published by a concurrent fetch", destination)
            shutil.rmtree(staging, ignore_errors=True)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise
