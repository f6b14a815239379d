"""Response helpers for the CDN request handler."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from aiohttp import web

from .content_type import get_content_type

logger = logging.getLogger(__name__)


def cache_headers(max_age: int) -> Dict[str, str]:
    """Cache-Control header for ``max_age`` seconds; empty when 0."""
    if max_age and max_age > 0:
        return {"Cache-Control": f"public, max-age={int(max_age)}"}
    return {}


def send_text(status: int, message: str) -> web.Response:
    """Plain-text response."""
    return web.Response(status=status, text=message, content_type="text/plain")


def send_invalid_url(url: str) -> web.Response:
    """The request path is not a package URL."""
    return send_text(403, f"Invalid URL: {url}")


def send_not_found(what: str) -> web.Response:
    """``what`` names the missing package, version, field or file."""
    return send_text(404, f"Not found: {what}")


def send_server_error(error: Any) -> web.Response:
    """Log ``error`` and return a generic 500."""
    if isinstance(error, BaseException):
        logger.error("Server error: %s", error, exc_info=error)
    else:
        logger.error("Server error: %s", error)
    return send_text(500, "Internal Server Error")


def send_redirect(location: str, max_age: int = 0) -> web.Response:
    """Temporary redirect to ``location``."""
    headers = {"Location": location, **cache_headers(max_age)}
    return web.Response(
        status=302,
        headers=headers,
        text=f"Redirecting to {location}",
        content_type="text/plain",
    )


def send_file(path: str, max_age: int = 0) -> web.FileResponse:
    """Stream the file at ``path`` with its content type."""
    headers = {"Content-Type": get_content_type(path), **cache_headers(max_age)}
    return web.FileResponse(path, headers=headers)


def send_json(value: Any, max_age: int = 0) -> web.Response:
    """JSON response."""
    return web.Response(
        status=200,
        headers=cache_headers(max_age),
        body=json.dumps(value, indent=2).encode(),
        content_type="application/json",
    )
