"""npmcdn - serve files out of npm packages over HTTP.

Package tarballs are fetched from the registry on demand, extracted to a
local cache and served by URL, e.g. ``/history@1.12.5/umd/History.min.js``.
"""

from .request_parser import RequestParser, PackageRequest, parse_package_url, create_package_url
from .cache import PackageCache
from .registry import RegistryClient
from .handler import RequestHandler
from .server import CDNServer, CDNConfig

__version__ = "0.1.0"

__all__ = [
    "RequestParser",
    "PackageRequest",
    "parse_package_url",
    "create_package_url",
    "PackageCache",
    "RegistryClient",
    "RequestHandler",
    "CDNServer",
    "CDNConfig",
]
