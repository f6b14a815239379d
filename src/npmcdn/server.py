"""CDN server using aiohttp."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import tempfile
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

from aiohttp import web

from .cache import PackageCache
from .constants import Constants
from .handler import BundleBuilder, RequestHandler
from .registry import RegistryClient

logger = logging.getLogger(__name__)


def _default_cache_dir() -> str:
    return os.path.join(tempfile.gettempdir(), "npmcdn")


@dataclass
class CDNConfig:
    """Configuration for the CDN server."""

    host: str = "127.0.0.1"
    port: int = 8080
    registry_url: str = Constants.REGISTRY_URL_NPM
    cache_dir: str = field(default_factory=_default_cache_dir)
    bundle_path: str = Constants.DEFAULT_BUNDLE_PATH
    redirect_ttl: int = 0
    auto_index: bool = True
    max_depth: Optional[int] = None
    base_path: str = ""
    timeout: int = Constants.REQUEST_TIMEOUT
    allow_external: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CDNConfig":
        """Create config from a mapping such as a loaded YAML file.

        Unknown keys are ignored with a warning; dashes in keys are accepted.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = str(key).replace("-", "_")
            if name in known:
                values[name] = value
            else:
                logger.warning("Ignoring unknown config key: %s", key)
        return cls(**values)

    @classmethod
    def from_args(cls, args: Any, base: Optional["CDNConfig"] = None) -> "CDNConfig":
        """Create config from CLI arguments.

        Args:
            args: Parsed CLI arguments namespace.
            base: Config whose values are kept where no flag was given.

        Returns:
            CDNConfig instance.
        """
        config = base or cls()
        overrides = {
            "host": getattr(args, "HOST", None),
            "port": getattr(args, "PORT", None),
            "registry_url": getattr(args, "REGISTRY_URL", None),
            "cache_dir": getattr(args, "CACHE_DIR", None),
            "bundle_path": getattr(args, "BUNDLE_PATH", None),
            "redirect_ttl": getattr(args, "REDIRECT_TTL", None),
            "max_depth": getattr(args, "MAX_DEPTH", None),
            "base_path": getattr(args, "BASE_PATH", None),
            "timeout": getattr(args, "TIMEOUT", None),
        }
        for name, value in overrides.items():
            if value is not None:
                setattr(config, name, value)

        if getattr(args, "NO_AUTO_INDEX", False):
            config.auto_index = False
        if getattr(args, "ALLOW_EXTERNAL", False):
            config.allow_external = True

        return config

    def summary(self) -> Dict[str, Any]:
        """Config values safe to expose on the health endpoint."""
        data = asdict(self)
        data.pop("allow_external", None)
        return data


class CDNServer:
    """HTTP server serving files out of npm packages.

    Package tarballs are fetched from the registry on first use and kept
    extracted under the configured cache directory.
    """

    def __init__(self, config: CDNConfig, bundle_builder: Optional[BundleBuilder] = None):
        """Initialize the CDN server.

        Args:
            config: Server configuration.
            bundle_builder: Optional collaborator serving the bundle path.
        """
        self._config = config
        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None

        self._cache = PackageCache(config.cache_dir)
        self._registry = RegistryClient(
            registry_url=config.registry_url,
            timeout=config.timeout,
        )
        self._handler = RequestHandler(
            self._cache,
            self._registry,
            bundle_path=config.bundle_path,
            redirect_ttl=config.redirect_ttl,
            auto_index=config.auto_index,
            max_depth=config.max_depth,
            base_path=config.base_path,
            bundle_builder=bundle_builder,
        )

    def _create_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application()
        base_path = self._config.base_path.rstrip("/")
        app.router.add_get("/_npmcdn/health", self._health_check)
        app.router.add_get(base_path + "/{path:.*}", self._handler.handle)
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _health_check(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response({
            "status": "ok",
            "config": self._config.summary(),
            "cache": self._cache.stats(),
        })

    async def _on_startup(self, app: web.Application) -> None:
        """Called when the server starts."""
        self._cache.ensure_root()
        await self._registry.start()
        logger.info("CDN server starting on %s:%s", self._config.host, self._config.port)

    async def _on_cleanup(self, app: web.Application) -> None:
        """Called when the server stops."""
        await self._registry.stop()
        logger.info("CDN server stopped")

    async def start(self) -> None:
        """Start the CDN server."""
        self._app = self._create_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        site = web.TCPSite(
            self._runner,
            self._config.host,
            self._config.port,
        )
        await site.start()

        logger.info(
            "npmcdn listening on http://%s:%s%s",
            self._config.host, self._config.port, self._config.base_path,
        )
        logger.info("Registry: %s", self._config.registry_url)
        logger.info("Cache directory: %s", self._config.cache_dir)

    async def stop(self) -> None:
        """Stop the CDN server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._app = None


def run_server_sync(config: CDNConfig) -> None:
    """Run the CDN server synchronously.

    Installs signal handlers for SIGTERM and SIGINT for clean shutdown.

    Args:
        config: Server configuration.
    """
    server = CDNServer(config)
    loop = asyncio.new_event_loop()

    async def run():
        await server.start()
        stop_event = asyncio.Event()
        running_loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            running_loop.add_signal_handler(sig, stop_event.set)
        await stop_event.wait()
        logger.info("Shutdown signal received, stopping...")
        await server.stop()

    try:
        loop.run_until_complete(run())
    except KeyboardInterrupt:
        # Fallback for platforms where signal handlers don't work (Windows)
        loop.run_until_complete(server.stop())
    finally:
        loop.close()
        logger.info("CDN server shutdown complete")
