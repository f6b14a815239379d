"""CLI entry point for the npmcdn server."""

from __future__ import annotations

import ipaddress
import json
import logging
import os
import sys
from typing import Any, Dict, Optional

import yaml

from .args import parse_args
from .common.logging_utils import configure_logging
from .constants import Constants
from .server import CDNConfig, run_server_sync

logger = logging.getLogger(__name__)


def _is_local_bind_host(host: str) -> bool:
    """Return True if host is a loopback/local bind target."""
    if not host:
        return False
    host_lower = host.strip().lower()
    if host_lower in ("localhost",):
        return True
    try:
        return ipaddress.ip_address(host_lower).is_loopback
    except ValueError:
        # Non-IP hostnames are treated as non-local unless explicitly allowed.
        return False


def _enforce_local_binding(host: str, allow_external: bool) -> None:
    """Enforce local-only binding unless explicitly allowed."""
    if _is_local_bind_host(host):
        return
    if not allow_external:
        sys.stderr.write(
            "ERROR: Non-local bindings require --allow-external.\n"
        )
        sys.exit(2)
    logger.warning(
        "Binding server to non-local address (%s). Ensure network controls are in place.",
        host,
    )


def _load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load server configuration from file.

    Args:
        config_path: Path to YAML/JSON config file.

    Returns:
        Configuration dict; the ``server`` section is used when present.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        if config_path.endswith(".json"):
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if not isinstance(data, dict):
        return {}
    section = data.get("server", data)
    return section if isinstance(section, dict) else {}


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    # Honor CLI --loglevel
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()

    configure_logging()

    # Add file handler if --logfile specified
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def build_config(args: Any) -> CDNConfig:
    """Merge the config file (if any) with CLI flags; flags win."""
    file_config = _load_config_file(getattr(args, "CONFIG", None))
    if file_config:
        logger.info("Loaded config from: %s", args.CONFIG)
    return CDNConfig.from_args(args, base=CDNConfig.from_mapping(file_config))


def main(argv=None) -> None:
    """Entry point for the npmcdn command.

    Args:
        argv: Argument list; defaults to ``sys.argv[1:]``.
    """
    args = parse_args(argv)
    _setup_logging(args)

    try:
        config = build_config(args)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as exc:
        sys.stderr.write(f"ERROR: Invalid configuration: {exc}\n")
        sys.exit(2)
    _enforce_local_binding(config.host, config.allow_external)

    # Print startup banner
    print(
        f"\n"
        f"  npmcdn\n"
        f"  ======\n"
        f"  Listening: http://{config.host}:{config.port}{config.base_path}\n"
        f"  Registry: {config.registry_url}\n"
        f"  Cache: {config.cache_dir}\n"
        f"\n"
        f"  Try: http://{config.host}:{config.port}{config.base_path}/react@latest\n"
        f"\n"
        f"  Press Ctrl+C to stop\n"
    )

    run_server_sync(config)


if __name__ == "__main__":
    main()
