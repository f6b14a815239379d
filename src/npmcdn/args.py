"""Argument parsing functionality for npmcdn."""

import argparse

from .constants import Constants


def build_parser():
    """Build the argument parser for the npmcdn command."""
    parser = argparse.ArgumentParser(
        prog="npmcdn",
        description="npmcdn - serve files from npm packages over HTTP",
        add_help=True,
    )

    parser.add_argument("--host",
                        dest="HOST",
                        help="Interface to bind (default: 127.0.0.1)",
                        action="store", type=str)
    parser.add_argument("--port",
                        dest="PORT",
                        help="Port to listen on (default: 8080)",
                        action="store", type=int)
    parser.add_argument("--allow-external",
                        dest="ALLOW_EXTERNAL",
                        help="Allow binding to non-loopback addresses.",
                        action="store_true")

    parser.add_argument("--registry",
                        dest="REGISTRY_URL",
                        help=f"npm registry URL (default: {Constants.REGISTRY_URL_NPM})",
                        action="store", type=str)
    parser.add_argument("--cache-dir",
                        dest="CACHE_DIR",
                        help="Directory holding extracted packages (default: system temp dir)",
                        action="store", type=str)
    parser.add_argument("--bundle-path",
                        dest="BUNDLE_PATH",
                        help=f"Pseudo-filename for bundle requests (default: {Constants.DEFAULT_BUNDLE_PATH})",
                        action="store", type=str)
    parser.add_argument("--redirect-ttl",
                        dest="REDIRECT_TTL",
                        help="Cache lifetime of redirects in seconds; 0 sends no caching directive",
                        action="store", type=int)
    parser.add_argument("--no-auto-index",
                        dest="NO_AUTO_INDEX",
                        help="Do not serve JSON listings for directories.",
                        action="store_true")
    parser.add_argument("--max-depth",
                        dest="MAX_DEPTH",
                        help="Directory levels expanded in listings (default: unlimited)",
                        action="store", type=int)
    parser.add_argument("--base-path",
                        dest="BASE_PATH",
                        help="URL prefix the server is mounted under, e.g. /npm",
                        action="store", type=str)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help=f"Registry request timeout in seconds (default: {Constants.REQUEST_TIMEOUT})",
                        action="store", type=int)

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store", type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store", type=str)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
