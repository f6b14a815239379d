"""Constants used in the project."""

from enum import Enum


class EntryType(Enum):
    """Filesystem entry types reported in directory listings.

    Args:
        Enum (string): Value used in the serialized listing.
    """

    FILE = "file"
    DIRECTORY = "directory"
    BLOCK_DEVICE = "blockDevice"
    CHARACTER_DEVICE = "characterDevice"
    SYMLINK = "symlink"
    FIFO = "fifo"
    SOCKET = "socket"
    UNKNOWN = "unknown"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_NPM = "https://registry.npmjs.org"
    PACKAGE_JSON_FILE = "package.json"
    DEFAULT_BUNDLE_PATH = "/bower.zip"
    DEFAULT_VERSION_TAG = "latest"
    DEFAULT_MAIN_FIELD = "main"
    DEFAULT_MAIN_FILE = "index"
    RESOLVE_EXTENSIONS = ("", ".js", ".json")
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "NPMCDN_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for registry requests

    ONE_MINUTE = 60
    ONE_DAY = ONE_MINUTE * 60 * 24
    ONE_YEAR = ONE_DAY * 365
