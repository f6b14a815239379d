"""Version resolution against npm registry metadata using semantic versioning."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional

import semantic_version

logger = logging.getLogger(__name__)


class ResolutionMode(Enum):
    """How a version token was matched against the registry metadata."""

    EXACT = "exact"
    TAG = "tag"
    RANGE = "range"
    NONE = "none"


@dataclass(frozen=True)
class VersionResolution:
    """Resolution outcome for a version token."""

    requested: str
    mode: ResolutionMode
    version: Optional[str] = None

    @property
    def found(self) -> bool:
        """True when the token resolved to a published version."""
        return self.version is not None


def is_exact_version(token: str) -> bool:
    """Return True if ``token`` is a full semantic version like ``1.2.3``."""
    try:
        semantic_version.Version(token)
    except ValueError:
        return False
    return True


def max_satisfying(versions: Iterable[str], spec_str: str) -> Optional[str]:
    """Return the highest version in ``versions`` matching the npm range ``spec_str``.

    Prereleases only match when the range itself names a prerelease of the
    same version, following npm semantics. Unparseable versions are skipped;
    an unparseable range matches nothing.
    """
    try:
        spec = semantic_version.NpmSpec(spec_str.strip())
    except ValueError:
        logger.debug("Not a semver range: %r", spec_str)
        return None

    parsed = {}
    for v in versions:
        try:
            parsed[semantic_version.Version(v)] = v
        except ValueError:
            continue  # Skip invalid versions

    best = spec.select(parsed.keys())
    if best is None:
        return None
    return parsed[best]


def resolve_version(token: str, metadata: Dict[str, Any]) -> VersionResolution:
    """Resolve ``token`` against a registry packument.

    Exact version keys win over dist-tags, which win over ranges.

    Args:
        token: Exact version, dist-tag or npm range from the request URL.
        metadata: Registry document with ``versions`` and ``dist-tags`` maps.

    Returns:
        VersionResolution describing how (and whether) the token matched.
    """
    versions = metadata.get("versions") or {}
    tags = metadata.get("dist-tags") or {}

    if token in versions:
        return VersionResolution(token, ResolutionMode.EXACT, token)

    if token in tags:
        return VersionResolution(token, ResolutionMode.TAG, tags[token])

    best = max_satisfying(versions.keys(), token)
    if best is not None:
        return VersionResolution(token, ResolutionMode.RANGE, best)

    return VersionResolution(token, ResolutionMode.NONE)
