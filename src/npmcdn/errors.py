"""Exceptions raised by npmcdn components."""

from __future__ import annotations

from typing import Optional


class NpmCdnError(Exception):
    """Base class for npmcdn errors."""


class RegistryError(NpmCdnError):
    """The registry could not be reached or returned an unusable response."""

    def __init__(self, message: str, url: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status
