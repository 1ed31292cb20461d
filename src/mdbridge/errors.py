"""Exception types raised inside mdbridge.

Only :class:`ExportError` is meant to reach users; everything else is caught
and logged close to where it happens.
"""

from __future__ import annotations


class MdBridgeError(Exception):
    """Base class for all mdbridge errors."""


class SerializationUnavailable(MdBridgeError):
    """The rich view cannot produce Markdown yet (serializer not initialised)."""


class AssetUnreachable(MdBridgeError):
    """Image bytes could not be loaded from a local path or a remote URL."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        message = f"cannot load asset {path!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ExportError(MdBridgeError):
    """Assembling an export artifact failed."""
