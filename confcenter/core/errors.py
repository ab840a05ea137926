"""Exception hierarchy for confcenter.

All library errors inherit from :class:`ConfCenterError` so callers can catch
them with a single ``except`` clause. Disk failures are left as ``OSError``.
"""

from __future__ import annotations


class ConfCenterError(Exception):
    """Base exception for all confcenter errors."""


class ConfigurationMissing(ConfCenterError):
    """Raised when a required bootstrap value is absent.

    Attributes:
        key: Name of the missing setting or property.
    """

    def __init__(self, key: str, message: str | None = None) -> None:
        self.key = key
        super().__init__(message or f"Required setting '{key}' is not set")


class ParseError(ConfCenterError):
    """Raised when text that must be markup is not well-formed."""


class ExtractError(ConfCenterError):
    """Raised when a fragment carries no destination name."""


class RemoteError(ConfCenterError):
    """Raised when a configuration store call fails."""
