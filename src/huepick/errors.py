"""Application-level exception types for huepick."""

from __future__ import annotations


class HuepickError(Exception):
    """Base exception for huepick."""


class ConfigurationError(HuepickError):
    """Raised when runtime configuration cannot be used."""


class InvalidColorError(HuepickError, ValueError):
    """Raised when a value cannot be read as a hex color."""

    def __init__(self, raw: object) -> None:
        super().__init__(f"not a hex color: {raw!r}")
        self.raw = raw
