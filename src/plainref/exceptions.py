"""plainref exception hierarchy.

All exceptions inherit from PlainRefError so callers can catch the base
class when they want to handle any plainref failure uniformly.
"""

from __future__ import annotations


class PlainRefError(Exception):
    """Base exception for all plainref errors."""


class ConfigError(PlainRefError):
    """Configuration-related errors (bad values in config.toml or env vars)."""


class IndexerError(PlainRefError):
    """Errors during document discovery or concept extraction."""


class RenameError(PlainRefError):
    """Rejected navigation or rename requests (invalid name, no symbol, unknown concept)."""
