"""
Exception hierarchy for fountainfeed.

Only FetchFailed (head load) and ConfigError ever reach callers; the cache
errors are raised and handled inside CacheStore.
"""
from __future__ import annotations


class FountainFeedError(Exception):
    """Base class for all fountainfeed errors."""


class FetchFailed(FountainFeedError):
    """A single page (or the secondary data set) could not be fetched."""

    def __init__(self, page_index: int | None, reason: str = "") -> None:
        self.page_index = page_index
        self.reason = reason
        target = "secondary set" if page_index is None else f"page {page_index}"
        message = f"Failed to fetch {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CacheCorrupt(FountainFeedError):
    """The persisted envelope could not be decoded."""


class CacheWriteFailed(FountainFeedError):
    """The envelope could not be serialized or written to disk."""


class ConfigError(FountainFeedError):
    """Invalid engine configuration."""
