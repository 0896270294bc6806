"""
LoaderData: immutable snapshot of the loader's canonical collection.

This is a pure data module with no network or cache dependencies.
"""
from __future__ import annotations

import dataclasses
import enum

from .models import Record


class LoadState(enum.Enum):
    """Forward-only lifecycle of one load cycle."""

    EMPTY = "empty"
    PARTIALLY_LOADED = "partially_loaded"
    FULLY_LOADED = "fully_loaded"


@dataclasses.dataclass(frozen=True)
class LoaderData:
    """
    Typed, copy-on-write snapshot published by ProgressiveLoader.

    Always replace via dataclasses.replace(), never mutate in place.
    """

    # Canonical collection, de-duplicated by Record.key, in first-seen order
    records: tuple[Record, ...] = ()

    load_state: LoadState = LoadState.EMPTY

    # True when the collection was restored from the persistent cache
    is_from_cache: bool = False

    # Remote page indices merged so far / skipped after a failed batch
    loaded_pages: frozenset[int] = frozenset()
    failed_pages: frozenset[int] = frozenset()

    # Number of remote pages this cycle expects (0 until known)
    page_count: int = 0

    @property
    def is_partial(self) -> bool:
        return self.load_state is LoadState.PARTIALLY_LOADED

    @property
    def progress(self) -> float:
        """Fraction of remote pages attempted, 1.0 once fully loaded."""
        if self.load_state is LoadState.FULLY_LOADED:
            return 1.0
        if not self.page_count:
            return 0.0
        attempted = len(self.loaded_pages | self.failed_pages)
        return min(attempted / self.page_count, 1.0)
