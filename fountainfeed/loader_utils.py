"""
Low-level helpers for ProgressiveLoader.

Responsibilities:
- First-seen-wins merge of fetched records into the canonical collection.
- Partition of outstanding page indices into fixed-size batches.
- Page-count discovery from a page envelope.

No network or cache access; these functions are pure data primitives.
"""
from __future__ import annotations

import logging
import math
from typing import Iterable

from .models import Page, Record

_LOGGER = logging.getLogger(__name__)


def merge_records(
    collection: list[Record],
    seen_keys: set[str],
    incoming: Iterable[Record],
) -> int:
    """
    Append every record of incoming whose identity key is not in seen_keys.

    collection and seen_keys are updated in place and must describe the same
    set. A key that is already present is dropped, never overwritten.
    Returns the number of records added.
    """
    added = 0
    for record in incoming:
        key = record.key
        if key in seen_keys:
            continue
        seen_keys.add(key)
        collection.append(record)
        added += 1
    return added


def dedupe(records: Iterable[Record]) -> list[Record]:
    """Return records with later duplicates removed, order preserved."""
    result: list[Record] = []
    merge_records(result, set(), records)
    return result


def partition_batches(page_indices: Iterable[int], batch_size: int) -> list[list[int]]:
    """Split page indices into consecutive batches of at most batch_size."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1 (got {batch_size})")
    indices = list(page_indices)
    return [indices[i:i + batch_size] for i in range(0, len(indices), batch_size)]


def discover_page_count(page: Page, fallback: int) -> int:
    """
    Derive the remote page count from totalRecords / pageSize.

    Falls back to the configured constant when the envelope does not report
    usable pagination metadata.
    """
    if page.total_records and page.page_size and page.total_records > 0 and page.page_size > 0:
        count = math.ceil(page.total_records / page.page_size)
        if count != fallback:
            _LOGGER.info(
                "API reports %s records in pages of %s: loading %s pages instead of %s",
                page.total_records, page.page_size, count, fallback,
            )
        return count
    _LOGGER.debug("No pagination metadata on first page, assuming %s pages", fallback)
    return fallback
