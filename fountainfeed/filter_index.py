"""
Derived secondary indexes over the canonical collection.

build_category_index() yields to the event loop between chunks for large
collections so filtering and rendering stay responsive while it runs.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Sequence

from .const import CHUNK_SIZE, CHUNK_THRESHOLD
from .models import Record

_LOGGER = logging.getLogger(__name__)


def district_of(record: Record) -> str:
    return record.district


def collect_categories(
    records: Iterable[Record],
    key: Callable[[Record], str] = district_of,
    into: set[str] | None = None,
) -> set[str]:
    """Add every non-empty key(record) to into (or a new set) and return it."""
    values = set() if into is None else into
    for record in records:
        value = key(record)
        if value:
            values.add(value)
    return values


async def build_category_index(
    records: Sequence[Record],
    key: Callable[[Record], str] = district_of,
    chunk_threshold: int = CHUNK_THRESHOLD,
    chunk_size: int = CHUNK_SIZE,
) -> list[str]:
    """
    Return the sorted distinct category values of records.

    Collections smaller than chunk_threshold are processed in one pass;
    larger ones in chunks of chunk_size with a yield between chunks. The
    result does not depend on the chunking.
    """
    if len(records) < chunk_threshold:
        return sorted(collect_categories(records, key))

    values: set[str] = set()
    for start in range(0, len(records), chunk_size):
        collect_categories(records[start:start + chunk_size], key, into=values)
        await asyncio.sleep(0)

    _LOGGER.debug(
        "Indexed %s records in %s chunks: %s categories",
        len(records), -(-len(records) // chunk_size), len(values),
    )
    return sorted(values)
