"""
ProgressiveLoader: producer side of the fountain pipeline.

Responsibilities:
- Own the canonical, de-duplicated collection and its LoadState.
- Serve a valid cache snapshot without touching the network.
- Otherwise run a fast head load (first pages + secondary set) for immediate
  display, then fetch the remaining pages in rate-limited background batches.
- Publish a LoaderData snapshot after every change and persist the final
  collection once the load cycle completes.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging

from .cache_store import CacheStore
from .config import EngineConfig
from .errors import FetchFailed
from .loader_data import LoadState, LoaderData
from .loader_utils import discover_page_count, merge_records, partition_batches
from .models import Page, Record
from .page_fetcher import PageFetcher
from .state import StateContainer

__all__ = ["LoadState", "LoaderData", "ProgressiveLoader"]

_LOGGER = logging.getLogger(__name__)


class ProgressiveLoader:
    """
    Loads the full fountain data set progressively.

    Consumers observe `state` (a StateContainer of LoaderData) and never see
    the mutable collection held here.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        cache: CacheStore,
        config: EngineConfig | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._config = config or EngineConfig()

        self.state: StateContainer[LoaderData] = StateContainer(LoaderData())

        # Canonical collection; _seen_keys always mirrors the keys in _records
        self._records: list[Record] = []
        self._seen_keys: set[str] = set()
        self._loaded_pages: set[int] = set()
        self._failed_pages: set[int] = set()
        self._page_count: int = 0

        # Secondary set fetched with the head load, appended after the last batch
        self._pending_secondary: tuple[Record, ...] = ()

        self._head_task: asyncio.Task | None = None
        self._background_task: asyncio.Task | None = None
        self._cancel_event = asyncio.Event()

        self._restore_from_cache()

    @classmethod
    def from_config(cls, config: EngineConfig) -> ProgressiveLoader:
        """Wire a loader with the real fetcher and a file cache described by config."""
        fetcher = PageFetcher(
            base_url=config.api_url,
            secondary_url=config.secondary_url,
            timeout=config.request_timeout,
            max_attempts=config.request_attempts,
        )
        cache = CacheStore(config.cache_path, version=config.cache_version, ttl=config.cache_ttl)
        return cls(fetcher, cache, config)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def data(self) -> LoaderData:
        return self.state.get_snapshot()

    @property
    def is_loading(self) -> bool:
        return any(
            task is not None and not task.done()
            for task in (self._head_task, self._background_task)
        )

    def get_cached_snapshot(self) -> tuple[Record, ...]:
        """Current canonical collection; never blocks and never fetches."""
        return self.data.records

    def get_cache_info(self) -> dict:
        """Describe both the persisted cache and the in-memory collection."""
        info = self._cache.describe()
        return {
            "has_cache": info.is_valid,
            "is_from_cache": self.data.is_from_cache,
            "cache_age": info.age,
            "total_records": len(self.data.records),
            "all_pages_loaded": self.data.load_state is LoadState.FULLY_LOADED,
        }

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    async def start(self) -> LoaderData:
        """
        Begin (or join) a load cycle and return the first usable snapshot.

        Returns the cached collection when a valid cache exists, otherwise the
        head snapshot; the rest streams through `state`. Raises FetchFailed
        when the head load fails, leaving the loader EMPTY.
        """
        if self._head_task is not None and not self._head_task.done():
            return await asyncio.shield(self._head_task)

        if self.data.load_state is not LoadState.EMPTY:
            return self.data

        if self._restore_from_cache():
            return self.data

        return await self._run_head()

    def cancel(self) -> None:
        """Stop background batches. Published data stays; safe to call any time."""
        self._cancel_event.set()
        task = self._background_task
        if task is not None and not task.done():
            task.cancel()
            _LOGGER.debug("Background load cancelled with %s records loaded", len(self._records))

    async def force_refresh(self) -> LoaderData:
        """Drop cache and collection, then reload from the API unconditionally."""
        self.cancel()
        await self._cancel_head()
        await self._drain_background()
        self._cache.invalidate()
        self._reset_collection()
        self.state.publish(LoaderData())
        return await self._run_head()

    async def wait_until_loaded(self) -> LoaderData:
        """Wait for the background batches (if any) to finish or be cancelled."""
        await self._drain_background()
        return self.data

    async def shutdown(self) -> None:
        """Cancel all work owned by this loader."""
        self.cancel()
        await self._cancel_head()
        await self._drain_background()

    # ------------------------------------------------------------------
    # Cache branch
    # ------------------------------------------------------------------

    def _restore_from_cache(self) -> bool:
        envelope = self._cache.read()
        if envelope is None:
            return False
        if not self._cache.is_valid(envelope):
            _LOGGER.debug(
                "Discarding cache (version %s, %s records): expired or outdated",
                envelope.schema_version, envelope.total_records,
            )
            self._cache.invalidate()
            return False

        self._reset_collection()
        merge_records(self._records, self._seen_keys, envelope.records)
        self._publish(load_state=LoadState.FULLY_LOADED, is_from_cache=True)
        _LOGGER.debug("Restored %s records from cache", len(self._records))
        return True

    # ------------------------------------------------------------------
    # Network branch: head load
    # ------------------------------------------------------------------

    async def _run_head(self) -> LoaderData:
        self._cancel_event = asyncio.Event()
        self._head_task = asyncio.ensure_future(self._load_head())
        return await asyncio.shield(self._head_task)

    async def _load_head(self) -> LoaderData:
        head_pages = list(range(1, self._config.head_pages + 1))
        results = await asyncio.gather(
            *(self._fetcher.fetch_page(page) for page in head_pages),
            self._fetcher.fetch_secondary_set(),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            _LOGGER.error("Initial load failed: %s", failures[0])
            raise failures[0]

        *pages, secondary = results
        self._page_count = self._resolve_page_count(pages[0])
        for page_index, page in zip(head_pages, pages):
            merge_records(self._records, self._seen_keys, page.records)
            self._loaded_pages.add(page_index)
        self._pending_secondary = secondary.records

        self._publish(load_state=LoadState.PARTIALLY_LOADED, is_from_cache=False)
        _LOGGER.debug(
            "Head load done: %s records from pages %s, %s pages expected",
            len(self._records), head_pages, self._page_count,
        )

        if self._cancel_event.is_set():
            _LOGGER.debug("Load cancelled during head load; background batches not scheduled")
        else:
            self._background_task = asyncio.ensure_future(self._load_remaining_in_background())
            self._background_task.add_done_callback(self._on_background_done)
        return self.data

    def _resolve_page_count(self, first_page: Page) -> int:
        if self._config.discover_page_count:
            return discover_page_count(first_page, self._config.total_pages)
        return self._config.total_pages

    # ------------------------------------------------------------------
    # Network branch: background batches
    # ------------------------------------------------------------------

    async def _load_remaining_in_background(self) -> None:
        """
        Fetch all outstanding pages in sequential batches.

        Pages inside a batch run concurrently; the next batch starts only after
        the previous one finished and the inter-batch delay elapsed.
        """
        remaining = [p for p in range(1, self._page_count + 1) if p not in self._loaded_pages]
        batches = partition_batches(remaining, self._config.batch_size)
        _LOGGER.debug("Loading %s remaining pages in %s batches", len(remaining), len(batches))

        for index, batch in enumerate(batches):
            if self._cancel_event.is_set():
                return
            succeeded = await self._run_batch(batch)
            if index == len(batches) - 1:
                break
            delay = self._config.batch_delay if succeeded else self._config.batch_failure_delay
            if await self._wait_or_cancel(delay):
                return

        if self._cancel_event.is_set():
            return
        self._finish_load()

    async def _run_batch(self, batch: list[int]) -> bool:
        results = await asyncio.gather(
            *(self._fetcher.fetch_page(page) for page in batch),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            self._failed_pages.update(batch)
            reason = failures[0] if isinstance(failures[0], FetchFailed) else repr(failures[0])
            _LOGGER.warning("Skipping pages %s after failed batch: %s", batch, reason)
            self._publish()
            return False

        added = 0
        for page in results:
            added += merge_records(self._records, self._seen_keys, page.records)
        self._loaded_pages.update(batch)
        self._publish()
        _LOGGER.debug("Batch %s merged %s new records (%s total)", batch, added, len(self._records))
        return True

    async def _wait_or_cancel(self, delay: float) -> bool:
        """Sleep for delay seconds; return True early if the load was cancelled."""
        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    def _finish_load(self) -> None:
        merge_records(self._records, self._seen_keys, self._pending_secondary)
        self._pending_secondary = ()
        self._publish(load_state=LoadState.FULLY_LOADED)

        if self._failed_pages:
            _LOGGER.warning(
                "Load finished with %s records; pages %s are missing",
                len(self._records), sorted(self._failed_pages),
            )
        else:
            _LOGGER.info("Load finished with %s records", len(self._records))

        if not self._records:
            _LOGGER.warning("Nothing loaded; cache left untouched")
            return
        self._cache.write(self._records)

    @staticmethod
    def _on_background_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _LOGGER.error("Background load crashed: %s", exc, exc_info=exc)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _publish(self, **changes) -> None:
        snapshot = dataclasses.replace(
            self.data,
            records=tuple(self._records),
            loaded_pages=frozenset(self._loaded_pages),
            failed_pages=frozenset(self._failed_pages),
            page_count=self._page_count,
            **changes,
        )
        self.state.publish(snapshot)

    def _reset_collection(self) -> None:
        self._records = []
        self._seen_keys = set()
        self._loaded_pages = set()
        self._failed_pages = set()
        self._page_count = 0
        self._pending_secondary = ()

    async def _cancel_head(self) -> None:
        task = self._head_task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def _drain_background(self) -> None:
        task = self._background_task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
