"""
WindowedFilterEngine: consumer side of the fountain pipeline.

Responsibilities:
- Follow the loader's canonical collection and rebuild the category index
  (districts) in the background whenever it changes.
- Apply FilterCriteria: text input debounced, discrete selectors immediately,
  the most recent request always wins.
- Expose a growing window over the filtered result (load_more / on_scroll)
  and publish a ListView snapshot for the renderer after every change.
"""
from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
import math
from typing import Callable, Iterable, Mapping

from .classification import normalize_usage
from .config import EngineConfig
from .const import FILTER_FIELDS, PAGE_SIZE, USAGE_CATEGORIES
from .debounce import Debouncer
from .filter_index import build_category_index, collect_categories, district_of
from .loader_data import LoaderData
from .models import Record
from .state import StateContainer

_LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class FilterCriteria:
    """Free text plus discrete selectors (selector name → selected value)."""

    text: str = ""
    categorical: Mapping[str, str] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        categorical = dict(self.categorical)
        for name, value in categorical.items():
            if name not in FILTER_FIELDS:
                raise ValueError(f"Unknown filter selector: {name!r}")
            if name == "usage" and value and value.strip().lower() not in USAGE_CATEGORIES:
                raise ValueError(f"Unknown usage category: {value!r}")
        # Private copy so callers cannot mutate the criteria through their dict
        object.__setattr__(self, "categorical", categorical)

    def __hash__(self) -> int:
        return hash((self.text, tuple(sorted(self.categorical.items()))))

    @property
    def normalized_text(self) -> str:
        return self.text.strip().lower()

    @property
    def selectors(self) -> dict[str, str]:
        """Active selectors only, values trimmed and lower-cased."""
        return {
            name: value.strip().lower()
            for name, value in self.categorical.items()
            if value and value.strip()
        }

    @property
    def is_empty(self) -> bool:
        return not self.normalized_text and not self.selectors

    def with_text(self, text: str) -> FilterCriteria:
        return dataclasses.replace(self, text=text)

    def with_selector(self, name: str, value: str) -> FilterCriteria:
        categorical = dict(self.categorical)
        categorical[name] = value
        return dataclasses.replace(self, categorical=categorical)


@dataclasses.dataclass(frozen=True)
class WindowState:
    """Filtered result plus how many pages of it are visible."""

    all_matches: tuple[Record, ...] = ()
    page_size: int = PAGE_SIZE
    current_page: int = 1

    @property
    def visible(self) -> tuple[Record, ...]:
        return self.all_matches[:self.page_size * self.current_page]

    @property
    def has_more(self) -> bool:
        return self.page_size * self.current_page < len(self.all_matches)


class FilterPhase(enum.Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    FILTERING = "filtering"


@dataclasses.dataclass(frozen=True)
class ListView:
    """Snapshot handed to the renderer."""

    window: WindowState = dataclasses.field(default_factory=WindowState)
    categories: tuple[str, ...] = ()
    phase: FilterPhase = FilterPhase.IDLE
    is_loading_more: bool = False


def matches(record: Record, criteria: FilterCriteria) -> bool:
    """AND-combination of the text search and every active selector."""
    term = criteria.normalized_text
    if term:
        haystack = (
            record.district,
            record.neighborhood,
            record.status,
            str(record.latitude),
            str(record.longitude),
        )
        if not any(term in value.lower() for value in haystack):
            return False

    for name, wanted in criteria.selectors.items():
        if name == "usage":
            if normalize_usage(record.usage) != wanted:
                return False
        elif getattr(record, FILTER_FIELDS[name]).strip().lower() != wanted:
            return False
    return True


def _has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


# ---------------------------------------------------------------------------
# WindowedFilterEngine
# ---------------------------------------------------------------------------

class WindowedFilterEngine:
    """
    Filters and paginates a read-only collection for a list renderer.

    Must be driven from the event loop thread. Without a running loop every
    operation falls back to synchronous execution.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        index_key: Callable[[Record], str] = district_of,
    ) -> None:
        self._config = config or EngineConfig()
        self._index_key = index_key

        self._records: tuple[Record, ...] = ()
        # Last requested criteria vs. the criteria the current window reflects
        self._criteria = FilterCriteria()
        self._applied = FilterCriteria()

        self._debouncer = Debouncer(self._config.filter_debounce)
        self._filter_generation = 0
        self._window_generation = 0
        self._loading_more = False

        self._index_task: asyncio.Task | None = None
        self._load_more_task: asyncio.Task | None = None
        self._unsubscribe: Callable[[], None] | None = None

        self.view: StateContainer[ListView] = StateContainer(
            ListView(window=WindowState(page_size=self._config.page_size))
        )

    # ------------------------------------------------------------------
    # Renderer surface
    # ------------------------------------------------------------------

    @property
    def window(self) -> WindowState:
        return self.view.get_snapshot().window

    @property
    def visible_window(self) -> tuple[Record, ...]:
        return self.window.visible

    @property
    def all_matches(self) -> tuple[Record, ...]:
        return self.window.all_matches

    @property
    def has_more(self) -> bool:
        return self.window.has_more

    @property
    def phase(self) -> FilterPhase:
        return self.view.get_snapshot().phase

    @property
    def is_filtering(self) -> bool:
        return self.phase is FilterPhase.FILTERING

    @property
    def distinct_categories(self) -> list[str]:
        return list(self.view.get_snapshot().categories)

    @property
    def criteria(self) -> FilterCriteria:
        return self._criteria

    def has_active_filters(self) -> bool:
        return not self._criteria.is_empty

    # ------------------------------------------------------------------
    # Collection input
    # ------------------------------------------------------------------

    def bind(self, source: StateContainer[LoaderData]) -> None:
        """Follow a loader's published snapshots until close()."""
        self.unbind()
        self._unsubscribe = source.subscribe(lambda data: self.set_collection(data.records))

    def unbind(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def set_collection(self, records: Iterable[Record]) -> None:
        """Replace the collection; the window keeps its page, the index is rebuilt."""
        records = tuple(records)
        if records == self._records:
            return
        self._records = records
        self._schedule_index_build()
        self._apply(self._applied, reset_page=False)

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def set_filter(self, criteria: FilterCriteria) -> None:
        """
        Request a filter pass for criteria.

        Selector changes run on the next loop iteration, text-only changes
        after the debounce delay. Any pending request is dropped.
        """
        previous = self._criteria
        if criteria == previous:
            return
        self._criteria = criteria
        self._filter_generation += 1

        if not _has_running_loop():
            self._debouncer.cancel()
            self._apply(criteria, reset_page=True)
            return

        immediate = criteria.selectors != previous.selectors
        delay = 0 if immediate else self._config.filter_debounce
        generation = self._filter_generation
        self._publish_view(phase=FilterPhase.DEBOUNCING if delay else FilterPhase.FILTERING)
        self._debouncer.schedule(lambda: self._run_filter_pass(generation), delay=delay)

    def set_text(self, text: str) -> None:
        self.set_filter(self._criteria.with_text(text))

    def set_selector(self, name: str, value: str) -> None:
        self.set_filter(self._criteria.with_selector(name, value))

    def clear_filters(self) -> None:
        """Drop all criteria and show the unfiltered collection from page 1."""
        self._debouncer.cancel()
        self._filter_generation += 1
        self._criteria = FilterCriteria()
        self._apply(self._criteria, reset_page=True)
        self._publish_view(phase=FilterPhase.IDLE)

    async def _run_filter_pass(self, generation: int) -> None:
        self._publish_view(phase=FilterPhase.FILTERING)
        try:
            # Let the renderer show the filtering state before the pass runs
            await asyncio.sleep(0)
            self._apply(self._criteria, reset_page=True)
        finally:
            # A superseded pass must not clobber the phase of its successor
            if generation == self._filter_generation:
                self._publish_view(phase=FilterPhase.IDLE)

    def _perform_filter(self, criteria: FilterCriteria) -> tuple[Record, ...]:
        if criteria.is_empty:
            return self._records
        return tuple(r for r in self._records if matches(r, criteria))

    def _apply(self, criteria: FilterCriteria, reset_page: bool) -> None:
        found = self._perform_filter(criteria)
        page_size = self._config.page_size
        if reset_page:
            page = 1
            self._window_generation += 1
        else:
            last_page = max(1, math.ceil(len(found) / page_size))
            page = min(self.window.current_page, last_page)
        self._applied = criteria
        self._publish_view(window=WindowState(all_matches=found, page_size=page_size, current_page=page))
        _LOGGER.debug("Filtered: %s of %s records (showing %s)", len(found), len(self._records), min(len(found), page * page_size))

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    async def load_more(self) -> bool:
        """
        Grow the visible window by one page.

        No-op (returns False) when everything is visible or a load or filter
        pass is already in flight.
        """
        if self._loading_more or self.is_filtering or not self.has_more:
            return False
        self._loading_more = True
        generation = self._window_generation
        self._publish_view(is_loading_more=True)
        try:
            if self._config.load_more_delay > 0:
                await asyncio.sleep(self._config.load_more_delay)
            if generation != self._window_generation:
                # A filter pass replaced the result while we were waiting
                return False
            self._advance_page()
            return True
        finally:
            self._loading_more = False
            self._publish_view(is_loading_more=False)

    def on_scroll(self, scroll_top: float, client_height: float, scroll_height: float) -> bool:
        """
        Scroll position report from the renderer.

        Schedules load_more() once the distance to the bottom is within the
        scroll threshold; without a running loop the page is advanced at
        once. Returns True when a load was scheduled or applied.
        """
        remaining = scroll_height - (scroll_top + client_height)
        if remaining > self._config.scroll_threshold:
            return False
        if self._load_more_task is not None and not self._load_more_task.done():
            return False
        if self._loading_more or self.is_filtering or not self.has_more:
            return False
        if not _has_running_loop():
            self._advance_page()
            return True
        self._load_more_task = asyncio.ensure_future(self.load_more())
        return True

    def _advance_page(self) -> None:
        window = self.window
        self._publish_view(window=dataclasses.replace(window, current_page=window.current_page + 1))

    # ------------------------------------------------------------------
    # Category index
    # ------------------------------------------------------------------

    def _schedule_index_build(self) -> None:
        if self._index_task is not None and not self._index_task.done():
            self._index_task.cancel()

        if not _has_running_loop():
            categories = sorted(collect_categories(self._records, self._index_key))
            self._publish_view(categories=tuple(categories))
            return

        self._index_task = asyncio.ensure_future(self._rebuild_index(self._records))

    async def _rebuild_index(self, records: tuple[Record, ...]) -> None:
        categories = await build_category_index(
            records,
            key=self._index_key,
            chunk_threshold=self._config.chunk_threshold,
            chunk_size=self._config.chunk_size,
        )
        self._publish_view(categories=tuple(categories))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def wait_idle(self) -> None:
        """Wait for pending filter passes, index builds and page loads."""
        await self._debouncer.wait()
        pending = [t for t in (self._index_task, self._load_more_task) if t is not None]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        self.unbind()
        self._debouncer.cancel()
        tasks = [t for t in (self._index_task, self._load_more_task) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self._debouncer.wait()

    def _publish_view(self, **changes) -> None:
        self.view.publish(dataclasses.replace(self.view.get_snapshot(), **changes))
