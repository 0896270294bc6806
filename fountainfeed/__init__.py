"""Progressive loading, caching and list filtering for Madrid's drinking fountain open data."""
from .cache_store import CacheStore
from .config import EngineConfig
from .const import VERSION
from .errors import FountainFeedError, FetchFailed, ConfigError
from .list_filter import FilterCriteria, WindowState, WindowedFilterEngine
from .loader import LoadState, LoaderData, ProgressiveLoader
from .models import Record, Page
from .page_fetcher import PageFetcher
from .state import StateContainer

__version__ = VERSION

__all__ = [
    "CacheStore",
    "ConfigError",
    "EngineConfig",
    "FetchFailed",
    "FilterCriteria",
    "FountainFeedError",
    "LoadState",
    "LoaderData",
    "Page",
    "PageFetcher",
    "ProgressiveLoader",
    "Record",
    "StateContainer",
    "WindowState",
    "WindowedFilterEngine",
]
