"""Engine configuration: voluptuous schema plus a frozen settings object."""
from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any

import voluptuous as vol
from dotenv import load_dotenv

from .const import (
    API_URL,
    SECONDARY_API_URL,
    REQUEST_TIMEOUT,
    REQUEST_ATTEMPTS,
    TOTAL_PAGES,
    HEAD_PAGES,
    BATCH_SIZE,
    BATCH_DELAY,
    BATCH_FAILURE_DELAY,
    CACHE_TTL,
    CACHE_VERSION,
    CHUNK_THRESHOLD,
    CHUNK_SIZE,
    FILTER_DEBOUNCE,
    PAGE_SIZE,
    LOAD_MORE_DELAY,
    SCROLL_THRESHOLD,
)
from .errors import ConfigError

_LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "FOUNTAINFEED_"
DEFAULT_CACHE_DIR = Path.home() / ".cache"

positive_int = vol.All(vol.Coerce(int), vol.Range(min=1))
non_negative_int = vol.All(vol.Coerce(int), vol.Range(min=0))
non_negative_float = vol.All(vol.Coerce(float), vol.Range(min=0))
positive_float = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))
url_string = vol.All(str, vol.Match(r"^https?://"))

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional('api_url', default=API_URL): url_string,
        vol.Optional('secondary_url', default=SECONDARY_API_URL): url_string,
        vol.Optional('request_timeout', default=REQUEST_TIMEOUT): positive_float,
        vol.Optional('request_attempts', default=REQUEST_ATTEMPTS): positive_int,
        vol.Optional('total_pages', default=TOTAL_PAGES): positive_int,
        vol.Optional('head_pages', default=HEAD_PAGES): positive_int,
        vol.Optional('batch_size', default=BATCH_SIZE): positive_int,
        vol.Optional('batch_delay', default=BATCH_DELAY): non_negative_float,
        vol.Optional('batch_failure_delay', default=BATCH_FAILURE_DELAY): non_negative_float,
        vol.Optional('discover_page_count', default=True): vol.Boolean(),
        vol.Optional('cache_dir', default=str(DEFAULT_CACHE_DIR)): vol.All(vol.Coerce(str), vol.Length(min=1)),
        vol.Optional('cache_ttl', default=CACHE_TTL): positive_float,
        vol.Optional('cache_version', default=CACHE_VERSION): vol.All(str, vol.Length(min=1)),
        vol.Optional('chunk_threshold', default=CHUNK_THRESHOLD): non_negative_int,
        vol.Optional('chunk_size', default=CHUNK_SIZE): positive_int,
        vol.Optional('filter_debounce', default=FILTER_DEBOUNCE): non_negative_float,
        vol.Optional('page_size', default=PAGE_SIZE): positive_int,
        vol.Optional('load_more_delay', default=LOAD_MORE_DELAY): non_negative_float,
        vol.Optional('scroll_threshold', default=SCROLL_THRESHOLD): non_negative_int,
    }
)


@dataclasses.dataclass(frozen=True)
class EngineConfig:
    """Validated settings shared by the loader and the list filter."""

    api_url: str = API_URL
    secondary_url: str = SECONDARY_API_URL
    request_timeout: float = REQUEST_TIMEOUT
    request_attempts: int = REQUEST_ATTEMPTS
    total_pages: int = TOTAL_PAGES
    head_pages: int = HEAD_PAGES
    batch_size: int = BATCH_SIZE
    batch_delay: float = BATCH_DELAY
    batch_failure_delay: float = BATCH_FAILURE_DELAY
    discover_page_count: bool = True
    cache_dir: str = str(DEFAULT_CACHE_DIR)
    cache_ttl: float = CACHE_TTL
    cache_version: str = CACHE_VERSION
    chunk_threshold: int = CHUNK_THRESHOLD
    chunk_size: int = CHUNK_SIZE
    filter_debounce: float = FILTER_DEBOUNCE
    page_size: int = PAGE_SIZE
    load_more_delay: float = LOAD_MORE_DELAY
    scroll_threshold: int = SCROLL_THRESHOLD

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None = None) -> EngineConfig:
        """Validate data against CONFIG_SCHEMA; unknown keys and bad values raise ConfigError."""
        try:
            validated = CONFIG_SCHEMA(dict(data or {}))
        except vol.Invalid as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc
        return cls(**validated)

    @classmethod
    def from_env(cls, dotenv_path: str | os.PathLike | None = None, **overrides: Any) -> EngineConfig:
        """
        Build a config from FOUNTAINFEED_* environment variables.

        A .env file is loaded first (existing variables win); explicit
        overrides win over both.
        """
        load_dotenv(dotenv_path)
        data: dict[str, Any] = {}
        for field in dataclasses.fields(cls):
            value = os.getenv(ENV_PREFIX + field.name.upper())
            if value is not None:
                data[field.name] = value
        data.update({k: v for k, v in overrides.items() if v is not None})
        _LOGGER.debug("Configuration keys from environment: %s", sorted(data))
        return cls.from_dict(data)

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_dir)
