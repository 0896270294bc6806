"""
Page fetching from the open-data API.

Responsible for:
- Fetching one page of the paginated fountain data set
- Fetching the secondary (pet-friendly fountains) data set
- Translating every transport or format failure into FetchFailed

Stateless: no retry or rate-limit policy lives here, the loader owns both.
"""
from __future__ import annotations

import asyncio
import logging

import aiohttp

from .const import API_URL, SECONDARY_API_URL, SECONDARY_API_PARAMS, REQUEST_TIMEOUT, REQUEST_ATTEMPTS
from .errors import FetchFailed
from .models import Page
from .requests import fetch_json, ApiResponseError

_LOGGER = logging.getLogger(__name__)


class PageFetcher:
    """Issues one request per page index and returns parsed Page envelopes."""

    def __init__(
        self,
        base_url: str = API_URL,
        secondary_url: str = SECONDARY_API_URL,
        secondary_params: dict | None = None,
        timeout: float = REQUEST_TIMEOUT,
        max_attempts: int = REQUEST_ATTEMPTS,
    ) -> None:
        self.base_url = base_url
        self.secondary_url = secondary_url
        self.secondary_params = dict(SECONDARY_API_PARAMS if secondary_params is None else secondary_params)
        self.timeout = timeout
        self.max_attempts = max_attempts

    async def fetch_page(self, page_index: int) -> Page:
        """
        Fetch a single page of the main data set.

        Corresponding CURL command:
        curl -H 'accept: application/json' \\
          'https://ciudadesabiertas.madrid.es/dynamicAPI/API/query/mint_fuentes.json?page=1'
        """
        return await self._fetch(page_index, self.base_url, {"page": page_index})

    async def fetch_secondary_set(self) -> Page:
        """Fetch the pet-friendly fountains, delivered as one large page."""
        return await self._fetch(None, self.secondary_url, self.secondary_params)

    async def _fetch(self, page_index: int | None, url: str, params: dict) -> Page:
        try:
            raw_json = await fetch_json(
                url, params=params, timeout=self.timeout, max_attempts=self.max_attempts
            )
            page = Page.from_json(raw_json)
        except (asyncio.TimeoutError, TimeoutError) as exc:
            raise FetchFailed(page_index, "timeout") from exc
        except ApiResponseError as exc:
            raise FetchFailed(page_index, str(exc)) from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise FetchFailed(page_index, f"{type(exc).__name__}: {exc}") from exc

        _LOGGER.debug(
            "Fetched %s: %s records",
            "secondary set" if page_index is None else f"page {page_index}",
            len(page.records),
        )
        return page
