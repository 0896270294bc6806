"""
Unit tests for PageFetcher and the low-level request helpers.
The HTTP layer is mocked; see test_integration.py for real API calls.
"""

from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp

from fountainfeed.const import API_URL, SECONDARY_API_PARAMS, SECONDARY_API_URL
from fountainfeed.errors import FetchFailed
from fountainfeed.page_fetcher import PageFetcher
from fountainfeed.requests import ApiResponseError, _process_response, fetch_json

from .test_common import make_envelope_json, make_records


def make_response(status: int = 200, content_type: str = "application/json", body=None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status = status
    response.headers = {"Content-Type": content_type}
    response.json = AsyncMock(return_value=body)
    response.text = AsyncMock(return_value=text)
    return response


# ---------------------------------------------------------------------------
# PageFetcher
# ---------------------------------------------------------------------------

class TestPageFetcher(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.fetcher = PageFetcher(timeout=5)

    async def test_fetch_page_parses_envelope(self):
        body = make_envelope_json(make_records(65), page=4, page_size=65, total=1495)
        with patch("fountainfeed.page_fetcher.fetch_json", new=AsyncMock(return_value=body)) as mock_fetch:
            page = await self.fetcher.fetch_page(4)

        mock_fetch.assert_awaited_once_with(API_URL, params={"page": 4}, timeout=5, max_attempts=1)
        self.assertEqual(len(page.records), 65)
        self.assertEqual(page.total_records, 1495)

    async def test_fetch_secondary_set_uses_secondary_endpoint(self):
        body = make_envelope_json(make_records(40), page_size=4500)
        with patch("fountainfeed.page_fetcher.fetch_json", new=AsyncMock(return_value=body)) as mock_fetch:
            page = await self.fetcher.fetch_secondary_set()

        mock_fetch.assert_awaited_once_with(
            SECONDARY_API_URL, params=SECONDARY_API_PARAMS, timeout=5, max_attempts=1
        )
        self.assertEqual(len(page.records), 40)

    async def test_failures_become_fetch_failed(self):
        failures = [
            asyncio.TimeoutError(),
            ApiResponseError({"error": "quota exceeded"}),
            aiohttp.ClientConnectionError("refused"),
            ValueError("Expected JSON but got text/html"),
        ]
        for exc in failures:
            with self.subTest(exc=type(exc).__name__):
                with patch("fountainfeed.page_fetcher.fetch_json", new=AsyncMock(side_effect=exc)):
                    with self.assertRaises(FetchFailed) as ctx:
                        await self.fetcher.fetch_page(7)
                self.assertEqual(ctx.exception.page_index, 7)
                self.assertIs(ctx.exception.__cause__, exc)

    async def test_malformed_envelope_becomes_fetch_failed(self):
        with patch("fountainfeed.page_fetcher.fetch_json", new=AsyncMock(return_value={"unexpected": True})):
            with self.assertRaises(FetchFailed) as ctx:
                await self.fetcher.fetch_secondary_set()
        self.assertIsNone(ctx.exception.page_index)
        self.assertIn("secondary set", str(ctx.exception))

    async def test_timeout_reason(self):
        with patch("fountainfeed.page_fetcher.fetch_json", new=AsyncMock(side_effect=asyncio.TimeoutError())):
            with self.assertRaises(FetchFailed) as ctx:
                await self.fetcher.fetch_page(2)
        self.assertEqual(ctx.exception.reason, "timeout")
        self.assertEqual(str(ctx.exception), "Failed to fetch page 2: timeout")


# ---------------------------------------------------------------------------
# requests helpers
# ---------------------------------------------------------------------------

class TestProcessResponse(unittest.IsolatedAsyncioTestCase):

    async def test_json_success(self):
        body = {"records": []}
        response = make_response(body=body, content_type="application/json;charset=UTF-8")
        self.assertEqual(await _process_response(response, API_URL), body)

    async def test_html_success_rejected(self):
        response = make_response(content_type="text/html", text="<html>maintenance</html>")
        with self.assertRaises(ValueError):
            await _process_response(response, API_URL)

    async def test_json_error_payload(self):
        response = make_response(status=429, body={"error": "Too many requests"})
        with self.assertRaises(ApiResponseError) as ctx:
            await _process_response(response, API_URL)
        self.assertEqual(ctx.exception.error_json, {"error": "Too many requests"})

    async def test_json_error_without_error_key(self):
        response = make_response(status=500, body={"status": 500})
        with self.assertRaises(ValueError):
            await _process_response(response, API_URL)

    async def test_html_error_page(self):
        response = make_response(status=503, content_type="text/html", text="<h1>Service Unavailable</h1>")
        with self.assertRaises(ValueError):
            await _process_response(response, API_URL)


class TestFetchJson(unittest.IsolatedAsyncioTestCase):

    def _mock_session(self, side_effects):
        """ClientSession whose get() context manager yields the given responses or raises."""
        session = MagicMock()
        contexts = []
        for effect in side_effects:
            ctx = MagicMock()
            if isinstance(effect, BaseException):
                ctx.__aenter__ = AsyncMock(side_effect=effect)
            else:
                ctx.__aenter__ = AsyncMock(return_value=effect)
            ctx.__aexit__ = AsyncMock(return_value=False)
            contexts.append(ctx)
        session.get = MagicMock(side_effect=contexts)

        session_ctx = MagicMock()
        session_ctx.__aenter__ = AsyncMock(return_value=session)
        session_ctx.__aexit__ = AsyncMock(return_value=False)
        return session, session_ctx

    async def test_returns_decoded_json(self):
        session, session_ctx = self._mock_session([make_response(body={"records": []})])
        with patch("fountainfeed.requests.aiohttp.ClientSession", return_value=session_ctx):
            result = await fetch_json(API_URL, params={"page": 1})
        self.assertEqual(result, {"records": []})
        session.get.assert_called_once_with(API_URL, headers={"accept": "application/json"}, params={"page": 1})

    async def test_timeout_retried_with_longer_timeout(self):
        session, session_ctx = self._mock_session([asyncio.TimeoutError(), make_response(body={"ok": 1})])
        with patch("fountainfeed.requests.aiohttp.ClientSession", return_value=session_ctx) as client:
            result = await fetch_json(API_URL, timeout=2, max_attempts=2)

        self.assertEqual(result, {"ok": 1})
        timeouts = [c.kwargs["timeout"].total for c in client.call_args_list]
        self.assertEqual(timeouts, [2, 4])

    async def test_timeout_raised_after_last_attempt(self):
        session, session_ctx = self._mock_session([asyncio.TimeoutError()])
        with patch("fountainfeed.requests.aiohttp.ClientSession", return_value=session_ctx):
            with self.assertRaises(asyncio.TimeoutError):
                await fetch_json(API_URL, max_attempts=1)

    async def test_client_errors_not_retried(self):
        session, session_ctx = self._mock_session([aiohttp.ClientConnectionError("refused")])
        with patch("fountainfeed.requests.aiohttp.ClientSession", return_value=session_ctx):
            with self.assertRaises(aiohttp.ClientError):
                await fetch_json(API_URL, max_attempts=3)
        session.get.assert_called_once()


if __name__ == "__main__":
    unittest.main()
