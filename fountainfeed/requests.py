"""
Low-level HTTP request helper for the open-data API.
This module performs JSON GET requests with optional retry on timeout and strict content-type checks.
"""
import asyncio
import logging
import aiohttp

from .const import REQUEST_TIMEOUT, REQUEST_ATTEMPTS
from .errors import FountainFeedError

_LOGGER = logging.getLogger(__name__)

DEFAULT_HEADERS = {"accept": "application/json"}


class ApiResponseError(FountainFeedError):
    """Exception raised when the API returns an error response."""
    def __init__(self, error_json: dict):
        self.error_json = error_json
        super().__init__(f"API Error: {error_json}")


async def fetch_json(
    url: str,
    params: dict = None,
    headers: dict = None,
    timeout: float = REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
):
    """
    Send a GET request and return the decoded JSON body.

    Args:
        url: Target URL for the request
        params: URL query parameters (optional)
        headers: HTTP headers dictionary (defaults to DEFAULT_HEADERS)
        timeout: Base timeout in seconds (multiplied by attempt number for each retry)
        max_attempts: Maximum number of attempts; only timeouts are retried

    Returns:
        Parsed JSON response

    Raises:
        asyncio.TimeoutError: If all attempts time out
        ApiResponseError: If the API answers with an error payload
        ValueError: If the response has an unexpected status or content type
        aiohttp.ClientError: For connection-level failures
    """
    if headers is None:
        headers = DEFAULT_HEADERS

    for attempt in range(max_attempts):
        # Timeout grows with each attempt
        timeout_config = aiohttp.ClientTimeout(total=timeout * (attempt + 1))
        try:
            async with aiohttp.ClientSession(timeout=timeout_config) as session:
                async with session.get(url, headers=headers, params=params) as response:
                    return await _process_response(response, url)
        except (asyncio.TimeoutError, TimeoutError):
            if attempt < max_attempts - 1:
                _LOGGER.debug("Timeout on GET %s (attempt %s), retrying", url, attempt + 1)
                continue
            _LOGGER.warning("Timeout on GET %s after %s attempts", url, max_attempts)
            raise

    raise ValueError(f"max_attempts must be at least 1 (got {max_attempts})")


async def _process_response(response, url: str):
    """
    Process HTTP response and extract JSON data.

    Args:
        response: aiohttp response object
        url: Request URL (for logging)

    Returns:
        Parsed JSON response

    Raises:
        ValueError: If response has unexpected content type or status
        ApiResponseError: If the error body carries an "error" entry
    """
    content_type = response.headers.get('Content-Type', '')

    if response.status == 200:
        if 'application/json' in content_type:
            # The open-data portal sometimes labels JSON with a charset suffix; skip aiohttp's strict check
            return await response.json(content_type=None)
        text = await response.text()
        _LOGGER.warning(
            "Unexpected content type in successful response: %s from %s",
            content_type, url
        )
        raise ValueError(f"Expected JSON but got {content_type}: {text[:200]}")

    if 'application/json' in content_type:
        try:
            error_json = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError) as e:
            _LOGGER.error(
                "Failed to parse error response as JSON from %s: %s (status %s)",
                url, e, response.status
            )
            raise ValueError(f"HTTP {response.status} with unreadable JSON body from {url}") from e
        if isinstance(error_json, dict) and error_json.get("error"):
            raise ApiResponseError(error_json)
        raise ValueError(f"HTTP {response.status} from {url}: {str(error_json)[:200]}")

    # Non-JSON error response (e.g., HTML error page)
    text = await response.text()
    _LOGGER.warning(
        "Received non-JSON error response from %s: status %s, content-type: %s, body preview: %s",
        url, response.status, content_type, text[:200]
    )
    raise ValueError(
        f"HTTP {response.status} with {content_type} "
        f"(expected application/json) from {url}"
    )
