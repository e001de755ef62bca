"""
Craft document API client with httpx.

Handles communication with a single Craft document API, including:
- Block retrieval (by id, or the document root)
- Block pattern search

Every call makes exactly one attempt and reports failures as data
(BlocksResponse / SearchResponse with an error string) instead of raising.
All I/O is async via httpx.
"""

import json
import logging
from typing import Any, Optional

import httpx

from .models import (
    DEFAULT_TIMEOUT,
    BlockFetchParams,
    BlocksResponse,
    SearchParams,
    SearchResponse,
    SearchResult,
)

logger = logging.getLogger(__name__)


class CraftClient:
    """
    Async client for one Craft document API.

    The client holds no connection state between calls; each request opens
    its own httpx.AsyncClient so a slow or broken document cannot affect
    calls made against other documents.
    """

    def __init__(
        self,
        api_endpoint: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize Craft client.

        Args:
            api_endpoint: Base URL of the document API (trailing slash ignored)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport, used by tests to stub the API
        """
        self._base_url = api_endpoint.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def fetch_blocks(self, params: Optional[BlockFetchParams] = None) -> BlocksResponse:
        """
        Fetch a block subtree, or the document root when no id is given.

        Args:
            params: Optional id, maxDepth and fetchMetadata settings

        Returns:
            BlocksResponse with the block (or block list) as data, or an error
        """
        params = params or BlockFetchParams()
        try:
            data = await self._get("/blocks", params.to_query())
        except _UpstreamFailure as e:
            return BlocksResponse(success=False, error=e.message)

        return BlocksResponse(success=True, data=data)

    async def search_blocks(self, params: SearchParams) -> SearchResponse:
        """
        Search blocks matching a pattern.

        Args:
            params: Pattern and optional case/context settings

        Returns:
            SearchResponse with one SearchResult per matched block, or an error
        """
        try:
            data = await self._get("/blocks/search", params.to_query())
        except _UpstreamFailure as e:
            return SearchResponse(success=False, error=e.message)

        # Anything but a JSON array means no matches
        blocks = data if isinstance(data, list) else []
        return SearchResponse(
            success=True,
            results=[SearchResult(block=block) for block in blocks]
        )

    async def _get(self, path: str, query: dict) -> Any:
        url = f"{self._base_url}{path}"
        logger.debug("GET %s params=%s", url, query)

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport
            ) as client:
                response = await client.get(url, params=query)
        except httpx.TimeoutException:
            raise self._fail(url, f"Request timed out after {self._timeout:g}s")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise self._fail(url, str(e) or type(e).__name__)

        if not response.is_success:
            raise self._fail(url, self._extract_error_message(response))

        # 204 and other empty 2xx bodies carry no data
        if not response.content.strip():
            return None

        try:
            return response.json()
        except ValueError:
            raise self._fail(url, f"Invalid JSON in response (HTTP {response.status_code})")

    def _fail(self, url: str, message: str) -> "_UpstreamFailure":
        logger.warning("Craft API request failed: %s: %s", url, message)
        return _UpstreamFailure(message)

    def _extract_error_message(self, response: httpx.Response) -> str:
        """Extract error message from API response body."""
        try:
            return json.dumps(response.json(), separators=(",", ":"))
        except ValueError:
            return response.text or f"HTTP {response.status_code}"


class _UpstreamFailure(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


async def fetch_blocks(
    api_endpoint: str,
    params: Optional[BlockFetchParams] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> BlocksResponse:
    """Fetch blocks from api_endpoint. See CraftClient.fetch_blocks."""
    return await CraftClient(api_endpoint, transport=transport).fetch_blocks(params)


async def search_blocks(
    api_endpoint: str,
    params: SearchParams,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> SearchResponse:
    """Search blocks at api_endpoint. See CraftClient.search_blocks."""
    return await CraftClient(api_endpoint, transport=transport).search_blocks(params)
