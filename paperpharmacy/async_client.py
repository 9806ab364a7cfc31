"""Async HTTP client for the concurrent per-book catalog and cover lookups."""
import asyncio
import httpx
from typing import List, Optional, Dict, Any
import logging

from paperpharmacy.client import (
    LOOKUP_URL,
    SEARCH_URL,
    build_query,
    lookup_params,
    search_params,
)
from paperpharmacy.models import CatalogCandidate
from paperpharmacy.parse import parse_search_response

logger = logging.getLogger(__name__)


class AsyncAladinClient:
    """Async client for parallel catalog searches and cover probes."""

    def __init__(
        self,
        ttb_key: str,
        timeout: int = 10,
        max_concurrent: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize async client.

        Args:
            ttb_key: Aladin TTB key
            timeout: Request timeout
            max_concurrent: Maximum concurrent requests
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.ttb_key = ttb_key
        self.timeout = timeout
        self.semaphore = asyncio.Semaphore(max_concurrent)

        self.client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport
        )

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        async with self.semaphore:
            try:
                response = await self.client.get(url, params=params)

                if response.status_code == 200:
                    return response.json()
                else:
                    logger.warning(f"Status {response.status_code} for {url}")
                    return None

            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Async request failed: {e}")
                return None

    async def search(self, query: str, max_results: int = 5) -> Optional[Dict[str, Any]]:
        """
        Search books by title asynchronously.

        Returns:
            API response or None
        """
        logger.info(f"Async search: {query}")
        return await self._get_json(SEARCH_URL, search_params(self.ttb_key, query, max_results))

    async def search_candidates(
        self,
        title: str,
        author: str = "",
        max_results: int = 5
    ) -> List[CatalogCandidate]:
        """One title search, parsed. Empty list on failure or no hits."""
        response = await self.search(build_query(title, author), max_results)
        return parse_search_response(response, limit=max_results)

    async def lookup(self, isbn: str) -> Optional[Dict[str, Any]]:
        """Raw ItemLookUp response for an ISBN-13. None when the call failed."""
        return await self._get_json(LOOKUP_URL, lookup_params(self.ttb_key, isbn))

    async def probe(self, url: str) -> bool:
        """
        Check that an image URL actually serves an image.

        Args:
            url: Candidate cover image URL

        Returns:
            True on a 2xx answer with an image content type
        """
        async with self.semaphore:
            try:
                response = await self.client.head(url)
                if response.status_code == 405:
                    # Some image hosts refuse HEAD
                    response = await self.client.get(url)
            except httpx.HTTPError as e:
                logger.info(f"Cover probe failed for {url}: {e}")
                return False

        if response.status_code != 200:
            return False
        content_type = response.headers.get("content-type", "")
        return content_type.startswith("image/") or not content_type

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
