"""HTTP client for the Aladin TTB catalog API with resilience patterns."""
import time
import random
import requests
from typing import Optional, Dict, Any, List
import logging

from paperpharmacy.isbn import validate_isbn
from paperpharmacy.models import CatalogCandidate
from paperpharmacy.parse import parse_cover, parse_search_response

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.aladin.co.kr/ttb/api/ItemSearch.aspx"
LOOKUP_URL = "http://www.aladin.co.kr/ttb/api/ItemLookUp.aspx"
API_VERSION = "20131101"


def build_query(title: str, author: str = "") -> str:
    """Search query used for title lookups: the title, plus the author when known."""
    return f"{title} {author}" if author else title


def search_params(ttb_key: str, query: str, max_results: int = 5) -> Dict[str, Any]:
    return {
        "ttbkey": ttb_key,
        "Query": query,
        "QueryType": "Title",
        "MaxResults": max_results,
        "start": 1,
        "SearchTarget": "Book",
        "output": "js",
        "Version": API_VERSION,
    }


def lookup_params(ttb_key: str, isbn: str) -> Dict[str, Any]:
    return {
        "ttbkey": ttb_key,
        "itemIdType": "ISBN13",
        "ItemId": isbn,
        "output": "js",
        "Version": API_VERSION,
        "Cover": "Big",
    }


class AladinClient:
    """Client for the Aladin API with timeouts, retries, and backoff."""

    def __init__(
        self,
        ttb_key: str,
        timeout: int = 10,
        max_retries: int = 3,
        base_backoff: float = 1.0
    ):
        """
        Initialize Aladin API client.

        Args:
            ttb_key: Aladin TTB key (required by every endpoint)
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            base_backoff: Base delay for exponential backoff
        """
        self.ttb_key = ttb_key
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_backoff = base_backoff

        # Create session for connection pooling
        self.session = requests.Session()

    def search(self, query: str, max_results: int = 5) -> Optional[Dict[str, Any]]:
        """
        Search books by title.

        Args:
            query: Search query string
            max_results: Maximum results to return

        Returns:
            API response JSON or None if all retries failed
        """
        params = search_params(self.ttb_key, query, max_results)
        return self._make_request_with_retry(SEARCH_URL, params)

    def search_candidates(
        self,
        title: str,
        author: str = "",
        max_results: int = 5
    ) -> List[CatalogCandidate]:
        """Search and parse in one step. Empty list when the search failed."""
        response = self.search(build_query(title, author), max_results)
        return parse_search_response(response, limit=max_results)

    def lookup_cover(self, isbn: str) -> Optional[str]:
        """
        Look up the large cover image for an ISBN-13.

        Returns:
            Cover URL, or None if the ISBN is invalid, unknown, or the call failed
        """
        cleaned = validate_isbn(isbn)
        if not cleaned:
            logger.warning(f"Invalid ISBN format: {isbn}")
            return None

        response = self._make_request_with_retry(LOOKUP_URL, lookup_params(self.ttb_key, cleaned))
        return parse_cover(response)

    def _make_request_with_retry(
        self,
        url: str,
        params: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Make HTTP request with retry logic.

        Args:
            url: Request URL
            params: Query parameters

        Returns:
            Response JSON or None if all retries exhausted
        """
        for attempt in range(self.max_retries):
            try:
                logger.info(f"Request attempt {attempt + 1}/{self.max_retries}: {url}")

                response = self.session.get(
                    url,
                    params=params,
                    timeout=self.timeout
                )

                # Handle different status codes
                if response.status_code == 200:
                    logger.info(f"Success: {response.status_code}")
                    return response.json()

                elif response.status_code == 429:
                    # Rate limited - must retry with backoff
                    logger.warning(f"Rate limited (429) on attempt {attempt + 1}")
                    if attempt < self.max_retries - 1:
                        self._backoff(attempt)
                        continue

                elif response.status_code >= 500:
                    # Server error - retryable
                    logger.warning(f"Server error ({response.status_code}) on attempt {attempt + 1}")
                    if attempt < self.max_retries - 1:
                        self._backoff(attempt)
                        continue

                elif response.status_code >= 400:
                    # Client error - don't retry
                    logger.error(f"Client error ({response.status_code}): {response.text}")
                    return None

            except requests.exceptions.Timeout:
                logger.warning(f"Timeout on attempt {attempt + 1}")
                if attempt < self.max_retries - 1:
                    self._backoff(attempt)
                    continue

            except requests.exceptions.ConnectionError as e:
                logger.warning(f"Connection error on attempt {attempt + 1}: {e}")
                if attempt < self.max_retries - 1:
                    self._backoff(attempt)
                    continue

            except ValueError as e:
                # Aladin answered 200 with something that is not JSON
                logger.error(f"Undecodable response from {url}: {e}")
                return None

        logger.error(f"All {self.max_retries} attempts failed")
        return None

    def _backoff(self, attempt: int):
        """
        Sleep with exponential backoff and jitter.

        Args:
            attempt: Current attempt number (0-indexed)
        """
        delay = self.base_backoff * (2 ** attempt)
        jitter = random.uniform(0, delay)
        total_delay = delay + jitter

        logger.info(f"Backing off for {total_delay:.2f} seconds")
        time.sleep(total_delay)

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
