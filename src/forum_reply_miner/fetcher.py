"""
Page fetching with bounded retry.

This is the only module that touches the network. Everything above it asks
for "the parsed document at this URL" and either gets a BeautifulSoup tree
or a FetchError; retry mechanics stay in here.
"""

import asyncio
import logging
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from .config import MAX_ATTEMPTS, REQUEST_TIMEOUT, RETRY_DELAY
from .errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'zh-CN,zh;q=0.9,en;q=0.8',
}


class PageFetcher:
    """
    Fetch and parse one remote page, retrying transient failures.

    A failed attempt is any transport error or non-2xx response. After
    ``max_attempts`` failures the fetch raises FetchError; it never stops
    the process.

    Usage:
        async with PageFetcher() as fetcher:
            soup = await fetcher.fetch("https://www.example.com/group/topic/1/")
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._own_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=DEFAULT_HEADERS,
        )

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._own_client:
            await self.client.aclose()

    async def fetch_text(self, url: str) -> str:
        """
        Fetch a URL and return the response body.

        Raises:
            FetchError: If every attempt failed
        """
        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self.client.get(url)
                response.raise_for_status()
                return response.text
            except httpx.HTTPError as e:
                last_error = e
                logger.warning("Fetch %s failed (attempt %d/%d): %s",
                               url, attempt, self.max_attempts, e)
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay)

        logger.error("Giving up on %s after %d attempts", url, self.max_attempts)
        raise FetchError(url, self.max_attempts, str(last_error))

    async def fetch(self, url: str) -> BeautifulSoup:
        """
        Fetch a URL and parse it into a navigable document.

        Raises:
            FetchError: If every attempt failed
        """
        html = await self.fetch_text(url)
        return BeautifulSoup(html, "lxml")
