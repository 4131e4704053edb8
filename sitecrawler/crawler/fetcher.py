"""
Page fetcher: downloads a page, parses it and returns its in-scope links.
"""

import asyncio
import contextlib
import logging
from typing import Dict, List, Optional

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout

from .link_filter import LinkFilter
from .parser import LinkExtractor, ParseError
from ..storage.visited_store import VisitedStore


class FetchError(Exception):
    """Raised when a page cannot be fetched or parsed."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class PageFetcher:
    """
    Fetches pages over HTTP and extracts links that stay on the seed host.

    Each fetch records its URL in the visited store before the request goes
    out. Non-2xx responses are parsed like any other page; only transport
    and parse failures raise FetchError.
    """

    def __init__(self, store: VisitedStore, link_filter: LinkFilter,
                 user_agent: str = "sitecrawler/1.0",
                 request_timeout: Optional[float] = None,
                 max_concurrent_requests: int = 0):
        self.store = store
        self.link_filter = link_filter
        self.extractor = LinkExtractor(link_filter)
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_concurrent_requests = max_concurrent_requests

        self.logger = logging.getLogger(__name__)

        # Session management
        self.session: Optional[ClientSession] = None
        self.semaphore = (asyncio.Semaphore(max_concurrent_requests)
                          if max_concurrent_requests else None)

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Open the HTTP session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent}

            # limit=0 leaves the connection pool unbounded
            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(limit=self.max_concurrent_requests)
            )
            self.logger.debug("PageFetcher session started")

    async def close(self):
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("PageFetcher session closed")

    async def fetch(self, url: str) -> List[str]:
        """
        Fetch a page and return its in-scope links.

        Args:
            url: Absolute URL to fetch

        Returns:
            Accepted hrefs in document order, unresolved

        Raises:
            FetchError: On transport or parse failure
        """
        if self.session is None:
            raise RuntimeError("PageFetcher session not started")

        self.store.mark_visited(url)

        limit = self.semaphore if self.semaphore is not None else contextlib.nullcontext()
        async with limit:
            self.stats['total_requests'] += 1
            try:
                async with self.session.get(url) as response:
                    body = await response.read()
                    charset = response.charset
                    self.logger.debug(f"Fetched {url}: {response.status} ({len(body)} bytes)")

            except asyncio.TimeoutError as e:
                self.stats['failed_requests'] += 1
                raise FetchError(url, "request timeout") from e

            except (ClientError, ValueError) as e:
                self.stats['failed_requests'] += 1
                raise FetchError(url, str(e) or type(e).__name__) from e

        self.stats['successful_requests'] += 1
        self.stats['total_bytes_downloaded'] += len(body)

        try:
            return self.extractor.extract_links(self._decode(body, charset))
        except ParseError as e:
            raise FetchError(url, str(e)) from e

    def _decode(self, content_bytes: bytes, charset: Optional[str]) -> str:
        """Decode a response body, falling back through common encodings."""
        if charset:
            try:
                return content_bytes.decode(charset)
            except (UnicodeDecodeError, LookupError):
                pass

        for fallback_encoding in ['utf-8', 'cp1252']:
            try:
                return content_bytes.decode(fallback_encoding)
            except UnicodeDecodeError:
                continue

        return content_bytes.decode('latin-1')

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()
