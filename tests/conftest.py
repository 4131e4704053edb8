"""
Shared fixtures for crawler tests.
"""

import asyncio
from typing import Dict, List, Optional, Union

import pytest

from sitecrawler.crawler.fetcher import FetchError
from sitecrawler.storage.visited_store import VisitedStore


class FakeFetcher:
    """
    In-memory page fetcher.

    `pages` maps a URL to the links on that page, or to an exception to
    raise. URLs not in `pages` return `default_links`.
    """

    def __init__(self, store: VisitedStore,
                 pages: Optional[Dict[str, Union[List[str], Exception]]] = None,
                 default_links: Optional[List[str]] = None,
                 delay: float = 0.0):
        self.store = store
        self.pages = pages or {}
        self.default_links = default_links or []
        self.delay = delay
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, url: str) -> List[str]:
        self.store.mark_visited(url)
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # yield so sibling tasks interleave
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        page = self.pages.get(url, self.default_links)
        if isinstance(page, Exception):
            raise page
        return list(page)


@pytest.fixture
def store():
    return VisitedStore()


@pytest.fixture
def make_fetcher(store):
    def _make(**kwargs) -> FakeFetcher:
        return FakeFetcher(store, **kwargs)
    return _make


@pytest.fixture
def transport_error():
    return FetchError("https://example.com", "connection refused")
