"""
Shared record of URLs already dispatched for fetching.
"""

import threading
from typing import FrozenSet, Iterable, Optional, Set


class VisitedStore:
    """
    Lock-guarded set of URL strings.

    Safe to share between any number of asyncio tasks or threads. Grows
    monotonically for the life of a crawl run.
    """

    def __init__(self, urls: Optional[Iterable[str]] = None):
        self._lock = threading.Lock()
        self._visited: Set[str] = set(urls or ())

    def has_visited(self, url: str) -> bool:
        """Return whether url has been recorded."""
        with self._lock:
            return url in self._visited

    def mark_visited(self, url: str) -> None:
        """Record url. Marking an already recorded url is a no-op."""
        with self._lock:
            self._visited.add(url)

    def try_claim(self, url: str) -> bool:
        """
        Atomically record url and report whether this call recorded it.

        Exactly one of any number of concurrent callers for the same url
        gets True.
        """
        with self._lock:
            if url in self._visited:
                return False
            self._visited.add(url)
            return True

    def snapshot(self) -> FrozenSet[str]:
        """Return a point-in-time copy of the recorded urls."""
        with self._lock:
            return frozenset(self._visited)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._visited

    def __len__(self) -> int:
        with self._lock:
            return len(self._visited)
