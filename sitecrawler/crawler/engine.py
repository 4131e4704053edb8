"""
Concurrent, depth-bounded crawl engine.

Every discovered link becomes its own asyncio task. All tasks of a run
share one TaskGroup, so a run returns only once the whole task tree is done
and cancelling a run cancels every task still in flight.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, TextIO

from .fetcher import FetchError
from ..storage.visited_store import VisitedStore
from ..utils.url import InvalidURLError, resolve_reference


logger = logging.getLogger(__name__)


class TaskState(Enum):
    """Lifecycle states of a crawl task."""
    PENDING = "pending"
    DEPTH_EXHAUSTED = "depth_exhausted"
    ALREADY_VISITED = "already_visited"
    FETCHING = "fetching"
    FETCH_FAILED = "fetch_failed"
    FETCHED = "fetched"
    FANNED_OUT = "fanned_out"
    DONE = "done"


@dataclass
class CrawlTask:
    """A single URL to crawl with its remaining depth budget."""
    url: str
    depth: int
    parent_url: Optional[str] = None
    state: TaskState = TaskState.PENDING
    outcome: Optional[TaskState] = None


@dataclass
class CrawlStats:
    """Statistics for one crawl run."""
    start_time: float = field(default_factory=time.monotonic)
    end_time: Optional[float] = None
    visited: List[str] = field(default_factory=list)
    tasks_spawned: int = 0
    tasks_done: int = 0
    fetch_errors: int = 0
    duplicates_skipped: int = 0
    depth_exhausted: int = 0
    links_discovered: int = 0

    @property
    def pages_crawled(self) -> int:
        return len(self.visited)

    @property
    def elapsed_time(self) -> float:
        end = self.end_time if self.end_time is not None else time.monotonic()
        return end - self.start_time


class Fetcher(Protocol):
    """Anything that can turn a URL into its in-scope links."""

    async def fetch(self, url: str) -> List[str]:
        ...


class CrawlEngine:
    """
    Recursively crawls from a seed URL, fanning out one task per link.

    A task with a negative depth does nothing. A task whose URL is already
    claimed in the visited store does nothing. Otherwise the page is
    fetched, printed, and each of its links is crawled at depth - 1.
    Fetch failures end only the task they happen in.
    """

    def __init__(self, fetcher: Fetcher, store: VisitedStore,
                 output: Optional[TextIO] = None, verbose: bool = False):
        self.fetcher = fetcher
        self.store = store
        self.output = output
        self.verbose = verbose

        self.stats = CrawlStats()
        self._group: Optional[asyncio.TaskGroup] = None

    async def run(self, seed_url: str, depth: int) -> CrawlStats:
        """
        Crawl from seed_url and wait for every spawned task to finish.

        Args:
            seed_url: Absolute URL to start from
            depth: Number of link hops to follow from the seed

        Returns:
            Statistics for the run
        """
        if self._group is not None:
            raise RuntimeError("CrawlEngine is already running")

        self.stats = CrawlStats()
        logger.info(f"Crawling {seed_url} to depth {depth}")
        try:
            async with asyncio.TaskGroup() as group:
                self._group = group
                self.spawn(CrawlTask(url=seed_url, depth=depth))
        finally:
            self._group = None
            self.stats.end_time = time.monotonic()

        logger.info(f"Crawl finished: {self.stats.pages_crawled} pages, "
                    f"{self.stats.fetch_errors} errors, "
                    f"{self.stats.elapsed_time:.2f}s")
        return self.stats

    def spawn(self, task: CrawlTask) -> asyncio.Task:
        """Schedule a task in the running crawl's task group."""
        if self._group is None:
            raise RuntimeError("CrawlEngine is not running")
        self.stats.tasks_spawned += 1
        return self._group.create_task(self._run_task(task))

    async def _run_task(self, task: CrawlTask) -> None:
        try:
            await self.crawl(task)
        finally:
            task.outcome = task.state
            task.state = TaskState.DONE
            self.stats.tasks_done += 1

    async def crawl(self, task: CrawlTask) -> None:
        """Process one task and spawn its children."""
        if task.depth < 0:
            task.state = TaskState.DEPTH_EXHAUSTED
            self.stats.depth_exhausted += 1
            return

        if not self.store.try_claim(task.url):
            task.state = TaskState.ALREADY_VISITED
            self.stats.duplicates_skipped += 1
            logger.debug(f"Already visited: {task.url}")
            return

        task.state = TaskState.FETCHING
        try:
            links = await self.fetcher.fetch(task.url)
        except FetchError as e:
            task.state = TaskState.FETCH_FAILED
            self.stats.fetch_errors += 1
            logger.error(f"error crawling {task.url}, err: {e}")
            return
        except Exception as e:
            task.state = TaskState.FETCH_FAILED
            self.stats.fetch_errors += 1
            logger.error(f"error crawling {task.url}, err: {e}", exc_info=True)
            return

        task.state = TaskState.FETCHED
        self.stats.visited.append(task.url)
        print("-", task.url, file=self.output)

        for href in links:
            try:
                child_url = resolve_reference(task.url, href)
            except InvalidURLError:
                continue
            self.stats.links_discovered += 1
            if self.verbose:
                print("   -", child_url, file=self.output)
            self.spawn(CrawlTask(url=child_url, depth=task.depth - 1, parent_url=task.url))

        task.state = TaskState.FANNED_OUT


async def crawl(url: str, depth: int, store: VisitedStore, fetcher: Fetcher,
                output: Optional[TextIO] = None, verbose: bool = False) -> CrawlStats:
    """Crawl from url to the given depth and return once the whole tree is done."""
    engine = CrawlEngine(fetcher, store, output=output, verbose=verbose)
    return await engine.run(url, depth)
