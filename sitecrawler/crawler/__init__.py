"""
Crawler core components.
"""

from .engine import CrawlEngine, CrawlStats, CrawlTask, TaskState, crawl
from .fetcher import FetchError, PageFetcher
from .link_filter import LinkFilter
from .parser import LinkExtractor, ParseError

__all__ = [
    'CrawlEngine', 'CrawlStats', 'CrawlTask', 'TaskState', 'crawl',
    'FetchError', 'PageFetcher',
    'LinkFilter',
    'LinkExtractor', 'ParseError'
]
