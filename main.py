#!/usr/bin/env python3
"""
Main entry point for the same-host crawler.
"""

import asyncio
import argparse
import logging
import signal
import sys
from typing import Optional, Sequence

from sitecrawler import __version__
from sitecrawler.crawler import CrawlEngine, LinkFilter, PageFetcher
from sitecrawler.storage import VisitedStore
from sitecrawler.utils.config import Config, ConfigError, load_config, validate_config
from sitecrawler.utils.logger import setup_logging
from sitecrawler.utils.url import InvalidURLError, validate_seed_url


EXIT_INTERRUPTED = 130
SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class CrawlerApp:
    """Main application class for the crawler."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._shutdown_event: Optional[asyncio.Event] = None

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for signum in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(signum, self._request_shutdown, signum)
            except (NotImplementedError, RuntimeError):
                # not supported on this platform or outside the main thread
                pass

    def remove_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for signum in SHUTDOWN_SIGNALS:
            try:
                loop.remove_signal_handler(signum)
            except (NotImplementedError, RuntimeError):
                pass

    def _request_shutdown(self, signum):
        self.logger.info(f"Received signal {signum}, stopping crawl...")
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def run(self, config: Config) -> int:
        """Run one crawl with an already validated configuration."""
        self._shutdown_event = asyncio.Event()
        self.setup_signal_handlers()
        try:
            return await self._crawl(config)
        finally:
            self.remove_signal_handlers()

    async def _crawl(self, config: Config) -> int:
        crawler_config = config.crawler
        seed_url = crawler_config.seed_url

        self.logger.info(f"Seed URL: {seed_url}")
        self.logger.info(f"Max depth: {crawler_config.max_depth}")

        store = VisitedStore()
        link_filter = LinkFilter.for_seed(seed_url)

        async with PageFetcher(
            store,
            link_filter,
            user_agent=crawler_config.user_agent,
            request_timeout=crawler_config.request_timeout,
            max_concurrent_requests=crawler_config.max_concurrent_requests
        ) as fetcher:
            engine = CrawlEngine(fetcher, store, verbose=crawler_config.verbose)

            crawl_task = asyncio.create_task(engine.run(seed_url, crawler_config.max_depth))
            shutdown_task = asyncio.create_task(self._shutdown_event.wait())

            # Wait for either crawling to complete or shutdown signal
            done, pending = await asyncio.wait(
                [crawl_task, shutdown_task],
                return_when=asyncio.FIRST_COMPLETED
            )

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            if crawl_task not in done:
                self.logger.warning("Crawl interrupted")
                return EXIT_INTERRUPTED

            crawl_task.result()
            self.logger.info(f"Fetcher stats: {fetcher.get_stats()}")

        return 0


def parse_bool(value: str) -> bool:
    """Parse a boolean command line value."""
    lowered = value.strip().lower()
    if lowered in ('1', 't', 'true', 'yes', 'y', 'on'):
        return True
    if lowered in ('0', 'f', 'false', 'no', 'n', 'off'):
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Crawl every page on the seed URL's host up to a link depth.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --url https://example.com              # Crawl one link deep
  python main.py --url https://example.com --depth 3    # Follow three hops
  python main.py --url https://example.com --verbose    # Also print discovered links
  python main.py --config crawler.yaml                  # Read settings from YAML
        """
    )

    parser.add_argument('--url', help='Start url for crawler')
    parser.add_argument('--depth', type=int, help='Max depth to follow through links (default: 1)')
    parser.add_argument(
        '--verbose',
        nargs='?',
        const=True,
        type=parse_bool,
        help='Show visited links as well as links in those pages'
    )
    parser.add_argument('--config', help='Path to a YAML configuration file')
    parser.add_argument(
        '--max-concurrent',
        type=int,
        help='Maximum number of concurrent fetches (default: unbounded)'
    )
    parser.add_argument('--log-level', help='Log level (default: WARNING)')
    parser.add_argument('--log-json', action='store_true', help='Emit logs as JSON lines')
    parser.add_argument('--version', action='version', version=f'sitecrawler {__version__}')
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply command line values on top of file configuration."""
    if args.url is not None:
        config.crawler.seed_url = args.url
    if args.depth is not None:
        config.crawler.max_depth = args.depth
    if args.verbose is not None:
        config.crawler.verbose = args.verbose
    if args.max_concurrent is not None:
        config.crawler.max_concurrent_requests = args.max_concurrent
    if args.log_level is not None:
        config.logging.level = args.log_level
    if args.log_json:
        config.logging.json = True
    validate_config(config)
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = apply_overrides(load_config(args.config), args)
    except (ConfigError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        validate_seed_url(config.crawler.seed_url or "")
    except InvalidURLError:
        print("Invalid start url")
        return 0

    setup_logging(config.logging)

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(config))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == '__main__':
    sys.exit(main())
