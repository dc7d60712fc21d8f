#!/usr/bin/env python3
"""
Main entry point for the wikidist crawler.
"""

import asyncio
import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from wikidist.utils.config import Config, ConfigManager, load_config, validate_config
from wikidist.utils.logger import setup_logging
from wikidist.crawler.scheduler import CrawlerScheduler


class CrawlerApp:
    """Main application class for the wikidist crawler."""

    def __init__(self):
        self.scheduler: Optional[CrawlerScheduler] = None
        self.logger = logging.getLogger(__name__)
        self._shutdown_event: Optional[asyncio.Event] = None

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            self.logger.info(f"Received signal {signum}, initiating shutdown...")
            self._shutdown_event.set()

        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, signal_handler, signum)

    async def run(self, config: Config, max_duration: Optional[int] = None,
                  dry_run: bool = False) -> int:
        """Run the crawler until a signal arrives or max_duration elapses."""
        self._shutdown_event = asyncio.Event()
        try:
            setup_logging(config.logging)
            self.setup_signal_handlers()

            self.logger.info("=== WIKIDIST CRAWLER STARTING ===")
            self.logger.info(f"Start article: {config.crawler.start_url}")
            self.logger.info(f"Site prefix: {config.crawler.site_prefix}")
            self.logger.info(f"Workers: {config.crawler.workers}")
            self.logger.info(f"Store type: {config.store.type}")

            if dry_run:
                self.logger.info("DRY RUN MODE: No actual crawling will be performed")
                return await self._dry_run(config)

            self.scheduler = CrawlerScheduler(config)
            await self.scheduler.initialize()

            crawl_task = asyncio.create_task(self.scheduler.run())
            shutdown_task = asyncio.create_task(self._shutdown_event.wait())

            # Wait for either a shutdown signal or the duration limit
            done, pending = await asyncio.wait(
                [crawl_task, shutdown_task],
                timeout=max_duration,
                return_when=asyncio.FIRST_COMPLETED
            )

            if not done:
                self.logger.info(f"Reached max duration: {max_duration} seconds")
            elif shutdown_task in done:
                self.logger.info("Shutdown requested, stopping crawler...")

            await self.scheduler.stop()
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        except Exception as e:
            self.logger.error(f"Fatal error: {e}", exc_info=True)
            return 1

        finally:
            if self.scheduler:
                self.logger.info(f"Final statistics: {self.scheduler.get_stats()}")
                await self.scheduler.close()
            self.logger.info("=== WIKIDIST CRAWLER FINISHED ===")

        return 0

    async def _dry_run(self, config: Config) -> int:
        """Check store connectivity and fetch the start article once."""
        from wikidist.storage.database import create_store
        from wikidist.crawler.fetcher import WikiFetcher
        from wikidist.crawler.exceptions import FetchError

        status = 0

        self.logger.info("Testing store connection...")
        store = create_store(config.store)
        try:
            await store.initialize()
            self.logger.info(f"Store initialization successful: {await store.get_stats()}")
        except Exception as e:
            self.logger.error(f"Store initialization failed: {e}")
            status = 1
        finally:
            await store.close()

        self.logger.info("Testing API access...")
        async with WikiFetcher(
            site_prefix=config.crawler.site_prefix,
            user_agent=config.crawler.user_agent,
            request_timeout=config.crawler.request_timeout,
            max_connections=1,
            api_host=config.crawler.api_host
        ) as fetcher:
            try:
                article = await fetcher.fetch(config.crawler.start_url)
                self.logger.info(f"Test fetch successful: {article.title} "
                                 f"(page id {article.page_id}, {len(article.linked_articles)} links)")
            except FetchError as e:
                self.logger.error(f"Test fetch failed: {e}")
                status = 1

        self.logger.info("Dry run completed")
        return status


def build_config(args: argparse.Namespace) -> Config:
    """Load the config file if there is one and apply command line overrides."""
    if Path(args.config).exists():
        config = load_config(args.config)
    else:
        config = ConfigManager.from_dict({})

    if args.workers is not None:
        config.crawler.workers = args.workers
    if args.start_url is not None:
        config.crawler.start_url = args.start_url
    if args.site_prefix is not None:
        config.crawler.site_prefix = args.site_prefix

    validate_config(config)
    return config


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="wikidist link graph crawler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                              # Run with config.yaml if present
  python main.py --config my_config.yaml     # Run with custom config
  python main.py --start-url Cat --workers 20
  python main.py --max-duration 3600         # Run for 1 hour max
  python main.py --dry-run                   # Test configuration only
        """
    )

    parser.add_argument(
        '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )

    parser.add_argument(
        '--workers',
        type=int,
        help='Number of fetch workers and of registerers'
    )

    parser.add_argument(
        '--start-url',
        help='Title of the article the crawl starts from'
    )

    parser.add_argument(
        '--site-prefix',
        help='Language prefix of the wiki, e.g. en or fr'
    )

    parser.add_argument(
        '--max-duration',
        type=int,
        help='Maximum crawl duration in seconds'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Test configuration without actually crawling'
    )

    parser.add_argument(
        '--version',
        action='version',
        version='wikidist 1.0.0'
    )

    args = parser.parse_args()

    try:
        config = build_config(args)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: invalid configuration: {e}")
        return 1

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(
            config,
            max_duration=args.max_duration,
            dry_run=args.dry_run
        ))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
