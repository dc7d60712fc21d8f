"""
Crawler scheduler that wires the frontier, the fetch workers and the
registerers together and drives the crawl.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional
from dataclasses import dataclass

from .url_frontier import URLFrontier
from .seen_set import SeenSet
from .fetcher import WikiFetcher
from .parser import Article
from .exceptions import FetchError
from ..storage.database import StoreBackend, create_store
from ..utils.config import Config
from ..utils.monitoring import CrawlerMonitor


@dataclass
class FetchOutcome:
    """What a fetch worker hands to the registerers."""
    title: str
    article: Optional[Article] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.article is not None


@dataclass
class CrawlStats:
    """Statistics for crawl operations."""
    start_time: float
    articles_fetched: int = 0
    articles_registered: int = 0
    fetch_errors: int = 0
    store_errors: int = 0
    failed_not_registered: int = 0
    empty_urls_skipped: int = 0

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time

    @property
    def articles_per_minute(self) -> float:
        elapsed_minutes = self.elapsed_time / 60
        return self.articles_registered / elapsed_minutes if elapsed_minutes > 0 else 0


class CrawlerScheduler:
    """
    Runs one refill loop, `workers` fetch workers and `workers` registerers.

    The workers only communicate through two bounded queues: the frontier
    queue (titles to fetch) and the results queue (fetch outcomes to store).
    """

    def __init__(self, config: Config, store: Optional[StoreBackend] = None,
                 session=None, monitor: Optional[CrawlerMonitor] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.workers_count = config.crawler.workers

        # Components
        self.store = store
        self.monitor = monitor
        self._session = session
        self.fetcher: Optional[WikiFetcher] = None
        self.seen: Optional[SeenSet] = None
        self.url_frontier: Optional[URLFrontier] = None
        self.results: Optional[asyncio.Queue] = None

        # Crawl state
        self.stats = CrawlStats(start_time=time.time())
        self.is_running = False
        self.tasks: List[asyncio.Task] = []

    async def initialize(self):
        """Initialize all crawler components."""
        crawler_config = self.config.crawler

        try:
            if self.monitor is None:
                self.monitor = CrawlerMonitor(
                    enable_server=self.config.monitoring.metrics_enabled,
                    prometheus_port=self.config.monitoring.prometheus_port
                )

            if self.store is None:
                self.store = create_store(self.config.store)
            await self.store.initialize()
            await self.store.add_start_url(crawler_config.start_url)

            if self._session is not None:
                self.fetcher = WikiFetcher.with_session(
                    self._session,
                    crawler_config.site_prefix,
                    api_host=crawler_config.api_host,
                    monitor=self.monitor
                )
            else:
                self.fetcher = WikiFetcher(
                    site_prefix=crawler_config.site_prefix,
                    user_agent=crawler_config.user_agent,
                    request_timeout=crawler_config.request_timeout,
                    max_connections=self.workers_count * 2,
                    api_host=crawler_config.api_host,
                    monitor=self.monitor
                )
                await self.fetcher.start()

            self.seen = SeenSet(
                ttl=self.config.seen.ttl,
                sweep_interval=self.config.seen.sweep_interval
            )

            self.url_frontier = URLFrontier(
                self.store,
                self.seen,
                self.workers_count,
                queue_multiplier=crawler_config.queue_multiplier,
                low_water_multiplier=crawler_config.low_water_multiplier,
                batch_multiplier=crawler_config.batch_multiplier,
                monitor=self.monitor
            )

            self.results = asyncio.Queue(
                maxsize=crawler_config.results_multiplier * self.workers_count
            )

            self.logger.info("Crawler scheduler initialized successfully")

        except Exception as e:
            self.logger.error(f"Failed to initialize crawler scheduler: {e}")
            raise

    def start(self):
        """Spawn every background task and seed the frontier with the start URL."""
        if self.is_running:
            self.logger.warning("Crawler is already running")
            return

        self.is_running = True
        self.stats = CrawlStats(start_time=time.time())
        self.monitor.start_server()

        for i in range(self.workers_count):
            self.tasks.append(asyncio.create_task(self._fetch_worker(f"fetcher-{i}")))
        for i in range(self.workers_count):
            self.tasks.append(asyncio.create_task(self._registerer(f"registerer-{i}")))

        self.tasks.append(asyncio.create_task(self.seen.run_sweeper()))
        self.tasks.append(asyncio.create_task(self._metrics_reporter()))

        self.url_frontier.seed(self.config.crawler.start_url)

        self.tasks.append(asyncio.create_task(
            self.url_frontier.run_refill_loop(self.config.crawler.refill_interval)
        ))

        self.logger.info(f"Started crawling with {self.workers_count} fetch workers "
                         f"and {self.workers_count} registerers")

    async def run(self):
        """Crawl until the tasks are cancelled by stop()."""
        self.start()
        try:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        finally:
            self.is_running = False

    async def process_url(self, url: str) -> Optional[FetchOutcome]:
        """
        Fetch one title and publish the outcome on the results queue.

        Returns None, without fetching, for an empty title.
        """
        if not url:
            self.stats.empty_urls_skipped += 1
            return None

        self.logger.debug(f"Getting {url}")
        try:
            article = await self.fetcher.fetch(url)
            outcome = FetchOutcome(title=url, article=article)
        except FetchError as e:
            self.logger.warning(f"Error while fetching article {url}: {e}")
            self.stats.fetch_errors += 1
            self.monitor.record_fetch_error(e.error_type)
            outcome = FetchOutcome(title=url, error=e)

        await self.results.put(outcome)
        self.stats.articles_fetched += 1
        self.monitor.record_fetched()
        return outcome

    async def register(self, outcome: FetchOutcome) -> bool:
        """
        Write a successful outcome to the store.

        Failed fetches are not written: the title stays unvisited in the store
        and comes back once it leaves the seen set.
        """
        if not outcome.ok:
            self.logger.info(f"Not registering {outcome.title}: {outcome.error}")
            self.stats.failed_not_registered += 1
            return False

        self.logger.debug(f"Registering {outcome.title}")
        try:
            await self.store.add_visited(outcome.article)
        except Exception as e:
            self.logger.error(f"Error registering {outcome.title}: {e}")
            self.stats.store_errors += 1
            return False

        self.stats.articles_registered += 1
        self.monitor.record_registered()
        return True

    async def _fetch_worker(self, worker_id: str):
        """Worker coroutine that takes titles from the frontier and fetches them."""
        self.logger.debug(f"Worker {worker_id} started")

        while True:
            url = await self.url_frontier.get()
            try:
                await self.process_url(url)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.error(f"Worker {worker_id} error on {url}: {e}", exc_info=True)
            finally:
                self.url_frontier.task_done()

    async def _registerer(self, worker_id: str):
        """Worker coroutine that writes fetch outcomes to the store."""
        self.logger.debug(f"Registerer {worker_id} started")

        while True:
            outcome = await self.results.get()
            try:
                await self.register(outcome)
            finally:
                self.results.task_done()

    async def _metrics_reporter(self):
        """Periodically sample queue lengths and log crawl progress."""
        while True:
            await asyncio.sleep(self.config.crawler.metrics_interval)
            try:
                self._log_current_stats()
            except Exception as e:
                self.logger.error(f"Error in metrics reporter: {e}")

    def _log_current_stats(self):
        queue_length = self.url_frontier.qsize()
        results_length = self.results.qsize()
        self.monitor.update_queue_lengths(queue_length, results_length)

        self.logger.info(
            f"Crawl Progress: "
            f"Fetched={self.stats.articles_fetched}, "
            f"Registered={self.stats.articles_registered}, "
            f"Queued={queue_length}, "
            f"Results={results_length}, "
            f"FetchErrors={self.stats.fetch_errors}, "
            f"StoreErrors={self.stats.store_errors}, "
            f"Rate={self.stats.articles_per_minute:.1f} articles/min"
        )

    async def stop(self):
        """Cancel every background task."""
        self.logger.info("Stopping crawler...")
        for task in self.tasks:
            if not task.done():
                task.cancel()

        await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks.clear()
        self.is_running = False

    async def close(self):
        """Stop the crawl and release the fetcher session and the store."""
        try:
            if self.tasks:
                await self.stop()

            if self.fetcher:
                await self.fetcher.close()

            if self.store:
                await self.store.close()

            self.logger.info("Crawler scheduler closed")

        except Exception as e:
            self.logger.error(f"Error during cleanup: {e}")

    def get_stats(self) -> Dict:
        """Get current crawl statistics."""
        stats = {
            'articles_fetched': self.stats.articles_fetched,
            'articles_registered': self.stats.articles_registered,
            'fetch_errors': self.stats.fetch_errors,
            'store_errors': self.stats.store_errors,
            'failed_not_registered': self.stats.failed_not_registered,
            'empty_urls_skipped': self.stats.empty_urls_skipped,
            'elapsed_time': self.stats.elapsed_time,
            'articles_per_minute': self.stats.articles_per_minute,
            'is_running': self.is_running
        }
        if self.url_frontier:
            stats['frontier'] = self.url_frontier.get_stats()
        if self.results:
            stats['results_queued'] = self.results.qsize()
        return stats
