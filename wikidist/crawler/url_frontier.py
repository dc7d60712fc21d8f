"""
URL Frontier: bounded in-memory queue of article titles awaiting fetch,
replenished from the store in batches.
"""

import asyncio
import logging
from typing import Dict

from .seen_set import SeenSet


class URLFrontier:
    """
    Bounded FIFO of titles to fetch, refilled from the store below a low-water mark.

    Refilling never blocks on a full queue: once the queue is full the rest of
    the batch is dropped and picked up again on a later refill.
    """

    def __init__(self, store, seen: SeenSet, workers: int,
                 queue_multiplier: int = 100, low_water_multiplier: int = 80,
                 batch_multiplier: int = 100, monitor=None):
        self.store = store
        self.seen = seen
        self.monitor = monitor
        self.logger = logging.getLogger(__name__)

        self.capacity = queue_multiplier * workers
        self.low_water_mark = low_water_multiplier * workers
        self.batch_size = batch_multiplier * workers

        self.queue: asyncio.Queue = asyncio.Queue(maxsize=self.capacity)

        self.stats = {
            'refills': 0,
            'urls_enqueued': 0,
            'urls_already_seen': 0,
            'urls_dropped_queue_full': 0,
            'store_errors': 0
        }

    def qsize(self) -> int:
        return self.queue.qsize()

    def needs_refill(self) -> bool:
        """Whether occupancy is at or below the low-water mark."""
        return self.queue.qsize() <= self.low_water_mark

    def seed(self, url: str) -> bool:
        """Enqueue the crawl start URL. Returns False if the queue is full."""
        if self.queue.full():
            self.logger.warning(f"Frontier full, could not seed {url}")
            return False
        self.seen.mark(url)
        self.queue.put_nowait(url)
        self.logger.info(f"Seeded frontier with {url}")
        return True

    async def refill(self) -> int:
        """
        Top up the queue from the store if it is at or below the low-water mark.

        Returns:
            Number of URLs enqueued on this call
        """
        if not self.needs_refill():
            return 0

        urls = await self.store.next_to_visit(self.batch_size)
        self.stats['refills'] += 1

        new_urls = 0
        for i, url in enumerate(urls):
            if self.seen.seen(url):
                self.stats['urls_already_seen'] += 1
                continue
            if self.queue.full():
                self.stats['urls_dropped_queue_full'] += len(urls) - i
                break
            # No await between the check and the put: admission is atomic
            self.seen.mark(url)
            self.queue.put_nowait(url)
            new_urls += 1

        self.stats['urls_enqueued'] += new_urls
        if self.monitor:
            self.monitor.record_new_urls(new_urls)

        if new_urls:
            self.logger.debug(f"Refilled frontier with {new_urls} URLs ({self.queue.qsize()} queued)")
        return new_urls

    async def run_refill_loop(self, interval: float = 0.01):
        """Refill forever, sleeping `interval` seconds between ticks whatever happened."""
        while True:
            try:
                await self.refill()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.stats['store_errors'] += 1
                self.logger.error(f"Error refilling frontier: {e}")
            await asyncio.sleep(interval)

    async def get(self) -> str:
        """Wait for the next URL to fetch."""
        return await self.queue.get()

    def task_done(self):
        self.queue.task_done()

    def get_stats(self) -> Dict[str, int]:
        """Get frontier statistics."""
        stats = self.stats.copy()
        stats['queued'] = self.queue.qsize()
        stats['capacity'] = self.capacity
        stats['seen'] = len(self.seen)
        return stats

