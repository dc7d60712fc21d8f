"""
Time-bounded membership set gating admission into the URL frontier.
"""

import asyncio
import logging
import time
from typing import Callable, Dict


class SeenSet:
    """
    Remembers recently enqueued URLs for a sliding window.

    Each `mark` pushes the entry's expiry to `ttl` seconds from now. Expired
    entries read as unseen immediately; the sweeper only reclaims memory.
    """

    def __init__(self, ttl: float = 120.0, sweep_interval: float = 300.0,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self.clock = clock
        self.logger = logging.getLogger(__name__)

        self._expires_at: Dict[str, float] = {}

    def seen(self, url: str) -> bool:
        """Whether `url` was marked less than `ttl` seconds ago."""
        expires_at = self._expires_at.get(url)
        if expires_at is None:
            return False
        return self.clock() < expires_at

    def mark(self, url: str):
        self._expires_at[url] = self.clock() + self.ttl

    def __contains__(self, url: str) -> bool:
        return self.seen(url)

    def __len__(self) -> int:
        return len(self._expires_at)

    def sweep(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self.clock()
        expired = [url for url, expires_at in self._expires_at.items() if expires_at <= now]
        for url in expired:
            del self._expires_at[url]

        if expired:
            self.logger.debug(f"Swept {len(expired)} expired entries from seen set")
        return len(expired)

    async def run_sweeper(self):
        """Periodically reclaim expired entries."""
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()
