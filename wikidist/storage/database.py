"""
Storage layer for the article link graph.
Supports an in-memory backend and a Redis backend.
"""

import logging
from typing import Dict, List, Any

import redis.asyncio as redis

from ..crawler.parser import Article
from ..utils.config import StoreConfig


class StoreError(Exception):
    """Custom exception for store operations."""
    pass


class StoreBackend:
    """
    Abstract base class for store backends.

    A backend is the sole source of frontier candidates and the sink of
    visited articles. Implementations must tolerate concurrent calls from the
    refill loop and every registerer.
    """

    async def initialize(self):
        """Initialize the store backend."""
        raise NotImplementedError

    async def next_to_visit(self, limit: int) -> List[str]:
        """
        Return up to `limit` titles not yet visited.

        No freshness guarantee: titles already handed out or in flight may be
        returned again.
        """
        raise NotImplementedError

    async def add_visited(self, article: Article):
        """Write the visited article and its edges with other articles."""
        raise NotImplementedError

    async def add_start_url(self, title: str):
        """Make `title` a candidate for visiting unless it was already visited."""
        raise NotImplementedError

    async def get_stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        raise NotImplementedError

    async def close(self):
        """Close store connections."""
        raise NotImplementedError


class MemoryStore(StoreBackend):
    """In-process store for tests and single-run crawls."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.articles: Dict[str, Article] = {}
        self.links: Dict[str, List[str]] = {}
        # dict preserves discovery order
        self.to_visit: Dict[str, None] = {}
        self.stats = {
            'total_visited': 0,
            'total_missing': 0
        }

    async def initialize(self):
        self.logger.info("Memory store initialized")

    async def next_to_visit(self, limit: int) -> List[str]:
        """Hand out the oldest titles and move them to the back of the line."""
        titles = []
        for title in self.to_visit:
            if len(titles) >= limit:
                break
            titles.append(title)

        # Titles that keep failing must not hide newer candidates
        for title in titles:
            del self.to_visit[title]
            self.to_visit[title] = None
        return titles

    async def add_visited(self, article: Article):
        title = article.title
        self.to_visit.pop(title, None)

        if article.missing:
            self.articles[title] = Article(title=title, missing=True)
            self.links[title] = []
            self.stats['total_missing'] += 1
        else:
            self.articles[title] = article
            self.links[title] = article.linked_titles
            for linked in article.linked_titles:
                if linked not in self.articles:
                    self.to_visit.setdefault(linked, None)

        self.stats['total_visited'] += 1
        self.logger.debug(f"Stored article {title} with {len(self.links[title])} links")

    async def add_start_url(self, title: str):
        if title not in self.articles:
            self.to_visit.setdefault(title, None)

    def is_visited(self, title: str) -> bool:
        return title in self.articles

    async def get_stats(self) -> Dict[str, Any]:
        stats = self.stats.copy()
        stats['to_visit'] = len(self.to_visit)
        stats['edges'] = sum(len(links) for links in self.links.values())
        return stats

    async def close(self):
        self.logger.info("Memory store closed")


class RedisStore(StoreBackend):
    """
    Redis store for long-running crawls.

    Layout under `key_prefix`:
        visited            set of visited titles
        to_visit           set of discovered but unvisited titles
        article:<title>    hash with page_id, description, missing
        links:<title>      set of titles linked from <title>
    """

    def __init__(self, redis_client: redis.Redis, key_prefix: str = "wikidist"):
        self.redis_client = redis_client
        self.logger = logging.getLogger(__name__)

        # Redis keys
        self.visited_key = f"{key_prefix}:visited"
        self.to_visit_key = f"{key_prefix}:to_visit"
        self.article_prefix = f"{key_prefix}:article:"
        self.links_prefix = f"{key_prefix}:links:"

    @staticmethod
    def _decode(value) -> str:
        return value.decode('utf-8') if isinstance(value, bytes) else value

    async def initialize(self):
        """Check the Redis connection."""
        try:
            await self.redis_client.ping()
            self.logger.info("Redis store connection established")
        except Exception as e:
            raise StoreError(f"Failed to connect to Redis: {e}") from e

    async def next_to_visit(self, limit: int) -> List[str]:
        """Return up to `limit` distinct unvisited titles chosen at random."""
        try:
            titles = await self.redis_client.srandmember(self.to_visit_key, limit)
        except Exception as e:
            raise StoreError(f"Error reading titles to visit: {e}") from e
        return [self._decode(title) for title in titles or []]

    async def add_visited(self, article: Article):
        title = article.title
        linked = [] if article.missing else article.linked_titles

        try:
            unvisited: List[str] = []
            if linked:
                flags = await self.redis_client.smismember(self.visited_key, linked)
                unvisited = [t for t, visited in zip(linked, flags) if not visited]

            async with self.redis_client.pipeline(transaction=True) as pipe:
                pipe.hset(f"{self.article_prefix}{title}", mapping={
                    'page_id': article.page_id,
                    'description': article.description if not article.missing else '',
                    'missing': int(article.missing)
                })
                pipe.sadd(self.visited_key, title)
                pipe.srem(self.to_visit_key, title)
                if linked:
                    pipe.sadd(f"{self.links_prefix}{title}", *linked)
                if unvisited:
                    pipe.sadd(self.to_visit_key, *unvisited)
                await pipe.execute()

            self.logger.debug(f"Stored article {title} with {len(linked)} links")

        except Exception as e:
            raise StoreError(f"Error storing article {title}: {e}") from e

    async def add_start_url(self, title: str):
        try:
            if not await self.redis_client.sismember(self.visited_key, title):
                await self.redis_client.sadd(self.to_visit_key, title)
        except Exception as e:
            raise StoreError(f"Error adding start URL {title}: {e}") from e

    async def get_stats(self) -> Dict[str, Any]:
        try:
            return {
                'total_visited': await self.redis_client.scard(self.visited_key),
                'to_visit': await self.redis_client.scard(self.to_visit_key)
            }
        except Exception as e:
            self.logger.error(f"Error getting stats: {e}")
            return {}

    async def close(self):
        await self.redis_client.aclose()
        self.logger.info("Redis store connection closed")


def create_store(config: StoreConfig) -> StoreBackend:
    """Build the backend named by `config.type`."""
    backend_type = config.type.lower()

    if backend_type == 'memory':
        return MemoryStore()
    if backend_type == 'redis':
        redis_client = redis.Redis(
            host=config.redis_host,
            port=config.redis_port,
            db=config.redis_db,
            password=config.redis_password,
            decode_responses=False
        )
        return RedisStore(redis_client, config.key_prefix)

    raise StoreError(f"Unknown store type: {backend_type}")
