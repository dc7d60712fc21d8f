"""
MediaWiki API fetcher: one `action=query` request per article, decoded into an Article.
"""

import asyncio
import json
import logging
from typing import Optional, Dict
from urllib.parse import urlencode

import aiohttp
from aiohttp import ClientSession, ClientTimeout, ClientError

from .exceptions import FetchError, MalformedResponseError, TransportError, UpstreamStatusError
from .parser import Article, parse_response


logger = logging.getLogger(__name__)

DEFAULT_API_HOST = "wikipedia.org"
LINKS_LIMIT = 500
ARTICLE_NAMESPACE = 0


def build_api_url(title: str, site_prefix: str, api_host: str = DEFAULT_API_HOST) -> str:
    """Build the `api.php` query URL returning links and description of `title`."""
    base_url = f"https://{site_prefix}.{api_host}/w/api.php"
    query = urlencode({
        'format': 'json',
        'action': 'query',
        'prop': 'links|description',
        'pllimit': str(LINKS_LIMIT),
        'plnamespace': str(ARTICLE_NAMESPACE),
        'titles': title
    })
    return f"{base_url}?{query}"


async def fetch_article(title: str, site_prefix: str, session, monitor=None,
                        api_host: str = DEFAULT_API_HOST) -> Article:
    """
    Fetch and decode a single article.

    Exactly one GET is issued; retrying is left to the next crawl cycle since
    the article stays unvisited in the store.

    Args:
        title: Article title to fetch
        site_prefix: Language prefix of the wiki (`en`, `fr`, ...)
        session: Object with aiohttp's `get(url)` async context manager
        monitor: Optional CrawlerMonitor receiving request telemetry
        api_host: Host the prefix is prepended to

    Returns:
        The decoded Article

    Raises:
        TransportError: the request never produced a response
        UpstreamStatusError: the response status is outside 200-299
        ResponseParseError: the body does not describe an article
    """
    url = build_api_url(title, site_prefix, api_host)

    body = b""
    try:
        async with session.get(url) as response:
            status = response.status
            if 200 <= status <= 299:
                body = await response.read()

    except (ClientError, asyncio.TimeoutError, OSError) as e:
        logger.warning(f"Request failed for article {title}: {e}")
        if monitor:
            monitor.record_request("hard_failure")
        raise TransportError(title, f"Request failed: {e}") from e

    # Counted once the body is in, so a broken payload is only a hard failure
    if monitor:
        monitor.record_request(str(status))

    if status < 200 or status > 299:
        logger.warning(f"Request failed for article {title}, status {status}")
        raise UpstreamStatusError(title, status)

    try:
        # UnicodeDecodeError is a ValueError too
        payload = json.loads(body)
    except ValueError as e:
        raise MalformedResponseError(title, f"Malformed response: undecodable body ({e})") from e

    return parse_response(payload, title)


class WikiFetcher:
    """
    Fetches articles from a MediaWiki API over a shared aiohttp session.
    """

    def __init__(self, site_prefix: str, user_agent: str, request_timeout: int = 30,
                 max_connections: int = 100, api_host: str = DEFAULT_API_HOST,
                 monitor=None):
        self.site_prefix = site_prefix
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_connections = max_connections
        self.api_host = api_host
        self.monitor = monitor

        self.logger = logging.getLogger(__name__)

        # Session management
        self.session: Optional[ClientSession] = None
        self._owns_session = True

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0
        }

    @classmethod
    def with_session(cls, session, site_prefix: str, api_host: str = DEFAULT_API_HOST,
                     monitor=None) -> 'WikiFetcher':
        """Build a fetcher around an existing session, which the caller keeps ownership of."""
        fetcher = cls(site_prefix, user_agent="", api_host=api_host, monitor=monitor)
        fetcher.session = session
        fetcher._owns_session = False
        return fetcher

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=self.max_connections,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self._owns_session = True
            self.logger.info("WikiFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session and self._owns_session:
            await self.session.close()
            self.logger.info("WikiFetcher session closed")
        self.session = None

    async def fetch(self, title: str) -> Article:
        """
        Fetch a single article.

        Raises:
            FetchError: see fetch_article
        """
        if self.session is None:
            raise RuntimeError("WikiFetcher not started")

        self.stats['total_requests'] += 1
        try:
            article = await fetch_article(
                title, self.site_prefix, self.session,
                monitor=self.monitor, api_host=self.api_host
            )
        except FetchError:
            self.stats['failed_requests'] += 1
            raise

        self.stats['successful_requests'] += 1
        self.logger.debug(f"Fetched {title}: {len(article.linked_articles)} links")
        return article

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()
