"""
Crawler core components.
"""

from .url_frontier import URLFrontier
from .seen_set import SeenSet
from .fetcher import WikiFetcher, fetch_article, build_api_url
from .parser import Article, parse_response

__all__ = [
    'URLFrontier', 'SeenSet',
    'WikiFetcher', 'fetch_article', 'build_api_url',
    'Article', 'parse_response'
]
