"""
Typed decoding of MediaWiki `action=query` responses into articles.
"""

import logging
from typing import Any, Dict, List, Mapping
from dataclasses import dataclass, field

from .exceptions import MalformedLinkError, MalformedResponseError, NoPageError


logger = logging.getLogger(__name__)


@dataclass
class Article:
    """A MediaWiki article, either fully fetched or a bare link stub."""
    title: str
    description: str = ""
    missing: bool = False
    linked_articles: List['Article'] = field(default_factory=list)
    page_id: int = 0

    @property
    def linked_titles(self) -> List[str]:
        return [linked.title for linked in self.linked_articles]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'title': self.title,
            'description': self.description,
            'missing': self.missing,
            'linked_articles': self.linked_titles,
            'page_id': self.page_id
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Article':
        """Create Article from dictionary."""
        return cls(
            title=data['title'],
            description=data.get('description', ''),
            missing=data.get('missing', False),
            linked_articles=[cls(title=t) for t in data.get('linked_articles', [])],
            page_id=data.get('page_id', 0)
        )


@dataclass(frozen=True)
class ApiLink:
    """One entry of a page's `links` array."""
    title: str

    @classmethod
    def from_dict(cls, data: Any, article_title: str) -> 'ApiLink':
        if not isinstance(data, Mapping):
            raise MalformedLinkError(article_title, "Link entry is not an object")
        link_title = data.get('title')
        if not isinstance(link_title, str):
            raise MalformedLinkError(article_title, "Incorrect title in answer")
        return cls(title=link_title)


@dataclass(frozen=True)
class ApiPage:
    """One entry of `query.pages`."""
    page_id: int = 0
    missing: bool = False
    description: str = ""
    links: List[ApiLink] = field(default_factory=list)

    @staticmethod
    def _page_id(value: Any) -> int:
        # bool is an int subclass but never a page id
        if isinstance(value, bool):
            return 0
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return 0

    @classmethod
    def from_dict(cls, data: Any, article_title: str) -> 'ApiPage':
        if not isinstance(data, Mapping):
            raise MalformedResponseError(article_title, "Page entry is not an object")

        page_id = cls._page_id(data.get('pageid'))

        # The API may send garbage alongside the missing marker
        if 'missing' in data:
            return cls(missing=True)

        description = data.get('description')
        if not isinstance(description, str):
            description = ""

        raw_links = data.get('links')
        if raw_links is None:
            return cls(page_id=page_id, description=description)
        if not isinstance(raw_links, list):
            raise MalformedLinkError(article_title, "Links are not an array")

        links = [ApiLink.from_dict(entry, article_title) for entry in raw_links]
        return cls(page_id=page_id, description=description, links=links)


@dataclass(frozen=True)
class ApiResponse:
    """Top level `{query: {pages: {...}}}` document."""
    pages: Dict[str, Any]

    @classmethod
    def from_dict(cls, payload: Any, article_title: str) -> 'ApiResponse':
        if not isinstance(payload, Mapping):
            raise MalformedResponseError(article_title, "Malformed response")
        query = payload.get('query')
        if not isinstance(query, Mapping):
            raise MalformedResponseError(article_title, "Malformed response: no query")
        pages = query.get('pages')
        if not isinstance(pages, Mapping):
            raise MalformedResponseError(article_title, "Malformed response: no pages")
        return cls(pages=dict(pages))

    def first_page(self, article_title: str) -> ApiPage:
        """
        Decode the first page entry.

        A `titles=` query with a single title returns exactly one page, so
        anything after the first entry is ignored.
        """
        for entry in self.pages.values():
            return ApiPage.from_dict(entry, article_title)
        raise NoPageError(article_title, "No page in answer")


def parse_response(payload: Any, title: str) -> Article:
    """
    Decode a JSON-decoded API payload into an Article.

    Args:
        payload: Result of `json.loads` on the response body
        title: Title the request was made for

    Returns:
        The article, with `missing=True` and no other content when the wiki
        reports that the page does not exist

    Raises:
        MalformedResponseError, NoPageError, MalformedLinkError
    """
    page = ApiResponse.from_dict(payload, title).first_page(title)

    if page.missing:
        logger.debug(f"Article is missing: {title}")
        return Article(title=title, missing=True)

    return Article(
        title=title,
        description=page.description,
        missing=False,
        linked_articles=[Article(title=link.title) for link in page.links],
        page_id=page.page_id
    )
