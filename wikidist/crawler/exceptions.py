"""
Error taxonomy for fetching and decoding MediaWiki API responses.
"""

from typing import Optional


class FetchError(Exception):
    """Base class for every failure of a single article fetch."""

    error_type = "fetch_error"

    def __init__(self, title: str, message: str):
        super().__init__(f"{message} (article: {title!r})")
        self.title = title


class TransportError(FetchError):
    """Connection, DNS or timeout failure before any response was received."""

    error_type = "hard_failure"


class UpstreamStatusError(FetchError):
    """Non-2XX HTTP status, usually rate limiting."""

    error_type = "upstream_status"

    def __init__(self, title: str, status: int, message: Optional[str] = None):
        super().__init__(
            title,
            message or f"received non-2XX HTTP status code {status} (possibly rate limited?)"
        )
        self.status = status


class ResponseParseError(FetchError):
    """The response body could not be decoded into an article."""

    error_type = "parse_error"


class MalformedResponseError(ResponseParseError):
    """Missing `query` or `pages` object, or a body that is not JSON."""

    error_type = "malformed_response"


class NoPageError(ResponseParseError):
    """The `pages` object holds no entry at all."""

    error_type = "no_page"


class MalformedLinkError(ResponseParseError):
    """A link entry without a string title."""

    error_type = "malformed_link"
