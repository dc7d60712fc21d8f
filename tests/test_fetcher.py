import asyncio
from urllib.parse import parse_qs, urlparse

import aiohttp
import pytest

from wikidist.crawler.exceptions import (
    MalformedResponseError,
    NoPageError,
    TransportError,
    UpstreamStatusError,
)
from wikidist.crawler.fetcher import WikiFetcher, build_api_url, fetch_article
from wikidist.crawler.parser import Article

from .conftest import CAT_PAYLOAD, FakeResponse


def test_build_api_url():
    url = urlparse(build_api_url("Cat", "fr"))

    assert url.scheme == "https"
    assert url.netloc == "fr.wikipedia.org"
    assert url.path == "/w/api.php"
    assert parse_qs(url.query) == {
        "format": ["json"],
        "action": ["query"],
        "prop": ["links|description"],
        "pllimit": ["500"],
        "plnamespace": ["0"],
        "titles": ["Cat"],
    }


def test_build_api_url_encodes_title_and_host():
    url = urlparse(build_api_url("AT&T Park", "en", api_host="wiki.example.org"))

    assert url.netloc == "en.wiki.example.org"
    assert parse_qs(url.query)["titles"] == ["AT&T Park"]


@pytest.mark.asyncio
async def test_fetch_article_success(fake_session, monitor):
    session = fake_session({"Cat": (200, CAT_PAYLOAD)})

    article = await fetch_article("Cat", "en", session, monitor=monitor)

    assert article == Article(
        title="Cat",
        description="a feline",
        linked_articles=[Article(title="Animal"), Article(title="Mammal")],
        page_id=1,
    )
    assert len(session.calls) == 1
    assert monitor.get_value("wikidist_requests_total", {"state": "200"}) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [429, 500, 301, 199])
async def test_non_2xx_status(fake_session, monitor, status):
    session = fake_session({"Cat": (status, CAT_PAYLOAD)})

    with pytest.raises(UpstreamStatusError) as exc_info:
        await fetch_article("Cat", "en", session, monitor=monitor)

    assert exc_info.value.status == status
    assert len(session.calls) == 1
    assert monitor.get_value("wikidist_requests_total", {"state": str(status)}) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError(), OSError("dns")],
)
async def test_transport_failure(fake_session, monitor, error):
    session = fake_session({"Cat": error})

    with pytest.raises(TransportError):
        await fetch_article("Cat", "en", session, monitor=monitor)

    assert len(session.calls) == 1
    assert monitor.get_value("wikidist_requests_total", {"state": "hard_failure"}) == 1


@pytest.mark.asyncio
async def test_invalid_json_is_malformed(fake_session):
    session = fake_session({"Cat": (200, "<html>not json</html>")})

    with pytest.raises(MalformedResponseError):
        await fetch_article("Cat", "en", session)


@pytest.mark.asyncio
async def test_non_utf8_body_is_malformed(fake_session, monitor):
    session = fake_session({"Cat": (200, b'{"query": \xff}')})
    fetcher = WikiFetcher.with_session(session, "en", monitor=monitor)

    with pytest.raises(MalformedResponseError):
        await fetcher.fetch("Cat")

    assert fetcher.get_stats()["failed_requests"] == 1
    assert monitor.get_value("wikidist_requests_total", {"state": "200"}) == 1


@pytest.mark.asyncio
async def test_broken_payload_counts_only_as_hard_failure(fake_session, monitor):
    error = aiohttp.ClientPayloadError("connection dropped mid-body")
    session = fake_session({"Cat": FakeResponse(200, read_error=error)})

    with pytest.raises(TransportError):
        await fetch_article("Cat", "en", session, monitor=monitor)

    assert monitor.get_value("wikidist_requests_total", {"state": "hard_failure"}) == 1
    assert monitor.get_value("wikidist_requests_total", {"state": "200"}) == 0


@pytest.mark.asyncio
async def test_empty_pages_is_no_page(fake_session):
    session = fake_session({"Cat": (200, {"query": {"pages": {}}})})

    with pytest.raises(NoPageError):
        await fetch_article("Cat", "en", session)


@pytest.mark.asyncio
async def test_wiki_fetcher_counts_requests(fake_session, monitor):
    session = fake_session({"Cat": (200, CAT_PAYLOAD), "Dog": (503, {})})
    fetcher = WikiFetcher.with_session(session, "en", monitor=monitor)

    article = await fetcher.fetch("Cat")
    with pytest.raises(UpstreamStatusError):
        await fetcher.fetch("Dog")
    await fetcher.close()

    assert article.page_id == 1
    assert fetcher.get_stats() == {
        "total_requests": 2,
        "successful_requests": 1,
        "failed_requests": 1,
    }
    assert session.requested_titles == ["Cat", "Dog"]


@pytest.mark.asyncio
async def test_wiki_fetcher_requires_start():
    fetcher = WikiFetcher("en", user_agent="test")

    with pytest.raises(RuntimeError):
        await fetcher.fetch("Cat")
