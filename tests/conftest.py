"""Shared fixtures: a scripted stand-in for the aiohttp session and small configs."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Tuple, Union
from urllib.parse import parse_qs, urlparse

import pytest

from wikidist.storage.database import MemoryStore
from wikidist.utils.config import Config, ConfigManager
from wikidist.utils.monitoring import CrawlerMonitor


CAT_PAYLOAD = {
    "query": {
        "pages": {
            "1": {
                "pageid": 1,
                "description": "a feline",
                "links": [{"title": "Animal"}, {"title": "Mammal"}],
            }
        }
    }
}

MISSING_PAYLOAD = {"query": {"pages": {"-1": {"missing": ""}}}}


class FakeResponse:
    def __init__(self, status: int, body: bytes = b"",
                 read_error: BaseException | None = None) -> None:
        self.status = status
        self._body = body
        self.read_error = read_error

    async def read(self) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        return self._body


class _RequestContext:
    def __init__(self, outcome: Union[FakeResponse, BaseException]) -> None:
        self.outcome = outcome

    async def __aenter__(self) -> FakeResponse:
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


Scripted = Union[Tuple[int, Any], FakeResponse, BaseException]


class FakeSession:
    """Answers `get(url)` from a title -> (status, payload) table."""

    def __init__(self, responses: Dict[str, Scripted] | None = None,
                 default: Scripted | None = None) -> None:
        self.responses = responses or {}
        self.default = default if default is not None else (200, MISSING_PAYLOAD)
        self.calls: List[str] = []

    @staticmethod
    def title_of(url: str) -> str:
        return parse_qs(urlparse(url).query)["titles"][0]

    def get(self, url: str) -> _RequestContext:
        self.calls.append(url)
        scripted = self.responses.get(self.title_of(url), self.default)
        if isinstance(scripted, (FakeResponse, BaseException)):
            return _RequestContext(scripted)
        status, payload = scripted
        if isinstance(payload, bytes):
            body = payload
        elif isinstance(payload, str):
            body = payload.encode("utf-8")
        else:
            body = json.dumps(payload).encode("utf-8")
        return _RequestContext(FakeResponse(status, body))

    @property
    def requested_titles(self) -> List[str]:
        return [self.title_of(url) for url in self.calls]


@pytest.fixture
def fake_session() -> Callable[..., FakeSession]:
    def _builder(responses: Dict[str, Scripted] | None = None,
                 default: Scripted | None = None) -> FakeSession:
        return FakeSession(responses, default)

    return _builder


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def monitor() -> CrawlerMonitor:
    return CrawlerMonitor()


@pytest.fixture
def make_config() -> Callable[..., Config]:
    def _builder(**crawler_overrides: Any) -> Config:
        crawler = {"workers": 1, "start_url": "Cat", "site_prefix": "en"}
        crawler.update(crawler_overrides)
        return ConfigManager.from_dict({"crawler": crawler, "store": {"type": "memory"}})

    return _builder
