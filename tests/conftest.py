# File: tests/conftest.py
from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Mapping
from typing import Union

import pytest
from aiohttp import web

from crawl_planner.crawler.models import FetchResult
from crawl_planner.errors import NetworkError
from crawl_planner.utils import NormalizedOrigin

Route = Union[FetchResult, Exception, Callable[[Mapping[str, str]], FetchResult]]


class StubFetcher:
    """
    In-memory stand-in for BoundedFetcher.
    Unknown URLs behave like an unreachable host (NetworkError).
    """

    def __init__(self, routes: dict[str, Route]) -> None:
        self.routes = routes
        self.calls: list[tuple[str, dict[str, str]]] = []

    async def __aenter__(self) -> "StubFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def fetch(self, url, headers=None, *, timeout=None, max_bytes=None) -> FetchResult:
        sent = dict(headers or {})
        self.calls.append((url, sent))
        route = self.routes.get(url)
        if route is None:
            raise NetworkError(url, "unreachable")
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(sent)
        return route

    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]


@pytest.fixture()
def acme() -> NormalizedOrigin:
    return NormalizedOrigin(absolute="https://acme.io", host="acme.io")


@pytest.fixture()
def stub_fetcher() -> Callable[[dict[str, Route]], StubFetcher]:
    return StubFetcher


async def serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        await runner.cleanup()
