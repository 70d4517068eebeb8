# File: tests/test_fetcher.py
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import web

from conftest import serve_app
from crawl_planner.crawler.fetcher import BoundedFetcher
from crawl_planner.errors import FetchTimeout, NetworkError

BIG = "x" * 100_000


@pytest_asyncio.fixture
async def site(unused_tcp_port: int) -> AsyncIterator[str]:
    app = web.Application()

    async def ok(_):
        return web.Response(text="<h1>hello</h1>", content_type="text/html")

    async def forbidden(_):
        return web.Response(text="nope", status=403)

    async def big(_):
        return web.Response(text=BIG, content_type="text/plain")

    async def slow(_):
        await asyncio.sleep(2)
        return web.Response(text="late")

    async def echo_cookie(request):
        return web.Response(text=request.headers.get("Cookie", "-"))

    async def echo_ua(request):
        return web.Response(text=request.headers.get("User-Agent", "-"))

    async def redirect(_):
        raise web.HTTPFound("/ok")

    app.router.add_get("/ok", ok)
    app.router.add_get("/forbidden", forbidden)
    app.router.add_get("/big", big)
    app.router.add_get("/slow", slow)
    app.router.add_get("/cookie", echo_cookie)
    app.router.add_get("/ua", echo_ua)
    app.router.add_get("/redirect", redirect)

    async for url in serve_app(app, unused_tcp_port):
        yield url


@pytest.mark.asyncio()
async def test_fetch_ok(site: str):
    async with BoundedFetcher() as fetcher:
        result = await fetcher.fetch(f"{site}/ok")
    assert result.status == 200
    assert result.text == "<h1>hello</h1>"
    assert not result.truncated


@pytest.mark.asyncio()
async def test_non_2xx_is_returned_not_raised(site: str):
    async with BoundedFetcher() as fetcher:
        result = await fetcher.fetch(f"{site}/forbidden")
    assert (result.status, result.text) == (403, "nope")
    assert result.auth_wall and not result.ok


@pytest.mark.asyncio()
async def test_follows_redirects(site: str):
    async with BoundedFetcher() as fetcher:
        result = await fetcher.fetch(f"{site}/redirect")
    assert result.status == 200
    assert "hello" in result.text


@pytest.mark.asyncio()
async def test_byte_budget_truncates(site: str):
    async with BoundedFetcher(chunk_size=1024) as fetcher:
        result = await fetcher.fetch(f"{site}/big", max_bytes=10_000)
    assert result.status == 200
    assert result.truncated
    assert 0 < len(result.text) <= 10_000


@pytest.mark.asyncio()
async def test_body_under_budget_is_complete(site: str):
    async with BoundedFetcher() as fetcher:
        result = await fetcher.fetch(f"{site}/big", max_bytes=200_000)
    assert result.text == BIG
    assert not result.truncated


@pytest.mark.asyncio()
async def test_timeout_raises_fetch_timeout(site: str):
    async with BoundedFetcher() as fetcher:
        with pytest.raises(FetchTimeout) as info:
            await fetcher.fetch(f"{site}/slow", timeout=0.3)
    assert info.value.timeout == 0.3
    assert isinstance(info.value, NetworkError)


@pytest.mark.asyncio()
async def test_connection_refused_raises_network_error(unused_tcp_port: int):
    async with BoundedFetcher(timeout=2.0) as fetcher:
        with pytest.raises(NetworkError):
            await fetcher.fetch(f"http://127.0.0.1:{unused_tcp_port}/")


@pytest.mark.asyncio()
async def test_extra_headers_and_user_agent(site: str):
    async with BoundedFetcher(user_agent="PlannerTest/1.0") as fetcher:
        cookie = await fetcher.fetch(f"{site}/cookie", {"Cookie": "a=1; b=2"})
        ua = await fetcher.fetch(f"{site}/ua")
    assert cookie.text == "a=1; b=2"
    assert ua.text == "PlannerTest/1.0"


@pytest.mark.asyncio()
async def test_fetch_requires_session():
    fetcher = BoundedFetcher()
    with pytest.raises(RuntimeError):
        await fetcher.fetch("http://127.0.0.1/")


@pytest.mark.asyncio()
async def test_read_after_session_released_raises():
    async with BoundedFetcher() as fetcher:
        pass
    with pytest.raises(RuntimeError):
        await fetcher._get("http://127.0.0.1/", None, 1.0, 1024)


@pytest.mark.parametrize("kwargs", [{"timeout": 0}, {"max_bytes": 0}])
def test_invalid_limits(kwargs):
    with pytest.raises(ValueError):
        BoundedFetcher(**kwargs)
