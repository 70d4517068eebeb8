# File: tests/test_discovery.py
# Discovery state machine: stub fetcher for the branches, a real aiohttp site for the wiring.
from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import web

from conftest import StubFetcher, serve_app
from crawl_planner.crawler.bypass import BypassRules
from crawl_planner.crawler.fetcher import BoundedFetcher
from crawl_planner.crawler.models import FetchResult
from crawl_planner.discovery import DiscoveryEngine, synthetic_paths
from crawl_planner.errors import FetchTimeout, NetworkError
from crawl_planner.utils import normalize_origin

SITEMAP = "<urlset><url><loc>https://acme.io/pricing</loc></url><url><loc>https://acme.io/careers</loc></url></urlset>"
HOME = '<a href="/about">About</a><a href="/pricing">Pricing</a><a href="https://elsewhere.com/">x</a>'
VERCEL_WALL = "<title>Authentication Required</title> Vercel Authentication"
TOKEN_COOKIE = "vercel-protection-bypass=T; vercel-protection-bypass-s=1"

SITEMAP_URL = "https://acme.io/sitemap.xml"
HOME_URL = "https://acme.io/"


def with_cookie(ok: FetchResult, denied: FetchResult):
    def route(headers):
        return ok if headers.get("Cookie") == TOKEN_COOKIE else denied

    return route


def token_rules() -> BypassRules:
    return BypassRules.from_mapping({"*.io": {"token": "T"}})


@pytest.mark.asyncio()
async def test_sitemap_success(acme):
    fetcher = StubFetcher({SITEMAP_URL: FetchResult(200, SITEMAP)})
    outcome = await DiscoveryEngine(fetcher).discover(acme)

    assert outcome.discovered == ["https://acme.io/pricing", "https://acme.io/careers"]
    assert outcome.source == "sitemap"
    assert not outcome.blocked
    assert fetcher.urls() == [SITEMAP_URL]


@pytest.mark.asyncio()
async def test_sitemap_locs_filtered_to_origin(acme):
    xml = "<loc>https://cdn.other.com/a</loc><loc>https://acme.io/about</loc><loc>http://acme.io/x</loc>"
    fetcher = StubFetcher({SITEMAP_URL: FetchResult(200, xml)})
    outcome = await DiscoveryEngine(fetcher).discover(acme)
    assert outcome.discovered == ["https://acme.io/about"]


@pytest.mark.asyncio()
async def test_sitemap_without_usable_locs_falls_back_to_homepage(acme):
    fetcher = StubFetcher(
        {
            SITEMAP_URL: FetchResult(200, "<loc>https://other.com/</loc>"),
            HOME_URL: FetchResult(200, HOME),
        }
    )
    outcome = await DiscoveryEngine(fetcher).discover(acme)
    assert outcome.source == "homepage"
    assert outcome.discovered == ["https://acme.io/about", "https://acme.io/pricing"]


@pytest.mark.asyncio()
async def test_sitemap_404_is_not_a_block(acme):
    fetcher = StubFetcher({SITEMAP_URL: FetchResult(404, "missing"), HOME_URL: FetchResult(200, HOME)})
    outcome = await DiscoveryEngine(fetcher).discover(acme)
    assert outcome.source == "homepage"
    assert not outcome.blocked
    assert outcome.blocked_reason is None


@pytest.mark.asyncio()
async def test_both_stages_fail_on_network(acme):
    fetcher = StubFetcher(
        {SITEMAP_URL: NetworkError(SITEMAP_URL, "dns"), HOME_URL: FetchTimeout(HOME_URL, 7.0)}
    )
    outcome = await DiscoveryEngine(fetcher).discover(acme)
    assert outcome.discovered == []
    assert outcome.source == "none"
    assert not outcome.blocked
    assert fetcher.urls() == [SITEMAP_URL, HOME_URL]


@pytest.mark.asyncio()
async def test_unexpected_exception_is_swallowed(acme):
    def explode(_headers):
        raise KeyError("boom")

    fetcher = StubFetcher({SITEMAP_URL: explode, HOME_URL: FetchResult(200, HOME)})
    outcome = await DiscoveryEngine(fetcher).discover(acme)
    assert outcome.source == "homepage"


@pytest.mark.asyncio()
async def test_blocked_without_bypass_first_blocker_wins(acme):
    fetcher = StubFetcher({SITEMAP_URL: FetchResult(403, ""), HOME_URL: FetchResult(403, "")})
    outcome = await DiscoveryEngine(fetcher, BypassRules()).discover(acme)

    assert outcome.blocked
    assert outcome.blocked_reason == "sitemap_403"
    assert outcome.used_bypass is False
    assert [w.reason for w in outcome.walls] == ["sitemap_403", "home_403"]
    assert outcome.protection == {
        "blocked": True,
        "blocked_reason": "sitemap_403",
        "used_bypass_cookie": False,
    }
    assert all(headers == {} for _, headers in fetcher.calls)


@pytest.mark.asyncio()
async def test_sitemap_bypass_retry_succeeds(acme):
    fetcher = StubFetcher(
        {SITEMAP_URL: with_cookie(FetchResult(200, SITEMAP), FetchResult(401, "login"))}
    )
    outcome = await DiscoveryEngine(fetcher, token_rules()).discover(acme)

    assert outcome.source == "sitemap"
    assert outcome.used_bypass
    assert not outcome.blocked
    assert fetcher.calls == [(SITEMAP_URL, {}), (SITEMAP_URL, {"Cookie": TOKEN_COOKIE})]


@pytest.mark.asyncio()
async def test_sitemap_bypass_retry_fails_reports_retry_status(acme):
    fetcher = StubFetcher(
        {
            SITEMAP_URL: with_cookie(FetchResult(429, ""), FetchResult(403, "")),
            HOME_URL: FetchResult(200, HOME),
        }
    )
    outcome = await DiscoveryEngine(fetcher, token_rules()).discover(acme)

    assert outcome.blocked
    assert outcome.blocked_reason == "sitemap_429"
    assert outcome.source == "homepage"
    assert outcome.discovered == ["https://acme.io/about", "https://acme.io/pricing"]


@pytest.mark.asyncio()
async def test_homepage_content_signature_triggers_bypass(acme):
    fetcher = StubFetcher(
        {
            SITEMAP_URL: FetchResult(404, ""),
            HOME_URL: with_cookie(FetchResult(200, HOME), FetchResult(200, VERCEL_WALL)),
        }
    )
    outcome = await DiscoveryEngine(fetcher, token_rules()).discover(acme)

    assert outcome.source == "homepage"
    assert outcome.used_bypass
    assert not outcome.blocked
    assert fetcher.calls[-1] == (HOME_URL, {"Cookie": TOKEN_COOKIE})


@pytest.mark.asyncio()
async def test_homepage_signature_without_rule_is_blocked(acme):
    fetcher = StubFetcher({SITEMAP_URL: FetchResult(404, ""), HOME_URL: FetchResult(200, VERCEL_WALL)})
    outcome = await DiscoveryEngine(fetcher).discover(acme)
    assert outcome.blocked
    assert outcome.blocked_reason == "home_200"
    assert outcome.discovered == []


@pytest.mark.asyncio()
async def test_homepage_bypass_failure_keeps_sitemap_reason(acme):
    fetcher = StubFetcher(
        {
            SITEMAP_URL: with_cookie(FetchResult(403, ""), FetchResult(403, "")),
            HOME_URL: with_cookie(FetchResult(401, ""), FetchResult(403, "")),
        }
    )
    outcome = await DiscoveryEngine(fetcher, token_rules()).discover(acme)
    assert outcome.blocked_reason == "sitemap_403"
    assert [w.reason for w in outcome.walls] == ["sitemap_403", "home_401"]
    assert outcome.used_bypass


@pytest.mark.asyncio()
async def test_homepage_bypass_failure_reports_home_retry_status(acme):
    fetcher = StubFetcher(
        {
            SITEMAP_URL: FetchResult(404, ""),
            HOME_URL: with_cookie(FetchResult(503, ""), FetchResult(403, "")),
        }
    )
    outcome = await DiscoveryEngine(fetcher, token_rules()).discover(acme)

    assert outcome.blocked
    assert outcome.blocked_reason == "home_503"
    assert [w.reason for w in outcome.walls] == ["home_503"]
    assert outcome.walls[0].used_bypass_cookie
    assert outcome.used_bypass
    assert outcome.source == "none"
    assert fetcher.calls == [(SITEMAP_URL, {}), (HOME_URL, {}), (HOME_URL, {"Cookie": TOKEN_COOKIE})]


@pytest.mark.asyncio()
async def test_available_cookie_unused_when_no_wall(acme):
    fetcher = StubFetcher({SITEMAP_URL: FetchResult(200, SITEMAP)})
    outcome = await DiscoveryEngine(fetcher, token_rules()).discover(acme)

    assert outcome.source == "sitemap"
    assert outcome.used_bypass is False
    assert outcome.protection["used_bypass_cookie"] is False
    assert fetcher.calls == [(SITEMAP_URL, {})]


@pytest.mark.asyncio()
async def test_custom_signatures_replace_defaults(acme):
    fetcher = StubFetcher(
        {SITEMAP_URL: FetchResult(404, ""), HOME_URL: FetchResult(200, "<div id=challenge></div>" + HOME)}
    )
    engine = DiscoveryEngine(fetcher, signatures=[lambda text: "id=challenge" in text])
    outcome = await engine.discover(acme)
    assert outcome.blocked_reason == "home_200"


def test_synthetic_paths(acme):
    assert synthetic_paths(acme) == [
        "https://acme.io/",
        "https://acme.io/about",
        "https://acme.io/products",
        "https://acme.io/solutions",
        "https://acme.io/pricing",
        "https://acme.io/blog",
        "https://acme.io/docs",
        "https://acme.io/contact",
        "https://acme.io/careers",
    ]


# --------------------------------------------------------------------------- #
#                         Real HTTP: protected site                           #
# --------------------------------------------------------------------------- #


@pytest_asyncio.fixture
async def protected_site(unused_tcp_port: int) -> AsyncIterator[str]:
    app = web.Application()
    base = f"http://127.0.0.1:{unused_tcp_port}"

    def allowed(request) -> bool:
        return "vercel-protection-bypass=T" in request.headers.get("Cookie", "")

    async def sitemap(request):
        if not allowed(request):
            return web.Response(status=403, text="forbidden")
        return web.Response(
            text=f"<urlset><url><loc>{base}/about</loc></url><url><loc>{base}/blog</loc></url></urlset>",
            content_type="application/xml",
        )

    async def home(_):
        return web.Response(text=VERCEL_WALL, content_type="text/html")

    app.router.add_get("/sitemap.xml", sitemap)
    app.router.add_get("/", home)

    async for url in serve_app(app, unused_tcp_port):
        yield url


@pytest.mark.asyncio()
async def test_real_site_with_bypass(protected_site: str):
    origin = normalize_origin(protected_site, force_https=False)
    async with BoundedFetcher(timeout=2.0) as fetcher:
        outcome = await DiscoveryEngine(fetcher, BypassRules.from_mapping({"*": {"token": "T"}})).discover(origin)
    assert outcome.source == "sitemap"
    assert outcome.discovered == [f"{protected_site}/about", f"{protected_site}/blog"]


@pytest.mark.asyncio()
async def test_real_site_without_bypass(protected_site: str):
    origin = normalize_origin(protected_site, force_https=False)
    async with BoundedFetcher(timeout=2.0) as fetcher:
        outcome = await DiscoveryEngine(fetcher).discover(origin)
    assert outcome.source == "none"
    assert outcome.blocked_reason == "sitemap_403"
    assert [w.reason for w in outcome.walls] == ["sitemap_403", "home_200"]
