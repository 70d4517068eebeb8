# File: crawl_planner/discovery.py
"""crawl_planner.discovery: Двухэтапное обнаружение страниц сайта (sitemap → homepage).

Состояния::

    TryingSitemap → TryingSitemapBypass → TryingHomepage → TryingHomepageBypass → Done

Движок всегда возвращает :class:`DiscoveryOutcome`: ошибки сети, таймауты и
ошибки разбора на любом этапе записываются в лог и считаются «этап ничего не
дал». Стена защиты (401/403 или сигнатура страницы платформы) – не ошибка, а
диагностика: ``blocked`` / ``blocked_reason``, причём первая стена побеждает.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence

from crawl_planner.crawler.bypass import BypassRules
from crawl_planner.crawler.fetcher import BoundedFetcher
from crawl_planner.crawler.models import FetchResult
from crawl_planner.crawler.protection import ProtectionSignature, default_signatures, is_protected
from crawl_planner.errors import Blocked, NetworkError
from crawl_planner.logger import get_logger
from crawl_planner.parser.html_parser import extract_links
from crawl_planner.parser.sitemap_parser import parse_sitemap
from crawl_planner.utils import NormalizedOrigin

__all__: Sequence[str] = (
    "DiscoveryStage",
    "DiscoveryOutcome",
    "DiscoveryEngine",
    "SYNTHETIC_PATHS",
    "synthetic_paths",
)

SYNTHETIC_PATHS: tuple[str, ...] = (
    "/",
    "/about",
    "/products",
    "/solutions",
    "/pricing",
    "/blog",
    "/docs",
    "/contact",
    "/careers",
)

log = get_logger("discovery")


class DiscoveryStage(str, Enum):
    SITEMAP = "TryingSitemap"
    SITEMAP_BYPASS = "TryingSitemapBypass"
    HOMEPAGE = "TryingHomepage"
    HOMEPAGE_BYPASS = "TryingHomepageBypass"
    DONE = "Done"


@dataclass(slots=True)
class DiscoveryOutcome:
    """Результат обнаружения для одного запроса."""

    discovered: List[str] = field(default_factory=list)
    source: str = "none"
    blocked: bool = False
    blocked_reason: Optional[str] = None
    used_bypass: bool = False
    walls: List[Blocked] = field(default_factory=list)

    def record_block(self, wall: Blocked) -> None:
        """Mark the run blocked; the first wall keeps the reported reason."""
        self.walls.append(wall)
        self.blocked = True
        if self.blocked_reason is None:
            self.blocked_reason = wall.reason

    def accept(self, urls: List[str], source: str) -> bool:
        if not urls:
            return False
        self.discovered = list(dict.fromkeys(urls))
        self.source = source
        return True

    @property
    def protection(self) -> dict[str, object]:
        return {
            "blocked": self.blocked,
            "blocked_reason": self.blocked_reason,
            "used_bypass_cookie": self.used_bypass,
        }


def synthetic_paths(origin: NormalizedOrigin) -> List[str]:
    """Fixed fallback candidates used when discovery yields nothing."""
    return [f"{origin.absolute}{path}" for path in SYNTHETIC_PATHS]


class DiscoveryEngine:
    """Оркестратор этапов обнаружения поверх :class:`BoundedFetcher`."""

    def __init__(
        self,
        fetcher: BoundedFetcher,
        rules: Optional[BypassRules] = None,
        *,
        signatures: Optional[Iterable[ProtectionSignature]] = None,
        sitemap_timeout: Optional[float] = None,
        homepage_timeout: Optional[float] = None,
        max_bytes: Optional[int] = None,
    ) -> None:
        self.fetcher = fetcher
        self.rules = rules if rules is not None else BypassRules()
        self.signatures: tuple[ProtectionSignature, ...] = (
            tuple(signatures) if signatures is not None else default_signatures()
        )
        self.sitemap_timeout = sitemap_timeout
        self.homepage_timeout = homepage_timeout
        self.max_bytes = max_bytes

    async def discover(self, origin: NormalizedOrigin) -> DiscoveryOutcome:
        """Run both stages for *origin*; never raises for network or parse failures."""
        outcome = DiscoveryOutcome()
        cookie = self.rules.cookie_for(origin.host)
        log.info("Discovery started: %s (bypass cookie %s)", origin.absolute, "yes" if cookie else "no")

        await self._run_stage(DiscoveryStage.SITEMAP, self._sitemap_stage, origin, cookie, outcome)
        if not outcome.discovered:
            await self._run_stage(DiscoveryStage.HOMEPAGE, self._homepage_stage, origin, cookie, outcome)

        log.info(
            "Discovery done: %s -> %d urls from %s%s",
            origin.absolute,
            len(outcome.discovered),
            outcome.source,
            f" (blocked: {outcome.blocked_reason})" if outcome.blocked else "",
        )
        return outcome

    # --------------------------------------------------------------------- #
    # Stages                                                                #
    # --------------------------------------------------------------------- #

    async def _run_stage(
        self,
        stage: DiscoveryStage,
        runner: Callable[..., Awaitable[None]],
        origin: NormalizedOrigin,
        cookie: Optional[str],
        outcome: DiscoveryOutcome,
    ) -> None:
        log.debug("%s: %s", stage.value, origin.absolute)
        try:
            await runner(origin, cookie, outcome)
        except NetworkError as exc:
            log.warning("%s failed, no result from this stage: %s", stage.value, exc)
        except Exception as exc:
            log.warning("%s failed unexpectedly, no result from this stage: %r", stage.value, exc)

    async def _sitemap_stage(
        self, origin: NormalizedOrigin, cookie: Optional[str], outcome: DiscoveryOutcome
    ) -> None:
        url = origin.join("sitemap.xml")
        first = await self._get(url, None, self.sitemap_timeout)

        if first.auth_wall:
            log.debug("%s: HTTP %s", DiscoveryStage.SITEMAP_BYPASS.value, first.status)
            if cookie is None:
                outcome.record_block(Blocked("sitemap", first.status))
                return
            outcome.used_bypass = True
            retry = await self._get(url, cookie, self.sitemap_timeout)
            if retry.ok:
                self._accept_sitemap(retry, origin, outcome)
            else:
                outcome.record_block(Blocked("sitemap", retry.status, used_bypass_cookie=True))
            return

        if first.ok:
            self._accept_sitemap(first, origin, outcome)
        else:
            log.debug("sitemap.xml unavailable: HTTP %s", first.status)

    async def _homepage_stage(
        self, origin: NormalizedOrigin, cookie: Optional[str], outcome: DiscoveryOutcome
    ) -> None:
        url = f"{origin.absolute}/"
        first = await self._get(url, None, self.homepage_timeout)

        if self._is_walled(first):
            log.debug("%s: HTTP %s", DiscoveryStage.HOMEPAGE_BYPASS.value, first.status)
            if cookie is None:
                outcome.record_block(Blocked("home", first.status))
                return
            outcome.used_bypass = True
            retry = await self._get(url, cookie, self.homepage_timeout)
            if retry.ok:
                self._accept_homepage(retry, origin, outcome)
            else:
                outcome.record_block(Blocked("home", retry.status, used_bypass_cookie=True))
            return

        if first.ok:
            self._accept_homepage(first, origin, outcome)
        else:
            log.debug("homepage unavailable: HTTP %s", first.status)

    # --------------------------------------------------------------------- #
    # Helpers                                                               #
    # --------------------------------------------------------------------- #

    async def _get(self, url: str, cookie: Optional[str], timeout: Optional[float]) -> FetchResult:
        headers = {"Cookie": cookie} if cookie else None
        return await self.fetcher.fetch(url, headers, timeout=timeout, max_bytes=self.max_bytes)

    def _is_walled(self, result: FetchResult) -> bool:
        return result.auth_wall or is_protected(result.text, self.signatures)

    @staticmethod
    def _accept_sitemap(result: FetchResult, origin: NormalizedOrigin, outcome: DiscoveryOutcome) -> None:
        locs = [u for u in parse_sitemap(result.text) if u.startswith(origin.absolute)]
        if outcome.accept(locs, "sitemap"):
            log.debug("%s: %d urls from sitemap.xml", DiscoveryStage.DONE.value, len(locs))
        else:
            log.debug("sitemap.xml has no usable <loc> for %s", origin.absolute)

    @staticmethod
    def _accept_homepage(result: FetchResult, origin: NormalizedOrigin, outcome: DiscoveryOutcome) -> None:
        links = extract_links(result.text, origin.absolute)
        if outcome.accept(links, "homepage"):
            log.debug("%s: %d links from homepage", DiscoveryStage.DONE.value, len(links))
        else:
            log.debug("homepage has no same-host links for %s", origin.absolute)
