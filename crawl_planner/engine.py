# File: crawl_planner/engine.py
"""crawl_planner.engine: Orchestration layer – нормализация, обнаружение, ранжирование, сборка профиля."""

from __future__ import annotations

import asyncio
import string
import time
from typing import Any, Iterable, Mapping, Optional

from aiohttp import ClientSession

from crawl_planner.aggregator import BuildResult, assemble_result
from crawl_planner.config import PlannerConfig, load_config
from crawl_planner.crawler.bypass import BypassRules
from crawl_planner.crawler.fetcher import BoundedFetcher
from crawl_planner.crawler.protection import ProtectionSignature
from crawl_planner.discovery import DiscoveryEngine, DiscoveryOutcome, synthetic_paths
from crawl_planner.logger import logger
from crawl_planner.ranking import rank_top_k
from crawl_planner.utils import NormalizedOrigin, normalize_origin

__all__ = [
    "Engine",
    "build_plan",
    "extract_company_url",
    "extract_company_name",
    "make_tenant_id",
]

_URL_ALIASES = ("website", "company_url", "company.url", "url")
_B36 = string.digits + string.ascii_lowercase


def _lookup(payload: Mapping[str, Any], dotted: str) -> Any:
    value: Any = payload
    for key in dotted.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def extract_company_url(payload: Mapping[str, Any]) -> Any:
    """First non-empty of ``website``, ``company_url``, ``company.url``, ``url``."""
    for alias in _URL_ALIASES:
        value = _lookup(payload, alias)
        if value:
            return value
    return None


def extract_company_name(payload: Mapping[str, Any]) -> Optional[str]:
    name = payload.get("company_name") or _lookup(payload, "company.name")
    return str(name) if name else None


def _base36(number: int) -> str:
    if number <= 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_B36[rem])
    return "".join(reversed(digits))


def make_tenant_id(host: str, now: Optional[float] = None) -> str:
    """``tenant_<host with underscores>_<base36 ms timestamp>``."""
    millis = int((time.time() if now is None else now) * 1000)
    return f"tenant_{host.replace('.', '_').replace(':', '_')}_{_base36(millis)}"


class Engine:
    """Фасад для CLI, HTTP-сервера и тестов: один запуск = один план обхода."""

    @staticmethod
    def load_config(path: Optional[str]) -> PlannerConfig:
        """Загружает конфиг из YAML/JSON или использует значения по умолчанию."""
        return load_config(path)

    def __init__(
        self,
        config: Optional[PlannerConfig] = None,
        rules: Optional[BypassRules] = None,
        signatures: Optional[Iterable[ProtectionSignature]] = None,
    ) -> None:
        self.config = config or PlannerConfig()
        self.rules = rules if rules is not None else self.config.resolve_bypass_rules()
        self.signatures = tuple(signatures) if signatures is not None else None

    def normalize(self, raw_url: Any) -> NormalizedOrigin:
        """Raises InvalidInput; the pipeline never starts for a bad URL."""
        return normalize_origin(raw_url, force_https=self.config.force_https)

    async def discover(
        self, origin: NormalizedOrigin, session: Optional[ClientSession] = None
    ) -> DiscoveryOutcome:
        async with BoundedFetcher(
            session,
            user_agent=self.config.user_agent,
            max_bytes=self.config.max_bytes,
        ) as fetcher:
            discovery = DiscoveryEngine(
                fetcher,
                self.rules,
                signatures=self.signatures,
                sitemap_timeout=self.config.sitemap_timeout,
                homepage_timeout=self.config.homepage_timeout,
                max_bytes=self.config.max_bytes,
            )
            return await discovery.discover(origin)

    async def build(
        self,
        raw_url: Any,
        *,
        tenant_id: Optional[str] = None,
        company_name: Optional[str] = None,
        session: Optional[ClientSession] = None,
    ) -> BuildResult:
        """Полный конвейер для одного URL компании."""
        origin = self.normalize(raw_url)
        tenant = tenant_id or make_tenant_id(origin.host)
        logger.info("Building crawl plan for %s (tenant %s)", origin.absolute, tenant)

        outcome = await self.discover(origin, session)
        candidates = outcome.discovered or synthetic_paths(origin)
        plan = rank_top_k(candidates, self.config.top_k)

        result = assemble_result(tenant, origin, outcome, plan, company_name)
        logger.info(
            "Crawl plan ready: %d items, source=%s, blocked=%s",
            len(plan),
            result.source,
            result.blocked,
        )
        return result

    async def build_from_payload(
        self, payload: Mapping[str, Any], session: Optional[ClientSession] = None
    ) -> BuildResult:
        """Принимает тело запроса с любым из алиасов URL."""
        tenant_id = payload.get("tenant_id")
        return await self.build(
            extract_company_url(payload),
            tenant_id=str(tenant_id) if tenant_id else None,
            company_name=extract_company_name(payload),
            session=session,
        )

    def run(self, raw_url: Any, **kwargs: Any) -> BuildResult:
        """Синхронная обёртка над :meth:`build`."""
        try:
            return asyncio.run(self.build(raw_url, **kwargs))
        except Exception as exc:
            logger.error("Crawl planning failed: %s", exc)
            raise


async def build_plan(
    raw_url: Any,
    config: Optional[PlannerConfig] = None,
    *,
    tenant_id: Optional[str] = None,
    company_name: Optional[str] = None,
) -> BuildResult:
    """Shortcut used by the CLI: one Engine, one run."""
    return await Engine(config).build(raw_url, tenant_id=tenant_id, company_name=company_name)
