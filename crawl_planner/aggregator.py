# File: crawl_planner/aggregator.py
"""crawl_planner.aggregator: Сборка профиля компании и итогового документа ответа."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, TypedDict

from crawl_planner.discovery import DiscoveryOutcome
from crawl_planner.ranking import CrawlPlanItem
from crawl_planner.utils import NormalizedOrigin

__all__ = ["CompanyInfo", "Profile", "BuildResult", "build_profile", "assemble_result"]


class CompanyInfo(TypedDict):
    """Кто это: имя, сайт, домен."""

    name: str
    website: str
    domain: str


class Profile(TypedDict):
    """Каркас профиля. Всё, кроме crawl_plan, пусто, но всегда присутствует."""

    company: CompanyInfo
    offerings: Dict[str, List[Any]]
    go_to_market: Dict[str, Any]
    public_pricing: List[Any]
    voice_and_tone: Dict[str, List[Any]]
    proof_points: Dict[str, List[Any]]
    industry_context: Dict[str, List[Any]]
    crawl_plan: List[Dict[str, str]]


def build_profile(
    origin: NormalizedOrigin,
    crawl_plan: Sequence[CrawlPlanItem],
    company_name: Optional[str] = None,
) -> Profile:
    """Оборачивает crawl_plan в профиль фиксированной формы."""
    return {
        "company": {
            "name": company_name or origin.host,
            "website": origin.absolute,
            "domain": origin.host,
        },
        "offerings": {"products": [], "services": [], "integrations": [], "differentiators": []},
        "go_to_market": {
            "ideal_customer_profile": {},
            "value_props": [],
            "common_use_cases": [],
            "sales_motions": [],
        },
        "public_pricing": [],
        "voice_and_tone": {
            "brand_keywords": [],
            "sample_headlines": [],
            "messaging_do": [],
            "messaging_dont": [],
        },
        "proof_points": {"customers": [], "case_studies": [], "metrics": []},
        "industry_context": {
            "competitors": [],
            "category_terms": [],
            "best_practices": [],
            "risks": [],
            "opportunities": [],
        },
        "crawl_plan": [item.to_dict() for item in crawl_plan],
    }


@dataclass(slots=True)
class BuildResult:
    """Результат одного запуска: профиль плюс метаданные обнаружения."""

    tenant_id: str
    origin: NormalizedOrigin
    profile: Profile
    source: str = "none"
    blocked: bool = False
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    kb_records_count: int = 0

    @property
    def crawl_plan(self) -> List[Dict[str, str]]:
        return self.profile["crawl_plan"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "tenant_id": self.tenant_id,
            "company_url": self.origin.absolute,
            "domain": self.origin.host,
            "kb_records_count": self.kb_records_count,
            "profile": self.profile,
            "flags": {"demo": True, "source": self.source, "blocked": self.blocked},
            "diagnostics": self.diagnostics,
        }

    def json(self, *, pretty: bool = False) -> str:
        """JSON-представление ответа."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def assemble_result(
    tenant_id: str,
    origin: NormalizedOrigin,
    outcome: DiscoveryOutcome,
    crawl_plan: Sequence[CrawlPlanItem],
    company_name: Optional[str] = None,
) -> BuildResult:
    """Собирает BuildResult; diagnostics.protection появляется только при блокировке."""
    diagnostics: Dict[str, Any] = {}
    if outcome.blocked:
        diagnostics["protection"] = outcome.protection
    return BuildResult(
        tenant_id=tenant_id,
        origin=origin,
        profile=build_profile(origin, crawl_plan, company_name),
        source=outcome.source,
        blocked=outcome.blocked,
        diagnostics=diagnostics,
    )
