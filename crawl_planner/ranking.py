# File: crawl_planner/ranking.py
"""crawl_planner.ranking: Оценка и отбор top-K URL для плана обхода.

Оценка и метка причины – два независимых набора правил с разным порядком
приоритетов; совпадение весов и порядка меток не требуется.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Iterable, List, Pattern, Sequence, Tuple

from crawl_planner.utils import remove_duplicates

__all__: Sequence[str] = (
    "CrawlPlanItem",
    "DEFAULT_TOP_K",
    "score_url",
    "reason_for",
    "rank_urls",
    "rank_top_k",
)

DEFAULT_TOP_K = 20

# (pattern, weight); every match adds up
_SCORE_RULES: Tuple[Tuple[Pattern[str], int], ...] = (
    (re.compile(r"/$|index\.html?$"), 10),
    (re.compile(r"about"), 8),
    (re.compile(r"product|solutions"), 8),
    (re.compile(r"pricing"), 7),
    (re.compile(r"blog|news|stories"), 5),
    (re.compile(r"docs|help|support"), 5),
    (re.compile(r"contact"), 4),
    (re.compile(r"careers|jobs"), 2),
)

# first match wins
_REASON_RULES: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"about"), "about"),
    (re.compile(r"pricing"), "pricing"),
    (re.compile(r"product|solutions"), "products/solutions"),
    (re.compile(r"blog|news|stories"), "blog/news"),
    (re.compile(r"docs|help|support"), "docs/help"),
    (re.compile(r"careers|jobs"), "careers"),
    (re.compile(r"contact"), "contact"),
    (re.compile(r"/$"), "homepage"),
)


@dataclass(frozen=True, slots=True)
class CrawlPlanItem:
    """Один пункт плана обхода."""

    url: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def score_url(url: str) -> int:
    s = url.lower()
    return sum(weight for pattern, weight in _SCORE_RULES if pattern.search(s))


def reason_for(url: str) -> str:
    s = url.lower()
    for pattern, reason in _REASON_RULES:
        if pattern.search(s):
            return reason
    return "page"


def rank_urls(urls: Iterable[str], k: int = DEFAULT_TOP_K) -> List[str]:
    """Dedup (first occurrence), stable sort by descending score, keep the top *k*."""
    if k < 0:
        raise ValueError("k must be >= 0")
    unique = remove_duplicates(list(urls))
    # sorted() is stable: equal scores keep input order
    return sorted(unique, key=score_url, reverse=True)[:k]


def rank_top_k(urls: Iterable[str], k: int = DEFAULT_TOP_K) -> List[CrawlPlanItem]:
    """Ranked plan with a reason tag per URL."""
    return [CrawlPlanItem(url=u, reason=reason_for(u)) for u in rank_urls(urls, k)]
