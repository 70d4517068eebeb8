# crawl_planner/crawler/models.py
"""
Data models for the CrawlPlanner fetch layer.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Status and (possibly truncated) text of a single GET."""

    status: int
    text: str
    truncated: bool = False

    @property
    def ok(self) -> bool:
        return self.status < 400

    @property
    def auth_wall(self) -> bool:
        """401/403 – the response most protection layers answer with."""
        return self.status in (401, 403)
