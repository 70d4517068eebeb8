"""crawl_planner.crawler: сетевой слой (ограниченный fetcher, правила обхода защиты)."""

from .bypass import BypassRule, BypassRules, build_bypass_cookie
from .fetcher import BoundedFetcher
from .models import FetchResult
from .protection import looks_like_vercel_protection, register_protection_signature

__all__ = [
    "BoundedFetcher",
    "BypassRule",
    "BypassRules",
    "FetchResult",
    "build_bypass_cookie",
    "looks_like_vercel_protection",
    "register_protection_signature",
]
