# crawl_planner/crawler/protection.py
"""
Content signatures of hosting-platform protection pages.

A signature is any ``Callable[[str], bool]`` that receives the response text.
The discovery engine runs every registered signature against the homepage, so
new walls are added here (or passed to the engine) without touching its
state machine.
"""
from __future__ import annotations

from typing import Callable, Iterable, List, Tuple

ProtectionSignature = Callable[[str], bool]

__all__ = [
    "ProtectionSignature",
    "looks_like_vercel_protection",
    "register_protection_signature",
    "default_signatures",
    "is_protected",
]


def looks_like_vercel_protection(html: str) -> bool:
    """Vercel deployment protection: "Authentication Required" page branded Vercel."""
    s = (html or "").lower()
    return "authentication required" in s and "vercel" in s


_REGISTRY: List[ProtectionSignature] = [looks_like_vercel_protection]


def register_protection_signature(signature: ProtectionSignature) -> ProtectionSignature:
    """Add *signature* to the default set. Usable as a decorator."""
    if signature not in _REGISTRY:
        _REGISTRY.append(signature)
    return signature


def default_signatures() -> Tuple[ProtectionSignature, ...]:
    return tuple(_REGISTRY)


def is_protected(text: str, signatures: Iterable[ProtectionSignature]) -> bool:
    return any(sig(text) for sig in signatures)
