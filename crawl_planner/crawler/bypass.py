# File: crawl_planner/crawler/bypass.py
"""crawl_planner.crawler.bypass: Правила обхода стен защиты (cookie / token) по хосту.

Таблица правил приходит одной JSON-строкой из окружения::

    RESEARCH_BYPASS_RULES='{"*.example.com": {"token": "T"}, "*": {"cookie": "a=b"}}'

Кривая или отсутствующая конфигурация даёт пустую таблицу, а не ошибку.
"""

from __future__ import annotations

import json
import os
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from crawl_planner.logger import get_logger

__all__ = [
    "BYPASS_ENV_VAR",
    "BypassRule",
    "BypassRules",
    "build_bypass_cookie",
]

BYPASS_ENV_VAR = "RESEARCH_BYPASS_RULES"
# Vercel deployment-protection bypass cookie pair
BYPASS_COOKIE_NAME = "vercel-protection-bypass"

log = get_logger("bypass")


class BypassRule(BaseModel):
    """Одно правило обхода: готовая строка cookie или токен платформы."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    cookie: Optional[str] = None
    token: Optional[str] = None

    def masked(self) -> dict[str, Optional[str]]:
        """Representation safe to print (`config` command, logs)."""
        return {
            "cookie": "***" if self.cookie else None,
            "token": "***" if self.token else None,
        }


def build_bypass_cookie(rule: Optional[BypassRule]) -> Optional[str]:
    """Literal cookie (trimmed) wins; otherwise the token becomes the platform cookie pair."""
    if rule is None:
        return None
    if rule.cookie and rule.cookie.strip():
        return rule.cookie.strip()
    if rule.token and rule.token.strip():
        token = rule.token.strip()
        return f"{BYPASS_COOKIE_NAME}={token}; {BYPASS_COOKIE_NAME}-s=1"
    return None


class BypassRules(Mapping[str, BypassRule]):
    """Неизменяемая таблица правил: точный хост, ``*.domain`` или глобальный ``*``."""

    def __init__(self, rules: Optional[Mapping[str, BypassRule]] = None) -> None:
        cleaned = {str(k).strip().lower(): v for k, v in (rules or {}).items()}
        self._rules: Mapping[str, BypassRule] = MappingProxyType(cleaned)

    # Mapping protocol ------------------------------------------------------
    def __getitem__(self, key: str) -> BypassRule:
        return self._rules[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"BypassRules({sorted(self._rules)})"

    # Constructors ----------------------------------------------------------
    @classmethod
    def from_mapping(cls, data: Any) -> BypassRules:
        """Build from decoded JSON; entries that are not rule objects are skipped."""
        if not isinstance(data, Mapping):
            return cls()
        rules: dict[str, BypassRule] = {}
        for pattern, raw in data.items():
            if not isinstance(raw, Mapping):
                log.warning("Skipping bypass rule %r: expected an object", pattern)
                continue
            try:
                rules[str(pattern)] = BypassRule.model_validate(dict(raw))
            except ValidationError as exc:
                log.warning("Skipping bypass rule %r: %s", pattern, exc.errors()[0].get("msg"))
        return cls(rules)

    @classmethod
    def from_json(cls, raw: Optional[str]) -> BypassRules:
        if not raw or not raw.strip():
            return cls()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            log.warning("Ignoring malformed bypass rules JSON: %s", exc)
            return cls()
        if not isinstance(data, dict):
            log.warning("Ignoring bypass rules: top level must be an object, got %s", type(data).__name__)
            return cls()
        return cls.from_mapping(data)

    @classmethod
    def from_env(cls, var: str = BYPASS_ENV_VAR, environ: Optional[Mapping[str, str]] = None) -> BypassRules:
        env = os.environ if environ is None else environ
        return cls.from_json(env.get(var))

    def merged(self, other: Mapping[str, BypassRule]) -> BypassRules:
        """New table where *other* overrides entries of this one."""
        combined = dict(self._rules)
        combined.update({str(k).strip().lower(): v for k, v in other.items()})
        return BypassRules(combined)

    # Lookup ------------------------------------------------------------------
    def candidates(self, host: str) -> list[str]:
        """Patterns tried for *host*, in lookup order."""
        host = host.lower()
        parts = host.split(".")
        patterns = [host]
        patterns.extend("*." + ".".join(parts[i:]) for i in range(1, len(parts)))
        patterns.append("*")
        return patterns

    def match(self, host: str) -> Optional[BypassRule]:
        """First matching rule: exact host, widening ``*.suffix`` wildcards, then ``*``."""
        for pattern in self.candidates(host):
            rule = self._rules.get(pattern)
            if rule is not None:
                log.debug("Bypass rule %r matched host %s", pattern, host)
                return rule
        return None

    def cookie_for(self, host: str) -> Optional[str]:
        return build_bypass_cookie(self.match(host))
