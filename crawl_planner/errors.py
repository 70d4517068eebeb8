# File: crawl_planner/errors.py
"""crawl_planner.errors: Иерархия исключений CrawlPlanner."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

__all__ = ["CrawlPlannerError", "InvalidInput", "NetworkError", "FetchTimeout", "Blocked"]


class CrawlPlannerError(Exception):
    """Базовый класс для всех ошибок пакета."""


class InvalidInput(CrawlPlannerError, ValueError):
    """Отсутствующий или некорректный URL компании. Фатально для запроса."""


class NetworkError(CrawlPlannerError):
    """DNS/соединение/транспорт. Восстанавливается локально на этапе обнаружения."""

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}" if reason else url)


class FetchTimeout(NetworkError):
    """Один запрос не уложился в свой таймаут."""

    def __init__(self, url: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(url, f"timed out after {timeout:.1f}s")


@dataclass(frozen=True, slots=True)
class Blocked:
    """Диагностическая запись о стене защиты. Никогда не выбрасывается."""

    stage: str
    status: int
    used_bypass_cookie: bool = False
    detail: Optional[str] = None

    @property
    def reason(self) -> str:
        return f"{self.stage}_{self.status}"
