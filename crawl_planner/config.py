# === FILE: crawl_planner/config.py ===
"""
Модуль для загрузки и валидации конфигурации CrawlPlanner.
Используется Pydantic для описания схемы и проверки данных.

Конфигурация читается один раз при старте процесса и дальше передаётся явно
(в Engine, DiscoveryEngine, aiohttp-приложение); сам объект неизменяем.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from crawl_planner.crawler.bypass import BYPASS_ENV_VAR, BypassRule, BypassRules
from crawl_planner.crawler.fetcher import DEFAULT_MAX_BYTES, DEFAULT_TIMEOUT
from crawl_planner.ranking import DEFAULT_TOP_K

__all__ = ["DEFAULT_CONFIG_PATH", "PlannerConfig", "load_config", "read_config_file"]


class PlannerConfig(BaseModel):
    """Настройки одного процесса планировщика обхода."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    user_agent: str = Field("CrawlPlannerBot/1.0", min_length=1, description="Заголовок User-Agent.")
    sitemap_timeout: float = Field(DEFAULT_TIMEOUT, gt=0, description="Таймаут запроса sitemap.xml (секунд).")
    homepage_timeout: float = Field(DEFAULT_TIMEOUT, gt=0, description="Таймаут запроса главной (секунд).")
    max_bytes: int = Field(DEFAULT_MAX_BYTES, ge=1, description="Мягкий лимит байт на один ответ.")
    top_k: int = Field(DEFAULT_TOP_K, ge=1, description="Сколько URL оставить в плане.")
    force_https: bool = Field(True, description="Всегда строить origin со схемой https.")
    bypass_env_var: str = Field(BYPASS_ENV_VAR, min_length=1, description="Переменная окружения с JSON правил.")
    bypass_rules: Dict[str, BypassRule] = Field(
        default_factory=dict, description="Правила обхода защиты поверх правил из окружения."
    )

    @field_validator("bypass_rules", mode="before")
    def _lowercase_patterns(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return {str(k).strip().lower(): rule for k, rule in v.items()}
        return v

    def resolve_bypass_rules(self, environ: Optional[Mapping[str, str]] = None) -> BypassRules:
        """Правила из окружения, перекрытые правилами из файла конфигурации."""
        return BypassRules.from_env(self.bypass_env_var, environ).merged(self.bypass_rules)

    def public_dict(self) -> dict[str, Any]:
        """Dump without secrets, for the `config` command."""
        data = self.model_dump(mode="json")
        data["bypass_rules"] = {k: rule.masked() for k, rule in self.bypass_rules.items()}
        return data


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _decode_yaml(text: str) -> Any:
    return yaml.safe_load(text)


def _decode_json(text: str) -> Any:
    return json.loads(text) if text.strip() else None


_DECODERS: Dict[str, tuple[str, Callable[[str], Any], type[Exception]]] = {
    ".yaml": ("YAML", _decode_yaml, yaml.YAMLError),
    ".yml": ("YAML", _decode_yaml, yaml.YAMLError),
    ".json": ("JSON", _decode_json, json.JSONDecodeError),
}


def read_config_file(path: Path) -> dict[str, Any]:
    """Сырой mapping из YAML/JSON-файла; пустой файл даёт ``{}``."""
    try:
        kind, decode, decode_error = _DECODERS[path.suffix.lower()]
    except KeyError:
        raise ValueError(f"Неподдерживаемый формат конфига: {path.suffix or path.name}") from None

    try:
        data = decode(path.read_text(encoding="utf-8"))
    except decode_error as exc:
        raise ValueError(f"Не удалось разобрать {kind} в {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TypeError(f"{kind} в {path}: ожидался mapping на верхнем уровне, а не {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None] = None) -> PlannerConfig:
    """
    Читает YAML или JSON и возвращает проверенный PlannerConfig.

    Без пути берётся configs/default.yaml, а если его нет, значения по умолчанию.
    Явно указанный, но отсутствующий файл: FileNotFoundError.
    Ошибки схемы пробрасываются как pydantic.ValidationError.
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.is_file():
            return PlannerConfig()
        source = DEFAULT_CONFIG_PATH
    else:
        source = Path(path).expanduser().resolve()
        if not source.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(source))

    return PlannerConfig.model_validate(read_config_file(source))
