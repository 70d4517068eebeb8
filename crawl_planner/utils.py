# File: crawl_planner/utils.py
"""crawl_planner.utils: Нормализация URL компании и мелкие утилиты для списков URL."""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from typing import Collection, List, Sequence
from urllib.parse import urlsplit

from crawl_planner.errors import InvalidInput
from crawl_planner.logger import logger

__all__: Sequence[str] = (
    "NormalizedOrigin",
    "normalize_origin",
    "canonical_host",
    "remove_duplicates",
)

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_LABEL = r"[a-z0-9_](?:[a-z0-9_-]*[a-z0-9_])?"
_HOSTNAME_RE = re.compile(rf"^{_LABEL}(?:\.{_LABEL})*$")


@dataclass(frozen=True, slots=True)
class NormalizedOrigin:
    """Корень сайта: ``absolute`` (scheme://host без пути) и канонический ``host``."""

    absolute: str
    host: str

    @property
    def hostname(self) -> str:
        """Hostname as it appears in ``absolute`` (what link filtering compares against)."""
        return urlsplit(self.absolute).hostname or ""

    def join(self, path: str) -> str:
        return f"{self.absolute}/{path.lstrip('/')}"


def canonical_host(hostname: str) -> str:
    """Lowercase and drop a single leading ``www.``."""
    host = hostname.lower()
    return host[4:] if host.startswith("www.") else host


def _ascii_hostname(hostname: str, raw: str) -> str:
    if ":" in hostname:
        # bracketed IPv6 literal; urlsplit already removed the brackets
        try:
            return ipaddress.IPv6Address(hostname.split("%", 1)[0]).compressed
        except ValueError as exc:
            raise InvalidInput(f"Invalid company URL: {raw!r}") from exc
    try:
        ascii_host = hostname.encode("idna").decode("ascii")
    except UnicodeError as exc:
        raise InvalidInput(f"Invalid company URL: {raw!r}") from exc
    ascii_host = ascii_host.lower().rstrip(".")
    if not ascii_host or not _HOSTNAME_RE.match(ascii_host):
        raise InvalidInput(f"Invalid company URL: {raw!r}")
    return ascii_host


def _bracketed(host: str) -> str:
    return f"[{host}]" if ":" in host else host


def normalize_origin(raw: object, *, force_https: bool = True) -> NormalizedOrigin:
    """Превращает произвольный ввод пользователя в :class:`NormalizedOrigin`.

    Принимает кавычки, protocol-relative (``//host``), голый домен и абсолютный URL.
    Путь, query, фрагмент отбрасываются. При ``force_https`` схема всегда ``https``,
    а порт не сохраняется; иначе сохраняются схема ``http`` и порт (локальные стенды).

    Raises:
        InvalidInput: пустой ввод или URL, который не удаётся разобрать.
    """
    text = "" if raw is None else str(raw).strip()
    if not text:
        raise InvalidInput("company_url is required (website | company_url | company.url | url)")

    text = text.strip("\"'").strip()
    if text.startswith("//"):
        text = "https:" + text
    if not _SCHEME_RE.match(text):
        text = "https://" + text

    try:
        parts = urlsplit(text)
        hostname = parts.hostname
        port = parts.port
    except ValueError as exc:
        raise InvalidInput(f"Invalid company URL: {raw!r}") from exc
    if not hostname:
        raise InvalidInput(f"Invalid company URL: {raw!r}")

    host = canonical_host(_ascii_hostname(hostname, str(raw)))
    if force_https:
        absolute = f"https://{_bracketed(host)}"
    else:
        authority = _bracketed(host) if port is None else f"{_bracketed(host)}:{port}"
        absolute = f"{parts.scheme.lower()}://{authority}"

    origin = NormalizedOrigin(absolute=absolute, host=host)
    logger.debug("Normalized origin: %r -> %s", raw, origin)
    return origin


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique
