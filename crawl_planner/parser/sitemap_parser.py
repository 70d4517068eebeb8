# File: crawl_planner/parser/sitemap_parser.py
"""crawl_planner.parser.sitemap_parser: Толерантное извлечение URL из sitemap.xml."""

from __future__ import annotations

import re
from typing import List, Optional
from xml.sax.saxutils import unescape

__all__ = ["parse_sitemap"]

# <loc>, <ns:loc>, attributes on the tag, any case
_LOC_RE = re.compile(
    r"<(?:[\w.-]+:)?loc\b[^>]*>(\s*<!\[CDATA\[.*?\]\]>\s*|[^<]*)</(?:[\w.-]+:)?loc\s*>",
    re.IGNORECASE | re.DOTALL,
)
_CDATA_RE = re.compile(r"^<!\[CDATA\[(.*?)\]\]>$", re.DOTALL)
_XML_ENTITIES = {"&quot;": "\"", "&apos;": "'"}


def parse_sitemap(xml_content: Optional[str]) -> List[str]:
    """Возвращает URL из тегов <loc> без дубликатов, в порядке появления.

    Это сканер, а не XML-парсер: обрезанный по лимиту байт или битый документ
    даёт те <loc>, что успели закрыться, и никогда не бросает исключение.

    Пример:
    ```python
    from crawl_planner.parser.sitemap_parser import parse_sitemap

    urls = parse_sitemap("<urlset><url><loc>https://acme.io/pricing</loc></url>")
    # ['https://acme.io/pricing']
    ```
    """
    if not xml_content or not isinstance(xml_content, str):
        return []

    seen: dict[str, None] = {}
    for match in _LOC_RE.finditer(xml_content):
        value = match.group(1).strip()
        cdata = _CDATA_RE.match(value)
        if cdata:
            value = cdata.group(1).strip()
        else:
            value = unescape(value, _XML_ENTITIES)
        if value and "<" not in value:
            seen.setdefault(value, None)
    return list(seen)
