# === FILE: crawl_planner/parser/html_parser.py ===
"""HTML link extraction for CrawlPlanner.

Only the homepage is ever parsed, and only for one thing: same-host links that
can seed the crawl plan. The extractor is *total* – truncated markup, binary
garbage or an empty string all yield a (possibly empty) list, never an
exception:

* quoted ``href="..."`` / ``href='...'`` attributes are scanned directly, so a tag
  cut off at the byte cap, a ``<script>`` body or a comment still yields its link;
* the DOM pass (bs4) then adds what the scan cannot see, e.g. unquoted values;
* ``#fragment``, ``mailto:`` and ``tel:`` targets are skipped;
* relative links are resolved against the site root;
* only links whose hostname equals the root hostname survive (no subdomains);
* fragments are stripped, duplicates removed, first occurrence wins.
"""
from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit
from xml.sax.saxutils import unescape

from bs4 import BeautifulSoup

from crawl_planner.logger import get_logger

__all__: Sequence[str] = ("extract_links", "iter_hrefs")

_SKIP_PREFIXES = ("#", "mailto:", "tel:")
_HREF_RE = re.compile(r"""(?<![\w-])href\s*=\s*(?:"([^"]*)"|'([^']*)')""", re.IGNORECASE)
_ENTITIES = {"&quot;": "\"", "&apos;": "'", "&#39;": "'", "&#38;": "&"}

log = get_logger("html")


def iter_hrefs(html: str) -> Iterator[str]:
    """Yield raw ``href`` values: quoted attributes in document order, then DOM-only extras."""
    scanned: list[str] = []
    for match in _HREF_RE.finditer(html):
        value = match.group(1) if match.group(1) is not None else match.group(2)
        scanned.append(unescape(value, _ENTITIES))
    yield from scanned

    try:
        soup = BeautifulSoup(html, "html.parser")
        parsed = [tag.get("href") for tag in soup.find_all(href=True)]
    except Exception as exc:  # html.parser rejects some byte soup outright
        log.debug("html.parser gave up (%s); keeping the attribute scan only", exc)
        return
    seen = set(scanned)
    for value in parsed:
        if isinstance(value, str) and value not in seen:
            seen.add(value)
            yield value


def _resolve(href: str, root: str, root_host: str) -> Optional[str]:
    href = href.strip()
    if not href or href.lower().startswith(_SKIP_PREFIXES):
        return None
    try:
        parts = urlsplit(urljoin(root, href))
        host = parts.hostname
    except ValueError:
        return None
    if host != root_host:
        return None
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", parts.query, ""))


def extract_links(html: Optional[str], root: str) -> list[str]:
    """Return same-host links found in *html*, resolved against *root*.

    Parameters
    ----------
    html
        Raw (possibly truncated) markup of the page.
    root
        Site origin, e.g. ``https://acme.io``; relative links resolve against it
        and its hostname is the only one kept.
    """
    if not html or not isinstance(html, str):
        return []
    try:
        root_host = urlsplit(root).hostname
    except ValueError:
        return []
    if not root_host:
        return []

    seen: dict[str, None] = {}
    for href in iter_hrefs(html):
        url = _resolve(href, root, root_host)
        if url is not None:
            seen.setdefault(url, None)
    return list(seen)
