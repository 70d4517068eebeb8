"""crawl_planner.parser: толерантные сканеры sitemap.xml и HTML-ссылок."""

from .html_parser import extract_links
from .sitemap_parser import parse_sitemap

__all__ = ["extract_links", "parse_sitemap"]
