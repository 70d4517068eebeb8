"""crawl_planner.report: JSON- и HTML-отчёты по результату построения плана."""

from .html_report import render_html
from .json_report import render_json

__all__ = ["render_json", "render_html"]
