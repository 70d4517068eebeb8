# File: crawl_planner/report/html_report.py
"""crawl_planner.report.html_report: HTML-страница с планом обхода (Jinja2)."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from crawl_planner.aggregator import BuildResult

#: встроенные шаблоны пакета
DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_NAME = "report.html.j2"


def _template_context(result: BuildResult) -> dict[str, Any]:
    data = result.to_dict()
    plan = data["profile"]["crawl_plan"]
    return {
        "company": data["profile"]["company"],
        "tenant_id": data["tenant_id"],
        "crawl_plan": plan,
        "reasons": Counter(item["reason"] for item in plan).most_common(),
        "flags": data["flags"],
        "protection": data["diagnostics"].get("protection"),
    }


def render_html(
    result: BuildResult,
    template_dir: Optional[Union[Path, str]],
    output_path: Union[Path, str],
) -> Path:
    """Рендерит ``report.html.j2`` для *result* и пишет файл.

    Args:
        result: результат построения плана.
        template_dir: папка со своим ``report.html.j2``; ``None`` – встроенный шаблон.
        output_path: куда сохранить HTML.

    Returns:
        Path сохранённого файла.
    """
    env = Environment(
        loader=FileSystemLoader(str(template_dir or DEFAULT_TEMPLATE_DIR)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
        undefined=StrictUndefined,
    )
    html = env.get_template(TEMPLATE_NAME).render(**_template_context(result))

    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(html, encoding="utf-8")
    return target
