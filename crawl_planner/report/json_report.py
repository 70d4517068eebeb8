# File: crawl_planner/report/json_report.py
"""JSON-отчёт: тот же документ, что отдаёт эндпоинт build-kb, но в файле."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Union

from crawl_planner.aggregator import BuildResult


def render_json(result: BuildResult, output_path: Union[Path, str], *, pretty: bool = True) -> Path:
    """Пишет ``result.to_dict()`` в *output_path* (UTF-8, по умолчанию с отступом 2).

    Папки создаются при необходимости; возвращается путь к файлу.
    """
    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(
        json.dumps(result.to_dict(), ensure_ascii=False, indent=2 if pretty else None) + "\n",
        encoding="utf-8",
    )
    return target
