# File: site_harvest/report/html_report.py
"""site_harvest.report.html_report: Генерация HTML-отчёта с помощью Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from site_harvest.aggregator import DiscoveryReport

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
TEMPLATE_NAME = "report.html.j2"


def render_html(
    report: DiscoveryReport,
    template_dir: Optional[Union[Path, str]],
    output_path: Union[Path, str],
) -> Path:
    """Рендерит HTML-отчёт из шаблона и сохраняет его по указанному пути.

    Args:
        report: объект DiscoveryReport.
        template_dir: директория с шаблоном ``report.html.j2``; ``None`` —
            встроенный шаблон пакета.
        output_path: путь к итоговому HTML-файлу.

    Returns:
        Path до сохранённого HTML-файла.

    Пример:
    ```python
    from site_harvest.report.html_report import render_html
    html_path = render_html(report, template_dir=None, output_path='reports/report.html')
    ```
    """
    template_dir = Path(template_dir) if template_dir is not None else DEFAULT_TEMPLATE_DIR
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template(TEMPLATE_NAME)

    context: dict[str, Any] = {
        "domain": report.domain,
        "total_pages": report.total_pages,
        "visited_pages": report.visited_pages,
        "by_category": report.by_category,
        "urls_by_category": report.urls_by_category,
        "stats": report.stats.to_dict(),
        "documents": report.documents,
    }

    html_content = template.render(**context)
    output_path.write_text(html_content, encoding="utf-8")

    return output_path
