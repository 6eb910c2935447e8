# site_harvest/report/json_report.py

"""
Генерация JSON-отчёта для проекта SiteHarvest.

Сериализация объекта DiscoveryReport в файл.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Union

from site_harvest.aggregator import DiscoveryReport


def render_json(report: DiscoveryReport, output_path: Union[Path, str], *, pretty: bool = True) -> Path:
    """
    Сохраняет отчёт report в формате JSON по указанному пути.

    :param report: объект DiscoveryReport с результатами обхода
    :param output_path: путь к JSON-файлу
    :param pretty: форматировать с отступами
    :return: Path сохранённого файла

    Пример:
    ```python
    from site_harvest.report.json_report import render_json
    report_path = render_json(report, 'reports/report.json')
    print(f"JSON report saved to: {report_path}")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open("w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, ensure_ascii=False, indent=2 if pretty else None)

    return output
