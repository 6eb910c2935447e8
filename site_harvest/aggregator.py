# File: site_harvest/aggregator.py
"""site_harvest.aggregator: итоговый отчёт об обходе сайта."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from site_harvest.crawler.frontier import Frontier
from site_harvest.crawler.models import CrawlStats, URLCategory

__all__ = ("DiscoveryReport", "build_report")


@dataclass(slots=True)
class DiscoveryReport:
    """Результат одного обхода: найденные URL, разбивка по категориям и счётчики."""

    total_pages: int
    by_category: Dict[str, int]
    discovered_urls: List[str]
    stats: CrawlStats
    domain: str = ""
    visited_pages: int = 0
    urls_by_category: Dict[str, List[str]] = field(default_factory=dict)
    documents: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "totalPages": self.total_pages,
            "visitedPages": self.visited_pages,
            "byCategory": dict(self.by_category),
            "discoveredUrls": list(self.discovered_urls),
            "urlsByCategory": {k: list(v) for k, v in self.urls_by_category.items()},
            "stats": self.stats.to_dict(),
            "documents": list(self.documents),
        }

    def json(self, *, pretty: bool = False) -> str:
        """Возвращает JSON-представление отчёта (ключи в camelCase)."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def build_report(
    frontier: Frontier,
    stats: CrawlStats,
    domain: str,
    documents: Optional[Sequence[str]] = None,
    max_pages: Optional[int] = None,
) -> DiscoveryReport:
    """Собирает DiscoveryReport из состояния Frontier.

    В отчёт попадает не больше *max_pages* URL: сначала загруженные страницы,
    затем остальные обнаруженные в порядке обнаружения. ``byCategory``
    считается по тому же списку, поэтому его сумма равна ``totalPages``.
    """
    visited = frontier.visited_urls()
    visited_set = set(visited)
    ordered = visited + [url for url in frontier.urls() if url not in visited_set]
    if max_pages is not None:
        ordered = ordered[:max_pages]

    categories = {t.url: t.category for t in frontier.targets()}
    by_category: Dict[str, List[str]] = {c.value: [] for c in URLCategory}
    for url in ordered:
        by_category[categories[url].value].append(url)

    return DiscoveryReport(
        total_pages=len(ordered),
        by_category={k: len(v) for k, v in by_category.items()},
        discovered_urls=ordered,
        stats=stats,
        domain=domain,
        visited_pages=len(visited),
        urls_by_category=by_category,
        documents=list(documents or []),
    )
