# File: site_harvest/engine.py
"""site_harvest.engine: Orchestration layer для запуска обхода и получения отчёта."""

from __future__ import annotations

from typing import Optional

from site_harvest.aggregator import DiscoveryReport
from site_harvest.config import CrawlConfig
from site_harvest.crawler.crawler import CrawlOrchestrator, ProgressCallback
from site_harvest.storage import ContentStore
from site_harvest.utils import validate_seed

__all__ = ["start_crawl"]


async def start_crawl(
    config: CrawlConfig,
    seed_url: Optional[str] = None,
    *,
    store: Optional[ContentStore] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> DiscoveryReport:
    """Запускает CrawlOrchestrator в собственном контексте и возвращает отчёт.

    Стартовый URL проверяется до запуска браузера: некорректный адрес даёт
    :class:`SeedValidationError` без открытия сессии и Chromium.
    """
    seed = validate_seed(seed_url if seed_url is not None else config.seed_url)
    async with CrawlOrchestrator(config, store=store, on_progress=on_progress) as orchestrator:
        return await orchestrator.crawl(seed)
