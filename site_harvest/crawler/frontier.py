# site_harvest/crawler/frontier.py
"""
Frontier: the single source of truth about which URLs a crawl knows about.

Every URL enters through :meth:`Frontier.add`, which normalizes, filters and
classifies it. ``discovered`` only grows during a run; ``pending`` and
``visited`` are disjoint subsets of it.
"""
from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Pattern, Sequence, Set
from urllib.parse import urlparse

from site_harvest.categorizer import classify
from site_harvest.config import CrawlConfig
from site_harvest.crawler.models import CrawlPhase, CrawlStats, CrawlTarget, URLCategory
from site_harvest.crawler.robots import RobotsTxtRules
from site_harvest.logger import logger
from site_harvest.utils import (
    DEFAULT_EXCLUDE_PATTERNS,
    compile_patterns,
    extract_domain,
    is_valid_url,
    normalize_url,
)

__all__ = ("Frontier",)


class Frontier:
    """Discovered / pending / visited sets plus per-category buckets."""

    def __init__(
        self,
        base_domain: str,
        config: CrawlConfig,
        stats: Optional[CrawlStats] = None,
        robots: Optional[RobotsTxtRules] = None,
    ) -> None:
        self.base_domain = base_domain.lower()
        self.config = config
        self.stats = stats if stats is not None else CrawlStats()
        self.robots = robots
        self._exclude: List[Pattern[str]] = [
            *DEFAULT_EXCLUDE_PATTERNS,
            *compile_patterns(config.exclude_patterns),
        ]
        self._discovered: Dict[str, CrawlTarget] = {}
        self._pending: "OrderedDict[str, CrawlTarget]" = OrderedDict()
        self._visited: Set[str] = set()
        self._failed: Set[str] = set()
        self._buckets: Dict[URLCategory, List[str]] = {c: [] for c in URLCategory}

    @classmethod
    def for_seed(cls, seed_url: str, config: CrawlConfig, stats: Optional[CrawlStats] = None) -> Frontier:
        return cls(extract_domain(seed_url), config, stats)

    # ------------------------------------------------------------------ admit

    def add(self, url: str, *, depth: int = 0, phase: CrawlPhase = CrawlPhase.SEED) -> bool:
        """
        Admit *url*; return True if it was new.

        Rejected (False, not counted as duplicate): unparsable, non-http(s),
        off-domain (unless ``follow_external_links``), excluded by pattern,
        disallowed by robots.txt (when ``respect_robots``), deeper than
        ``max_depth``. Already known URLs bump ``duplicates_skipped``.
        """
        try:
            normalized = normalize_url(url)
        except ValueError as exc:
            logger.debug("Cannot normalize %s: %s", url, exc)
            return False
        if not is_valid_url(
            normalized,
            self.base_domain,
            follow_external=self.config.follow_external_links,
            exclude_patterns=self._exclude,
        ):
            return False
        if normalized in self._discovered:
            self.stats.duplicates_skipped += 1
            return False
        if depth > self.config.max_depth:
            return False
        if self.config.respect_robots and self.robots is not None:
            path = urlparse(normalized).path or "/"
            if not self.robots.can_fetch(self.config.user_agent, path):
                self.stats.robots_disallowed += 1
                logger.debug("Disallowed by robots.txt: %s", normalized)
                return False

        category = classify(normalized)
        target = CrawlTarget(normalized, category, depth, phase)
        self._discovered[normalized] = target
        self._pending[normalized] = target
        self._buckets[category].append(normalized)
        self.stats.record_category(category)
        return True

    def add_many(self, urls: Iterable[str], *, depth: int, phase: CrawlPhase) -> int:
        """Add every URL of *urls*; return how many were new."""
        return sum(1 for url in urls if self.add(url, depth=depth, phase=phase))

    # ----------------------------------------------------------------- consume

    def next(self, category: Optional[URLCategory] = None) -> Optional[CrawlTarget]:
        """Pop the oldest pending target (of *category*, if given)."""
        if category is None:
            if not self._pending:
                return None
            _, target = self._pending.popitem(last=False)
            return target
        for url, target in self._pending.items():
            if target.category is category:
                del self._pending[url]
                return target
        return None

    def pending_targets(self, category: Optional[URLCategory] = None) -> List[CrawlTarget]:
        return [t for t in self._pending.values() if category is None or t.category is category]

    def take(self, url: str) -> Optional[CrawlTarget]:
        """Remove a specific URL from pending and return its target."""
        return self._pending.pop(normalize_url(url), None)

    def discard(self, url: str) -> bool:
        """Drop *url* from pending; it stays discovered."""
        return self._pending.pop(normalize_url(url), None) is not None

    def mark_visited(self, url: str, success: bool = True) -> None:
        key = normalize_url(url)
        self._pending.pop(key, None)
        self._visited.add(key)
        if not success:
            self._failed.add(key)

    # ------------------------------------------------------------------ query

    def get(self, url: str) -> Optional[CrawlTarget]:
        return self._discovered.get(normalize_url(url))

    def is_visited(self, url: str) -> bool:
        return normalize_url(url) in self._visited

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and normalize_url(url) in self._discovered

    def __len__(self) -> int:
        return len(self._discovered)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def visited_count(self) -> int:
        return len(self._visited)

    @property
    def failed_count(self) -> int:
        return len(self._failed)

    @property
    def remaining_budget(self) -> int:
        return max(0, self.config.max_pages - len(self._visited))

    @property
    def budget_exhausted(self) -> bool:
        return self.remaining_budget == 0

    def urls(self) -> List[str]:
        """All discovered URLs in discovery order."""
        return list(self._discovered)

    def visited_urls(self) -> List[str]:
        return [url for url in self._discovered if url in self._visited]

    def buckets(self) -> Dict[URLCategory, List[str]]:
        return {category: list(urls) for category, urls in self._buckets.items()}

    def bucket_sizes(self) -> Dict[URLCategory, int]:
        return {category: len(urls) for category, urls in self._buckets.items()}

    def targets(self) -> Sequence[CrawlTarget]:
        return tuple(self._discovered.values())
