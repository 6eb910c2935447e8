# site_harvest/crawler/crawler.py
"""
Crawl orchestrator: drives discovery phases over one Frontier.

Phases run in a fixed order (sitemaps, strategic links, category traversal,
optional dynamic discovery, exhaustive BFS). Workers only fetch and extract
links; everything that mutates the Frontier or the stats happens in
:meth:`CrawlOrchestrator._apply`, one completed result at a time.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Set, Tuple

from aiohttp import ClientSession, ClientTimeout

from site_harvest.aggregator import DiscoveryReport, build_report
from site_harvest.config import CrawlConfig
from site_harvest.crawler.fetcher import StealthFetcher
from site_harvest.crawler.frontier import Frontier
from site_harvest.crawler.link_extractor import (
    LISTING_ROLES,
    STRATEGIC_ROLES,
    LinkRole,
    extract_links,
    flatten_links,
)
from site_harvest.crawler.models import (
    CrawlPhase,
    CrawlStats,
    CrawlTarget,
    FetchStatus,
    PageFetchResult,
    ProgressEvent,
    URLCategory,
)
from site_harvest.crawler.sitemap import SitemapDiscovery, SitemapResolver
from site_harvest.exceptions import ExtractionError, FetchError, StoreError
from site_harvest.logger import logger
from site_harvest.pagination import listing_root, page_number, synthesize_pages, template_name
from site_harvest.parser.html_parser import extract_document
from site_harvest.storage import ContentStore, MemoryContentStore, document_key
from site_harvest.utils import extract_domain, validate_seed

__all__ = ("CrawlOrchestrator", "PageFetcher", "SitemapSource")

ProgressCallback = Callable[[ProgressEvent], None]


class PageFetcher(Protocol):
    async def fetch(self, url: str, *, trigger_dynamic: bool = False) -> PageFetchResult: ...


class SitemapSource(Protocol):
    async def resolve(self, base_url: str) -> SitemapDiscovery: ...


@dataclass(slots=True)
class _Visit:
    target: CrawlTarget
    result: PageFetchResult
    links: Dict[LinkRole, List[str]] = field(default_factory=dict)


_PaginationKey = Tuple[str, str]


class CrawlOrchestrator:
    """Асинхронный оркестратор обхода: одна Frontier на один вызов :meth:`crawl`.

    Usage::

        async with CrawlOrchestrator(cfg, store=FileContentStore("out")) as orch:
            report = await orch.crawl("https://shop.example.com")

    Injected *fetcher*, *resolver* and *session* are used as is and never
    closed by the orchestrator.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        fetcher: Optional[PageFetcher] = None,
        store: Optional[ContentStore] = None,
        on_progress: Optional[ProgressCallback] = None,
        resolver: Optional[SitemapSource] = None,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.config = config
        self.store: ContentStore = store if store is not None else MemoryContentStore()
        self.on_progress = on_progress
        self._fetcher = fetcher
        self._resolver = resolver
        self._session = session
        self._owned_fetcher: Optional[StealthFetcher] = None
        self._owned_session: Optional[ClientSession] = None
        self._reset()

    def _reset(self) -> None:
        self.stats = CrawlStats()
        self.frontier: Optional[Frontier] = None
        self._documents: List[str] = []
        self._content_hashes: Set[str] = set()
        self._synthesized: Dict[str, _PaginationKey] = {}
        self._dead_from: Dict[_PaginationKey, int] = {}

    async def __aenter__(self) -> CrawlOrchestrator:
        if self._resolver is None:
            if self._session is None:
                self._owned_session = ClientSession(
                    timeout=ClientTimeout(total=self.config.sitemap_timeout),
                    headers={"User-Agent": self.config.user_agent},
                    raise_for_status=False,
                )
                self._session = self._owned_session
            self._resolver = SitemapResolver(self._session, self.config)
        if self._fetcher is None:
            self._owned_fetcher = StealthFetcher(self.config)
            self._fetcher = await self._owned_fetcher.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the owned browser and HTTP session; in-flight fetches are cancelled with them."""
        if self._owned_fetcher is not None:
            await self._owned_fetcher.close()
            self._owned_fetcher = None
            self._fetcher = None
        if self._owned_session is not None and not self._owned_session.closed:
            await self._owned_session.close()
        self._owned_session = None

    # ------------------------------------------------------------------ crawl

    async def crawl(self, seed_url: Optional[str] = None) -> DiscoveryReport:
        """
        Run every discovery phase for *seed_url* (or ``config.seed_url``).

        Raises:
            SeedValidationError: the seed is empty or malformed. Nothing else
            escapes; per-URL failures are counted in ``stats.errors_encountered``.
        """
        seed = validate_seed(seed_url if seed_url is not None else self.config.seed_url)
        if self._fetcher is None or self._resolver is None:
            raise RuntimeError("CrawlOrchestrator is not started; use 'async with'")

        self._reset()
        domain = extract_domain(seed)
        frontier = Frontier(domain, self.config, self.stats)
        self.frontier = frontier
        frontier.add(seed, depth=0, phase=CrawlPhase.SEED)

        started = time.monotonic()
        logger.info("Старт обхода: %s (max_pages=%d)", seed, self.config.max_pages)
        self._progress("init", f"Starting crawl of {domain}", 0)

        await self._sitemap_phase(seed)
        await self._strategic_phase(seed)
        if self.config.enable_category_traversal:
            await self._category_phase()
        if self.config.enable_dynamic_discovery:
            await self._dynamic_phase()
        await self._exhaustive_phase()

        report = build_report(
            frontier, self.stats, domain, documents=self._documents, max_pages=self.config.max_pages
        )
        duration = time.monotonic() - started
        logger.info(
            "Завершено: %d обнаружено, %d загружено, %d документов, %d ошибок за %.2f с",
            len(frontier),
            frontier.visited_count,
            self.stats.documents_emitted,
            self.stats.errors_encountered,
            duration,
        )
        self._progress("complete", f"Discovered {report.total_pages} pages", 100)
        return report

    # ----------------------------------------------------------------- phases

    async def _sitemap_phase(self, seed: str) -> None:
        assert self._resolver is not None and self.frontier is not None
        self._progress("sitemap", "Resolving robots.txt and sitemaps", 5)
        discovery = await self._resolver.resolve(seed)
        if self.config.respect_robots and discovery.robots is not None:
            self.frontier.robots = discovery.robots
            delay = discovery.robots.crawl_delay(self.config.user_agent)
            if delay and isinstance(self._fetcher, StealthFetcher):
                self._fetcher.crawl_delay = delay
                logger.info("robots.txt Crawl-delay: %.1fs", delay)
        self.stats.errors_encountered += discovery.parse_errors
        self.stats.sitemap_urls_found += len(discovery.urls)
        added = self.frontier.add_many(discovery.urls, depth=1, phase=CrawlPhase.SITEMAP)
        logger.info("Sitemap phase: %d URLs, %d new", len(discovery.urls), added)
        self._progress("sitemap", f"Sitemaps yielded {added} new URLs", 15)

    async def _strategic_phase(self, seed: str) -> None:
        assert self.frontier is not None
        self._progress("strategic", "Harvesting navigation links from the homepage", 20)
        target = self.frontier.take(seed)
        if target is None or self.frontier.budget_exhausted:
            return
        visit = await self._visit(target, (*STRATEGIC_ROLES, LinkRole.GENERIC))
        self._apply(visit, CrawlPhase.STRATEGIC)
        self._progress("strategic", f"{len(self.frontier)} URLs known after homepage", 30)

    async def _category_phase(self) -> None:
        assert self.frontier is not None
        frontier = self.frontier
        snapshot = [t.url for t in frontier.pending_targets(URLCategory.CATEGORY)]
        logger.info("Category phase: %d category pages", len(snapshot))
        self._progress("category", f"Traversing {len(snapshot)} category pages", 30)
        queue = iter(snapshot)

        def next_target() -> Optional[CrawlTarget]:
            for url in queue:
                target = frontier.take(url)
                if target is not None:
                    return target
            return None

        await self._run_pool(
            next_target,
            concurrency=self.config.concurrency,
            roles=LISTING_ROLES,
            phase=CrawlPhase.CATEGORY,
            progress=(30, 60),
            expected=len(snapshot),
        )

    async def _dynamic_phase(self) -> None:
        assert self.frontier is not None
        visited_categories = [
            t
            for t in self.frontier.targets()
            if t.category is URLCategory.CATEGORY and self.frontier.is_visited(t.url)
        ]
        sample = visited_categories[: self.config.dynamic_sample_size]
        self._progress("dynamic", f"Checking {len(sample)} pages for dynamic content", 60)
        queue = iter(sample)
        await self._run_pool(
            lambda: next(queue, None),
            concurrency=self.config.concurrency,
            roles=(LinkRole.GENERIC,),
            phase=CrawlPhase.DYNAMIC,
            progress=(60, 70),
            expected=len(sample),
            trigger_dynamic=True,
        )

    async def _exhaustive_phase(self) -> None:
        assert self.frontier is not None
        frontier = self.frontier
        self._progress("exhaustive", f"Crawling {frontier.pending_count} pending URLs", 70)
        await self._run_pool(
            frontier.next,
            concurrency=self.config.bfs_concurrency,
            roles=(LinkRole.GENERIC,),
            phase=CrawlPhase.EXHAUSTIVE,
            progress=(70, 95),
            expected=None,
        )

    # ------------------------------------------------------------------- pool

    async def _run_pool(
        self,
        next_target: Callable[[], Optional[CrawlTarget]],
        *,
        concurrency: int,
        roles: Iterable[LinkRole],
        phase: CrawlPhase,
        progress: Tuple[float, float],
        expected: Optional[int],
        trigger_dynamic: bool = False,
    ) -> None:
        """Bounded worker pool; completed visits are applied one by one."""
        assert self.frontier is not None
        frontier = self.frontier
        roles = tuple(roles)
        running: Set["asyncio.Task[_Visit]"] = set()
        done_count = 0
        try:
            while True:
                while len(running) < concurrency and frontier.visited_count + len(running) < self.config.max_pages:
                    target = next_target()
                    if target is None:
                        break
                    running.add(
                        asyncio.create_task(self._visit(target, roles, trigger_dynamic=trigger_dynamic))
                    )
                if not running:
                    break
                finished, running = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
                for task in finished:
                    self._apply(task.result(), phase)
                    done_count += 1
                low, high = progress
                if expected:
                    ratio = min(1.0, done_count / expected)
                else:
                    ratio = min(1.0, frontier.visited_count / self.config.max_pages)
                self._progress(
                    phase.value,
                    f"{frontier.visited_count} visited, {frontier.pending_count} pending",
                    low + (high - low) * ratio,
                )
        finally:
            for task in running:
                task.cancel()
            if running:
                await asyncio.gather(*running, return_exceptions=True)

    async def _visit(
        self, target: CrawlTarget, roles: Tuple[LinkRole, ...], *, trigger_dynamic: bool = False
    ) -> _Visit:
        assert self._fetcher is not None
        try:
            result = await self._fetcher.fetch(target.url, trigger_dynamic=trigger_dynamic)
        except FetchError as exc:
            result = PageFetchResult(
                url=target.url, status=FetchStatus.ERROR, error=str(exc), status_code=exc.status_code
            )
        links: Dict[LinkRole, List[str]] = {}
        if result.ok and result.html:
            links = extract_links(result.html, result.url or target.url, roles=roles)
        return _Visit(target, result, links)

    # ------------------------------------------------------------------ apply

    def _apply(self, visit: _Visit, phase: CrawlPhase) -> None:
        assert self.frontier is not None
        frontier = self.frontier
        target, result = visit.target, visit.result
        refetch = phase is CrawlPhase.DYNAMIC

        if not refetch:
            frontier.mark_visited(target.url, success=result.ok)
        if not result.ok:
            self.stats.errors_encountered += 1
            logger.warning("Fetch failed for %s: %s", target.url, result.error)
            if not refetch:
                self._mark_dead(target.url)
            return

        if not refetch and not self._emit_document(target, result):
            self._mark_dead(target.url)

        depth = target.depth + 1
        new_links = frontier.add_many(flatten_links(visit.links), depth=depth, phase=phase)
        if refetch:
            new_links += frontier.add_many(result.subresource_urls, depth=depth, phase=phase)
            self.stats.dynamic_urls_found += new_links
        elif phase is CrawlPhase.CATEGORY and self.config.enable_pagination:
            self._synthesize(target)
        logger.debug("%s: %d new links from %s", phase.value, new_links, target.url)

    def _emit_document(self, target: CrawlTarget, result: PageFetchResult) -> bool:
        """Extract and store the page; False for empty or duplicate content."""
        try:
            document = extract_document(
                result.html,
                target.url,
                chunk_size=self.config.chunk_size,
                chunk_overlap=self.config.chunk_overlap,
                min_chunk_length=self.config.min_chunk_length,
                min_content_length=self.config.min_content_length,
                title=result.title,
            )
        except ExtractionError as exc:
            self.stats.errors_encountered += 1
            logger.info("%s", exc)
            return False

        if document.content_hash in self._content_hashes:
            self.stats.duplicate_content_skipped += 1
            logger.debug("Duplicate content at %s", target.url)
            return False
        self._content_hashes.add(document.content_hash)

        key = document_key(target.url)
        try:
            self.store.put(key, document)
        except StoreError as exc:
            self.stats.errors_encountered += 1
            logger.error("%s", exc)
            return True
        except Exception as exc:  # noqa: BLE001 - хранилище внешнее, его ошибки не прерывают обход
            self.stats.errors_encountered += 1
            logger.error("Cannot store %s (%s): %s", key, target.url, exc)
            return True
        self._documents.append(key)
        self.stats.documents_emitted += 1
        return True

    # ------------------------------------------------------------- pagination

    def _synthesize(self, target: CrawlTarget) -> None:
        assert self.frontier is not None
        root = listing_root(target.url)
        candidates = synthesize_pages(
            root,
            max_pages=self.config.max_pagination_pages,
            templates=self.config.pagination_templates,
        )
        added = 0
        for candidate in candidates:
            name = template_name(candidate)
            if name is None:
                continue
            key = (root, name)
            dead_from = self._dead_from.get(key)
            number = page_number(candidate)
            if dead_from is not None and number is not None and number >= dead_from:
                continue
            if self.frontier.add(candidate, depth=target.depth + 1, phase=CrawlPhase.CATEGORY):
                stored = self.frontier.get(candidate)
                if stored is not None:
                    self._synthesized[stored.url] = key
                added += 1
        logger.debug("Synthesized %d pagination candidates for %s", added, root)

    def _mark_dead(self, url: str) -> None:
        """A synthesized page came back empty, duplicate or failed: prune its successors."""
        assert self.frontier is not None
        key = self._synthesized.get(url)
        number = page_number(url)
        if key is None or number is None:
            return
        current = self._dead_from.get(key)
        if current is not None and current <= number:
            return
        self._dead_from[key] = number
        pruned = 0
        for pending in self.frontier.pending_targets():
            if self._synthesized.get(pending.url) != key:
                continue
            n = page_number(pending.url)
            if n is not None and n > number and self.frontier.discard(pending.url):
                pruned += 1
        self.stats.pagination_pruned += pruned
        if pruned:
            logger.info("Pagination of %s ends before page %d: pruned %d candidates", key[0], number, pruned)

    # --------------------------------------------------------------- progress

    def _progress(self, phase: str, message: str, percentage: float) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(ProgressEvent(phase, message, round(percentage, 1)))
        except Exception as exc:  # noqa: BLE001 - колбэк внешний, обход не должен падать
            logger.warning("Progress callback failed: %s", exc)
