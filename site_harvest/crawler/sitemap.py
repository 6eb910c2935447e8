# site_harvest/crawler/sitemap.py
"""
Sitemap and robots.txt discovery over plain HTTP (aiohttp).

Sitemaps are fetched without the browser: they are machine documents and do
not need rendering or anti-detection measures.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple
from urllib.parse import urljoin, urlparse, urlunparse

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_harvest.config import CrawlConfig
from site_harvest.crawler.link_extractor import LinkRole, extract_links
from site_harvest.crawler.robots import RobotsTxtRules
from site_harvest.exceptions import SitemapParseError
from site_harvest.logger import logger
from site_harvest.parser.sitemap_parser import parse_sitemap
from site_harvest.utils import remove_duplicates

__all__ = ("SITEMAP_PATHS", "HTML_SITEMAP_PATHS", "SitemapDiscovery", "SitemapResolver")

SITEMAP_PATHS: tuple[str, ...] = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemaps.xml",
    "/sitemap1.xml",
    "/site-map.xml",
    "/sitemap/sitemap.xml",
    "/sitemap/index.xml",
    "/wp-sitemap.xml",
    "/wp-sitemap-posts-post-1.xml",
    "/wp-sitemap-posts-page-1.xml",
    "/wp-sitemap-posts-product-1.xml",
)

HTML_SITEMAP_PATHS: tuple[str, ...] = (
    "/sitemap",
    "/sitemap.html",
    "/site-map",
    "/site-map.html",
)


@dataclass(slots=True)
class SitemapDiscovery:
    """Outcome of one resolution run."""

    urls: List[str] = field(default_factory=list)
    sitemaps: List[str] = field(default_factory=list)
    parse_errors: int = 0
    robots: Optional[RobotsTxtRules] = None


def _site_root(base_url: str) -> str:
    parsed = urlparse(base_url)
    return urlunparse((parsed.scheme, parsed.netloc, "/", "", "", ""))


def _looks_like_html(content_type: str, body: bytes) -> bool:
    if "html" in content_type:
        return True
    head = body[:512].lstrip().lower()
    return head.startswith((b"<!doctype html", b"<html"))


class SitemapResolver:
    """Fetches robots.txt, well-known sitemap locations and nested sitemap indexes."""

    def __init__(self, session: ClientSession, config: CrawlConfig) -> None:
        self.session = session
        self.config = config

    async def load_robots(self, base_url: str) -> Optional[RobotsTxtRules]:
        """robots.txt of the site or ``None`` when it is absent or unreachable."""
        robots_url = urljoin(_site_root(base_url), "/robots.txt")
        try:
            async with self.session.get(
                robots_url, timeout=ClientTimeout(total=self.config.robots_timeout)
            ) as resp:
                if resp.status != 200:
                    logger.debug("robots.txt %s -> HTTP %s", robots_url, resp.status)
                    return None
                text = await resp.text(errors="replace")
        except (ClientError, asyncio.TimeoutError) as exc:
            logger.debug("Error loading robots.txt %s: %s", robots_url, exc)
            return None
        return RobotsTxtRules(text, base_url=robots_url)

    async def resolve(self, base_url: str) -> SitemapDiscovery:
        """
        Collect page URLs from every reachable sitemap of *base_url*.

        Candidates are the fixed :data:`SITEMAP_PATHS` followed by ``Sitemap:``
        directives from robots.txt. Index documents are expanded recursively
        up to ``max_sitemap_depth``; each sitemap URL is fetched at most once.
        """
        root = _site_root(base_url)
        discovery = SitemapDiscovery()
        discovery.robots = await self.load_robots(root)

        candidates = [urljoin(root, path) for path in SITEMAP_PATHS]
        if discovery.robots is not None:
            candidates.extend(discovery.robots.sitemaps)
        seen: Set[str] = set()
        for candidate in dict.fromkeys(candidates):
            await self._expand(candidate, 0, seen, discovery)

        for path in HTML_SITEMAP_PATHS:
            discovery.urls.extend(await self._harvest_html_sitemap(urljoin(root, path)))

        discovery.urls = remove_duplicates(discovery.urls)
        logger.info(
            "Sitemaps: %d documents, %d URLs, %d parse errors",
            len(discovery.sitemaps),
            len(discovery.urls),
            discovery.parse_errors,
        )
        return discovery

    async def _expand(self, url: str, depth: int, seen: Set[str], discovery: SitemapDiscovery) -> None:
        if url in seen:
            return
        seen.add(url)
        if depth > self.config.max_sitemap_depth:
            logger.debug("Sitemap depth limit reached at %s", url)
            return

        fetched = await self._get(url, self.config.sitemap_timeout)
        if fetched is None:
            return
        content_type, body = fetched
        if _looks_like_html(content_type, body):
            logger.debug("Soft-404 HTML instead of sitemap at %s", url)
            return

        try:
            parsed = parse_sitemap(body, source=url)
        except SitemapParseError as exc:
            logger.warning("%s", exc)
            discovery.parse_errors += 1
            return

        discovery.sitemaps.append(url)
        if parsed.is_index:
            for child in parsed.locations:
                await self._expand(urljoin(url, child), depth + 1, seen, discovery)
        else:
            discovery.urls.extend(urljoin(url, loc) for loc in parsed.locations)

    async def _harvest_html_sitemap(self, url: str) -> List[str]:
        fetched = await self._get(url, self.config.sitemap_timeout)
        if fetched is None:
            return []
        content_type, body = fetched
        if "html" not in content_type:
            return []
        html = body.decode("utf-8", errors="replace")
        links = extract_links(html, url, roles=[LinkRole.GENERIC])[LinkRole.GENERIC]
        logger.debug("HTML sitemap %s: %d links", url, len(links))
        return links

    async def _get(self, url: str, timeout: float) -> Optional[Tuple[str, bytes]]:
        try:
            async with self.session.get(url, timeout=ClientTimeout(total=timeout)) as resp:
                if resp.status != 200:
                    logger.debug("Sitemap candidate %s -> HTTP %s", url, resp.status)
                    return None
                return resp.headers.get("Content-Type", "").lower(), await resp.read()
        except (ClientError, asyncio.TimeoutError) as exc:
            logger.debug("Sitemap candidate %s unreachable: %s", url, exc)
            return None
