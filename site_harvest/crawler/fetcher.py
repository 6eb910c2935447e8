# site_harvest/crawler/fetcher.py
"""
Anti-detection fetch layer: renders pages in headless Chromium via Playwright.

Each attempt runs in its own browser context with a randomized fingerprint,
so cookies and storage never leak between pages. Per-URL failures never
escape :meth:`StealthFetcher.fetch`; they come back as a
:class:`PageFetchResult` with ``status`` set to ``blocked`` or ``error``.
"""
from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from site_harvest.config import CrawlConfig
from site_harvest.crawler.models import FetchStatus, PageFetchResult
from site_harvest.exceptions import BlockedError, FetchError
from site_harvest.logger import logger

__all__ = (
    "USER_AGENTS",
    "VIEWPORTS",
    "DEFAULT_HEADERS",
    "BLOCKING_PHRASES",
    "Fingerprint",
    "find_block_phrase",
    "is_blocked",
    "StealthFetcher",
)

USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
)

VIEWPORTS: tuple[Dict[str, int], ...] = (
    {"width": 1920, "height": 1080},
    {"width": 1366, "height": 768},
    {"width": 1536, "height": 864},
    {"width": 1440, "height": 900},
    {"width": 1280, "height": 720},
)

DEFAULT_HEADERS: Dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}

BLOCKING_PHRASES: tuple[str, ...] = (
    "captcha",
    "access denied",
    "unusual traffic",
    "request not permitted",
    "bot detected",
    "verification required",
    "are you a robot",
    "security check",
    "checking your browser",
)

OVERLAY_SELECTORS: tuple[str, ...] = (
    "#onetrust-accept-btn-handler",
    'button[id*="accept"]',
    'button[class*="accept"]',
    '[class*="cookie"] button',
    '[id*="cookie"] button',
    'button[aria-label="Close"]',
    ".modal .close",
    '[class*="popup"] [class*="close"]',
)

LOAD_MORE_SELECTORS: tuple[str, ...] = (
    'button[class*="load-more"]',
    'a[class*="load-more"]',
    'button[class*="show-more"]',
    '[data-action="load-more"]',
    ".load-more",
    ".show-more",
)

LAUNCH_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--disable-infobars",
)

# Скрывает navigator.webdriver и заполняет поля, которые проверяют антибот-скрипты.
STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = window.chrome || { runtime: {} };
"""

_SUBRESOURCE_TYPES = frozenset({"xhr", "fetch"})
_DYNAMIC_ROUNDS = 3


@dataclass(frozen=True, slots=True)
class Fingerprint:
    """Browser identity used for one context."""

    user_agent: str
    viewport: Dict[str, int]


def find_block_phrase(html: str) -> Optional[str]:
    """First blocking phrase found in *html* (case-insensitive), else ``None``."""
    lowered = html.lower()
    for phrase in BLOCKING_PHRASES:
        if phrase in lowered:
            return phrase
    return None


def is_blocked(html: str) -> bool:
    return find_block_phrase(html) is not None


class StealthFetcher:
    """
    Playwright-based fetcher with pacing, retries and block handling.

    Usage::

        async with StealthFetcher(cfg) as fetcher:
            result = await fetcher.fetch("https://example.com/")

    A pre-launched *browser* may be injected; it is then left open on exit.
    *sleep*, *rng* and *clock* are injectable so pacing can be tested
    without real waiting.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        browser: Optional[Browser] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self._browser = browser
        self._owns_browser = browser is None
        self._playwright: Optional[Playwright] = None
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._clock = clock
        self._contexts: Set[BrowserContext] = set()
        self._session_start = clock()
        self._request_times: List[float] = []
        # Crawl-delay из robots.txt, выставляется оркестратором
        self.crawl_delay: Optional[float] = None

    async def __aenter__(self) -> StealthFetcher:
        if self._browser is None:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless, args=list(LAUNCH_ARGS)
            )
            logger.debug("Chromium launched (headless=%s)", self.config.headless)
        self._session_start = self._clock()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close every open context and, if owned, the browser itself."""
        for context in list(self._contexts):
            await self._close_context(context)
        if self._owns_browser and self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as exc:
                logger.debug("Browser close failed: %s", exc)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    # ------------------------------------------------------------------ public

    def new_fingerprint(self) -> Fingerprint:
        return Fingerprint(
            user_agent=self._rng.choice(USER_AGENTS),
            viewport=dict(self._rng.choice(VIEWPORTS)),
        )

    def session_stats(self) -> Dict[str, float]:
        """Request count, session age and mean interval between requests."""
        count = len(self._request_times)
        mean = 0.0
        if count > 1:
            mean = (self._request_times[-1] - self._request_times[0]) / (count - 1)
        return {
            "requestCount": count,
            "sessionAgeSeconds": round(self._clock() - self._session_start, 3),
            "meanIntervalSeconds": round(mean, 3),
        }

    def pacing_delay(self) -> float:
        """Pause before the next request; grows with request count and session age.

        The base pause is ``delay_ms`` or the robots.txt ``Crawl-delay``, whichever is longer.
        """
        cfg = self.config
        count = len(self._request_times)
        age_minutes = (self._clock() - self._session_start) / 60.0
        base = max(cfg.delay, self.crawl_delay or 0.0)
        return (
            base
            + min(count * cfg.pacing_step, cfg.pacing_cap)
            + min(age_minutes * cfg.session_pacing_step, cfg.session_pacing_cap)
        )

    def backoff_delay(self, retry: int) -> float:
        cfg = self.config
        return min(cfg.backoff_cap, cfg.backoff_base * 2**retry) + self._rng.uniform(0, cfg.backoff_jitter)

    async def fetch(self, url: str, *, trigger_dynamic: bool = False) -> PageFetchResult:
        """
        Fetch *url* with up to ``max_attempts`` attempts.

        Retryable :class:`FetchError` s are retried with exponential backoff.
        HTTP 4xx and a page that stays blocked after one reload are final.
        """
        last_error: Optional[FetchError] = None
        attempt = 0
        for attempt in range(self.config.max_attempts):
            if attempt:
                wait = self.backoff_delay(attempt - 1)
                logger.info("Retry %d/%d for %s in %.1fs", attempt + 1, self.config.max_attempts, url, wait)
                await self._sleep(wait)
            try:
                result = await self._attempt(url, trigger_dynamic)
            except BlockedError as exc:
                logger.warning("%s", exc)
                return PageFetchResult(
                    url=url,
                    status=FetchStatus.BLOCKED,
                    blocked=True,
                    reloaded=True,
                    retry_count=attempt,
                    error=str(exc),
                )
            except FetchError as exc:
                last_error = exc
                logger.debug("Attempt %d for %s failed: %s", attempt + 1, url, exc.reason)
                if not exc.retryable:
                    break
            else:
                result.retry_count = attempt
                return result

        logger.warning("Giving up on %s: %s", url, last_error)
        return PageFetchResult(
            url=url,
            status=FetchStatus.ERROR,
            retry_count=attempt,
            error=str(last_error) if last_error else "unknown error",
            status_code=last_error.status_code if last_error else None,
        )

    # ----------------------------------------------------------------- attempt

    async def _attempt(self, url: str, trigger_dynamic: bool) -> PageFetchResult:
        await self._pace()
        context = await self._open_context(url)
        try:
            page = await context.new_page()
            subresources: List[str] = []
            page.on("request", lambda request: self._record_request(request, subresources))

            response = await page.goto(url, wait_until="domcontentloaded", timeout=self._timeout_ms)
            await self._settle(page)
            status_code = response.status if response is not None else None
            if status_code is not None and status_code >= 400:
                raise FetchError(
                    url,
                    f"HTTP {status_code}",
                    retryable=status_code >= 500 or status_code == 429,
                    status_code=status_code,
                )

            html = await page.content()
            reloaded = False
            phrase = find_block_phrase(html)
            if phrase:
                reloaded = True
                wait = self._rng.uniform(*self.config.block_reload_delay)
                logger.info("Block page on %s (%r), reloading in %.1fs", url, phrase, wait)
                await self._sleep(wait)
                await page.reload(wait_until="domcontentloaded", timeout=self._timeout_ms)
                await self._settle(page)
                html = await page.content()
                phrase = find_block_phrase(html)
                if phrase:
                    raise BlockedError(url, phrase)

            await self._dismiss_overlays(page)
            await self._simulate_human(page)
            if trigger_dynamic:
                await self._trigger_dynamic(page)

            return PageFetchResult(
                url=url,
                html=await page.content(),
                title=await page.title(),
                status_code=status_code,
                reloaded=reloaded,
                subresource_urls=list(dict.fromkeys(subresources)),
            )
        except PlaywrightError as exc:
            raise FetchError(url, str(exc)) from exc
        finally:
            await self._close_context(context)

    @property
    def _timeout_ms(self) -> float:
        return self.config.navigation_timeout * 1000

    async def _pace(self) -> None:
        wait = self.pacing_delay()
        if wait > 0:
            await self._sleep(wait)
        self._request_times.append(self._clock())

    async def _open_context(self, url: str) -> BrowserContext:
        if self._browser is None:
            raise RuntimeError("StealthFetcher is not started; use 'async with'")
        fingerprint = self.new_fingerprint()
        try:
            context = await self._browser.new_context(
                user_agent=fingerprint.user_agent,
                viewport=fingerprint.viewport,
                extra_http_headers=DEFAULT_HEADERS,
                locale="en-US",
            )
        except PlaywrightError as exc:
            raise FetchError(url, f"cannot open browser context: {exc}") from exc
        self._contexts.add(context)
        try:
            await context.add_init_script(STEALTH_SCRIPT)
        except PlaywrightError as exc:
            await self._close_context(context)
            raise FetchError(url, f"cannot prepare browser context: {exc}") from exc
        return context

    async def _close_context(self, context: BrowserContext) -> None:
        self._contexts.discard(context)
        try:
            await context.close()
        except PlaywrightError as exc:
            logger.debug("Context close failed: %s", exc)

    @staticmethod
    def _record_request(request: Any, sink: List[str]) -> None:
        if request.resource_type in _SUBRESOURCE_TYPES:
            sink.append(request.url)

    async def _settle(self, page: Page) -> None:
        # networkidle часто не наступает на тяжёлых сайтах, это не ошибка
        try:
            await page.wait_for_load_state("networkidle", timeout=self._timeout_ms / 3)
        except PlaywrightError:
            pass

    async def _dismiss_overlays(self, page: Page, selectors: Sequence[str] = OVERLAY_SELECTORS) -> None:
        for selector in selectors:
            try:
                element = await page.query_selector(selector)
                if element is not None and await element.is_visible():
                    await element.click(timeout=1000)
                    logger.debug("Dismissed overlay %s on %s", selector, page.url)
            except PlaywrightError:
                continue

    async def _simulate_human(self, page: Page) -> None:
        viewport = page.viewport_size or {"width": 1280, "height": 720}
        try:
            for _ in range(self._rng.randint(2, 4)):
                await page.mouse.move(
                    self._rng.randint(0, viewport["width"] - 1),
                    self._rng.randint(0, viewport["height"] - 1),
                    steps=self._rng.randint(5, 15),
                )
            for _ in range(self._rng.randint(1, 3)):
                await page.mouse.wheel(0, self._rng.randint(200, 800))
                await self._sleep(self._rng.uniform(0.1, 0.5))
            await page.mouse.click(self._rng.randint(1, 10), self._rng.randint(1, 10))
        except PlaywrightError as exc:
            logger.debug("Human simulation interrupted on %s: %s", page.url, exc)

    async def _trigger_dynamic(self, page: Page) -> None:
        for _ in range(_DYNAMIC_ROUNDS):
            clicked = False
            try:
                await page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
                for selector in LOAD_MORE_SELECTORS:
                    element = await page.query_selector(selector)
                    if element is not None and await element.is_visible():
                        await element.click(timeout=2000)
                        clicked = True
                        break
            except PlaywrightError as exc:
                logger.debug("Dynamic trigger failed on %s: %s", page.url, exc)
                return
            await self._settle(page)
            if not clicked:
                return
