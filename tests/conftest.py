# File: tests/conftest.py
from __future__ import annotations

from collections import Counter
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import pytest
from playwright.async_api import Error as PlaywrightError

from site_harvest.config import CrawlConfig
from site_harvest.crawler.models import FetchStatus, PageFetchResult
from site_harvest.crawler.sitemap import SitemapDiscovery

LOREM = (
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit, sed do eiusmod tempor "
    "incididunt ut labore et dolore magna aliqua. Ut enim ad minim veniam, quis nostrud "
    "exercitation ullamco laboris nisi ut aliquip ex ea commodo consequat. "
)


def pytest_configure(config):
    """Register custom markers so that `--strict-markers` does not fail."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


def article(title: str, body: str = "", links: str = "") -> str:
    """HTML page with enough main text to yield at least one chunk."""
    return (
        f"<html><head><title>{title}</title></head><body>"
        f"<nav>{links}</nav>"
        f"<main><h1>{title}</h1><p>{title}. {LOREM}{body}</p></main>"
        "</body></html>"
    )


# --------------------------------------------------------------------------- #
#                               Configs                                       #
# --------------------------------------------------------------------------- #


@pytest.fixture()
def fast_config() -> CrawlConfig:
    """Config without any pacing or backoff waits."""
    return CrawlConfig(
        delay_ms=0,
        pacing_step=0,
        session_pacing_step=0,
        backoff_base=0,
        backoff_jitter=0,
        block_reload_delay=(0.0, 0.0),
        user_agent="TestAgent/1.0",
        sitemap_timeout=2.0,
        robots_timeout=2.0,
    )


@pytest.fixture()
def sleeps() -> List[float]:
    return []


@pytest.fixture()
def fake_sleep(sleeps) -> Callable[[float], Any]:
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep


# --------------------------------------------------------------------------- #
#                        Orchestrator-level fakes                             #
# --------------------------------------------------------------------------- #


class FakeFetcher:
    """Serves scripted pages; unknown URLs get a generic article page."""

    def __init__(self, pages: Optional[Dict[str, Union[str, PageFetchResult]]] = None) -> None:
        self.pages = pages or {}
        self.calls: List[Tuple[str, bool]] = []

    async def fetch(self, url: str, *, trigger_dynamic: bool = False) -> PageFetchResult:
        self.calls.append((url, trigger_dynamic))
        page = self.pages.get(url)
        if isinstance(page, PageFetchResult):
            return page
        html = page if page is not None else article(url)
        return PageFetchResult(url=url, html=html, status=FetchStatus.SUCCESS, status_code=200)

    @property
    def fetched(self) -> List[str]:
        return [url for url, dynamic in self.calls if not dynamic]


class FakeResolver:
    def __init__(self, urls: Sequence[str] = (), parse_errors: int = 0, robots=None) -> None:
        self.discovery = SitemapDiscovery(urls=list(urls), parse_errors=parse_errors, robots=robots)
        self.calls: List[str] = []

    async def resolve(self, base_url: str) -> SitemapDiscovery:
        self.calls.append(base_url)
        return self.discovery


# --------------------------------------------------------------------------- #
#                        Playwright-level fakes                               #
# --------------------------------------------------------------------------- #

_Response = Union[str, Tuple[int, str], Exception]


class FakeSite:
    """
    Scripted responses per URL. A list is consumed in order (the last entry
    repeats); an exception instance is raised from ``goto``/``reload``.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, Union[_Response, List[_Response]]]] = None,
        requests: Optional[Dict[str, List[Tuple[str, str]]]] = None,
    ) -> None:
        self.pages = {u: r if isinstance(r, list) else [r] for u, r in (pages or {}).items()}
        self.requests = requests or {}
        self.hits: Counter[str] = Counter()
        self.gotos: Counter[str] = Counter()
        self.reloads: Counter[str] = Counter()

    def serve(self, url: str) -> Tuple[int, str]:
        self.hits[url] += 1
        responses = self.pages.get(url)
        if responses is None:
            return 404, "<html><body>Not found</body></html>"
        response = responses[min(self.hits[url], len(responses)) - 1]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, str):
            return 200, response
        return response


class FakeResponse:
    def __init__(self, status: int) -> None:
        self.status = status


class FakeRequest:
    def __init__(self, resource_type: str, url: str) -> None:
        self.resource_type = resource_type
        self.url = url


class FakeMouse:
    def __init__(self) -> None:
        self.actions: List[str] = []

    async def move(self, x, y, steps=1):
        self.actions.append("move")

    async def wheel(self, dx, dy):
        self.actions.append("wheel")

    async def click(self, x, y, **kwargs):
        self.actions.append("click")


class FakePage:
    def __init__(self, site: FakeSite, viewport: Dict[str, int]) -> None:
        self.site = site
        self.url = "about:blank"
        self.viewport_size = viewport
        self.mouse = FakeMouse()
        self.evaluated: List[str] = []
        self._html = ""
        self._handlers: Dict[str, List[Callable[[Any], None]]] = {}

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def _load(self, url: str) -> FakeResponse:
        status, self._html = self.site.serve(url)
        for resource_type, req_url in self.site.requests.get(url, []):
            for handler in self._handlers.get("request", []):
                handler(FakeRequest(resource_type, req_url))
        return FakeResponse(status)

    async def goto(self, url: str, wait_until=None, timeout=None) -> FakeResponse:
        self.url = url
        self.site.gotos[url] += 1
        return self._load(url)

    async def reload(self, wait_until=None, timeout=None) -> FakeResponse:
        self.site.reloads[self.url] += 1
        return self._load(self.url)

    async def wait_for_load_state(self, state="load", timeout=None) -> None:
        return None

    async def content(self) -> str:
        return self._html

    async def title(self) -> str:
        start = self._html.find("<title>")
        end = self._html.find("</title>")
        return self._html[start + 7 : end] if start != -1 and end != -1 else ""

    async def query_selector(self, selector: str):
        return None

    async def evaluate(self, script: str):
        self.evaluated.append(script)


class FakeContext:
    def __init__(self, site: FakeSite, options: Dict[str, Any]) -> None:
        self.site = site
        self.options = options
        self.init_scripts: List[str] = []
        self.pages: List[FakePage] = []
        self.closed = False

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    async def new_page(self) -> FakePage:
        page = FakePage(self.site, self.options["viewport"])
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, site: FakeSite, fail_contexts: bool = False) -> None:
        self.site = site
        self.fail_contexts = fail_contexts
        self.contexts: List[FakeContext] = []
        self.closed = False

    async def new_context(self, **options: Any) -> FakeContext:
        if self.fail_contexts:
            raise PlaywrightError("browser has been closed")
        context = FakeContext(self.site, options)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True
