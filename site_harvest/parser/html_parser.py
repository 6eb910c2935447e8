# === FILE: site_harvest/parser/html_parser.py ===
"""Main-content extraction for SiteHarvest.

Pipeline: strip boilerplate (scripts, navigation, ads, popups) → evaluate the
prioritized container selectors in :data:`CONTENT_SELECTORS` and keep the one
with the longest text → fall back to the whole document when every candidate
is too short → collapse whitespace → chunk.

The selector tables are plain tuples so they can be swapped per site and
tested without a browser.
"""
from __future__ import annotations

import re
from collections.abc import Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_harvest.crawler.models import ContentDocument
from site_harvest.exceptions import ExtractionError
from site_harvest.parser.chunker import chunk_text, content_hash

__all__: Sequence[str] = (
    "NOISE_SELECTORS",
    "CONTENT_SELECTORS",
    "extract_title",
    "extract_main_text",
    "extract_document",
)

NOISE_SELECTORS: tuple[str, ...] = (
    "script", "style", "noscript", "template", "iframe", "svg",
    "nav", "header", "footer", "aside",
    ".sidebar", ".menu", ".navigation",
    '[class*="advert"]', '[id*="advert"]', ".ad", ".ads", '[class^="ad-"]', '[id^="ad-"]',
    '[class*="banner"]', '[id*="banner"]',
    '[class*="popup"]', '[id*="popup"]', '[class*="modal"]', '[id*="modal"]',
    '[class*="cookie"]', '[id*="cookie"]',
)

CONTENT_SELECTORS: tuple[str, ...] = (
    "main",
    '[role="main"]',
    ".main-content",
    ".content",
    ".post-content",
    ".article-content",
    ".page-content",
    "article",
    ".entry-content",
    "#content",
)

_WS_RE = re.compile(r"\s+")


def _normalize_ws(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def extract_title(html: str) -> str:
    """Page title: og:title, then ``<title>``, then the first ``<h1>``; ``""`` if absent."""
    soup = BeautifulSoup(html, "html.parser")
    og = soup.find("meta", attrs={"property": "og:title"})
    if isinstance(og, Tag):
        content = og.get("content")
        if isinstance(content, str) and content.strip():
            return content.strip()
    for name in ("title", "h1"):
        tag = soup.find(name)
        if tag:
            text = _normalize_ws(tag.get_text(" "))
            if text:
                return text
    return ""


def extract_main_text(
    html: str,
    min_length: int = 200,
    noise_selectors: Sequence[str] = NOISE_SELECTORS,
    content_selectors: Sequence[str] = CONTENT_SELECTORS,
) -> str:
    """Return the whitespace-normalized main text of *html*."""
    soup = BeautifulSoup(html, "html.parser")
    for selector in noise_selectors:
        for element in soup.select(selector):
            if isinstance(element, Tag) and element.name not in ("html", "body"):
                element.decompose()

    best = ""
    for selector in content_selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = _normalize_ws(element.get_text(" "))
        if len(text) > len(best):
            best = text

    if len(best) < min_length:
        best = _normalize_ws(soup.get_text(" "))
    return best


def extract_document(
    html: str,
    url: str,
    *,
    chunk_size: int = 2000,
    chunk_overlap: int = 200,
    min_chunk_length: int = 100,
    min_content_length: int = 200,
    title: str = "",
) -> ContentDocument:
    """Build a :class:`ContentDocument` from fetched *html*.

    Raises:
        ExtractionError: no text survives cleanup, or it is too short to yield
        a single chunk.
    """
    text = extract_main_text(html, min_length=min_content_length)
    if not text:
        raise ExtractionError(url, "no text after cleanup")
    chunks = chunk_text(text, url, size=chunk_size, overlap=chunk_overlap, min_length=min_chunk_length)
    if not chunks:
        raise ExtractionError(url, f"content too short ({len(text)} chars)")
    return ContentDocument(
        url=url,
        title=title or extract_title(html),
        full_text=text,
        word_count=len(text.split()),
        chunks=tuple(chunks),
        content_hash=content_hash(text),
    )
