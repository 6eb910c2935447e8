# site_harvest/crawler/models.py
"""
Data models for the SiteHarvest crawl engine.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional


class URLCategory(str, Enum):
    """Bucket a discovered URL belongs to. The four buckets partition the frontier."""

    CATEGORY = "category"
    PAGINATION = "pagination"
    PRODUCT = "product"
    CONTENT = "content"


class CrawlPhase(str, Enum):
    """Phase in which a target was first discovered."""

    SEED = "seed"
    SITEMAP = "sitemap"
    STRATEGIC = "strategic"
    CATEGORY = "category"
    DYNAMIC = "dynamic"
    EXHAUSTIVE = "exhaustive"


class FetchStatus(str, Enum):
    """Outcome class of a single page fetch."""

    SUCCESS = "success"
    BLOCKED = "blocked"
    ERROR = "error"


@dataclass(slots=True)
class CrawlTarget:
    """A normalized URL known to the frontier."""

    url: str
    category: URLCategory
    depth: int = 0
    discovered_at_phase: CrawlPhase = CrawlPhase.SEED


@dataclass(slots=True)
class PageFetchResult:
    """Fully materialized result of one fetch, including observed sub-resource URLs."""

    url: str
    html: str = ""
    status: FetchStatus = FetchStatus.SUCCESS
    blocked: bool = False
    retry_count: int = 0
    reloaded: bool = False
    title: str = ""
    status_code: Optional[int] = None
    error: Optional[str] = None
    subresource_urls: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.SUCCESS


@dataclass(slots=True, frozen=True)
class ContentChunk:
    """Overlapping slice of page text; ``id`` depends only on (url, offset)."""

    id: str
    text: str
    offset: int
    word_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "offset": self.offset,
            "wordCount": self.word_count,
        }


@dataclass(slots=True, frozen=True)
class ContentDocument:
    """Extracted text of one successfully fetched page."""

    url: str
    title: str
    full_text: str
    word_count: int
    chunks: tuple[ContentChunk, ...]
    content_hash: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "fullText": self.full_text,
            "wordCount": self.word_count,
            "contentHash": self.content_hash,
            "totalChunks": len(self.chunks),
            "chunks": [c.to_dict() for c in self.chunks],
        }


def _camel(name: str) -> str:
    head, *tail = name.split("_")
    return head + "".join(part.title() for part in tail)


@dataclass(slots=True)
class CrawlStats:
    """Counters aggregated over one crawl."""

    categories_found: int = 0
    pagination_found: int = 0
    products_found: int = 0
    content_pages_found: int = 0
    duplicates_skipped: int = 0
    errors_encountered: int = 0
    sitemap_urls_found: int = 0
    dynamic_urls_found: int = 0
    documents_emitted: int = 0
    duplicate_content_skipped: int = 0
    pagination_pruned: int = 0
    robots_disallowed: int = 0

    def record_category(self, category: URLCategory) -> None:
        if category is URLCategory.CATEGORY:
            self.categories_found += 1
        elif category is URLCategory.PAGINATION:
            self.pagination_found += 1
        elif category is URLCategory.PRODUCT:
            self.products_found += 1
        else:
            self.content_pages_found += 1

    def to_dict(self) -> Dict[str, int]:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}


@dataclass(slots=True, frozen=True)
class ProgressEvent:
    """Progress notification handed to the job-tracker callback."""

    phase: str
    message: str
    percentage: float
