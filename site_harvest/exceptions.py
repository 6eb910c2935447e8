# File: site_harvest/exceptions.py
"""site_harvest.exceptions: error taxonomy of the crawl engine.

Only :class:`SeedValidationError` ever reaches the caller of a crawl; every
other error is absorbed by the orchestrator, logged with the offending URL and
counted in ``CrawlStats.errors_encountered``.
"""
from __future__ import annotations

from typing import Optional

__all__ = (
    "HarvestError",
    "SeedValidationError",
    "FetchError",
    "BlockedError",
    "SitemapParseError",
    "ExtractionError",
    "StoreError",
)


class HarvestError(Exception):
    """Base class for all SiteHarvest errors."""


class SeedValidationError(HarvestError, ValueError):
    """Seed URL is empty or malformed. Raised before any crawling starts."""

    def __init__(self, url: object, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid seed URL {url!r}: {reason}")


class FetchError(HarvestError):
    """Navigation failure or timeout for a single URL."""

    def __init__(
        self,
        url: str,
        reason: str,
        *,
        retryable: bool = True,
        status_code: Optional[int] = None,
    ) -> None:
        self.url = url
        self.reason = reason
        self.retryable = retryable
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class BlockedError(FetchError):
    """Page is still an anti-bot/verification page after the reload retry."""

    def __init__(self, url: str, phrase: str) -> None:
        self.phrase = phrase
        super().__init__(url, f"blocked (matched {phrase!r})", retryable=False)


class SitemapParseError(HarvestError):
    """Sitemap document is not well-formed or is not a sitemap at all."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot parse sitemap {source}: {reason}")


class ExtractionError(HarvestError):
    """No usable text is left after boilerplate removal."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Cannot extract content from {url}: {reason}")


class StoreError(HarvestError):
    """The content store rejected a document."""

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Cannot store {key}: {reason}")
