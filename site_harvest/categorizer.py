# File: site_harvest/categorizer.py
"""URL categorization by ordered pattern precedence.

A URL is checked against the category table first, then pagination, then
product; anything else is content. :func:`classify` is a pure function, so
the same URL always lands in the same bucket.
"""
from __future__ import annotations

import re
from typing import Pattern, Sequence

from site_harvest.crawler.models import URLCategory

__all__: Sequence[str] = (
    "CATEGORY_PATTERNS",
    "PAGINATION_PATTERNS",
    "PRODUCT_PATTERNS",
    "PRECEDENCE",
    "classify",
)

CATEGORY_PATTERNS: tuple[Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"/categor(y|ies)/",
        r"/shop/",
        r"/products/",
        r"/collections?/",
        r"/browse/",
        r"/catalog/",
        r"/departments?/",
        r"/sections?/",
    )
)

PAGINATION_PATTERNS: tuple[Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"/page/\d+",
        r"[?&]page=\d+",
        r"[?&]p=\d+",
        r"[?&]offset=\d+",
        r"/p\d+",
        r"/\d+/",
        r"[?&]start=\d+",
        r"[?&]from=\d+",
    )
)

PRODUCT_PATTERNS: tuple[Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"/product/",
        r"/item/",
        r"/p/",
        r"/sku/",
        r"/detail/",
        r"/view/",
        r"/[\w-]+\.html?$",
    )
)

PRECEDENCE: tuple[tuple[URLCategory, tuple[Pattern[str], ...]], ...] = (
    (URLCategory.CATEGORY, CATEGORY_PATTERNS),
    (URLCategory.PAGINATION, PAGINATION_PATTERNS),
    (URLCategory.PRODUCT, PRODUCT_PATTERNS),
)


def classify(url: str) -> URLCategory:
    """Return the single bucket for *url* (expected to be normalized)."""
    for category, patterns in PRECEDENCE:
        if any(p.search(url) for p in patterns):
            return category
    return URLCategory.CONTENT
