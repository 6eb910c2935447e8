# site_harvest/crawler/link_extractor.py
"""
Role-tagged link extraction for SiteHarvest.

Selectors live in :data:`SELECTOR_GROUPS`, one group per link role, so the
tables can be tested and swapped per site without touching the fetch layer.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag

__all__ = (
    "LinkRole",
    "SELECTOR_GROUPS",
    "STRATEGIC_ROLES",
    "LISTING_ROLES",
    "extract_links",
    "flatten_links",
)


class LinkRole(str, Enum):
    NAVIGATION = "navigation"
    MEGA_MENU = "mega_menu"
    FOOTER = "footer"
    BREADCRUMB = "breadcrumb"
    SUBCATEGORY = "subcategory"
    PAGINATION = "pagination"
    PRODUCT = "product"
    GENERIC = "generic"


SELECTOR_GROUPS: Dict[LinkRole, tuple[str, ...]] = {
    LinkRole.NAVIGATION: (
        "nav a", ".navigation a", ".main-nav a", ".primary-nav a", ".navbar a",
        ".menu a", ".main-menu a", ".primary-menu a", "header nav a",
        '[role="navigation"] a',
    ),
    LinkRole.MEGA_MENU: (
        ".mega-menu a", ".dropdown-menu a", ".submenu a", ".dropdown a",
        ".sub-menu a", '[class*="mega"] a', ".nav-dropdown a", ".menu-dropdown a",
    ),
    LinkRole.FOOTER: (
        "footer a", ".footer a", ".site-footer a", ".page-footer a",
        '[role="contentinfo"] a',
    ),
    LinkRole.BREADCRUMB: (
        ".breadcrumb a", ".breadcrumbs a", ".breadcrumb-nav a",
        '[class*="breadcrumb"] a', ".crumbs a", ".trail a",
    ),
    LinkRole.SUBCATEGORY: (
        ".subcategory a", ".sub-category a", ".category a", ".department a",
        ".section a", ".collection a", '[class*="category"] a',
        '[class*="subcategory"] a', ".nav-category a", ".category-nav a",
        ".menu-category a",
    ),
    LinkRole.PAGINATION: (
        ".pagination a", ".pager a", ".page-numbers a", '[class*="pagination"] a',
        '[class*="pager"] a', "a.next-page", "a.prev-page", "a.page-link",
        'a[href*="page="]', 'a[href*="/page/"]', 'a[href*="?p="]', 'a[rel="next"]',
    ),
    LinkRole.PRODUCT: (
        ".product a", ".product-item a", ".product-card a", ".item a",
        ".catalog-item a", ".shop-item a", '[class*="product"] a',
        '[class*="item"] a', "a.product-link", "a.item-link", ".product-title a",
        ".product-name a", ".item-title a",
    ),
    LinkRole.GENERIC: ("a[href]",),
}

STRATEGIC_ROLES: tuple[LinkRole, ...] = (
    LinkRole.NAVIGATION,
    LinkRole.MEGA_MENU,
    LinkRole.FOOTER,
    LinkRole.BREADCRUMB,
)
LISTING_ROLES: tuple[LinkRole, ...] = (
    LinkRole.SUBCATEGORY,
    LinkRole.PAGINATION,
    LinkRole.PRODUCT,
)

_SKIP_SCHEMES = ("javascript:", "mailto:", "tel:", "data:")


def _base_href(soup: BeautifulSoup, page_url: str) -> str:
    base = soup.find("base", href=True)
    if isinstance(base, Tag):
        href = base.get("href")
        if isinstance(href, str) and href.strip():
            return urljoin(page_url, href.strip())
    return page_url


def _resolve(href: object, base: str) -> Optional[str]:
    if not isinstance(href, str):
        return None
    raw = href.strip()
    if not raw or raw.startswith("#") or raw.lower().startswith(_SKIP_SCHEMES):
        return None
    absolute = urljoin(base, raw)
    if urlparse(absolute).scheme not in ("http", "https"):
        return None
    return absolute


def extract_links(
    html: str,
    page_url: str,
    roles: Optional[Iterable[LinkRole]] = None,
    selector_groups: Mapping[LinkRole, Sequence[str]] = SELECTOR_GROUPS,
) -> Dict[LinkRole, List[str]]:
    """
    Extract absolute HTTP(S) links from *html*, grouped by link role.

    Relative hrefs resolve against ``<base href>`` or *page_url*. Fragment-only,
    ``javascript:``, ``mailto:``, ``tel:`` and ``data:`` hrefs are dropped.
    Domain policy is left to the frontier.
    """
    soup = BeautifulSoup(html, "html.parser")
    base = _base_href(soup, page_url)
    wanted = list(selector_groups) if roles is None else list(roles)
    result: Dict[LinkRole, List[str]] = {}
    for role in wanted:
        seen: set[str] = set()
        links: List[str] = []
        for selector in selector_groups.get(role, ()):
            for tag in soup.select(selector):
                if not isinstance(tag, Tag):
                    continue
                absolute = _resolve(tag.get("href"), base)
                if absolute and absolute not in seen:
                    seen.add(absolute)
                    links.append(absolute)
        result[role] = links
    return result


def flatten_links(groups: Mapping[LinkRole, Sequence[str]]) -> List[str]:
    """Ordered, duplicate-free union of all role groups."""
    return list(dict.fromkeys(url for links in groups.values() for url in links))
