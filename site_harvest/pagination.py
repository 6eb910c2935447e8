# File: site_harvest/pagination.py
"""Speculative "next page" URL synthesis for listing pages.

Candidates are generated from a small table of templates and handed to the
frontier like any discovered link. Nothing here checks that a page exists;
dead candidates are detected after the fetch.
"""
from __future__ import annotations

import re
from typing import Callable, Dict, Iterable, List, Optional, Sequence
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

__all__: Sequence[str] = (
    "PAGINATION_TEMPLATES",
    "PAGE_QUERY_KEYS",
    "listing_root",
    "page_number",
    "template_name",
    "synthesize_pages",
)

PAGE_QUERY_KEYS = ("page", "p", "offset", "start", "from")
_PATH_PAGE_RE = re.compile(r"/(?:page/\d+|p\d+)/?$", re.IGNORECASE)
_PATH_NUMBER_RE = re.compile(r"/(?:page/|p)(\d+)/?$", re.IGNORECASE)

_Template = Callable[[str, int, int], str]


def _with_query(url: str, key: str, value: int) -> str:
    parsed = urlparse(url)
    pairs = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k != key]
    pairs.append((key, str(value)))
    return urlunparse(parsed._replace(query=urlencode(pairs)))


def _with_path(url: str, suffix: str) -> str:
    parsed = urlparse(url)
    path = parsed.path.rstrip("/") + "/" + suffix
    return urlunparse(parsed._replace(path=path))


PAGINATION_TEMPLATES: Dict[str, _Template] = {
    "page": lambda url, n, per_page: _with_query(url, "page", n),
    "p": lambda url, n, per_page: _with_query(url, "p", n),
    "path_page": lambda url, n, per_page: _with_path(url, f"page/{n}"),
    "path_p": lambda url, n, per_page: _with_path(url, f"p{n}"),
    "offset": lambda url, n, per_page: _with_query(url, "offset", (n - 1) * per_page),
    "start": lambda url, n, per_page: _with_query(url, "start", (n - 1) * per_page),
}


def listing_root(url: str) -> str:
    """Strip pagination markers so every page of a listing maps to one root URL."""
    parsed = urlparse(url)
    pairs = [
        (k, v)
        for k, v in parse_qsl(parsed.query, keep_blank_values=True)
        if k.lower() not in PAGE_QUERY_KEYS
    ]
    path = _PATH_PAGE_RE.sub("", parsed.path) or "/"
    return urlunparse(parsed._replace(path=path, query=urlencode(pairs), fragment=""))


def page_number(url: str, per_page: int = 20) -> Optional[int]:
    """Best-effort 1-based page index encoded in *url*, or None."""
    query = dict(parse_qsl(urlparse(url).query))
    for key in ("page", "p"):
        if query.get(key, "").isdigit():
            return int(query[key])
    for key in ("offset", "start", "from"):
        if query.get(key, "").isdigit():
            return int(query[key]) // per_page + 1
    match = _PATH_NUMBER_RE.search(urlparse(url).path)
    return int(match.group(1)) if match else None


def synthesize_pages(
    url: str,
    max_pages: int = 50,
    templates: Optional[Iterable[str]] = None,
    per_page: int = 20,
) -> List[str]:
    """Candidate URLs for pages ``2..max_pages`` of the listing at *url*.

    The output is deterministic (page-major, template order as in
    :data:`PAGINATION_TEMPLATES`) and duplicate free. Unknown template names
    raise ``KeyError``.
    """
    names = list(PAGINATION_TEMPLATES) if templates is None else list(templates)
    builders = [PAGINATION_TEMPLATES[name] for name in names]
    root = listing_root(url)
    seen: set[str] = set()
    candidates: List[str] = []
    for n in range(2, max_pages + 1):
        for build in builders:
            candidate = build(root, n, per_page)
            if candidate not in seen:
                seen.add(candidate)
                candidates.append(candidate)
    return candidates


def template_name(url: str) -> Optional[str]:
    """Name of the template that produced *url*, inferred from its page marker."""
    query = dict(parse_qsl(urlparse(url).query))
    for name in ("page", "p", "offset", "start"):
        if query.get(name, "").isdigit():
            return name
    path = urlparse(url).path.rstrip("/")
    if re.search(r"/page/\d+$", path, re.IGNORECASE):
        return "path_page"
    if re.search(r"/p\d+$", path, re.IGNORECASE):
        return "path_p"
    return None
