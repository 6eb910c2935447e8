# File: site_harvest/parser/sitemap_parser.py
"""site_harvest.parser.sitemap_parser: разбор sitemap.xml и sitemap-index."""

from __future__ import annotations

import gzip
from dataclasses import dataclass, field
from typing import List, Literal, Union

from lxml import etree

from site_harvest.exceptions import SitemapParseError

__all__ = ("ParsedSitemap", "parse_sitemap")

_GZIP_MAGIC = b"\x1f\x8b"


@dataclass(slots=True)
class ParsedSitemap:
    """Результат разбора: тип документа и адреса из тегов ``<loc>``."""

    kind: Literal["index", "urlset"]
    locations: List[str] = field(default_factory=list)

    @property
    def is_index(self) -> bool:
        return self.kind == "index"


def _as_bytes(content: Union[str, bytes], source: str) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    if content[:2] == _GZIP_MAGIC:
        try:
            return gzip.decompress(content)
        except (OSError, EOFError) as exc:
            raise SitemapParseError(source, f"bad gzip payload: {exc}") from exc
    return content


def parse_sitemap(content: Union[str, bytes], source: str = "<sitemap>") -> ParsedSitemap:
    """Разбирает sitemap и возвращает :class:`ParsedSitemap`.

    Args:
        content: XML (строка, байты или gzip).
        source: URL документа, используется в сообщениях об ошибках.

    Raises:
        SitemapParseError: документ пустой, битый или не является sitemap
        (корень не ``<urlset>`` и не ``<sitemapindex>``).

    Пример:
    ```python
    from site_harvest.parser.sitemap_parser import parse_sitemap

    parsed = parse_sitemap(open("sitemap.xml", "rb").read())
    if parsed.is_index:
        print("nested sitemaps:", parsed.locations)
    ```
    """
    data = _as_bytes(content, source).strip()
    if not data:
        raise SitemapParseError(source, "empty document")

    parser = etree.XMLParser(ns_clean=True, recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise SitemapParseError(source, str(exc)) from exc
    if root is None:
        raise SitemapParseError(source, "no XML root element")

    tag = etree.QName(root).localname.lower()
    if tag == "sitemapindex":
        kind: Literal["index", "urlset"] = "index"
        entries = root.findall("{*}sitemap/{*}loc")
    elif tag == "urlset":
        kind = "urlset"
        entries = root.findall("{*}url/{*}loc")
    else:
        raise SitemapParseError(source, f"unexpected root element <{tag}>")

    locations = [loc.text.strip() for loc in entries if loc.text and loc.text.strip()]
    return ParsedSitemap(kind=kind, locations=locations)
