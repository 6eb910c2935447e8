# File: tests/test_link_extractor.py
from site_harvest.crawler.link_extractor import (
    LISTING_ROLES,
    STRATEGIC_ROLES,
    LinkRole,
    extract_links,
    flatten_links,
)

PAGE = "https://shop.example.com/category/shoes/"

HTML = """
<html><body>
  <header><nav><a href="/">Home</a><a href="/category/bags/">Bags</a></nav></header>
  <div class="mega-menu"><a href="/category/hats/">Hats</a></div>
  <div class="breadcrumb"><a href="/category/">All</a></div>
  <ul class="subcategory"><li><a href="running/">Running</a></li></ul>
  <div class="product-card"><a href="/product/shoe-1">Shoe 1</a></div>
  <div class="product-card"><a href="/product/shoe-1#reviews">Shoe 1 reviews</a></div>
  <div class="pagination"><a href="?page=2">2</a><a rel="next" href="?page=2">Next</a></div>
  <a href="javascript:void(0)">js</a>
  <a href="mailto:shop@example.com">mail</a>
  <a href="tel:+100">call</a>
  <a href="#top">top</a>
  <a href="data:text/plain,hi">data</a>
  <footer><a href="https://shop.example.com/terms">Terms</a></footer>
</body></html>
"""


def test_roles_are_grouped():
    links = extract_links(HTML, PAGE)
    assert links[LinkRole.NAVIGATION] == ["https://shop.example.com/", "https://shop.example.com/category/bags/"]
    assert links[LinkRole.MEGA_MENU] == ["https://shop.example.com/category/hats/"]
    assert links[LinkRole.BREADCRUMB] == ["https://shop.example.com/category/"]
    assert links[LinkRole.FOOTER] == ["https://shop.example.com/terms"]
    assert "https://shop.example.com/category/shoes/running/" in links[LinkRole.SUBCATEGORY]
    assert links[LinkRole.PAGINATION] == ["https://shop.example.com/category/shoes/?page=2"]
    assert "https://shop.example.com/product/shoe-1" in links[LinkRole.PRODUCT]


def test_requested_roles_only():
    links = extract_links(HTML, PAGE, roles=STRATEGIC_ROLES)
    assert set(links) == set(STRATEGIC_ROLES)
    listing = extract_links(HTML, PAGE, roles=LISTING_ROLES)
    assert set(listing) == set(LISTING_ROLES)


def test_non_http_schemes_and_fragments_skipped():
    generic = extract_links(HTML, PAGE, roles=[LinkRole.GENERIC])[LinkRole.GENERIC]
    assert all(url.startswith("https://") for url in generic)
    assert not any(url.endswith("#top") or "javascript" in url for url in generic)
    assert len(generic) == len(set(generic))


def test_base_href_resolution():
    html = '<html><head><base href="https://cdn.shop.example.com/root/"></head><body><a href="x">x</a></body></html>'
    links = extract_links(html, PAGE, roles=[LinkRole.GENERIC])
    assert links[LinkRole.GENERIC] == ["https://cdn.shop.example.com/root/x"]


def test_custom_selector_groups():
    groups = {LinkRole.PRODUCT: (".tile a",)}
    html = '<div class="tile"><a href="/p/1">1</a></div><div class="product"><a href="/p/2">2</a></div>'
    links = extract_links(html, PAGE, selector_groups=groups)
    assert links == {LinkRole.PRODUCT: ["https://shop.example.com/p/1"]}


def test_flatten_links_preserves_first_occurrence():
    groups = {
        LinkRole.NAVIGATION: ["https://a.test/1", "https://a.test/2"],
        LinkRole.FOOTER: ["https://a.test/2", "https://a.test/3"],
    }
    assert flatten_links(groups) == ["https://a.test/1", "https://a.test/2", "https://a.test/3"]
