# File: tests/test_report.py
"""Хранилища документов, сборка отчёта и его рендеринг в JSON/HTML."""
import json
from urllib.parse import unquote

import pytest

from site_harvest.aggregator import build_report
from site_harvest.config import CrawlConfig
from site_harvest.crawler.frontier import Frontier
from site_harvest.crawler.models import CrawlPhase
from site_harvest.exceptions import StoreError
from site_harvest.parser.html_parser import extract_document
from site_harvest.report import render_html, render_json
from site_harvest.storage import ContentStore, FileContentStore, MemoryContentStore, document_key

BASE = "https://shop.example.com"


@pytest.fixture()
def document():
    html = "<html><head><title>Doc</title></head><body><main>" + "Some useful text. " * 40 + "</main></body></html>"
    return extract_document(html, f"{BASE}/doc")


@pytest.fixture()
def frontier():
    fr = Frontier.for_seed(BASE, CrawlConfig())
    for path in ("/", "/category/shoes/", "/product/a", "/product/b", "/blog/page/2", "/faq"):
        fr.add(BASE + path, phase=CrawlPhase.SITEMAP)
    fr.mark_visited(f"{BASE}/product/b")
    fr.mark_visited(f"{BASE}/faq")
    return fr


def test_document_key_encodes_url():
    key = document_key(f"{BASE}/a b?x=1")
    assert key.startswith("scraped-content/") and key.endswith(".json")
    name = key[len("scraped-content/") : -len(".json")]
    assert "/" not in name
    assert unquote(name) == f"{BASE}/a b?x=1"


def test_document_key_truncates_long_urls():
    first = document_key(f"{BASE}/" + "a" * 500)
    second = document_key(f"{BASE}/" + "a" * 501)
    assert first != second
    assert len(first) == len("scraped-content/") + 200 + len(".json")


def test_stores_satisfy_protocol(tmp_path):
    assert isinstance(MemoryContentStore(), ContentStore)
    assert isinstance(FileContentStore(tmp_path), ContentStore)


def test_file_store_writes_json(tmp_path, document):
    store = FileContentStore(tmp_path)
    key = document_key(document.url)
    store.put(key, document)
    data = json.loads((tmp_path / key).read_text(encoding="utf-8"))
    assert data["url"] == document.url
    assert data["title"] == "Doc"
    assert data["totalChunks"] == len(document.chunks)


def test_file_store_wraps_os_errors(tmp_path, document):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(StoreError):
        FileContentStore(blocker).put(document_key(document.url), document)


def test_build_report_orders_visited_first(frontier):
    report = build_report(frontier, frontier.stats, "shop.example.com", documents=["k1"])
    assert report.discovered_urls[:2] == [f"{BASE}/product/b", f"{BASE}/faq"]
    assert report.total_pages == 6
    assert report.visited_pages == 2
    assert report.by_category == {"category": 1, "pagination": 1, "product": 2, "content": 2}
    assert report.documents == ["k1"]


def test_build_report_caps_at_max_pages(frontier):
    report = build_report(frontier, frontier.stats, "shop.example.com", max_pages=3)
    assert report.total_pages == 3
    assert report.discovered_urls == [f"{BASE}/product/b", f"{BASE}/faq", f"{BASE}/"]
    assert sum(report.by_category.values()) == 3
    assert report.urls_by_category["content"] == [f"{BASE}/faq", f"{BASE}/"]


def test_report_json_keys(frontier):
    data = json.loads(build_report(frontier, frontier.stats, "shop.example.com").json())
    assert {"totalPages", "byCategory", "discoveredUrls", "stats"} <= set(data)
    assert data["stats"]["productsFound"] == 2
    assert data["stats"]["errorsEncountered"] == 0


def test_render_json_and_html(tmp_path, frontier):
    report = build_report(frontier, frontier.stats, "shop.example.com")
    json_path = render_json(report, tmp_path / "out" / "report.json", pretty=True)
    assert json.loads(json_path.read_text(encoding="utf-8"))["totalPages"] == 6

    html_path = render_html(report, None, tmp_path / "out" / "report.html")
    html = html_path.read_text(encoding="utf-8")
    assert "shop.example.com" in html
    assert f"{BASE}/product/a" in html


def test_render_html_custom_template(tmp_path, frontier):
    (tmp_path / "report.html.j2").write_text("{{ domain }}:{{ total_pages }}", encoding="utf-8")
    report = build_report(frontier, frontier.stats, "shop.example.com")
    path = render_html(report, tmp_path, tmp_path / "r.html")
    assert path.read_text(encoding="utf-8") == "shop.example.com:6"
