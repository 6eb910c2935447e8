# File: tests/test_content.py
"""Извлечение основного текста и нарезка на чанки."""
import pytest

from site_harvest.exceptions import ExtractionError
from site_harvest.parser.chunker import chunk_id, chunk_text, content_hash
from site_harvest.parser.html_parser import extract_document, extract_main_text, extract_title

URL = "https://shop.example.com/about"


def test_chunk_offsets_and_lengths():
    text = "x" * 3900
    chunks = chunk_text(text, URL, size=2000, overlap=200, min_length=100)
    assert [c.offset for c in chunks] == [0, 1800, 3600]
    assert [len(c.text) for c in chunks] == [2000, 2000, 300]
    assert all(len(c.text) >= 100 for c in chunks)


def test_short_tail_is_dropped():
    chunks = chunk_text("y" * 3650, URL, size=2000, overlap=200, min_length=100)
    assert [c.offset for c in chunks] == [0, 1800]


def test_chunks_are_deterministic():
    text = "word " * 900
    first = chunk_text(text, URL)
    second = chunk_text(text, URL)
    assert first == second
    assert first[0].id == chunk_id(URL, 0)
    assert first[0].id != chunk_text(text, URL + "/other")[0].id
    assert first[0].word_count == len(first[0].text.split())


@pytest.mark.parametrize("size,overlap", [(0, 0), (100, 100), (100, -1)])
def test_chunk_rejects_bad_window(size, overlap):
    with pytest.raises(ValueError):
        chunk_text("text", URL, size=size, overlap=overlap)


def test_content_hash_is_sha256():
    assert content_hash("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


@pytest.mark.parametrize(
    "html,title",
    [
        ('<head><meta property="og:title" content="OG"><title>T</title></head><h1>H</h1>', "OG"),
        ("<head><title>  Page   title </title></head><h1>H</h1>", "Page title"),
        ("<body><h1>Heading</h1></body>", "Heading"),
        ("<body><p>nothing</p></body>", ""),
    ],
)
def test_title_priority(html, title):
    assert extract_title(html) == title


def test_boilerplate_is_removed():
    body = "Real content sentence. " * 20
    html = (
        "<html><body><header>Site header</header><nav>Menu link</nav>"
        '<div class="cookie-banner">Accept cookies</div>'
        f"<main><p>{body}</p><script>var x = 1;</script></main>"
        "<footer>Copyright</footer></body></html>"
    )
    text = extract_main_text(html)
    assert text.startswith("Real content sentence.")
    for noise in ("Site header", "Menu link", "Accept cookies", "var x", "Copyright"):
        assert noise not in text
    assert "  " not in text


def test_longest_container_wins():
    short = "Short main. " * 5
    long = "Long article body. " * 30
    html = f"<body><main>{short}</main><article>{long}</article></body>"
    assert extract_main_text(html).startswith("Long article body.")


def test_fallback_to_whole_document():
    html = "<body><main>tiny</main><div>" + "outside text " * 30 + "</div></body>"
    text = extract_main_text(html, min_length=200)
    assert "tiny" in text and "outside text" in text


def test_extract_document():
    body = "Paragraph about our company history and values. " * 100
    html = f"<html><head><title>About us</title></head><body><main><p>{body}</p></main></body></html>"
    document = extract_document(html, URL)
    assert document.url == URL
    assert document.title == "About us"
    assert document.content_hash == content_hash(document.full_text)
    assert document.word_count == len(document.full_text.split())
    assert len(document.chunks) >= 2
    data = document.to_dict()
    assert data["totalChunks"] == len(document.chunks)
    assert data["chunks"][0]["wordCount"] == document.chunks[0].word_count


def test_extract_document_prefers_fetched_title():
    html = "<html><head><title>Markup</title></head><body><main>" + "text " * 100 + "</main></body></html>"
    assert extract_document(html, URL, title="From browser").title == "From browser"


@pytest.mark.parametrize(
    "html",
    [
        "<html><body></body></html>",
        "<html><body><script>only()</script></body></html>",
        "<html><body><p>Too short</p></body></html>",
    ],
)
def test_extraction_error(html):
    with pytest.raises(ExtractionError) as info:
        extract_document(html, URL)
    assert info.value.url == URL
