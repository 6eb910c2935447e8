# File: tests/test_pagination.py
import pytest

from site_harvest.pagination import (
    PAGINATION_TEMPLATES,
    listing_root,
    page_number,
    synthesize_pages,
    template_name,
)

ROOT = "https://shop.example.com/category/shoes/"


def test_synthesize_page_major_order():
    pages = synthesize_pages(ROOT, max_pages=3, templates=["page", "path_page"])
    assert pages == [
        ROOT + "?page=2",
        ROOT + "page/2",
        ROOT + "?page=3",
        ROOT + "page/3",
    ]


def test_synthesize_all_templates_is_duplicate_free():
    pages = synthesize_pages(ROOT, max_pages=5)
    assert len(pages) == len(set(pages)) == 4 * len(PAGINATION_TEMPLATES)
    assert ROOT not in pages


def test_synthesize_from_paginated_url_uses_root():
    assert synthesize_pages(ROOT + "?page=7&sort=price", max_pages=2, templates=["page"]) == [
        "https://shop.example.com/category/shoes/?sort=price&page=2"
    ]


def test_offset_templates_use_per_page():
    pages = synthesize_pages(ROOT, max_pages=3, templates=["offset", "start"], per_page=24)
    assert pages == [ROOT + "?offset=24", ROOT + "?start=24", ROOT + "?offset=48", ROOT + "?start=48"]


def test_unknown_template_raises():
    with pytest.raises(KeyError):
        synthesize_pages(ROOT, templates=["nope"])


def test_max_pages_below_two_yields_nothing():
    assert synthesize_pages(ROOT, max_pages=1) == []


@pytest.mark.parametrize(
    "url,root",
    [
        (ROOT + "?page=3", ROOT),
        (ROOT + "page/3", "https://shop.example.com/category/shoes"),
        (ROOT + "p4/", "https://shop.example.com/category/shoes"),
        (ROOT + "?sort=new&offset=40", ROOT + "?sort=new"),
        (ROOT, ROOT),
    ],
)
def test_listing_root(url, root):
    assert listing_root(url) == root


@pytest.mark.parametrize(
    "url,number,name",
    [
        (ROOT + "?page=3", 3, "page"),
        (ROOT + "?p=5", 5, "p"),
        (ROOT + "?offset=40", 3, "offset"),
        (ROOT + "?start=0", 1, "start"),
        (ROOT + "page/6", 6, "path_page"),
        (ROOT + "p7", 7, "path_p"),
        (ROOT, None, None),
    ],
)
def test_page_number_and_template_name(url, number, name):
    assert page_number(url) == number
    assert template_name(url) == name


def test_synthesized_urls_round_trip_template_and_page():
    for name in PAGINATION_TEMPLATES:
        first = synthesize_pages(ROOT, max_pages=4, templates=[name])
        assert [page_number(u) for u in first] == [2, 3, 4]
        assert {template_name(u) for u in first} == {name}
