# File: tests/test_categorizer.py
import pytest

from site_harvest.categorizer import classify
from site_harvest.crawler.models import URLCategory

BASE = "https://shop.example.com"


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/category/shoes/", URLCategory.CATEGORY),
        ("/categories/bags/", URLCategory.CATEGORY),
        ("/collections/summer/", URLCategory.CATEGORY),
        ("/catalog/lamps/", URLCategory.CATEGORY),
        ("/blog/page/3", URLCategory.PAGINATION),
        ("/news?page=2", URLCategory.PAGINATION),
        ("/news?sort=new&p=4", URLCategory.PAGINATION),
        ("/list?offset=40", URLCategory.PAGINATION),
        ("/shoes/p2", URLCategory.PAGINATION),
        ("/p2-shoes", URLCategory.PAGINATION),
        ("/product/red-shoe", URLCategory.PRODUCT),
        ("/item/123abc", URLCategory.PRODUCT),
        ("/sku/XY-1", URLCategory.PRODUCT),
        ("/red-shoe.html", URLCategory.PRODUCT),
        ("/about-us", URLCategory.CONTENT),
        ("/", URLCategory.CONTENT),
    ],
)
def test_classify(path, expected):
    assert classify(BASE + path) is expected


def test_category_wins_over_pagination_and_product():
    # совпадает со всеми тремя таблицами
    assert classify(f"{BASE}/category/shoes/product/x.html?page=2") is URLCategory.CATEGORY
    assert classify(f"{BASE}/product/x?page=2") is URLCategory.PAGINATION


def test_classify_is_deterministic():
    urls = [f"{BASE}/category/a/", f"{BASE}/blog/page/2", f"{BASE}/product/x", f"{BASE}/faq"]
    first = [classify(u) for u in urls]
    assert [classify(u) for u in urls] == first
