"""
tests/test_discovery.py

Page discovery: sitemap, robots.txt and internal-link sources, URL
classification, filtering and the page cap.

Coverage
--------
- classify_page / matches_filter
- Base URL always first and exempt from the filter
- Sitemap index children followed one level
- robots.txt Sitemap directives
- Off-host URLs dropped, duplicates collapsed
- max_pages cap
- Unusable sources skipped rather than fatal
- Internal-link crawl, www and bare host treated as one site
"""

from __future__ import annotations

import pytest

from fakes import FakeClient, html_page, sitemap_index, sitemap_xml
from trustaudit.discovery import classify_page, discover, matches_filter
from trustaudit.errors import FetchError
from trustaudit.models import AuditTarget

BASE = "https://clinic.example/"


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassifyPage:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://clinic.example/doctors/olena", "doctor-profile"),
            ("https://clinic.example/team/", "doctor-profile"),
            ("https://clinic.example/blog/implants", "blog"),
            ("https://clinic.example/news/2024", "blog"),
            ("https://clinic.example/article/caries", "article"),
            ("https://clinic.example/prices", "other"),
            ("https://clinic.example/", "other"),
        ],
    )
    def test_classification(self, url: str, expected: str) -> None:
        assert classify_page(url) == expected

    def test_percent_encoded_cyrillic_path(self) -> None:
        assert classify_page("https://clinic.example/%D0%BB%D1%96%D0%BA%D0%B0%D1%80%D1%96/olena") == "doctor-profile"


class TestMatchesFilter:
    def test_all_matches_everything(self) -> None:
        assert matches_filter("https://clinic.example/prices", "all")

    def test_blog_filter(self) -> None:
        assert matches_filter("https://clinic.example/blog/x", "blog")
        assert not matches_filter("https://clinic.example/doctors/x", "blog")

    def test_doctors_filter(self) -> None:
        assert matches_filter("https://clinic.example/team/anna", "doctors")


# ---------------------------------------------------------------------------
# discover()
# ---------------------------------------------------------------------------


class TestDiscover:
    def test_base_only_when_sources_missing(self) -> None:
        pages = discover(AuditTarget(base_url=BASE), FakeClient(), timeout=5)
        assert [page.url for page in pages] == [BASE]

    def test_sitemap_urls_follow_base(self) -> None:
        client = FakeClient(
            pages={
                BASE + "sitemap.xml": sitemap_xml(
                    [BASE, BASE + "blog/implants", BASE + "doctors/olena", "https://other.example/x"]
                )
            }
        )
        pages = discover(AuditTarget(base_url=BASE), client, timeout=5)
        assert [page.url for page in pages] == [BASE, BASE + "blog/implants", BASE + "doctors/olena"]
        assert [page.page_type for page in pages] == ["other", "blog", "doctor-profile"]

    def test_www_variant_counts_as_same_host(self) -> None:
        client = FakeClient(pages={BASE + "sitemap.xml": sitemap_xml(["https://www.clinic.example/prices"])})
        pages = discover(AuditTarget(base_url=BASE), client, timeout=5)
        assert "https://www.clinic.example/prices" in [page.url for page in pages]

    def test_sitemap_index_children(self) -> None:
        client = FakeClient(
            pages={
                BASE + "sitemap.xml": sitemap_index([BASE + "sitemap-pages.xml"]),
                BASE + "sitemap-pages.xml": sitemap_xml([BASE + "prices", BASE + "contacts"]),
            }
        )
        pages = discover(AuditTarget(base_url=BASE), client, timeout=5)
        assert [page.url for page in pages] == [BASE, BASE + "prices", BASE + "contacts"]

    def test_robots_sitemap_directive(self) -> None:
        client = FakeClient(
            pages={
                BASE + "robots.txt": "User-agent: *\nDisallow:\nSitemap: /custom-sitemap.xml\n",
                BASE + "custom-sitemap.xml": sitemap_xml([BASE + "prices"]),
            }
        )
        pages = discover(AuditTarget(base_url=BASE), client, timeout=5)
        assert [page.url for page in pages] == [BASE, BASE + "prices"]

    def test_robots_disabled(self) -> None:
        client = FakeClient(
            pages={
                BASE + "robots.txt": "Sitemap: /custom-sitemap.xml\n",
                BASE + "custom-sitemap.xml": sitemap_xml([BASE + "prices"]),
            }
        )
        pages = discover(AuditTarget(base_url=BASE, use_robots=False), client, timeout=5)
        assert [page.url for page in pages] == [BASE]
        assert BASE + "robots.txt" not in client.urls()

    def test_duplicates_collapsed_and_sitemap_read_once(self) -> None:
        client = FakeClient(
            pages={
                BASE + "sitemap.xml": sitemap_xml([BASE + "prices", BASE + "prices"]),
                BASE + "robots.txt": "Sitemap: https://clinic.example/sitemap.xml\n",
            }
        )
        pages = discover(AuditTarget(base_url=BASE), client, timeout=5)
        assert [page.url for page in pages] == [BASE, BASE + "prices"]
        assert client.urls().count(BASE + "sitemap.xml") == 1

    def test_filter_keeps_base(self) -> None:
        client = FakeClient(
            pages={BASE + "sitemap.xml": sitemap_xml([BASE + "prices", BASE + "blog/a", BASE + "blog/b"])}
        )
        pages = discover(AuditTarget(base_url=BASE, page_filter="blog"), client, timeout=5)
        assert [page.url for page in pages] == [BASE, BASE + "blog/a", BASE + "blog/b"]

    def test_max_pages_cap(self) -> None:
        urls = [f"{BASE}page-{index}" for index in range(30)]
        client = FakeClient(pages={BASE + "sitemap.xml": sitemap_xml(urls)})
        pages = discover(AuditTarget(base_url=BASE, max_pages=5), client, timeout=5)
        assert len(pages) == 5
        assert pages[0].url == BASE

    def test_invalid_sitemap_is_skipped(self) -> None:
        client = FakeClient(pages={BASE + "sitemap.xml": "<html>not a sitemap</html>"})
        pages = discover(AuditTarget(base_url=BASE), client, timeout=5)
        assert [page.url for page in pages] == [BASE]

    def test_network_error_is_skipped(self) -> None:
        client = FakeClient(pages={BASE + "sitemap.xml": FetchError("connection reset")})
        pages = discover(AuditTarget(base_url=BASE), client, timeout=5)
        assert [page.url for page in pages] == [BASE]

    def test_internal_link_crawl(self) -> None:
        body = (
            '<a href="/prices">Prices</a>'
            '<a href="mailto:info@clinic.example">Mail</a>'
            '<a href="https://other.example/">Elsewhere</a>'
            '<a href="#top">Top</a>'
            '<a href="/blog/a">Blog</a>'
        )
        client = FakeClient(pages={BASE: html_page(body)})
        target = AuditTarget(base_url=BASE, use_sitemap=False, use_robots=False, crawl_internal_links=True)
        pages = discover(target, client, timeout=5)
        assert [page.url for page in pages] == [BASE, BASE + "prices", BASE + "blog/a"]

    def test_link_cap(self) -> None:
        body = "".join(f'<a href="/p{index}">p</a>' for index in range(10))
        client = FakeClient(pages={BASE: html_page(body)})
        target = AuditTarget(
            base_url=BASE, use_sitemap=False, use_robots=False, crawl_internal_links=True, link_cap=3
        )
        pages = discover(target, client, timeout=5)
        assert len(pages) == 4

    def test_internal_links_across_www_variant(self) -> None:
        www = "https://www.clinic.example/"
        client = FakeClient(pages={www: html_page('<a href="https://clinic.example/prices">Prices</a>')})
        target = AuditTarget(base_url=www, use_sitemap=False, use_robots=False, crawl_internal_links=True)
        pages = discover(target, client, timeout=5)
        assert [page.url for page in pages] == [www, "https://clinic.example/prices"]


class TestAuditTarget:
    def test_rejects_zero_pages(self) -> None:
        with pytest.raises(ValueError):
            AuditTarget(base_url=BASE, max_pages=0)

    def test_rejects_unknown_filter(self) -> None:
        with pytest.raises(ValueError):
            AuditTarget(base_url=BASE, page_filter="shop")

    def test_rejects_unknown_audit(self) -> None:
        with pytest.raises(ValueError):
            AuditTarget(base_url=BASE, audits=("seo",))
