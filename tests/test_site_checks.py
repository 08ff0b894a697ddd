"""
tests/test_site_checks.py

Site-level checks: site files, duplicate-content redirects, PageSpeed, link
health and reputation enrichment.
"""

from __future__ import annotations

import json

from fakes import FakeClient, html_page, sitemap_xml
from trustaudit.config import AuditSettings
from trustaudit.errors import FetchError
from trustaudit.extractors import extract_page_signals
from trustaudit.models import AuditTarget, FetchOutcome, NAPData, RatingResult, SiteSignals
from trustaudit.net import FetchResponse, parse_document
from trustaudit.site_checks import (
    PAGESPEED_ENDPOINT,
    ReputationServices,
    check_duplicates,
    check_http_duplicate,
    check_links,
    check_site_files,
    check_trailing_slash_duplicate,
    check_www_duplicate,
    compare_nap,
    enrich_reputation,
    fetch_pagespeed,
    performance_score,
    place_query_from_maps_url,
    run_site_checks,
    weighted_rating,
)

BASE = "https://clinic.example/"


# ---------------------------------------------------------------------------
# Site files
# ---------------------------------------------------------------------------


class TestSiteFiles:
    def test_all_missing(self) -> None:
        signals = SiteSignals()
        check_site_files(FakeClient(), BASE, signals)
        assert not signals.robots.present
        assert not signals.sitemap.present
        assert not signals.llms.present

    def test_sitemap_from_robots_fallback(self) -> None:
        client = FakeClient(
            pages={
                BASE + "robots.txt": "User-agent: *\nDisallow:\nSitemap: /custom.xml\n",
                BASE + "custom.xml": sitemap_xml([BASE]),
                BASE + "llms.txt": "# Clinic\n",
            }
        )
        signals = SiteSignals()
        check_site_files(client, BASE, signals)
        assert signals.robots.present
        assert signals.sitemap.present
        assert signals.sitemap.url_count == 1
        assert signals.llms.present


# ---------------------------------------------------------------------------
# Duplicate-content redirects
# ---------------------------------------------------------------------------


class TestDuplicates:
    def test_www_duplicate(self) -> None:
        client = FakeClient(heads={BASE: 200, "https://www.clinic.example/": 200})
        assert check_www_duplicate(client, BASE) == "duplicate"

    def test_www_redirect(self) -> None:
        client = FakeClient(heads={BASE: 200, "https://www.clinic.example/": 301})
        assert check_www_duplicate(client, BASE) == "ok"

    def test_www_error(self) -> None:
        client = FakeClient(heads={BASE: 200, "https://www.clinic.example/": FetchError("dns")})
        assert check_www_duplicate(client, BASE) == "error"

    def test_trailing_slash(self) -> None:
        url = BASE + "services"
        client = FakeClient(heads={url: 200, url + "/": 200})
        assert check_trailing_slash_duplicate(client, url) == "duplicate"
        client = FakeClient(heads={url: 200, url + "/": 301})
        assert check_trailing_slash_duplicate(client, url) == "ok"

    def test_trailing_slash_root_is_ok(self) -> None:
        assert check_trailing_slash_duplicate(FakeClient(), BASE) == "ok"

    def test_http_variant(self) -> None:
        assert check_http_duplicate(FakeClient(heads={"http://clinic.example/": 301}), BASE) == "ok"
        assert check_http_duplicate(FakeClient(heads={"http://clinic.example/": 200}), BASE) == "duplicate"
        assert check_http_duplicate(FakeClient(heads={"http://clinic.example/": FetchError("refused")}), BASE) == "ok"

    def test_http_base_not_applicable(self) -> None:
        assert check_http_duplicate(FakeClient(), "http://clinic.example/") == "error"

    def test_combined(self) -> None:
        client = FakeClient(heads={"http://clinic.example/": 200})
        checks = check_duplicates(client, BASE, BASE + "prices")
        assert checks.www_redirect == "ok"
        assert checks.trailing_slash == "ok"
        assert checks.http_redirect == "duplicate"


# ---------------------------------------------------------------------------
# PageSpeed and links
# ---------------------------------------------------------------------------

PAGESPEED_PAYLOAD = {"lighthouseResult": {"categories": {"performance": {"score": 0.87}}}}


class TestPageSpeed:
    def test_performance_score(self) -> None:
        assert performance_score(PAGESPEED_PAYLOAD) == 87.0
        assert performance_score({}) is None

    def test_fetch(self) -> None:
        client = FakeClient(pages={PAGESPEED_ENDPOINT: FetchResponse(status=200, text=json.dumps(PAGESPEED_PAYLOAD))})
        assert fetch_pagespeed(client, BASE, "mobile", "key-1", 30) == 87.0
        _, _, params = client.requests[0]
        assert params == {"url": BASE, "strategy": "mobile", "category": "performance", "key": "key-1"}

    def test_failures_return_none(self) -> None:
        assert fetch_pagespeed(FakeClient(), BASE, "mobile", "key", 30) is None
        bad_json = FakeClient(pages={PAGESPEED_ENDPOINT: FetchResponse(status=200, text="<html>")})
        assert fetch_pagespeed(bad_json, BASE, "desktop", "key", 30) is None
        down = FakeClient(pages={PAGESPEED_ENDPOINT: FetchError("down")})
        assert fetch_pagespeed(down, BASE, "desktop", "key", 30) is None


class TestLinks:
    def test_broken_links(self) -> None:
        client = FakeClient(
            heads={"https://a.example/": 200, "https://b.example/": 404, "https://c.example/": FetchError("dns")}
        )
        health = check_links(client, ["https://a.example/", "https://b.example/", "https://c.example/"], 20, 5)
        assert health.checked == 3
        assert health.broken == ["https://b.example/", "https://c.example/"]

    def test_link_limit(self) -> None:
        health = check_links(FakeClient(), ["https://a.example/", "https://b.example/"], 1, 5)
        assert health.checked == 1


# ---------------------------------------------------------------------------
# Reputation enrichment
# ---------------------------------------------------------------------------

REPUTATION_BODY = """
<span itemprop="name">Smile Clinic</span>
<div class="address">м. Київ, вул. Хрещатик, 1</div>
<a href="tel:+380441234567">call</a>
<a href="https://www.google.com/maps/place/Smile+Clinic/@50.45,30.52">Maps</a>
<a href="https://doc.ua/clinic/smile">Doc.ua</a>
<a href="https://helsi.me/smile">Helsi</a>
"""


class StubLookups:
    def __init__(self) -> None:
        self.queries: list[str] = []

    def lookup_rating(self, query: str, api_key: str) -> RatingResult:
        self.queries.append(query)
        return RatingResult(fetched=True, rating=4.8, review_count=120)

    def lookup_nap(self, query: str, api_key: str) -> NAPData | None:
        return NAPData(name="Smile Clinic", address="Київ, вул. Хрещатик, 1", phone="+38 (044) 123-45-67")

    def scrape_rating(self, url: str, platform: str) -> RatingResult:
        if platform == "Helsi":
            raise RuntimeError("layout changed")
        return RatingResult(fetched=True, rating=4.5, review_count=10)


def reputation_outcome() -> FetchOutcome:
    soup = parse_document(html_page(REPUTATION_BODY))
    return FetchOutcome(url=BASE, signals=extract_page_signals(soup, BASE), status=200)


class TestReputation:
    def test_place_query(self) -> None:
        assert place_query_from_maps_url("https://www.google.com/maps/place/Smile+Clinic/@50.4,30.5") == "Smile Clinic"
        assert place_query_from_maps_url("https://maps.google.com/?cid=123") == "123"
        assert place_query_from_maps_url(None) is None

    def test_compare_nap(self) -> None:
        comparison = compare_nap(
            NAPData(name="ТОВ Smile Clinic", address="м. Київ, вул. Хрещатик, 1", phone="+38 (044) 123-45-67"),
            NAPData(name="Smile Clinic", address="Київ, вул. Хрещатик, 1", phone="+380441234567"),
        )
        assert comparison.name_matches
        assert comparison.address_matches
        assert comparison.phone_matches
        assert comparison.match_percent == 100

    def test_compare_nap_partial(self) -> None:
        comparison = compare_nap(
            NAPData(name="Smile Clinic", phone="+380441234567"),
            NAPData(name="Other Place", phone="+380441234567"),
        )
        assert comparison.match_percent == 33

    def test_compare_nap_without_profile(self) -> None:
        assert compare_nap(NAPData(name="Smile"), None).match_percent == 0

    def test_weighted_rating(self) -> None:
        results = [
            RatingResult(fetched=True, rating=4.0, review_count=10),
            RatingResult(fetched=True, rating=5.0, review_count=30),
            RatingResult(),
        ]
        assert weighted_rating(results) == (4.75, 40)
        assert weighted_rating([RatingResult()]) == (None, 0)

    def test_enrich(self) -> None:
        stub = StubLookups()
        services = ReputationServices(rating_lookup=stub, nap_lookup=stub, rating_scraper=stub)
        lookups = enrich_reputation([reputation_outcome()], services, AuditSettings())
        assert stub.queries == ["Smile Clinic"]
        assert lookups.maps == RatingResult(fetched=True, rating=4.8, review_count=120)
        assert lookups.aggregators["Helsi"] == RatingResult()
        assert lookups.aggregator_average == 4.5
        assert lookups.aggregator_review_count == 10
        assert lookups.nap.match_percent == 100

    def test_run_site_checks_trust_only(self) -> None:
        stub = StubLookups()
        services = ReputationServices(rating_lookup=stub)
        signals = run_site_checks(
            AuditTarget(base_url=BASE, audits=("trust",)),
            FakeClient(),
            [reputation_outcome()],
            AuditSettings(),
            services,
        )
        assert signals.robots is None
        assert signals.duplicates is None
        assert signals.reputation.maps.rating == 4.8
        assert signals.reputation.nap is None

    def test_run_site_checks_with_pagespeed_key(self) -> None:
        client = FakeClient(pages={PAGESPEED_ENDPOINT: FetchResponse(status=200, text=json.dumps(PAGESPEED_PAYLOAD))})
        settings = AuditSettings(pagespeed_key="key", check_broken_links=False)
        signals = run_site_checks(AuditTarget(base_url=BASE), client, [reputation_outcome()], settings)
        assert signals.speed.mobile == 87.0
        assert signals.speed.desktop == 87.0
        assert signals.links is None
        assert signals.reputation is None


# ---------------------------------------------------------------------------
# Deadline budget
# ---------------------------------------------------------------------------


class ManualClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestBudget:
    def test_spent_budget_skips_network_checks(self) -> None:
        client = FakeClient()
        settings = AuditSettings()
        signals = run_site_checks(AuditTarget(base_url=BASE), client, [reputation_outcome()], settings, budget=0.0)
        assert signals.robots is None
        assert signals.duplicates is None
        assert signals.links is None
        assert client.requests == []

    def test_checks_after_the_deadline_are_skipped(self) -> None:
        clock = ManualClock()

        class SlowHeadClient(FakeClient):
            def head(self, url, timeout):
                clock.now += 10
                return super().head(url, timeout)

        client = SlowHeadClient()
        signals = run_site_checks(
            AuditTarget(base_url=BASE), client, [reputation_outcome()], AuditSettings(), budget=5.0, clock=clock
        )
        assert signals.robots is not None
        assert signals.duplicates is not None
        assert signals.links is None
        stub = StubLookups()
        signals = run_site_checks(
            AuditTarget(base_url=BASE),
            client,
            [reputation_outcome()],
            AuditSettings(),
            ReputationServices(rating_lookup=stub),
            budget=5.0,
            clock=clock,
        )
        assert signals.reputation is None
        assert stub.queries == []

    def test_no_budget_runs_everything(self) -> None:
        signals = run_site_checks(AuditTarget(base_url=BASE), FakeClient(), [reputation_outcome()], AuditSettings())
        assert signals.robots is not None
        assert signals.duplicates is not None
        assert signals.links is not None
