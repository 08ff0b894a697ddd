"""Fold per-page outcomes and site signals into named percentage metrics.

Ratios keep their raw numerator and denominator so that a metric with no
eligible pages (denominator 0) stays distinguishable from a failing one.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from .models import SCHEMA_TYPES, AggregatedMetric, FetchOutcome, MetricSet, PageSignals, SiteSignals
from .sitefiles import round_half_up

R = TypeVar("R")

TRUST_PRESENCE = {
    "privacy_policy": lambda s: s.trust is not None and s.trust.has_privacy_policy,
    "licenses": lambda s: s.trust is not None and s.trust.has_licenses,
    "contact_page": lambda s: s.trust is not None and s.trust.has_contact_page,
    "nap_present": lambda s: s.trust is not None and s.trust.nap_present,
    "about_us": lambda s: s.trust is not None and s.trust.has_about_us_link,
    "team_links": lambda s: s.authorship is not None and s.authorship.has_team_links,
    "community_mentions": lambda s: s.authority is not None and s.authority.has_community_mentions,
    "media_links": lambda s: s.authority is not None and bool(s.authority.media_links),
    "publications": lambda s: s.authority is not None and bool(s.authority.publications),
    "associations": lambda s: s.authority is not None and bool(s.authority.associations),
    "case_studies": lambda s: s.experience is not None and s.experience.has_case_studies,
    "experience_figures": lambda s: s.experience is not None and s.experience.experience_figures_found,
    "maps_link": lambda s: s.reputation is not None and s.reputation.maps_url is not None,
}

TECHNICAL_PAGE_RATIOS = {
    "https": lambda t: t.https,
    "mobile_friendly": lambda t: t.mobile_friendly,
    "lang": lambda t: bool(t.lang),
    "canonical": lambda t: bool(t.canonical),
    "not_noindex": lambda t: not t.noindex,
    "hreflang": lambda t: bool(t.hreflangs),
    "h1": lambda t: t.h1_count == 1,
    "title": lambda t: bool(t.title),
    "description": lambda t: bool(t.description),
}


def metric(name: str, numerator: float, denominator: float) -> AggregatedMetric:
    percent = round_half_up(numerator / denominator * 100) if denominator > 0 else 0
    return AggregatedMetric(name=name, numerator=numerator, denominator=denominator, percent=max(0, min(100, percent)))


def _ratio(name: str, records: Iterable[R], condition: Callable[[R], bool]) -> AggregatedMetric:
    items = list(records)
    return metric(name, sum(1 for item in items if condition(item)), len(items))


def _site_presence(name: str, pages: list[PageSignals], condition: Callable[[PageSignals], bool]) -> AggregatedMetric:
    if not pages:
        return metric(name, 0, 0)
    return metric(name, 1 if any(condition(page) for page in pages) else 0, 1)


def _trust_metrics(pages: list[PageSignals], ratios: dict[str, AggregatedMetric], counts: dict[str, int]) -> None:
    articles = [p for p in pages if p.authorship is not None and p.authorship.is_article]
    ratios["article_author_coverage"] = _ratio(
        "article_author_coverage", articles, lambda p: p.authorship.has_author_block
    )
    ratios["article_medical_author"] = _ratio(
        "article_medical_author", articles, lambda p: p.authorship.is_medical_author
    )
    ratios["article_scientific_coverage"] = _ratio(
        "article_scientific_coverage",
        articles,
        lambda p: p.authority is not None and p.authority.scientific_sources_count > 0,
    )

    authors = [
        p
        for p in pages
        if (p.authorship is not None and p.authorship.has_author_block) or p.author_profile is not None
    ]
    ratios["author_credential_coverage"] = _ratio(
        "author_credential_coverage",
        authors,
        lambda p: (p.authorship is not None and p.authorship.has_author_block and p.authorship.author_credentials_found)
        or (p.author_profile is not None and p.author_profile.has_qualifications),
    )

    profiles = [p for p in pages if p.author_profile is not None]
    ratios["doctor_credential_coverage"] = _ratio(
        "doctor_credential_coverage",
        profiles,
        lambda p: p.author_profile.has_credentials_links
        or (p.doctor_credentials is not None and p.doctor_credentials.has_credentials),
    )
    ratios["author_profile_completeness"] = metric(
        "author_profile_completeness", sum(p.author_profile.completed for p in profiles), 4 * len(profiles)
    )

    cases = [p for p in pages if p.experience is not None and p.experience.case_study is not None]
    ratios["case_study_completeness"] = metric(
        "case_study_completeness", sum(p.experience.case_study.completeness_score for p in cases), 100 * len(cases)
    )
    ratios["case_study_pii_compliance"] = _ratio(
        "case_study_pii_compliance", cases, lambda p: p.experience.pii is None or p.experience.pii.is_compliant
    )

    trust_pages = [p for p in pages if p.trust is not None]
    for name, condition in TRUST_PRESENCE.items():
        ratios[name] = _site_presence(name, trust_pages, condition)

    if trust_pages:
        has_name = any(p.trust.has_legal_entity_name for p in trust_pages)
        has_registration = any(p.trust.has_registration_number for p in trust_pages)
        ratios["legal_entity"] = metric("legal_entity", int(has_name) + int(has_registration), 2)
        contact = (
            any(p.trust.has_email for p in trust_pages),
            any(p.trust.has_booking_form for p in trust_pages),
            any(p.trust.has_map for p in trust_pages),
        )
        ratios["contact_block"] = metric("contact_block", sum(contact), 3)
    else:
        ratios["legal_entity"] = metric("legal_entity", 0, 0)
        ratios["contact_block"] = metric("contact_block", 0, 0)

    authority = [p.authority for p in pages if p.authority is not None]
    if authority:
        counts["scientific_domains"] = len({domain for record in authority for domain in record.scientific_domains})

    reputation = [p.reputation for p in pages if p.reputation is not None]
    if reputation:
        counts["linked_platforms"] = len({item for record in reputation for item in record.linked_platforms})
        counts["social_networks"] = len({item for record in reputation for item in record.social_links})


def _technical_metrics(pages: list[PageSignals], ratios: dict[str, AggregatedMetric], counts: dict[str, int]) -> None:
    technical = [p.technical for p in pages if p.technical is not None]
    for name, condition in TECHNICAL_PAGE_RATIOS.items():
        ratios[name] = _ratio(name, technical, condition)

    ratios["title_quality"] = metric("title_quality", sum(t.title_quality.score for t in technical), 100 * len(technical))
    ratios["description_quality"] = metric(
        "description_quality", sum(t.description_quality.score for t in technical), 100 * len(technical)
    )
    ratios["canonical_quality"] = metric(
        "canonical_quality", sum(t.canonical_quality.score for t in technical), 100 * len(technical)
    )

    images = sum(t.images_total for t in technical)
    ratios["alt_coverage"] = metric("alt_coverage", images - sum(t.images_missing_alt for t in technical), images)

    links = {link.url: link for t in technical for link in t.external_links}
    ratios["dofollow_links"] = metric(
        "dofollow_links", sum(1 for link in links.values() if not link.nofollow), len(links)
    )

    for schema in SCHEMA_TYPES:
        name = f"schema_{schema}"
        if technical:
            ratios[name] = metric(name, 1 if any(schema in t.schema_types for t in technical) else 0, 1)
        else:
            ratios[name] = metric(name, 0, 0)

    if technical:
        counts["trusted_links"] = sum(1 for link in links.values() if link.trusted)


def _site_metrics(site: SiteSignals, ratios: dict[str, AggregatedMetric]) -> None:
    if site.robots is not None:
        ratios["robots_present"] = metric("robots_present", int(site.robots.present), 1)
        ratios["robots_quality"] = metric("robots_quality", site.robots.score, 100)
    if site.sitemap is not None:
        ratios["sitemap_present"] = metric("sitemap_present", int(site.sitemap.present), 1)
        ratios["sitemap_quality"] = metric("sitemap_quality", site.sitemap.score, 100)
    if site.llms is not None:
        ratios["llms_present"] = metric("llms_present", int(site.llms.present), 1)
        ratios["llms_quality"] = metric("llms_quality", site.llms.score, 100)

    if site.links is not None:
        ratios["links_not_broken"] = metric(
            "links_not_broken", site.links.checked - len(site.links.broken), site.links.checked
        )
    if site.speed is not None:
        if site.speed.desktop is not None:
            ratios["speed_desktop"] = metric("speed_desktop", site.speed.desktop, 100)
        if site.speed.mobile is not None:
            ratios["speed_mobile"] = metric("speed_mobile", site.speed.mobile, 100)
    if site.duplicates is not None:
        for name, state in (
            ("dup_www", site.duplicates.www_redirect),
            ("dup_slash", site.duplicates.trailing_slash),
            ("dup_http", site.duplicates.http_redirect),
        ):
            if state != "error":
                ratios[name] = metric(name, 1 if state == "ok" else 0, 1)

    lookups = site.reputation
    if lookups is not None:
        if lookups.maps is not None and lookups.maps.fetched and lookups.maps.rating is not None:
            ratios["maps_rating"] = metric("maps_rating", lookups.maps.rating, 5)
        if lookups.aggregator_average is not None:
            ratios["aggregator_rating"] = metric("aggregator_rating", lookups.aggregator_average, 5)
        if lookups.nap is not None:
            ratios["nap_match"] = metric("nap_match", lookups.nap.match_percent, 100)


def aggregate(outcomes: Iterable[FetchOutcome], site: SiteSignals | None = None) -> MetricSet:
    """Only successful outcomes contribute; failed pages are never counted."""
    pages = [outcome.signals for outcome in outcomes if outcome.ok and outcome.signals is not None]
    ratios: dict[str, AggregatedMetric] = {}
    counts: dict[str, int] = {}
    _trust_metrics(pages, ratios, counts)
    _technical_metrics(pages, ratios, counts)
    _site_metrics(site or SiteSignals(), ratios)
    return MetricSet(ratios=ratios, counts=counts)
