"""Weighted 0-100 category scores computed from a MetricSet.

Each category is a table of components. Components whose metric is missing
or has no eligible pages are skipped and the remaining weights are
renormalized, so a category is only ever scored on what was measured. A
category with nothing measurable is left out entirely.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import SCHEMA_TYPES, CategoryScore, MetricSet
from .sitefiles import round_half_up


@dataclass(frozen=True)
class Component:
    metric: str
    weight: float
    cap: int | None = None


CATEGORY_WEIGHTS: dict[str, tuple[Component, ...]] = {
    "compliance": (
        Component("https", 40),
        Component("mobile_friendly", 30),
        Component("robots_present", 15),
        Component("sitemap_present", 15),
    ),
    "authorship": (
        Component("article_author_coverage", 40),
        Component("author_credential_coverage", 30),
        Component("author_profile_completeness", 15),
        Component("doctor_credential_coverage", 15),
    ),
    "trust": (
        Component("privacy_policy", 20),
        Component("licenses", 15),
        Component("contact_page", 10),
        Component("nap_present", 15),
        Component("legal_entity", 10),
        Component("about_us", 10),
        Component("contact_block", 10),
        Component("nap_match", 10),
    ),
    "authority": (
        Component("scientific_domains", 25, cap=5),
        Component("article_scientific_coverage", 20),
        Component("community_mentions", 15),
        Component("media_links", 15),
        Component("publications", 10),
        Component("associations", 15),
    ),
    "reputation": (
        Component("linked_platforms", 30, cap=3),
        Component("social_networks", 20, cap=3),
        Component("maps_rating", 25),
        Component("aggregator_rating", 25),
    ),
    "experience": (
        Component("case_studies", 30),
        Component("experience_figures", 30),
        Component("case_study_completeness", 25),
        Component("case_study_pii_compliance", 15),
    ),
    "ai_readiness": (
        Component("llms_present", 30),
        Component("llms_quality", 25),
        Component("robots_quality", 25),
        Component("sitemap_quality", 20),
    ),
    "schema": tuple(Component(f"schema_{schema}", 12.5) for schema in SCHEMA_TYPES),
    "metadata": (
        Component("lang", 10),
        Component("canonical_quality", 20),
        Component("title_quality", 20),
        Component("description_quality", 20),
        Component("not_noindex", 15),
        Component("hreflang", 5),
        Component("h1", 10),
    ),
    "links_media": (
        Component("alt_coverage", 40),
        Component("links_not_broken", 30),
        Component("dofollow_links", 15),
        Component("trusted_links", 15, cap=5),
    ),
    "performance": (
        Component("speed_desktop", 35),
        Component("speed_mobile", 45),
        Component("dup_www", 7),
        Component("dup_slash", 7),
        Component("dup_http", 6),
    ),
}


def component_fraction(component: Component, metrics: MetricSet) -> float | None:
    """Fraction in [0, 1] achieved by ``component``, or ``None`` when not applicable."""
    if component.cap is not None:
        count = metrics.count(component.metric)
        if count is None:
            return None
        return min(count, component.cap) / component.cap
    ratio = metrics.ratio(component.metric)
    if ratio is None or ratio.denominator <= 0:
        return None
    return max(0.0, min(1.0, ratio.numerator / ratio.denominator))


def score_category(category: str, components: tuple[Component, ...], metrics: MetricSet) -> CategoryScore | None:
    earned = 0.0
    applicable_weight = 0.0
    applied = 0
    for component in components:
        fraction = component_fraction(component, metrics)
        if fraction is None:
            continue
        earned += fraction * component.weight
        applicable_weight += component.weight
        applied += 1
    if applied == 0 or applicable_weight <= 0:
        return None
    return CategoryScore(category=category, score=round_half_up(earned / applicable_weight * 100), applied_signal_count=applied)


def score_categories(
    metrics: MetricSet, weights: dict[str, tuple[Component, ...]] | None = None
) -> list[CategoryScore]:
    scores: list[CategoryScore] = []
    for category, components in (weights or CATEGORY_WEIGHTS).items():
        result = score_category(category, components, metrics)
        if result is not None:
            scores.append(result)
    return scores


def overall_score(categories: list[CategoryScore] | tuple[CategoryScore, ...]) -> int:
    scored = [item.score for item in categories if item.applied_signal_count > 0]
    if not scored:
        return 0
    return round_half_up(sum(scored) / len(scored))
