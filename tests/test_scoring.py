"""
tests/test_scoring.py

Weighted category scores and the overall score.

Coverage
--------
- Compliance example: https missing, everything else present => 60
- Renormalization over applicable components
- Categories with nothing measurable are omitted, not scored 0
- Count components with caps
- Overall score as the mean of scored categories
- Custom weight tables
"""

from __future__ import annotations

from trustaudit.aggregator import metric
from trustaudit.models import SCHEMA_TYPES, CategoryScore, MetricSet
from trustaudit.scoring import (
    CATEGORY_WEIGHTS,
    Component,
    component_fraction,
    overall_score,
    score_categories,
    score_category,
)


def metrics_of(ratios: dict[str, tuple[float, float]], counts: dict[str, int] | None = None) -> MetricSet:
    return MetricSet(
        ratios={name: metric(name, numerator, denominator) for name, (numerator, denominator) in ratios.items()},
        counts=dict(counts or {}),
    )


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


class TestComponentFraction:
    def test_ratio(self) -> None:
        assert component_fraction(Component("https", 40), metrics_of({"https": (1, 4)})) == 0.25

    def test_missing_metric(self) -> None:
        assert component_fraction(Component("https", 40), MetricSet()) is None

    def test_zero_denominator(self) -> None:
        assert component_fraction(Component("https", 40), metrics_of({"https": (0, 0)})) is None

    def test_capped_count(self) -> None:
        component = Component("scientific_domains", 25, cap=5)
        assert component_fraction(component, metrics_of({}, {"scientific_domains": 2})) == 0.4
        assert component_fraction(component, metrics_of({}, {"scientific_domains": 12})) == 1.0
        assert component_fraction(component, metrics_of({})) is None


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class TestScoreCategory:
    def test_compliance_example(self) -> None:
        metrics = metrics_of(
            {"https": (0, 1), "mobile_friendly": (1, 1), "robots_present": (1, 1), "sitemap_present": (1, 1)}
        )
        result = score_category("compliance", CATEGORY_WEIGHTS["compliance"], metrics)
        assert result == CategoryScore(category="compliance", score=60, applied_signal_count=4)

    def test_renormalized_over_applicable(self) -> None:
        metrics = metrics_of({"https": (1, 1), "mobile_friendly": (0, 1)})
        result = score_category("compliance", CATEGORY_WEIGHTS["compliance"], metrics)
        assert result.score == 57
        assert result.applied_signal_count == 2

    def test_nothing_applicable(self) -> None:
        metrics = metrics_of({"article_author_coverage": (0, 0), "author_credential_coverage": (0, 0)})
        assert score_category("authorship", CATEGORY_WEIGHTS["authorship"], metrics) is None

    def test_rounded_once(self) -> None:
        metrics = metrics_of(
            {"speed_desktop": (33.3, 100), "speed_mobile": (66.6, 100), "dup_www": (1, 1), "dup_slash": (0, 1)},
        )
        result = score_category("performance", CATEGORY_WEIGHTS["performance"], metrics)
        # (0.333 * 35 + 0.666 * 45 + 7) / 94 * 100
        assert result.score == 52

    def test_schema_halves_round_up(self) -> None:
        ratios = {f"schema_{name}": (0, 1) for name in SCHEMA_TYPES}
        ratios["schema_Physician"] = (1, 1)
        result = score_category("schema", CATEGORY_WEIGHTS["schema"], metrics_of(ratios))
        assert result == CategoryScore(category="schema", score=13, applied_signal_count=8)


class TestScoreCategories:
    def test_empty_categories_omitted(self) -> None:
        metrics = metrics_of(
            {
                "https": (0, 1),
                "mobile_friendly": (1, 1),
                "robots_present": (1, 1),
                "sitemap_present": (1, 1),
                "article_author_coverage": (0, 0),
                "privacy_policy": (1, 1),
            }
        )
        scores = {item.category: item.score for item in score_categories(metrics)}
        assert scores == {"compliance": 60, "trust": 100}
        assert "authorship" not in scores

    def test_custom_weights(self) -> None:
        weights = {"custom": (Component("a", 1), Component("b", 3))}
        scores = score_categories(metrics_of({"a": (1, 1), "b": (0, 1)}), weights)
        assert scores == [CategoryScore(category="custom", score=25, applied_signal_count=2)]


class TestOverallScore:
    def test_mean_of_scored_categories(self) -> None:
        categories = [
            CategoryScore(category="compliance", score=60, applied_signal_count=4),
            CategoryScore(category="trust", score=80, applied_signal_count=2),
        ]
        assert overall_score(categories) == 70

    def test_mean_halves_round_up(self) -> None:
        categories = [
            CategoryScore(category="compliance", score=60, applied_signal_count=4),
            CategoryScore(category="trust", score=61, applied_signal_count=2),
        ]
        assert overall_score(categories) == 61

    def test_no_categories(self) -> None:
        assert overall_score([]) == 0

    def test_unscored_category_excluded(self) -> None:
        categories = [
            CategoryScore(category="compliance", score=60, applied_signal_count=4),
            CategoryScore(category="authorship", score=0, applied_signal_count=0),
        ]
        assert overall_score(categories) == 60
