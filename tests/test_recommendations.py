"""
tests/test_recommendations.py

Declarative recommendation rules: triggering, suppression, ordering.
"""

from __future__ import annotations

from trustaudit.aggregator import metric
from trustaudit.models import LinkHealth, LlmsAnalysis, MetricSet, SiteSignals
from trustaudit.recommendations import (
    RULES,
    Rule,
    RuleContext,
    absent,
    below,
    count_below,
    filter_by_category,
    generate,
)


def metrics_of(ratios: dict[str, tuple[float, float]], counts: dict[str, int] | None = None) -> MetricSet:
    return MetricSet(
        ratios={name: metric(name, numerator, denominator) for name, (numerator, denominator) in ratios.items()},
        counts=dict(counts or {}),
    )


def ids(recommendations) -> list[str]:
    return [item.rule_id for item in recommendations]


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


class TestPredicates:
    def test_absent(self) -> None:
        assert absent("x")(RuleContext(metrics_of({"x": (0, 1)})))
        assert not absent("x")(RuleContext(metrics_of({"x": (1, 1)})))
        assert not absent("x")(RuleContext(metrics_of({"x": (0, 0)})))
        assert not absent("x")(RuleContext(MetricSet()))

    def test_below(self) -> None:
        assert below("x", 80)(RuleContext(metrics_of({"x": (3, 4)})))
        assert not below("x", 75)(RuleContext(metrics_of({"x": (3, 4)})))
        assert not below("x", 80)(RuleContext(metrics_of({"x": (0, 0)})))

    def test_count_below(self) -> None:
        assert count_below("n", 3)(RuleContext(metrics_of({}, {"n": 2})))
        assert not count_below("n", 3)(RuleContext(metrics_of({}, {"n": 3})))
        assert not count_below("n", 3)(RuleContext(MetricSet()))


# ---------------------------------------------------------------------------
# generate()
# ---------------------------------------------------------------------------


class TestGenerate:
    def test_nothing_measured(self) -> None:
        assert generate(MetricSet()) == []

    def test_rule_ids_unique(self) -> None:
        assert len(ids(RULES)) == len(set(ids(RULES)))

    def test_sorted_by_priority(self) -> None:
        recommendations = generate(metrics_of({"https": (0, 1), "privacy_policy": (0, 1), "lang": (0, 1)}))
        assert ids(recommendations) == ["https-missing", "privacy-missing", "lang-missing"]
        assert [item.priority for item in recommendations] == [10, 9, 3]
        assert recommendations[0].severity == "critical"
        assert recommendations[0].message.startswith("Only 0% of pages are served over HTTPS")

    def test_ties_keep_table_order(self) -> None:
        recommendations = generate(metrics_of({"licenses": (0, 1), "privacy_policy": (0, 1)}))
        assert ids(recommendations) == ["privacy-missing", "licenses-missing"]

    def test_missing_title_suppresses_quality(self) -> None:
        recommendations = generate(metrics_of({"title": (1, 2), "title_quality": (20, 200)}))
        assert "title-missing" in ids(recommendations)
        assert "title-quality" not in ids(recommendations)

    def test_quality_fires_alone(self) -> None:
        recommendations = generate(metrics_of({"title": (2, 2), "title_quality": (100, 200)}))
        assert ids(recommendations) == ["title-quality"]
        assert "50/100" in recommendations[0].message

    def test_no_scientific_sources_suppresses_few(self) -> None:
        assert ids(generate(metrics_of({}, {"scientific_domains": 0}))) == ["scientific-none"]
        few = generate(metrics_of({}, {"scientific_domains": 2}))
        assert ids(few) == ["scientific-few"]
        assert few[0].message.startswith("Only 2 scientific source(s) linked")

    def test_not_applicable_author_metrics_stay_quiet(self) -> None:
        recommendations = generate(metrics_of({"article_author_coverage": (0, 0)}))
        assert recommendations == []

    def test_author_block_missing_suppresses_coverage(self) -> None:
        assert ids(generate(metrics_of({"article_author_coverage": (0, 3)}))) == ["author-block-missing"]
        assert ids(generate(metrics_of({"article_author_coverage": (1, 3)}))) == ["author-coverage-low"]

    def test_schema_rules(self) -> None:
        recommendations = generate(metrics_of({"schema_MedicalOrganization": (0, 1), "schema_FAQPage": (0, 1)}))
        assert ids(recommendations) == ["schema-MedicalOrganization", "schema-FAQPage"]
        assert [item.severity for item in recommendations] == ["warning", "info"]

    def test_site_details_in_messages(self) -> None:
        site = SiteSignals(
            links=LinkHealth(checked=2, broken=["https://dead.example/"]),
            llms=LlmsAnalysis(present=True, score=20, recommendations=["List each office."]),
        )
        recommendations = generate(
            metrics_of({"links_not_broken": (1, 2), "llms_present": (1, 1), "llms_quality": (20, 100)}), site
        )
        messages = {item.rule_id: item.message for item in recommendations}
        assert "https://dead.example/" in messages["broken-links"]
        assert messages["llms-quality"] == "llms.txt scores 20/100. List each office."

    def test_custom_rules(self) -> None:
        rule = Rule("custom", "trust", "info", 1, "Custom advice.", absent("x"))
        recommendations = generate(metrics_of({"x": (0, 1)}), rules=(rule,))
        assert ids(recommendations) == ["custom"]
        assert recommendations[0].message == "Custom advice."


class TestFilterByCategory:
    def test_filter(self) -> None:
        recommendations = generate(metrics_of({"https": (0, 1), "privacy_policy": (0, 1)}))
        assert ids(filter_by_category(recommendations, "trust")) == ["privacy-missing"]
        assert ids(filter_by_category(recommendations, "schema")) == []
