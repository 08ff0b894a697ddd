"""Compare an audit against the previous one for the same domain."""

from __future__ import annotations

from .models import AuditResult, HistoryEntry, TrendReport


def summarize(result: AuditResult, domain: str) -> HistoryEntry:
    return HistoryEntry(
        domain=domain,
        timestamp=result.timestamp.isoformat(),
        overall=result.overall,
        categories=result.category_map(),
    )


def compare_scores(overall: int, categories: dict[str, int], previous: HistoryEntry | None) -> TrendReport:
    if previous is None:
        return TrendReport(first_audit=True)
    names = list(categories) + [name for name in previous.categories if name not in categories]
    deltas: dict[str, int | None] = {}
    for name in names:
        if name in categories and name in previous.categories:
            deltas[name] = categories[name] - previous.categories[name]
        else:
            deltas[name] = None
    return TrendReport(
        first_audit=False,
        previous_timestamp=previous.timestamp,
        overall_delta=overall - previous.overall,
        category_deltas=deltas,
    )


def compare(result: AuditResult, previous: HistoryEntry | None) -> TrendReport:
    """Deltas are current minus previous. A first audit has no trend at all."""
    return compare_scores(result.overall, result.category_map(), previous)
