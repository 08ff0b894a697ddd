"""Serialize an AuditResult and write the REPORT.md / SUMMARY.json / RESULT.json files."""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any

from .models import AuditResult, Recommendation

CATEGORY_LABELS = {
    "compliance": "Compliance",
    "authorship": "Authorship & Expertise",
    "trust": "Trust & Transparency",
    "authority": "Authority",
    "reputation": "Reputation",
    "experience": "Experience",
    "ai_readiness": "AI Readiness",
    "schema": "Structured Data",
    "metadata": "Metadata",
    "links_media": "Links & Media",
    "performance": "Performance",
}
SEVERITY_ORDER = ("critical", "warning", "info")


def score_band(score: float) -> str:
    if score >= 90:
        return "Excellent"
    if score >= 80:
        return "Strong"
    if score >= 70:
        return "Good"
    if score >= 60:
        return "Needs Improvement"
    return "At Risk"


def score_grade(score: float) -> str:
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"


def result_to_dict(result: AuditResult) -> dict[str, Any]:
    payload = dataclasses.asdict(result)
    payload["timestamp"] = result.timestamp.isoformat()
    payload["succeeded"] = result.succeeded
    payload["failed"] = result.failed
    return payload


def result_to_json(result: AuditResult) -> str:
    return json.dumps(result_to_dict(result), indent=2, ensure_ascii=False)


def summary(result: AuditResult) -> dict[str, Any]:
    by_severity = {level: 0 for level in SEVERITY_ORDER}
    for item in result.recommendations:
        by_severity[item.severity] = by_severity.get(item.severity, 0) + 1
    trend = result.trend
    return {
        "target": result.target.base_url,
        "generated_at": result.timestamp.isoformat(),
        "overall_score": result.overall,
        "grade": score_grade(result.overall),
        "band": score_band(result.overall),
        "categories": result.category_map(),
        "pages_total": len(result.outcomes),
        "pages_succeeded": result.succeeded,
        "pages_failed": result.failed,
        "recommendations": by_severity,
        "trend": None
        if trend is None
        else {
            "first_audit": trend.first_audit,
            "previous_timestamp": trend.previous_timestamp,
            "overall_delta": trend.overall_delta,
            "category_deltas": dict(trend.category_deltas),
        },
    }


def _delta_text(delta: int | None) -> str:
    if delta is None:
        return "n/a"
    return f"{delta:+d}"


def _recommendation_lines(items: list[Recommendation]) -> str:
    if not items:
        return "- None."
    return "\n".join(f"- **[{item.severity}]** {item.message} (`{item.rule_id}`, priority {item.priority})" for item in items)


def render_markdown(result: AuditResult) -> str:
    trend = result.trend
    score_rows = []
    for item in result.categories:
        delta = ""
        if trend is not None and not trend.first_audit:
            delta = _delta_text(trend.category_deltas.get(item.category))
        label = CATEGORY_LABELS.get(item.category, item.category)
        score_rows.append(f"| {label} | {item.score} | {score_band(item.score)} | {item.applied_signal_count} | {delta} |")
    score_table = "\n".join(score_rows) if score_rows else "| - | - | - | - | - |"

    if trend is None:
        trend_line = "- Trend: no history available"
    elif trend.first_audit:
        trend_line = "- Trend: first audit for this domain"
    else:
        trend_line = f"- Trend: {_delta_text(trend.overall_delta)} since `{trend.previous_timestamp}`"

    failed_rows = [
        f"| {outcome.url} | {outcome.error_kind} | {outcome.error or ''} |" for outcome in result.outcomes if not outcome.ok
    ]
    failed_section = (
        "| URL | Kind | Detail |\n|---|---|---|\n" + "\n".join(failed_rows) if failed_rows else "- All pages fetched."
    )

    sections = []
    for level in SEVERITY_ORDER:
        items = [item for item in result.recommendations if item.severity == level]
        sections.append(f"### {level.title()} ({len(items)})\n\n{_recommendation_lines(items)}")

    return f"""# TRUST & TECHNICAL SEO AUDIT

## Executive Summary

- Generated: `{result.timestamp.isoformat()}`
- Target: `{result.target.base_url}`
- Overall Score: **{result.overall}/100** (Grade **{score_grade(result.overall)}**, Band **{score_band(result.overall)}**)
- Pages audited: **{len(result.outcomes)}** ({result.succeeded} succeeded, {result.failed} failed)
- Audits: {", ".join(result.target.audits)}
{trend_line}

## Category Scores

| Category | Score | Status | Signals | Change |
|---|---:|---|---:|---:|
{score_table}

## Recommendations

{chr(10).join(sections)}

## Failed Pages

{failed_section}
"""


def write_reports(output_dir: Path, result: AuditResult) -> dict[str, str]:
    output_dir.mkdir(parents=True, exist_ok=True)
    report_md = output_dir / "REPORT.md"
    summary_json = output_dir / "SUMMARY.json"
    result_json = output_dir / "RESULT.json"
    report_md.write_text(render_markdown(result), encoding="utf-8")
    summary_json.write_text(json.dumps(summary(result), indent=2, ensure_ascii=False), encoding="utf-8")
    result_json.write_text(result_to_json(result), encoding="utf-8")
    return {"report": str(report_md), "summary": str(summary_json), "result": str(result_json)}
