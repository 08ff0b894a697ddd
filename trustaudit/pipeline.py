"""End-to-end audit orchestration."""

from __future__ import annotations

import dataclasses
import logging
import time
from datetime import UTC, datetime
from functools import partial

from .aggregator import aggregate
from .concurrency import run_batches
from .config import AuditSettings
from .discovery import discover
from .errors import FatalAggregationError
from .fetcher import deadline_outcome, fetch_and_extract, worker_error_outcome
from .history import HistoryStore, prune_history
from .models import AuditResult, AuditTarget, FetchOutcome
from .net import HttpClient, domain_key, normalize_url
from .recommendations import generate
from .scoring import overall_score, score_categories
from .site_checks import ReputationServices, run_site_checks
from .trend import compare, summarize

logger = logging.getLogger(__name__)


def fetch_pages(target: AuditTarget, client: HttpClient, settings: AuditSettings) -> list[FetchOutcome]:
    pages = discover(target, client, settings.timeout)
    worker = partial(fetch_and_extract, client=client, timeout=settings.timeout, audits=target.audits)
    return run_batches(
        pages,
        worker,
        concurrency=settings.concurrency,
        deadline=settings.deadline,
        on_timeout=deadline_outcome,
        on_error=worker_error_outcome,
    )


def run_audit(
    target: AuditTarget,
    client: HttpClient,
    settings: AuditSettings | None = None,
    services: ReputationServices | None = None,
    history: HistoryStore | None = None,
) -> AuditResult:
    """Discover, fetch, score and (optionally) compare against history.

    Raises ``FatalAggregationError`` when no page could be analyzed; no
    partial result is produced and history is left untouched in that case.
    """
    settings = settings or AuditSettings()
    started = time.monotonic()
    outcomes = fetch_pages(target, client, settings)
    succeeded = sum(1 for outcome in outcomes if outcome.ok)
    logger.info("Fetched %d pages: %d succeeded, %d failed", len(outcomes), succeeded, len(outcomes) - succeeded)
    if succeeded == 0:
        raise FatalAggregationError(len(outcomes))

    budget = None if settings.deadline is None else max(0.0, settings.deadline - (time.monotonic() - started))
    site = run_site_checks(target, client, outcomes, settings, services, budget=budget)
    metrics = aggregate(outcomes, site)
    categories = score_categories(metrics)
    result = AuditResult(
        target=target,
        timestamp=datetime.now(UTC),
        outcomes=tuple(outcomes),
        metrics=metrics,
        categories=tuple(categories),
        overall=overall_score(categories),
        recommendations=tuple(generate(metrics, site)),
        site=site,
    )

    if history is not None:
        result = record_history(result, history, settings.history_retention)
    return result


def record_history(result: AuditResult, history: HistoryStore, retention: int) -> AuditResult:
    """Attach the trend against the previous audit and store this one.

    An unreadable or unwritable history leaves ``trend`` unset; the audit
    result itself is still returned.
    """
    key = domain_key(normalize_url(result.target.base_url))
    try:
        previous = history.get_last(key)
    except (ValueError, OSError) as exc:
        logger.warning("History unavailable for %s, skipping trend: %s", key, exc)
        return result
    result = dataclasses.replace(result, trend=compare(result, previous))
    try:
        history.append(key, summarize(result, key))
        prune_history(history, key, retention)
    except (ValueError, OSError) as exc:
        logger.warning("Could not update history for %s: %s", key, exc)
    return result
