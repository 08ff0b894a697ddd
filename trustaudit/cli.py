"""Command-line entry point: ``trustaudit URL`` or ``python -m trustaudit URL``."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

from .config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_LINK_CAP,
    DEFAULT_MAX_PAGES,
    DEFAULT_TIMEOUT,
    MAX_PAGES_LIMIT,
    AuditSettings,
)
from .errors import FatalAggregationError
from .history import JsonHistoryStore
from .models import AUDIT_KINDS, PAGE_FILTERS, AuditTarget
from .net import RequestsClient, is_public_target, normalize_url
from .pipeline import run_audit
from .report import write_reports


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Audit a website's E-E-A-T trust signals and technical SEO.")
    parser.add_argument("url", help="Target site URL")
    parser.add_argument("--max-pages", type=int, default=DEFAULT_MAX_PAGES, help=f"Page cap (max {MAX_PAGES_LIMIT})")
    parser.add_argument("--timeout", type=int, default=DEFAULT_TIMEOUT, help="Per-request timeout in seconds")
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help=f"Pages fetched in parallel (default {DEFAULT_CONCURRENCY} or TRUSTAUDIT_CONCURRENCY)",
    )
    parser.add_argument(
        "--deadline", type=float, default=None, help="Overall deadline in seconds for page fetches and site checks"
    )
    parser.add_argument("--filter", choices=PAGE_FILTERS, default="all", help="Only audit pages of this type")
    parser.add_argument(
        "--audit",
        choices=["all", *AUDIT_KINDS],
        default="all",
        help="Which audit to run (trust, technical or all).",
    )
    parser.add_argument("--no-sitemap", action="store_true", help="Do not read sitemap.xml during discovery")
    parser.add_argument("--no-robots", action="store_true", help="Do not follow robots.txt sitemap directives")
    parser.add_argument("--crawl-links", action="store_true", help="Also collect internal links from the home page")
    parser.add_argument("--link-cap", type=int, default=DEFAULT_LINK_CAP, help="Internal links to collect")
    parser.add_argument(
        "--pagespeed-key",
        default=os.getenv("PAGESPEED_API_KEY", ""),
        help="Optional Google PageSpeed API key (or set PAGESPEED_API_KEY).",
    )
    parser.add_argument("--history-file", default="", help="JSON file used to track scores between runs")
    parser.add_argument("--output-dir", default="trustaudit-output", help="Output directory")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.max_pages < 1:
        print("Error: --max-pages must be >= 1")
        return 2
    if args.timeout < 1:
        print("Error: --timeout must be >= 1")
        return 2
    if args.concurrency is not None and args.concurrency < 1:
        print("Error: --concurrency must be >= 1")
        return 2
    if args.deadline is not None and args.deadline <= 0:
        print("Error: --deadline must be > 0")
        return 2

    try:
        target_url = normalize_url(args.url)
    except ValueError as exc:
        print(f"Error: {exc}")
        return 2
    if not is_public_target(target_url):
        print("Error: target URL resolves to non-public or invalid host")
        return 2

    target = AuditTarget(
        base_url=target_url,
        use_sitemap=not args.no_sitemap,
        use_robots=not args.no_robots,
        crawl_internal_links=args.crawl_links,
        max_pages=min(args.max_pages, MAX_PAGES_LIMIT),
        page_filter=args.filter,
        link_cap=max(0, args.link_cap),
        audits=AUDIT_KINDS if args.audit == "all" else (args.audit,),
    )
    settings = AuditSettings.from_env()
    settings.timeout = args.timeout
    settings.deadline = args.deadline
    settings.pagespeed_key = str(args.pagespeed_key or "").strip()
    if args.concurrency is not None:
        settings.concurrency = args.concurrency
    history = JsonHistoryStore(args.history_file) if args.history_file else None

    print(f"Audit target: {target_url}")
    print(f"Max pages: {target.max_pages} (filter: {target.page_filter}, audits: {', '.join(target.audits)})")
    print("Auditing...")
    try:
        result = run_audit(target, RequestsClient(), settings=settings, history=history)
    except FatalAggregationError as exc:
        print(f"Error: {exc}")
        return 1

    print(f"Pages: {result.succeeded} succeeded, {result.failed} failed")
    print("Writing reports...")
    artifacts = write_reports(Path(args.output_dir).resolve(), result)
    print(f"Done. Overall score: {result.overall}/100")
    if result.trend is not None:
        if result.trend.first_audit:
            print("Trend: first audit for this domain")
        else:
            print(f"Trend: {result.trend.overall_delta:+d} since {result.trend.previous_timestamp}")
    print(f"Report: {artifacts['report']}")
    print(f"Summary: {artifacts['summary']}")
    print(f"Result: {artifacts['result']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
