"""Site-level checks that run once per audit, after the page fetch barrier."""

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import unquote_plus, urljoin, urlparse, urlunparse

from .config import DUPLICATE_CHECK_TIMEOUT, SITE_FILE_TIMEOUT, AuditSettings
from .errors import FetchError
from .models import (
    AuditTarget,
    DuplicateChecks,
    FetchOutcome,
    LinkHealth,
    NAPComparison,
    NAPData,
    PageSpeedScores,
    RatingResult,
    ReputationLookups,
    SiteSignals,
)
from .net import HttpClient, fetch_text, normalize_url
from .sitefiles import analyze_llms, analyze_robots, analyze_sitemap, parse_robots, round_half_up

logger = logging.getLogger(__name__)

PAGESPEED_ENDPOINT = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
REDIRECT_STATUSES = range(301, 309)


# ---------------------------------------------------------------------------
# Rating collaborators
# ---------------------------------------------------------------------------


class RatingLookup(Protocol):
    def lookup_rating(self, query: str, api_key: str) -> RatingResult: ...


class NAPLookup(Protocol):
    def lookup_nap(self, query: str, api_key: str) -> NAPData | None: ...


class RatingScraper(Protocol):
    def scrape_rating(self, url: str, platform: str) -> RatingResult: ...


@dataclass
class ReputationServices:
    rating_lookup: RatingLookup | None = None
    nap_lookup: NAPLookup | None = None
    rating_scraper: RatingScraper | None = None


# ---------------------------------------------------------------------------
# Site files
# ---------------------------------------------------------------------------


def _optional_text(client: HttpClient, url: str, timeout: float) -> str | None:
    try:
        return fetch_text(client, url, timeout).text
    except FetchError as exc:
        logger.info("Site file unavailable %s: %s", url, exc)
        return None


def check_site_files(
    client: HttpClient, base_url: str, signals: SiteSignals, timeout: float = SITE_FILE_TIMEOUT
) -> None:
    robots_text = _optional_text(client, urljoin(base_url, "/robots.txt"), timeout)
    signals.robots = analyze_robots(robots_text)

    sitemap_url = urljoin(base_url, "/sitemap.xml")
    sitemap_text = _optional_text(client, sitemap_url, timeout)
    if sitemap_text is None and robots_text:
        declared = parse_robots(robots_text)["sitemaps"]
        if declared:
            sitemap_url = urljoin(base_url, declared[0])
            sitemap_text = _optional_text(client, sitemap_url, timeout)
    signals.sitemap = analyze_sitemap(sitemap_text, sitemap_url)

    signals.llms = analyze_llms(_optional_text(client, urljoin(base_url, "/llms.txt"), timeout))


# ---------------------------------------------------------------------------
# Duplicate-content redirects
# ---------------------------------------------------------------------------


def _status(client: HttpClient, url: str) -> int:
    return client.head(url, DUPLICATE_CHECK_TIMEOUT).status


def _swap_www(url: str) -> str:
    parsed = urlparse(url)
    netloc = parsed.netloc
    netloc = netloc[4:] if netloc.startswith("www.") else f"www.{netloc}"
    return urlunparse(parsed._replace(netloc=netloc))


def check_www_duplicate(client: HttpClient, base_url: str) -> str:
    root = urlunparse(urlparse(base_url)._replace(path="/", query=""))
    try:
        statuses = (_status(client, root), _status(client, _swap_www(root)))
    except FetchError as exc:
        logger.info("www/non-www check failed: %s", exc)
        return "error"
    return "duplicate" if statuses == (200, 200) else "ok"


def check_trailing_slash_duplicate(client: HttpClient, page_url: str) -> str:
    parsed = urlparse(page_url)
    path = parsed.path or "/"
    if path == "/":
        return "ok"
    with_slash = urlunparse(parsed._replace(path=path.rstrip("/") + "/", query=""))
    without_slash = urlunparse(parsed._replace(path=path.rstrip("/"), query=""))
    try:
        statuses = (_status(client, with_slash), _status(client, without_slash))
    except FetchError as exc:
        logger.info("Trailing-slash check failed: %s", exc)
        return "error"
    return "duplicate" if statuses == (200, 200) else "ok"


def check_http_duplicate(client: HttpClient, base_url: str) -> str:
    parsed = urlparse(base_url)
    if parsed.scheme != "https":
        return "error"
    try:
        status = _status(client, urlunparse(parsed._replace(scheme="http")))
    except FetchError:
        return "ok"
    if status in REDIRECT_STATUSES:
        return "ok"
    return "duplicate" if status == 200 else "ok"


def check_duplicates(client: HttpClient, base_url: str, sample_url: str | None = None) -> DuplicateChecks:
    return DuplicateChecks(
        www_redirect=check_www_duplicate(client, base_url),
        trailing_slash=check_trailing_slash_duplicate(client, sample_url or base_url),
        http_redirect=check_http_duplicate(client, base_url),
    )


# ---------------------------------------------------------------------------
# PageSpeed and links
# ---------------------------------------------------------------------------


def performance_score(payload: dict[str, Any]) -> float | None:
    lighthouse = payload.get("lighthouseResult") or {}
    categories = lighthouse.get("categories") or {}
    score = (categories.get("performance") or {}).get("score")
    if isinstance(score, (int, float)):
        return round(float(score) * 100.0, 1)
    return None


def fetch_pagespeed(client: HttpClient, target_url: str, strategy: str, api_key: str, timeout: float) -> float | None:
    params: dict[str, Any] = {"url": target_url, "strategy": strategy, "category": "performance", "key": api_key}
    try:
        response = client.get(PAGESPEED_ENDPOINT, max(30, timeout * 2), params=params)
    except FetchError as exc:
        logger.warning("PageSpeed %s request failed: %s", strategy, exc)
        return None
    if not response.ok:
        logger.warning("PageSpeed %s returned HTTP %s", strategy, response.status)
        return None
    try:
        payload = json.loads(response.text)
    except json.JSONDecodeError as exc:
        logger.warning("PageSpeed %s returned invalid JSON: %s", strategy, exc)
        return None
    return performance_score(payload) if isinstance(payload, dict) else None


def check_pagespeed(client: HttpClient, target_url: str, api_key: str, timeout: float) -> PageSpeedScores:
    return PageSpeedScores(
        desktop=fetch_pagespeed(client, target_url, "desktop", api_key, timeout),
        mobile=fetch_pagespeed(client, target_url, "mobile", api_key, timeout),
    )


def collect_external_links(outcomes: list[FetchOutcome] | tuple[FetchOutcome, ...]) -> list[str]:
    links: list[str] = []
    for outcome in outcomes:
        if not outcome.ok or outcome.signals is None or outcome.signals.technical is None:
            continue
        links.extend(link.url for link in outcome.signals.technical.external_links)
    return list(dict.fromkeys(links))


def check_links(client: HttpClient, links: list[str], limit: int, timeout: float) -> LinkHealth:
    health = LinkHealth()
    for url in links[:limit]:
        health.checked += 1
        try:
            status = client.head(url, timeout).status
        except FetchError as exc:
            logger.debug("Link probe failed for %s: %s", url, exc)
            health.broken.append(url)
            continue
        if status >= 400:
            health.broken.append(url)
    return health


# ---------------------------------------------------------------------------
# Reputation enrichment
# ---------------------------------------------------------------------------

PLACE_RE = re.compile(r"/place/([^/@]+)")
CID_RE = re.compile(r"[?&]cid=([^&]+)")


def place_query_from_maps_url(url: str | None) -> str | None:
    if not url:
        return None
    match = PLACE_RE.search(url)
    if match:
        return unquote_plus(match.group(1)).strip() or None
    match = CID_RE.search(url)
    if match:
        return match.group(1)
    return None


def _normalize_name(value: str | None) -> str:
    text = re.sub(r"\s+", " ", (value or "").lower())
    return re.sub(r"(?<!\w)(тов|llc|ltd|limited)(?!\w)", "", text).strip(" ,.\"'«»")


def _normalize_address(value: str | None) -> str:
    text = re.sub(r"\s+", " ", (value or "").lower()).strip()
    return text.replace("м.", "м").replace("вул.", "вул").replace("пр.", "пр")


def _normalize_phone(value: str | None) -> str:
    return re.sub(r"\D", "", value or "")


def _contains_either(a: str, b: str) -> bool:
    return bool(a) and bool(b) and (a == b or a in b or b in a)


def compare_nap(website: NAPData, business_profile: NAPData | None) -> NAPComparison:
    comparison = NAPComparison(website=website, business_profile=business_profile)
    if business_profile is None:
        return comparison
    comparison.name_matches = _contains_either(_normalize_name(website.name), _normalize_name(business_profile.name))
    comparison.address_matches = _contains_either(
        _normalize_address(website.address), _normalize_address(business_profile.address)
    )
    website_phone = _normalize_phone(website.phone)
    comparison.phone_matches = bool(website_phone) and website_phone == _normalize_phone(business_profile.phone)
    matches = sum((comparison.name_matches, comparison.address_matches, comparison.phone_matches))
    comparison.match_percent = round_half_up(matches / 3 * 100)
    return comparison


def weighted_rating(results: list[RatingResult]) -> tuple[float | None, int]:
    rated = [item for item in results if item.fetched and item.rating is not None]
    if not rated:
        return None, 0
    weights = [item.review_count or 1 for item in rated]
    average = sum(item.rating * weight for item, weight in zip(rated, weights)) / sum(weights)  # type: ignore[operator]
    return round(average, 2), sum(item.review_count or 0 for item in rated)


def _site_nap(outcomes: list[FetchOutcome] | tuple[FetchOutcome, ...]) -> NAPData:
    for outcome in outcomes:
        trust = outcome.signals.trust if outcome.ok and outcome.signals else None
        if trust is not None and (trust.nap.name or trust.nap.address or trust.nap.phone):
            return trust.nap
    return NAPData()


def enrich_reputation(
    outcomes: list[FetchOutcome] | tuple[FetchOutcome, ...],
    services: ReputationServices,
    settings: AuditSettings,
) -> ReputationLookups:
    maps_url: str | None = None
    aggregator_urls: dict[str, str] = {}
    for outcome in outcomes:
        reputation = outcome.signals.reputation if outcome.ok and outcome.signals else None
        if reputation is None:
            continue
        maps_url = maps_url or reputation.maps_url
        for platform, url in reputation.aggregator_urls.items():
            aggregator_urls.setdefault(platform, url)

    nap = _site_nap(outcomes)
    nap_query = " ".join(part for part in (nap.name, nap.address) if part).strip()
    lookups = ReputationLookups()

    if services.rating_lookup is not None:
        query = place_query_from_maps_url(maps_url) or nap_query
        if query:
            try:
                lookups.maps = services.rating_lookup.lookup_rating(query, settings.maps_api_key)
            except Exception as exc:
                logger.warning("Maps rating lookup failed: %s", exc)
                lookups.maps = RatingResult()

    if services.rating_scraper is not None:
        for platform, url in aggregator_urls.items():
            try:
                lookups.aggregators[platform] = services.rating_scraper.scrape_rating(url, platform)
            except Exception as exc:
                logger.warning("%s rating scrape failed: %s", platform, exc)
                lookups.aggregators[platform] = RatingResult()
        lookups.aggregator_average, lookups.aggregator_review_count = weighted_rating(
            list(lookups.aggregators.values())
        )

    if services.nap_lookup is not None and nap_query:
        try:
            profile = services.nap_lookup.lookup_nap(nap_query, settings.business_api_key)
        except Exception as exc:
            logger.warning("Business profile lookup failed: %s", exc)
            profile = None
        if profile is not None:
            lookups.nap = compare_nap(nap, profile)
    return lookups


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def _slash_sample(outcomes: list[FetchOutcome] | tuple[FetchOutcome, ...]) -> str | None:
    for outcome in outcomes:
        if outcome.ok and (urlparse(outcome.url).path or "/") != "/":
            return outcome.url
    return None


def run_site_checks(
    target: AuditTarget,
    client: HttpClient,
    outcomes: list[FetchOutcome] | tuple[FetchOutcome, ...],
    settings: AuditSettings,
    services: ReputationServices | None = None,
    budget: float | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> SiteSignals:
    """Run the site-level checks the selected audits call for.

    With a ``budget`` (seconds left of the audit deadline), a check whose turn
    comes after the budget is spent is skipped and stays unmeasured.
    """
    base_url = normalize_url(target.base_url)
    signals = SiteSignals()
    stop_at = None if budget is None else clock() + budget

    def has_time(step: str) -> bool:
        if stop_at is not None and clock() >= stop_at:
            logger.warning("Audit deadline reached, skipping %s", step)
            return False
        return True

    def capped(timeout: float) -> float:
        if stop_at is None:
            return timeout
        return max(1.0, min(timeout, stop_at - clock()))

    if "technical" in target.audits:
        if has_time("site files"):
            check_site_files(client, base_url, signals, capped(min(settings.timeout, SITE_FILE_TIMEOUT)))
        if settings.check_duplicates and has_time("duplicate checks"):
            signals.duplicates = check_duplicates(client, base_url, _slash_sample(outcomes))
        if settings.pagespeed_key and has_time("PageSpeed"):
            signals.speed = check_pagespeed(client, base_url, settings.pagespeed_key, capped(settings.timeout))
        if settings.check_broken_links and has_time("link checks"):
            links = collect_external_links(outcomes)
            signals.links = check_links(client, links, settings.max_link_probes, capped(DUPLICATE_CHECK_TIMEOUT))
    if "trust" in target.audits and services is not None and has_time("reputation lookups"):
        signals.reputation = enrich_reputation(outcomes, services, settings)
    return signals
