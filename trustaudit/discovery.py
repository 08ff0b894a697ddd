"""Resolve a base URL into a bounded, deduplicated list of pages to audit."""

from __future__ import annotations

import logging
from urllib.parse import unquote, urljoin, urlparse

from .errors import DiscoveryError, FetchError
from .models import AuditTarget, DiscoveredPage
from .net import HttpClient, absolute_url, fetch_text, normalize_url, parse_document, same_host
from .sitefiles import parse_robots, parse_sitemap_xml

logger = logging.getLogger(__name__)

FILTER_PATTERNS = {
    "blog": ["/blog", "/news", "/articles", "/статті"],
    "doctors": ["/doctors", "/team", "/врачи", "/лікарі", "/likari"],
    "articles": ["/article", "/post", "/стаття"],
}

# Checked in order; the first hit wins.
CLASSIFICATION = [
    ("doctor-profile", FILTER_PATTERNS["doctors"]),
    ("blog", FILTER_PATTERNS["blog"]),
    ("article", FILTER_PATTERNS["articles"]),
]

SKIPPED_SCHEMES = ("mailto:", "tel:", "javascript:", "#")


def _path_of(url: str) -> str:
    return unquote(urlparse(url).path or "/").lower()


def classify_page(url: str) -> str:
    path = _path_of(url)
    for page_type, patterns in CLASSIFICATION:
        if any(pattern in path for pattern in patterns):
            return page_type
    return "other"


def matches_filter(url: str, page_filter: str) -> bool:
    if page_filter == "all":
        return True
    path = _path_of(url)
    return any(pattern in path for pattern in FILTER_PATTERNS.get(page_filter, []))


def _read_sitemap(client: HttpClient, sitemap_url: str, timeout: float) -> tuple[list[str], list[str]]:
    try:
        response = fetch_text(client, sitemap_url, timeout)
        sitemap = parse_sitemap_xml(response.text, sitemap_url)
    except (FetchError, ValueError) as exc:
        raise DiscoveryError(f"sitemap {sitemap_url} unusable: {exc}") from exc
    return [entry["loc"] or "" for entry in sitemap.urls], sitemap.children


def sitemap_urls(client: HttpClient, sitemap_url: str, timeout: float, visited: set[str], depth: int = 1) -> list[str]:
    """Collect page URLs from a sitemap, following index children ``depth`` levels."""
    if sitemap_url in visited:
        return []
    visited.add(sitemap_url)
    try:
        locs, children = _read_sitemap(client, sitemap_url, timeout)
    except DiscoveryError as exc:
        logger.warning("Skipping sitemap source: %s", exc)
        return []
    if depth > 0:
        for child in children:
            locs.extend(sitemap_urls(client, child, timeout, visited, depth - 1))
    elif children:
        logger.debug("Not following %d nested sitemaps under %s", len(children), sitemap_url)
    return locs


def robots_sitemaps(client: HttpClient, base_url: str, timeout: float) -> list[str]:
    robots_url = urljoin(base_url, "/robots.txt")
    try:
        response = fetch_text(client, robots_url, timeout)
    except FetchError as exc:
        logger.warning("Skipping robots.txt source: %s", exc)
        return []
    sitemaps = []
    for item in parse_robots(response.text)["sitemaps"]:
        resolved = absolute_url(item, base_url)
        if resolved:
            sitemaps.append(resolved)
    return sitemaps


def internal_links(client: HttpClient, base_url: str, timeout: float, link_cap: int) -> list[str]:
    try:
        response = fetch_text(client, base_url, timeout)
    except FetchError as exc:
        logger.warning("Skipping internal-link source: %s", exc)
        return []
    soup = parse_document(response.text)
    links: list[str] = []
    for anchor in soup.find_all("a", href=True):
        if len(links) >= link_cap:
            break
        href = str(anchor.get("href") or "").strip()
        if not href or href.lower().startswith(SKIPPED_SCHEMES):
            continue
        full = absolute_url(href, base_url)
        if full and same_host(full, base_url):
            links.append(full)
    return links


def discover(target: AuditTarget, client: HttpClient, timeout: float) -> list[DiscoveredPage]:
    base_url = normalize_url(target.base_url)
    candidates: list[str] = [base_url]

    visited: set[str] = set()
    if target.use_sitemap:
        candidates.extend(sitemap_urls(client, urljoin(base_url, "/sitemap.xml"), timeout, visited))
    if target.use_robots:
        for sitemap_url in robots_sitemaps(client, base_url, timeout):
            candidates.extend(sitemap_urls(client, sitemap_url, timeout, visited))
    if target.crawl_internal_links:
        candidates.extend(internal_links(client, base_url, timeout, target.link_cap))

    seen: set[str] = set()
    ordered: list[str] = []
    for raw in candidates:
        try:
            url = normalize_url(raw)
        except ValueError:
            continue
        if url in seen or not same_host(url, base_url):
            continue
        seen.add(url)
        ordered.append(url)

    pages = [
        DiscoveredPage(url=url, page_type=classify_page(url))
        for url in ordered
        if url == base_url or matches_filter(url, target.page_filter)
    ]
    logger.info("Discovered %d candidate URLs, keeping %d", len(ordered), min(len(pages), target.max_pages))
    return pages[: target.max_pages]
