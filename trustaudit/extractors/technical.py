"""On-page technical SEO signals."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from ..models import SCHEMA_TYPES, ExternalLink, TechnicalSignals
from ..net import canonical_host, same_host
from .authority import AUTHORITATIVE_MEDIA_DOMAINS, SCIENTIFIC_DOMAINS, host_matches
from .common import attr, resolve
from .meta_quality import analyze_canonical, analyze_description, analyze_title

SCHEMA_ALIASES = {
    "MedicalOrganization": ["medicalorganization", "hospital", "medicalclinic", "dentist"],
    "Physician": ["physician", "doctor"],
    "MedicalProcedure": ["medicalprocedure", "therapeuticprocedure", "diagnosticprocedure"],
    "LocalBusiness": ["localbusiness", "medicalbusiness", "healthandbeautybusiness"],
    "FAQPage": ["faqpage"],
    "Review": ["review", "aggregaterating"],
    "MedicalSpecialty": ["medicalspecialty"],
    "BreadcrumbList": ["breadcrumblist"],
}
TRUSTED_SUFFIXES = (".gov", ".edu", ".gov.ua", ".edu.ua")
TRUSTED_DOMAINS = SCIENTIFIC_DOMAINS + AUTHORITATIVE_MEDIA_DOMAINS + ["wikipedia.org"]


def _schema_type_names(soup: BeautifulSoup) -> set[str]:
    names: set[str] = set()
    for block in soup.find_all("script", type="application/ld+json"):
        payload = (block.string or "").strip()
        if not payload:
            continue
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            continue
        stack: list[Any] = [data]
        while stack:
            item = stack.pop()
            if isinstance(item, dict):
                if "@type" in item:
                    value = item["@type"]
                    values = value if isinstance(value, list) else [value]
                    names.update(str(x).strip().lower() for x in values)
                if "@graph" in item:
                    stack.append(item["@graph"])
            elif isinstance(item, list):
                stack.extend(item)
    for node in soup.find_all(attrs={"itemtype": True}):
        for itemtype in attr(node, "itemtype").split():
            names.add(itemtype.rstrip("/").rsplit("/", 1)[-1].lower())
    return names


def detect_schema_types(soup: BeautifulSoup) -> list[str]:
    names = _schema_type_names(soup)
    return [schema for schema in SCHEMA_TYPES if names.intersection(SCHEMA_ALIASES[schema])]


def is_trusted_host(host: str) -> bool:
    if host.endswith(TRUSTED_SUFFIXES):
        return True
    return any(host_matches(host, domain) for domain in TRUSTED_DOMAINS)


def external_links(soup: BeautifulSoup, page_url: str) -> list[ExternalLink]:
    links: list[ExternalLink] = []
    seen: set[str] = set()
    for anchor in soup.find_all("a", href=True):
        full = resolve(attr(anchor, "href").strip(), page_url)
        if not full.lower().startswith(("http://", "https://")) or same_host(full, page_url):
            continue
        if full in seen:
            continue
        seen.add(full)
        rel = attr(anchor, "rel").lower().split()
        links.append(
            ExternalLink(
                url=full,
                nofollow="nofollow" in rel or "sponsored" in rel or "ugc" in rel,
                trusted=is_trusted_host(canonical_host(urlparse(full).hostname)),
            )
        )
    return links


def _meta_content(soup: BeautifulSoup, name: str) -> str | None:
    for node in soup.find_all("meta", attrs={"name": True}):
        if attr(node, "name").strip().lower() == name:
            return attr(node, "content").strip()
    return None


def extract_technical(soup: BeautifulSoup, page_url: str) -> TechnicalSignals:
    signals = TechnicalSignals(https=urlparse(page_url).scheme == "https")

    viewport = _meta_content(soup, "viewport") or ""
    signals.mobile_friendly = "width=device-width" in viewport.replace(" ", "").lower()
    html = soup.find("html")
    if html is not None and attr(html, "lang").strip():
        signals.lang = attr(html, "lang").strip()
    for link in soup.find_all("link", hreflang=True):
        if "alternate" in attr(link, "rel").lower():
            signals.hreflangs.append(attr(link, "hreflang").strip())

    if soup.title is not None and soup.title.get_text(strip=True):
        signals.title = soup.title.get_text(" ", strip=True)
    signals.description = _meta_content(soup, "description")
    signals.h1_count = len(soup.find_all("h1"))
    for link in soup.find_all("link", href=True):
        if "canonical" in attr(link, "rel").lower().split() and attr(link, "href").strip():
            signals.canonical = attr(link, "href").strip()
            break
    signals.meta_robots = _meta_content(soup, "robots")
    signals.noindex = "noindex" in (signals.meta_robots or "").lower()

    signals.schema_types = detect_schema_types(soup)

    images = soup.find_all("img")
    signals.images_total = len(images)
    signals.images_missing_alt = sum(1 for img in images if not attr(img, "alt").strip())
    signals.external_links = external_links(soup, page_url)

    signals.title_quality = analyze_title(signals.title)
    signals.description_quality = analyze_description(signals.description, signals.title)
    signals.canonical_quality = analyze_canonical(signals.canonical, page_url)
    return signals
