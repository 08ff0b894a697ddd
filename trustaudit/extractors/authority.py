"""Authority signals: scientific sources, media, publications, associations."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from ..models import AuthoritySignals, MediaLink, Publication
from ..net import canonical_host, same_host
from .authorship import find_associations
from .common import anchors, attr, contains_any, page_text, raw_text, resolve

SCIENTIFIC_DOMAINS = [
    "ncbi.nlm.nih.gov",
    "pubmed.gov",
    "pubmed.ncbi.nlm.nih.gov",
    "cochrane.org",
    "who.int",
    "moz.gov.ua",
]
COMMUNITY_KEYWORDS = [
    "конференц",
    "виступ",
    "інтерв'ю",
    "змі про нас",
    "асоціація",
    "конгрес",
    "семінар",
    "спікер",
    "доповід",
]
AUTHORITATIVE_MEDIA_DOMAINS = [
    "bbc.com",
    "reuters.com",
    "medscape.com",
    "webmd.com",
    "mayoclinic.org",
    "healthline.com",
    "medicalnewstoday.com",
    "apteka.ua",
    "likar.info",
    "moz.gov.ua",
    "who.int",
]
MEDIA_TEXT_KEYWORDS = [
    "стаття",
    "article",
    "публікація",
    "publication",
    "інтерв'ю",
    "interview",
    "змі про нас",
    "media about us",
]
JOURNAL_DOMAINS = [
    "pubmed",
    "ncbi",
    "nature.com",
    "science.org",
    "nejm.org",
    "thelancet.com",
    "bmj.com",
    "jama.com",
]
DOI_RE = re.compile(r"doi[:\s]+([0-9.]+)/([a-z0-9-]+)", re.IGNORECASE)
PUBLISHED_IN_RE = re.compile(r"(опубліковано в|published in)\s+([^.,;\n]{3,80})", re.IGNORECASE)


def host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def scientific_domain(url: str) -> str | None:
    host = canonical_host(urlparse(url).hostname)
    for domain in SCIENTIFIC_DOMAINS:
        if host_matches(host, domain):
            return host
    return None


def extract_authority(soup: BeautifulSoup, page_url: str) -> AuthoritySignals:
    text = page_text(soup)
    signals = AuthoritySignals(has_community_mentions=contains_any(text, COMMUNITY_KEYWORDS))

    seen_domains: set[str] = set()
    seen_media: set[str] = set()
    seen_publications: set[str] = set()
    for anchor, href, label in anchors(soup):
        full = resolve(attr(anchor, "href"), page_url)
        if not full.lower().startswith(("http://", "https://")):
            continue
        host = canonical_host(urlparse(full).hostname)

        domain = scientific_domain(full)
        if domain and domain not in seen_domains:
            seen_domains.add(domain)
            signals.scientific_domains.append(domain)

        if same_host(full, page_url):
            continue
        authoritative = any(host_matches(host, item) for item in AUTHORITATIVE_MEDIA_DOMAINS)
        if (authoritative or contains_any(label, MEDIA_TEXT_KEYWORDS)) and full not in seen_media:
            seen_media.add(full)
            signals.media_links.append(
                MediaLink(url=full, name=anchor.get_text(" ", strip=True) or host, is_authoritative=authoritative)
            )

        if contains_any(host, JOURNAL_DOMAINS) and full not in seen_publications:
            seen_publications.add(full)
            signals.publications.append(
                Publication(
                    title=anchor.get_text(" ", strip=True) or full,
                    url=full,
                    has_doi="doi" in href,
                )
            )

    body = raw_text(soup)
    for match in DOI_RE.finditer(body):
        key = f"doi:{match.group(1)}/{match.group(2)}".lower()
        if key not in seen_publications:
            seen_publications.add(key)
            signals.publications.append(Publication(title=match.group(0), has_doi=True))
    for match in PUBLISHED_IN_RE.finditer(body):
        title = match.group(2).strip()
        if title.lower() not in seen_publications:
            seen_publications.add(title.lower())
            signals.publications.append(Publication(title=title))

    signals.associations = find_associations(soup, page_url)
    return signals
