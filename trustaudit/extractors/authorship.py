"""Authorship and doctor-expertise signals."""

from __future__ import annotations

import re
from urllib.parse import unquote, urlparse

from bs4 import BeautifulSoup

from ..models import Association, AuthorProfileSignals, AuthorshipSignals, DoctorCredentialSignals
from ..net import absolute_url
from .common import anchors, attr, class_contains, contains_any, page_text, resolve, search_any

ARTICLE_CLASSES = ["article", "blog-post", "post", "entry", "content-article", "news-item"]
ARTICLE_URL_PATTERNS = ["/blog/", "/article/", "/post/", "/news/", "/стаття/"]

# Tried in order; the first selector that matches owns the author block.
AUTHOR_SELECTORS = [
    ".author",
    ".byline",
    ".article-author",
    ".post-author",
    '[itemprop="author"]',
    '[rel="author"]',
    ".author-info",
    ".author-block",
]
AUTHOR_PREFIX_RE = re.compile(r"^(Автор|Author|By):?\s*", re.IGNORECASE)
AUTHOR_PROFILE_LINK_SELECTOR = 'a[href*="/author/"], a[href*="/doctors/"], a[href*="/team/"]'
AUTHOR_LINK_TEXT = ["author", "автор", "doctor", "лікар"]

AUTHOR_CREDENTIAL_PATTERNS = [
    re.compile(r"лікар-"),
    re.compile(r"\bdr\."),
    re.compile(r"\bdoctor\b"),
    re.compile(r"к\.м\.н\."),
    re.compile(r"\bmd\b"),
]
TEAM_LINK_PATTERNS = ["/doctors/", "/team/", "/врачи/", "/лікарі/"]

PROFILE_URL_PATTERNS = ["/doctors/", "/doctor/", "/team/", "/врачи/", "/лікарі/", "/likari/", "/specialist"]
AUTHOR_PAGE_PATTERNS = ["/author/"]
QUALIFICATION_PATTERNS = [
    re.compile(r"\bdr\."),
    re.compile(r"\bdoctor\b"),
    re.compile(r"\bmd\b"),
    re.compile(r"к\.м\.н\."),
    re.compile(r"\bphd\b"),
    re.compile(r"професор"),
    re.compile(r"\bprofessor\b"),
    re.compile(r"доцент"),
]
POSITION_PATTERNS = [
    "cardiologist",
    "surgeon",
    "dentist",
    "ophthalmologist",
    "кардіолог",
    "хірург",
    "стоматолог",
    "офтальмолог",
    "position",
    "посада",
]
EXPERIENCE_YEARS_PATTERNS = [
    re.compile(r"\d+\+?\s*(років|years|рік|year)", re.IGNORECASE),
    re.compile(r"(досвід|experience)\D{0,40}\d+", re.IGNORECASE),
]

DIPLOMA_MARKERS = ["diploma", "диплом"]
CERTIFICATE_MARKERS = ["certificate", "сертификат", "сертифікат"]
LICENSE_MARKERS = ["license", "ліцензія"]
EDUCATION_PATTERNS = [
    "курс",
    "course",
    "навчання",
    "training",
    "сертифікація",
    "certification",
    "підвищення кваліфікації",
    "continuing education",
]

KNOWN_ASSOCIATIONS = [
    ("Асоціація кардіологів України", ["асоціація кардіологів", "ukrainian cardiology association"], "cardiology"),
    ("Асоціація стоматологів України", ["асоціація стоматологів", "ukrainian dentistry association"], "dentistry"),
    ("American Medical Association", ["american medical association"], "ama-assn"),
    ("European Society of Cardiology", ["european society of cardiology"], "escardio"),
    ("World Medical Association", ["world medical association"], "wma.net"),
]
GENERIC_ASSOCIATION_PATTERNS = [
    re.compile(r"член\s+(.+?)\s+асоціації", re.IGNORECASE),
    re.compile(r"member\s+of\s+(?:the\s+)?(.+?)\s+association", re.IGNORECASE),
]


def is_article_page(soup: BeautifulSoup, page_url: str) -> bool:
    if soup.find("article") is not None:
        return True
    if any(class_contains(soup, name) for name in ARTICLE_CLASSES):
        return True
    path = unquote(urlparse(page_url).path or "/").lower()
    if contains_any(path, ARTICLE_URL_PATTERNS):
        return True
    return soup.select_one('[itemtype*="Article"], [itemtype*="BlogPosting"]') is not None


def is_profile_page(page_url: str, page_type: str = "other") -> bool:
    if page_type == "doctor-profile":
        return True
    path = unquote(urlparse(page_url).path or "/").lower()
    return contains_any(path, PROFILE_URL_PATTERNS)


def is_author_page(page_url: str, page_type: str = "other") -> bool:
    """Pages that get an author-profile analysis: doctor profiles plus author archives."""
    if is_profile_page(page_url, page_type):
        return True
    path = unquote(urlparse(page_url).path or "/").lower()
    return contains_any(path, AUTHOR_PAGE_PATTERNS)


def _clean_author_name(text: str) -> str:
    name = AUTHOR_PREFIX_RE.sub("", text.strip()).strip()
    return name.split("\n")[0].split(",")[0].strip()


def extract_authorship(soup: BeautifulSoup, page_url: str) -> AuthorshipSignals:
    text = page_text(soup)
    signals = AuthorshipSignals(
        author_credentials_found=search_any(text, AUTHOR_CREDENTIAL_PATTERNS),
        has_team_links=any(contains_any(href, TEAM_LINK_PATTERNS) for _, href, _ in anchors(soup)),
    )
    if not is_article_page(soup, page_url):
        return signals
    signals.is_article = True

    for selector in AUTHOR_SELECTORS:
        block = soup.select_one(selector)
        if block is None:
            continue
        signals.has_author_block = True
        name = _clean_author_name(block.get_text("\n", strip=True))
        signals.author_name = name or None
        link = block.find("a", href=True) if block.name != "a" else block
        if link is not None and link.get("href"):
            signals.has_author_profile_link = True
            signals.author_profile_url = resolve(attr(link, "href"), page_url)
        break

    if not signals.has_author_profile_link:
        for link in soup.select(AUTHOR_PROFILE_LINK_SELECTOR):
            if contains_any(link.get_text(" ", strip=True).lower(), AUTHOR_LINK_TEXT):
                signals.has_author_profile_link = True
                signals.author_profile_url = resolve(attr(link, "href"), page_url)
                break

    if signals.author_name:
        signals.is_medical_author = search_any(signals.author_name.lower(), AUTHOR_CREDENTIAL_PATTERNS)
    return signals


def analyze_author_profile(soup: BeautifulSoup, page_url: str) -> AuthorProfileSignals:
    text = page_text(soup)
    credential_markers = DIPLOMA_MARKERS + CERTIFICATE_MARKERS + LICENSE_MARKERS
    has_links = any(
        contains_any(href, credential_markers) or contains_any(label, DIPLOMA_MARKERS + CERTIFICATE_MARKERS)
        for _, href, label in anchors(soup)
    )
    if not has_links:
        has_links = any(
            contains_any(attr(img, "alt").lower(), DIPLOMA_MARKERS + CERTIFICATE_MARKERS)
            for img in soup.find_all("img", alt=True)
        )
    return AuthorProfileSignals(
        has_qualifications=search_any(text, QUALIFICATION_PATTERNS),
        has_position=contains_any(text, POSITION_PATTERNS),
        has_experience_years=search_any(text, EXPERIENCE_YEARS_PATTERNS),
        has_credentials_links=has_links,
    )


def find_associations(soup: BeautifulSoup, page_url: str) -> list[Association]:
    text = page_text(soup)
    found: list[Association] = []
    for name, keywords, url_marker in KNOWN_ASSOCIATIONS:
        if not contains_any(text, keywords):
            continue
        membership = Association(name=name)
        for _, href, label in anchors(soup):
            if url_marker in href or contains_any(href, keywords) or contains_any(label, keywords):
                membership.is_verified = True
                membership.url = absolute_url(href, page_url)
                break
        if not membership.is_verified:
            for img in soup.find_all("img"):
                described = f"{attr(img, 'alt')} {attr(img, 'title')}".lower()
                if contains_any(described, keywords):
                    membership.is_verified = True
                    break
        found.append(membership)

    for pattern in GENERIC_ASSOCIATION_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        candidate = match.group(1).strip()
        if candidate and not any(candidate in item.name.lower() for item in found):
            found.append(Association(name=candidate))
    return found


def check_doctor_credentials(soup: BeautifulSoup, page_url: str) -> DoctorCredentialSignals:
    signals = DoctorCredentialSignals()
    seen: set[str] = set()

    def remember(raw: str) -> None:
        if not raw:
            return
        key = (absolute_url(raw, page_url) or raw).lower()
        if key not in seen:
            seen.add(key)
            signals.credential_links.append(absolute_url(raw, page_url) or raw)

    for anchor, href, label in anchors(soup):
        raw_href = attr(anchor, "href").strip()
        if contains_any(href, DIPLOMA_MARKERS) or contains_any(label, DIPLOMA_MARKERS):
            signals.has_diplomas = True
            remember(raw_href)
        if contains_any(href, CERTIFICATE_MARKERS) or contains_any(label, CERTIFICATE_MARKERS):
            signals.has_certificates = True
            remember(raw_href)
        if contains_any(href, LICENSE_MARKERS) or contains_any(label, LICENSE_MARKERS):
            remember(raw_href)

    for img in soup.find_all("img"):
        described = f"{attr(img, 'alt')} {attr(img, 'title')}".lower()
        src = attr(img, "src").strip()
        if contains_any(described, DIPLOMA_MARKERS):
            signals.has_diplomas = True
            remember(src)
        if contains_any(described, CERTIFICATE_MARKERS):
            signals.has_certificates = True
            remember(src)

    signals.has_association_memberships = bool(find_associations(soup, page_url))
    signals.has_continuing_education = contains_any(page_text(soup), EDUCATION_PATTERNS)
    return signals
