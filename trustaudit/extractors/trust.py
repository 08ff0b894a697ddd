"""Trust and transparency signals: policies, licences, legal identity, contacts."""

from __future__ import annotations

import re
from urllib.parse import unquote, urlparse

from bs4 import BeautifulSoup

from ..models import NAPData, TrustSignals
from .common import anchors, attr, class_contains, contains_any, page_text, raw_text, resolve, search_any

PRIVACY_HREF_PATTERNS = ["/privacy", "/policy", "/terms"]
PRIVACY_TEXT_PATTERNS = ["політика конфіденційності", "privacy policy"]
LICENSE_PATTERNS = ["ліцензія", "license", "наказ моз"]
CONTACT_HREF_PATTERNS = ["/contact", "/контакт"]

ADDRESS_PATTERNS = [
    re.compile(r"м\.\s*[А-ЯІЇЄA-Z][\w'-]+"),
    re.compile(r"вул\.\s*\S+"),
    re.compile(r"ул\.\s*\S+"),
    re.compile(r"\bг\.\s*[А-ЯA-Z][\w'-]+"),
]
PHONE_RE = re.compile(r"(\+?\d[\d\s().-]{8,}\d)")
EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

LEGAL_ENTITY_PATTERNS = [
    re.compile(r"(?<!\w)(тов|пп|фоп)(?!\w)\s*[«\"']?[^,.\n]{0,60}", re.IGNORECASE),
    re.compile(r"\b(llc|ltd|limited)\b", re.IGNORECASE),
    re.compile(r"юридична особа|legal entity", re.IGNORECASE),
    re.compile(r"(?<!\w)(компанія|company)(?!\w)", re.IGNORECASE),
]
REGISTRATION_PATTERNS = [
    re.compile(r"(єдрпоу|edrpou)[:\s]*(\d+)", re.IGNORECASE),
    re.compile(r"(tax\s+id)[:\s]*(\d+)", re.IGNORECASE),
    re.compile(r"(податковий\s+номер)[:\s]*(\d+)", re.IGNORECASE),
    re.compile(r"(ідентифікаційний\s+номер)[:\s]*(\d+)", re.IGNORECASE),
]

ABOUT_HREF_PATTERNS = ["/about", "/about-us", "/про-нас", "/about-clinic"]
ABOUT_TEXT_PATTERNS = ["про нас", "about us"]
HISTORY_PATTERNS = [
    re.compile(r"(заснован|founded|established)\w*", re.IGNORECASE),
    re.compile(r"(з|since)\s+(19|20)\d{2}", re.IGNORECASE),
    re.compile(r"історі[яї]|history", re.IGNORECASE),
]
MISSION_PATTERNS = [
    re.compile(r"місі[яї]|mission", re.IGNORECASE),
    re.compile(r"цінност|values", re.IGNORECASE),
    re.compile(r"візі[яї]|vision", re.IGNORECASE),
]
TEAM_PATTERNS = [
    re.compile(r"команд|team", re.IGNORECASE),
    re.compile(r"наші\s+лікарі|our\s+doctors", re.IGNORECASE),
    re.compile(r"спеціаліст|specialist", re.IGNORECASE),
]

BOOKING_ACTION_PATTERNS = ["book", "appointment", "запис"]
BOOKING_TEXT_PATTERNS = ["записатись", "записатися", "appointment", "book"]
MAP_HREF_PATTERNS = ["google.com/maps", "maps.google", "goo.gl/maps", "maps.app.goo.gl"]

LICENSE_DOC_MARKERS = ["ліцензія", "license", "licence", "наказ моз"]
COOKIE_TEXT_RE = re.compile(r"cookie.{0,200}(accept|прийняти|згода|agree)|(згода|accept).{0,200}cookie", re.IGNORECASE)
CONSENT_PATTERNS = ["згода на обробку", "персональних даних", "consent", "i agree", "погоджуюсь"]


def _is_about_url(page_url: str) -> bool:
    path = unquote(urlparse(page_url).path or "/").lower()
    return contains_any(path, ABOUT_HREF_PATTERNS)


def extract_nap(soup: BeautifulSoup) -> NAPData:
    """Name, address and phone: structured markup first, text patterns as fallback."""
    nap = NAPData()

    for selector in ('[itemprop="name"]', "h1", ".clinic-name", ".company-name", "title"):
        node = soup.select_one(selector)
        if node is None:
            continue
        value = node.get_text(" ", strip=True)
        if value and len(value) < 200:
            nap.name = value
            break

    for selector in ('[itemprop="address"]', ".address", '[class*="address"]'):
        node = soup.select_one(selector)
        if node is not None and node.get_text(strip=True):
            nap.address = node.get_text(" ", strip=True)
            break
    if nap.address is None:
        text = raw_text(soup)
        for pattern in ADDRESS_PATTERNS:
            match = pattern.search(text)
            if match:
                nap.address = text[match.start() : match.start() + 120].split("  ")[0].strip()
                break

    tel = soup.select_one('a[href^="tel:"]')
    if tel is not None:
        nap.phone = attr(tel, "href")[4:].strip() or None
    if nap.phone is None:
        node = soup.select_one('[itemprop="telephone"]')
        if node is not None and node.get_text(strip=True):
            nap.phone = node.get_text(strip=True)
    if nap.phone is None:
        match = PHONE_RE.search(raw_text(soup))
        if match:
            nap.phone = match.group(1).strip()
    return nap


def _license_documents(soup: BeautifulSoup, page_url: str) -> list[str]:
    documents: list[str] = []
    for img in soup.find_all("img"):
        described = f"{attr(img, 'alt')} {attr(img, 'title')} {attr(img, 'src')}".lower()
        if contains_any(described, LICENSE_DOC_MARKERS) and attr(img, "src"):
            documents.append(resolve(attr(img, "src"), page_url))
    for anchor, href, label in anchors(soup):
        if contains_any(href, LICENSE_DOC_MARKERS) or contains_any(label, LICENSE_DOC_MARKERS):
            if href.endswith((".pdf", ".jpg", ".jpeg", ".png")) or "ліцензі" in label or "licen" in label:
                documents.append(resolve(attr(anchor, "href"), page_url))
    return list(dict.fromkeys(documents))


def _has_booking_form(soup: BeautifulSoup) -> bool:
    for form in soup.find_all("form"):
        action = attr(form, "action").lower()
        if contains_any(action, BOOKING_ACTION_PATTERNS):
            return True
        if contains_any(form.get_text(" ", strip=True).lower(), BOOKING_TEXT_PATTERNS):
            return True
        if form.find("input", attrs={"name": "date"}) or form.find("input", attrs={"name": "time"}):
            return True
    return False


def _has_map(soup: BeautifulSoup) -> bool:
    for iframe in soup.find_all("iframe"):
        src = attr(iframe, "src").lower()
        if "google.com/maps" in src or "maps.google" in src:
            return True
    if soup.select_one('[class*="map"], [id*="map"]') is not None:
        return True
    return any(contains_any(href, MAP_HREF_PATTERNS) for _, href, _ in anchors(soup))


def extract_trust(soup: BeautifulSoup, page_url: str) -> TrustSignals:
    text = page_text(soup)
    body = raw_text(soup)
    links = list(anchors(soup))
    signals = TrustSignals()

    signals.has_privacy_policy = any(
        contains_any(href, PRIVACY_HREF_PATTERNS) or contains_any(label, PRIVACY_TEXT_PATTERNS)
        for _, href, label in links
    )
    signals.has_licenses = contains_any(text, LICENSE_PATTERNS)
    has_tel = any(href.startswith("tel:") for _, href, _ in links)
    signals.has_contact_page = has_tel or any(contains_any(href, CONTACT_HREF_PATTERNS) for _, href, _ in links)
    signals.nap_present = has_tel and search_any(body, ADDRESS_PATTERNS)

    for pattern in LEGAL_ENTITY_PATTERNS:
        match = pattern.search(body)
        if match:
            signals.has_legal_entity_name = True
            signals.legal_entity_name = match.group(0).strip()
            break
    signals.has_registration_number = search_any(text, REGISTRATION_PATTERNS)

    for anchor, href, label in links:
        if contains_any(href, ABOUT_HREF_PATTERNS) or contains_any(label, ABOUT_TEXT_PATTERNS):
            signals.has_about_us_link = True
            signals.about_us_url = resolve(attr(anchor, "href"), page_url)
            break
    if _is_about_url(page_url):
        signals.is_about_page = True
        signals.has_clinic_history = search_any(text, HISTORY_PATTERNS)
        signals.has_mission_values = search_any(text, MISSION_PATTERNS)
        signals.has_team_info = search_any(text, TEAM_PATTERNS)

    mailto = next((attr(anchor, "href") for anchor, href, _ in links if href.startswith("mailto:")), None)
    if mailto:
        signals.has_email = True
        signals.email = mailto[len("mailto:") :].split("?")[0].strip() or None
    else:
        match = EMAIL_RE.search(body)
        if match:
            signals.has_email = True
            signals.email = match.group(0)
    signals.has_booking_form = _has_booking_form(soup)
    signals.has_map = _has_map(soup)
    signals.nap = extract_nap(soup)

    signals.license_documents = _license_documents(soup, page_url)
    signals.has_license_section = any(
        "licen" in href or "ліценз" in href or "ліцензі" in label for _, href, label in links
    )
    signals.has_cookie_banner = class_contains(soup, "cookie") or bool(COOKIE_TEXT_RE.search(text))
    signals.has_consent_form = any(
        contains_any(form.get_text(" ", strip=True).lower(), CONSENT_PATTERNS) for form in soup.find_all("form")
    )
    return signals
