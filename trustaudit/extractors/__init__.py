"""Per-page signal extractors and the applicability dispatcher."""

from __future__ import annotations

from typing import Any

from bs4 import BeautifulSoup

from ..models import PageSignals
from .authority import extract_authority
from .authorship import (
    analyze_author_profile,
    check_doctor_credentials,
    extract_authorship,
    is_author_page,
    is_profile_page,
)
from .experience import extract_experience
from .reputation import extract_reputation
from .technical import extract_technical
from .trust import extract_trust

__all__ = [
    "analyze_author_profile",
    "check_doctor_credentials",
    "extract_authority",
    "extract_authorship",
    "extract_experience",
    "extract_page_signals",
    "extract_reputation",
    "extract_technical",
    "extract_trust",
    "is_author_page",
    "is_profile_page",
]


def extract_page_signals(
    soup: BeautifulSoup,
    url: str,
    page_type: str = "other",
    audits: tuple[str, ...] = ("trust", "technical"),
) -> PageSignals:
    """Run every extractor that applies to this page.

    Categories that do not apply stay ``None`` on the returned record.
    """
    fields: dict[str, Any] = {}
    if "trust" in audits:
        authorship = extract_authorship(soup, url)
        fields["authorship"] = authorship
        fields["trust"] = extract_trust(soup, url)
        fields["authority"] = extract_authority(soup, url)
        fields["reputation"] = extract_reputation(soup, url)
        fields["experience"] = extract_experience(soup, url)
        if is_author_page(url, page_type):
            profile = analyze_author_profile(soup, url)
            fields["author_profile"] = profile
            # Profile qualifications mark the article's author as medical.
            if authorship.is_article and profile.has_qualifications:
                authorship.is_medical_author = True
        if is_profile_page(url, page_type):
            fields["doctor_credentials"] = check_doctor_credentials(soup, url)
    if "technical" in audits:
        fields["technical"] = extract_technical(soup, url)
    return PageSignals(url=url, page_type=page_type, **fields)
