"""Reputation signals: review platforms and social profiles linked from a page."""

from __future__ import annotations

from bs4 import BeautifulSoup

from ..models import ReputationSignals
from .common import anchors, attr, resolve

PLATFORM_PATTERNS = [
    ("google.com/maps", "Google Maps"),
    ("maps.google", "Google Maps"),
    ("doc.ua", "Doc.ua"),
    ("likarni.com", "Likarni"),
    ("helsi.me", "Helsi"),
]
SOCIAL_PATTERNS = [
    ("facebook.com", "Facebook"),
    ("instagram.com", "Instagram"),
    ("youtube.com", "YouTube"),
]


def extract_reputation(soup: BeautifulSoup, page_url: str) -> ReputationSignals:
    signals = ReputationSignals()
    for anchor, href, _ in anchors(soup):
        for marker, platform in PLATFORM_PATTERNS:
            if marker not in href:
                continue
            full = resolve(attr(anchor, "href"), page_url)
            if platform not in signals.linked_platforms:
                signals.linked_platforms.append(platform)
            if platform == "Google Maps":
                signals.maps_url = signals.maps_url or full
            else:
                signals.aggregator_urls.setdefault(platform, full)
            break
        for marker, network in SOCIAL_PATTERNS:
            if marker in href and network not in signals.social_links:
                signals.social_links.append(network)
    return signals
