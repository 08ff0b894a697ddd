"""robots.txt, sitemap.xml and llms.txt parsing and quality scoring."""

from __future__ import annotations

import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any

from .models import LlmsAnalysis, RobotsAnalysis, SitemapAnalysis

AI_CRAWLERS = [
    "GPTBot",
    "ChatGPT-User",
    "anthropic-ai",
    "Claude-Web",
    "ClaudeBot",
    "cohere-ai",
    "PerplexityBot",
    "Google-Extended",
]


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Nearest integer, halves rounded up."""
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# robots.txt
# ---------------------------------------------------------------------------


def parse_robots(robots_text: str) -> dict[str, Any]:
    lines = robots_text.splitlines()
    entries: dict[str, dict[str, list[str]]] = {}
    current_agents: list[str] = []
    seen_directive_in_group = False
    sitemaps: list[str] = []

    for raw_line in lines:
        line = raw_line.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip().lower()
        value = value.strip()
        if key == "user-agent":
            agent = value.lower()
            if seen_directive_in_group:
                current_agents = [agent]
                seen_directive_in_group = False
            elif agent not in current_agents:
                current_agents.append(agent)
            entries.setdefault(agent, {"allow": [], "disallow": []})
        elif key in ("allow", "disallow"):
            if not current_agents:
                continue
            for agent in current_agents:
                entries.setdefault(agent, {"allow": [], "disallow": []})[key].append(value)
            seen_directive_in_group = True
        elif key == "sitemap" and value:
            sitemaps.append(value)

    ai_policy: dict[str, str] = {}
    for crawler in AI_CRAWLERS:
        data = entries.get(crawler.lower())
        wildcard = entries.get("*")
        if data is None and wildcard is None:
            ai_policy[crawler] = "unspecified"
            continue
        use = data if data is not None else wildcard
        disallow_all = "/" in [x.strip() for x in use["disallow"]]
        allow_all = "/" in [x.strip() for x in use["allow"]]
        if disallow_all and not allow_all:
            ai_policy[crawler] = "blocked"
        elif allow_all:
            ai_policy[crawler] = "allowed"
        else:
            ai_policy[crawler] = "partial"

    return {"entries": entries, "sitemaps": sitemaps, "ai_policy": ai_policy}


def analyze_robots(robots_text: str | None) -> RobotsAnalysis:
    if robots_text is None:
        return RobotsAnalysis()

    parsed = parse_robots(robots_text)
    wildcard = parsed["entries"].get("*")
    disallow_all = bool(wildcard) and "/" in [x.strip() for x in wildcard["disallow"]]
    blocked = [name for name, state in parsed["ai_policy"].items() if state == "blocked"]

    score = 20.0
    if parsed["sitemaps"]:
        score += 30
    score += -50 if disallow_all else 25
    score += -30 if blocked else 25
    if wildcard is not None:
        score += 10

    return RobotsAnalysis(
        present=True,
        has_sitemap=bool(parsed["sitemaps"]),
        sitemaps=list(parsed["sitemaps"]),
        disallow_all=disallow_all,
        blocked_ai_bots=blocked,
        has_wildcard=wildcard is not None,
        score=int(clamp(score)),
    )


# ---------------------------------------------------------------------------
# sitemap.xml
# ---------------------------------------------------------------------------


@dataclass
class SitemapFile:
    source: str
    kind: str
    urls: list[dict[str, str | None]] = field(default_factory=list)
    children: list[str] = field(default_factory=list)
    image_count: int = 0

    @property
    def url_count(self) -> int:
        return len(self.urls)


def localname(tag: str) -> str:
    if "}" in tag:
        return tag.rsplit("}", 1)[-1]
    return tag


def child_text(node: ET.Element, name: str) -> str | None:
    for child in node:
        if localname(child.tag) == name and child.text:
            return child.text.strip()
    return None


def parse_sitemap_xml(xml_text: str, source: str) -> SitemapFile:
    try:
        root = ET.fromstring(xml_text.strip().encode("utf-8"))
    except ET.ParseError as exc:
        raise ValueError(f"Invalid XML in {source}: {exc}") from exc

    root_name = localname(root.tag)
    if root_name not in {"urlset", "sitemapindex"}:
        raise ValueError(f"Unsupported sitemap root element in {source}: {root_name}")

    if root_name == "sitemapindex":
        children = []
        for child_node in root:
            if localname(child_node.tag) != "sitemap":
                continue
            loc = child_text(child_node, "loc")
            if loc:
                children.append(loc)
        return SitemapFile(source=source, kind="sitemapindex", children=children)

    urls: list[dict[str, str | None]] = []
    image_count = 0
    for url_node in root:
        if localname(url_node.tag) != "url":
            continue
        loc = child_text(url_node, "loc")
        if not loc:
            continue
        urls.append(
            {
                "loc": loc,
                "lastmod": child_text(url_node, "lastmod"),
                "priority": child_text(url_node, "priority"),
                "changefreq": child_text(url_node, "changefreq"),
            }
        )
        image_count += sum(1 for child in url_node if localname(child.tag) == "image")
    return SitemapFile(source=source, kind="urlset", urls=urls, image_count=image_count)


def analyze_sitemap(xml_text: str | None, source: str = "sitemap.xml") -> SitemapAnalysis:
    if xml_text is None:
        return SitemapAnalysis()
    try:
        sitemap = parse_sitemap_xml(xml_text, source)
    except ValueError:
        return SitemapAnalysis(present=True, valid_xml=False, score=10)

    if sitemap.kind == "sitemapindex":
        # An index is valid but carries no per-URL metadata of its own.
        score = 60 if sitemap.children else 20
        return SitemapAnalysis(present=True, valid_xml=True, kind="sitemapindex", score=score)

    count = sitemap.url_count
    if count == 0:
        return SitemapAnalysis(present=True, valid_xml=True, score=20)

    def share(key: str) -> float:
        return sum(1 for entry in sitemap.urls if entry.get(key)) / count

    lastmod_share = share("lastmod")
    priority_share = share("priority")
    changefreq_share = share("changefreq")

    score = 50.0
    if count >= 50:
        score += 10
    elif count >= 10:
        score += round_half_up(count / 50 * 10)

    if lastmod_share >= 0.8:
        score += 15
    elif lastmod_share >= 0.5:
        score += 10
    elif lastmod_share > 0:
        score += 5

    if priority_share >= 0.8:
        score += 10
    elif priority_share >= 0.5:
        score += 5

    if changefreq_share >= 0.8:
        score += 10
    elif changefreq_share >= 0.5:
        score += 5

    if sitemap.image_count > 0:
        score += 5

    return SitemapAnalysis(
        present=True,
        valid_xml=True,
        url_count=count,
        lastmod_share=round(lastmod_share, 3),
        priority_share=round(priority_share, 3),
        changefreq_share=round(changefreq_share, 3),
        has_images=sitemap.image_count > 0,
        score=int(clamp(score)),
    )


# ---------------------------------------------------------------------------
# llms.txt
# ---------------------------------------------------------------------------

LLMS_HEADING_RE = re.compile(r"(^|\n)#+\s+\w+")
LLMS_ORGANIZATION_RE = re.compile(r"organization|clinic|hospital|medical", re.IGNORECASE)
LLMS_DOCTORS_RE = re.compile(r"doctor|dr\.|physician|specialist|licen[sc]e", re.IGNORECASE)
LLMS_ADDRESS_RE = re.compile(r"\b\d{1,4}\s+\w+|address:|street|city|postcode|postal code|zip", re.IGNORECASE)
LLMS_PHONE_RE = re.compile(r"\+?\d{5,15}|phone:", re.IGNORECASE)
LLMS_SERVICES_RE = re.compile(r"service|procedure|conditions treated|conditions|treat(s|ment)", re.IGNORECASE)
LLMS_DATES_RE = re.compile(r"updated|\b20\d{2}\b|\b\d{4}-\d{2}-\d{2}\b", re.IGNORECASE)


def analyze_llms(content: str | None) -> LlmsAnalysis:
    if content is None:
        return LlmsAnalysis()

    has_heading = bool(LLMS_HEADING_RE.search(content))
    has_organization = bool(LLMS_ORGANIZATION_RE.search(content))
    has_doctors = bool(LLMS_DOCTORS_RE.search(content))
    has_addresses = bool(LLMS_ADDRESS_RE.search(content))
    has_phone = bool(LLMS_PHONE_RE.search(content))
    has_services = bool(LLMS_SERVICES_RE.search(content))
    has_dates = bool(LLMS_DATES_RE.search(content))

    score = 0
    if has_organization:
        score += 20
    if has_addresses and has_phone:
        score += 25
    if has_doctors:
        score += 25
    if has_services:
        score += 20
    if has_heading and has_dates:
        score += 10

    missing: list[str] = []
    recs: list[str] = []
    if not has_organization:
        missing.append("Organization identity (name, aliases)")
        recs.append('Add an "Organization" section: full legal name, aliases, and geographic focus (cities/regions).')
    if not has_addresses:
        missing.append("Office locations with full addresses")
        recs.append("List each office with full address and postal code.")
    if not has_phone:
        missing.append("Phone numbers in local format")
        recs.append("Add phone numbers in international format (e.g., +38-044-XXX-XXXX).")
    if not has_doctors:
        missing.append("Doctor/specialist profiles with credentials")
        recs.append('Create a "Doctors" section with names, degrees, specializations and license numbers.')
    if not has_services:
        missing.append("Service definitions (procedure descriptions, conditions treated)")
        recs.append("For each service, provide a short description, conditions treated and expected outcomes.")
    if not has_heading:
        missing.append("Structured headings (H1/H2/H3) for readability")
        recs.append("Use Markdown headings to structure llms.txt for easier parsing by LLMs.")
    if not has_dates:
        recs.append("Add last-updated dates for freshness signals.")
    if score < 30 and content.strip():
        recs.insert(0, "File exists but lacks critical GEO/EEAT sections; follow the recommendations below.")

    return LlmsAnalysis(
        present=True,
        score=int(clamp(score)),
        missing_sections=missing,
        recommendations=recs,
    )
