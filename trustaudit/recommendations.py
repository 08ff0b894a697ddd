"""Declarative recommendation rules evaluated against a MetricSet.

Rules are evaluated in table order. A rule listing ``suppressed_by`` is
skipped when any of those rules already fired, which keeps a single root
cause (say, a missing canonical tag) from being reported twice. The output
is sorted by priority, highest first, keeping table order for ties.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from .models import SCHEMA_TYPES, AggregatedMetric, MetricSet, Recommendation, SiteSignals


@dataclass(frozen=True)
class RuleContext:
    metrics: MetricSet
    site: SiteSignals = field(default_factory=SiteSignals)

    def applicable(self, name: str) -> AggregatedMetric | None:
        ratio = self.metrics.ratio(name)
        if ratio is None or ratio.denominator <= 0:
            return None
        return ratio

    def percent(self, name: str) -> int:
        ratio = self.applicable(name)
        return ratio.percent if ratio is not None else 0


@dataclass(frozen=True)
class Rule:
    rule_id: str
    category: str
    severity: str
    priority: int
    message: str | Callable[[RuleContext], str]
    predicate: Callable[[RuleContext], bool]
    suppressed_by: tuple[str, ...] = ()

    def render(self, context: RuleContext) -> str:
        return self.message(context) if callable(self.message) else self.message


def absent(name: str) -> Callable[[RuleContext], bool]:
    def check(context: RuleContext) -> bool:
        ratio = context.applicable(name)
        return ratio is not None and ratio.numerator == 0

    return check


def below(name: str, threshold: int) -> Callable[[RuleContext], bool]:
    def check(context: RuleContext) -> bool:
        ratio = context.applicable(name)
        return ratio is not None and ratio.percent < threshold

    return check


def count_below(name: str, threshold: int) -> Callable[[RuleContext], bool]:
    def check(context: RuleContext) -> bool:
        count = context.metrics.count(name)
        return count is not None and count < threshold

    return check


def _scientific_few(context: RuleContext) -> str:
    count = context.metrics.count("scientific_domains") or 0
    return (
        f"Only {count} scientific source(s) linked. "
        "Consider adding more references to authoritative medical literature."
    )


def _broken_links(context: RuleContext) -> str:
    broken = context.site.links.broken if context.site.links else []
    sample = ", ".join(broken[:3])
    return f"{len(broken)} external link(s) return errors or do not respond: {sample}. Fix or remove them."


def _llms_quality(context: RuleContext) -> str:
    hints = context.site.llms.recommendations if context.site.llms else []
    detail = f" {hints[0]}" if hints else ""
    return f"llms.txt scores {context.percent('llms_quality')}/100.{detail}"


def _maps_rating(context: RuleContext) -> str:
    rating = context.site.reputation.maps.rating if context.site.reputation and context.site.reputation.maps else None
    return f"Google Maps rating is {rating or 0:.1f}/5. Ask satisfied patients for reviews and respond to negative ones."


TRUST_RULES: tuple[Rule, ...] = (
    Rule(
        "privacy-missing",
        "trust",
        "critical",
        9,
        "Add Privacy Policy page and link to it from footer. Required for GDPR compliance and trust.",
        absent("privacy_policy"),
    ),
    Rule(
        "licenses-missing",
        "trust",
        "critical",
        9,
        'Display medical licenses and certifications (e.g., "Ліцензія", "Наказ МОЗ") prominently on the site.',
        absent("licenses"),
    ),
    Rule(
        "pii-noncompliant",
        "experience",
        "critical",
        9,
        "Ensure patient data is anonymized in case studies. "
        "Remove full names, addresses, and phone numbers of patients.",
        below("case_study_pii_compliance", 100),
    ),
    Rule(
        "contact-missing",
        "trust",
        "warning",
        6,
        "Add a dedicated Contact page with phone number (tel: link) for better accessibility.",
        absent("contact_page"),
    ),
    Rule(
        "nap-incomplete",
        "trust",
        "warning",
        6,
        "Ensure NAP (Name, Address, Phone) data is complete: add tel: link and physical address (м. [City], вул.).",
        absent("nap_present"),
    ),
    Rule(
        "nap-mismatch",
        "trust",
        "warning",
        6,
        lambda c: f"Website NAP matches the business profile at only {c.percent('nap_match')}%. "
        "Use the same name, address and phone everywhere.",
        below("nap_match", 100),
    ),
    Rule(
        "about-missing",
        "trust",
        "warning",
        5,
        'Add "About Us" page with clinic history, mission, and team information.',
        absent("about_us"),
    ),
    Rule(
        "legal-entity-incomplete",
        "trust",
        "info",
        4,
        "Display the legal entity name and registration number (ЄДРПОУ) or tax ID for legal transparency.",
        below("legal_entity", 100),
    ),
    Rule(
        "contact-block-incomplete",
        "trust",
        "info",
        3,
        "Complete the contact block: email address, online booking form and an embedded map (Google Maps).",
        below("contact_block", 100),
    ),
    Rule(
        "maps-link-missing",
        "reputation",
        "warning",
        5,
        "Add link to Google Maps profile for better local visibility and trust signals.",
        absent("maps_link"),
    ),
    Rule(
        "maps-rating-low",
        "reputation",
        "warning",
        5,
        _maps_rating,
        below("maps_rating", 80),
    ),
    Rule(
        "platforms-missing",
        "reputation",
        "info",
        4,
        "Add links to external medical platforms (Doc.ua, Likarni, Helsi) to improve reputation signals.",
        count_below("linked_platforms", 1),
    ),
    Rule(
        "social-missing",
        "reputation",
        "info",
        3,
        "Add social media links (Facebook, Instagram, YouTube) to improve online presence and trust.",
        count_below("social_networks", 1),
    ),
    Rule(
        "scientific-none",
        "authority",
        "warning",
        6,
        "Add links to scientific sources (PubMed, WHO, Cochrane) to demonstrate evidence-based practice.",
        count_below("scientific_domains", 1),
    ),
    Rule(
        "scientific-few",
        "authority",
        "info",
        3,
        _scientific_few,
        count_below("scientific_domains", 3),
        suppressed_by=("scientific-none",),
    ),
    Rule(
        "scientific-coverage-low",
        "authority",
        "warning",
        5,
        lambda c: f"Only {c.percent('article_scientific_coverage')}% of articles have scientific source links. "
        "Add references to PubMed, WHO, or Cochrane for evidence-based content.",
        below("article_scientific_coverage", 70),
    ),
    Rule(
        "community-missing",
        "authority",
        "info",
        3,
        "Add mentions of conferences, media appearances, or professional associations "
        "to demonstrate community involvement.",
        absent("community_mentions"),
    ),
    Rule(
        "media-missing",
        "authority",
        "info",
        2,
        "Add links to media mentions or articles about the clinic/doctors to demonstrate authority.",
        absent("media_links"),
    ),
    Rule(
        "publications-missing",
        "authority",
        "info",
        2,
        "Add links to journal publications or research papers to demonstrate expertise.",
        absent("publications"),
    ),
    Rule(
        "team-links-missing",
        "authorship",
        "warning",
        5,
        "Add links to Doctor/Team pages (/doctors/, /team/) to showcase medical expertise.",
        absent("team_links"),
    ),
    Rule(
        "author-block-missing",
        "authorship",
        "warning",
        6,
        "Add author block to article pages with author name and link to profile.",
        absent("article_author_coverage"),
    ),
    Rule(
        "author-coverage-low",
        "authorship",
        "warning",
        6,
        lambda c: f"Only {c.percent('article_author_coverage')}% of blog pages have authors. "
        "Aim for 100% to meet E-E-A-T requirements.",
        below("article_author_coverage", 80),
        suppressed_by=("author-block-missing",),
    ),
    Rule(
        "author-credentials-low",
        "authorship",
        "warning",
        5,
        lambda c: f"Only {c.percent('author_credential_coverage')}% of authors have verified credentials. "
        "Add qualifications (Dr., MD, к.м.н.) to all author profiles.",
        below("author_credential_coverage", 80),
    ),
    Rule(
        "doctor-credentials-low",
        "authorship",
        "warning",
        5,
        lambda c: f"Only {c.percent('doctor_credential_coverage')}% of doctor pages show diplomas, "
        "certificates or licenses. Link or display them on every profile.",
        below("doctor_credential_coverage", 80),
    ),
    Rule(
        "case-studies-missing",
        "experience",
        "warning",
        5,
        "Add Case Studies or Before/After portfolio section to demonstrate real experience and results.",
        absent("case_studies"),
    ),
    Rule(
        "case-study-incomplete",
        "experience",
        "warning",
        4,
        lambda c: f"Case study structure completeness is {c.percent('case_study_completeness')}%. "
        "Ensure all sections (complaint, diagnosis, treatment, result, timeline) are present.",
        below("case_study_completeness", 70),
    ),
    Rule(
        "experience-figures-missing",
        "experience",
        "info",
        3,
        'Add specific experience metrics (e.g., "10+ років досвіду", "5000+ пацієнтів") to build credibility.',
        absent("experience_figures"),
    ),
)

SCHEMA_PRIORITIES = {"MedicalOrganization": ("warning", 5), "Physician": ("warning", 4), "LocalBusiness": ("info", 3)}

TECHNICAL_RULES: tuple[Rule, ...] = (
    Rule(
        "https-missing",
        "compliance",
        "critical",
        10,
        lambda c: f"Only {c.percent('https')}% of pages are served over HTTPS. Move the whole site to HTTPS.",
        below("https", 100),
    ),
    Rule(
        "mobile-viewport-missing",
        "compliance",
        "critical",
        8,
        'Add <meta name="viewport" content="width=device-width, initial-scale=1"> to every page.',
        below("mobile_friendly", 100),
    ),
    Rule(
        "noindex-pages",
        "metadata",
        "critical",
        9,
        lambda c: f"{100 - c.percent('not_noindex')}% of audited pages carry a noindex directive. "
        "Remove it from pages that should rank.",
        below("not_noindex", 100),
    ),
    Rule(
        "dup-http",
        "performance",
        "critical",
        8,
        "The http:// version of the site answers without redirecting. Add a 301 redirect to https://.",
        absent("dup_http"),
    ),
    Rule(
        "title-missing",
        "metadata",
        "critical",
        8,
        "Some pages have no <title>. Add a unique, descriptive title to every page.",
        below("title", 100),
    ),
    Rule(
        "title-quality",
        "metadata",
        "warning",
        5,
        lambda c: f"Average title quality is {c.percent('title_quality')}/100. Use 50-60 characters, "
        "start with the main service, mention the city and end with the brand.",
        below("title_quality", 70),
        suppressed_by=("title-missing",),
    ),
    Rule(
        "robots-missing",
        "compliance",
        "warning",
        7,
        "Add a robots.txt file with a Sitemap directive.",
        absent("robots_present"),
    ),
    Rule(
        "robots-quality",
        "ai_readiness",
        "info",
        4,
        lambda c: f"robots.txt scores {c.percent('robots_quality')}/100. "
        "Declare the sitemap and do not block AI crawlers or the whole site.",
        below("robots_quality", 70),
        suppressed_by=("robots-missing",),
    ),
    Rule(
        "sitemap-missing",
        "compliance",
        "warning",
        7,
        "Add an XML sitemap at /sitemap.xml and reference it from robots.txt.",
        absent("sitemap_present"),
    ),
    Rule(
        "sitemap-quality",
        "ai_readiness",
        "info",
        4,
        lambda c: f"sitemap.xml scores {c.percent('sitemap_quality')}/100. Add lastmod, priority and changefreq to entries.",
        below("sitemap_quality", 70),
        suppressed_by=("sitemap-missing",),
    ),
    Rule(
        "description-missing",
        "metadata",
        "warning",
        7,
        "Some pages have no meta description. Write a unique 150-160 character description for each.",
        below("description", 100),
    ),
    Rule(
        "description-quality",
        "metadata",
        "info",
        4,
        lambda c: f"Average meta description quality is {c.percent('description_quality')}/100. "
        "Add a call to action and concrete benefits.",
        below("description_quality", 70),
        suppressed_by=("description-missing",),
    ),
    Rule(
        "canonical-missing",
        "metadata",
        "warning",
        6,
        'Add a self-referencing <link rel="canonical"> to every page.',
        below("canonical", 100),
    ),
    Rule(
        "canonical-quality",
        "metadata",
        "info",
        4,
        lambda c: f"Average canonical quality is {c.percent('canonical_quality')}/100. "
        "Use absolute, self-referencing canonical URLs without query parameters.",
        below("canonical_quality", 80),
        suppressed_by=("canonical-missing",),
    ),
    Rule(
        "broken-links",
        "links_media",
        "warning",
        6,
        _broken_links,
        below("links_not_broken", 100),
    ),
    Rule(
        "dup-www",
        "performance",
        "warning",
        6,
        "Both www and non-www hosts answer with 200. Redirect one to the other with a 301.",
        absent("dup_www"),
    ),
    Rule(
        "speed-mobile-poor",
        "performance",
        "warning",
        7,
        lambda c: f"Mobile PageSpeed score is {c.percent('speed_mobile')}/100. "
        "Optimize images, scripts and server response time.",
        below("speed_mobile", 50),
    ),
    Rule(
        "speed-mobile-low",
        "performance",
        "info",
        3,
        lambda c: f"Mobile PageSpeed score is {c.percent('speed_mobile')}/100; aim for 90 or more.",
        below("speed_mobile", 90),
        suppressed_by=("speed-mobile-poor",),
    ),
    Rule(
        "speed-desktop-poor",
        "performance",
        "warning",
        5,
        lambda c: f"Desktop PageSpeed score is {c.percent('speed_desktop')}/100.",
        below("speed_desktop", 50),
    ),
    Rule(
        "dup-slash",
        "performance",
        "warning",
        5,
        "URLs with and without a trailing slash both answer with 200. Pick one form and redirect the other.",
        absent("dup_slash"),
    ),
    Rule(
        "alt-missing",
        "links_media",
        "warning",
        5,
        lambda c: f"Only {c.percent('alt_coverage')}% of images have alt text. Describe every meaningful image.",
        below("alt_coverage", 90),
    ),
    Rule(
        "h1-issues",
        "metadata",
        "warning",
        4,
        "Some pages have no H1 or more than one. Use exactly one H1 per page.",
        below("h1", 100),
    ),
    Rule(
        "llms-missing",
        "ai_readiness",
        "info",
        4,
        "Add an llms.txt file describing the clinic, doctors, services and contacts for AI assistants.",
        absent("llms_present"),
    ),
    Rule(
        "llms-quality",
        "ai_readiness",
        "info",
        3,
        _llms_quality,
        below("llms_quality", 60),
        suppressed_by=("llms-missing",),
    ),
    Rule(
        "lang-missing",
        "metadata",
        "info",
        3,
        'Declare the page language with <html lang="...">.',
        below("lang", 100),
    ),
) + tuple(
    Rule(
        f"schema-{schema}",
        "schema",
        SCHEMA_PRIORITIES.get(schema, ("info", 2))[0],
        SCHEMA_PRIORITIES.get(schema, ("info", 2))[1],
        f"Add {schema} structured data (JSON-LD).",
        absent(f"schema_{schema}"),
    )
    for schema in SCHEMA_TYPES
)

RULES: tuple[Rule, ...] = TRUST_RULES + TECHNICAL_RULES


def generate(
    metrics: MetricSet, site: SiteSignals | None = None, rules: tuple[Rule, ...] = RULES
) -> list[Recommendation]:
    context = RuleContext(metrics=metrics, site=site or SiteSignals())
    fired: set[str] = set()
    recommendations: list[Recommendation] = []
    for rule in rules:
        if any(rule_id in fired for rule_id in rule.suppressed_by):
            continue
        if not rule.predicate(context):
            continue
        fired.add(rule.rule_id)
        recommendations.append(
            Recommendation(
                rule_id=rule.rule_id,
                message=rule.render(context),
                severity=rule.severity,
                category=rule.category,
                priority=rule.priority,
            )
        )
    return sorted(recommendations, key=lambda item: -item.priority)


def filter_by_category(recommendations: list[Recommendation], category: str) -> list[Recommendation]:
    return [item for item in recommendations if item.category == category]
