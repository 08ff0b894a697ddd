"""Data model for the audit pipeline.

Signal records default every field to its absent value so that extractors can
build them incrementally. ``PageSignals`` holds one optional record per
category: ``None`` means the category did not apply to the page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

PAGE_TYPES = ("blog", "doctor-profile", "article", "other")
PAGE_FILTERS = ("all", "blog", "doctors", "articles")
AUDIT_KINDS = ("trust", "technical")
SEVERITIES = ("critical", "warning", "info")
ERROR_KINDS = ("fetch_timeout", "fetch_error", "parse_error")
SCHEMA_TYPES = (
    "MedicalOrganization",
    "Physician",
    "MedicalProcedure",
    "LocalBusiness",
    "FAQPage",
    "Review",
    "MedicalSpecialty",
    "BreadcrumbList",
)


@dataclass(frozen=True)
class AuditTarget:
    base_url: str
    use_sitemap: bool = True
    use_robots: bool = True
    crawl_internal_links: bool = False
    max_pages: int = 20
    page_filter: str = "all"
    link_cap: int = 50
    audits: tuple[str, ...] = AUDIT_KINDS

    def __post_init__(self) -> None:
        if self.max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        if self.page_filter not in PAGE_FILTERS:
            raise ValueError(f"Unsupported page filter: {self.page_filter}")
        unknown = [kind for kind in self.audits if kind not in AUDIT_KINDS]
        if unknown or not self.audits:
            raise ValueError(f"Unsupported audit selection: {self.audits}")


@dataclass(frozen=True)
class DiscoveredPage:
    url: str
    page_type: str = "other"


# ---------------------------------------------------------------------------
# Per-page signal records
# ---------------------------------------------------------------------------


@dataclass
class NAPData:
    name: str | None = None
    address: str | None = None
    phone: str | None = None


@dataclass
class AuthorshipSignals:
    is_article: bool = False
    has_author_block: bool = False
    author_name: str | None = None
    has_author_profile_link: bool = False
    author_profile_url: str | None = None
    is_medical_author: bool = False
    author_credentials_found: bool = False
    has_team_links: bool = False


@dataclass
class AuthorProfileSignals:
    has_qualifications: bool = False
    has_position: bool = False
    has_experience_years: bool = False
    has_credentials_links: bool = False

    @property
    def completed(self) -> int:
        return sum(
            (
                self.has_qualifications,
                self.has_position,
                self.has_experience_years,
                self.has_credentials_links,
            )
        )


@dataclass
class Association:
    name: str
    url: str | None = None
    is_verified: bool = False


@dataclass
class DoctorCredentialSignals:
    has_diplomas: bool = False
    has_certificates: bool = False
    has_association_memberships: bool = False
    has_continuing_education: bool = False
    credential_links: list[str] = field(default_factory=list)

    @property
    def has_credentials(self) -> bool:
        return self.has_diplomas or self.has_certificates or bool(self.credential_links)


@dataclass
class TrustSignals:
    has_privacy_policy: bool = False
    has_licenses: bool = False
    has_contact_page: bool = False
    nap_present: bool = False
    has_legal_entity_name: bool = False
    legal_entity_name: str | None = None
    has_registration_number: bool = False
    has_about_us_link: bool = False
    about_us_url: str | None = None
    is_about_page: bool = False
    has_clinic_history: bool = False
    has_mission_values: bool = False
    has_team_info: bool = False
    has_email: bool = False
    email: str | None = None
    has_booking_form: bool = False
    has_map: bool = False
    nap: NAPData = field(default_factory=NAPData)
    license_documents: list[str] = field(default_factory=list)
    has_license_section: bool = False
    has_cookie_banner: bool = False
    has_consent_form: bool = False


@dataclass
class MediaLink:
    url: str
    name: str
    is_authoritative: bool = False


@dataclass
class Publication:
    title: str
    url: str | None = None
    has_doi: bool = False


@dataclass
class AuthoritySignals:
    scientific_domains: list[str] = field(default_factory=list)
    has_community_mentions: bool = False
    media_links: list[MediaLink] = field(default_factory=list)
    publications: list[Publication] = field(default_factory=list)
    associations: list[Association] = field(default_factory=list)

    @property
    def scientific_sources_count(self) -> int:
        return len(self.scientific_domains)


@dataclass
class ReputationSignals:
    linked_platforms: list[str] = field(default_factory=list)
    social_links: list[str] = field(default_factory=list)
    maps_url: str | None = None
    aggregator_urls: dict[str, str] = field(default_factory=dict)


@dataclass
class CaseStudyStructure:
    has_complaint: bool = False
    has_diagnosis: bool = False
    has_treatment: bool = False
    has_result: bool = False
    has_timeline: bool = False
    has_metrics: bool = False
    has_doctor_commentary: bool = False
    completeness_score: int = 0


@dataclass
class PIICompliance:
    names_anonymized: bool = True
    addresses_absent: bool = True
    phones_absent: bool = True

    @property
    def is_compliant(self) -> bool:
        return self.names_anonymized and self.addresses_absent and self.phones_absent


@dataclass
class ExperienceSignals:
    has_case_studies: bool = False
    experience_figures_found: bool = False
    is_case_study_page: bool = False
    case_study: CaseStudyStructure | None = None
    pii: PIICompliance | None = None
    specialty: str | None = None


@dataclass
class TitleAnalysis:
    title: str = ""
    length: int = 0
    is_optimal_length: bool = False
    is_too_short: bool = True
    is_too_long: bool = False
    detected_city: str | None = None
    is_generic: bool = True
    starts_with_keyword: bool = False
    has_brand_separator: bool = False
    issues: list[str] = field(default_factory=list)
    score: int = 0


@dataclass
class DescriptionAnalysis:
    description: str = ""
    length: int = 0
    is_optimal_length: bool = False
    is_too_short: bool = True
    is_too_long: bool = False
    has_call_to_action: bool = False
    has_benefits: bool = False
    is_different_from_title: bool = True
    is_generic: bool = True
    issues: list[str] = field(default_factory=list)
    score: int = 0


@dataclass
class CanonicalAnalysis:
    canonical: str | None = None
    has_canonical: bool = False
    is_self_referencing: bool = False
    is_absolute_url: bool = False
    matches_current_url: bool = False
    has_different_protocol: bool = False
    has_different_domain: bool = False
    has_trailing_slash_issue: bool = False
    has_query_params: bool = False
    issues: list[str] = field(default_factory=list)
    score: int = 0


@dataclass
class ExternalLink:
    url: str
    nofollow: bool = False
    trusted: bool = False


@dataclass
class TechnicalSignals:
    https: bool = False
    mobile_friendly: bool = False
    lang: str | None = None
    hreflangs: list[str] = field(default_factory=list)
    title: str | None = None
    description: str | None = None
    h1_count: int = 0
    canonical: str | None = None
    meta_robots: str | None = None
    noindex: bool = False
    schema_types: list[str] = field(default_factory=list)
    images_total: int = 0
    images_missing_alt: int = 0
    external_links: list[ExternalLink] = field(default_factory=list)
    title_quality: TitleAnalysis = field(default_factory=TitleAnalysis)
    description_quality: DescriptionAnalysis = field(default_factory=DescriptionAnalysis)
    canonical_quality: CanonicalAnalysis = field(default_factory=CanonicalAnalysis)


@dataclass(frozen=True)
class PageSignals:
    url: str
    page_type: str = "other"
    authorship: AuthorshipSignals | None = None
    author_profile: AuthorProfileSignals | None = None
    doctor_credentials: DoctorCredentialSignals | None = None
    trust: TrustSignals | None = None
    authority: AuthoritySignals | None = None
    reputation: ReputationSignals | None = None
    experience: ExperienceSignals | None = None
    technical: TechnicalSignals | None = None


@dataclass(frozen=True)
class FetchOutcome:
    url: str
    page_type: str = "other"
    signals: PageSignals | None = None
    error_kind: str | None = None
    error: str | None = None
    status: int | None = None

    @property
    def ok(self) -> bool:
        return self.signals is not None and self.error_kind is None


# ---------------------------------------------------------------------------
# Site-level signals
# ---------------------------------------------------------------------------


@dataclass
class RobotsAnalysis:
    present: bool = False
    has_sitemap: bool = False
    sitemaps: list[str] = field(default_factory=list)
    disallow_all: bool = False
    blocked_ai_bots: list[str] = field(default_factory=list)
    has_wildcard: bool = False
    score: int = 0


@dataclass
class SitemapAnalysis:
    present: bool = False
    valid_xml: bool = False
    kind: str = "urlset"
    url_count: int = 0
    lastmod_share: float = 0.0
    priority_share: float = 0.0
    changefreq_share: float = 0.0
    has_images: bool = False
    score: int = 0


@dataclass
class LlmsAnalysis:
    present: bool = False
    score: int = 0
    missing_sections: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class DuplicateChecks:
    www_redirect: str = "error"
    trailing_slash: str = "error"
    http_redirect: str = "error"


@dataclass
class PageSpeedScores:
    desktop: float | None = None
    mobile: float | None = None


@dataclass
class LinkHealth:
    checked: int = 0
    broken: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RatingResult:
    fetched: bool = False
    rating: float | None = None
    review_count: int | None = None


@dataclass
class NAPComparison:
    website: NAPData = field(default_factory=NAPData)
    business_profile: NAPData | None = None
    name_matches: bool = False
    address_matches: bool = False
    phone_matches: bool = False
    match_percent: int = 0


@dataclass
class ReputationLookups:
    maps: RatingResult | None = None
    aggregators: dict[str, RatingResult] = field(default_factory=dict)
    aggregator_average: float | None = None
    aggregator_review_count: int = 0
    nap: NAPComparison | None = None


@dataclass
class SiteSignals:
    robots: RobotsAnalysis | None = None
    sitemap: SitemapAnalysis | None = None
    llms: LlmsAnalysis | None = None
    duplicates: DuplicateChecks | None = None
    speed: PageSpeedScores | None = None
    links: LinkHealth | None = None
    reputation: ReputationLookups | None = None


# ---------------------------------------------------------------------------
# Derived results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AggregatedMetric:
    name: str
    numerator: float
    denominator: float
    percent: int


@dataclass(frozen=True)
class MetricSet:
    ratios: dict[str, AggregatedMetric] = field(default_factory=dict)
    counts: dict[str, int] = field(default_factory=dict)

    def ratio(self, name: str) -> AggregatedMetric | None:
        return self.ratios.get(name)

    def count(self, name: str) -> int | None:
        return self.counts.get(name)


@dataclass(frozen=True)
class CategoryScore:
    category: str
    score: int
    applied_signal_count: int


@dataclass(frozen=True)
class Recommendation:
    rule_id: str
    message: str
    severity: str
    category: str
    priority: int


@dataclass(frozen=True)
class TrendReport:
    first_audit: bool
    previous_timestamp: str | None = None
    overall_delta: int | None = None
    category_deltas: dict[str, int | None] = field(default_factory=dict)


@dataclass(frozen=True)
class HistoryEntry:
    domain: str
    timestamp: str
    overall: int
    categories: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": self.domain,
            "timestamp": self.timestamp,
            "overall": self.overall,
            "categories": dict(self.categories),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "HistoryEntry":
        return cls(
            domain=str(payload.get("domain", "")),
            timestamp=str(payload.get("timestamp", "")),
            overall=int(payload.get("overall", 0)),
            categories={str(k): int(v) for k, v in (payload.get("categories") or {}).items()},
        )


@dataclass(frozen=True)
class AuditResult:
    target: AuditTarget
    timestamp: datetime
    outcomes: tuple[FetchOutcome, ...]
    metrics: MetricSet
    categories: tuple[CategoryScore, ...]
    overall: int
    recommendations: tuple[Recommendation, ...]
    site: SiteSignals = field(default_factory=SiteSignals)
    trend: TrendReport | None = None

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded

    def category_map(self) -> dict[str, int]:
        return {item.category: item.score for item in self.categories}
