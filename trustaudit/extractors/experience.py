"""Experience signals: case studies, track-record figures and patient privacy."""

from __future__ import annotations

import re
from urllib.parse import unquote, urlparse

from bs4 import BeautifulSoup

from ..models import CaseStudyStructure, ExperienceSignals, PIICompliance
from ..sitefiles import round_half_up
from .common import anchors, contains_any, page_text, raw_text, search_any

CASE_STUDY_PATTERNS = [
    "case",
    "result",
    "portfolio",
    "roboti",
    "до-та-після",
    "keisy",
    "cases",
    "results",
    "before-after",
]
CASE_STUDY_URL_PATTERNS = ["case", "result", "roboti", "portfolio", "keisy", "до-та-після"]
EXPERIENCE_PATTERNS = [
    re.compile(r"\d+\s*(років|рок[іу])"),
    re.compile(r"\d+\s*пацієнт"),
    re.compile(r"\d+\s*операц"),
    re.compile(r"\d+\+?\s*years"),
    re.compile(r"\d+\+?\s*patients"),
    re.compile(r"досвід\D{0,20}\d"),
    re.compile(r"experience\D{0,20}\d"),
    re.compile(r"(більше|понад|more than)\s+\d"),
]

SECTIONS = {
    "has_complaint": ["жалоба", "complaint", "симптом", "symptom", "проблема", "problem", "скарга"],
    "has_diagnosis": ["діагноз", "diagnosis", "діагностика", "diagnostic", "визначено", "diagnosed"],
    "has_treatment": [
        "лікування",
        "treatment",
        "терапія",
        "therapy",
        "процедура",
        "procedure",
        "операція",
        "surgery",
    ],
    "has_result": ["результат", "result", "outcome", "після лікування", "after treatment"],
    "has_timeline": [
        "timeline",
        "часова лінія",
        "період",
        "period",
        "через",
        "after",
        "місяць",
        "month",
        "тиждень",
        "week",
    ],
    "has_metrics": [
        "до і після",
        "before and after",
        "до-та-після",
        "показник",
        "metric",
        "результат до",
        "result before",
        "результат після",
        "result after",
    ],
    "has_doctor_commentary": [
        "коментар лікаря",
        "doctor comment",
        "коментар",
        "commentary",
        "експертна думка",
        "expert opinion",
        "пояснення",
        "explanation",
    ],
}

SPECIALTIES = {
    "Cardiology": ["кардіологія", "cardiology", "серце", "heart"],
    "Dentistry": ["стоматологія", "dentistry", "зуби", "teeth", "dental"],
    "Ophthalmology": ["офтальмологія", "ophthalmology", "очей", "eyes", "vision"],
    "Dermatology": ["дерматологія", "dermatology", "шкіра", "skin"],
    "Orthopedics": ["ортопедія", "orthopedics", "кістки", "bones"],
    "Neurology": ["неврологія", "neurology", "нерви", "nerves"],
    "Surgery": ["хірургія", "surgery", "операція", "operative"],
    "Gynecology": ["гінекологія", "gynecology", "жіноче", "women"],
}

PATIENT_CONTEXT = ["пацієнт", "patient", "хворий"]
NAME_PATTERNS = [
    re.compile(r"\b[А-ЯІЇЄҐ][а-яіїєґ]+\s+[А-ЯІЇЄҐ]\.\s*[А-ЯІЇЄҐ]\."),
    re.compile(r"\b[А-ЯІЇЄҐ][а-яіїєґ]+\s+[А-ЯІЇЄҐ][а-яіїєґ]+\s+[А-ЯІЇЄҐ][а-яіїєґ]+"),
    re.compile(r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\s+[A-Z][a-z]+"),
]
INITIALS_RE = re.compile(r"[А-ЯІЇЄҐA-Z]\.\s*[А-ЯІЇЄҐA-Z]\.")
PII_ADDRESS_PATTERNS = [
    re.compile(r"м\.\s*[А-ЯІЇЄҐа-яіїєґ\w]+,?\s*вул\.", re.IGNORECASE),
    re.compile(r"вул\.\s*[А-ЯІЇЄҐа-яіїєґ\w\s]+,?\s*\d+", re.IGNORECASE),
    re.compile(r"\d+\s*[А-ЯІЇЄҐа-яіїєґ\w\s]+(?:вул|street)", re.IGNORECASE),
]
CLINIC_CONTEXT = ["клініка", "clinic"]
PII_PHONE_RE = re.compile(r"\+?\d[\d\s().-]{7,}\d")


def is_case_study_page(soup: BeautifulSoup, page_url: str) -> bool:
    path = unquote(urlparse(page_url).path or "/").lower()
    if contains_any(path, CASE_STUDY_URL_PATTERNS):
        return True
    return soup.select_one('[class*="case-study"], [class*="case_study"], [itemtype*="MedicalCase"]') is not None


def analyze_case_study_structure(soup: BeautifulSoup) -> CaseStudyStructure:
    text = page_text(soup)
    flags = {name: contains_any(text, keywords) for name, keywords in SECTIONS.items()}
    completeness = round_half_up(sum(flags.values()) / len(SECTIONS) * 100)
    return CaseStudyStructure(**flags, completeness_score=completeness)


def detect_specialty(soup: BeautifulSoup, page_url: str) -> str | None:
    text = page_text(soup)
    path = unquote(urlparse(page_url).path or "/").lower()
    for specialty, keywords in SPECIALTIES.items():
        if contains_any(text, keywords) or contains_any(path, keywords):
            return specialty
    return None


def check_pii_compliance(soup: BeautifulSoup) -> PIICompliance:
    """Patient names and phones only count when the page talks about patients.

    Addresses count unless a clinic is mentioned within 50 characters.
    """
    text = raw_text(soup)
    lowered = text.lower()
    patient_context = contains_any(lowered, PATIENT_CONTEXT)
    result = PIICompliance()

    if patient_context:
        for pattern in NAME_PATTERNS:
            matches = [match.group(0) for match in pattern.finditer(text)]
            if not matches:
                continue
            anonymized = any(
                contains_any(match.lower(), ["пацієнт", "patient"]) or INITIALS_RE.search(match) for match in matches
            )
            if not anonymized:
                result.names_anonymized = False
                break

    for pattern in PII_ADDRESS_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        context = lowered[max(0, match.start() - 50) : match.end() + 50]
        if not contains_any(context, CLINIC_CONTEXT):
            result.addresses_absent = False
            break

    if patient_context and PII_PHONE_RE.search(text):
        result.phones_absent = False
    return result


def extract_experience(soup: BeautifulSoup, page_url: str) -> ExperienceSignals:
    text = page_text(soup)
    signals = ExperienceSignals(
        has_case_studies=any(
            contains_any(href, CASE_STUDY_PATTERNS) or contains_any(label, CASE_STUDY_PATTERNS)
            for _, href, label in anchors(soup)
        ),
        experience_figures_found=search_any(text, EXPERIENCE_PATTERNS),
    )
    if is_case_study_page(soup, page_url):
        signals.is_case_study_page = True
        signals.case_study = analyze_case_study_structure(soup)
        signals.pii = check_pii_compliance(soup)
        signals.specialty = detect_specialty(soup, page_url)
    return signals
