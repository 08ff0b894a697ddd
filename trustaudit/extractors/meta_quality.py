"""Title, meta description and canonical checklists.

Every analysis returns a record with the individual findings, a list of
human-readable issues and a 0-100 score. Missing values score 0.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from ..models import CanonicalAnalysis, DescriptionAnalysis, TitleAnalysis
from ..net import canonical_host
from ..sitefiles import clamp

TITLE_OPTIMAL = (50, 60)
TITLE_TOO_SHORT = 30
TITLE_TOO_LONG = 70
DESCRIPTION_OPTIMAL = (150, 160)
DESCRIPTION_TOO_SHORT = 100
DESCRIPTION_TOO_LONG = 200

UKRAINIAN_CITIES = [
    "київ",
    "kyiv",
    "kiev",
    "львів",
    "lviv",
    "харків",
    "kharkiv",
    "одеса",
    "odesa",
    "odessa",
    "дніпро",
    "dnipro",
    "запоріжжя",
    "zaporizhzhia",
    "вінниця",
    "vinnytsia",
    "полтава",
    "poltava",
    "чернігів",
    "chernihiv",
    "черкаси",
    "cherkasy",
    "суми",
    "sumy",
    "житомир",
    "zhytomyr",
    "миколаїв",
    "mykolaiv",
    "херсон",
    "kherson",
    "рівне",
    "rivne",
    "тернопіль",
    "ternopil",
    "івано-франківськ",
    "ivano-frankivsk",
    "луцьк",
    "lutsk",
    "ужгород",
    "uzhhorod",
    "хмельницький",
    "khmelnytskyi",
    "кропивницький",
    "kropyvnytskyi",
]

GENERIC_TITLE_PATTERNS = [
    re.compile(r"^(головна|home|main|index)$", re.IGNORECASE),
    re.compile(r"^(untitled|без назви|новий документ)$", re.IGNORECASE),
    re.compile(r"^(сайт|website)$", re.IGNORECASE),
]
BRAND_FIRST_PATTERNS = [
    re.compile(r"^[A-ZА-ЯІЇЄ][a-zа-яіїє]+\s*[-|–—]"),
    re.compile(r"^(ТОВ|ПП|ФОП|LLC|Inc)\b"),
]
SERVICE_WORDS_RE = re.compile(r"послуг|лікуван|консультац|прийом|діагностик", re.IGNORECASE)
BRAND_SEPARATOR_RE = re.compile(r"\s[-|–—]\s|[|–—]")

CTA_PATTERNS = [
    re.compile(r"запишіться|записатися|запис", re.IGNORECASE),
    re.compile(r"телефонуйте|дзвоніть|зателефонуйте", re.IGNORECASE),
    re.compile(r"дізнайтеся|дізнатися", re.IGNORECASE),
    re.compile(r"отримайте|отримати", re.IGNORECASE),
    re.compile(r"\b(book|call|contact|schedule|get|learn)\b", re.IGNORECASE),
]
BENEFIT_PATTERNS = [
    re.compile(r"безкоштовн|free", re.IGNORECASE),
    re.compile(r"досвід|experience", re.IGNORECASE),
    re.compile(r"сучасн|modern", re.IGNORECASE),
    re.compile(r"гаранті|guarantee", re.IGNORECASE),
    re.compile(r"знижк|discount", re.IGNORECASE),
    re.compile(r"швидк|fast|quick", re.IGNORECASE),
    re.compile(r"\d+\s*(років|years|%)", re.IGNORECASE),
]
PLACEHOLDER_DESCRIPTIONS = [
    re.compile(r"^(опис|description|lorem ipsum)", re.IGNORECASE),
    re.compile(r"^(головна сторінка|home page)$", re.IGNORECASE),
]


def _length_points(length: int, optimal: tuple[int, int], too_short: int, too_long: int) -> int:
    if optimal[0] <= length <= optimal[1]:
        return 30
    if length < too_short:
        return 10
    if length > too_long:
        return 15
    return 20


def detect_city(text: str) -> str | None:
    lowered = text.lower()
    for city in UKRAINIAN_CITIES:
        if city in lowered:
            return city
    return None


def is_generic_title(title: str) -> bool:
    stripped = title.strip()
    if len(stripped) < 10:
        return True
    return any(pattern.search(stripped) for pattern in GENERIC_TITLE_PATTERNS)


def starts_with_keyword(title: str) -> bool:
    stripped = title.strip()
    if not stripped:
        return False
    if any(pattern.search(stripped) for pattern in BRAND_FIRST_PATTERNS):
        return False
    parts = re.split(r"\s*[-|–—]\s*", stripped, maxsplit=1)
    if len(parts) > 1 and len(parts[0]) < 20 and not SERVICE_WORDS_RE.search(parts[0]):
        return False
    return True


def analyze_title(title: str | None) -> TitleAnalysis:
    text = (title or "").strip()
    if not text:
        return TitleAnalysis(issues=["Title is missing"])

    length = len(text)
    result = TitleAnalysis(
        title=text,
        length=length,
        is_optimal_length=TITLE_OPTIMAL[0] <= length <= TITLE_OPTIMAL[1],
        is_too_short=length < TITLE_TOO_SHORT,
        is_too_long=length > TITLE_TOO_LONG,
        detected_city=detect_city(text),
        is_generic=is_generic_title(text),
        starts_with_keyword=starts_with_keyword(text),
        has_brand_separator=bool(BRAND_SEPARATOR_RE.search(text)),
    )

    score = _length_points(length, TITLE_OPTIMAL, TITLE_TOO_SHORT, TITLE_TOO_LONG)
    if result.is_too_short:
        result.issues.append(f"Title is too short ({length} chars, aim for 50-60)")
    elif result.is_too_long:
        result.issues.append(f"Title is too long ({length} chars, aim for 50-60)")

    if result.detected_city:
        score += 20
    else:
        result.issues.append("Title does not mention a city")

    if result.is_generic:
        score -= 20
        result.issues.append("Title is generic")
    else:
        score += 20

    if result.starts_with_keyword:
        score += 15
    else:
        result.issues.append("Title does not start with the main keyword")

    if result.has_brand_separator:
        score += 15
    else:
        result.issues.append("Title has no brand separator")

    result.score = int(clamp(score))
    return result


def analyze_description(description: str | None, title: str | None = None) -> DescriptionAnalysis:
    text = (description or "").strip()
    if not text:
        return DescriptionAnalysis(issues=["Meta description is missing"])

    length = len(text)
    title_text = (title or "").strip().lower()
    lowered = text.lower()
    is_generic = length < 50 or any(pattern.search(text) for pattern in PLACEHOLDER_DESCRIPTIONS)
    result = DescriptionAnalysis(
        description=text,
        length=length,
        is_optimal_length=DESCRIPTION_OPTIMAL[0] <= length <= DESCRIPTION_OPTIMAL[1],
        is_too_short=length < DESCRIPTION_TOO_SHORT,
        is_too_long=length > DESCRIPTION_TOO_LONG,
        has_call_to_action=any(pattern.search(text) for pattern in CTA_PATTERNS),
        has_benefits=any(pattern.search(text) for pattern in BENEFIT_PATTERNS),
        is_different_from_title=not title_text or (lowered != title_text and not lowered.startswith(title_text)),
        is_generic=is_generic,
    )

    score = _length_points(length, DESCRIPTION_OPTIMAL, DESCRIPTION_TOO_SHORT, DESCRIPTION_TOO_LONG)
    if result.is_too_short:
        result.issues.append(f"Description is too short ({length} chars, aim for 150-160)")
    elif result.is_too_long:
        result.issues.append(f"Description is too long ({length} chars, aim for 150-160)")

    if result.has_call_to_action:
        score += 20
    else:
        result.issues.append("Description has no call to action")
    if result.has_benefits:
        score += 20
    else:
        result.issues.append("Description does not state benefits")
    if result.is_different_from_title:
        score += 15
    else:
        result.issues.append("Description repeats the title")
    if result.is_generic:
        score -= 15
        result.issues.append("Description is generic")
    else:
        score += 15

    result.score = int(clamp(score))
    return result


def _strip_slash(path: str) -> str:
    return path.rstrip("/") or "/"


def analyze_canonical(canonical: str | None, page_url: str) -> CanonicalAnalysis:
    value = (canonical or "").strip()
    if not value:
        return CanonicalAnalysis(issues=["Canonical tag is missing"])

    parsed = urlparse(value)
    result = CanonicalAnalysis(canonical=value, has_canonical=True)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        result.issues.append("Canonical URL is not absolute")
        result.score = 10
        return result

    current = urlparse(page_url)
    result.is_absolute_url = True
    result.has_different_protocol = parsed.scheme != current.scheme
    result.has_different_domain = canonical_host(parsed.hostname) != canonical_host(current.hostname)
    same_path = _strip_slash(parsed.path or "/") == _strip_slash(current.path or "/")
    result.has_trailing_slash_issue = same_path and (parsed.path or "/") != (current.path or "/")
    result.has_query_params = bool(parsed.query)
    result.is_self_referencing = not result.has_different_domain and same_path
    result.matches_current_url = (
        result.is_self_referencing and not result.has_different_protocol and not result.has_trailing_slash_issue
    )

    score = 30 + 15
    if result.is_self_referencing:
        score += 15 if result.has_query_params else 25
    else:
        result.issues.append("Canonical points to a different page")
    if result.has_query_params:
        result.issues.append("Canonical URL contains query parameters")
    if result.has_different_protocol:
        result.issues.append("Canonical uses a different protocol")
    else:
        score += 10
    if result.has_different_domain:
        result.issues.append("Canonical points to a different domain")
    else:
        score += 10
    if result.has_trailing_slash_issue:
        result.issues.append("Canonical differs from the page URL by a trailing slash")
    else:
        score += 10

    result.score = 100 if not result.issues else int(clamp(score))
    return result
