"""Fetch one discovered page and turn it into a FetchOutcome."""

from __future__ import annotations

import logging

from .errors import FetchError, FetchTimeout, ParseError
from .extractors import extract_page_signals
from .models import AUDIT_KINDS, DiscoveredPage, FetchOutcome
from .net import HttpClient, parse_document

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")
DEADLINE_MESSAGE = "audit deadline exceeded"


def _check_html(content_type: str, body: str) -> None:
    if not body.strip():
        raise ParseError("empty response body")
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type and media_type not in HTML_CONTENT_TYPES:
        raise ParseError(f"not an HTML document ({media_type})")


def fetch_and_extract(
    page: DiscoveredPage,
    client: HttpClient,
    timeout: float,
    audits: tuple[str, ...] = AUDIT_KINDS,
) -> FetchOutcome:
    """Never raises; every failure is recorded on the outcome."""
    try:
        response = client.get(page.url, timeout)
    except FetchTimeout as exc:
        logger.warning("Timed out fetching %s: %s", page.url, exc)
        return FetchOutcome(url=page.url, page_type=page.page_type, error_kind="fetch_timeout", error=str(exc))
    except FetchError as exc:
        logger.warning("Failed to fetch %s: %s", page.url, exc)
        return FetchOutcome(
            url=page.url, page_type=page.page_type, error_kind="fetch_error", error=str(exc), status=exc.status
        )

    if not response.ok:
        logger.warning("HTTP %s for %s", response.status, page.url)
        return FetchOutcome(
            url=page.url,
            page_type=page.page_type,
            error_kind="fetch_error",
            error=f"HTTP {response.status}",
            status=response.status,
        )

    try:
        _check_html(response.content_type, response.text)
        soup = parse_document(response.text)
        signals = extract_page_signals(soup, page.url, page.page_type, audits)
    except ParseError as exc:
        logger.warning("Could not parse %s: %s", page.url, exc)
        return FetchOutcome(
            url=page.url, page_type=page.page_type, error_kind="parse_error", error=str(exc), status=response.status
        )
    except Exception as exc:
        logger.exception("Extraction failed for %s", page.url)
        return FetchOutcome(
            url=page.url,
            page_type=page.page_type,
            error_kind="parse_error",
            error=f"{type(exc).__name__}: {exc}",
            status=response.status,
        )
    return FetchOutcome(url=page.url, page_type=page.page_type, signals=signals, status=response.status)


def deadline_outcome(page: DiscoveredPage) -> FetchOutcome:
    return FetchOutcome(url=page.url, page_type=page.page_type, error_kind="fetch_timeout", error=DEADLINE_MESSAGE)


def worker_error_outcome(page: DiscoveredPage, exc: Exception) -> FetchOutcome:
    return FetchOutcome(
        url=page.url, page_type=page.page_type, error_kind="fetch_error", error=f"{type(exc).__name__}: {exc}"
    )
