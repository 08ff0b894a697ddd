"""Error taxonomy for the audit pipeline.

Only ``FatalAggregationError`` ever escapes ``run_audit``. Every other error is
caught at the stage that raised it and recorded as data.
"""

from __future__ import annotations


class TrustAuditError(Exception):
    """Base class for audit errors."""


class DiscoveryError(TrustAuditError):
    """A discovery source (sitemap, robots.txt, base page) was unusable."""


class FetchError(TrustAuditError):
    """Network failure or non-2xx response."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class FetchTimeout(FetchError):
    """The request exceeded its own timeout or the audit deadline."""


class ParseError(TrustAuditError):
    """The response body could not be turned into a document."""


class FatalAggregationError(TrustAuditError):
    """Raised when no discovered page produced signals."""

    def __init__(self, failed: int) -> None:
        super().__init__(f"no pages analyzable ({failed} discovered, 0 succeeded)")
        self.failed = failed
