"""Website E-E-A-T trust and technical SEO audit pipeline."""

from .config import AuditSettings
from .errors import FatalAggregationError, FetchError, FetchTimeout, TrustAuditError
from .history import JsonHistoryStore, MemoryHistoryStore
from .models import AuditResult, AuditTarget
from .net import RequestsClient
from .pipeline import run_audit

__version__ = "1.0.0"

__all__ = [
    "AuditResult",
    "AuditSettings",
    "AuditTarget",
    "FatalAggregationError",
    "FetchError",
    "FetchTimeout",
    "JsonHistoryStore",
    "MemoryHistoryStore",
    "RequestsClient",
    "TrustAuditError",
    "run_audit",
]
