"""Tunables and run settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_TIMEOUT = 30
DEFAULT_CONCURRENCY = 5
DEFAULT_MAX_PAGES = 20
MAX_PAGES_LIMIT = 500
DEFAULT_LINK_CAP = 50
DUPLICATE_CHECK_TIMEOUT = 5
SITE_FILE_TIMEOUT = 10
MAX_BROKEN_LINK_PROBES = 20
HISTORY_RETENTION = 5


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class AuditSettings:
    timeout: int = DEFAULT_TIMEOUT
    concurrency: int = DEFAULT_CONCURRENCY
    deadline: float | None = None
    pagespeed_key: str = ""
    maps_api_key: str = ""
    business_api_key: str = ""
    check_duplicates: bool = True
    check_broken_links: bool = True
    max_link_probes: int = MAX_BROKEN_LINK_PROBES
    history_retention: int = HISTORY_RETENTION

    @classmethod
    def from_env(cls) -> "AuditSettings":
        return cls(
            concurrency=max(1, _env_int("TRUSTAUDIT_CONCURRENCY", DEFAULT_CONCURRENCY)),
            pagespeed_key=os.getenv("PAGESPEED_API_KEY", "").strip(),
            maps_api_key=os.getenv("GOOGLE_MAPS_API_KEY", "").strip(),
            business_api_key=os.getenv("GOOGLE_BUSINESS_API_KEY", "").strip(),
        )
