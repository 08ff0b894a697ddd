"""Audit history stores keyed by domain.

Stores only keep entries; how many to keep is decided by the caller through
``prune_history``.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Protocol

from .models import HistoryEntry

logger = logging.getLogger(__name__)


class HistoryStore(Protocol):
    def get_last(self, domain_key: str) -> HistoryEntry | None: ...

    def append(self, domain_key: str, entry: HistoryEntry) -> None: ...

    def entries(self, domain_key: str) -> list[HistoryEntry]: ...

    def replace(self, domain_key: str, entries: list[HistoryEntry]) -> None: ...


class MemoryHistoryStore:
    def __init__(self) -> None:
        self._data: dict[str, list[HistoryEntry]] = {}

    def get_last(self, domain_key: str) -> HistoryEntry | None:
        items = self._data.get(domain_key)
        return items[-1] if items else None

    def append(self, domain_key: str, entry: HistoryEntry) -> None:
        self._data.setdefault(domain_key, []).append(entry)

    def entries(self, domain_key: str) -> list[HistoryEntry]:
        return list(self._data.get(domain_key, []))

    def replace(self, domain_key: str, entries: list[HistoryEntry]) -> None:
        self._data[domain_key] = list(entries)


class JsonHistoryStore:
    """History persisted as ``{domain: [entry, ...]}`` in a single JSON file.

    A missing file reads as empty history. A corrupt file raises ``ValueError``
    rather than being silently overwritten.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, list[HistoryEntry]]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError(f"History file {self.path} is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ValueError(f"History file {self.path} must contain a JSON object")
        try:
            return {
                str(domain): [HistoryEntry.from_dict(item) for item in items if isinstance(item, dict)]
                for domain, items in payload.items()
                if isinstance(items, list)
            }
        except (TypeError, ValueError, AttributeError) as exc:
            raise ValueError(f"History file {self.path} has a malformed entry: {exc}") from exc

    def _save(self, data: dict[str, list[HistoryEntry]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {domain: [entry.to_dict() for entry in items] for domain, items in data.items()}
        self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    def get_last(self, domain_key: str) -> HistoryEntry | None:
        items = self._load().get(domain_key)
        return items[-1] if items else None

    def append(self, domain_key: str, entry: HistoryEntry) -> None:
        with self._lock:
            data = self._load()
            data.setdefault(domain_key, []).append(entry)
            self._save(data)

    def entries(self, domain_key: str) -> list[HistoryEntry]:
        return list(self._load().get(domain_key, []))

    def replace(self, domain_key: str, entries: list[HistoryEntry]) -> None:
        with self._lock:
            data = self._load()
            data[domain_key] = list(entries)
            self._save(data)


def prune_history(store: HistoryStore, domain_key: str, keep: int = 5) -> int:
    """Drop all but the newest ``keep`` entries; returns how many were removed."""
    items = store.entries(domain_key)
    if keep < 0 or len(items) <= keep:
        return 0
    store.replace(domain_key, items[len(items) - keep :] if keep else [])
    logger.debug("Pruned %d history entries for %s", len(items) - keep, domain_key)
    return len(items) - keep
