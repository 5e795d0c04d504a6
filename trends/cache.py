"""
TTL cache for normalized provider results.

- Keys are ``<platform>:<canonical query JSON>``
- Expired entries are evicted lazily on lookup, never swept
- Every write also lands in a last-known-good slot that ignores TTL, which
  backs the stale fallback when a provider is down or rate-limited
- Last-known-good entries can be persisted to disk so the fallback survives restarts
"""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from trends.clock import SYSTEM_CLOCK, Clock
from trends.models import Platform, TrendRecord

logger = logging.getLogger(__name__)


def cache_key(platform: Platform, params: Optional[Mapping[str, Any]] = None) -> str:
    return f"{platform.value}:{json.dumps(dict(params or {}), sort_keys=True, default=str)}"


@dataclass(frozen=True)
class CacheEntry:
    records: Tuple[TrendRecord, ...]
    written_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.written_at >= self.ttl


class TrendCache:
    def __init__(
        self,
        default_ttls: Optional[Mapping[Platform, float]] = None,
        *,
        default_ttl: float = 300.0,
        storage_path: Optional[Path] = None,
        max_entries: int = 64,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self.default_ttls: Dict[Platform, float] = dict(default_ttls or {})
        self.default_ttl = default_ttl
        self.storage_path = storage_path
        self.max_entries = max_entries
        self.clock = clock
        self._fresh: Dict[str, CacheEntry] = {}
        self._last_good: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._disk_lock = threading.Lock()
        if storage_path is not None:
            self._last_good.update(self._load_disk_entries())

    def ttl_for(self, platform: Platform) -> float:
        return self.default_ttls.get(platform, self.default_ttl)

    def get(self, key: str) -> Optional[List[TrendRecord]]:
        """Strict TTL lookup; an expired entry is a miss and is dropped."""
        now = self.clock.time()
        with self._lock:
            entry = self._fresh.get(key)
            if entry is None:
                return None
            if entry.expired(now):
                del self._fresh[key]
                return None
            return list(entry.records)

    def get_stale(self, key: str) -> Optional[List[TrendRecord]]:
        """Most recent value written for ``key``, ignoring TTL."""
        with self._lock:
            entry = self._last_good.get(key)
            return list(entry.records) if entry else None

    def put(self, key: str, records: Sequence[TrendRecord], ttl: Optional[float] = None) -> None:
        if ttl is None:
            try:
                ttl = self.ttl_for(Platform(key.split(":", 1)[0]))
            except ValueError:
                ttl = self.default_ttl
        entry = CacheEntry(records=tuple(records), written_at=self.clock.time(), ttl=ttl)
        with self._lock:
            self._fresh[key] = entry
            self._last_good[key] = entry
            self._prune_last_good()
        if self.storage_path is not None:
            self._persist()

    def snapshot(self) -> Dict[str, object]:
        """Return a lightweight view for status endpoints without exposing payload content."""
        now = self.clock.time()
        with self._lock:
            fresh = list(self._fresh.items())
            last_good = list(self._last_good.items())
        return {
            "storage_path": str(self.storage_path) if self.storage_path else None,
            "max_entries": self.max_entries,
            "entries": [
                {
                    "key": key,
                    "age_seconds": round(now - entry.written_at, 2),
                    "ttl": entry.ttl,
                    "expired": entry.expired(now),
                    "items": len(entry.records),
                }
                for key, entry in fresh
            ],
            "last_good_entries": len(last_good),
        }

    def _prune_last_good(self) -> None:
        # caller holds self._lock
        if len(self._last_good) <= self.max_entries:
            return
        ordered = sorted(self._last_good.items(), key=lambda kv: kv[1].written_at, reverse=True)
        for key, _ in ordered[self.max_entries:]:
            self._last_good.pop(key, None)

    def _persist(self) -> None:
        try:
            with self._disk_lock:
                with self._lock:
                    last_good = list(self._last_good.items())
                entries = {
                    key: {
                        "ts": entry.written_at,
                        "ttl": entry.ttl,
                        "records": [record.to_dict() for record in entry.records],
                    }
                    for key, entry in last_good
                }
                payload = {"entries": entries, "version": 1}
                self.storage_path.parent.mkdir(parents=True, exist_ok=True)
                self.storage_path.write_text(json.dumps(payload, default=str), encoding="utf-8")
        except OSError as exc:
            logger.warning("Persisting trend cache to %s failed: %s", self.storage_path, exc)

    def _load_disk_entries(self) -> Dict[str, CacheEntry]:
        if not self.storage_path.exists():
            return {}
        try:
            blob = json.loads(self.storage_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable trend cache %s: %s", self.storage_path, exc)
            return {}

        loaded: Dict[str, CacheEntry] = {}
        for key, payload in (blob.get("entries") or {}).items():
            try:
                records = tuple(TrendRecord.from_dict(item) for item in payload.get("records", []))
                loaded[key] = CacheEntry(
                    records=records,
                    written_at=float(payload.get("ts", 0)),
                    ttl=float(payload.get("ttl", self.default_ttl)),
                )
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Failed to hydrate cache entry %s: %s", key, exc)
        return loaded
