"""
Growth from a real historical baseline.

Growth is the percentage change in ``volume`` between the previous observation
of the same trend and the current one. Trends seen for the first time, or with a
zero baseline, get ``growth=None``; no value is ever invented.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional

from trends.models import TrendRecord

logger = logging.getLogger(__name__)


def percent_change(current: int, baseline: int) -> Optional[float]:
    if baseline <= 0:
        return None
    return round((current - baseline) / baseline * 100, 2)


class GrowthTracker:
    def __init__(self, baseline: Optional[Mapping[str, int]] = None) -> None:
        self._baseline: Dict[str, int] = dict(baseline or {})
        self._lock = threading.Lock()

    def seed(self, records: Iterable[TrendRecord]) -> int:
        """Load baselines from a previous run (e.g. the last persisted snapshot)."""
        count = 0
        with self._lock:
            for record in records:
                self._baseline.setdefault(record.identity, record.volume)
                count += 1
        logger.debug("Seeded growth baseline with %s records", count)
        return count

    def apply(self, records: Iterable[TrendRecord]) -> List[TrendRecord]:
        """
        Return copies with growth filled from the baseline, then make the
        current volumes the new baseline. Records that already carry a
        provider-supplied growth keep it.
        """
        updated: List[TrendRecord] = []
        with self._lock:
            for record in records:
                previous = self._baseline.get(record.identity)
                self._baseline[record.identity] = record.volume
                if record.growth is not None or previous is None:
                    updated.append(record)
                    continue
                updated.append(replace(record, growth=percent_change(record.volume, previous)))
        return updated

    def baseline_for(self, record: TrendRecord) -> Optional[int]:
        with self._lock:
            return self._baseline.get(record.identity)

    def __len__(self) -> int:
        with self._lock:
            return len(self._baseline)
