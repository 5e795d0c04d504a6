"""
Engagement scoring, ranking, and the textual insight summary.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from trends.models import Platform, TrendRecord
from trends.sentiment import sentiment_breakdown

FAILURE_ANALYSIS = "Unable to fetch trends at this time."

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def score(record: Optional[TrendRecord]) -> float:
    """volume + sum(engagement), plus volume * growth% when growth is known."""
    if record is None:
        return 0
    total = record.volume + sum(record.engagement.values())
    if record.growth is not None:
        total += record.volume * (record.growth / 100)
    return total


def _growth_key(record: TrendRecord) -> float:
    return record.growth if record.growth is not None else float("-inf")


def _timestamp_key(record: TrendRecord) -> float:
    ts = record.timestamp
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return (ts - _EPOCH).total_seconds()


def rank(records: Iterable[TrendRecord]) -> List[TrendRecord]:
    """Descending score, then higher growth, then more recent timestamp."""
    return sorted(
        records,
        key=lambda r: (score(r), _growth_key(r), _timestamp_key(r)),
        reverse=True,
    )


def rank_top(records: Iterable[TrendRecord], limit: Optional[int] = None) -> List[TrendRecord]:
    ranked = rank(records)
    return ranked if limit is None else ranked[:limit]


def rank_emerging(
    records: Iterable[TrendRecord],
    top: Sequence[TrendRecord] = (),
    limit: Optional[int] = None,
) -> List[TrendRecord]:
    """Growth leaders outside ``top``; records without a growth figure are skipped."""
    taken = {id(record) for record in top}
    candidates = [r for r in records if id(r) not in taken and r.growth is not None]
    ranked = sorted(candidates, key=lambda r: (r.growth, score(r)), reverse=True)
    return ranked if limit is None else ranked[:limit]


def categorize_all(records: Iterable[TrendRecord]) -> List[Tuple[str, int]]:
    counts: Dict[str, int] = {}
    for record in records:
        category = record.category or "general"
        counts[category] = counts.get(category, 0) + 1
    # sorted() is stable, so equal counts keep first-seen order
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)


def platform_stats(per_provider: Mapping[Platform, Sequence[TrendRecord]]) -> Tuple[Optional[Platform], float]:
    top_platform: Optional[Platform] = None
    top_engagement = 0.0
    for platform, records in per_provider.items():
        total = sum(score(record) for record in records)
        if total > top_engagement:
            top_platform = platform
            top_engagement = total
    return top_platform, top_engagement


def _fmt(value: float) -> str:
    return f"{round(value):,}"


def _fmt_growth(value: Optional[float]) -> str:
    if value is None:
        return "0"
    rounded = round(value, 1)
    return f"{rounded:,.0f}" if rounded == int(rounded) else f"{rounded:,.1f}"


@dataclass
class TrendAnalysis:
    total_records: int
    platform_count: int
    total_engagement: float
    categories: List[Tuple[str, int]]
    top_platform: Optional[Platform]
    top_platform_engagement: float
    top_trends: List[TrendRecord]
    emerging_trends: List[TrendRecord]
    sentiment: Dict[str, int] = field(default_factory=dict)
    fastest: Optional[TrendRecord] = None

    def insight_lines(self) -> List[str]:
        top_category, top_count = self.categories[0] if self.categories else ("None", 0)
        leader = self.top_trends[0] if self.top_trends else None
        fastest = self.fastest
        platform_name = self.top_platform.value if self.top_platform else "None"
        return [
            f"Analyzed {self.total_records} trends across {self.platform_count} platforms.",
            f"Total engagement: {_fmt(self.total_engagement)} interactions.",
            f"Top category: {top_category} with {top_count} trends.",
            f"Most engaging platform: {platform_name} with {_fmt(self.top_platform_engagement)} interactions.",
            f"Most engaging trend: \"{leader.name if leader else 'None'}\" with {_fmt(score(leader))} interactions.",
            f"Fastest growing: \"{fastest.name if fastest else 'None'}\" with "
            f"{_fmt_growth(fastest.growth if fastest else None)}% growth.",
        ]

    def render(self) -> str:
        return "\n".join(self.insight_lines())

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_records": self.total_records,
            "platform_count": self.platform_count,
            "total_engagement": self.total_engagement,
            "categories": [{"name": name, "count": count} for name, count in self.categories],
            "top_platform": self.top_platform.value if self.top_platform else None,
            "top_platform_engagement": self.top_platform_engagement,
            "top_trends": [record.to_dict() for record in self.top_trends],
            "emerging_trends": [record.to_dict() for record in self.emerging_trends],
            "sentiment": dict(self.sentiment),
            "fastest": self.fastest.to_dict() if self.fastest else None,
        }


def build_report(
    per_provider: Mapping[Platform, Sequence[TrendRecord]],
    *,
    top_limit: Optional[int] = 5,
    emerging_limit: Optional[int] = 5,
) -> TrendAnalysis:
    records = [record for platform_records in per_provider.values() for record in platform_records]
    top = rank_top(records, top_limit)
    emerging = rank_emerging(records, top, emerging_limit)
    # the fastest grower may also be a top trend
    growers = rank_emerging(records, limit=1)
    top_platform, top_engagement = platform_stats(per_provider)
    return TrendAnalysis(
        total_records=len(records),
        platform_count=len(per_provider),
        total_engagement=sum(score(record) for record in records),
        categories=categorize_all(records),
        top_platform=top_platform,
        top_platform_engagement=top_engagement,
        top_trends=top,
        emerging_trends=emerging,
        sentiment=sentiment_breakdown(records),
        fastest=growers[0] if growers else None,
    )


def analyze(per_provider: Mapping[Platform, Sequence[TrendRecord]], *, top_limit: Optional[int] = 5) -> str:
    return build_report(per_provider, top_limit=top_limit).render()
