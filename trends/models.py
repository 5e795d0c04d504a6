"""
Core data structures shared by the trend aggregation engine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class Platform(str, Enum):
    NEWS = "news"
    VIDEO = "video"
    FORUM_A = "forum_a"
    FORUM_B = "forum_b"
    CODE_SEARCH = "code_search"

    @classmethod
    def from_key(cls, value: "Platform | str") -> "Platform":
        """Resolve a canonical key or one of the vendor aliases (youtube, reddit, ...)."""
        if isinstance(value, Platform):
            return value
        token = str(value).strip().lower()
        token = PLATFORM_ALIASES.get(token, token)
        return cls(token)


PLATFORM_ALIASES: Dict[str, str] = {
    "youtube": Platform.VIDEO.value,
    "reddit": Platform.FORUM_A.value,
    "hackernews": Platform.FORUM_B.value,
    "hacker_news": Platform.FORUM_B.value,
    "github": Platform.CODE_SEARCH.value,
}


class Sentiment(str, Enum):
    POSITIVE = "Positive"
    NEGATIVE = "Negative"
    NEUTRAL = "Neutral"


class FetchStatus(str, Enum):
    OK = "ok"
    CACHED = "cached"
    STALE = "stale"
    UNAVAILABLE = "unavailable"
    DISABLED = "disabled"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class TrendRecord:
    """
    Normalized representation of one trending item from any provider.
    """

    name: str
    url: str
    platform: Platform
    timestamp: datetime
    description: str = ""
    category: str = "general"
    volume: int = 0
    sentiment: Sentiment = Sentiment.NEUTRAL
    growth: Optional[float] = None
    engagement: Dict[str, int] = field(default_factory=dict, hash=False)
    source: str = ""
    author: str = ""

    def __post_init__(self) -> None:
        if self.volume < 0:
            raise ValueError(f"volume must be >= 0, got {self.volume}")
        if not isinstance(self.platform, Platform):
            object.__setattr__(self, "platform", Platform.from_key(self.platform))
        if not isinstance(self.sentiment, Sentiment):
            object.__setattr__(self, "sentiment", Sentiment(self.sentiment))

    @property
    def identity(self) -> str:
        return f"{self.platform.value}:{self.url or self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "url": self.url,
            "platform": self.platform.value,
            "category": self.category,
            "volume": self.volume,
            "timestamp": self.timestamp.isoformat(),
            "sentiment": self.sentiment.value,
            "growth": self.growth,
            "engagement": dict(self.engagement),
            "source": self.source,
            "author": self.author,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrendRecord":
        raw_ts = data.get("timestamp")
        timestamp = datetime.fromisoformat(raw_ts) if isinstance(raw_ts, str) else datetime.now(timezone.utc)
        growth = data.get("growth")
        return cls(
            name=data.get("name") or "",
            description=data.get("description") or "",
            url=data.get("url") or "",
            platform=Platform.from_key(data["platform"]),
            category=data.get("category") or "general",
            volume=int(data.get("volume") or 0),
            timestamp=timestamp,
            sentiment=Sentiment(data.get("sentiment") or Sentiment.NEUTRAL.value),
            growth=float(growth) if growth is not None else None,
            engagement={k: int(v or 0) for k, v in (data.get("engagement") or {}).items()},
            source=data.get("source") or "",
            author=data.get("author") or "",
        )


@dataclass
class HealthStatus:
    name: str
    status: FetchStatus
    last_error: Optional[str] = None
    last_success: Optional[datetime] = None
    items_last_fetch: int = 0
    latency_ms: Optional[float] = None

    @property
    def healthy(self) -> bool:
        return self.status in (FetchStatus.OK, FetchStatus.CACHED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "healthy": self.healthy,
            "last_error": self.last_error,
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "items_last_fetch": self.items_last_fetch,
            "latency_ms": self.latency_ms,
        }


@dataclass
class ProviderResult:
    platform: Platform
    records: List[TrendRecord]
    status: FetchStatus
    error: Optional[str] = None
    latency_ms: Optional[float] = None

    @property
    def failed(self) -> bool:
        return self.status in (FetchStatus.UNAVAILABLE, FetchStatus.DISABLED, FetchStatus.TIMED_OUT)


@dataclass
class AggregationResult:
    trends: Dict[Platform, List[TrendRecord]]
    analysis: str
    generated_at: datetime
    health: List[HealthStatus] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Boundary payload: ``{"trends": {key: [record, ...]}, "analysis": str}``."""
        return {
            "trends": {
                platform.value: [record.to_dict() for record in records]
                for platform, records in self.trends.items()
            },
            "analysis": self.analysis,
        }
