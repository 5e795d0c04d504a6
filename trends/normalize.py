"""
Shared normalization helpers: every provider builds its ``TrendRecord``s here so
sentiment, category, and timestamp fallbacks behave identically everywhere.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from trends.keywords import CATEGORY_KEYWORDS, DEFAULT_CATEGORY, contains_keyword
from trends.models import Platform, TrendRecord
from trends.sentiment import SentimentAnalyzer

logger = logging.getLogger(__name__)


class Categorizer:
    def __init__(self, table: Optional[Sequence[Tuple[str, Iterable[str]]]] = None) -> None:
        source = table if table is not None else CATEGORY_KEYWORDS
        self.table = [(name.lower(), tuple(words)) for name, words in source]

    def categorize(self, text: str) -> str:
        if not text:
            return DEFAULT_CATEGORY
        for category, keywords in self.table:
            if any(contains_keyword(text, kw) for kw in keywords):
                return category
        return DEFAULT_CATEGORY


class Normalizer:
    def __init__(
        self,
        sentiment: Optional[SentimentAnalyzer] = None,
        categorizer: Optional[Categorizer] = None,
    ) -> None:
        self.sentiment = sentiment or SentimentAnalyzer()
        self.categorizer = categorizer or Categorizer()

    def build(
        self,
        *,
        platform: Platform,
        name: str,
        url: str,
        now: datetime,
        description: Optional[str] = "",
        volume: Optional[int] = 0,
        timestamp: Optional[datetime] = None,
        engagement: Optional[Mapping[str, Optional[int]]] = None,
        growth: Optional[float] = None,
        source: Optional[str] = "",
        author: Optional[str] = "",
    ) -> TrendRecord:
        description = description or ""
        text = f"{name} {description}".strip()
        return TrendRecord(
            name=name or "Untitled",
            description=description,
            url=url or "",
            platform=platform,
            category=self.categorizer.categorize(text),
            volume=max(0, int(volume or 0)),
            timestamp=timestamp or now,
            sentiment=self.sentiment.analyze(text),
            growth=growth,
            engagement=_clean_engagement(engagement),
            source=source or "",
            author=author or "",
        )


def _clean_engagement(engagement: Optional[Mapping[str, Optional[int]]]) -> Dict[str, int]:
    if not engagement:
        return {}
    return {name: max(0, int(value or 0)) for name, value in engagement.items()}


def from_epoch(value: Optional[float]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.debug("Unusable epoch timestamp %r", value)
        return None


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 (``Z`` suffix allowed) or ``YYYY-MM-DD HH:MM:SS``; naive values are UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
