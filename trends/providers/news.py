"""
NewsData.io latest-news provider.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List

from trends.errors import MalformedPayloadError
from trends.models import Platform, TrendRecord
from trends.normalize import parse_datetime
from trends.providers.base import TrendProvider, registry
from trends.providers.schemas import NewsDataResponse
from trends.security import redact_secrets

logger = logging.getLogger(__name__)


@registry.register
class NewsProvider(TrendProvider):
    platform = Platform.NEWS

    country = "us"
    language = "en"
    categories = "technology,business,entertainment"

    def query_params(self, now: datetime) -> Dict[str, Any]:
        return {
            "country": self.country,
            "language": self.language,
            "category": self.categories,
        }

    def collect(self, now: datetime) -> List[TrendRecord]:
        params = dict(self.query_params(now), apikey=self.settings.credential)
        payload = self.request("/news", params=params)
        if isinstance(payload, dict) and payload.get("status") == "error":
            detail = payload.get("results") or payload.get("message") or "unknown error"
            raise MalformedPayloadError(f"NewsData.io error: {redact_secrets(str(detail))}", platform=self.name)
        return self.normalize(payload, now=now)

    def normalize(self, payload: Any, *, now: datetime) -> List[TrendRecord]:
        response = self.parse(NewsDataResponse, payload)
        if response.status != "success":
            raise MalformedPayloadError(f"unexpected NewsData.io status '{response.status}'", platform=self.name)
        records: List[TrendRecord] = []
        for article in response.results:
            # NewsData exposes no popularity metric, so volume stays 0 and engagement empty
            records.append(
                self.normalizer.build(
                    platform=self.platform,
                    name=article.title or "Untitled",
                    description=article.description or article.content or "",
                    url=article.link or "",
                    timestamp=parse_datetime(article.pubDate),
                    now=now,
                    source=article.source_id or "",
                    author=", ".join(article.creator or []),
                )
            )
        return records
