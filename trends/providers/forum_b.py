"""
Hacker News top stories (tech-news forum).
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List

from trends.errors import MalformedPayloadError, ProviderError
from trends.models import Platform, TrendRecord
from trends.normalize import from_epoch
from trends.providers.base import TrendProvider, registry
from trends.providers.schemas import HackerNewsItem
from trends.security import redact_secrets

logger = logging.getLogger(__name__)


@registry.register
class HackerNewsProvider(TrendProvider):
    platform = Platform.FORUM_B

    story_limit = 5

    def query_params(self, now: datetime) -> Dict[str, Any]:
        return {"list": "topstories", "limit": self.story_limit}

    def collect(self, now: datetime) -> List[TrendRecord]:
        story_ids = self.request("/topstories.json")
        if not isinstance(story_ids, list):
            raise MalformedPayloadError("topstories.json did not return a list", platform=self.name)

        stories: List[Any] = []
        # one item at a time; the limiter spaces the calls
        for story_id in story_ids[: self.story_limit]:
            try:
                stories.append(self.request(f"/item/{int(story_id)}.json"))
            except (ProviderError, TypeError, ValueError) as exc:
                logger.warning("Skipping Hacker News story %s: %s", story_id, redact_secrets(str(exc)))
        if story_ids and not stories:
            raise MalformedPayloadError("no Hacker News story could be fetched", platform=self.name)
        return self.normalize(stories, now=now)

    def normalize(self, payload: Any, *, now: datetime) -> List[TrendRecord]:
        if not isinstance(payload, list):
            raise MalformedPayloadError("expected a list of Hacker News items", platform=self.name)
        records: List[TrendRecord] = []
        for raw in payload:
            if raw is None:
                continue
            story = self.parse(HackerNewsItem, raw)
            if story.deleted or story.dead or not story.title:
                continue
            records.append(
                self.normalizer.build(
                    platform=self.platform,
                    name=story.title,
                    description=story.text or "",
                    url=story.url or f"https://news.ycombinator.com/item?id={story.id}",
                    volume=story.score,
                    timestamp=from_epoch(story.time),
                    engagement={
                        "points": story.score,
                        "comments": story.descendants,
                    },
                    now=now,
                    author=story.by or "",
                )
            )
        return records
