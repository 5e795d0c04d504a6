"""
YouTube most-popular videos provider.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from trends.models import Platform, TrendRecord
from trends.normalize import parse_datetime
from trends.providers.base import TrendProvider, registry
from trends.providers.schemas import VideoListResponse


@registry.register
class VideoProvider(TrendProvider):
    platform = Platform.VIDEO

    region_code = "US"
    max_results = 10

    def query_params(self, now: datetime) -> Dict[str, Any]:
        return {
            "part": "snippet,statistics",
            "chart": "mostPopular",
            "regionCode": self.region_code,
            "maxResults": self.max_results,
        }

    def collect(self, now: datetime) -> List[TrendRecord]:
        params = dict(self.query_params(now), key=self.settings.credential)
        return self.normalize(self.request("/videos", params=params), now=now)

    def normalize(self, payload: Any, *, now: datetime) -> List[TrendRecord]:
        response = self.parse(VideoListResponse, payload)
        return [
            self.normalizer.build(
                platform=self.platform,
                name=video.snippet.title,
                description=video.snippet.description,
                url=f"https://youtube.com/watch?v={video.id}",
                volume=video.statistics.viewCount,
                timestamp=parse_datetime(video.snippet.publishedAt),
                engagement={
                    "likes": video.statistics.likeCount,
                    "comments": video.statistics.commentCount,
                },
                now=now,
                source=video.snippet.channelTitle,
            )
            for video in response.items
        ]
