"""
Reddit hot listings (link-aggregation forum).
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Tuple

from trends.models import Platform, TrendRecord
from trends.normalize import from_epoch
from trends.providers.base import TrendProvider, registry
from trends.providers.schemas import RedditListing


@registry.register
class RedditProvider(TrendProvider):
    platform = Platform.FORUM_A

    subreddits: Tuple[str, ...] = ("technology", "popular")
    limit = 5

    def query_params(self, now: datetime) -> Dict[str, Any]:
        return {"subreddits": list(self.subreddits), "limit": self.limit}

    def collect(self, now: datetime) -> List[TrendRecord]:
        records: List[TrendRecord] = []
        # listings are fetched one after another; any failure fails the whole provider
        for subreddit in self.subreddits:
            payload = self.request(
                f"/r/{subreddit}/hot.json",
                params={"limit": self.limit, "raw_json": 1},
            )
            records.extend(self.normalize(payload, now=now))
        return records

    def normalize(self, payload: Any, *, now: datetime) -> List[TrendRecord]:
        listing = self.parse(RedditListing, payload)
        records: List[TrendRecord] = []
        for child in listing.data.children:
            post = child.data
            records.append(
                self.normalizer.build(
                    platform=self.platform,
                    name=post.title,
                    description=post.selftext,
                    url=f"https://reddit.com{post.permalink}",
                    volume=post.score,
                    timestamp=from_epoch(post.created_utc),
                    engagement={
                        "upvotes": post.ups,
                        "comments": post.num_comments,
                        "awards": post.total_awards_received,
                    },
                    now=now,
                    source=post.subreddit or "",
                    author=post.author or "",
                )
            )
        return records
