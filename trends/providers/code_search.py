"""
GitHub repository search for recently created, fast-starred repositories.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List

from trends.models import Platform, TrendRecord
from trends.normalize import parse_datetime
from trends.providers.base import TrendProvider, registry
from trends.providers.schemas import RepositorySearchResponse


@registry.register
class GithubProvider(TrendProvider):
    platform = Platform.CODE_SEARCH

    lookback_days = 7
    min_stars = 10
    per_page = 5

    def query_params(self, now: datetime) -> Dict[str, Any]:
        # the dated search string changes daily; the cache key must not
        return {
            "lookback_days": self.lookback_days,
            "min_stars": self.min_stars,
            "per_page": self.per_page,
        }

    def search_query(self, now: datetime) -> str:
        since = (now - timedelta(days=self.lookback_days)).date().isoformat()
        return f"created:>{since} stars:>{self.min_stars}"

    def collect(self, now: datetime) -> List[TrendRecord]:
        payload = self.request(
            "/search/repositories",
            params={
                "q": self.search_query(now),
                "sort": "stars",
                "order": "desc",
                "per_page": self.per_page,
            },
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"token {self.settings.credential}",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )
        return self.normalize(payload, now=now)

    def normalize(self, payload: Any, *, now: datetime) -> List[TrendRecord]:
        response = self.parse(RepositorySearchResponse, payload)
        return [
            self.normalizer.build(
                platform=self.platform,
                name=repo.full_name,
                description=repo.description or "",
                url=repo.html_url,
                volume=repo.stargazers_count,
                timestamp=parse_datetime(repo.created_at),
                engagement={
                    "stars": repo.stargazers_count,
                    "forks": repo.forks_count,
                    "watchers": repo.watchers_count,
                    "issues": repo.open_issues_count,
                },
                now=now,
                source=repo.language or "",
                author=repo.owner.login if repo.owner else "",
            )
            for repo in response.items
        ]
