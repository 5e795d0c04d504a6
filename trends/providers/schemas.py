"""
Pydantic models for raw provider responses.
Only the fields the normalizers read are declared; everything else is ignored.
"""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _zero_if_null(value: Any) -> Any:
    return 0 if value is None or value == "" else value


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


# NewsData.io /news


class NewsArticle(_Payload):
    title: Optional[str] = None
    link: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    pubDate: Optional[str] = None
    source_id: Optional[str] = None
    creator: Optional[List[str]] = None
    category: List[str] = []
    keywords: Optional[List[str]] = None

    @field_validator("category", mode="before")
    @classmethod
    def _category_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class NewsDataResponse(_Payload):
    status: str
    totalResults: Optional[int] = None
    results: List[NewsArticle] = []


# YouTube Data v3 /videos


class VideoSnippet(_Payload):
    title: str = ""
    description: str = ""
    channelTitle: str = ""
    publishedAt: Optional[str] = None
    categoryId: Optional[str] = None


class VideoStatistics(_Payload):
    viewCount: int = 0
    likeCount: int = 0
    commentCount: int = 0

    @field_validator("viewCount", "likeCount", "commentCount", mode="before")
    @classmethod
    def _counts(cls, value: Any) -> Any:
        return _zero_if_null(value)


class VideoItem(_Payload):
    id: str
    snippet: VideoSnippet
    statistics: VideoStatistics = Field(default_factory=VideoStatistics)


class VideoListResponse(_Payload):
    items: List[VideoItem] = []


# Reddit listing (/r/<sub>/hot.json)


class RedditPost(_Payload):
    title: str
    selftext: str = ""
    permalink: str
    score: int = 0
    ups: int = 0
    downs: int = 0
    num_comments: int = 0
    total_awards_received: int = 0
    created_utc: Optional[float] = None
    author: Optional[str] = None
    subreddit: Optional[str] = None

    @field_validator("score", "ups", "downs", "num_comments", "total_awards_received", mode="before")
    @classmethod
    def _counts(cls, value: Any) -> Any:
        return _zero_if_null(value)

    @field_validator("selftext", mode="before")
    @classmethod
    def _empty_text(cls, value: Any) -> Any:
        return value or ""


class RedditChild(_Payload):
    kind: Optional[str] = None
    data: RedditPost


class RedditListingData(_Payload):
    children: List[RedditChild] = []


class RedditListing(_Payload):
    data: RedditListingData


# Hacker News Firebase API


class HackerNewsItem(_Payload):
    id: int
    title: Optional[str] = None
    url: Optional[str] = None
    text: Optional[str] = None
    score: int = 0
    descendants: int = 0
    by: Optional[str] = None
    time: Optional[float] = None
    type: Optional[str] = None
    deleted: bool = False
    dead: bool = False

    @field_validator("score", "descendants", mode="before")
    @classmethod
    def _counts(cls, value: Any) -> Any:
        return _zero_if_null(value)


# GitHub /search/repositories


class RepositoryOwner(_Payload):
    login: str = ""


class Repository(_Payload):
    full_name: str
    html_url: str
    description: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    watchers_count: int = 0
    open_issues_count: int = 0
    language: Optional[str] = None
    created_at: Optional[str] = None
    owner: Optional[RepositoryOwner] = None

    @field_validator("stargazers_count", "forks_count", "watchers_count", "open_issues_count", mode="before")
    @classmethod
    def _counts(cls, value: Any) -> Any:
        return _zero_if_null(value)


class RepositorySearchResponse(_Payload):
    total_count: Optional[int] = None
    items: List[Repository] = []
