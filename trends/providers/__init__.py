"""
Provider clients; importing this package registers all five with ``registry``.
"""
from trends.providers.base import ProviderRegistry, TrendProvider, registry
from trends.providers.code_search import GithubProvider
from trends.providers.forum_a import RedditProvider
from trends.providers.forum_b import HackerNewsProvider
from trends.providers.news import NewsProvider
from trends.providers.video import VideoProvider

__all__ = [
    "GithubProvider",
    "HackerNewsProvider",
    "NewsProvider",
    "ProviderRegistry",
    "RedditProvider",
    "TrendProvider",
    "VideoProvider",
    "registry",
]
