"""Shared fakes for the trend engine tests."""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from trends.cache import TrendCache
from trends.clock import Clock
from trends.errors import PermanentProviderError
from trends.http_client import HttpResponse
from trends.models import FetchStatus, Platform, ProviderResult, TrendRecord
from trends.rate_limiter import RateLimiter
from trends.settings import DEFAULT_PROVIDERS, ProviderSettings


class FakeClock(Clock):
    """Manual clock: ``sleep`` advances time instead of blocking."""

    def __init__(self, start: float = 1_700_000_000.0):
        self._now = start
        self._lock = threading.Lock()
        self.sleeps: List[float] = []

    def time(self) -> float:
        with self._lock:
            return self._now

    def sleep(self, seconds: float) -> None:
        with self._lock:
            self.sleeps.append(seconds)
            if seconds > 0:
                self._now += seconds

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._now += seconds


class FakeHttp:
    """
    Route table keyed by URL suffix. Each route is a list consumed in order; the
    last element repeats. Exceptions in the list are raised.
    """

    def __init__(self, routes: Optional[Dict[str, List[Any]]] = None, headers: Optional[Dict[str, str]] = None):
        self.routes = {suffix: list(items) for suffix, items in (routes or {}).items()}
        self.headers = headers or {}
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def get_json(self, url, *, params=None, headers=None, platform=""):
        with self._lock:
            self.calls.append({"url": url, "params": params, "headers": headers})
            for suffix, queue in self.routes.items():
                if url.endswith(suffix):
                    item = queue.pop(0) if len(queue) > 1 else queue[0]
                    break
            else:
                raise PermanentProviderError(f"no route for {url}", platform=platform, status=404)
        if isinstance(item, BaseException):
            raise item
        return HttpResponse(status=200, payload=item, headers=dict(self.headers))

    def calls_to(self, suffix: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["url"].endswith(suffix)]


def provider_settings(platform: Platform, **overrides: Any) -> ProviderSettings:
    base = DEFAULT_PROVIDERS[platform]
    if base.requires_credential and "credential" not in overrides:
        overrides["credential"] = "test-key"
    return replace(base, **overrides)


def build_provider(provider_cls, clock: FakeClock, http: FakeHttp, **overrides: Any):
    settings = provider_settings(provider_cls.platform, **overrides)
    limiter = RateLimiter.from_settings({settings.platform: settings}, clock=clock)
    cache = TrendCache({settings.platform: settings.cache_ttl}, clock=clock)
    return provider_cls(settings, http=http, limiter=limiter, cache=cache, clock=clock)


def make_record(
    name: str,
    *,
    platform: Platform = Platform.FORUM_A,
    volume: int = 0,
    engagement: Optional[Dict[str, int]] = None,
    growth: Optional[float] = None,
    category: str = "general",
    timestamp: Optional[datetime] = None,
) -> TrendRecord:
    return TrendRecord(
        name=name,
        url=f"https://example.com/{name}",
        platform=platform,
        timestamp=timestamp or datetime(2024, 5, 1, tzinfo=timezone.utc),
        category=category,
        volume=volume,
        growth=growth,
        engagement=dict(engagement or {}),
    )


class StaticProvider:
    """Provider stand-in for engine tests; optionally blocks until released."""

    def __init__(
        self,
        platform: Platform,
        records: Optional[List[TrendRecord]] = None,
        *,
        error: Optional[str] = None,
        stale: Optional[List[TrendRecord]] = None,
        release: Optional[threading.Event] = None,
    ):
        self.platform = platform
        self.records = list(records or [])
        self.error = error
        self.stale = stale
        self.release = release
        self.calls = 0

    def fetch(self, now=None) -> ProviderResult:
        self.calls += 1
        if self.release is not None:
            self.release.wait(5)
        if self.error:
            return ProviderResult(self.platform, [], FetchStatus.UNAVAILABLE, error=self.error)
        return ProviderResult(self.platform, list(self.records), FetchStatus.OK, latency_ms=1.0)

    def stale_result(self, now=None, error=None) -> ProviderResult:
        if self.stale:
            return ProviderResult(self.platform, list(self.stale), FetchStatus.STALE, error=error)
        return ProviderResult(self.platform, [], FetchStatus.UNAVAILABLE, error=error)
