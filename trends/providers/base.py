"""
Provider client base class + registry.

A provider pipeline is: cache lookup -> (rate limiter -> HTTP -> retry)* ->
schema validation -> normalize -> growth -> cache write. ``fetch`` is the
boundary: every failure becomes a ``ProviderResult`` and nothing is raised.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from trends.cache import TrendCache, cache_key
from trends.clock import SYSTEM_CLOCK, Clock
from trends.errors import (
    AuthenticationError,
    MalformedPayloadError,
    ProviderError,
    RateLimitExceeded,
    TransientProviderError,
)
from trends.growth import GrowthTracker
from trends.http_client import HttpClient
from trends.models import FetchStatus, Platform, ProviderResult, TrendRecord
from trends.normalize import Normalizer
from trends.rate_limiter import RateLimiter
from trends.retry import RetryPolicy
from trends.security import redact_secrets
from trends.settings import ProviderSettings

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

AUTH_SUSPEND_SECONDS = 60 * 60


class TrendProvider:
    """
    Base class for one external trend source.

    Subclasses set ``platform`` and implement ``query_params``, ``collect``
    (network calls through ``request``) and the pure ``normalize``.
    """

    platform: Platform

    def __init__(
        self,
        settings: ProviderSettings,
        *,
        http: HttpClient,
        limiter: RateLimiter,
        cache: TrendCache,
        clock: Clock = SYSTEM_CLOCK,
        growth: Optional[GrowthTracker] = None,
        normalizer: Optional[Normalizer] = None,
    ) -> None:
        self.settings = settings
        self.http = http
        self.limiter = limiter
        self.cache = cache
        self.clock = clock
        self.growth = growth
        self.normalizer = normalizer or Normalizer()
        self.retry_policy = RetryPolicy(
            max_attempts=settings.retry_attempts,
            base_delay=settings.retry_base_delay,
        )
        self._inflight = threading.Lock()

    @property
    def name(self) -> str:
        return self.platform.value

    def query_params(self, now: datetime) -> Dict[str, Any]:
        raise NotImplementedError

    def collect(self, now: datetime) -> List[TrendRecord]:
        raise NotImplementedError

    def normalize(self, payload: Any, *, now: datetime) -> List[TrendRecord]:
        raise NotImplementedError

    def fetch(self, now: Optional[datetime] = None) -> ProviderResult:
        now = now or self.clock.now()
        started = self.clock.time()
        if not self.settings.is_active:
            logger.info("%s provider disabled (missing credential or switched off).", self.name)
            return ProviderResult(self.platform, [], FetchStatus.DISABLED, error="provider disabled")

        key = cache_key(self.platform, self.query_params(now))
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Using cached %s trends (%s items)", self.name, len(cached))
            return ProviderResult(self.platform, cached, FetchStatus.CACHED, latency_ms=self._elapsed(started))

        with self._inflight:
            try:
                records = self.collect(now)
            except AuthenticationError as exc:
                logger.error("%s rejected our credentials (%s); pausing provider for %ss",
                             self.name, exc.status, AUTH_SUSPEND_SECONDS)
                self.limiter.suspend(self.platform, AUTH_SUSPEND_SECONDS)
                return self._fallback(key, exc, started)
            except ProviderError as exc:
                logger.warning("%s unavailable: %s", self.name, redact_secrets(str(exc)))
                return self._fallback(key, exc, started)
            except Exception as exc:
                logger.exception("Unexpected %s provider failure", self.name)
                return self._fallback(key, exc, started)

        if self.growth is not None:
            records = self.growth.apply(records)
        self.cache.put(key, records, self.settings.cache_ttl)
        return ProviderResult(self.platform, records, FetchStatus.OK, latency_ms=self._elapsed(started))

    def stale_result(self, now: Optional[datetime] = None, error: Optional[str] = None) -> ProviderResult:
        """Best offline answer for this provider: last-known-good records or nothing."""
        key = cache_key(self.platform, self.query_params(now or self.clock.now()))
        stale = self.cache.get_stale(key)
        if stale is not None:
            return ProviderResult(self.platform, stale, FetchStatus.STALE, error=error)
        return ProviderResult(self.platform, [], FetchStatus.UNAVAILABLE, error=error)

    def request(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        url = self.settings.base_url.rstrip("/") + path

        def attempt() -> Any:
            if not self.limiter.acquire(self.platform):
                raise RateLimitExceeded(f"{self.name} rate limit window exhausted", platform=self.name)
            try:
                response = self.http.get_json(url, params=params, headers=headers, platform=self.name)
            except TransientProviderError as exc:
                if exc.status is not None:
                    self.limiter.record_failure(self.platform, exc.status, getattr(exc, "retry_after", None))
                raise
            self.limiter.record_success(self.platform, response.headers)
            return response.payload

        return self.retry_policy.call(attempt, clock=self.clock, on_retry=self._log_retry)

    def parse(self, schema: Type[M], payload: Any) -> M:
        try:
            return schema.model_validate(payload)
        except ValidationError as exc:
            raise MalformedPayloadError(
                f"{self.name} payload does not match {schema.__name__}: {exc.error_count()} errors",
                platform=self.name,
            ) from exc

    def _fallback(self, key: str, exc: BaseException, started: float) -> ProviderResult:
        error = redact_secrets(str(exc))
        stale = self.cache.get_stale(key)
        latency = self._elapsed(started)
        if stale is not None:
            logger.info("Serving %s stale %s trends after failure", len(stale), self.name)
            return ProviderResult(self.platform, stale, FetchStatus.STALE, error=error, latency_ms=latency)
        return ProviderResult(self.platform, [], FetchStatus.UNAVAILABLE, error=error, latency_ms=latency)

    def _log_retry(self, attempt: int, exc: BaseException, delay: float) -> None:
        logger.info("%s attempt %s failed (%s); retrying in %.1fs",
                    self.name, attempt, redact_secrets(str(exc)), delay)

    def _elapsed(self, started: float) -> float:
        return round((self.clock.time() - started) * 1000, 2)


class ProviderRegistry:
    """
    Keeps track of the provider class for every platform.
    """

    def __init__(self) -> None:
        self._factories: Dict[Platform, Type[TrendProvider]] = {}

    def register(self, provider_cls: Type[TrendProvider]) -> Type[TrendProvider]:
        platform = provider_cls.platform
        if platform in self._factories:
            raise ValueError(f"Provider '{platform.value}' already registered")
        self._factories[platform] = provider_cls
        return provider_cls

    def get(self, platform: Platform) -> Type[TrendProvider]:
        return self._factories[platform]

    def build_all(self, settings: Dict[Platform, ProviderSettings], **deps: Any) -> List[TrendProvider]:
        return [self._factories[platform](cfg, **deps) for platform, cfg in settings.items() if platform in self._factories]

    def keys(self) -> Iterable[Platform]:
        return self._factories.keys()


registry = ProviderRegistry()
