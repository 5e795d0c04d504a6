"""
High-level orchestration: fan out to every provider, join, score, persist.
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from trends.cache import TrendCache
from trends.clock import SYSTEM_CLOCK, Clock
from trends.errors import AggregationCancelled
from trends.growth import GrowthTracker
from trends.http_client import HttpClient
from trends.models import AggregationResult, FetchStatus, HealthStatus, Platform, ProviderResult, TrendRecord
from trends.persistence import (
    JsonlSnapshotStore,
    SnapshotGateway,
    SnapshotWriter,
    SqlSnapshotStore,
    records_from_snapshot,
)
from trends.providers import TrendProvider, registry
from trends.rate_limiter import RateLimiter
from trends.scoring import FAILURE_ANALYSIS, TrendAnalysis, build_report
from trends.settings import TrendSettings

logger = logging.getLogger(__name__)

CANCEL_POLL_SECONDS = 0.1


class TrendEngine:
    def __init__(
        self,
        providers: Sequence[TrendProvider],
        *,
        snapshot_writer: Optional[SnapshotWriter] = None,
        clock: Clock = SYSTEM_CLOCK,
        aggregate_timeout: float = 60.0,
        top_limit: int = 5,
        limiter: Optional[RateLimiter] = None,
        cache: Optional[TrendCache] = None,
    ) -> None:
        self.providers: Dict[Platform, TrendProvider] = {provider.platform: provider for provider in providers}
        self.snapshot_writer = snapshot_writer or SnapshotWriter(None, clock=clock)
        self.clock = clock
        self.aggregate_timeout = aggregate_timeout
        self.top_limit = top_limit
        self.limiter = limiter
        self.cache = cache
        self.last_report: Optional[TrendAnalysis] = None
        self._health: Dict[Platform, HealthStatus] = {}
        self._health_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: TrendSettings,
        *,
        http: Optional[HttpClient] = None,
        clock: Clock = SYSTEM_CLOCK,
        snapshot_store: Optional[SnapshotGateway] = None,
    ) -> "TrendEngine":
        """Wire the HTTP client, limiter, cache, growth baseline and snapshot store."""
        http = http or HttpClient(timeout=settings.http_timeout)
        limiter = RateLimiter.from_settings(settings.providers, clock=clock, max_wait=settings.max_wait_seconds)
        cache = TrendCache(
            {platform: cfg.cache_ttl for platform, cfg in settings.providers.items()},
            storage_path=settings.cache_path,
            max_entries=settings.cache_max_entries,
            clock=clock,
        )
        if snapshot_store is None:
            if settings.snapshot_db is not None:
                snapshot_store = SqlSnapshotStore(settings.snapshot_db, clock=clock)
            elif settings.snapshot_path is not None:
                snapshot_store = JsonlSnapshotStore(settings.snapshot_path)

        growth = GrowthTracker()
        latest = getattr(snapshot_store, "latest", None)
        if callable(latest):
            try:
                growth.seed(records_from_snapshot(latest()))
            except (OSError, ValueError, SQLAlchemyError) as exc:
                logger.warning("Could not seed growth baseline from snapshots: %s", exc)

        providers = registry.build_all(
            settings.providers,
            http=http,
            limiter=limiter,
            cache=cache,
            clock=clock,
            growth=growth,
        )
        return cls(
            providers,
            snapshot_writer=SnapshotWriter(snapshot_store, clock=clock),
            clock=clock,
            aggregate_timeout=settings.aggregate_timeout,
            top_limit=settings.top_limit,
            limiter=limiter,
            cache=cache,
        )

    def aggregate(self, cancel_event: Optional[threading.Event] = None) -> AggregationResult:
        """
        Fetch every provider concurrently and score the merged result.

        A provider that fails or does not settle before ``aggregate_timeout``
        contributes its stale cache value or an empty list. Raises
        ``AggregationCancelled`` if ``cancel_event`` is set before the join
        completes; in-flight calls finish in the background and are dropped.
        """
        now = self.clock.now()
        results = self._collect(now, cancel_event)

        trends: Dict[Platform, List[TrendRecord]] = {
            platform: list(results[platform].records) if platform in results else [] for platform in Platform
        }
        self._record_health(results, now)

        total_failure = all(result.failed for result in results.values()) and not any(trends.values())
        if total_failure:
            logger.error("Every trend provider failed and no cached data exists")
            analysis = FAILURE_ANALYSIS
        else:
            analysis = self._analyze(trends)

        result = AggregationResult(
            trends=trends,
            analysis=analysis,
            generated_at=now,
            health=self.get_health(),
        )
        self.snapshot_writer.submit(
            {
                "trends": result.to_dict()["trends"],
                "analysis": analysis,
                "timestamp": now.isoformat(),
            }
        )
        return result

    def get_all_platform_trends(self, cancel_event: Optional[threading.Event] = None) -> Dict[str, Any]:
        """Boundary operation: ``{"trends": {key: [record dict]}, "analysis": str}``."""
        try:
            return self.aggregate(cancel_event).to_dict()
        except AggregationCancelled:
            raise
        except Exception:
            logger.exception("Trend aggregation failed")
            return {
                "trends": {platform.value: [] for platform in Platform},
                "analysis": FAILURE_ANALYSIS,
            }

    def _collect(self, now: datetime, cancel_event: Optional[threading.Event]) -> Dict[Platform, ProviderResult]:
        results: Dict[Platform, ProviderResult] = {}
        if not self.providers:
            return results

        executor = ThreadPoolExecutor(max_workers=len(self.providers), thread_name_prefix="trend-provider")
        try:
            futures: Dict[Future, Platform] = {
                executor.submit(provider.fetch, now): platform for platform, provider in self.providers.items()
            }
            pending = set(futures)
            deadline = time.monotonic() + self.aggregate_timeout
            while pending:
                if cancel_event is not None and cancel_event.is_set():
                    break
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                timeout = min(remaining, CANCEL_POLL_SECONDS) if cancel_event is not None else remaining
                done, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
                for future in done:
                    platform = futures[future]
                    try:
                        results[platform] = future.result()
                    except Exception as exc:
                        logger.error("Provider %s crashed: %s", platform.value, exc)
                        results[platform] = self.providers[platform].stale_result(now, error=str(exc))

            if cancel_event is not None and cancel_event.is_set():
                logger.info("Trend aggregation cancelled; discarding %s settled results", len(results))
                raise AggregationCancelled("aggregation cancelled by caller")

            for future in pending:
                platform = futures[future]
                logger.warning("Provider %s did not settle within %.0fs", platform.value, self.aggregate_timeout)
                fallback = self.providers[platform].stale_result(now, error="timed out")
                results[platform] = ProviderResult(
                    platform,
                    fallback.records,
                    FetchStatus.TIMED_OUT,
                    error=f"timed out after {self.aggregate_timeout:.0f}s",
                )
        finally:
            # stuck provider threads finish on their own; nobody waits for them
            executor.shutdown(wait=False, cancel_futures=True)
        return results

    def _analyze(self, trends: Dict[Platform, List[TrendRecord]]) -> str:
        try:
            report = build_report(trends, top_limit=self.top_limit)
        except Exception:
            logger.exception("Trend analysis failed")
            return "Unable to generate trend analysis."
        self.last_report = report
        return report.render()

    def _record_health(self, results: Dict[Platform, ProviderResult], now: datetime) -> None:
        with self._health_lock:
            for platform, result in results.items():
                previous = self._health.get(platform)
                succeeded = result.status in (FetchStatus.OK, FetchStatus.CACHED)
                self._health[platform] = HealthStatus(
                    name=platform.value,
                    status=result.status,
                    last_error=result.error,
                    last_success=now if succeeded else (previous.last_success if previous else None),
                    items_last_fetch=len(result.records),
                    latency_ms=result.latency_ms,
                )

    def get_health(self) -> List[HealthStatus]:
        with self._health_lock:
            return list(self._health.values())

    def close(self) -> None:
        self.snapshot_writer.shutdown(wait=True)
