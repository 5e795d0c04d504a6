"""
Per-provider request window + minimum spacing + retry-after limiter.

Each provider keeps its own ``RateLimitState`` guarded by its own lock, so a
slow provider never blocks the others. ``acquire`` only ever waits; when the
required wait would exceed the ceiling it returns ``False`` right away.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from trends.clock import SYSTEM_CLOCK, Clock
from trends.models import Platform
from trends.settings import ProviderSettings

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = (429, 503)


@dataclass
class RateLimitPolicy:
    max_requests: int
    window_seconds: float
    min_interval: float = 0.0
    retry_after_fallback: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: ProviderSettings) -> "RateLimitPolicy":
        return cls(
            max_requests=settings.max_requests,
            window_seconds=settings.window_seconds,
            min_interval=settings.min_interval,
            retry_after_fallback=settings.retry_after_fallback,
        )


@dataclass
class RateLimitState:
    request_count: int = 0
    window_start: float = 0.0
    last_request_at: Optional[float] = None
    retry_after: Optional[float] = None


class RateLimiter:
    def __init__(
        self,
        policies: Mapping[Platform, RateLimitPolicy],
        *,
        clock: Clock = SYSTEM_CLOCK,
        max_wait: float = 30.0,
    ) -> None:
        self.clock = clock
        self.max_wait = max_wait
        self._policies: Dict[Platform, RateLimitPolicy] = dict(policies)
        started = clock.time()
        self._states: Dict[Platform, RateLimitState] = {
            platform: RateLimitState(window_start=started) for platform in self._policies
        }
        self._locks: Dict[Platform, threading.Lock] = {platform: threading.Lock() for platform in self._policies}

    @classmethod
    def from_settings(cls, providers: Mapping[Platform, ProviderSettings], **kwargs) -> "RateLimiter":
        return cls({platform: RateLimitPolicy.from_settings(cfg) for platform, cfg in providers.items()}, **kwargs)

    def acquire(self, platform: Platform, max_wait: Optional[float] = None) -> bool:
        """
        Wait until ``platform`` may issue a request, then reserve the slot.

        Returns False (without waiting) when the pending wait exceeds the
        remaining ceiling; unknown platforms are never limited.
        """
        policy = self._policies.get(platform)
        if policy is None:
            return True
        ceiling = self.max_wait if max_wait is None else max_wait
        deadline = self.clock.time() + ceiling
        while True:
            with self._locks[platform]:
                now = self.clock.time()
                wait = self._required_wait(platform, policy, now)
                if wait <= 0:
                    state = self._states[platform]
                    state.request_count += 1
                    state.last_request_at = now
                    return True
            if now + wait > deadline:
                logger.info("Rate limit for %s needs %.1fs (ceiling %.1fs); skipping call", platform.value, wait, ceiling)
                return False
            logger.debug("Waiting %.2fs for %s rate limit", wait, platform.value)
            self.clock.sleep(wait)

    def _required_wait(self, platform: Platform, policy: RateLimitPolicy, now: float) -> float:
        state = self._states[platform]
        if state.retry_after is not None:
            if now < state.retry_after:
                return state.retry_after - now
            state.retry_after = None

        # Lazy window reset
        if now - state.window_start >= policy.window_seconds:
            state.request_count = 0
            state.window_start = now

        if state.request_count >= policy.max_requests:
            return state.window_start + policy.window_seconds - now

        if state.last_request_at is not None and policy.min_interval > 0:
            since_last = now - state.last_request_at
            if since_last < policy.min_interval:
                return policy.min_interval - since_last
        return 0.0

    def record_success(self, platform: Platform, headers: Optional[Mapping[str, str]] = None) -> None:
        if platform not in self._states or not headers:
            return
        remaining = _header(headers, "x-ratelimit-remaining")
        reset = _header(headers, "x-ratelimit-reset")
        if remaining is None:
            return
        try:
            remaining_count = int(remaining)
        except ValueError:
            return
        with self._locks[platform]:
            state = self._states[platform]
            policy = self._policies[platform]
            state.request_count = max(state.request_count, policy.max_requests - remaining_count)
            if remaining_count <= 0 and reset is not None:
                try:
                    state.retry_after = float(reset)
                except ValueError:
                    return
                logger.warning("%s quota exhausted; blocked until %s", platform.value, reset)

    def record_failure(
        self,
        platform: Platform,
        status: Optional[int] = None,
        retry_after: Optional[float] = None,
    ) -> None:
        """Register a 429/503; ``retry_after`` is the provider hint in seconds."""
        if platform not in self._states or status not in RETRYABLE_STATUSES:
            return
        policy = self._policies[platform]
        delay = retry_after if retry_after is not None else policy.retry_after_fallback
        with self._locks[platform]:
            state = self._states[platform]
            if status == 429 and retry_after is None:
                # no hint: treat the whole window as spent
                state.request_count = policy.max_requests
            if delay is None:
                return
            state.retry_after = self.clock.time() + delay
        logger.warning("%s returned %s; holding calls for %.0fs", platform.value, status, delay)

    def suspend(self, platform: Platform, seconds: float) -> None:
        if platform not in self._states:
            return
        with self._locks[platform]:
            self._states[platform].retry_after = self.clock.time() + seconds

    def is_limited(self, platform: Platform) -> bool:
        policy = self._policies.get(platform)
        if policy is None:
            return False
        with self._locks[platform]:
            return self._required_wait(platform, policy, self.clock.time()) > 0

    def state(self, platform: Platform) -> RateLimitState:
        with self._locks[platform]:
            current = self._states[platform]
            return RateLimitState(
                request_count=current.request_count,
                window_start=current.window_start,
                last_request_at=current.last_request_at,
                retry_after=current.retry_after,
            )

    def snapshot(self) -> Dict[str, Dict[str, object]]:
        now = self.clock.time()
        view: Dict[str, Dict[str, object]] = {}
        for platform, policy in self._policies.items():
            state = self.state(platform)
            view[platform.value] = {
                "request_count": state.request_count,
                "max_requests": policy.max_requests,
                "window_seconds": policy.window_seconds,
                "retry_after_seconds": round(state.retry_after - now, 1)
                if state.retry_after and state.retry_after > now
                else None,
            }
        return view


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None
