"""
Explicit retry policy with exponential backoff, shared by all provider clients.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from trends.clock import SYSTEM_CLOCK, Clock
from trends.errors import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ProviderError) and exc.retryable


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 30.0
    retryable: Callable[[BaseException], bool] = is_retryable

    def delay_for(self, attempt: int) -> float:
        """Backoff before attempt ``attempt + 1`` (``attempt`` is 0-based)."""
        return min(self.max_delay, self.base_delay * (self.multiplier ** attempt))

    def call(
        self,
        operation: Callable[[], T],
        *,
        clock: Clock = SYSTEM_CLOCK,
        on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    ) -> T:
        """
        Run ``operation`` until it succeeds, raises a non-retryable error, or
        the attempt budget is spent; the last error is re-raised.
        """
        attempts = max(1, self.max_attempts)
        for attempt in range(attempts):
            try:
                return operation()
            except Exception as exc:
                if not self.retryable(exc) or attempt == attempts - 1:
                    raise
                delay = self.delay_for(attempt)
                if on_retry:
                    on_retry(attempt + 1, exc, delay)
                else:
                    logger.info("Retrying after %s (attempt %s/%s, %.1fs)", exc, attempt + 1, attempts, delay)
                clock.sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover
