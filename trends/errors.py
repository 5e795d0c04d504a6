"""
Exception hierarchy for provider calls and aggregation.

Provider clients raise these inside their own boundary; ``TrendProvider.fetch``
converts them into ``ProviderResult`` statuses so nothing escapes to the
aggregator.
"""
from __future__ import annotations

from typing import Optional


class TrendError(Exception):
    """Base error for the trend engine."""


class ProviderError(TrendError):
    """A provider call failed."""

    retryable = False

    def __init__(self, message: str, *, platform: str = "", status: Optional[int] = None):
        self.platform = platform
        self.status = status
        super().__init__(message)


class TransientProviderError(ProviderError):
    """Timeout, connection reset or 503; worth another attempt."""

    retryable = True


class RateLimitedError(TransientProviderError):
    """Provider answered 429 (or 503 with a retry hint)."""

    def __init__(
        self,
        message: str,
        *,
        platform: str = "",
        status: Optional[int] = 429,
        retry_after: Optional[float] = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, platform=platform, status=status)


class PermanentProviderError(ProviderError):
    """4xx other than 429, or a server error we do not retry."""


class AuthenticationError(PermanentProviderError):
    """401/403 from the provider."""


class MalformedPayloadError(PermanentProviderError):
    """Body was not JSON or did not match the provider schema."""


class RateLimitExceeded(ProviderError):
    """The local limiter refused the call within the wait ceiling."""


class AggregationCancelled(TrendError):
    """The caller cancelled an aggregation; results were discarded."""
