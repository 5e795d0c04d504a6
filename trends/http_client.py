"""
HTTP helper with polite headers reused by provider clients.

Retries are not done here: the client maps every outcome onto the error
taxonomy in ``trends.errors`` and the provider's ``RetryPolicy`` decides.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import InvalidHeader
from urllib3.util.retry import Retry

from trends.errors import (
    AuthenticationError,
    MalformedPayloadError,
    PermanentProviderError,
    RateLimitedError,
    TransientProviderError,
)
from trends.security import redact_secrets

logger = logging.getLogger(__name__)

_RETRY_AFTER_PARSER = Retry(total=0)


@dataclass
class HttpResponse:
    status: int
    payload: Any
    headers: Mapping[str, str]


class HttpClient:
    def __init__(self, timeout: float = 15, pool_size: int = 10, user_agent: Optional[str] = None):
        self.timeout = timeout
        self.session = requests.Session()
        adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size, max_retries=0)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self.session.headers.update(
            {
                "User-Agent": user_agent or "TrendAggregator/1.0",
                "Accept": "application/json",
            }
        )

    def get_json(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        platform: str = "",
    ) -> HttpResponse:
        try:
            resp = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.Timeout as exc:
            raise TransientProviderError(f"timeout: {redact_secrets(str(exc))}", platform=platform) from exc
        except requests.ConnectionError as exc:
            raise TransientProviderError(f"connection error: {redact_secrets(str(exc))}", platform=platform) from exc
        except requests.RequestException as exc:
            raise PermanentProviderError(redact_secrets(str(exc)), platform=platform) from exc

        status = resp.status_code
        if status >= 400:
            snippet = redact_secrets(resp.text[:200])
            logger.warning("HTTP GET %s failed %s %s", platform or url, status, snippet)
            message = f"HTTP {status}: {snippet}"
            if status in (429, 503):
                retry_after = parse_retry_after(resp.headers.get("Retry-After"))
                if status == 429 or retry_after is not None:
                    raise RateLimitedError(message, platform=platform, status=status, retry_after=retry_after)
                raise TransientProviderError(message, platform=platform, status=status)
            if status in (401, 403):
                raise AuthenticationError(message, platform=platform, status=status)
            raise PermanentProviderError(message, platform=platform, status=status)

        try:
            payload = resp.json()
        except ValueError as exc:
            raise MalformedPayloadError(f"invalid JSON from {platform or url}", platform=platform, status=status) from exc
        return HttpResponse(status=status, payload=payload, headers=dict(resp.headers))

    def close(self) -> None:
        self.session.close()


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a ``Retry-After`` header (delta-seconds or HTTP date)."""
    if not value:
        return None
    try:
        return max(0.0, float(_RETRY_AFTER_PARSER.parse_retry_after(value)))
    except (InvalidHeader, ValueError):
        logger.debug("Unparseable Retry-After header %r", value)
        return None
