"""
Centralised settings for the trend engine (env-first, YAML overlay, code-light).

Precedence: built-in defaults < ``TRENDS_CONFIG_PATH`` YAML < environment.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from trends.config_loader import load_providers_config
from trends.models import Platform
from trends.security import is_configured_key

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent
DAY = 24 * 60 * 60


@dataclass
class ProviderSettings:
    platform: Platform
    base_url: str
    credential: Optional[str] = None
    requires_credential: bool = False
    enabled: bool = True
    max_requests: int = 60
    window_seconds: float = 60.0
    min_interval: float = 0.0
    cache_ttl: float = 300.0
    retry_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_after_fallback: Optional[float] = None

    @property
    def is_active(self) -> bool:
        if not self.enabled:
            return False
        return not self.requires_credential or is_configured_key(self.credential)


@dataclass
class TrendSettings:
    providers: Dict[Platform, ProviderSettings]
    cache_path: Optional[Path] = None
    cache_max_entries: int = 64
    max_wait_seconds: float = 30.0
    aggregate_timeout: float = 60.0
    http_timeout: float = 15.0
    top_limit: int = 5
    snapshot_path: Optional[Path] = None
    snapshot_db: Optional[Path] = None


DEFAULT_PROVIDERS: Dict[Platform, ProviderSettings] = {
    # NewsData.io free tier: a small daily quota, so long cache and a full-day backoff on 429.
    Platform.NEWS: ProviderSettings(
        platform=Platform.NEWS,
        base_url="https://newsdata.io/api/1",
        requires_credential=True,
        max_requests=25,
        window_seconds=DAY,
        min_interval=300.0,
        cache_ttl=1800.0,
        retry_attempts=3,
        retry_after_fallback=DAY,
    ),
    Platform.VIDEO: ProviderSettings(
        platform=Platform.VIDEO,
        base_url="https://www.googleapis.com/youtube/v3",
        requires_credential=True,
        max_requests=10000,
        window_seconds=DAY,
        retry_attempts=2,
    ),
    Platform.FORUM_A: ProviderSettings(
        platform=Platform.FORUM_A,
        base_url="https://www.reddit.com",
        max_requests=60,
        window_seconds=60.0,
        min_interval=1.0,
        retry_attempts=3,
    ),
    Platform.FORUM_B: ProviderSettings(
        platform=Platform.FORUM_B,
        base_url="https://hacker-news.firebaseio.com/v0",
        max_requests=30,
        window_seconds=60.0,
        min_interval=0.5,
        retry_attempts=3,
    ),
    Platform.CODE_SEARCH: ProviderSettings(
        platform=Platform.CODE_SEARCH,
        base_url="https://api.github.com",
        requires_credential=True,
        max_requests=30,
        window_seconds=60.0,
        min_interval=2.0,
        retry_attempts=2,
    ),
}

CREDENTIAL_ENV: Dict[Platform, tuple] = {
    Platform.NEWS: ("NEWSDATA_API_KEY", "NEWS_API_KEY"),
    Platform.VIDEO: ("YOUTUBE_API_KEY",),
    Platform.CODE_SEARCH: ("GITHUB_TOKEN",),
}

_NUMERIC_FIELDS = {
    "max_requests": int,
    "window_seconds": float,
    "min_interval": float,
    "cache_ttl": float,
    "retry_attempts": int,
    "retry_base_delay": float,
    "retry_after_fallback": float,
}


def _int_from_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(raw)
        return value if value > 0 else default
    except ValueError:
        logger.warning("Invalid int value for %s=%s; using default %s", key, raw, default)
        return default


def _float_from_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = float(raw)
        return value if value >= 0 else default
    except ValueError:
        logger.warning("Invalid float value for %s=%s; using default %s", key, raw, default)
        return default


def _path_from_env(key: str, default: Optional[Path]) -> Optional[Path]:
    raw = os.getenv(key)
    if raw is None:
        return default
    raw = raw.strip()
    if raw.lower() in ("", "none", "off"):
        return None
    return Path(raw)


def _bool_from_env(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _number_from_config(config: Dict[str, Any], name: str, cast, default):
    if name not in config:
        return default
    raw = config[name]
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid %s=%r in trends config; using default %s", name, raw, default)
        return default
    if value < 0 or (cast is int and value == 0):
        logger.warning("Out-of-range %s=%r in trends config; using default %s", name, raw, default)
        return default
    return value


def _apply_overrides(provider: ProviderSettings, overrides: Dict[str, Any]) -> ProviderSettings:
    changes: Dict[str, Any] = {}
    for name, value in overrides.items():
        if name in _NUMERIC_FIELDS:
            try:
                changes[name] = _NUMERIC_FIELDS[name](value)
            except (TypeError, ValueError):
                logger.warning("Invalid %s=%r for provider %s; keeping %s",
                               name, value, provider.platform.value, getattr(provider, name))
        elif name in ("base_url", "credential"):
            changes[name] = str(value) if value else None
        elif name == "enabled":
            changes[name] = bool(value)
        else:
            logger.warning("Unknown provider option '%s' for %s; skipping.", name, provider.platform.value)
    return replace(provider, **changes) if changes else provider


def _provider_from_env(provider: ProviderSettings) -> ProviderSettings:
    prefix = f"TRENDS_{provider.platform.value.upper()}_"
    credential = provider.credential
    for env_key in CREDENTIAL_ENV.get(provider.platform, ()):
        if os.getenv(env_key):
            credential = os.getenv(env_key)
            break
    fallback = _float_from_env(prefix + "RETRY_AFTER_FALLBACK", provider.retry_after_fallback or 0.0)
    return replace(
        provider,
        credential=credential,
        enabled=_bool_from_env(prefix + "ENABLED", provider.enabled),
        max_requests=_int_from_env(prefix + "MAX_REQUESTS", provider.max_requests),
        window_seconds=_float_from_env(prefix + "WINDOW_SECONDS", provider.window_seconds),
        min_interval=_float_from_env(prefix + "MIN_INTERVAL", provider.min_interval),
        cache_ttl=_float_from_env(prefix + "CACHE_TTL", provider.cache_ttl),
        retry_attempts=_int_from_env(prefix + "RETRY_ATTEMPTS", provider.retry_attempts),
        retry_after_fallback=fallback or None,
    )


def load_settings(config: Optional[Dict[str, Any]] = None) -> TrendSettings:
    config = load_providers_config() if config is None else config
    provider_overrides = config.get("providers") or {}

    providers: Dict[Platform, ProviderSettings] = {}
    for platform, defaults in DEFAULT_PROVIDERS.items():
        provider = defaults
        for key, overrides in provider_overrides.items():
            try:
                matched = Platform.from_key(key)
            except ValueError:
                continue
            if matched is platform and isinstance(overrides, dict):
                provider = _apply_overrides(provider, overrides)
        providers[platform] = _provider_from_env(provider)

    for key in provider_overrides:
        try:
            Platform.from_key(key)
        except ValueError:
            logger.warning("Unknown provider '%s' in trends config; skipping.", key)

    cache_default = config.get("cache_path")
    snapshot_default = config.get("snapshot_path")
    snapshot_db = config.get("snapshot_db")
    return TrendSettings(
        providers=providers,
        cache_path=_path_from_env(
            "TRENDS_CACHE_PATH",
            Path(cache_default) if cache_default else PACKAGE_DIR / ".trend_cache.json",
        ),
        cache_max_entries=_int_from_env("TRENDS_CACHE_MAX_ENTRIES", _number_from_config(config, "cache_max_entries", int, 64)),
        max_wait_seconds=_float_from_env("TRENDS_MAX_WAIT_SECONDS", _number_from_config(config, "max_wait_seconds", float, 30.0)),
        aggregate_timeout=_float_from_env("TRENDS_AGGREGATE_TIMEOUT", _number_from_config(config, "aggregate_timeout", float, 60.0)),
        http_timeout=_float_from_env("TRENDS_HTTP_TIMEOUT", _number_from_config(config, "http_timeout", float, 15.0)),
        top_limit=_int_from_env("TRENDS_TOP_LIMIT", _number_from_config(config, "top_limit", int, 5)),
        snapshot_path=_path_from_env(
            "TRENDS_SNAPSHOT_PATH",
            Path(snapshot_default) if snapshot_default else PACKAGE_DIR / ".trend_snapshots.jsonl",
        ),
        snapshot_db=_path_from_env("TRENDS_SNAPSHOT_DB", Path(snapshot_db) if snapshot_db else None),
    )
