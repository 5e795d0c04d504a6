"""
Status/health helpers for the trend engine.

The output is designed for API/UI consumption and never includes credentials.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from trends.pipeline import TrendEngine
from trends.settings import TrendSettings


def build_status(engine: TrendEngine, settings: TrendSettings) -> Dict[str, Any]:
    health = [entry.to_dict() for entry in engine.get_health()]
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "engine": {
            "health": health,
            "provider_count": len(engine.providers),
            "aggregate_timeout": settings.aggregate_timeout,
            "top_limit": settings.top_limit,
        },
        "providers": {
            platform.value: {
                "enabled": cfg.enabled,
                "active": cfg.is_active,
                "max_requests": cfg.max_requests,
                "window_seconds": cfg.window_seconds,
                "min_interval": cfg.min_interval,
                "cache_ttl": cfg.cache_ttl,
            }
            for platform, cfg in settings.providers.items()
        },
        "rate_limits": engine.limiter.snapshot() if engine.limiter else {},
        "cache": engine.cache.snapshot() if engine.cache else {},
        "config": {
            "cache_path": str(settings.cache_path) if settings.cache_path else None,
            "cache_max_entries": settings.cache_max_entries,
            "snapshot_path": str(settings.snapshot_path) if settings.snapshot_path else None,
            "snapshot_db": str(settings.snapshot_db) if settings.snapshot_db else None,
            "max_wait_seconds": settings.max_wait_seconds,
        },
    }
