"""
Public API for the trend aggregation engine.
"""
from __future__ import annotations

import threading
from typing import Any, Dict, Optional

from trends.models import AggregationResult, Platform, TrendRecord
from trends.pipeline import TrendEngine
from trends.settings import TrendSettings, load_settings
from trends.status import build_status

__all__ = [
    "AggregationResult",
    "Platform",
    "TrendEngine",
    "TrendRecord",
    "build_engine",
    "get_all_platform_trends",
    "get_engine",
    "get_pipeline_status",
]

_engine: Optional[TrendEngine] = None
_settings: Optional[TrendSettings] = None
_engine_lock = threading.Lock()


def build_engine(settings: Optional[TrendSettings] = None) -> TrendEngine:
    return TrendEngine.from_settings(settings or load_settings())


def get_engine() -> TrendEngine:
    """Lazily build the process-wide default engine from env/YAML settings."""
    global _engine, _settings
    with _engine_lock:
        if _engine is None:
            _settings = load_settings()
            _engine = TrendEngine.from_settings(_settings)
        return _engine


def get_all_platform_trends() -> Dict[str, Any]:
    return get_engine().get_all_platform_trends()


def get_pipeline_status() -> Dict[str, Any]:
    engine = get_engine()
    return build_status(engine, _settings or load_settings())
